"""Sync one book (and optionally its chapters) from a provider into the DB."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

sys.path.append(str(Path(__file__).resolve().parents[1]))
load_dotenv()

from database import create_standalone_connection
from providers.base_provider import ProviderError
from services.wiring import build_services

LOGGER = logging.getLogger("sync_book")


def _setup_logging(level: str) -> None:
    numeric = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _make_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("provider", help="Provider id, e.g. syosetu, kakuyomu, hameln")
    parser.add_argument("book", help="Provider-native book id")
    parser.add_argument(
        "--episodes",
        action="store_true",
        help="Also fetch every chapter listed in the table of contents",
    )
    parser.add_argument("--log-level", default="INFO")
    return parser


def run(args) -> int:
    conn = create_standalone_connection()
    services = build_services(conn_provider=lambda: conn)
    try:
        if args.provider not in services.registry:
            LOGGER.error(
                "unknown provider %r (known: %s)",
                args.provider,
                ", ".join(services.registry.ids()),
            )
            return 2
        report = services.ingest_service.sync_book(
            args.provider, args.book, with_episodes=args.episodes
        )
    except ProviderError as exc:
        LOGGER.error("sync failed: %s", exc)
        return 1
    finally:
        services.http.close()
        conn.close()

    print(json.dumps({"provider": args.provider, "book": args.book, **report}, ensure_ascii=False))
    return 0


def main() -> int:
    parser = _make_arg_parser()
    args = parser.parse_args()
    _setup_logging(args.log_level)
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
