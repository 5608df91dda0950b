"""Start the novel API under gunicorn, creating the tables first when a DB is configured."""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

sys.path.append(str(Path(__file__).resolve().parents[1]))
load_dotenv()

import config
from database import setup_database_standalone

TRUTHY_VALUES = {"1", "true", "yes", "y", "on"}
# Headroom over one provider fetch so a slow rank page fails as a JSON error
# instead of a killed worker.
WORKER_TIMEOUT_MARGIN_SECONDS = 30


def _env_flag(name):
    return (os.getenv(name) or "").strip().lower() in TRUTHY_VALUES


def database_configured():
    if config.DATABASE_URL:
        return True
    # DB_HOST and DB_PORT have defaults.
    return all([config.DB_NAME, config.DB_USER, config.DB_PASSWORD])


def should_create_tables():
    if _env_flag("SKIP_DB_INIT"):
        return False
    if _env_flag("RUN_DB_INIT"):
        return True
    return database_configured()


def worker_timeout_seconds():
    raw = (os.getenv("GUNICORN_TIMEOUT") or "").strip()
    if raw:
        return int(raw)
    return config.CRAWLER_HTTP_TOTAL_TIMEOUT_SECONDS + WORKER_TIMEOUT_MARGIN_SECONDS


def build_gunicorn_command():
    port = (os.getenv("PORT") or "5000").strip()
    bind = (os.getenv("GUNICORN_BIND") or f"0.0.0.0:{port}").strip()
    workers = (os.getenv("WEB_CONCURRENCY") or "2").strip()
    # Each worker has its own HttpContext; threads let rank requests share it.
    threads = (os.getenv("WEB_THREADS") or "4").strip()

    return [
        "gunicorn",
        "app:app",
        "--bind",
        bind,
        "--workers",
        workers,
        "--threads",
        threads,
        "--timeout",
        str(worker_timeout_seconds()),
    ]


def main():
    if should_create_tables():
        print("[startup] Creating book_metadata and book_episodes tables")
        setup_database_standalone()
    else:
        print("[startup] No database configured (or SKIP_DB_INIT=1); tables not created.")

    print(f"[startup] Provider requests go {'via ' + config.HTTPS_PROXY if config.HTTPS_PROXY else 'direct'}")
    command = build_gunicorn_command()
    print("[startup] Starting novel API:", " ".join(command))
    os.execvp(command[0], command)


if __name__ == "__main__":
    main()
