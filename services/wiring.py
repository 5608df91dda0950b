"""Startup wiring: one HttpContext shared by every provider and store."""

from dataclasses import dataclass

from providers.http_context import HttpContext
from providers.registry import ProviderRegistry, build_provider_registry
from repositories.episode_repo import PostgresEpisodeStore
from repositories.metadata_repo import PostgresMetadataStore
from services.ingest_service import IngestService
from services.novel_service import NovelService


@dataclass
class Services:
    http: HttpContext
    registry: ProviderRegistry
    novel_service: NovelService
    ingest_service: IngestService


def build_services(http=None, conn_provider=None) -> Services:
    """
    ``conn_provider`` defaults to the request-scoped ``database.get_db``;
    scripts pass a standalone connection instead.
    """
    http = http or HttpContext.from_config()
    registry = build_provider_registry(http)
    metadata_store = PostgresMetadataStore(registry, http, conn_provider=conn_provider)
    episode_store = PostgresEpisodeStore(conn_provider=conn_provider)
    return Services(
        http=http,
        registry=registry,
        novel_service=NovelService(metadata_store, episode_store),
        ingest_service=IngestService(registry, http, metadata_store, episode_store),
    )
