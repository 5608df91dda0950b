"""Fetch books from providers and write them through the stores."""

import logging
from typing import Dict, List, Optional

from models.novel import BookAuthor, BookMetadata, BookTocItem
from providers.base_provider import RemoteMetadata
from utils.time import now_utc

LOGGER = logging.getLogger(__name__)


def merge_toc(remote_toc, existing_toc: Optional[List[BookTocItem]]) -> List[BookTocItem]:
    """
    Build the canonical toc from the provider's toc, carrying over translated
    titles from the stored toc. Chapters match on ``episode_id``; headings
    match on their original title.
    """
    translated_chapters: Dict[str, str] = {}
    translated_headings: Dict[str, str] = {}
    for item in existing_toc or []:
        if not item.title_translated:
            continue
        if item.episode_id is not None:
            translated_chapters[item.episode_id] = item.title_translated
        else:
            translated_headings[item.title_original] = item.title_translated

    toc = []
    for remote_item in remote_toc:
        if remote_item.chapter_id is not None:
            translated = translated_chapters.get(remote_item.chapter_id)
        else:
            translated = translated_headings.get(remote_item.title)
        toc.append(
            BookTocItem(
                title_original=remote_item.title,
                title_translated=translated,
                episode_id=remote_item.chapter_id,
            )
        )
    return toc


def build_metadata(
    provider_id: str,
    book_id: str,
    remote: RemoteMetadata,
    existing: Optional[BookMetadata] = None,
) -> BookMetadata:
    """
    Convert a provider's metadata into the canonical record. Translated fields,
    the glossary and the counters of an existing record survive a re-sync,
    except when the original text they translate has changed.
    """
    title_translated = None
    introduction_translated = None
    glossary: Dict[str, str] = {}
    visited = downloaded = 0
    if existing is not None:
        if existing.title_original == remote.title:
            title_translated = existing.title_translated
        if existing.introduction_original == remote.introduction:
            introduction_translated = existing.introduction_translated
        glossary = dict(existing.glossary)
        visited = existing.visited
        downloaded = existing.downloaded

    return BookMetadata(
        provider_id=provider_id,
        book_id=book_id,
        title_original=remote.title,
        title_translated=title_translated,
        authors=[BookAuthor(name=author.name, link=author.link) for author in remote.authors],
        introduction_original=remote.introduction,
        introduction_translated=introduction_translated,
        glossary=glossary,
        toc=merge_toc(remote.toc, existing.toc if existing is not None else None),
        visited=visited,
        downloaded=downloaded,
        sync_at=now_utc(),
    )


class IngestService:
    """
    Write path for provider content. Failures propagate to the caller as the
    provider or store raised them; nothing is retried.
    """

    def __init__(self, registry, http, metadata_store, episode_store):
        self.registry = registry
        self.http = http
        self.metadata_store = metadata_store
        self.episode_store = episode_store

    def sync_metadata(self, provider_id: str, book_id: str) -> BookMetadata:
        provider = self.registry.get(provider_id)
        remote = self.http.run(provider.fetch_metadata(book_id))
        existing = self.metadata_store.get(provider_id, book_id)
        metadata = build_metadata(provider_id, book_id, remote, existing)
        self.metadata_store.upsert(metadata)
        LOGGER.info(
            "synced metadata book=%s/%s chapters=%d",
            provider_id,
            book_id,
            len(metadata.chapters()),
        )
        return metadata

    def sync_episode(self, provider_id: str, book_id: str, episode_id: str) -> int:
        provider = self.registry.get(provider_id)
        chapter = self.http.run(provider.fetch_chapter(book_id, episode_id))
        self.episode_store.upsert_original(provider_id, book_id, episode_id, chapter.paragraphs)
        LOGGER.info(
            "synced episode %s/%s/%s paragraphs=%d",
            provider_id,
            book_id,
            episode_id,
            len(chapter.paragraphs),
        )
        return len(chapter.paragraphs)

    def sync_book(self, provider_id: str, book_id: str, with_episodes: bool = False) -> Dict:
        metadata = self.sync_metadata(provider_id, book_id)
        report = {"chapters": len(metadata.chapters()), "episodes_synced": 0}
        if with_episodes:
            for item in metadata.chapters():
                self.sync_episode(provider_id, book_id, item.episode_id)
                report["episodes_synced"] += 1
        return report
