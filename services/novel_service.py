"""Read-side projections over the metadata and episode stores."""

import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, List, Optional

import psycopg2

from models.novel import BookAuthor, BookListItem, BookTocItem, ListOption, ListSort
from providers.base_provider import ProviderFetchError, ProviderNotFoundError
from repositories.base import RepositoryError
from utils.result import Ok, bad_request, internal_error, not_found
from utils.time import to_epoch_seconds

LOGGER = logging.getLogger(__name__)

STORE_ERRORS = (psycopg2.Error, RepositoryError)


@dataclass
class BookPage:
    page_number: int
    items: List[BookListItem] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass
class BookState:
    total: int
    count_original: int
    count_translated: int

    def to_dict(self):
        return asdict(self)


@dataclass
class BookMetadataView:
    title_original: str
    title_translated: Optional[str]
    authors: List[BookAuthor]
    introduction_original: str
    introduction_translated: Optional[str]
    glossary: Dict[str, str]
    toc: List[BookTocItem]
    visited: int
    downloaded: int
    sync_at: int

    def to_dict(self):
        return asdict(self)


@dataclass
class BookEpisodeView:
    title_original: str
    title_translated: Optional[str]
    prev_id: Optional[str]
    next_id: Optional[str]
    paragraphs_original: List[str]
    paragraphs_translated: Optional[List[str]]

    def to_dict(self):
        return asdict(self)


def build_progress(count_original, count_translated, total) -> str:
    return f"原文({count_original}/{total}) 译文({count_translated}/{total})"


def adjacent_ids(chapters: List[BookTocItem], index: int):
    """Episode ids on either side of ``chapters[index]``; None at the ends."""
    prev_id = chapters[index - 1].episode_id if index > 0 else None
    next_id = chapters[index + 1].episode_id if index + 1 < len(chapters) else None
    return prev_id, next_id


class NovelService:
    """
    Every operation returns ``Ok(value)`` or ``Err(kind, message)``. Store
    and provider failures are reported once, never retried, and never turned
    into partial results.
    """

    def __init__(self, metadata_store, episode_store):
        self.metadata_store = metadata_store
        self.episode_store = episode_store

    def list(
        self,
        page: int,
        page_size: int,
        provider_id: Optional[str] = None,
        sort: ListSort = ListSort.CREATED,
    ):
        if page_size < 1:
            return bad_request("page size must be at least 1")
        option = ListOption(provider_id=provider_id, sort=sort)
        try:
            rows = self.metadata_store.list(max(page, 0), page_size, option)
            items = []
            for row in rows:
                count_original = self.episode_store.count_original(row.provider_id, row.book_id)
                count_translated = self.episode_store.count_translated(row.provider_id, row.book_id)
                items.append(
                    replace(row, extra=build_progress(count_original, count_translated, row.extra))
                )

            if provider_id is None:
                total = self.metadata_store.count()
            else:
                total = self.metadata_store.count_for_provider(provider_id)
        except STORE_ERRORS:
            LOGGER.exception("list failed provider=%s", provider_id)
            return internal_error("repository error")

        # Floor division: a trailing partial page is not counted.
        return Ok(BookPage(page_number=total // page_size, items=items))

    def list_rank(self, provider_id: str, options: Dict[str, str]):
        try:
            items = self.metadata_store.list_rank(provider_id, options)
        except ProviderNotFoundError as exc:
            return not_found(str(exc))
        except ProviderFetchError as exc:
            LOGGER.warning("rank fetch failed provider=%s error=%s", provider_id, exc)
            return internal_error(exc.message)
        return Ok(BookPage(page_number=1, items=items))

    def _get_metadata_row(self, provider_id, book_id):
        metadata = self.metadata_store.get(provider_id, book_id)
        if metadata is None:
            return None, not_found(f"book not found: {provider_id}/{book_id}")
        return metadata, None

    def get_state(self, provider_id: str, book_id: str):
        try:
            metadata, error = self._get_metadata_row(provider_id, book_id)
            if error:
                return error
            return Ok(
                BookState(
                    total=len(metadata.chapters()),
                    count_original=self.episode_store.count_original(provider_id, book_id),
                    count_translated=self.episode_store.count_translated(provider_id, book_id),
                )
            )
        except STORE_ERRORS:
            LOGGER.exception("get_state failed book=%s/%s", provider_id, book_id)
            return internal_error("repository error")

    def get_metadata(self, provider_id: str, book_id: str):
        try:
            metadata, error = self._get_metadata_row(provider_id, book_id)
        except STORE_ERRORS:
            LOGGER.exception("get_metadata failed book=%s/%s", provider_id, book_id)
            return internal_error("repository error")
        if error:
            return error

        try:
            self.metadata_store.increase_visited(provider_id, book_id)
        except STORE_ERRORS:
            # The visit counter is best effort; the read already succeeded.
            LOGGER.warning("increase_visited failed book=%s/%s", provider_id, book_id, exc_info=True)

        return Ok(
            BookMetadataView(
                title_original=metadata.title_original,
                title_translated=metadata.title_translated,
                authors=metadata.authors,
                introduction_original=metadata.introduction_original,
                introduction_translated=metadata.introduction_translated,
                glossary=metadata.glossary,
                toc=metadata.toc,
                visited=metadata.visited,
                downloaded=metadata.downloaded,
                sync_at=to_epoch_seconds(metadata.sync_at),
            )
        )

    def get_episode(self, provider_id: str, book_id: str, episode_id: str):
        try:
            metadata, error = self._get_metadata_row(provider_id, book_id)
            if error:
                return error

            chapters = metadata.chapters()
            index = next(
                (i for i, item in enumerate(chapters) if item.episode_id == episode_id), None
            )
            if index is None:
                return internal_error("episode id not in toc")

            episode = self.episode_store.get(provider_id, book_id, episode_id)
            if episode is None:
                return not_found(f"episode not found: {provider_id}/{book_id}/{episode_id}")
        except STORE_ERRORS:
            LOGGER.exception("get_episode failed episode=%s/%s/%s", provider_id, book_id, episode_id)
            return internal_error("repository error")

        prev_id, next_id = adjacent_ids(chapters, index)
        current = chapters[index]
        return Ok(
            BookEpisodeView(
                title_original=current.title_original,
                title_translated=current.title_translated,
                prev_id=prev_id,
                next_id=next_id,
                paragraphs_original=episode.paragraphs_original,
                paragraphs_translated=episode.paragraphs_translated,
            )
        )
