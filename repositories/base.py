"""Read/write contracts the service layer depends on."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from models.novel import BookEpisode, BookListItem, BookMetadata, ListOption


class RepositoryError(Exception):
    """A stored record could not be read back into the canonical model."""


class MetadataStore(ABC):
    @abstractmethod
    def list(self, page: int, page_size: int, option: ListOption) -> List[BookListItem]:
        """Return one page of books; ``extra`` carries the chapter total."""
        raise NotImplementedError

    @abstractmethod
    def get(self, provider_id: str, book_id: str) -> Optional[BookMetadata]:
        raise NotImplementedError

    @abstractmethod
    def count(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def count_for_provider(self, provider_id: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def list_rank(self, provider_id: str, options: Dict[str, str]) -> List[BookListItem]:
        raise NotImplementedError

    @abstractmethod
    def increase_visited(self, provider_id: str, book_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, metadata: BookMetadata) -> None:
        raise NotImplementedError


class EpisodeStore(ABC):
    @abstractmethod
    def get(self, provider_id: str, book_id: str, episode_id: str) -> Optional[BookEpisode]:
        raise NotImplementedError

    @abstractmethod
    def count_original(self, provider_id: str, book_id: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def count_translated(self, provider_id: str, book_id: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def upsert_original(
        self, provider_id: str, book_id: str, episode_id: str, paragraphs: List[str]
    ) -> None:
        raise NotImplementedError
