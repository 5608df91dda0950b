"""Canonical novel records shared by the repositories and the service layer."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


@dataclass
class BookAuthor:
    name: str
    link: Optional[str] = None


@dataclass
class BookTocItem:
    """One toc entry. ``episode_id`` is None for structural headings."""
    title_original: str
    title_translated: Optional[str] = None
    episode_id: Optional[str] = None

    @property
    def is_chapter(self) -> bool:
        return self.episode_id is not None


@dataclass
class BookMetadata:
    provider_id: str
    book_id: str
    title_original: str
    title_translated: Optional[str] = None
    authors: List[BookAuthor] = field(default_factory=list)
    introduction_original: str = ""
    introduction_translated: Optional[str] = None
    glossary: Dict[str, str] = field(default_factory=dict)
    toc: List[BookTocItem] = field(default_factory=list)
    visited: int = 0
    downloaded: int = 0
    sync_at: Optional[datetime] = None

    def chapters(self) -> List[BookTocItem]:
        """Toc entries that are chapters, in reading order."""
        return [item for item in self.toc if item.is_chapter]


@dataclass
class BookEpisode:
    provider_id: str
    book_id: str
    episode_id: str
    paragraphs_original: List[str] = field(default_factory=list)
    # May be shorter than paragraphs_original when translation is partial.
    paragraphs_translated: Optional[List[str]] = None


@dataclass
class BookListItem:
    provider_id: str
    book_id: str
    title_original: str
    title_translated: Optional[str] = None
    extra: str = ""

    def to_dict(self):
        return asdict(self)


class ListSort(Enum):
    CREATED = "created"
    UPDATED = "updated"
    VISITED = "visited"

    @classmethod
    def parse(cls, raw):
        """Map a query-string value to a sort key; None when unknown."""
        if raw is None or not str(raw).strip():
            return cls.CREATED
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


@dataclass
class ListOption:
    provider_id: Optional[str] = None
    sort: ListSort = ListSort.CREATED
