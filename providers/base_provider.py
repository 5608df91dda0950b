#providers/base_provider.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional


class ProviderError(Exception):
    """Base class for provider failures."""


class ProviderFetchError(ProviderError):
    """Upstream page unreachable, unexpected shape, or unknown novel id."""

    def __init__(self, message, status=None):
        super().__init__(message)
        self.message = message
        self.status = status


class ProviderNotFoundError(ProviderError, LookupError):
    def __init__(self, provider_id):
        super().__init__(f"unknown provider: {provider_id}")
        self.provider_id = provider_id


@dataclass
class RemoteListing:
    novel_id: str
    title: str
    meta: str = ""


@dataclass
class RemoteAuthor:
    name: str
    link: Optional[str] = None


@dataclass
class RemoteTocItem:
    title: str
    chapter_id: Optional[str] = None


@dataclass
class RemoteMetadata:
    title: str
    authors: List[RemoteAuthor] = field(default_factory=list)
    introduction: str = ""
    toc: List[RemoteTocItem] = field(default_factory=list)


@dataclass
class RemoteChapter:
    paragraphs: List[str] = field(default_factory=list)


class WebNovelProvider(ABC):
    """
    Every upstream source implements these three operations on top of the
    shared ``HttpContext``; none of them retries. A failure surfaces as a
    single ``ProviderFetchError``.
    """

    DISPLAY_NAME = None

    def __init__(self, provider_id, http):
        self.provider_id = provider_id
        self.http = http

    @abstractmethod
    async def rank(self, options: Dict[str, str]) -> List[RemoteListing]:
        """
        Return the provider's ranking for the given opaque query options.
        """
        raise NotImplementedError

    @abstractmethod
    async def fetch_metadata(self, novel_id: str) -> RemoteMetadata:
        raise NotImplementedError

    @abstractmethod
    async def fetch_chapter(self, novel_id: str, chapter_id: str) -> RemoteChapter:
        raise NotImplementedError
