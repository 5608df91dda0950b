from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

import config
from utils.html import last_path_segment, node_text, paragraph_texts, text_with_breaks
from utils.text import clean_text
from .base_provider import (
    ProviderFetchError,
    RemoteAuthor,
    RemoteChapter,
    RemoteListing,
    RemoteMetadata,
    RemoteTocItem,
    WebNovelProvider,
)


class SyosetuProvider(WebNovelProvider):
    """小説家になろう (ncode.syosetu.com).

    Rankings come from the public novel API (JSON); metadata and chapters are
    scraped from the reader pages. A short story has no toc on its index page,
    so it is exposed as a single chapter with id ``default``.
    """

    DISPLAY_NAME = "Syosetu"
    RANK_DEFAULTS = {
        "of": "t-n-w-ga-nt-e",
        "order": "dailypoint",
        "lim": "50",
    }
    SHORT_STORY_CHAPTER_ID = "default"
    MAX_TOC_PAGES = 200

    def __init__(self, http):
        super().__init__("syosetu", http)

    # --- rank ---

    async def rank(self, options: Dict[str, str]) -> List[RemoteListing]:
        params = {**self.RANK_DEFAULTS, **options, "out": "json"}
        payload = await self.http.get_json(config.SYOSETU_API_URL, params=params)
        return self._parse_rank_payload(payload)

    @staticmethod
    def _build_rank_meta(item: Dict[str, Any]) -> str:
        parts = []
        writer = clean_text(item.get("writer"))
        if writer:
            parts.append(writer)
        if item.get("noveltype") == 2:
            parts.append("短編")
        else:
            total = item.get("general_all_no")
            if isinstance(total, int) and total > 0:
                status = "完結" if item.get("end") == 0 else "連載中"
                parts.append(f"{status} 全{total}話")
        return " / ".join(parts)

    def _parse_rank_payload(self, payload: Any) -> List[RemoteListing]:
        if not isinstance(payload, list):
            raise ProviderFetchError("unexpected syosetu rank payload")
        listings = []
        for item in payload:
            # The first element only carries {"allcount": N}.
            if not isinstance(item, dict) or "allcount" in item:
                continue
            ncode = clean_text(item.get("ncode"))
            title = clean_text(item.get("title"))
            if not ncode or not title:
                continue
            listings.append(
                RemoteListing(
                    novel_id=ncode.lower(),
                    title=title,
                    meta=self._build_rank_meta(item),
                )
            )
        return listings

    # --- metadata ---

    def _index_url(self, novel_id: str) -> str:
        return f"{config.SYOSETU_BASE_URL}/{novel_id}/"

    async def fetch_metadata(self, novel_id: str) -> RemoteMetadata:
        url = self._index_url(novel_id)
        soup = await self.http.get_document(url)
        metadata = self._parse_metadata_document(soup)

        next_href = self._next_toc_page(soup)
        pages = 1
        while next_href and pages < self.MAX_TOC_PAGES:
            soup = await self.http.get_document(urljoin(url, next_href))
            self._extend_toc(metadata.toc, self._parse_toc(soup))
            next_href = self._next_toc_page(soup)
            pages += 1
        return metadata

    def _parse_metadata_document(self, soup: BeautifulSoup) -> RemoteMetadata:
        title_node = soup.select_one("h1.p-novel__title") or soup.select_one(".novel_title")
        title = node_text(title_node)
        if not title:
            raise ProviderFetchError("syosetu novel page has no title")

        introduction = text_with_breaks(
            soup.select_one("#novel_ex") or soup.select_one(".p-novel__summary")
        )

        toc = self._parse_toc(soup)
        if not toc and self._chapter_body(soup) is not None:
            toc = [RemoteTocItem(title=title, chapter_id=self.SHORT_STORY_CHAPTER_ID)]

        return RemoteMetadata(
            title=title,
            authors=self._parse_authors(soup),
            introduction=introduction,
            toc=toc,
        )

    @staticmethod
    def _parse_authors(soup: BeautifulSoup) -> List[RemoteAuthor]:
        node = soup.select_one(".p-novel__author") or soup.select_one(".novel_writername")
        if node is None:
            return []
        link = node.select_one("a[href]")
        if link is not None:
            name = node_text(link)
            return [RemoteAuthor(name=name, link=link["href"])] if name else []
        name = node_text(node)
        for prefix in ("作者：", "作者:"):
            if name.startswith(prefix):
                name = name[len(prefix):].strip()
        return [RemoteAuthor(name=name)] if name else []

    def _parse_toc(self, soup: BeautifulSoup) -> List[RemoteTocItem]:
        container = soup.select_one(".p-eplist") or soup.select_one(".index_box")
        if container is None:
            return []
        toc = []
        for node in container.find_all(recursive=False):
            classes = node.get("class") or []
            if "p-eplist__chapter-title" in classes or "chapter_title" in classes:
                heading = node_text(node)
                if heading:
                    toc.append(RemoteTocItem(title=heading))
                continue
            link = node.select_one("a[href]")
            if link is None:
                continue
            chapter_id = last_path_segment(link["href"])
            title = node_text(link)
            if chapter_id and title:
                toc.append(RemoteTocItem(title=title, chapter_id=chapter_id))
        return toc

    @staticmethod
    def _extend_toc(toc: List[RemoteTocItem], page_items: List[RemoteTocItem]) -> None:
        # A chapter heading is repeated at the top of the next page when a
        # section spans a page break; only the latest heading can repeat.
        last_heading = next((item for item in reversed(toc) if item.chapter_id is None), None)
        if (
            page_items
            and page_items[0].chapter_id is None
            and last_heading is not None
            and page_items[0].title == last_heading.title
        ):
            page_items = page_items[1:]
        toc.extend(page_items)

    @staticmethod
    def _next_toc_page(soup: BeautifulSoup) -> Optional[str]:
        link = soup.select_one("a.c-pager__item--next[href]")
        if link is None:
            return None
        return link["href"]

    # --- chapter ---

    async def fetch_chapter(self, novel_id: str, chapter_id: str) -> RemoteChapter:
        if chapter_id == self.SHORT_STORY_CHAPTER_ID:
            url = self._index_url(novel_id)
        else:
            url = f"{config.SYOSETU_BASE_URL}/{novel_id}/{chapter_id}/"
        soup = await self.http.get_document(url)
        return self._parse_chapter_document(soup)

    @staticmethod
    def _chapter_body(soup: BeautifulSoup):
        for node in soup.select("div.p-novel__text"):
            classes = node.get("class") or []
            if "p-novel__text--preface" in classes or "p-novel__text--afterword" in classes:
                continue
            return node
        return soup.select_one("#novel_honbun")

    def _parse_chapter_document(self, soup: BeautifulSoup) -> RemoteChapter:
        body = self._chapter_body(soup)
        if body is None:
            raise ProviderFetchError("syosetu chapter page has no body")
        return RemoteChapter(paragraphs=paragraph_texts(body.find_all("p")))
