from typing import Dict, List

from bs4 import BeautifulSoup, NavigableString, Tag

import config
from utils.html import last_path_segment, node_text, paragraph_texts
from .base_provider import (
    ProviderFetchError,
    RemoteAuthor,
    RemoteChapter,
    RemoteListing,
    RemoteMetadata,
    RemoteTocItem,
    WebNovelProvider,
)

# Without this cookie the site answers with an age-confirmation page.
SESSION_COOKIES = {"over18": "off"}


class HamelnProvider(WebNovelProvider):
    """ハーメルン (syosetu.org)."""

    DISPLAY_NAME = "Hameln"

    def __init__(self, http):
        super().__init__("hameln", http)
        http.register_site_cookies(SESSION_COOKIES, config.HAMELN_BASE_URL)

    # --- rank ---

    async def rank(self, options: Dict[str, str]) -> List[RemoteListing]:
        params = {"mode": "rank", **options}
        soup = await self.http.get_document(f"{config.HAMELN_BASE_URL}/", params=params)
        return self._parse_rank_document(soup)

    @staticmethod
    def _parse_rank_document(soup: BeautifulSoup) -> List[RemoteListing]:
        listings = []
        for block in soup.select("div.section3"):
            link = block.select_one("div.blo_title_base a[href]")
            if link is None:
                continue
            novel_id = last_path_segment(link["href"])
            title = node_text(link)
            if not novel_id or not title:
                continue
            author = node_text(block.select_one("div.blo_title_sak"))
            for prefix in ("作者：", "作："):
                if author.startswith(prefix):
                    author = author[len(prefix):].strip()
            episodes = node_text(block.select_one("div.blo_wasuu_base"))
            listings.append(
                RemoteListing(
                    novel_id=novel_id,
                    title=title,
                    meta=" / ".join(part for part in (author, episodes) if part),
                )
            )
        return listings

    # --- metadata ---

    async def fetch_metadata(self, novel_id: str) -> RemoteMetadata:
        soup = await self.http.get_document(f"{config.HAMELN_BASE_URL}/novel/{novel_id}/")
        return self._parse_metadata_document(soup)

    @staticmethod
    def _introduction(header: Tag) -> str:
        # The introduction sits between the first two <hr> of the header block.
        first_rule = header.find("hr")
        if first_rule is None:
            return ""
        parts = []
        for sibling in first_rule.next_siblings:
            if isinstance(sibling, Tag):
                if sibling.name == "hr":
                    break
                if sibling.name == "br":
                    parts.append("\n")
                else:
                    parts.append(sibling.get_text())
            elif isinstance(sibling, NavigableString):
                parts.append(str(sibling))
        lines = [line.strip() for line in "".join(parts).split("\n")]
        return "\n".join(lines).strip()

    def _parse_metadata_document(self, soup: BeautifulSoup) -> RemoteMetadata:
        blocks = soup.select("div.ss")
        if not blocks:
            raise ProviderFetchError("hameln novel page has no content block")
        header = blocks[0]

        title = node_text(header.select_one('span[itemprop="name"]'))
        if not title:
            raise ProviderFetchError("hameln novel page has no title")

        authors = []
        author_node = header.select_one('span[itemprop="author"]')
        if author_node is not None:
            link = author_node.select_one("a[href]")
            name = node_text(author_node)
            if name:
                href = link["href"] if link is not None else None
                if href and href.startswith("//"):
                    href = f"https:{href}"
                authors.append(RemoteAuthor(name=name, link=href))

        toc = []
        for table in (block.select_one("table") for block in blocks[1:]):
            if table is None:
                continue
            for row in table.select("tr"):
                heading_cell = row.select_one("td[colspan]")
                if heading_cell is not None:
                    heading = node_text(heading_cell)
                    if heading:
                        toc.append(RemoteTocItem(title=heading))
                    continue
                link = row.select_one("a[href]")
                if link is None:
                    continue
                chapter_id = last_path_segment(link["href"])
                if chapter_id:
                    toc.append(RemoteTocItem(title=node_text(link), chapter_id=chapter_id))

        return RemoteMetadata(
            title=title,
            authors=authors,
            introduction=self._introduction(header),
            toc=toc,
        )

    # --- chapter ---

    async def fetch_chapter(self, novel_id: str, chapter_id: str) -> RemoteChapter:
        soup = await self.http.get_document(
            f"{config.HAMELN_BASE_URL}/novel/{novel_id}/{chapter_id}.html"
        )
        return self._parse_chapter_document(soup)

    @staticmethod
    def _parse_chapter_document(soup: BeautifulSoup) -> RemoteChapter:
        body = soup.select_one("div#honbun")
        if body is None:
            raise ProviderFetchError("hameln chapter page has no body")
        return RemoteChapter(paragraphs=paragraph_texts(body.find_all("p")))
