from typing import Any, Dict, List

from bs4 import BeautifulSoup

import config
from utils.html import last_path_segment, node_text, paragraph_texts
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
from .http_context import decode_json_leniently


class KakuyomuProvider(WebNovelProvider):
    """カクヨム (kakuyomu.jp).

    Work pages embed their data as Apollo cache entries inside
    ``__NEXT_DATA__``; rankings and episode bodies are plain HTML.
    """

    DISPLAY_NAME = "Kakuyomu"
    RANK_PATH_OPTIONS = ("genre", "period")

    def __init__(self, http):
        super().__init__("kakuyomu", http)

    # --- rank ---

    async def rank(self, options: Dict[str, str]) -> List[RemoteListing]:
        genre = options.get("genre") or "all"
        period = options.get("period") or "daily"
        url = f"{config.KAKUYOMU_BASE_URL}/rankings/{genre}/{period}"
        params = {k: v for k, v in options.items() if k not in self.RANK_PATH_OPTIONS}
        soup = await self.http.get_document(url, params=params or None)
        return self._parse_rank_document(soup)

    def _parse_rank_document(self, soup: BeautifulSoup) -> List[RemoteListing]:
        listings = []
        for card in soup.select("div.widget-work"):
            title_link = card.select_one("a.widget-workCard-titleLabel[href]")
            if title_link is None:
                continue
            novel_id = last_path_segment(title_link["href"])
            title = node_text(title_link)
            if not novel_id or not title:
                continue
            meta_parts = [
                node_text(card.select_one("a.widget-workCard-authorLabel")),
                node_text(card.select_one(".widget-workCard-status")),
                node_text(card.select_one(".widget-workCard-episodeCount")),
            ]
            listings.append(
                RemoteListing(
                    novel_id=novel_id,
                    title=title,
                    meta=" / ".join(part for part in meta_parts if part),
                )
            )
        return listings

    # --- metadata ---

    async def fetch_metadata(self, novel_id: str) -> RemoteMetadata:
        soup = await self.http.get_document(f"{config.KAKUYOMU_BASE_URL}/works/{novel_id}")
        return self._parse_metadata_document(soup, novel_id)

    @staticmethod
    def _apollo_state(soup: BeautifulSoup) -> Dict[str, Any]:
        script = soup.select_one("script#__NEXT_DATA__")
        if script is None or not script.string:
            raise ProviderFetchError("kakuyomu work page has no __NEXT_DATA__")
        data = decode_json_leniently(script.string)
        try:
            state = data["props"]["pageProps"]["__APOLLO_STATE__"]
        except (KeyError, TypeError) as exc:
            raise ProviderFetchError("kakuyomu work page has no apollo state") from exc
        if not isinstance(state, dict):
            raise ProviderFetchError("kakuyomu apollo state is not an object")
        return state

    @staticmethod
    def _deref(state: Dict[str, Any], ref: Any) -> Dict[str, Any]:
        if not isinstance(ref, dict) or "__ref" not in ref:
            raise ProviderFetchError("kakuyomu apollo reference is malformed")
        node = state.get(ref["__ref"])
        if not isinstance(node, dict):
            raise ProviderFetchError(f"kakuyomu apollo entry missing: {ref['__ref']}")
        return node

    def _parse_metadata_document(self, soup: BeautifulSoup, novel_id: str) -> RemoteMetadata:
        state = self._apollo_state(soup)
        work = state.get(f"Work:{novel_id}")
        if not isinstance(work, dict):
            raise ProviderFetchError(f"kakuyomu work not found: {novel_id}")

        title = clean_text(work.get("title"))
        if not title:
            raise ProviderFetchError("kakuyomu work has no title")

        authors = []
        if work.get("author"):
            account = self._deref(state, work["author"])
            name = clean_text(account.get("activityName"))
            user_name = clean_text(account.get("name"))
            if name:
                link = f"{config.KAKUYOMU_BASE_URL}/users/{user_name}" if user_name else None
                authors.append(RemoteAuthor(name=name, link=link))

        toc = []
        for section_ref in work.get("tableOfContents") or []:
            section = self._deref(state, section_ref)
            if section.get("chapter"):
                chapter = self._deref(state, section["chapter"])
                heading = clean_text(chapter.get("title"))
                if heading:
                    toc.append(RemoteTocItem(title=heading))
            for episode_ref in section.get("episodeUnions") or []:
                episode = self._deref(state, episode_ref)
                episode_id = clean_text(str(episode.get("id") or ""))
                if not episode_id:
                    continue
                toc.append(
                    RemoteTocItem(title=clean_text(episode.get("title")), chapter_id=episode_id)
                )

        return RemoteMetadata(
            title=title,
            authors=authors,
            introduction=(work.get("introduction") or "").strip(),
            toc=toc,
        )

    # --- chapter ---

    async def fetch_chapter(self, novel_id: str, chapter_id: str) -> RemoteChapter:
        soup = await self.http.get_document(
            f"{config.KAKUYOMU_BASE_URL}/works/{novel_id}/episodes/{chapter_id}"
        )
        return self._parse_chapter_document(soup)

    @staticmethod
    def _parse_chapter_document(soup: BeautifulSoup) -> RemoteChapter:
        body = soup.select_one("div.widget-episodeBody")
        if body is None:
            raise ProviderFetchError("kakuyomu episode page has no body")
        return RemoteChapter(paragraphs=paragraph_texts(body.find_all("p")))
