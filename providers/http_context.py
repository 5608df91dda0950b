"""Shared outbound HTTP access for every provider.

One ``HttpContext`` is built at startup and handed to each provider. It owns
a single aiohttp session whose cookie jar is shared by all providers, so a
session cookie picked up by one call is sent on every later call to the same
site. The session lives on a dedicated event loop thread; synchronous code
submits coroutines to it with :meth:`HttpContext.run`.
"""

import asyncio
import json
import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Tuple

import aiohttp
from bs4 import BeautifulSoup
from yarl import URL

import config
from providers.base_provider import ProviderFetchError

LOGGER = logging.getLogger(__name__)

ACCEPT_JSON = "application/json, text/plain;q=0.9, */*;q=0.8"
ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def decode_json_leniently(text: str, url: Optional[str] = None) -> Any:
    """Decode a JSON payload, tolerating a BOM and raw control characters."""
    if text is None:
        raise ProviderFetchError(f"empty json payload from {url}")
    payload = text.lstrip("\ufeff").strip()
    if not payload:
        raise ProviderFetchError(f"empty json payload from {url}")
    try:
        return json.loads(payload, strict=False)
    except json.JSONDecodeError as exc:
        raise ProviderFetchError(f"json_error from {url}: {exc.msg}") from exc


def build_timeout() -> aiohttp.ClientTimeout:
    return aiohttp.ClientTimeout(
        total=config.CRAWLER_HTTP_TOTAL_TIMEOUT_SECONDS,
        connect=config.CRAWLER_HTTP_CONNECT_TIMEOUT_SECONDS,
        sock_read=config.CRAWLER_HTTP_SOCK_READ_TIMEOUT_SECONDS,
    )


class HttpContext:
    def __init__(
        self,
        proxy: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        concurrency_limit: Optional[int] = None,
    ):
        self.proxy = proxy
        self.headers = {**config.CRAWLER_HEADERS, **(headers or {})}
        self.timeout = timeout or build_timeout()
        self.concurrency_limit = concurrency_limit or config.CRAWLER_HTTP_CONCURRENCY_LIMIT
        self._session: Optional[aiohttp.ClientSession] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._site_cookies: List[Tuple[Dict[str, str], URL]] = []
        self._applied_site_cookies = 0

    @classmethod
    def from_config(cls) -> "HttpContext":
        return cls(proxy=config.HTTPS_PROXY)

    # --- event loop ---

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever, name="provider-http", daemon=True
                )
                thread.start()
                self._loop = loop
                self._thread = thread
            return self._loop

    def run(self, coro):
        """Run a coroutine on the context's loop and block for its result."""
        future = asyncio.run_coroutine_threadsafe(coro, self._ensure_loop())
        return future.result()

    def close(self) -> None:
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None:
            return
        if self._session is not None and not self._session.closed:
            asyncio.run_coroutine_threadsafe(self._session.close(), loop).result()
        self._session = None
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout=5)
        loop.close()

    # --- session ---

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=self.concurrency_limit, ttl_dns_cache=300)
            self._session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=self.timeout,
                connector=connector,
                cookie_jar=aiohttp.CookieJar(unsafe=True),
            )
            self._applied_site_cookies = 0
        for cookies, url in self._site_cookies[self._applied_site_cookies:]:
            self._session.cookie_jar.update_cookies(cookies, response_url=url)
        self._applied_site_cookies = len(self._site_cookies)
        return self._session

    def register_site_cookies(self, cookies: Mapping[str, str], url: str) -> None:
        """Send these cookies to the site from every session, including ones reopened after close()."""
        self._site_cookies.append((dict(cookies), URL(url)))

    async def cookie_names(self, url: str):
        session = await self._ensure_session()
        return sorted(session.cookie_jar.filter_cookies(URL(url)).keys())

    # --- requests ---

    async def _fetch_text(self, url, params=None, headers=None, accept=ACCEPT_HTML) -> str:
        session = await self._ensure_session()
        request_headers = {"Accept": accept, **(headers or {})}
        try:
            async with session.get(
                url, params=params, headers=request_headers, proxy=self.proxy
            ) as response:
                status = response.status
                text = await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            LOGGER.warning("request failed url=%s error=%r", url, exc)
            raise ProviderFetchError(f"request to {url} failed: {exc!r}") from exc

        if status >= 400:
            raise ProviderFetchError(f"http_{status} from {url}", status=status)
        return text

    async def get_text(self, url, params=None, headers=None) -> str:
        return await self._fetch_text(url, params=params, headers=headers, accept=ACCEPT_HTML)

    async def get_document(self, url, params=None, headers=None) -> BeautifulSoup:
        text = await self.get_text(url, params=params, headers=headers)
        return BeautifulSoup(text, "html.parser")

    async def get_json(self, url, params=None, headers=None) -> Any:
        text = await self._fetch_text(url, params=params, headers=headers, accept=ACCEPT_JSON)
        return decode_json_leniently(text, url)
