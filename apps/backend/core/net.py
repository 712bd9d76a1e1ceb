"""
HTTP client with sessions, retries, backoff and block detection.

Each session is an httpx AsyncClient with its own desktop header profile and,
when proxies are configured, its own proxy. Blocked sessions are retired and
replaced.
"""
import re
import time
import random
import itertools
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 45.0
MAX_RETRIES = 3

BLOCK_STATUSES = {403, 429}
BLOCK_RE = re.compile(r'forbidden|blocked|captcha', re.IGNORECASE)
TITLE_RE = re.compile(r'<title[^>]*>(.*?)</title>', re.IGNORECASE | re.DOTALL)

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14.4; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_4) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.4 Safari/605.1.15",
]

ACCEPT_LANGUAGES = [
    "en-US,en;q=0.9",
    "vi-VN,vi;q=0.9,en-US;q=0.8,en;q=0.7",
]


class FetchError(Exception):
    """A page could not be fetched."""

    def __init__(self, url: str, status: Optional[int] = None, session_id: Optional[str] = None,
                 message: Optional[str] = None, retryable: bool = False):
        self.url = url
        self.status = status
        self.session_id = session_id
        self.retryable = retryable
        super().__init__(message or f"Fetch failed for {url} (status={status})")


class BlockedError(FetchError):
    """The site answered with a block signal (403/429 or a block page)."""

    def __init__(self, url: str, status: Optional[int] = None, session_id: Optional[str] = None,
                 message: Optional[str] = None):
        super().__init__(url, status, session_id,
                         message or f"Blocked fetching {url} (status={status})",
                         retryable=True)


def is_block_signal(status: int, body: str) -> bool:
    """403/429, an error page mentioning a block, or a block page title."""
    if status in BLOCK_STATUSES:
        return True
    if status >= 400 and BLOCK_RE.search(body or ''):
        return True
    title = TITLE_RE.search(body or '')
    return bool(title and BLOCK_RE.search(title.group(1)))


def proxy_urls_from_config(proxy_configuration: Any) -> List[str]:
    """Proxy URLs from a proxy configuration: a string, {"url": ...} or {"proxyUrls": [...]}."""
    if not proxy_configuration:
        return []
    if isinstance(proxy_configuration, str):
        return [proxy_configuration]
    if isinstance(proxy_configuration, dict):
        urls = proxy_configuration.get('proxyUrls') or proxy_configuration.get('proxy_urls')
        if isinstance(urls, list):
            return [u for u in urls if isinstance(u, str) and u]
        if isinstance(proxy_configuration.get('url'), str):
            return [proxy_configuration['url']]
    return []


def random_header_profile() -> Dict[str, str]:
    return {
        "User-Agent": random.choice(USER_AGENTS),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": random.choice(ACCEPT_LANGUAGES),
        "Accept-Encoding": "gzip, deflate",
        "Connection": "keep-alive",
    }


class Session:
    """One identity: header profile, optional proxy, own connection pool."""

    def __init__(self, session_id: str, headers: Dict[str, str], proxy: Optional[str],
                 timeout: httpx.Timeout, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.id = session_id
        self.headers = headers
        self.proxy = proxy
        kwargs = {'timeout': timeout, 'follow_redirects': True}
        if transport is not None:
            kwargs['transport'] = transport
        elif proxy:
            kwargs['proxy'] = proxy
        self.client = httpx.AsyncClient(**kwargs)

    async def aclose(self):
        await self.client.aclose()


class SessionPool:
    """Up to ``max_sessions`` live sessions; proxies assigned round-robin."""

    def __init__(self, max_sessions: int = 10, proxy_urls: Optional[List[str]] = None,
                 timeout: float = DEFAULT_TIMEOUT, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.max_sessions = max(1, max_sessions)
        self.proxy_urls = proxy_urls or []
        self.timeout = httpx.Timeout(timeout)
        self.transport = transport
        self._sessions: Dict[str, Session] = {}
        self._counter = itertools.count(1)

    def __len__(self):
        return len(self._sessions)

    def get(self) -> Session:
        if len(self._sessions) < self.max_sessions:
            return self._create()
        return random.choice(list(self._sessions.values()))

    def _create(self) -> Session:
        number = next(self._counter)
        proxy = self.proxy_urls[(number - 1) % len(self.proxy_urls)] if self.proxy_urls else None
        session = Session(f"session_{number}", random_header_profile(), proxy, self.timeout, self.transport)
        self._sessions[session.id] = session
        return session

    async def retire(self, session_id: Optional[str]) -> bool:
        session = self._sessions.pop(session_id, None) if session_id else None
        if session is None:
            return False
        logger.info(f"[net] Retired {session_id}")
        await session.aclose()
        return True

    async def aclose(self):
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.aclose()


def _should_retry(exc: BaseException) -> bool:
    return isinstance(exc, FetchError) and exc.retryable


class HTTPClient:
    """HTTP client with session rotation, retries and block detection"""

    def __init__(self, max_sessions: int = 10, proxy_configuration: Any = None,
                 max_request_retries: int = MAX_RETRIES, timeout: float = DEFAULT_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None, wait=None):
        """
        Initialize client.

        Args:
            max_sessions: Size of the session pool
            proxy_configuration: Proxy URLs, see proxy_urls_from_config
            max_request_retries: Extra attempts after the first one
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
            wait: tenacity wait strategy between attempts
        """
        self.pool = SessionPool(max_sessions, proxy_urls_from_config(proxy_configuration), timeout, transport)
        self.max_request_retries = max(0, max_request_retries)
        self.wait = wait or wait_exponential(multiplier=1, min=1, max=10)

    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> Tuple[str, str]:
        """
        GET a page.

        Transport errors, 5xx responses and block signals are retried with
        exponential backoff. Blocked sessions are retired before the next
        attempt.

        Returns:
            (decoded body, id of the session that fetched it)

        Raises:
            BlockedError: still blocked after the retry budget
            FetchError: any other failure after the retry budget, or a 4xx
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_request_retries + 1),
            wait=self.wait,
            retry=retry_if_exception(_should_retry),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                result = await self._fetch_once(url, headers)
        return result

    async def fetch_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        body, _ = await self.fetch(url, headers)
        return body

    async def _fetch_once(self, url: str, headers: Optional[Dict[str, str]]) -> Tuple[str, str]:
        session = self.pool.get()
        request_headers = dict(session.headers)
        if headers:
            request_headers.update(headers)

        start_time = time.time()
        try:
            response = await session.client.get(url, headers=request_headers)
        except httpx.TransportError as e:
            logger.warning(f"[net] Transport error fetching {url} via {session.id}: {e}")
            raise FetchError(url, None, session.id, message=f"Transport error fetching {url}: {e}",
                             retryable=True) from e

        elapsed_ms = int((time.time() - start_time) * 1000)
        status = response.status_code
        body = response.text
        logger.info(f"[net] GET {status} {url} ({len(response.content)} bytes, {elapsed_ms}ms)")

        if is_block_signal(status, body):
            logger.warning(f"[net] Block signal from {url} (status={status}) on {session.id}")
            await self.pool.retire(session.id)
            raise BlockedError(url, status, session.id)
        if status >= 500:
            raise FetchError(url, status, session.id, retryable=True)
        if status >= 400:
            raise FetchError(url, status, session.id)
        return body, session.id

    async def retire_session(self, session_id: Optional[str]) -> bool:
        return await self.pool.retire(session_id)

    async def aclose(self):
        await self.pool.aclose()
