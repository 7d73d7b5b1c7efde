"""
Document fetching over HTTP with aiohttp.

One request per call, a fixed browser-like header set, no retries.
Any non-2xx status or transport failure (timeouts included) is raised
as NetworkError; retry policy belongs to the caller.

Example:
    >>> async with DocumentFetcher() as fetcher:
    ...     html = await fetcher.fetch("https://www.machines4u.com.au/search/...")
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp

from machscrape.utils import ScraperConfig, get_logger
from machscrape.utils.exceptions import NetworkError

logger = get_logger(__name__)


class DocumentSource(ABC):
    """Abstract source of raw document text."""

    @abstractmethod
    async def fetch(self, url: str) -> str:
        """
        Return the document text at url.

        Raises:
            NetworkError: On non-success status or transport failure.
        """


class DocumentFetcher(DocumentSource):
    """
    aiohttp-backed document source.

    Attributes:
        config: Scraper configuration (headers, timeout).
        requests_made: Number of requests issued by this fetcher.
    """

    def __init__(self, config: Optional[ScraperConfig] = None):
        self.config = config or ScraperConfig()
        self.requests_made = 0
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def headers(self) -> dict[str, str]:
        """Browser identity sent with every request."""
        headers = dict(self.config.extra_headers)
        headers["User-Agent"] = self.config.user_agent
        return headers

    async def __aenter__(self) -> "DocumentFetcher":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the HTTP session."""
        if self._session is not None and not self._session.closed:
            return
        self._session = aiohttp.ClientSession(
            headers=self.headers,
            timeout=aiohttp.ClientTimeout(total=self.config.timeout),
        )
        logger.debug(f"HTTP session opened (user_agent={self.config.user_agent[:50]}...)")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None
            logger.debug(f"HTTP session closed after {self.requests_made} requests")

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            raise RuntimeError(
                "No active session. Use 'async with DocumentFetcher()' "
                "or call open() first."
            )
        return self._session

    async def fetch(self, url: str) -> str:
        """
        Fetch a document.

        Args:
            url: Absolute URL.

        Returns:
            Decoded document text.

        Raises:
            NetworkError: On non-2xx status, transport failure or timeout.
        """
        session = self._ensure_session()
        self.requests_made += 1
        logger.debug(f"GET {url}")

        try:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise NetworkError(
                        f"HTTP error! status: {response.status}",
                        url=url,
                        status_code=response.status,
                    )
                return await response.text(errors='replace')
        except asyncio.TimeoutError as e:
            raise NetworkError(
                f"Request timed out after {self.config.timeout}s",
                url=url,
                reason="timeout",
            ) from e
        except aiohttp.ClientError as e:
            raise NetworkError(
                f"Request failed: {e}",
                url=url,
                reason=type(e).__name__,
            ) from e
