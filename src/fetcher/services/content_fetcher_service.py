# src/fetcher/services/content_fetcher_service.py
import asyncio
import logging
import time
from typing import Dict, Optional, Union

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "structure-auditor/0.1"
DEFAULT_HEADERS = {"Structure-Analysis": "1"}


class ContentFetchError(Exception):
    """Raised for any failure to retrieve markup: network, timeout, status or content type."""

    def __init__(self, reference: str, reason: str):
        super().__init__(f"Failed to fetch content from {reference}: {reason}")
        self.reference = reference
        self.reason = reason


class ContentFetcherService:
    """
    Fetches the markup of previewed documents over HTTP.

    Markup is cached per reference. Concurrent callers for the same reference
    share one in-flight request, failed fetches are evicted so the next call
    retries, and clear_cache() drops a reference whose content changed.
    """

    def __init__(self, config: Optional[Dict] = None):
        self.config = config or {}

        self.timeout = float(self.config.get('time_out', 30))
        self.read_timeout = float(self.config.get('client_read_timeout', 15.0))
        self.user_agent = self.config.get('user_agent', DEFAULT_USER_AGENT)
        self.extra_headers = dict(self.config.get('headers', DEFAULT_HEADERS))

        self.session: Optional[aiohttp.ClientSession] = None
        self._cache: Dict[str, Union[str, "asyncio.Future[str]"]] = {}

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def initialize(self):
        if not self.session or self.session.closed:
            timeout_obj = aiohttp.ClientTimeout(total=self.timeout)
            default_headers = {
                'Accept': 'text/html,application/xhtml+xml',
                'Accept-Encoding': 'gzip, deflate',
                'User-Agent': self.user_agent,
                **self.extra_headers,
            }
            self.session = aiohttp.ClientSession(
                timeout=timeout_obj, headers=default_headers
            )
            logger.debug("ContentFetcherService: Session initialized.")

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("ContentFetcherService: Session closed.")

    def clear_cache(self, reference: str) -> None:
        """Drops the cached markup for a reference, e.g. after an edit was saved."""
        self._cache.pop(reference, None)

    async def fetch_content(self, reference: str) -> str:
        """
        Returns the markup for a reference, from cache when available.

        Raises:
            ContentFetchError: On any failure to retrieve usable markup.
        """
        if not reference or not isinstance(reference, str):
            raise ContentFetchError(str(reference), "invalid reference")

        cached = self._cache.get(reference)
        if isinstance(cached, str):
            return cached
        if cached is not None:
            return await asyncio.shield(cached)

        pending = asyncio.ensure_future(self._fetch(reference))
        self._cache[reference] = pending
        try:
            content = await asyncio.shield(pending)
        except ContentFetchError:
            # Remove failed fetch from cache to allow retry
            if self._cache.get(reference) is pending:
                del self._cache[reference]
            raise

        # Only cache when nobody cleared the reference in the meantime
        if self._cache.get(reference) is pending:
            self._cache[reference] = content
        return content

    async def _fetch(self, url: str) -> str:
        if not self.session or self.session.closed:
            await self.initialize()

        start_time = time.perf_counter()
        try:
            async with self.session.get(url) as response:
                status = response.status
                if status != 200:
                    raise ContentFetchError(url, f"HTTP status {status}")

                content_type = response.headers.get("Content-Type", "").lower()
                if "html" not in content_type:
                    raise ContentFetchError(url, f"Unsupported Content-Type: {content_type or 'none'}")

                content = await self._read_content(response)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ContentFetchError(url, str(e) or type(e).__name__) from e

        if not content:
            raise ContentFetchError(url, "empty response")

        logger.debug(
            "Fetched %s (%d chars) in %.2fms",
            url, len(content), (time.perf_counter() - start_time) * 1000
        )
        return content

    async def _read_content(self, response: aiohttp.ClientResponse) -> str:
        """Helper to read response body text safely."""
        try:
            return await asyncio.wait_for(response.text(), timeout=self.read_timeout)
        except UnicodeDecodeError:
            # Fallback decoding
            content_bytes = await response.read()
            return content_bytes.decode('utf-8', errors='replace')
