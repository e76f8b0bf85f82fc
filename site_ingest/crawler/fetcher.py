# site_ingest/crawler/fetcher.py
"""
Fetcher module: plain HTTP GET for robots.txt and sitemap documents,
with timeout, User-Agent, and retry/backoff on 5xx/429.
"""
from __future__ import annotations

import asyncio
from typing import Optional, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_ingest.config import IngestConfig
from site_ingest.errors import FetchError
from site_ingest.logger import logger

RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)

_ACCEPT = "application/xml, text/xml, text/plain;q=0.9, */*;q=0.8"


class Fetcher:
    """Handles HTTP fetching with retries/backoff and timeout.

    Usable as an async context manager, in which case it owns its
    :class:`aiohttp.ClientSession`; a caller-provided session is never closed.
    """

    def __init__(
        self,
        config: IngestConfig,
        session: Optional[ClientSession] = None,
        retry_status: Sequence[int] = RETRY_STATUS,
    ) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None
        self._retry_status = retry_status

    async def __aenter__(self) -> Fetcher:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.http_timeout),
                headers={"User-Agent": self.config.user_agent, "Accept": _ACCEPT},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session is not None and not self.session.closed:
            await self.session.close()
            self.session = None

    async def fetch(self, url: str) -> bytes:
        """
        GET *url* and return the body.

        Raises FetchError on a non-2xx status, a network error, or a timeout,
        after ``config.http_retries`` extra attempts for retryable failures.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized")

        attempts = 0
        while True:
            try:
                async with self.session.get(url, allow_redirects=True) as resp:
                    if resp.status in self._retry_status:
                        raise ClientError(f"retryable status {resp.status}")
                    if resp.status >= 400:
                        raise FetchError(url, f"HTTP {resp.status}", status=resp.status)
                    return await resp.read()
            except (ClientError, asyncio.TimeoutError) as exc:
                attempts += 1
                if attempts > self.config.http_retries:
                    raise FetchError(url, str(exc) or type(exc).__name__) from exc
                backoff = min(2**attempts, 60)
                logger.debug("Retry %d/%d for %s after %d s", attempts, self.config.http_retries, url, backoff)
                await asyncio.sleep(backoff)
