# site_ingest/crawler/scheduler.py
"""
CrawlScheduler: bounded-concurrency page extraction with retry and pacing.
"""
from __future__ import annotations

import asyncio
import inspect
import time
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Sequence, Union

from site_ingest.config import IngestConfig
from site_ingest.crawler.extractor import Extractor
from site_ingest.crawler.models import ScrapeProgress, ScrapeResult
from site_ingest.errors import PageFetchError
from site_ingest.logger import logger

__all__ = ("CrawlScheduler", "ProgressCallback", "scrape_multiple_pages_with_retry")

ProgressCallback = Callable[[int, int, ScrapeResult], Union[None, Awaitable[None]]]

_STREAM_DONE = object()


class CrawlScheduler:
    """Runs an extractor over a URL list with a fixed pool of workers.

    ``max_concurrent`` workers pull indices from one FIFO queue. Each URL gets
    up to ``max_retries`` attempts with ``retry_base_delay * 2**(attempt - 1)``
    seconds between them; permanent failures (see
    :attr:`PageFetchError.permanent`) are not retried. After every URL the
    worker reports progress and sleeps ``delay_ms`` before taking the next one.
    """

    def __init__(
        self,
        extractor: Extractor,
        *,
        max_concurrent: int = 3,
        delay_ms: int = 1000,
        max_retries: int = 3,
        retry_base_delay: float = 2.0,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.extractor = extractor
        self.max_concurrent = max_concurrent
        self.delay_ms = delay_ms
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    @classmethod
    def from_config(cls, extractor: Extractor, config: IngestConfig) -> CrawlScheduler:
        return cls(
            extractor,
            max_concurrent=config.max_concurrent,
            delay_ms=config.delay_ms,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay,
        )

    async def run(
        self, urls: Sequence[str], on_progress: Optional[ProgressCallback] = None
    ) -> List[ScrapeResult]:
        """Scrape *urls*; the result list is index-aligned with *urls*."""
        total = len(urls)
        results: List[Optional[ScrapeResult]] = [None] * total
        if not total:
            return []

        queue: asyncio.Queue[int] = asyncio.Queue()
        for index in range(total):
            queue.put_nowait(index)

        completed = 0

        async def worker(worker_id: int) -> None:
            nonlocal completed
            while True:
                try:
                    index = queue.get_nowait()
                except asyncio.QueueEmpty:
                    break
                result = await self._scrape_with_retry(urls[index])
                results[index] = result
                completed += 1
                logger.info(
                    "[%d/%d] %s %s", completed, total, "OK  " if result.success else "FAIL", result.url
                )
                await self._notify(on_progress, completed, total, result)
                if self.delay_ms and not queue.empty():
                    await asyncio.sleep(self.delay_ms / 1000)
            logger.debug("Worker %d finished", worker_id)

        start = time.monotonic()
        await asyncio.gather(*(worker(i) for i in range(self.max_concurrent)))
        duration = time.monotonic() - start

        ok = sum(1 for r in results if r is not None and r.success)
        logger.info("Scraped %d/%d pages in %.2f s", ok, total, duration)
        return [r for r in results if r is not None]

    async def stream(self, urls: Sequence[str]) -> AsyncIterator[ScrapeProgress]:
        """Yield a :class:`ScrapeProgress` per URL in completion order.

        The channel holds at most ``max_concurrent`` events, so workers wait
        for a slow consumer. Leaving the loop early cancels the remaining work.
        """
        channel: asyncio.Queue = asyncio.Queue(maxsize=self.max_concurrent)

        async def publish(current: int, total: int, result: ScrapeResult) -> None:
            await channel.put(ScrapeProgress(current=current, total=total, result=result))

        async def produce() -> None:
            try:
                await self.run(urls, on_progress=publish)
            except Exception:
                await channel.put(_STREAM_DONE)
                raise
            await channel.put(_STREAM_DONE)

        producer = asyncio.create_task(produce())
        try:
            while True:
                item = await channel.get()
                if item is _STREAM_DONE:
                    break
                yield item
            await producer
        finally:
            if not producer.done():
                producer.cancel()
                await asyncio.gather(producer, return_exceptions=True)

    async def _scrape_with_retry(self, url: str) -> ScrapeResult:
        last_exc: Optional[BaseException] = None
        attempt = 0
        while attempt < self.max_retries:
            attempt += 1
            try:
                data = await self.extractor.extract(url)
            except asyncio.CancelledError:
                raise
            except PageFetchError as exc:
                last_exc = exc
                if exc.permanent:
                    logger.warning("Not retrying %s: %s", url, exc.reason)
                    break
            except Exception as exc:
                last_exc = exc
            else:
                return ScrapeResult(url=url, success=True, data=data, attempts=attempt)

            if attempt < self.max_retries:
                backoff = self.retry_base_delay * 2 ** (attempt - 1)
                logger.debug(
                    "Attempt %d/%d for %s failed (%s), retrying in %.2f s",
                    attempt, self.max_retries, url, last_exc, backoff,
                )
                await asyncio.sleep(backoff)

        logger.warning("Giving up on %s after %d attempt(s): %s", url, attempt, last_exc)
        return ScrapeResult(
            url=url,
            success=False,
            error=str(last_exc) or type(last_exc).__name__,
            error_type=type(last_exc).__name__,
            attempts=attempt,
        )

    @staticmethod
    async def _notify(
        callback: Optional[ProgressCallback], current: int, total: int, result: ScrapeResult
    ) -> None:
        if callback is None:
            return
        try:
            outcome = callback(current, total, result)
            if inspect.isawaitable(outcome):
                await outcome
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Progress callback failed for %s", result.url)


async def scrape_multiple_pages_with_retry(
    urls: Sequence[str],
    extractor: Extractor,
    max_concurrent: int = 3,
    delay_ms: int = 1000,
    max_retries: int = 3,
    on_progress: Optional[ProgressCallback] = None,
    retry_base_delay: float = 2.0,
) -> List[ScrapeResult]:
    """Functional form of :meth:`CrawlScheduler.run` with the usual defaults."""
    scheduler = CrawlScheduler(
        extractor,
        max_concurrent=max_concurrent,
        delay_ms=delay_ms,
        max_retries=max_retries,
        retry_base_delay=retry_base_delay,
    )
    return await scheduler.run(urls, on_progress=on_progress)
