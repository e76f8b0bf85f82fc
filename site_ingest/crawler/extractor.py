# site_ingest/crawler/extractor.py
"""
PageExtractor: render one URL in the shared browser and extract its content.
"""
from __future__ import annotations

from typing import Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from site_ingest.config import IngestConfig
from site_ingest.crawler.browser import BrowserPool
from site_ingest.crawler.models import PageData
from site_ingest.errors import PageFetchError, PageFetchTimeout
from site_ingest.logger import logger
from site_ingest.parser.html_parser import parse_html

__all__ = ("Extractor", "PageExtractor")


class Extractor(Protocol):
    """Anything the scheduler can drive: one URL in, PageData out."""

    async def extract(self, url: str) -> PageData: ...


class PageExtractor:
    """Navigates a fresh tab to a URL and parses the rendered DOM.

    Raises PageFetchTimeout when navigation exceeds ``navigation_timeout`` and
    PageFetchError for any other navigation failure or an HTTP status >= 400.
    Never retries; retrying is the scheduler's job.
    """

    def __init__(
        self,
        pool: BrowserPool,
        *,
        navigation_timeout: float = 60.0,
        settle_timeout: float = 10.0,
    ) -> None:
        self.pool = pool
        self.navigation_timeout = navigation_timeout
        self.settle_timeout = settle_timeout

    @classmethod
    def from_config(cls, pool: BrowserPool, config: IngestConfig) -> PageExtractor:
        return cls(
            pool,
            navigation_timeout=config.navigation_timeout,
            settle_timeout=config.settle_timeout,
        )

    async def extract(self, url: str) -> PageData:
        try:
            async with self.pool.page() as page:
                try:
                    response = await page.goto(
                        url,
                        wait_until="domcontentloaded",
                        timeout=self.navigation_timeout * 1000,
                    )
                except PlaywrightTimeoutError as exc:
                    raise PageFetchTimeout(url, self.navigation_timeout) from exc

                if response is not None and response.status >= 400:
                    raise PageFetchError(url, f"HTTP {response.status}", status=response.status)

                if self.settle_timeout > 0:
                    try:
                        await page.wait_for_load_state("networkidle", timeout=self.settle_timeout * 1000)
                    except PlaywrightTimeoutError:
                        logger.debug("Network still busy on %s, extracting anyway", url)

                html = await page.content()
                final_url = page.url
        except PlaywrightError as exc:
            raise PageFetchError(url, exc.message or str(exc)) from exc

        data = parse_html(html, url=url, base_url=final_url)
        logger.debug("Extracted %s: %d chars, title=%r", url, len(data.text_content), data.title)
        return data
