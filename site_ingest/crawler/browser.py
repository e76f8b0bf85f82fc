# site_ingest/crawler/browser.py
"""
Shared headless browser with per-extraction page acquisition.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence, Tuple

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from site_ingest.config import DEFAULT_USER_AGENT, IngestConfig
from site_ingest.logger import logger

__all__ = ("BrowserPool", "LAUNCH_ARGS")

LAUNCH_ARGS: Sequence[str] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--disable-gpu",
    "--disable-background-networking",
)


class BrowserPool:
    """One Chromium process shared by all workers.

    The browser is launched lazily on first use and relaunched if it
    disconnects. Workers never share a tab: :meth:`page` opens a fresh
    browser context per extraction and closes it on every exit path.
    """

    def __init__(
        self,
        *,
        headless: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        viewport: Tuple[int, int] = (1920, 1080),
        launch_args: Sequence[str] = LAUNCH_ARGS,
    ) -> None:
        self.headless = headless
        self.user_agent = user_agent
        self.viewport = viewport
        self.launch_args = launch_args
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self._open_pages = 0

    @classmethod
    def from_config(cls, config: IngestConfig) -> BrowserPool:
        return cls(headless=config.headless, user_agent=config.user_agent)

    @property
    def open_pages(self) -> int:
        """Number of pages currently checked out."""
        return self._open_pages

    async def __aenter__(self) -> BrowserPool:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> Browser:
        """Return the running browser, launching it if necessary."""
        async with self._lock:
            if self._browser is None or not self._browser.is_connected():
                if self._playwright is None:
                    self._playwright = await async_playwright().start()
                logger.info("Launching Chromium (headless=%s)", self.headless)
                self._browser = await self._playwright.chromium.launch(
                    headless=self.headless,
                    args=list(self.launch_args),
                )
            return self._browser

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Check out an isolated page; it is closed when the block exits."""
        browser = await self.start()
        width, height = self.viewport
        context = await browser.new_context(
            user_agent=self.user_agent,
            viewport={"width": width, "height": height},
        )
        self._open_pages += 1
        try:
            yield await context.new_page()
        finally:
            self._open_pages -= 1
            try:
                await context.close()
            except PlaywrightError as exc:
                logger.debug("Closing browser context failed: %s", exc)

    async def close(self) -> None:
        """Shut the browser and the Playwright driver down."""
        async with self._lock:
            if self._browser is not None:
                try:
                    await self._browser.close()
                except PlaywrightError as exc:
                    logger.debug("Closing browser failed: %s", exc)
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
