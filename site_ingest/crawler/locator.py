# site_ingest/crawler/locator.py
"""
Sitemap discovery for a site root URL.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from site_ingest.crawler.fetcher import Fetcher
from site_ingest.errors import FetchError
from site_ingest.logger import logger
from site_ingest.parser.robots_parser import parse_robots
from site_ingest.parser.sitemap_parser import parse_sitemap
from site_ingest.utils import join_site_path, normalize_site_url, remove_duplicates

__all__ = ("SITEMAP_PATHS", "SitemapLocator", "find_sitemap_url")

# Tried after the robots.txt Sitemap directives, in this order.
SITEMAP_PATHS: Sequence[str] = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap1.xml",
    "/post-sitemap.xml",
    "/page-sitemap.xml",
)


class SitemapLocator:
    """Finds the first reachable, parseable sitemap of a site."""

    def __init__(self, fetcher: Fetcher, paths: Sequence[str] = SITEMAP_PATHS) -> None:
        self.fetcher = fetcher
        self.paths = paths

    async def find_sitemap_url(self, site_url: str) -> Optional[str]:
        """Return the sitemap URL for *site_url*, or None when nothing qualifies."""
        site = normalize_site_url(site_url)
        candidates = await self._robots_sitemaps(site)
        candidates.extend(join_site_path(site, path) for path in self.paths)

        for candidate in remove_duplicates(candidates):
            if await self._is_sitemap(candidate):
                logger.info("Sitemap for %s found at %s", site, candidate)
                return candidate

        logger.info("No sitemap found for %s", site)
        return None

    async def _robots_sitemaps(self, site: str) -> List[str]:
        robots_url = join_site_path(site, "/robots.txt")
        try:
            body = await self.fetcher.fetch(robots_url)
        except FetchError as exc:
            logger.debug("robots.txt unavailable for %s: %s", site, exc)
            return []
        sitemaps = parse_robots(body.decode("utf-8", errors="replace"), base_url=robots_url).sitemaps
        logger.debug("robots.txt of %s lists %d sitemap(s)", site, len(sitemaps))
        return sitemaps

    async def _is_sitemap(self, url: str) -> bool:
        try:
            parse_sitemap(await self.fetcher.fetch(url))
        except (FetchError, ValueError) as exc:
            logger.debug("Sitemap candidate %s rejected: %s", url, exc)
            return False
        return True


async def find_sitemap_url(site_url: str, fetcher: Fetcher) -> Optional[str]:
    """Functional shortcut for :meth:`SitemapLocator.find_sitemap_url`."""
    return await SitemapLocator(fetcher).find_sitemap_url(site_url)
