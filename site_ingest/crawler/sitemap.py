# site_ingest/crawler/sitemap.py
"""
Recursive sitemap resolution: sitemap index → nested sitemaps → page URLs.
"""
from __future__ import annotations

from typing import Dict, List, Set

from site_ingest.crawler.fetcher import Fetcher
from site_ingest.crawler.models import SitemapEntry
from site_ingest.errors import FetchError, NestedSitemapUnreachable, SitemapUnreachable
from site_ingest.logger import logger
from site_ingest.parser.sitemap_parser import SitemapDocument, URLSET, parse_sitemap
from site_ingest.utils import is_http_url

__all__ = ("SitemapParser", "parse_sitemap_recursive")


class SitemapParser:
    """Flattens a sitemap tree into unique :class:`SitemapEntry` objects.

    Every sitemap URL is fetched at most once per resolution; index entries
    pointing back at an already visited sitemap are ignored, which makes
    cyclic indexes terminate.
    """

    def __init__(self, fetcher: Fetcher, max_depth: int = 3) -> None:
        self.fetcher = fetcher
        self.max_depth = max_depth

    async def parse_sitemap_recursive(self, sitemap_url: str) -> List[SitemapEntry]:
        """
        Resolve *sitemap_url* depth-first.

        Raises SitemapUnreachable if the root document cannot be fetched or
        parsed. Broken nested sitemaps are logged and skipped.
        """
        visited: Set[str] = set()
        entries = await self._resolve(sitemap_url, visited, depth=0)

        unique: Dict[str, SitemapEntry] = {}
        for entry in entries:
            unique.setdefault(entry.url, entry)
        logger.info(
            "Sitemap %s: %d URLs from %d sitemap(s), %d duplicates dropped",
            sitemap_url, len(unique), len(visited), len(entries) - len(unique),
        )
        return list(unique.values())

    async def _load(self, url: str) -> SitemapDocument:
        content = await self.fetcher.fetch(url)
        return parse_sitemap(content)

    async def _resolve(self, url: str, visited: Set[str], depth: int) -> List[SitemapEntry]:
        visited.add(url)
        try:
            document = await self._load(url)
        except (FetchError, ValueError) as exc:
            error_cls = SitemapUnreachable if depth == 0 else NestedSitemapUnreachable
            raise error_cls(url, str(exc)) from exc

        if document.kind == URLSET:
            entries = [e for e in document.entries if is_http_url(e.url)]
            logger.debug("Sitemap %s (depth %d): %d URLs", url, depth, len(entries))
            return entries

        logger.debug("Sitemap index %s (depth %d): %d children", url, depth, len(document.sitemaps))
        collected: List[SitemapEntry] = []
        for child in document.sitemaps:
            if child in visited:
                logger.debug("Sitemap %s already visited, skipping", child)
                continue
            if not is_http_url(child):
                logger.warning("Ignoring non-HTTP sitemap reference %r in %s", child, url)
                continue
            if depth + 1 > self.max_depth:
                logger.warning("Sitemap %s exceeds max depth %d, skipping", child, self.max_depth)
                continue
            try:
                collected.extend(await self._resolve(child, visited, depth + 1))
            except NestedSitemapUnreachable as exc:
                logger.warning("Skipping nested sitemap %s: %s", exc.url, exc.reason)
        return collected


async def parse_sitemap_recursive(
    sitemap_url: str, fetcher: Fetcher, max_depth: int = 3
) -> List[SitemapEntry]:
    """Functional shortcut for :meth:`SitemapParser.parse_sitemap_recursive`."""
    return await SitemapParser(fetcher, max_depth=max_depth).parse_sitemap_recursive(sitemap_url)
