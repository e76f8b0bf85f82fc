# File: site_ingest/errors.py
"""Exceptions raised by the ingestion pipeline.

Only root-level sitemap failures (:class:`SitemapUnreachable`,
:class:`SitemapNotFound`, :class:`EmptySitemap`) escape a run; everything else
is recorded per page.
"""
from __future__ import annotations

from typing import Optional

__all__ = (
    "IngestError",
    "FetchError",
    "SitemapError",
    "SitemapUnreachable",
    "NestedSitemapUnreachable",
    "SitemapNotFound",
    "EmptySitemap",
    "PageFetchError",
    "PageFetchTimeout",
    "UploadError",
)

# 4xx statuses that are still worth another attempt.
_TRANSIENT_CLIENT_STATUS = frozenset({408, 425, 429})


class IngestError(Exception):
    """Base class for all SiteIngest errors."""


class FetchError(IngestError):
    """HTTP request for a sitemap / robots.txt failed."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None) -> None:
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"Failed to fetch '{url}': {reason}")


class SitemapError(IngestError):
    """A sitemap document could not be fetched or parsed."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to read sitemap at '{url}': {reason}")


class SitemapUnreachable(SitemapError):
    """The root sitemap is unusable; aborts the whole run."""


class NestedSitemapUnreachable(SitemapError):
    """A child of a sitemap index is unusable; skipped by the resolver."""


class SitemapNotFound(IngestError):
    """No sitemap could be located for a site."""

    def __init__(self, site_url: str) -> None:
        self.site_url = site_url
        super().__init__(f"No sitemap found for '{site_url}'")


class EmptySitemap(IngestError):
    """The sitemap tree resolved to zero page URLs."""

    def __init__(self, sitemap_url: str) -> None:
        self.sitemap_url = sitemap_url
        super().__init__(f"No URLs found in sitemap '{sitemap_url}'")


class PageFetchError(IngestError):
    """Navigation to a page failed."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None) -> None:
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"Failed to load '{url}': {reason}")

    @property
    def permanent(self) -> bool:
        """True for client errors that will not change on retry (404, 410, ...)."""
        if self.status is None:
            return False
        return 400 <= self.status < 500 and self.status not in _TRANSIENT_CLIENT_STATUS


class PageFetchTimeout(PageFetchError):
    """Navigation did not finish within the configured timeout."""

    def __init__(self, url: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(url, f"navigation timed out after {timeout:.1f} s")


class UploadError(IngestError):
    """The indexing store rejected a formatted document."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to index '{url}': {reason}")
