# site_ingest/crawler/models.py
"""
Data models shared by the sitemap resolver, the extractor and the scheduler.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True, slots=True)
class SitemapEntry:
    """One page URL from a ``<urlset>``; ``last_modified`` is timezone-aware."""

    url: str
    last_modified: Optional[datetime] = None


@dataclass(slots=True)
class PageData:
    """Content extracted from one rendered page."""

    url: str
    text_content: str
    title: Optional[str] = None
    og_image: Optional[str] = None
    description: Optional[str] = None


@dataclass(slots=True)
class ScrapeResult:
    """Outcome for one input URL, successful or not."""

    url: str
    success: bool
    data: Optional[PageData] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    attempts: int = 0


@dataclass(frozen=True, slots=True)
class ScrapeProgress:
    """Progress event emitted once per completed URL."""

    current: int
    total: int
    result: ScrapeResult
