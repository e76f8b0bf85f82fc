# File: site_ingest/parser/sitemap_parser.py
"""site_ingest.parser.sitemap_parser: Разбор одного XML-документа sitemap.

Сетевых запросов модуль не делает: рекурсивный обход sitemap index
выполняет :mod:`site_ingest.crawler.sitemap`.
"""

from __future__ import annotations

import gzip
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional, Union

from lxml import etree

from site_ingest.crawler.models import SitemapEntry

__all__ = ("SitemapDocument", "parse_sitemap", "parse_lastmod", "URLSET", "SITEMAP_INDEX")

URLSET = "urlset"
SITEMAP_INDEX = "sitemapindex"

_GZIP_MAGIC = b"\x1f\x8b"


@dataclass(slots=True)
class SitemapDocument:
    """Результат разбора: тип корня и его содержимое."""

    kind: str
    entries: List[SitemapEntry] = field(default_factory=list)
    sitemaps: List[str] = field(default_factory=list)


def _maybe_gunzip(data: bytes) -> bytes:
    if data[:2] == _GZIP_MAGIC:
        try:
            return gzip.decompress(data)
        except (OSError, EOFError) as exc:
            raise ValueError(f"corrupt gzip payload: {exc}") from exc
    return data


def _parse_coarse_w3c(text: str) -> Optional[datetime]:
    """W3C Datetime с точностью до месяца (``YYYY-MM``) или года (``YYYY``)."""
    for fmt in ("%Y-%m", "%Y"):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_lastmod(value: Optional[str]) -> Optional[datetime]:
    """Разбирает W3C datetime (``lastmod``) или RFC 2822 (``pubDate``).

    Дата без часового пояса считается UTC. Нераспознанное значение → ``None``.
    """
    if not value or not value.strip():
        return None
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError):
            parsed = _parse_coarse_w3c(text)
            if parsed is None:
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _child_text(element: etree._Element, path: str) -> Optional[str]:
    node = element.find(path)
    if node is None or node.text is None:
        return None
    return node.text.strip() or None


def parse_sitemap(content: Union[str, bytes]) -> SitemapDocument:
    """Разбирает sitemap (``<urlset>`` или ``<sitemapindex>``).

    Args:
        content: XML как строка или байты (gzip распаковывается автоматически).

    Returns:
        SitemapDocument: для ``urlset`` заполнен ``entries``,
        для ``sitemapindex`` заполнен ``sitemaps``.

    Raises:
        ValueError: документ не XML или корень не является sitemap.

    Пример:
    ```python
    doc = parse_sitemap(open("sitemap.xml", "rb").read())
    print(doc.kind, [e.url for e in doc.entries])
    ```
    """
    data = content.encode("utf-8") if isinstance(content, str) else _maybe_gunzip(content)
    if not data.strip():
        raise ValueError("empty document")

    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as exc:
        raise ValueError(f"invalid XML: {exc}") from exc
    if root is None:
        raise ValueError("invalid XML: no root element")

    kind = etree.QName(root).localname
    if kind == SITEMAP_INDEX:
        sitemaps = [loc for loc in (_child_text(sm, "{*}loc") for sm in root.iterfind("{*}sitemap")) if loc]
        return SitemapDocument(kind=kind, sitemaps=sitemaps)

    if kind == URLSET:
        entries: List[SitemapEntry] = []
        for url_el in root.iterfind("{*}url"):
            loc = _child_text(url_el, "{*}loc")
            if not loc:
                continue
            raw_date = (
                _child_text(url_el, "{*}lastmod")
                or _child_text(url_el, "{*}pubDate")
                or _child_text(url_el, ".//{*}publication_date")
            )
            entries.append(SitemapEntry(url=loc, last_modified=parse_lastmod(raw_date)))
        return SitemapDocument(kind=kind, entries=entries)

    raise ValueError(f"unrecognised root element <{kind}>")
