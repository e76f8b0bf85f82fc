# File: site_ingest/utils.py
"""site_ingest.utils: Утилитарные функции для обработки URL и списков URL."""

from __future__ import annotations

from typing import Collection, List, Sequence
from urllib.parse import urljoin, urlparse, urlunparse

from site_ingest.logger import logger

__all__: Sequence[str] = (
    "normalize_site_url",
    "site_root",
    "join_site_path",
    "is_http_url",
    "remove_duplicates",
)


def normalize_site_url(url: str) -> str:
    """Добавляет схему https://, если её нет, и убирает завершающий слеш."""
    url = url.strip()
    if not urlparse(url).scheme:
        url = "https://" + url
    normalized = url.rstrip("/")
    logger.debug("Normalized site URL: %s -> %s", url, normalized)
    return normalized


def site_root(url: str) -> str:
    """Возвращает scheme://netloc без пути, параметров и фрагментов."""
    parsed = urlparse(normalize_site_url(url))
    return urlunparse((parsed.scheme, parsed.netloc, "", "", "", ""))


def join_site_path(site_url: str, path: str) -> str:
    """Строит абсолютный URL пути относительно корня сайта (``/robots.txt`` и т.п.)."""
    return urljoin(site_root(site_url) + "/", path.lstrip("/"))


def is_http_url(url: str) -> bool:
    """Проверяет, что URL абсолютный и использует http(s)."""
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def remove_duplicates(urls: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка URL, сохраняя порядок."""
    unique = list(dict.fromkeys(urls))
    removed = len(urls) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate URLs", removed)
    return unique
