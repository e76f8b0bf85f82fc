# File: site_ingest/parser/robots_parser.py
"""site_ingest.parser.robots_parser: Разбор robots.txt и извлечение директив Sitemap."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple
from urllib.parse import urljoin


@dataclass
class RobotsRules:
    """Директивы robots.txt, которые нужны загрузчику."""

    sitemaps: List[str] = field(default_factory=list)


def parse_robots(text: str, base_url: str = "") -> RobotsRules:
    """Разбирает содержимое robots.txt.

    Args:
        text: содержимое robots.txt.
        base_url: URL robots.txt; относительные ссылки Sitemap разрешаются от него.

    Returns:
        RobotsRules со списком sitemap в порядке появления (без повторов).
    """
    rules = RobotsRules()
    for directive, value in _prepare_lines(text):
        _process_directive(directive, value, base_url, rules)
    return rules


def _process_directive(directive: str, value: str, base_url: str, rules: RobotsRules) -> None:
    """Обрабатывает одну директиву и обновляет rules."""
    if directive == "sitemap" and value:
        url = urljoin(base_url, value) if base_url else value
        if url not in rules.sitemaps:
            rules.sitemaps.append(url)


def _prepare_lines(text: str) -> List[Tuple[str, str]]:
    """Очищает текст от комментариев и разделяет на (директива, значение)."""
    lines: List[Tuple[str, str]] = []
    for raw in text.splitlines():
        line = raw.split("#", 1)[0].strip()
        if not line or ":" not in line:
            continue
        key, val = (part.strip() for part in line.split(":", 1))
        lines.append((key.lower(), val))
    return lines
