# File: site_ingest/formatter.py
"""site_ingest.formatter: Преобразование извлечённой страницы в текстовый документ для индекса."""

from __future__ import annotations

import re
from typing import List

from site_ingest.crawler.models import PageData

__all__ = ["format_document", "normalize_text", "document_name"]

_INLINE_WS_RE = re.compile(r"\s+")
_UNSAFE_NAME_RE = re.compile(r'[\\/:*?"<>|\x00-\x1f]+')
_MAX_NAME_LEN = 120


def normalize_text(text: str) -> str:
    """Схлопывает пробелы внутри строк и серии пустых строк в одну пустую строку."""
    lines: List[str] = []
    for raw in text.splitlines():
        line = _INLINE_WS_RE.sub(" ", raw).strip()
        if line or (lines and lines[-1]):
            lines.append(line)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def format_document(page: PageData) -> str:
    """Собирает документ: заголовок (URL, Title, Description), пустая строка, текст.

    Чистая функция: одинаковый вход всегда даёт побайтно одинаковый результат.
    """
    header = [f"URL: {page.url.strip()}"]
    if page.title and page.title.strip():
        header.append(f"Title: {_INLINE_WS_RE.sub(' ', page.title).strip()}")
    if page.description and page.description.strip():
        header.append(f"Description: {_INLINE_WS_RE.sub(' ', page.description).strip()}")
    return "\n".join(header) + "\n\n" + normalize_text(page.text_content)


def document_name(page: PageData) -> str:
    """Имя документа для индекса: ``<title>.txt`` или ``page.txt``."""
    title = _INLINE_WS_RE.sub(" ", page.title or "").strip()
    name = _UNSAFE_NAME_RE.sub("-", title).strip(" .-")[:_MAX_NAME_LEN].rstrip()
    return f"{name or 'page'}.txt"
