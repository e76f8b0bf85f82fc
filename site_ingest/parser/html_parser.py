# === FILE: site_ingest/parser/html_parser.py ===
"""HTML analysis for rendered pages.

The browser hands over the final DOM serialised as HTML; the rest is plain
BeautifulSoup work:

* title:       document ``<title>`` text, whitespace collapsed, or ``None``.
* description: ``<meta name="description">`` content, or ``None``.
* og_image:    ``og:image`` meta content resolved against the page URL.
* text:        best-effort main text: the largest contiguous block of
  visible text once scripts, navigation, headers, footers and similar
  chrome are removed; full body text when no block stands out.
"""
from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PreformattedString, Tag

from site_ingest.crawler.models import PageData

__all__: Sequence[str] = ("parse_html", "extract_main_text")

_UNWANTED_SELECTORS = (
    "script",
    "style",
    "noscript",
    "iframe",
    "template",
    "svg",
    "nav",
    "header",
    "footer",
    "aside",
    ".navigation",
    ".sidebar",
    ".cookie-banner",
    ".advertisement",
    '[role="navigation"]',
    "[hidden]",
    '[aria-hidden="true"]',
)

# Semantic containers are preferred over the density heuristic.
_MAIN_SELECTORS = ("main", "article", '[role="main"]', ".main-content", ".content", "#content")

_CONTAINER_TAGS = ("main", "article", "section", "div", "td")

_TEXT_TAGS = frozenset(
    {
        "p", "h1", "h2", "h3", "h4", "h5", "h6", "li", "pre", "blockquote",
        "dd", "dt", "figcaption", "span", "a", "strong", "em", "b", "i", "code",
    }
)

_BLOCK_TAGS = (
    "p", "div", "section", "article", "main", "li", "ul", "ol", "tr", "table",
    "h1", "h2", "h3", "h4", "h5", "h6", "pre", "blockquote", "dd", "dt", "figure",
)

_SPACES_RE = re.compile(r"[ \t\r\f\v\u00a0]+")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = " ".join(value.split())
    return cleaned or None


def _meta_content(soup: BeautifulSoup, key: str) -> Optional[str]:
    tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
    if not isinstance(tag, Tag):
        return None
    content = tag.get("content")
    return _clean(content) if isinstance(content, str) else None


def _own_text_length(element: Tag) -> int:
    """Length of text held by direct children that are text-level nodes."""
    total = 0
    for child in element.children:
        if isinstance(child, NavigableString):
            if not isinstance(child, PreformattedString):
                total += len(child.strip())
        elif isinstance(child, Tag) and child.name in _TEXT_TAGS:
            total += len(child.get_text(" ", strip=True))
    return total


def _block_text(element: Tag) -> str:
    """Visible text of *element*, one line per block-level element."""
    for br in element.find_all("br"):
        br.replace_with("\n")
    for block in element.find_all(_BLOCK_TAGS):
        block.insert_after("\n")
    lines = (_SPACES_RE.sub(" ", line).strip() for line in element.get_text().splitlines())
    return "\n".join(line for line in lines if line)


def _pick_main_element(body: Tag) -> Tag:
    semantic = [el for sel in _MAIN_SELECTORS for el in body.select(sel)]
    semantic = [el for el in semantic if el.get_text(strip=True)]
    if semantic:
        return max(semantic, key=lambda el: len(el.get_text(" ", strip=True)))

    # body тоже кандидат: абзацы прямо под <body> не должны проигрывать мелкому <div>
    best: Tag = body
    best_len = _own_text_length(body)
    for candidate in body.find_all(_CONTAINER_TAGS):
        length = _own_text_length(candidate)
        if length > best_len:
            best, best_len = candidate, length
    return best


def extract_main_text(soup: BeautifulSoup) -> str:
    """Strip page chrome from *soup* (in place) and return the main text block."""
    for selector in _UNWANTED_SELECTORS:
        for element in soup.select(selector):
            # вложенные совпадения уже удалены вместе с родителем
            if not element.decomposed:
                element.decompose()

    body = soup.body if isinstance(soup.body, Tag) else soup
    main = _pick_main_element(body)
    text = _block_text(main)
    if not text and main is not body:
        text = _block_text(body)
    return text


def parse_html(html: str, url: str, base_url: Optional[str] = None) -> PageData:
    """Parse rendered *html* of *url* into :class:`PageData`.

    Parameters
    ----------
    html
        Serialised DOM of the page.
    url
        The URL that was requested; stored on the result unchanged.
    base_url
        Final URL after redirects, used to resolve a relative ``og:image``.
        Defaults to *url*.
    """
    soup = BeautifulSoup(html, "html.parser")

    title_tag = soup.find("title")
    title = _clean(title_tag.get_text()) if isinstance(title_tag, Tag) else None
    description = _meta_content(soup, "description")

    og_image = _meta_content(soup, "og:image")
    if og_image:
        og_image = urljoin(base_url or url, og_image)

    text = extract_main_text(soup)
    return PageData(url=url, text_content=text, title=title, og_image=og_image, description=description)
