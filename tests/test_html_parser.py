# File: tests/test_html_parser.py
import pytest
from bs4 import BeautifulSoup
from site_ingest.parser.html_parser import extract_main_text, parse_html

ARTICLE_PAGE = """
<html>
<head>
  <title>  Release   notes | Example </title>
  <meta name="description" content="What changed in  v2">
  <meta property="og:image" content="/img/cover.png">
  <script>var tracking = "should not appear";</script>
  <style>body { color: red; }</style>
</head>
<body>
  <header><a href="/">Home</a> <a href="/blog">Blog</a></header>
  <nav class="menu"><ul><li>Menu item</li></ul></nav>
  <main>
    <h1>Version 2</h1>
    <p>The new   release adds   streaming.</p>
    <p>It also fixes<br>two bugs.</p>
  </main>
  <aside>Related posts</aside>
  <div class="cookie-banner">We use cookies</div>
  <footer>Copyright 2024</footer>
</body>
</html>
"""

DIV_SOUP_PAGE = """
<html><body>
  <div id="top"><a href="/">Home</a></div>
  <div id="wrapper">
    <div class="sidebar"><p>Sidebar link list</p></div>
    <div id="story">
      <p>First paragraph of the long story with plenty of words in it.</p>
      <p>Second paragraph continues the story with even more words.</p>
    </div>
    <div id="small"><p>Short note.</p></div>
  </div>
</body></html>
"""


def test_parse_html_metadata():
    page = parse_html(ARTICLE_PAGE, url="https://example.com/notes")
    assert page.url == "https://example.com/notes"
    assert page.title == "Release notes | Example"
    assert page.description == "What changed in v2"
    assert page.og_image == "https://example.com/img/cover.png"


def test_og_image_resolved_against_final_url():
    page = parse_html(
        ARTICLE_PAGE, url="https://example.com/notes", base_url="https://cdn.example.org/blog/notes"
    )
    assert page.url == "https://example.com/notes"
    assert page.og_image == "https://cdn.example.org/img/cover.png"


def test_main_text_prefers_semantic_container():
    text = parse_html(ARTICLE_PAGE, url="https://example.com/notes").text_content
    assert text.splitlines() == [
        "Version 2",
        "The new release adds streaming.",
        "It also fixes",
        "two bugs.",
    ]
    for noise in ("tracking", "Menu item", "Related posts", "cookies", "Copyright", "Home"):
        assert noise not in text


def test_main_text_density_fallback():
    soup = BeautifulSoup(DIV_SOUP_PAGE, "html.parser")
    text = extract_main_text(soup)
    assert "First paragraph" in text
    assert "Second paragraph" in text
    assert "Sidebar" not in text
    assert "Short note" not in text


@pytest.mark.parametrize(
    "html",
    [
        "<html><head><title></title></head><body></body></html>",
        "",
        "<p>just a fragment</p>",
    ],
)
def test_missing_metadata_is_none(html):
    page = parse_html(html, url="https://example.com/")
    assert page.title is None
    assert page.description is None
    assert page.og_image is None


def test_body_text_when_no_block_stands_out():
    page = parse_html("<html><body>Loose text only</body></html>", url="https://example.com/")
    assert page.text_content == "Loose text only"


def test_paragraphs_directly_under_body_beat_small_div():
    story = "Real article text that goes on for a while and carries the actual content."
    html = f"<html><body><p>{story}</p><p>{story}</p><div>Accept cookies</div></body></html>"
    text = parse_html(html, url="https://example.com/").text_content
    assert text.splitlines()[:2] == [story, story]
