"""Tests for src/render/: Markdown, minification, feed and sitemap."""

import datetime as dt
from pathlib import PurePosixPath
from xml.etree import ElementTree

from inkpress.content.models import ContentItem, ContentKind, FrontMatter
from inkpress.render import minify_html, render_atom_feed, render_markdown, render_sitemap

ATOM = "{http://www.w3.org/2005/Atom}"
SITEMAP = "{http://www.sitemaps.org/schemas/sitemap/0.9}"


def _absolute(url: str) -> str:
    return "https://example.com" + url


def _post(name: str, date=None, **fm) -> ContentItem:
    return ContentItem(
        source_path=PurePosixPath(f"posts/{name}.md"),
        kind=ContentKind.POST,
        front_matter=FrontMatter(title=name.title(), date=date, **fm),
        url=f"/posts/{name}/",
    )


class TestMarkdown:
    def test_paragraph(self):
        assert render_markdown("Hello") == "<p>Hello</p>"

    def test_blank(self):
        assert render_markdown("  \n") == ""

    def test_table_and_strikethrough(self):
        html = render_markdown("| a |\n|---|\n| b |\n\n~~gone~~")
        assert "<table>" in html
        assert "<s>gone</s>" in html

    def test_raw_html_passes_through(self):
        assert '<div class="x">' in render_markdown('<div class="x">hi</div>')


class TestMinify:
    def test_shrinks_whitespace(self):
        html = "<html>\n  <body>\n    <p>  Hello  </p>\n  </body>\n</html>\n"
        out = minify_html(html)
        assert "Hello" in out
        assert len(out) < len(html)


class TestAtomFeed:
    def test_entries_only_dated_posts(self):
        posts = [_post("b", dt.date(2026, 1, 2)), _post("undated"), _post("a", dt.date(2026, 1, 1))]
        xml = render_atom_feed(
            posts, title="Blog", site_url="https://example.com/", feed_url="https://example.com/feed.xml",
            absolute=_absolute,
        )
        root = ElementTree.fromstring(xml)
        ids = [e.findtext(f"{ATOM}id") for e in root.findall(f"{ATOM}entry")]
        assert ids == ["https://example.com/posts/b/", "https://example.com/posts/a/"]
        assert root.findtext(f"{ATOM}updated") == "2026-01-02T00:00:00Z"

    def test_limit_and_content(self):
        posts = [_post(f"p{i}", dt.date(2026, 1, 10 - i), description="d") for i in range(5)]
        xml = render_atom_feed(
            posts, title="Blog", site_url="s", feed_url="f", absolute=_absolute,
            html_for=lambda p: f"<p>{p.title}</p>", limit=2,
        )
        entries = ElementTree.fromstring(xml).findall(f"{ATOM}entry")
        assert len(entries) == 2
        assert entries[0].findtext(f"{ATOM}content") == "<p>P0</p>"
        assert entries[0].findtext(f"{ATOM}summary") == "d"

    def test_empty_feed_is_stable(self):
        first = render_atom_feed([], title="Blog", site_url="s", feed_url="f", absolute=_absolute)
        second = render_atom_feed([], title="Blog", site_url="s", feed_url="f", absolute=_absolute)
        assert first == second
        assert b"1970-01-01T00:00:00Z" in first


class TestSitemap:
    def test_sorted_with_lastmod(self):
        xml = render_sitemap(
            [("/z/", None), ("/a/", dt.datetime(2026, 3, 4, 5, 6))], absolute=_absolute
        )
        urls = ElementTree.fromstring(xml).findall(f"{SITEMAP}url")
        assert [u.findtext(f"{SITEMAP}loc") for u in urls] == [
            "https://example.com/a/",
            "https://example.com/z/",
        ]
        assert urls[0].findtext(f"{SITEMAP}lastmod") == "2026-03-04"
        assert urls[1].find(f"{SITEMAP}lastmod") is None
