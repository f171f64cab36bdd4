"""Atom feed and sitemap serialization.

Both documents are built from content dates only, never from the clock, so
rebuilding unchanged content produces the same bytes.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable, Iterable
from xml.etree.ElementTree import Element, SubElement, tostring

from inkpress.content.models import ContentItem, published_at

ATOM_NS = "http://www.w3.org/2005/Atom"
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def render_atom_feed(
    posts: Iterable[ContentItem],
    *,
    title: str,
    site_url: str,
    feed_url: str,
    author: str = "",
    subtitle: str = "",
    html_for: Callable[[ContentItem], str] | None = None,
    absolute: Callable[[str], str],
    limit: int = 20,
) -> bytes:
    """Serialize the newest *limit* dated posts as an Atom feed.

    Args:
        posts: Posts in newest-first order.
        html_for: Returns the rendered body of a post, used as entry content.
        absolute: Turns a site-relative URL into an absolute one.
    """
    entries = [p for p in posts if p.date is not None][:limit]

    root = Element("feed", attrib={"xmlns": ATOM_NS})
    SubElement(root, "id").text = site_url
    SubElement(root, "title").text = title
    if subtitle:
        SubElement(root, "subtitle").text = subtitle
    SubElement(root, "updated").text = _rfc3339(entries[0].date) if entries else _EPOCH
    SubElement(root, "link", attrib={"href": site_url})
    SubElement(root, "link", attrib={"href": feed_url, "rel": "self"})
    if author:
        SubElement(SubElement(root, "author"), "name").text = author

    for post in entries:
        url = absolute(post.url)
        entry = SubElement(root, "entry")
        SubElement(entry, "id").text = url
        SubElement(entry, "title").text = post.title
        SubElement(entry, "updated").text = _rfc3339(post.date)
        SubElement(entry, "published").text = _rfc3339(post.date)
        SubElement(entry, "link", attrib={"href": url})
        for term in post.categories + post.tags:
            SubElement(entry, "category", attrib={"term": term})
        if post.front_matter.description:
            SubElement(entry, "summary").text = post.front_matter.description
        if html_for is not None:
            content = SubElement(entry, "content", attrib={"type": "html"})
            content.text = html_for(post)

    return tostring(root, encoding="utf-8", xml_declaration=True)


def render_sitemap(
    urls: Iterable[tuple[str, dt.date | dt.datetime | None]],
    *,
    absolute: Callable[[str], str],
) -> bytes:
    """Serialize ``(url, lastmod)`` pairs as a sitemap, sorted by URL."""
    root = Element("urlset", attrib={"xmlns": SITEMAP_NS})
    for url, lastmod in sorted(urls, key=lambda pair: pair[0]):
        node = SubElement(root, "url")
        SubElement(node, "loc").text = absolute(url)
        if lastmod is not None:
            SubElement(node, "lastmod").text = published_at(lastmod).date().isoformat()
    return tostring(root, encoding="utf-8", xml_declaration=True)


_EPOCH = "1970-01-01T00:00:00Z"


def _rfc3339(value: dt.date | dt.datetime | None) -> str:
    if value is None:
        return _EPOCH
    return published_at(value).strftime("%Y-%m-%dT%H:%M:%SZ")
