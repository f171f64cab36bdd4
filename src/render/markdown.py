"""Markdown rendering."""

from markdown_it import MarkdownIt

# CommonMark plus GFM tables and strikethrough. Raw HTML passes through.
_md = MarkdownIt("commonmark", {"html": True}).enable(["table", "strikethrough"])


def render_markdown(content: str) -> str:
    """Render Markdown *content* to an HTML fragment."""
    if not content.strip():
        return ""
    return _md.render(content).strip()
