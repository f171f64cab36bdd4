"""Pure rendering helpers used by the site builder."""

from inkpress.render.feeds import render_atom_feed, render_sitemap
from inkpress.render.markdown import render_markdown
from inkpress.render.minify import minify_html

__all__ = ["minify_html", "render_atom_feed", "render_markdown", "render_sitemap"]
