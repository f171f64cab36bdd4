"""Content store: Markdown posts and pages with YAML front matter."""

from inkpress.content.frontmatter import parse_front_matter, read_content_file, split_front_matter
from inkpress.content.models import ContentItem, ContentKind, FrontMatter
from inkpress.content.reader import ContentReader

__all__ = [
    "ContentItem",
    "ContentKind",
    "ContentReader",
    "FrontMatter",
    "parse_front_matter",
    "read_content_file",
    "split_front_matter",
]
