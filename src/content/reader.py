"""Content store reader.

Discovers Markdown files under the content directory and turns them into
``ContentItem`` objects. Every file is checked before anything is returned:
a single broken file fails the whole read, and all problems are reported
together rather than one per run.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath

from inkpress.content.frontmatter import read_content_file
from inkpress.content.models import ContentItem, ContentKind
from inkpress.exceptions import ContentValidationError, FrontMatterError
from inkpress.utils import slugify

logger = logging.getLogger(__name__)

CONTENT_SUFFIXES = (".md", ".markdown")


class ContentReader:
    """Reads posts and pages from a content directory.

    Files below ``posts_dir`` are posts, everything else is a page. Drafts
    are skipped unless ``include_drafts`` is set.
    """

    def __init__(self, posts_dir: str = "posts", *, include_drafts: bool = False) -> None:
        self._posts_dir = posts_dir.strip("/")
        self._include_drafts = include_drafts

    def read_all(self, content_dir: Path) -> list[ContentItem]:
        """Read and validate every content file.

        Raises:
            ContentValidationError: If any file is malformed, the directory
                is missing, or two items would render to the same URL.
        """
        items, problems = self._scan(content_dir)
        if problems:
            raise ContentValidationError(problems)
        return items

    def validate(self, content_dir: Path) -> list[str]:
        """Return a list of problems without raising."""
        _, problems = self._scan(content_dir)
        return problems

    def discover(self, content_dir: Path) -> list[Path]:
        """Return content files in a stable order."""
        return sorted(
            (
                p
                for p in content_dir.rglob("*")
                if p.is_file()
                and p.suffix.lower() in CONTENT_SUFFIXES
                and not any(part.startswith(".") for part in p.relative_to(content_dir).parts)
            ),
            key=lambda p: p.relative_to(content_dir).as_posix(),
        )

    def _scan(self, content_dir: Path) -> tuple[list[ContentItem], list[str]]:
        if not content_dir.is_dir():
            return [], [f"content directory not found: {content_dir}"]

        items: list[ContentItem] = []
        problems: list[str] = []

        for path in self.discover(content_dir):
            rel = PurePosixPath(path.relative_to(content_dir).as_posix())
            try:
                front_matter, body = read_content_file(path)
            except FrontMatterError as exc:
                problems.append(f"{rel}: {exc.reason}")
                continue

            if front_matter.draft and not self._include_drafts:
                logger.debug("Skipping draft %s", rel)
                continue

            kind = ContentKind.POST if self._is_post(rel) else ContentKind.PAGE
            item = ContentItem(source_path=rel, kind=kind, front_matter=front_matter, body=body)
            unusable = _unusable_names(item)
            if unusable:
                problems.extend(f"{rel}: {problem}" for problem in unusable)
                continue
            item.url = self._url_for(item)
            items.append(item)

        problems.extend(_duplicate_urls(items))
        logger.info("Read %d content item(s) from %s", len(items), content_dir)
        return items, problems

    def _is_post(self, rel: PurePosixPath) -> bool:
        return bool(self._posts_dir) and len(rel.parts) > 1 and rel.parts[0] == self._posts_dir

    def _url_for(self, item: ContentItem) -> str:
        if item.kind == ContentKind.POST:
            return f"/{self._posts_dir}/{item.slug}/"
        parents = [slugify(p) for p in item.source_path.parent.parts]
        if item.source_path.stem in ("index", "_index") and not item.front_matter.slug:
            return "/" + "".join(f"{p}/" for p in parents)
        return "/" + "".join(f"{p}/" for p in parents) + f"{item.slug}/"


def _duplicate_urls(items: list[ContentItem]) -> list[str]:
    seen: dict[str, PurePosixPath] = {}
    problems: list[str] = []
    for item in items:
        other = seen.get(item.url)
        if other is not None:
            problems.append(f"{item.source_path}: renders to {item.url}, already used by {other}")
        else:
            seen[item.url] = item.source_path
    return problems


def _unusable_names(item: ContentItem) -> list[str]:
    """Names that would become URL segments but slugify to nothing."""
    problems: list[str] = []
    fm = item.front_matter
    if fm.slug is not None and not slugify(fm.slug):
        problems.append(f"slug {fm.slug!r} has no URL-safe characters")
    if item.kind == ContentKind.PAGE:
        for part in item.source_path.parent.parts:
            if not slugify(part):
                problems.append(f"directory {part!r} has no URL-safe characters")
    for field, terms in (("tags", fm.tags), ("categories", fm.categories)):
        for term in terms:
            if not slugify(term):
                problems.append(f"{field}: {term!r} has no URL-safe characters")
    return problems
