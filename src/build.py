"""Site builder: content store + theme + config → static output tree.

The transform is pure and deterministic. ``SiteBuilder.render`` returns
every output file as bytes keyed by its relative path; ``build`` validates
the content first, renders everything in memory, writes it to a staging
directory and only then swaps it into place. A failure at any point leaves
the previous output untouched.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections import defaultdict
from enum import StrEnum
from pathlib import Path
from typing import Any

from jinja2 import TemplateError
from markupsafe import Markup
from pydantic import BaseModel, Field

from inkpress.config import InkpressConfig
from inkpress.content.models import ContentItem, ContentKind
from inkpress.content.reader import ContentReader
from inkpress.exceptions import BuildError
from inkpress.render import minify_html, render_atom_feed, render_markdown, render_sitemap
from inkpress.theme.loader import LIST_TEMPLATE, NOT_FOUND_TEMPLATE, Theme
from inkpress.utils import iter_files, slugify, swap_tree, tree_digest

logger = logging.getLogger(__name__)

FEED_PATH = "feed.xml"
SITEMAP_PATH = "sitemap.xml"


class BuildMode(StrEnum):
    """How the site is built."""

    PRODUCTION = "production"
    PREVIEW = "preview"


class BuildResult(BaseModel):
    """Outcome of a successful build."""

    output_dir: Path
    mode: BuildMode
    posts: int = 0
    pages: int = 0
    files: list[str] = Field(default_factory=list)
    digest: str = ""


class SiteBuilder:
    """Renders a site with a given theme."""

    def __init__(self, config: InkpressConfig, theme_dir: Path) -> None:
        self._config = config
        self.theme = Theme(theme_dir, base_url=config.site.base_url)

    def build(
        self,
        mode: BuildMode = BuildMode.PRODUCTION,
        *,
        output_dir: Path | None = None,
        include_drafts: bool | None = None,
        minify: bool | None = None,
    ) -> BuildResult:
        """Validate, render and write the site.

        Raises:
            ContentValidationError: If any content file is invalid.
            ThemeError: If the theme lacks a required layout.
            BuildError: If rendering or writing fails.
        """
        cfg = self._config
        output_dir = output_dir or cfg.output_dir
        if include_drafts is None:
            include_drafts = cfg.content.build_drafts
        if minify is None:
            minify = mode == BuildMode.PRODUCTION and cfg.build.minify
        self._check_output_dir(output_dir)

        reader = ContentReader(cfg.content.posts_dir, include_drafts=include_drafts)
        items = reader.read_all(cfg.content_dir)

        files = self.render(items, minify=minify)
        self._write(files, output_dir)

        posts = sum(1 for i in items if i.kind == ContentKind.POST)
        result = BuildResult(
            output_dir=output_dir,
            mode=mode,
            posts=posts,
            pages=len(items) - posts,
            files=sorted(files),
            digest=tree_digest(output_dir),
        )
        logger.info(
            "Built %d post(s), %d page(s), %d file(s) into %s",
            result.posts,
            result.pages,
            len(result.files),
            output_dir,
        )
        return result

    def render(self, items: list[ContentItem], *, minify: bool = False) -> dict[str, bytes]:
        """Render *items* into a mapping of output path → file bytes."""
        site = self._site_context(items)
        bodies = {item.url: render_markdown(item.body) for item in items}
        posts = sorted(
            (i for i in items if i.kind == ContentKind.POST),
            key=lambda i: i.sort_key,
            reverse=True,
        )

        html: dict[str, str] = {}

        for item in items:
            layout = item.front_matter.layout or (
                self._config.site.default_layout if item.kind == ContentKind.POST else "page"
            )
            page = self._page_context(item, bodies[item.url])
            html[item.output_path.as_posix()] = self._render(
                layout, str(item.source_path), site=site, page=page
            )

        post_pages = [self._page_context(p, bodies[p.url]) for p in posts]
        posts_url = f"/{self._config.content.posts_dir.strip('/')}/"
        listings: list[tuple[str, dict[str, Any]]] = [
            (posts_url, _list_context("Posts", "posts", posts_url, post_pages)),
        ]
        if "index.html" not in html:
            listings.append(("/", _list_context(site["title"], "home", "/", post_pages)))
        for taxonomy, terms in (("tags", site["tags"]), ("categories", site["categories"])):
            for term in terms:
                members = [
                    page
                    for page in post_pages
                    if term["slug"] in {t["slug"] for t in page[taxonomy]}
                ]
                listings.append(
                    (term["url"], _list_context(term["name"], taxonomy, term["url"], members))
                )

        listed: list[str] = []
        for url, context in listings:
            rel = f"{url.strip('/')}/index.html".lstrip("/")
            if rel in html:
                logger.warning("Page %s shadows the %s listing", rel, context["kind"])
                continue
            html[rel] = self._render(LIST_TEMPLATE, url, site=site, page=context)
            listed.append(url)

        if self.theme.has_template(NOT_FOUND_TEMPLATE):
            html["404.html"] = self._render(
                NOT_FOUND_TEMPLATE,
                "404",
                site=site,
                page=_list_context("Not found", "404", "/404.html", []),
            )

        files: dict[str, bytes] = {}
        for rel, text in html.items():
            files[rel] = (minify_html(text) if minify else text).encode("utf-8")

        files[FEED_PATH] = render_atom_feed(
            posts,
            title=self._config.site.title,
            subtitle=self._config.site.description,
            site_url=self.theme.absolute_url("/"),
            feed_url=self.theme.absolute_url(FEED_PATH),
            author=self._config.site.author,
            html_for=lambda p: bodies[p.url],
            absolute=self.theme.absolute_url,
            limit=self._config.build.feed_limit,
        )
        files[SITEMAP_PATH] = render_sitemap(
            [(i.url, i.date) for i in items] + [(url, None) for url in listed],
            absolute=self.theme.absolute_url,
        )

        for static_root in (self.theme.static_dir, self._config.static_dir):
            for path in iter_files(static_root):
                rel = path.relative_to(static_root).as_posix()
                if rel in html or rel in (FEED_PATH, SITEMAP_PATH):
                    logger.warning("Static file %s collides with a rendered page; skipped", rel)
                    continue
                try:
                    files[rel] = path.read_bytes()
                except OSError as exc:
                    raise BuildError(f"Could not read static file {path}: {exc}") from exc

        return files

    def _render(self, layout: str, source: str, **context: Any) -> str:
        template = self.theme.template_for(layout)
        try:
            return template.render(**context)
        except TemplateError as exc:
            raise BuildError(f"{source}: template {template.name} failed: {exc}") from exc
        except Exception as exc:  # filters and theme code can raise anything
            raise BuildError(
                f"{source}: template {template.name} failed: {type(exc).__name__}: {exc}"
            ) from exc

    def _site_context(self, items: list[ContentItem]) -> dict[str, Any]:
        cfg = self._config.site
        tags: dict[str, str] = {}
        categories: dict[str, str] = {}
        counts: dict[str, int] = defaultdict(int)
        for item in items:
            if item.kind != ContentKind.POST:
                continue
            for tag in item.tags:
                slug = slugify(tag)
                tags.setdefault(slug, tag)
                counts["tags:" + slug] += 1
            for cat in item.categories:
                slug = slugify(cat)
                categories.setdefault(slug, cat)
                counts["categories:" + slug] += 1

        def terms(taxonomy: str, found: dict[str, str]) -> list[dict[str, Any]]:
            return [
                {
                    "name": name,
                    "slug": slug,
                    "url": f"/{taxonomy}/{slug}/",
                    "count": counts[f"{taxonomy}:{slug}"],
                }
                for slug, name in sorted(found.items())
            ]

        menu = [
            {"title": i.title, "url": i.url}
            for i in sorted(items, key=lambda i: i.url)
            if i.kind == ContentKind.PAGE and i.url != "/"
        ]
        return {
            "title": cfg.title,
            "description": cfg.description,
            "base_url": cfg.base_url,
            "author": cfg.author,
            "language": cfg.language,
            "feed_url": "/" + FEED_PATH,
            "menu": menu,
            "tags": terms("tags", tags),
            "categories": terms("categories", categories),
            "theme": {"name": self.theme.name, "version": self.theme.version},
        }

    def _page_context(self, item: ContentItem, body_html: str) -> dict[str, Any]:
        fm = item.front_matter
        return {
            "title": item.title,
            "description": fm.description,
            "date": item.date,
            "url": item.url,
            "permalink": self.theme.absolute_url(item.url),
            "slug": item.slug,
            "kind": item.kind.value,
            "content": Markup(body_html),
            "tags": [_term("tags", t) for t in item.tags],
            "categories": [_term("categories", c) for c in item.categories],
            "params": fm.params,
            "source": item.source_path.as_posix(),
        }

    def _check_output_dir(self, output_dir: Path) -> None:
        out = output_dir.resolve()
        for protected in (self._config.root, self._config.content_dir, self._config.static_dir):
            p = protected.resolve()
            if out == p or out in p.parents:
                raise BuildError(f"Refusing to build into {output_dir}: it contains {protected}")

    def _write(self, files: dict[str, bytes], output_dir: Path) -> None:
        output_dir.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{output_dir.name}.build-", dir=output_dir.parent))
        root = staging.resolve()
        try:
            for rel in sorted(files):
                target = staging / rel
                resolved = target.resolve()
                if resolved == root or not resolved.is_relative_to(root):
                    raise BuildError(f"Refusing to write {rel!r}: it resolves outside the output tree")
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(files[rel])
            swap_tree(staging, output_dir)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise BuildError(f"Could not write output to {output_dir}: {exc}") from exc
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise


def _term(taxonomy: str, name: str) -> dict[str, str]:
    slug = slugify(name)
    return {"name": name, "slug": slug, "url": f"/{taxonomy}/{slug}/"}


def _list_context(
    title: str, kind: str, url: str, items: list[dict[str, Any]]
) -> dict[str, Any]:
    return {"title": title, "kind": kind, "url": url, "items": items}
