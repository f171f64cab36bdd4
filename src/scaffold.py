"""Project scaffolding: ``inkpress init`` and ``inkpress new``."""

from __future__ import annotations

import datetime as dt
import logging
import shutil
from pathlib import Path
from string import Template

import yaml

from inkpress.config import CONFIG_FILENAME, InkpressConfig
from inkpress.exceptions import InkpressError
from inkpress.utils import slugify

logger = logging.getLogger(__name__)

STARTER_THEME_DIR = Path(__file__).parent / "starter_theme"
WORKFLOW_PATH = Path(".github") / "workflows" / "deploy.yml"


CONFIG_TEMPLATE = Template("""\
[site]
title = ${title}
description = ""
base_url = "https://example.com/"
author = ""
default_layout = "post"

[content]
directory = "content"
posts_dir = "posts"

[theme]
name = ${theme_name}
${theme_source}

[build]
output_dir = "public"
minify = true

[deploy]
target = "git"
branch = "gh-pages"
trigger_branch = "${trigger_branch}"
""")


# $$ escapes the GitHub Actions expression syntax from string.Template.
WORKFLOW_TEMPLATE = Template("""\
name: Deploy site

on:
  push:
    branches: [${trigger_branch}]
  workflow_dispatch:

concurrency:
  group: deploy-site
  cancel-in-progress: false

jobs:
  deploy:
    runs-on: ubuntu-latest
    permissions:
      contents: write
    steps:
      - uses: actions/checkout@v4
        with:
          submodules: recursive
      - uses: actions/setup-python@v5
        with:
          python-version: "3.12"
      - name: Install inkpress
        run: pip install inkpress
      - name: Check content
        run: inkpress check
      - name: Build and publish
        run: inkpress deploy
        env:
          INKPRESS_DEPLOY_REMOTE: https://x-access-token:$${{ secrets.GITHUB_TOKEN }}@github.com/$${{ github.repository }}.git
""")


ABOUT_TEMPLATE = Template("""\
---
${front_matter}---

Write something about yourself here.
""")


def init_site(
    root: Path,
    title: str = "My Blog",
    *,
    theme_repository: str = "",
    trigger_branch: str = "main",
) -> list[Path]:
    """Create a new site skeleton under *root*.

    Existing files are left alone. Without a theme repository the bundled
    starter theme is copied to ``themes/starter`` and used as a vendored
    theme.

    Returns:
        Paths that were created.
    """
    root.mkdir(parents=True, exist_ok=True)
    created: list[Path] = []

    if theme_repository:
        theme_name = slugify(Path(theme_repository.rstrip("/")).stem) or "theme"
        theme_source = f"repository = {_toml_str(theme_repository)}"
    else:
        theme_name = "starter"
        theme_source = 'path = "themes/starter"'
        theme_dest = root / "themes" / "starter"
        if not theme_dest.exists():
            shutil.copytree(STARTER_THEME_DIR, theme_dest)
            created.append(theme_dest)

    files = {
        root / CONFIG_FILENAME: CONFIG_TEMPLATE.substitute(
            title=_toml_str(title),
            theme_name=_toml_str(theme_name),
            theme_source=theme_source,
            trigger_branch=trigger_branch,
        ),
        root / WORKFLOW_PATH: WORKFLOW_TEMPLATE.substitute(trigger_branch=trigger_branch),
        root / "content" / "about.md": ABOUT_TEMPLATE.substitute(
            front_matter=_yaml({"title": "About", "description": f"About {title}"})
        ),
        root / ".gitignore": "public/\n.inkpress/\n.inkpress-last-run.json\n",
    }
    for path, text in files.items():
        if path.exists():
            logger.info("Keeping existing %s", path)
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        created.append(path)

    for directory in (root / "content" / "posts", root / "static"):
        if not directory.exists():
            directory.mkdir(parents=True)
            created.append(directory)

    return created


def new_post(
    config: InkpressConfig,
    title: str,
    *,
    on: dt.date | None = None,
    draft: bool = True,
) -> Path:
    """Create a post file with front matter and return its path.

    Raises:
        InkpressError: If the title has no usable slug or the file exists.
    """
    slug = slugify(title)
    if not slug:
        raise InkpressError(f"Cannot derive a file name from title {title!r}")

    path = config.content_dir / config.content.posts_dir / f"{slug}.md"
    if path.exists():
        raise InkpressError(f"{path} already exists")

    front_matter = {
        "title": title,
        "date": on or dt.date.today(),
        "description": "",
        "tags": [],
        "categories": [],
        "draft": draft,
    }
    text = "---\n" + _yaml(front_matter) + "---\n\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _yaml(data: dict) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def _toml_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
