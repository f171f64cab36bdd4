"""Shared fixtures: a small site on disk that builds with the starter theme."""

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from inkpress.config import InkpressConfig, load_config
from inkpress.scaffold import STARTER_THEME_DIR

_ENV_VARS = (
    "INKPRESS_OUTPUT_DIR",
    "INKPRESS_BASE_URL",
    "INKPRESS_THEME_PATH",
    "INKPRESS_DEPLOY_DIR",
    "INKPRESS_DEPLOY_REMOTE",
    "INKPRESS_DEPLOY_BRANCH",
    "INKPRESS_SLACK_WEBHOOK",
    "INKPRESS_NTFY_URL",
    "INKPRESS_NTFY_TOPIC",
    "INKPRESS_PORT",
)

SITE_CONFIG = f"""\
[site]
title = "Test Blog"
description = "Notes and experiments"
base_url = "https://blog.example.com/"
author = "Ada"

[theme]
path = "{STARTER_THEME_DIR.as_posix()}"

[build]
output_dir = "public"

[deploy]
target = "directory"
directory = "deployed"
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_file() -> Callable[[Path, str], Path]:
    """Write dedented text to a path, creating parents."""

    def _write(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def site_root(tmp_path: Path, write_file) -> Path:
    """A site with one post and one page, using the bundled starter theme."""
    root = tmp_path / "site"
    write_file(root / "inkpress.toml", SITE_CONFIG)
    write_file(
        root / "content" / "posts" / "foo.md",
        """
        ---
        title: "Foo"
        date: 2026-01-01
        tags: [Python, Web Dev]
        categories: Notes
        ---

        Hello
        """,
    )
    write_file(
        root / "content" / "about.md",
        """
        ---
        title: About
        ---

        About this *blog*.
        """,
    )
    (root / "static").mkdir()
    return root


@pytest.fixture
def config(site_root: Path) -> InkpressConfig:
    return load_config(site_root / "inkpress.toml")
