"""Jinja2 template loading for themes.

A theme is a directory with ``templates/`` (Jinja2 HTML templates, one per
layout plus ``list.html`` for index pages) and an optional ``static/``
folder copied verbatim into the output. ``theme.toml`` may carry a name
and version for display.
"""

from __future__ import annotations

import datetime as dt
import logging
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import urljoin

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    Template,
    TemplateError,
    TemplateNotFound,
    select_autoescape,
)

from inkpress.exceptions import ThemeError
from inkpress.utils import slugify

logger = logging.getLogger(__name__)

LIST_TEMPLATE = "list.html"
NOT_FOUND_TEMPLATE = "404.html"


class Theme:
    """Loads and renders a theme's templates.

    Supports template inheritance and a few filters themes commonly need:
    ``date_format``, ``isoformat``, ``slugify`` and ``absolute_url``.
    """

    def __init__(self, directory: Path, *, base_url: str = "/") -> None:
        self.directory = directory
        self.template_dir = directory / "templates"
        if not self.template_dir.is_dir():
            raise ThemeError(f"{directory} is not a theme: no templates/ directory")

        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html", "htm", "xml"]),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._register_filters()
        self.metadata = _load_metadata(directory / "theme.toml")

    @property
    def name(self) -> str:
        return str(self.metadata.get("name", self.directory.name))

    @property
    def version(self) -> str:
        return str(self.metadata.get("version", ""))

    @property
    def static_dir(self) -> Path:
        return self.directory / "static"

    def has_template(self, name: str) -> bool:
        return name in self.env.list_templates()

    def template_for(self, layout: str) -> Template:
        """Return the template for *layout* (``<layout>.html``).

        Raises:
            ThemeError: If the theme has no such layout or it does not compile.
        """
        name = layout if layout.endswith(".html") else f"{layout}.html"
        try:
            return self.env.get_template(name)
        except TemplateNotFound as exc:
            raise ThemeError(f"Theme '{self.name}' has no '{layout}' layout ({name})") from exc
        except TemplateError as exc:
            raise ThemeError(f"Theme template {name} is invalid: {exc}") from exc

    def absolute_url(self, url: str) -> str:
        return urljoin(self._base_url, url.lstrip("/"))

    def _register_filters(self) -> None:
        self.env.filters["date_format"] = _date_format
        self.env.filters["isoformat"] = _isoformat
        self.env.filters["slugify"] = slugify
        self.env.filters["absolute_url"] = self.absolute_url


def _date_format(value: dt.date | dt.datetime | None, fmt: str = "%B %d, %Y") -> str:
    if value is None:
        return ""
    return value.strftime(fmt)


def _isoformat(value: dt.date | dt.datetime | None) -> str:
    if value is None:
        return ""
    return value.isoformat()


def _load_metadata(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable theme metadata %s: %s", path, exc)
        return {}
