"""Models for content files."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inkpress.utils import slugify


class ContentKind(StrEnum):
    """Kinds of content the generator renders."""

    POST = "post"
    PAGE = "page"


class FrontMatter(BaseModel):
    """Key/value metadata from the top of a content file.

    Only the keys below are used by the generator. Anything else is kept
    in ``model_extra`` and handed to themes as ``params``.
    """

    model_config = ConfigDict(extra="allow")

    title: str = Field(min_length=1)
    date: dt.datetime | dt.date | None = None
    description: str = ""
    layout: str | None = None
    tags: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    slug: str | None = None
    draft: bool = False

    @field_validator("title", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        text = value.strip()
        if not text:
            return None
        try:
            return dt.date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return dt.datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"unrecognised date {value!r} (use YYYY-MM-DD)") from exc

    @field_validator("tags", "categories", mode="before")
    @classmethod
    def _coerce_terms(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            terms = []
            for item in value:
                if isinstance(item, (dict, list)):
                    raise ValueError("terms must be plain text")
                terms.append(str(item).strip())
            return [t for t in terms if t]
        return value

    @field_validator("slug", "layout", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def params(self) -> dict[str, Any]:
        """Unrecognised keys, in file order."""
        return dict(self.model_extra or {})


class ContentItem(BaseModel):
    """A post or page. Identity is the source path."""

    source_path: PurePosixPath
    kind: ContentKind
    front_matter: FrontMatter
    body: str = ""
    url: str = ""

    @property
    def title(self) -> str:
        return self.front_matter.title

    @property
    def date(self) -> dt.datetime | dt.date | None:
        return self.front_matter.date

    @property
    def tags(self) -> list[str]:
        return self.front_matter.tags

    @property
    def categories(self) -> list[str]:
        return self.front_matter.categories

    @property
    def is_draft(self) -> bool:
        return self.front_matter.draft

    @property
    def slug(self) -> str:
        """Front matter slug, else the slugified file name.

        Empty when the front matter slug has no URL-safe characters; the
        reader rejects such items.
        """
        if self.front_matter.slug:
            return slugify(self.front_matter.slug)
        return slugify(self.source_path.stem) or "index"

    @property
    def output_path(self) -> PurePosixPath:
        """Path of the rendered file relative to the output root."""
        return PurePosixPath(self.url.strip("/")) / "index.html"

    @property
    def sort_key(self) -> tuple[dt.datetime, str]:
        """Newest-first ordering helper; undated items sort last."""
        return (published_at(self.date), self.url)


def published_at(value: dt.datetime | dt.date | None) -> dt.datetime:
    """Normalise a front matter date to a naive UTC datetime for ordering."""
    if value is None:
        return dt.datetime.min
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value
    return dt.datetime(value.year, value.month, value.day)
