"""Strict front matter parsing.

A content file may start with a YAML block fenced by ``---`` lines. Unlike
lenient parsers, a block that is opened but never closed, or a fence that
is malformed, is an error: the build must fail rather than quietly treat
the whole file as body text.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml
from frontmatter.default_handlers import YAMLHandler
from pydantic import ValidationError

from inkpress.content.models import FrontMatter
from inkpress.exceptions import FrontMatterError

logger = logging.getLogger(__name__)

FENCE = "---"

_HANDLER = YAMLHandler()

_H1_RE = re.compile(r"^#\s+(.+?)\s*#*\s*$")


def split_front_matter(text: str) -> tuple[str, str]:
    """Split *text* into ``(raw_front_matter, body)``.

    Returns an empty front matter string when the file does not open a
    block.

    Raises:
        FrontMatterError: If the opening fence is malformed or the block
            is never closed.
    """
    text = text.lstrip("\ufeff")
    first = text.split("\n", 1)[0].rstrip()
    if first != FENCE:
        if first.startswith(FENCE):
            raise FrontMatterError(f"malformed front matter delimiter {first!r} (expected '---')")
        return "", text

    # python-frontmatter treats an unclosed block as plain body text.
    try:
        raw, body = _HANDLER.split(text)
    except ValueError:
        raise FrontMatterError("unterminated front matter block (missing closing '---')") from None
    return raw.removeprefix("\n"), body.removeprefix("\n")


def parse_front_matter(text: str, path: Path | None = None) -> tuple[FrontMatter, str]:
    """Parse and validate the front matter of a content file.

    When ``title`` is absent the first level-one heading of the body is
    used instead.

    Returns:
        The validated front matter and the Markdown body.

    Raises:
        FrontMatterError: For any syntax or validation problem.
    """
    try:
        raw, body = split_front_matter(text)
    except FrontMatterError as exc:
        raise FrontMatterError(exc.reason, path) from None

    data = _load_yaml(raw, path)

    if "title" not in data:
        heading = _first_heading(body)
        if heading:
            data["title"] = heading

    try:
        front_matter = FrontMatter.model_validate(data)
    except ValidationError as exc:
        raise FrontMatterError(_describe(exc), path) from exc

    return front_matter, body.lstrip("\n")


def read_content_file(path: Path) -> tuple[FrontMatter, str]:
    """Read *path* as UTF-8 and parse its front matter."""
    try:
        text = path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FrontMatterError(f"invalid text encoding ({exc.reason})", path) from exc
    except OSError as exc:
        raise FrontMatterError(f"could not read file: {exc}", path) from exc
    return parse_front_matter(text, path)


def _load_yaml(raw: str, path: Path | None) -> dict[str, Any]:
    if not raw.strip():
        return {}
    try:
        data = _HANDLER.load(raw)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" at line {mark.line + 2}" if mark is not None else ""
        problem = getattr(exc, "problem", None) or str(exc)
        raise FrontMatterError(f"invalid YAML{where}: {problem}", path) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontMatterError(
            f"front matter must be key/value pairs, got {type(data).__name__}", path
        )
    bad_keys = [k for k in data if not isinstance(k, str)]
    if bad_keys:
        raise FrontMatterError(f"front matter keys must be text: {bad_keys!r}", path)
    return data


def _first_heading(body: str) -> str | None:
    for line in body.splitlines():
        if not line.strip():
            continue
        match = _H1_RE.match(line.strip())
        return match.group(1) if match else None
    return None


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"]) or "front matter"
        parts.append(f"{field}: {err['msg']}")
    return "; ".join(parts)
