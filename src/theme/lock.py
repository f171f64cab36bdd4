"""The theme pin.

Records which revision of the external theme a site builds against. The
lock changes only through an explicit update; builds read it and never
write it.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from inkpress.exceptions import ThemeError
from inkpress.utils import atomic_write

logger = logging.getLogger(__name__)


class ThemeLock(BaseModel):
    """A pinned theme revision."""

    repository: str
    revision: str
    requested: str = ""
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def short_revision(self) -> str:
        return self.revision[:12]


def load_theme_lock(path: Path) -> ThemeLock | None:
    """Load the theme pin from disk.

    Returns None when no pin has been recorded yet.

    Raises:
        ThemeError: If the lock file exists but cannot be parsed.
    """
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ThemeLock.model_validate(data)
    except (json.JSONDecodeError, ValidationError, OSError) as exc:
        raise ThemeError(f"Corrupt theme lock at {path}: {exc}") from exc


def save_theme_lock(lock: ThemeLock, path: Path) -> None:
    """Write the theme pin to disk."""
    atomic_write(path, lock.model_dump_json(indent=2) + "\n")
    logger.info("Pinned theme %s at %s", lock.repository, lock.short_revision)
