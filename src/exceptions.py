"""Exception hierarchy for inkpress.

Every failure the pipeline can surface is an ``InkpressError``. The CLI
catches this base class, prints the message and exits non-zero.
"""

from __future__ import annotations

from pathlib import Path


class InkpressError(Exception):
    """Base class for all inkpress errors."""


class ConfigError(InkpressError):
    """Raised when the site configuration cannot be loaded."""


class FrontMatterError(InkpressError):
    """Raised when a content file has malformed front matter."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        self.reason = message
        super().__init__(f"{path}: {message}" if path is not None else message)


class ContentValidationError(InkpressError):
    """Raised when one or more content files fail validation."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        noun = "problem" if len(problems) == 1 else "problems"
        detail = "\n".join(f"  - {p}" for p in problems)
        super().__init__(f"Content validation failed ({len(problems)} {noun}):\n{detail}")


class ThemeError(InkpressError):
    """Raised when the theme is missing, unpinned or cannot be fetched."""


class BuildError(InkpressError):
    """Raised when the generator fails to render the site."""


class PublishError(InkpressError):
    """Raised when the output tree cannot be published."""


class PipelineLockedError(InkpressError):
    """Raised when another pipeline run holds the project lock."""


class GitError(InkpressError):
    """Raised when a git subprocess fails."""
