"""Reports for fetch → build → publish runs.

A run stops at its first failure, so a report carries at most one
``PipelineError``. The last report is kept next to the config file so
``inkpress status`` can show it after CI finishes.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

REPORT_FILENAME = ".inkpress-last-run.json"


class Stage(StrEnum):
    """Pipeline stages, in run order. ``lock`` guards the other three."""

    LOCK = "lock"
    FETCH = "fetch"
    BUILD = "build"
    PUBLISH = "publish"


class PipelineError(BaseModel):
    """The failure that stopped a run."""

    stage: Stage
    error_type: str
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_exception(cls, stage: Stage, exc: BaseException) -> PipelineError:
        return cls(stage=stage, error_type=type(exc).__name__, message=str(exc))


class PipelineReport(BaseModel):
    """What a deploy run fetched, built and published."""

    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None
    stages_completed: list[Stage] = Field(default_factory=list)
    error: PipelineError | None = None
    theme_revision: str = ""
    posts: int = 0
    pages: int = 0
    files_written: int = 0
    output_digest: str = ""
    published: bool = False
    location: str = ""

    def fail(self, stage: Stage, exc: BaseException) -> None:
        """Record the exception that stopped the run at *stage*."""
        self.error = PipelineError.from_exception(stage, exc)

    def mark_stage_complete(self, stage: Stage) -> None:
        if stage not in self.stages_completed:
            self.stages_completed.append(stage)

    def finish(self) -> None:
        self.finished_at = datetime.now()

    @property
    def success(self) -> bool:
        return self.error is None

    def summary_text(self) -> str:
        """Human-readable summary, used by the CLI and notifications."""
        duration = ""
        if self.finished_at:
            secs = (self.finished_at - self.started_at).total_seconds()
            duration = f" in {secs:.0f}s" if secs < 60 else f" in {secs / 60:.1f}m"

        if self.error is not None:
            headline = f"Deploy failed during {self.error.stage}"
        elif self.published:
            headline = "Deploy succeeded"
        else:
            headline = "Build succeeded, not published"
        lines = [headline + duration]

        if self.theme_revision:
            lines.append(f"Theme: {self.theme_revision[:12]}")
        if Stage.BUILD in self.stages_completed:
            lines.append(
                f"Built: {self.posts} post(s), {self.pages} page(s), {self.files_written} files"
            )
        if self.published:
            lines.append(f"Published: yes ({self.location})" if self.location else "Published: yes")
        else:
            lines.append("Published: no")
        if self.error is not None:
            lines.append(f"Error: {self.error.error_type}: {self.error.message}")

        return "\n".join(lines)


def save_report(report: PipelineReport, root: Path) -> Path:
    """Write *report* to ``root/.inkpress-last-run.json``."""
    report_path = root / REPORT_FILENAME
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    return report_path


def load_report(root: Path) -> PipelineReport | None:
    """Load the last report, or None if there is none or it is unreadable."""
    report_path = root / REPORT_FILENAME
    if not report_path.exists():
        return None
    try:
        data = json.loads(report_path.read_text(encoding="utf-8"))
        return PipelineReport.model_validate(data)
    except (json.JSONDecodeError, ValueError):
        logger.warning("Corrupt report at %s", report_path)
        return None
