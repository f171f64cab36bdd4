"""The deploy pipeline: fetch theme → production build → publish.

Stages run strictly in order. Any failure stops the run before the publish
stage, so a broken build never replaces the published site. Nothing is
retried; the outcome is recorded in a ``PipelineReport`` saved next to the
config and sent to notification channels.
"""

from __future__ import annotations

import contextlib
import logging
import os
from collections.abc import Iterator
from pathlib import Path

from inkpress.build import BuildMode, SiteBuilder
from inkpress.config import InkpressConfig
from inkpress.errors import PipelineReport, Stage, save_report
from inkpress.exceptions import InkpressError, PipelineLockedError
from inkpress.notifications import send_notification
from inkpress.publish import create_publisher
from inkpress.theme.fetch import ThemeFetcher
from inkpress.theme.lock import load_theme_lock

logger = logging.getLogger(__name__)

LOCK_FILENAME = "run.lock"


@contextlib.contextmanager
def pipeline_lock(state_dir: Path) -> Iterator[Path]:
    """Hold an exclusive lock file for the duration of a run.

    Raises:
        PipelineLockedError: If another run already holds the lock.
    """
    state_dir.mkdir(parents=True, exist_ok=True)
    lock_path = state_dir / LOCK_FILENAME
    try:
        fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError as exc:
        raise PipelineLockedError(
            f"Another run is in progress ({lock_path} exists). "
            "Remove the file if no run is active."
        ) from exc
    try:
        os.write(fd, str(os.getpid()).encode("ascii"))
        os.close(fd)
        yield lock_path
    finally:
        lock_path.unlink(missing_ok=True)


def run_pipeline(
    config: InkpressConfig,
    *,
    publish: bool = True,
    notify: bool = True,
) -> PipelineReport:
    """Run fetch → build → publish once.

    Args:
        config: Site configuration.
        publish: When False the run stops after a successful build.
        notify: Send the report to configured notification channels.

    Returns:
        The finished report; ``report.success`` is False on any failure.
    """
    report = PipelineReport()
    stage = Stage.LOCK

    try:
        with pipeline_lock(config.state_dir):
            stage = Stage.FETCH
            lock = None if config.theme.path else load_theme_lock(config.theme_lock_path)
            theme_dir = ThemeFetcher(config).ensure(lock)
            report.theme_revision = lock.revision if lock is not None else str(theme_dir)
            report.mark_stage_complete(stage)

            stage = Stage.BUILD
            result = SiteBuilder(config, theme_dir).build(BuildMode.PRODUCTION)
            report.posts = result.posts
            report.pages = result.pages
            report.files_written = len(result.files)
            report.output_digest = result.digest
            report.mark_stage_complete(stage)

            if publish:
                stage = Stage.PUBLISH
                publisher = create_publisher(config)
                report.location = publisher.publish(result.output_dir)
                report.published = True
                report.mark_stage_complete(stage)
                logger.info("Deployed to %s", report.location)
    except InkpressError as exc:
        logger.error("Pipeline failed during %s: %s", stage, exc)
        report.fail(stage, exc)
    except Exception as exc:
        logger.exception("Unexpected failure during %s", stage)
        report.fail(stage, exc)

    report.finish()
    save_report(report, config.root)
    if notify:
        send_notification(config.notifications, report, site_title=config.site.title)
    return report
