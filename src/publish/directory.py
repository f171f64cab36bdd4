"""Publish by replacing a directory on disk (a web root or a mounted share)."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from inkpress.exceptions import PublishError
from inkpress.publish.base import SitePublisher, Target
from inkpress.utils import swap_tree

logger = logging.getLogger(__name__)


class DirectoryPublisher(SitePublisher):
    """Copies the output tree next to the target, then swaps it in."""

    target = Target.DIRECTORY

    def __init__(self, destination: Path) -> None:
        self._destination = destination

    def publish(self, output_dir: Path) -> str:
        self.check_output(output_dir)
        dest = self._destination
        out = output_dir.resolve()
        resolved = dest.resolve()
        if resolved == out or out in resolved.parents or resolved in out.parents:
            raise PublishError(f"Deploy directory {dest} overlaps the build output {output_dir}")

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            staging_root = Path(tempfile.mkdtemp(prefix=f".{dest.name}.publish-", dir=dest.parent))
        except OSError as exc:
            raise PublishError(f"Cannot prepare {dest}: {exc}") from exc

        staged = staging_root / "site"
        try:
            shutil.copytree(output_dir, staged)
            swap_tree(staged, dest)
        except OSError as exc:
            raise PublishError(f"Failed to publish to {dest}: {exc}") from exc
        finally:
            shutil.rmtree(staging_root, ignore_errors=True)

        logger.info("Published %s to %s", output_dir, dest)
        return str(dest)
