"""Publish by force-pushing the output tree to a git branch.

This is the GitHub Pages model: the branch holds nothing but the latest
site, as a single commit with no history.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from inkpress.exceptions import GitError, PublishError
from inkpress.publish.base import SitePublisher, Target
from inkpress.vcs import run_git

logger = logging.getLogger(__name__)

COMMITTER = ("inkpress", "inkpress@localhost")


class GitBranchPublisher(SitePublisher):
    """Commits the output tree into a fresh repository and pushes it."""

    target = Target.GIT

    def __init__(
        self,
        remote: str,
        branch: str = "gh-pages",
        *,
        commit_message: str = "Publish site",
        timeout: int = 300,
    ) -> None:
        if not remote:
            raise PublishError("No deploy remote configured ([deploy] remote)")
        self._remote = remote
        self._branch = branch
        self._message = commit_message
        self._timeout = timeout

    def publish(self, output_dir: Path) -> str:
        self.check_output(output_dir)
        with tempfile.TemporaryDirectory(prefix="inkpress-publish-") as tmp:
            work = Path(tmp) / "site"
            shutil.copytree(output_dir, work)
            # GitHub Pages would otherwise run Jekyll over the tree.
            (work / ".nojekyll").touch()
            try:
                self._commit_and_push(work)
            except GitError as exc:
                raise PublishError(f"Failed to push to {self._remote}: {exc}") from exc

        location = f"{self._remote}#{self._branch}"
        logger.info("Published %s to %s", output_dir, location)
        return location

    def _commit_and_push(self, work: Path) -> None:
        name, email = COMMITTER
        run_git(["init", "--quiet"], cwd=work, timeout=self._timeout)
        run_git(
            ["symbolic-ref", "HEAD", f"refs/heads/{self._branch}"], cwd=work, timeout=self._timeout
        )
        run_git(["add", "--all"], cwd=work, timeout=self._timeout)
        run_git(
            [
                "-c",
                f"user.name={name}",
                "-c",
                f"user.email={email}",
                "commit",
                "--quiet",
                "-m",
                self._message,
            ],
            cwd=work,
            timeout=self._timeout,
        )
        run_git(
            ["push", "--force", "--quiet", self._remote, f"HEAD:refs/heads/{self._branch}"],
            cwd=work,
            timeout=self._timeout,
        )
