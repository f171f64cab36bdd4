"""Fetch the pinned theme revision.

Two sources are supported:

* a vendored directory (``[theme] path``), typically a git submodule that
  CI checks out together with the site; and
* a git repository cloned into the theme cache and checked out detached at
  the revision recorded in the lock file.

Either way the result is a directory with a ``templates/`` folder, or a
``ThemeError``.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path

from inkpress.config import InkpressConfig
from inkpress.exceptions import GitError, ThemeError
from inkpress.theme.lock import ThemeLock, load_theme_lock, save_theme_lock
from inkpress.vcs import run_git

logger = logging.getLogger(__name__)

_SHA_RE = re.compile(r"^[0-9a-f]{40}$")


class ThemeFetcher:
    """Makes the pinned theme available on disk."""

    def __init__(self, config: InkpressConfig) -> None:
        self._config = config
        self._timeout = config.theme.git_timeout

    def ensure(self, lock: ThemeLock | None = None) -> Path:
        """Return the theme directory, fetching it first if needed.

        Raises:
            ThemeError: If the theme is unpinned, unfetchable, or not a
                theme at all.
        """
        if self._config.theme.path:
            theme_dir = self._config.resolve(self._config.theme.path)
            _check_theme_dir(
                theme_dir,
                hint="is the theme submodule initialised? (git submodule update --init)",
            )
            logger.info("Using vendored theme at %s", theme_dir)
            return theme_dir

        if lock is None:
            lock = load_theme_lock(self._config.theme_lock_path)
        if lock is None:
            raise ThemeError(
                "Theme is not pinned. Run 'inkpress theme update' to record a revision."
            )

        checkout = self._config.theme_cache_dir / self._config.theme.name
        try:
            self._checkout(lock, checkout)
        except GitError as exc:
            raise ThemeError(f"Could not fetch theme {lock.repository}: {exc}") from exc

        _check_theme_dir(checkout, hint=f"revision {lock.short_revision} has no templates/")
        return checkout

    def resolve(self, repository: str, ref: str = "HEAD") -> str:
        """Resolve *ref* in *repository* to a commit SHA.

        Annotated tags resolve to the commit they point at.
        """
        if _SHA_RE.match(ref):
            return ref
        try:
            output = run_git(["ls-remote", repository, ref], timeout=self._timeout)
        except GitError as exc:
            raise ThemeError(f"Could not resolve {ref!r} in {repository}: {exc}") from exc

        matches: list[tuple[str, str]] = []
        for line in output.splitlines():
            sha, _, name = line.partition("\t")
            if sha and name:
                matches.append((sha.strip(), name.strip()))
        if not matches:
            raise ThemeError(f"Ref {ref!r} not found in {repository}")

        for sha, name in matches:
            if name.endswith("^{}"):
                return sha
        return matches[0][0]

    def _checkout(self, lock: ThemeLock, checkout: Path) -> None:
        if not (checkout / ".git").exists():
            checkout.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Cloning theme %s", lock.repository)
            run_git(
                ["clone", "--no-checkout", lock.repository, str(checkout)],
                timeout=self._timeout,
            )

        if not self._has_commit(checkout, lock.revision):
            logger.info("Fetching theme revision %s", lock.short_revision)
            run_git(["fetch", "--tags", "origin"], cwd=checkout, timeout=self._timeout)

        run_git(
            ["checkout", "--force", "--detach", lock.revision],
            cwd=checkout,
            timeout=self._timeout,
        )
        head = run_git(["rev-parse", "HEAD"], cwd=checkout, timeout=self._timeout)
        if head != lock.revision:
            raise ThemeError(
                f"Theme checkout is at {head[:12]}, expected pinned {lock.short_revision}"
            )

    def _has_commit(self, checkout: Path, revision: str) -> bool:
        try:
            run_git(["cat-file", "-e", f"{revision}^{{commit}}"], cwd=checkout, timeout=self._timeout)
        except GitError:
            return False
        return True


def update_theme_pin(config: InkpressConfig, ref: str = "HEAD") -> ThemeLock:
    """Resolve *ref* and record it as the new theme pin.

    This is the only operation that changes the theme reference.
    """
    repository = config.theme.repository
    if not repository:
        raise ThemeError("No theme repository configured ([theme] repository)")

    fetcher = ThemeFetcher(config)
    revision = fetcher.resolve(repository, ref)
    lock = ThemeLock(
        repository=repository,
        revision=revision,
        requested=ref,
        updated_at=datetime.now(),
    )
    save_theme_lock(lock, config.theme_lock_path)
    return lock


def _check_theme_dir(theme_dir: Path, *, hint: str) -> None:
    if not theme_dir.is_dir():
        raise ThemeError(f"Theme directory not found: {theme_dir} ({hint})")
    if not (theme_dir / "templates").is_dir():
        raise ThemeError(f"{theme_dir} is not a theme: no templates/ directory ({hint})")
