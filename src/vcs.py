"""Thin wrapper around the ``git`` command line.

Follows the same subprocess pattern for every call: capture output, bound
the run time, and turn every failure mode into a ``GitError``.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from inkpress.exceptions import GitError

logger = logging.getLogger(__name__)


def run_git(args: list[str], *, cwd: Path | None = None, timeout: int = 120) -> str:
    """Run ``git <args>`` and return its stripped stdout.

    Raises:
        GitError: If git is missing, times out, or exits non-zero.
    """
    cmd = ["git", *args]
    logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd)

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise GitError("git not found -- is 'git' on the PATH?") from e
    except subprocess.TimeoutExpired as e:
        raise GitError(f"git {args[0]} timed out after {timeout}s") from e
    except OSError as e:
        raise GitError(f"Failed to run git {args[0]}: {e}") from e

    if result.returncode != 0:
        err_text = result.stderr.strip() if result.stderr else ""
        raise GitError(f"git {args[0]} exited {result.returncode}: {err_text}")

    return result.stdout.strip()
