"""Small filesystem and text helpers shared across the pipeline."""

from __future__ import annotations

import hashlib
import os
import re
import shutil
import tempfile
import unicodedata
from pathlib import Path

_SLUG_STRIP = re.compile(r"[^\w\s-]")
_SLUG_DASH = re.compile(r"[-\s_]+")


def slugify(text: str) -> str:
    """Turn arbitrary text into a lowercase, URL-safe slug.

    Accented characters are folded to ASCII; anything left that is not a
    word character becomes a single dash.
    """
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    cleaned = _SLUG_STRIP.sub("", normalized.lower())
    return _SLUG_DASH.sub("-", cleaned).strip("-")


def atomic_write(path: Path, content: str | bytes) -> None:
    """Write *content* to *path* via a temp file and ``os.replace``.

    Readers never observe a half-written file. Parent directories are
    created as needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8") if isinstance(content, str) else content
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def iter_files(root: Path) -> list[Path]:
    """Return every regular file under *root*, sorted by relative path."""
    if not root.is_dir():
        return []
    return sorted(
        (p for p in root.rglob("*") if p.is_file()),
        key=lambda p: p.relative_to(root).as_posix(),
    )


def tree_digest(root: Path) -> str:
    """SHA-256 over every file's relative path and bytes under *root*.

    Two trees with the same digest are byte-identical.
    """
    digest = hashlib.sha256()
    for path in iter_files(root):
        rel = path.relative_to(root).as_posix()
        digest.update(rel.encode("utf-8"))
        digest.update(b"\0")
        digest.update(hashlib.sha256(path.read_bytes()).digest())
    return digest.hexdigest()


def swap_tree(staged: Path, target: Path) -> None:
    """Replace the directory *target* with *staged* in one step.

    The previous tree is moved aside, the staged one renamed into place,
    and only then is the old one deleted. If the rename fails the old tree
    is restored. Both paths must be on the same filesystem.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    backup: Path | None = None
    if target.exists():
        backup = target.with_name(f".{target.name}.old-{os.getpid()}")
        if backup.exists():
            shutil.rmtree(backup)
        os.replace(target, backup)
    try:
        os.replace(staged, target)
    except OSError:
        if backup is not None:
            os.replace(backup, target)
        raise
    if backup is not None:
        shutil.rmtree(backup, ignore_errors=True)
