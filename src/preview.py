"""Live preview: serve the site locally and rebuild when sources change.

Changes are detected by polling file modification times and sizes, which
works the same on every platform and needs no extra service. The server
keeps serving the last good build when a rebuild fails.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections.abc import Callable, Iterable
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from inkpress.build import BuildMode, BuildResult, SiteBuilder
from inkpress.config import InkpressConfig, merge_cli_overrides
from inkpress.exceptions import InkpressError

logger = logging.getLogger(__name__)

Snapshot = dict[str, tuple[int, int]]

_WILDCARD_HOSTS = ("", "0.0.0.0", "::")


class ChangeWatcher:
    """Detects added, removed or modified files under a set of roots."""

    def __init__(self, roots: Iterable[Path]) -> None:
        self._roots = [r for r in roots]
        self._snapshot = self.snapshot()

    def snapshot(self) -> Snapshot:
        state: Snapshot = {}
        for root in self._roots:
            if root.is_file():
                paths: Iterable[Path] = [root]
            elif root.is_dir():
                paths = (p for p in root.rglob("*") if p.is_file())
            else:
                continue
            for path in paths:
                try:
                    stat = path.stat()
                except OSError:
                    continue
                state[str(path)] = (stat.st_mtime_ns, stat.st_size)
        return state

    def changed(self) -> bool:
        """Return True (once) if anything changed since the last call."""
        current = self.snapshot()
        if current != self._snapshot:
            self._snapshot = current
            return True
        return False


class _QuietHandler(SimpleHTTPRequestHandler):
    def log_message(self, format: str, *args: object) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)


class PreviewServer:
    """Builds the site in preview mode and serves it over HTTP."""

    def __init__(
        self,
        config: InkpressConfig,
        theme_dir: Path,
        *,
        include_drafts: bool = True,
        output_dir: Path | None = None,
        on_rebuild: Callable[[BuildResult | None, InkpressError | None], None] | None = None,
    ) -> None:
        self._config = config
        self._theme_dir = theme_dir
        self._include_drafts = include_drafts
        self.output_dir = output_dir or config.state_dir / "preview"
        self._on_rebuild = on_rebuild
        self.watcher = ChangeWatcher(
            [
                config.content_dir,
                config.static_dir,
                theme_dir,
                config.config_path,
            ]
        )
        self._httpd: ThreadingHTTPServer | None = None
        self.url: str | None = None

    def rebuild(self) -> BuildResult | None:
        """Rebuild the preview tree; returns None if the build failed."""
        try:
            builder = SiteBuilder(self._config, self._theme_dir)
            result = builder.build(
                BuildMode.PREVIEW,
                output_dir=self.output_dir,
                include_drafts=self._include_drafts,
                minify=False,
            )
        except InkpressError as exc:
            logger.error("Rebuild failed, still serving the previous build: %s", exc)
            if self._on_rebuild is not None:
                self._on_rebuild(None, exc)
            return None
        if self._on_rebuild is not None:
            self._on_rebuild(result, None)
        return result

    def start(self, host: str, port: int) -> tuple[str, int]:
        """Start serving in a background thread; returns the bound address.

        Later rebuilds link to the local server instead of ``site.base_url``.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        handler = functools.partial(_QuietHandler, directory=str(self.output_dir))
        self._httpd = ThreadingHTTPServer((host, port), handler)
        thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        thread.start()
        bound_host = str(self._httpd.server_address[0])
        bound_port = int(self._httpd.server_address[1])
        link_host = "localhost" if bound_host in _WILDCARD_HOSTS else bound_host
        self.url = f"http://{link_host}:{bound_port}/"
        self._config = merge_cli_overrides(self._config, site_base_url=self.url)
        logger.info("Serving %s on %s", self.output_dir, self.url)
        return bound_host, bound_port

    def stop(self) -> None:
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None

    def poll_once(self) -> BuildResult | None:
        """Rebuild if sources changed since the last poll."""
        if self.watcher.changed():
            logger.info("Change detected, rebuilding")
            return self.rebuild()
        return None

    def serve_forever(self, host: str, port: int, poll_interval: float = 1.0) -> None:
        """Serve, build, and rebuild on change until interrupted."""
        self.start(host, port)
        self.rebuild()
        try:
            while True:
                time.sleep(poll_interval)
                self.poll_once()
        except KeyboardInterrupt:
            logger.info("Stopping preview server")
        finally:
            self.stop()
