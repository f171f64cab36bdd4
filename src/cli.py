"""CLI interface for inkpress."""

import contextlib
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from inkpress.build import BuildMode, SiteBuilder
from inkpress.config import InkpressConfig, load_config, merge_cli_overrides
from inkpress.content.reader import ContentReader
from inkpress.errors import load_report
from inkpress.exceptions import InkpressError
from inkpress.pipeline import run_pipeline
from inkpress.preview import PreviewServer
from inkpress.scaffold import init_site, new_post
from inkpress.theme.fetch import ThemeFetcher, update_theme_pin
from inkpress.theme.lock import load_theme_lock

app = typer.Typer(
    name="inkpress",
    help="Build a static blog from Markdown and a pinned theme, and deploy it.",
    no_args_is_help=True,
)
theme_app = typer.Typer(help="Inspect, fetch and update the pinned theme.", no_args_is_help=True)
app.add_typer(theme_app, name="theme")

console = Console()
_stderr_console = Console(stderr=True)


@contextlib.contextmanager
def _progress_context(quiet: bool = False):
    """Yield a Progress context or a no-op depending on quiet flag."""
    if quiet:
        yield None
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            yield progress


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from inkpress import __version__

        console.print(f"inkpress {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=_stderr_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to inkpress.toml. Defaults to ./inkpress.toml.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Show debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """inkpress - static blog builder and deployer."""
    _configure_logging(verbose)
    ctx.obj = {"config_path": config}


def _load(ctx: typer.Context, **overrides: object) -> InkpressConfig:
    config_path = ctx.obj.get("config_path") if ctx.obj else None
    try:
        cfg = load_config(config_path)
        return merge_cli_overrides(cfg, **overrides)
    except InkpressError as exc:
        _fail(exc)


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(str(exc))}")
    raise typer.Exit(1)


def _fetch_theme(cfg: InkpressConfig) -> Path:
    try:
        return ThemeFetcher(cfg).ensure()
    except InkpressError as exc:
        _fail(exc)


@app.command(name="build")
def build_cmd(
    ctx: typer.Context,
    preview: Annotated[
        bool,
        typer.Option("--preview", help="Build in preview mode (no minification)."),
    ] = False,
    drafts: Annotated[
        Optional[bool],
        typer.Option("--drafts/--no-drafts", help="Include posts marked draft."),
    ] = None,
    minify: Annotated[
        Optional[bool],
        typer.Option("--minify/--no-minify", help="Minify HTML output."),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output directory. Defaults to [build] output_dir."),
    ] = None,
) -> None:
    """Render the site into the output directory.

    Production mode is the default: a single pass with minified output.
    The output directory is only replaced when every page rendered.
    """
    cfg = _load(
        ctx,
        build_output_dir=str(output) if output else None,
        content_build_drafts=drafts,
    )
    mode = BuildMode.PREVIEW if preview else BuildMode.PRODUCTION
    theme_dir = _fetch_theme(cfg)

    with _progress_context() as progress:
        if progress:
            progress.add_task(f"Building site ({mode.value})...", total=None)
        try:
            result = SiteBuilder(cfg, theme_dir).build(mode, minify=minify)
        except InkpressError as exc:
            _fail(exc)

    console.print(f"[bold green]Built {len(result.files)} file(s)[/bold green] into {result.output_dir}")
    console.print(f"  Posts: {result.posts}")
    console.print(f"  Pages: {result.pages}")
    console.print(f"  Digest: {result.digest[:16]}")


@app.command(name="serve")
def serve_cmd(
    ctx: typer.Context,
    host: Annotated[Optional[str], typer.Option("--host", help="Interface to bind.")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Port to listen on.")] = None,
    drafts: Annotated[
        bool,
        typer.Option("--drafts/--no-drafts", help="Include posts marked draft."),
    ] = True,
) -> None:
    """Serve a live preview that re-renders whenever content changes."""
    cfg = _load(ctx, serve_host=host, serve_port=port)
    theme_dir = _fetch_theme(cfg)

    def report(result, error) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        if error is not None:
            console.print(f"[{stamp}] [red]Build failed:[/red] {escape(str(error))}")
        else:
            console.print(f"[{stamp}] [green]Rebuilt[/green] {len(result.files)} file(s)")

    server = PreviewServer(cfg, theme_dir, include_drafts=drafts, on_rebuild=report)
    console.print(
        f"Serving on [bold]http://{cfg.serve.host}:{cfg.serve.port}/[/bold] (Ctrl+C to stop)"
    )
    server.serve_forever(cfg.serve.host, cfg.serve.port, cfg.serve.poll_interval)


@app.command(name="deploy")
def deploy_cmd(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Fetch and build, but do not publish."),
    ] = False,
    notify: Annotated[
        bool,
        typer.Option("--notify/--no-notify", help="Send the run report to notification channels."),
    ] = True,
) -> None:
    """Run the pipeline: fetch theme, production build, publish.

    Any failure aborts before publishing; the published site is never
    partially updated.
    """
    cfg = _load(ctx)

    with _progress_context() as progress:
        if progress:
            progress.add_task("Running deploy pipeline...", total=None)
        report = run_pipeline(cfg, publish=not dry_run, notify=notify)

    console.print(escape(report.summary_text()))
    if not report.success:
        raise typer.Exit(1)


@app.command(name="check")
def check_cmd(ctx: typer.Context) -> None:
    """Validate every content file without building."""
    cfg = _load(ctx)
    reader = ContentReader(cfg.content.posts_dir, include_drafts=True)
    problems = reader.validate(cfg.content_dir)

    if problems:
        console.print(f"[red]{len(problems)} problem(s) found:[/red]")
        for problem in problems:
            console.print(f"  - {escape(problem)}")
        raise typer.Exit(1)

    count = len(reader.discover(cfg.content_dir))
    console.print(f"[green]All {count} content file(s) are valid.[/green]")


@theme_app.command(name="fetch")
def theme_fetch_cmd(ctx: typer.Context) -> None:
    """Fetch the pinned theme into the local cache."""
    cfg = _load(ctx)
    theme_dir = _fetch_theme(cfg)
    console.print(f"[green]Theme ready:[/green] {theme_dir}")


@theme_app.command(name="update")
def theme_update_cmd(
    ctx: typer.Context,
    ref: Annotated[
        str,
        typer.Argument(help="Branch, tag or commit to pin. Defaults to the remote HEAD."),
    ] = "HEAD",
) -> None:
    """Pin the theme to a new revision."""
    cfg = _load(ctx)
    try:
        lock = update_theme_pin(cfg, ref)
    except InkpressError as exc:
        _fail(exc)
    console.print(f"[green]Pinned[/green] {lock.repository} at {lock.short_revision} ({ref})")


@theme_app.command(name="show")
def theme_show_cmd(ctx: typer.Context) -> None:
    """Show the configured theme and its pin."""
    cfg = _load(ctx)
    if cfg.theme.path:
        console.print(f"Vendored theme: {cfg.resolve(cfg.theme.path)}")
        return
    try:
        lock = load_theme_lock(cfg.theme_lock_path)
    except InkpressError as exc:
        _fail(exc)
    if lock is None:
        console.print("[yellow]Theme is not pinned.[/yellow] Run 'inkpress theme update'.")
        raise typer.Exit(1)
    console.print(f"Repository: {lock.repository}")
    console.print(f"Revision:   {lock.revision}")
    if lock.requested:
        console.print(f"Requested:  {lock.requested}")
    console.print(f"Updated:    {lock.updated_at.isoformat(timespec='seconds')}")


@app.command(name="new")
def new_cmd(
    ctx: typer.Context,
    title: Annotated[str, typer.Argument(help="Title of the new post.")],
    post_date: Annotated[
        Optional[str],
        typer.Option("--date", help="Publication date (YYYY-MM-DD). Defaults to today."),
    ] = None,
    draft: Annotated[
        bool,
        typer.Option("--draft/--publish", help="Mark the post as a draft."),
    ] = True,
) -> None:
    """Create a new post with front matter."""
    cfg = _load(ctx)

    on: date | None = None
    if post_date:
        try:
            on = datetime.strptime(post_date, "%Y-%m-%d").date()
        except ValueError:
            console.print(f"[red]Error:[/red] Invalid date format: {post_date}")
            console.print("Use YYYY-MM-DD format (e.g., 2026-01-01)")
            raise typer.Exit(1)

    try:
        path = new_post(cfg, title, on=on, draft=draft)
    except InkpressError as exc:
        _fail(exc)
    console.print(f"[green]Created[/green] {path}")


@app.command(name="init")
def init_cmd(
    directory: Annotated[
        Path,
        typer.Argument(help="Directory for the new site.", file_okay=False),
    ] = Path("."),
    title: Annotated[str, typer.Option("--title", "-t", help="Site title.")] = "My Blog",
    theme_repo: Annotated[
        Optional[str],
        typer.Option("--theme-repo", help="Git URL of an external theme to pin."),
    ] = None,
    branch: Annotated[
        str,
        typer.Option("--branch", help="Branch whose pushes trigger a deploy."),
    ] = "main",
) -> None:
    """Create a new site: config, content folders and CI workflow."""
    created = init_site(directory, title, theme_repository=theme_repo or "", trigger_branch=branch)
    if not created:
        console.print("[yellow]Nothing to do; the site already exists.[/yellow]")
        return
    console.print(f"[bold green]Initialised site in {directory}[/bold green]")
    for path in created:
        console.print(f"  {path}")
    if theme_repo:
        console.print("Next: run 'inkpress theme update' to pin the theme.")


@app.command(name="status")
def status_cmd(ctx: typer.Context) -> None:
    """Show the report of the last deploy run."""
    cfg = _load(ctx)
    report = load_report(cfg.root)
    if report is None:
        console.print("[yellow]No deploy has run yet.[/yellow]")
        return
    console.print(escape(report.summary_text()))
    if report.output_digest:
        console.print(f"Output digest: {report.output_digest}")


if __name__ == "__main__":
    app()
