"""CLI for session-explorer."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from session_explorer import __version__

app = typer.Typer(
    name="session-explorer",
    help="Browse, search and reorganize conversation session logs.",
    no_args_is_help=True,
)
console = Console()

RootOption = Annotated[
    Path | None,
    typer.Option("--root", "-r", help="Sessions root (default: $CODEX_HOME/sessions)"),
]


def version_callback(value: bool) -> None:
    if value:
        console.print(f"session-explorer {__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Enable debug logging")] = False,
) -> None:
    """Browse and reorganize conversation session logs."""
    setup_logging(verbose)


def _sessions_root(root: Path | None) -> Path:
    from session_explorer.config import resolve_sessions_root

    try:
        return resolve_sessions_root(root)
    except RuntimeError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _load_catalog(root: Path | None):
    from session_explorer.scanner import scan_sessions

    sessions_root = _sessions_root(root)
    try:
        return sessions_root, scan_sessions(sessions_root)
    except OSError as e:
        console.print(f"[red]Error: cannot read {sessions_root}: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def projects(
    root: RootOption = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List projects (working directories) found in the session store."""
    from session_explorer.searcher import projects_to_json

    sessions_root, catalog = _load_catalog(root)
    if not catalog:
        console.print(f"[yellow]No sessions found under {sessions_root}[/yellow]")
        return

    if json_output:
        console.print_json(data={"projects": projects_to_json(catalog)})
    else:
        for bucket in catalog:
            console.print(f"[cyan]{bucket.cwd}[/cyan] ({len(bucket.sessions)} sessions)", highlight=False)


@app.command()
def sessions(
    root: RootOption = None,
    project: Annotated[
        str | None, typer.Option("--project", "-p", help="Filter by project (path substring)")
    ] = None,
    query: Annotated[str | None, typer.Option("--query", "-q", help="Fuzzy filter")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List sessions, grouped by project."""
    from session_explorer.searcher import filter_projects, format_human_output, format_json_output

    _, catalog = _load_catalog(root)
    buckets = filter_projects(catalog, query or "")
    if project:
        buckets = [b for b in buckets if project in b.cwd]

    if json_output:
        format_json_output(buckets, query or "")
    else:
        format_human_output(buckets, query or "")


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Search query")],
    root: RootOption = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of projects")] = 10,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Fuzzy-search sessions by content, file name, id and project."""
    if not query.strip():
        console.print("[red]Error: Query required[/red]")
        raise typer.Exit(1)

    from session_explorer.searcher import filter_projects, format_human_output, format_json_output

    _, catalog = _load_catalog(root)
    matched = filter_projects(catalog, query)

    if json_output:
        format_json_output(matched[:limit], query)
    else:
        format_human_output(matched, query, limit=limit)


@app.command()
def preview(
    path: Annotated[Path, typer.Argument(help="Session file")],
    events: Annotated[bool, typer.Option("--events", "-e", help="Show the raw event stream")] = False,
    width: Annotated[int, typer.Option("--width", "-w", help="Render width")] = 100,
    fold: Annotated[
        list[int] | None, typer.Option("--fold", "-f", help="Fold turn N (can repeat)")
    ] = None,
) -> None:
    """Render a session's conversation or event stream."""
    from session_explorer.models import PreviewMode
    from session_explorer.preview import build_preview
    from session_explorer.scanner import parse_session_summary

    try:
        session = parse_session_summary(path)
        data = build_preview(
            session,
            PreviewMode.EVENTS if events else PreviewMode.CHAT,
            width,
            frozenset(fold or []),
        )
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Preview error: {e}[/red]")
        raise typer.Exit(1)

    for line in data.lines:
        console.print(line, markup=False, highlight=False, soft_wrap=True)


def _run_batch(action_name: str, paths: list[Path], target: str, confirmation: str | None, root: Path | None) -> None:
    from session_explorer.exceptions import ValidationError
    from session_explorer.models import Action
    from session_explorer.mutations import apply_batch
    from session_explorer.scanner import parse_session_summary

    action = Action(action_name)
    targets = []
    for path in paths:
        try:
            targets.append(parse_session_summary(path))
        except (OSError, UnicodeDecodeError) as e:
            console.print(f"[red]Error: cannot read {path}: {e}[/red]")
            raise typer.Exit(1)

    try:
        result = apply_batch(
            action,
            targets,
            target=target,
            sessions_root=_sessions_root(root),
            confirmation=confirmation,
        )
    except ValidationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    style = "red" if result.failures else "green"
    console.print(f"[{style}]{result.status_line()}[/{style}]", highlight=False)
    for new_path in result.new_paths:
        console.print(f"  {new_path}", style="dim", highlight=False)
    if result.failures:
        raise typer.Exit(1)


@app.command()
def move(
    paths: Annotated[list[Path], typer.Argument(help="Session files")],
    to: Annotated[str, typer.Option("--to", "-t", help="Target project path")],
    root: RootOption = None,
) -> None:
    """Reassign sessions to another project (rewrites cwd in place)."""
    _run_batch("move", paths, to, None, root)


@app.command()
def copy(
    paths: Annotated[list[Path], typer.Argument(help="Session files")],
    to: Annotated[str, typer.Option("--to", "-t", help="Target project path")],
    root: RootOption = None,
) -> None:
    """Copy sessions into another project."""
    _run_batch("copy", paths, to, None, root)


@app.command()
def fork(
    paths: Annotated[list[Path], typer.Argument(help="Session files")],
    to: Annotated[str, typer.Option("--to", "-t", help="Target project path")],
    root: RootOption = None,
) -> None:
    """Copy sessions into another project under a new session id."""
    _run_batch("fork", paths, to, None, root)


@app.command()
def delete(
    paths: Annotated[list[Path], typer.Argument(help="Session files")],
    confirm: Annotated[
        str | None, typer.Option("--confirm", help="Type DELETE to confirm")
    ] = None,
    root: RootOption = None,
) -> None:
    """Delete sessions (a backup of each is kept next to it)."""
    _run_batch("delete", paths, "", confirm, root)


if __name__ == "__main__":
    app()
