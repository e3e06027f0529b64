"""CLI entry point for commit_stream."""

from __future__ import annotations

import json
import sys
from collections.abc import Iterable
from pathlib import Path

import typer
from rich.table import Table

from commit_stream import __version__
from commit_stream.cli_services import (
    EXIT_ERROR,
    EXIT_INVALID_ARG,
    EXIT_SUCCESS,
    CLIContext,
    _escape_rich,
    apply_overrides,
    configure_logging,
    console,
    error_console,
    get_cli_config,
)
from commit_stream.config import get_config
from commit_stream.csv_table import parse_csv_file
from commit_stream.exceptions import (
    ConfigError,
    CsvShapeError,
    GitCommandError,
    LogParseError,
)
from commit_stream.git.log_parser import iter_commits
from commit_stream.git.runner import GitRunner
from commit_stream.models import Commit, File

app = typer.Typer(
    name="commit-stream",
    help="Parse git log and diff output into structured commits",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

_SHORT_HASH_LENGTH = 12


def _file_status(file: File) -> str:
    if file.is_created:
        return "added"
    if file.is_deleted:
        return "deleted"
    if file.old_filename:
        return "renamed"
    return "modified"


def _render_table(commits: Iterable[Commit], show_files: bool) -> int:
    """Print commits as a table; returns the number printed."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Commit", style="cyan", no_wrap=True)
    table.add_column("Author")
    table.add_column("Timestamp")
    table.add_column("Files", justify="right")

    count = 0
    for commit in commits:
        count += 1
        table.add_row(
            commit.hash[:_SHORT_HASH_LENGTH],
            _escape_rich(f"{commit.author_name} <{commit.author_email}>"),
            commit.timestamp,
            str(len(commit.files)),
        )
        if show_files:
            for file in commit.files:
                path = file.filename
                if file.old_filename and file.old_filename != file.filename:
                    path = f"{file.old_filename} -> {file.filename}"
                marker = " (truncated)" if file.truncated else ""
                table.add_row(
                    "",
                    f"  [dim]{_file_status(file)}[/dim] {_escape_rich(path)}",
                    f"{file.human_size}{marker}",
                    f"{len(file.hunk_ranges())} hunks",
                )

    console.print(table)
    return count


def _print_json(data: list[dict]) -> None:
    # Use built-in print to avoid Rich markup interpretation
    print(json.dumps(data, indent=2))


def _emit(commits: Iterable[Commit], as_json: bool, show_files: bool) -> None:
    """Print commits, keeping what was parsed before a parse failure."""
    parsed: list[Commit] = []

    def _collect() -> Iterable[Commit]:
        for commit in commits:
            parsed.append(commit)
            yield commit

    try:
        if as_json:
            _print_json([c.model_dump() for c in _collect()])
        else:
            _render_table(_collect(), show_files)
    except LogParseError as e:
        if parsed:
            if as_json:
                _print_json([c.model_dump() for c in parsed])
            else:
                _render_table(parsed, show_files)
        error_console.print(f"[red]Error:[/red] {_escape_rich(str(e))}")
        error_console.print(f"[dim]{len(parsed)} commit(s) parsed before the error[/dim]")
        raise typer.Exit(code=EXIT_ERROR)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log parser diagnostics to stderr",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Read COMMIT_STREAM_* settings from this file",
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        help="Show version information",
        is_flag=True,
    ),
):
    """commit-stream - structured commits from git log output."""
    if version:
        console.print(f"commit-stream version {__version__}")
        raise typer.Exit(code=EXIT_SUCCESS)

    try:
        config = get_config(env_file=env_file)
    except ConfigError as e:
        error_console.print(f"[red]Error:[/red] {_escape_rich(str(e))}")
        raise typer.Exit(code=EXIT_INVALID_ARG)

    configure_logging(verbose or config.verbose)
    ctx.obj = CLIContext(config=config)

    if ctx.invoked_subcommand is None:
        console.print("[bold]commit-stream[/bold] - structured git history")
        console.print("Use --help for usage information")
        raise typer.Exit(code=EXIT_SUCCESS)


@app.command()
def log(
    ctx: typer.Context,
    revision: str | None = typer.Argument(None, help="Revision or range, e.g. main or v1.0..HEAD"),
    repo: Path = typer.Option(Path("."), "--repo", "-r", help="Repository path"),
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Maximum commits"),
    since: str | None = typer.Option(None, "--since", help="Only commits after this date"),
    max_files: int | None = typer.Option(None, "--max-files", min=0, help="Files kept per commit"),
    max_bytes: int | None = typer.Option(None, "--max-bytes", min=0, help="Diff bytes kept per file"),
    files: bool = typer.Option(False, "--files", "-f", help="List changed files"),
    as_json: bool = typer.Option(False, "--json", help="Print commits as JSON"),
) -> None:
    """Parse the history of a repository."""
    config = apply_overrides(get_cli_config(ctx), max_files=max_files, max_bytes=max_bytes)
    runner = GitRunner(repo_path=repo, config=config)

    try:
        _emit(runner.iter_commits(revision=revision, limit=limit, since=since), as_json, files)
    except GitCommandError as e:
        error_console.print(f"[red]Error:[/red] {_escape_rich(str(e))}")
        raise typer.Exit(code=EXIT_ERROR)
    except FileNotFoundError:
        error_console.print(f"[red]Error:[/red] git binary not found: {_escape_rich(config.git_binary)}")
        raise typer.Exit(code=EXIT_ERROR)


@app.command()
def parse(
    ctx: typer.Context,
    source: str = typer.Argument("-", help="File with git log -p output, or - for stdin"),
    max_files: int | None = typer.Option(None, "--max-files", min=0, help="Files kept per commit"),
    max_bytes: int | None = typer.Option(None, "--max-bytes", min=0, help="Diff bytes kept per file"),
    buffer_size: int | None = typer.Option(None, "--buffer-size", min=16, help="Reader buffer in bytes"),
    files: bool = typer.Option(False, "--files", "-f", help="List changed files"),
    as_json: bool = typer.Option(False, "--json", help="Print commits as JSON"),
) -> None:
    """Parse saved `git log -p` output produced with the commit-stream format."""
    config = apply_overrides(
        get_cli_config(ctx),
        max_files=max_files,
        max_bytes=max_bytes,
        buffer_size=buffer_size,
    )

    def _parse(stream) -> None:
        _emit(
            iter_commits(
                stream,
                max_files_per_commit=config.max_files_per_commit,
                max_bytes_per_file=config.max_bytes_per_file,
                buffer_size=config.buffer_size,
            ),
            as_json,
            files,
        )

    if source == "-":
        _parse(sys.stdin.buffer)
        return

    try:
        with open(source, "rb") as stream:
            _parse(stream)
    except OSError as e:
        error_console.print(f"[red]Error:[/red] Cannot read {_escape_rich(source)}: {e}")
        raise typer.Exit(code=EXIT_INVALID_ARG)


@app.command()
def show(
    ctx: typer.Context,
    revision: str = typer.Argument(..., help="Revision holding the file"),
    path: str = typer.Argument(..., help="File path relative to the repository root"),
    repo: Path = typer.Option(Path("."), "--repo", "-r", help="Repository path"),
    as_csv: bool = typer.Option(False, "--csv", help="Render the file as a CSV table"),
) -> None:
    """Show a file at a revision, capped at the configured size."""
    runner = GitRunner(repo_path=repo, config=get_cli_config(ctx))

    try:
        content, truncated = runner.show_file(revision, path)
    except GitCommandError as e:
        error_console.print(f"[red]Error:[/red] {_escape_rich(str(e))}")
        raise typer.Exit(code=EXIT_ERROR)

    file = File(filename=path, content=content, truncated=truncated)
    if truncated:
        error_console.print(f"[yellow]Output truncated to {file.human_size}[/yellow]")

    if not as_csv:
        console.print(content, markup=False, highlight=False, end="" if content.endswith("\n") else "\n")
        return

    try:
        csv_file = parse_csv_file(file)
    except CsvShapeError as e:
        error_console.print(f"[red]Error:[/red] {_escape_rich(str(e))}")
        raise typer.Exit(code=EXIT_ERROR)

    table = Table(*(_escape_rich(name) for name in csv_file.header), show_header=True, header_style="bold")
    for row in csv_file.rows:
        table.add_row(*(_escape_rich(cell) for cell in row))
    console.print(table)
