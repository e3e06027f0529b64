"""CLI service layer for commit_stream.

Holds the consoles, exit codes and invocation-scoped state shared by the CLI
commands, so each command resolves config the same way.
"""
from __future__ import annotations

import logging
import sys

import typer
from rich.console import Console

from commit_stream.config import CommitStreamConfig, get_config

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_INVALID_ARG = 2

console = Console(stderr=False)  # stdout for normal output
error_console = Console(stderr=True)  # stderr for errors

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _escape_rich(text: str) -> str:
    """Escape brackets to prevent Rich markup interpretation."""
    return text.replace("[", "\\[").replace("]", "\\]")


def configure_logging(verbose: bool) -> None:
    """Send library logging to stderr; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


class CLIContext:
    """Invocation-scoped context for CLI state."""

    def __init__(self, config: CommitStreamConfig):
        self.config = config


def get_cli_config(ctx: typer.Context) -> CommitStreamConfig:
    """Return the config resolved by the main callback, or the default one."""
    if ctx.obj is not None and isinstance(ctx.obj, CLIContext):
        return ctx.obj.config
    return get_config()


def apply_overrides(
    config: CommitStreamConfig,
    max_files: int | None = None,
    max_bytes: int | None = None,
    buffer_size: int | None = None,
) -> CommitStreamConfig:
    """Return a copy of config with the given CLI options applied."""
    overrides: dict[str, int] = {}
    if max_files is not None:
        overrides["max_files_per_commit"] = max_files
    if max_bytes is not None:
        overrides["max_bytes_per_file"] = max_bytes
    if buffer_size is not None:
        overrides["buffer_size"] = buffer_size
    if not overrides:
        return config
    return config.model_copy(update=overrides)
