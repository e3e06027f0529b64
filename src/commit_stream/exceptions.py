"""Custom exceptions for commit_stream."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from commit_stream.models import Commit


class CommitStreamError(Exception):
    """Base exception for commit_stream."""
    pass


class ConfigError(CommitStreamError):
    """Configuration errors."""
    pass


class LogParseError(CommitStreamError):
    """A parse that stopped early.

    Carries the commits that were fully assembled before the failure so
    callers never lose a partially successful history.
    """

    def __init__(self, message: str, commits: list[Commit] | None = None):
        super().__init__(message)
        self.commits: list[Commit] = list(commits or [])


class StreamReadError(LogParseError):
    """Reading the underlying byte stream failed."""
    pass


class MalformedLogError(LogParseError):
    """A started commit is missing a required metadata field."""
    pass


class CsvShapeError(CommitStreamError):
    """CSV content could not be read as a table."""
    pass


class InconsistentRowWidthError(CsvShapeError):
    """A CSV row has a different column count than the header."""

    def __init__(self, row_index: int, expected: int, actual: int):
        super().__init__(
            f"CSV file has invalid row at index {row_index}: "
            f"expected {expected} columns, got {actual}"
        )
        self.row_index = row_index
        self.expected = expected
        self.actual = actual


class GitCommandError(CommitStreamError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, stderr: str = ""):
        detail = stderr.strip() or "no error output"
        super().__init__(f"git exited with status {returncode}: {detail}")
        self.command = args
        self.returncode = returncode
        self.stderr = stderr
