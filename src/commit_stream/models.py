"""Domain entities for commit_stream."""
from __future__ import annotations

from pydantic import BaseModel, Field, computed_field
from rich.filesize import decimal

from commit_stream.hunks import HunkRange, parse_hunk_header


class File(BaseModel):
    """One changed path within a commit."""
    filename: str = Field(min_length=1)
    old_filename: str = ""
    content: str = ""
    is_created: bool = False
    is_deleted: bool = False
    truncated: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def size(self) -> int:
        """Size of the captured content in bytes."""
        return len(self.content.encode("utf-8", errors="surrogateescape"))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def human_size(self) -> str:
        """Captured content size, e.g. '1.2 kB'."""
        return decimal(self.size)

    def hunk_ranges(self) -> list[HunkRange]:
        """Line ranges of the hunks captured in content."""
        ranges = []
        for line in self.content.splitlines():
            if line.startswith("@@"):
                hunk = parse_hunk_header(line)
                if hunk is not None:
                    ranges.append(hunk)
        return ranges


class Commit(BaseModel):
    """One historical change set and its changed files."""
    hash: str
    author_name: str
    author_email: str
    timestamp: str
    files: list[File] = Field(default_factory=list)


class CsvTable(BaseModel):
    """A rectangular CSV table: a header row and data rows of equal width."""
    header: list[str]
    rows: list[list[str]] = Field(default_factory=list)


class CsvFile(BaseModel):
    """A changed file whose content was read as CSV."""
    file: File
    table: CsvTable

    @property
    def header(self) -> list[str]:
        return self.table.header

    @property
    def rows(self) -> list[list[str]]:
        return self.table.rows
