"""Tests for commit_stream domain models."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from commit_stream.hunks import HunkRange
from commit_stream.models import Commit, CsvFile, CsvTable, File


class TestFile:
    """Tests for the File model."""

    def test_defaults(self):
        """Only the filename is required."""
        file = File(filename="a.txt")
        assert file.old_filename == ""
        assert file.content == ""
        assert not file.is_created
        assert not file.is_deleted
        assert not file.truncated

    def test_empty_filename_rejected(self):
        """Every emitted file has a non-empty filename."""
        with pytest.raises(ValidationError):
            File(filename="")

    def test_size_counts_utf8_bytes(self):
        """Size is the encoded length of the content."""
        file = File(filename="a.txt", content="+é\n")
        assert file.size == 4
        assert file.human_size == "4 bytes"

    def test_human_size_uses_decimal_units(self):
        """Sizes above a kilobyte are shown in kB."""
        file = File(filename="a.txt", content="x" * 1500)
        assert file.human_size == "1.5 kB"

    def test_hunk_ranges(self):
        """Every hunk header in the content is reported in order."""
        content = "@@ -1,2 +1,2 @@\n-a\n+b\n@@ -10 +10,2 @@ def f():\n+c\n"
        file = File(filename="a.txt", content=content)
        assert file.hunk_ranges() == [HunkRange(1, 2, 1, 2), HunkRange(10, 1, 10, 2)]

    def test_hunk_ranges_without_hunks(self):
        """Binary or mode-only changes have no hunks."""
        assert File(filename="img.png").hunk_ranges() == []


class TestCommit:
    """Tests for the Commit model."""

    def test_dump_includes_computed_sizes(self):
        """JSON output carries the file sizes."""
        commit = Commit(
            hash="abc123",
            author_name="Alice",
            author_email="alice@example.com",
            timestamp="1700000000",
            files=[File(filename="a.txt", content="hi\n")],
        )
        data = commit.model_dump()
        assert data["files"][0]["size"] == 3
        assert data["files"][0]["human_size"] == "3 bytes"

    def test_files_default_empty(self):
        """A commit may have no files."""
        commit = Commit(hash="abc", author_name="A", author_email="a@b", timestamp="0")
        assert commit.files == []


class TestCsvFile:
    """Tests for the CsvFile model."""

    def test_header_and_rows_delegate_to_table(self):
        """The table's header and rows are exposed directly."""
        csv_file = CsvFile(
            file=File(filename="data.csv", content="a,b\n1,2\n"),
            table=CsvTable(header=["a", "b"], rows=[["1", "2"]]),
        )
        assert csv_file.header == ["a", "b"]
        assert csv_file.rows == [["1", "2"]]


class TestFileBytes:
    """Tests for content holding undecodable bytes."""

    def test_size_counts_original_bytes(self):
        """Escaped bytes count as the single bytes they stand for."""
        content = b"+caf\xe9\n".decode("utf-8", errors="surrogateescape")
        file = File(filename="menu.txt", content=content)
        assert file.size == 6
