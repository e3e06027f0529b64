"""CLI tests for commit-stream."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from commit_stream import __version__
from commit_stream.cli import app

runner = CliRunner()

HASH_1 = "1" * 40


@pytest.fixture
def log_file(tmp_path: Path, sample_log: str) -> Path:
    """Sample log saved to disk."""
    path = tmp_path / "history.log"
    path.write_text(sample_log)
    return path


@pytest.fixture
def csv_repo(temp_git_repo: Path, git) -> Path:
    """Repository whose HEAD holds a valid and a ragged CSV file."""
    (temp_git_repo / "data.csv").write_text("name,count\napples,3\npears,5\n")
    (temp_git_repo / "ragged.csv").write_text("a,b\n1,2,3\n")
    git(temp_git_repo, "add", ".")
    git(temp_git_repo, "commit", "-m", "add data")
    return temp_git_repo


class TestMain:
    """Tests for the top-level callback."""

    def test_version(self):
        """--version prints the package version."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"commit-stream version {__version__}" in result.output

    def test_no_subcommand(self):
        """Running without a command points at --help."""
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "--help" in result.output

    def test_invalid_environment(self, log_file: Path):
        """Invalid settings exit with the invalid-argument code."""
        result = runner.invoke(app, ["parse", str(log_file)], env={"COMMIT_STREAM_BUFFER_SIZE": "4"})
        assert result.exit_code == 2
        assert "Invalid commit_stream configuration" in result.output


class TestParseCommand:
    """Tests for `commit-stream parse`."""

    def test_json_output(self, log_file: Path):
        """Commits are printed as JSON in stream order."""
        result = runner.invoke(app, ["parse", str(log_file), "--json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert [c["hash"] for c in data] == [HASH_1, "2" * 40]
        assert [f["filename"] for f in data[0]["files"]] == ["src/app.py", "new.txt"]
        assert data[0]["files"][1]["old_filename"] == "old.txt"
        assert data[1]["files"] == []

    def test_reads_stdin(self, sample_log: str):
        """`-` reads the log from standard input."""
        result = runner.invoke(app, ["parse", "-", "--json"], input=sample_log)
        assert result.exit_code == 0
        assert len(json.loads(result.stdout)) == 2

    def test_max_files(self, log_file: Path):
        """--max-files caps the files of each commit."""
        result = runner.invoke(app, ["parse", str(log_file), "--json", "--max-files", "1"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [f["filename"] for f in data[0]["files"]] == ["src/app.py"]

    def test_max_bytes(self, log_file: Path):
        """--max-bytes truncates file content."""
        result = runner.invoke(app, ["parse", str(log_file), "--json", "--max-bytes", "16"])
        assert result.exit_code == 0
        app_file = json.loads(result.stdout)[0]["files"][0]
        assert app_file["truncated"]
        assert app_file["content"] == "@@ -1,2 +1,2 @@\n"

    def test_table_output(self, log_file: Path):
        """The default table lists commits and, with --files, their files."""
        result = runner.invoke(app, ["parse", str(log_file), "--files"])
        assert result.exit_code == 0
        assert HASH_1[:12] in result.output
        assert "src/app.py" in result.output
        assert "old.txt -> new.txt" in result.output

    def test_malformed_log(self, tmp_path: Path, sample_log: str):
        """Malformed input keeps earlier commits and exits with an error."""
        path = tmp_path / "broken.log"
        path.write_text(sample_log + f"c {'3' * 40}\na Carol\ndiff --git a/x b/x\n")

        result = runner.invoke(app, ["parse", str(path), "--json"])

        assert result.exit_code == 1
        assert "missing metadata" in result.output
        assert "2 commit(s) parsed before the error" in result.output

    def test_missing_file(self, tmp_path: Path):
        """An unreadable source is an invalid argument."""
        result = runner.invoke(app, ["parse", str(tmp_path / "nope.log")])
        assert result.exit_code == 2
        assert "Cannot read" in result.output

    def test_buffer_size_too_small(self, log_file: Path):
        """--buffer-size has a lower bound."""
        result = runner.invoke(app, ["parse", str(log_file), "--buffer-size", "8"])
        assert result.exit_code == 2


class TestLogCommand:
    """Tests for `commit-stream log`."""

    def test_log_json(self, temp_git_repo: Path):
        """History of a repository is printed as JSON."""
        result = runner.invoke(app, ["log", "--repo", str(temp_git_repo), "--json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert len(data) == 1
        assert data[0]["author_name"] == "Test User"
        assert data[0]["files"][0]["filename"] == "test.txt"
        assert data[0]["files"][0]["is_created"]

    def test_log_not_a_repository(self, tmp_path: Path):
        """git failures exit with an error."""
        result = runner.invoke(app, ["log", "--repo", str(tmp_path)])
        assert result.exit_code == 1
        assert "git exited with status" in result.output


class TestShowCommand:
    """Tests for `commit-stream show`."""

    def test_show_plain(self, csv_repo: Path):
        """File content is printed as is."""
        result = runner.invoke(app, ["show", "HEAD", "data.csv", "--repo", str(csv_repo)])
        assert result.exit_code == 0
        assert "apples,3" in result.stdout
        assert "pears,5" in result.stdout

    def test_show_csv(self, csv_repo: Path):
        """--csv renders the file as a table."""
        result = runner.invoke(app, ["show", "HEAD", "data.csv", "--repo", str(csv_repo), "--csv"])
        assert result.exit_code == 0
        assert "apples" in result.output
        assert "count" in result.output

    def test_show_csv_ragged(self, csv_repo: Path):
        """Rows of the wrong width are reported."""
        result = runner.invoke(app, ["show", "HEAD", "ragged.csv", "--repo", str(csv_repo), "--csv"])
        assert result.exit_code == 1
        assert "invalid row at index 1" in result.output

    def test_show_missing_path(self, csv_repo: Path):
        """A missing path exits with an error."""
        result = runner.invoke(app, ["show", "HEAD", "missing.csv", "--repo", str(csv_repo)])
        assert result.exit_code == 1
