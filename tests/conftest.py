"""Pytest configuration and fixtures for commit_stream tests."""
from __future__ import annotations

import io
import subprocess
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from commit_stream.config import CommitStreamConfig, _get_config_cached

HASH_1 = "1" * 40
HASH_2 = "2" * 40


def commit_header(commit_hash: str, name: str = "Alice", email: str = "alice@example.com", ts: str = "1700000000") -> str:
    """Metadata lines of one commit in the parser's input format."""
    return f"c {commit_hash}\na {name}\nm {email}\nt {ts}\n"


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def make_stream() -> Callable[[str | bytes], io.BytesIO]:
    """Build a binary stream from log text."""

    def _make(text: str | bytes) -> io.BytesIO:
        data = text.encode("utf-8") if isinstance(text, str) else text
        return io.BytesIO(data)

    return _make


@pytest.fixture
def sample_log() -> str:
    """Two commits: one with a modification and a rename, one empty."""
    return (
        commit_header(HASH_1)
        + "diff --git a/src/app.py b/src/app.py\n"
        "index 83db48f..bf269f4 100644\n"
        "--- a/src/app.py\n"
        "+++ b/src/app.py\n"
        "@@ -1,2 +1,2 @@\n"
        " def main():\n"
        "-    old_call()\n"
        "+    new_call()\n"
        "diff --git a/old.txt b/new.txt\n"
        "similarity index 90%\n"
        "rename from old.txt\n"
        "rename to new.txt\n"
        "index 1111111..2222222 100644\n"
        "--- a/old.txt\n"
        "+++ b/new.txt\n"
        "@@ -1 +1 @@\n"
        "-a\n"
        "+b\n"
        "\n"
        + commit_header(HASH_2, name="Bob", email="bob@example.com", ts="1700000100")
        + "\n"
    )


@pytest.fixture
def mock_config() -> CommitStreamConfig:
    """Create a config with small caps for testing."""
    return CommitStreamConfig(
        max_files_per_commit=10,
        max_bytes_per_file=4096,
        buffer_size=1024,
        max_show_bytes=1024,
        verbose=True,
    )


@pytest.fixture(autouse=True)
def _clear_config_cache() -> Iterator[None]:
    """Keep cached config from leaking between tests."""
    _get_config_cached.cache_clear()
    yield
    _get_config_cached.cache_clear()


def _git(repo_path: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=repo_path, capture_output=True, check=True)


@pytest.fixture
def temp_git_repo() -> Iterator[Path]:
    """Create a temporary git repository with one commit."""
    with tempfile.TemporaryDirectory() as tmp:
        repo_path = Path(tmp) / "test_repo"
        repo_path.mkdir()
        _git(repo_path, "init")
        _git(repo_path, "config", "user.email", "test@test.com")
        _git(repo_path, "config", "user.name", "Test User")
        _git(repo_path, "config", "commit.gpgsign", "false")
        (repo_path / "test.txt").write_text("initial content\n")
        _git(repo_path, "add", ".")
        _git(repo_path, "commit", "-m", "initial commit")
        yield repo_path


@pytest.fixture
def git() -> Callable[..., None]:
    """Run a git command in a repository."""
    return _git
