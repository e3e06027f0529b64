"""Git runner implementation using subprocess."""
from __future__ import annotations

import logging
import subprocess
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import IO

from commit_stream.config import CommitStreamConfig, get_config
from commit_stream.exceptions import GitCommandError
from commit_stream.git.log_parser import MetadataTag, iter_commits
from commit_stream.git.output import truncate_to_byte_limit
from commit_stream.models import Commit

logger = logging.getLogger(__name__)

# One tagged line per metadata field, in the order the parser expects
LOG_FORMAT = "%n".join(
    [
        f"{MetadataTag.HASH.value} %H",
        f"{MetadataTag.AUTHOR_NAME.value} %an",
        f"{MetadataTag.AUTHOR_EMAIL.value} %ae",
        f"{MetadataTag.TIMESTAMP.value} %at",
    ]
)


def _read_stderr(stderr: IO[bytes]) -> str:
    stderr.seek(0)
    return stderr.read().decode("utf-8", errors="replace")


class GitRunner:
    """Git runner streaming `git log -p` output into the commit parser."""

    def __init__(self, repo_path: Path | str | None = None, config: CommitStreamConfig | None = None):
        """Initialize the GitRunner.

        Args:
            repo_path: Path to the git repository. Defaults to current directory.
            config: Parser caps and git settings. Defaults to get_config().
        """
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()
        self.config = config if config is not None else get_config()

    def _command(self, args: list[str]) -> list[str]:
        return [self.config.git_binary, "-C", str(self.repo_path), *args]

    def build_log_args(
        self,
        revision: str | None = None,
        limit: int | None = None,
        since: str | None = None,
        paths: list[str] | None = None,
    ) -> list[str]:
        """Build `git log` arguments producing the parser's input format."""
        args = [
            "log",
            f"--format={LOG_FORMAT}",
            "--patch",
            "--no-color",
            "--no-ext-diff",
            "--find-renames",
        ]
        if limit is not None:
            args.extend(["-n", str(limit)])
        if since:
            args.append(f"--since={since}")
        if revision:
            args.append(revision)
        if paths:
            args.append("--")
            args.extend(paths)
        return args

    def iter_commits(
        self,
        revision: str | None = None,
        limit: int | None = None,
        since: str | None = None,
        paths: list[str] | None = None,
    ) -> Iterator[Commit]:
        """Yield commits from the repository history, newest first.

        Raises:
            GitCommandError: If git exits with a non-zero status.
            FileNotFoundError: If the git binary is not installed.
        """
        cmd = self._command(self.build_log_args(revision, limit, since, paths))
        logger.debug("Running %s", cmd)

        # stderr is spooled to a file; it is only read once git exits
        with tempfile.TemporaryFile() as err, subprocess.Popen(  # noqa: S603
            cmd,
            stdout=subprocess.PIPE,
            stderr=err,
        ) as proc:
            try:
                yield from iter_commits(
                    proc.stdout,
                    max_files_per_commit=self.config.max_files_per_commit,
                    max_bytes_per_file=self.config.max_bytes_per_file,
                    buffer_size=self.config.buffer_size,
                )
            except GeneratorExit:
                # Consumer stopped early
                proc.kill()
                raise
            returncode = proc.wait()
            stderr = _read_stderr(err)

        if returncode != 0:
            raise GitCommandError(cmd, returncode, stderr)

    def get_commits(
        self,
        revision: str | None = None,
        limit: int | None = None,
        since: str | None = None,
        paths: list[str] | None = None,
    ) -> list[Commit]:
        """Get commits from the repository.

        Args:
            revision: Revision or range to log (e.g. 'main', 'v1.0..HEAD').
            limit: Maximum number of commits to return.
            since: Only commits more recent than this date.
            paths: Restrict the log to these paths.

        Returns:
            List of Commit objects.
        """
        return list(self.iter_commits(revision=revision, limit=limit, since=since, paths=paths))

    def show_file(self, revision: str, path: str) -> tuple[str, bool]:
        """Get a file's content at a revision, capped at `max_show_bytes`.

        Returns:
            Tuple of (content, was_truncated).

        Raises:
            GitCommandError: If git exits with a non-zero status.
        """
        cmd = self._command(["show", f"{revision}:{path}"])
        with tempfile.TemporaryFile() as err, subprocess.Popen(  # noqa: S603
            cmd,
            stdout=subprocess.PIPE,
            stderr=err,
        ) as proc:
            content, truncated = truncate_to_byte_limit(proc.stdout, self.config.max_show_bytes)
            if truncated:
                # The rest of the blob is not needed
                proc.kill()
                proc.wait()
                return content, truncated
            returncode = proc.wait()
            stderr = _read_stderr(err)

        if returncode != 0:
            raise GitCommandError(cmd, returncode, stderr)
        return content, truncated
