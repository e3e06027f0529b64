"""Streaming parser for `git log -p` output.

The log is produced with a fixed metadata format, one tagged line per field::

    c <hash>
    a <author name>
    m <author email>
    t <timestamp>
    diff --git a/path b/path
    ...

followed by the unified diff of every changed file. The parser reads the
stream once, front to back, and enforces two caps: the number of files kept
per commit and the number of content bytes kept per file. Anything beyond a
cap is skipped without losing track of where the next file or commit starts.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import BinaryIO

from commit_stream.config import DEFAULT_BUFFER_SIZE
from commit_stream.exceptions import LogParseError, MalformedLogError
from commit_stream.git.line_source import Line, LineSource
from commit_stream.models import Commit, File

logger = logging.getLogger(__name__)

# Tag character plus the separating space
_MARKER_WIDTH = 2

_DIFF_GIT_PREFIX = b"diff --git "
_DIFF_GIT_RE = re.compile(r'^diff --git "?a/(.+?)"? "?b/(.+?)"?$')
_COMMIT_LINE_RE = re.compile(rb"^c [0-9a-f]{4,64}$")
_BOUNDARY_PREFIXES = (_DIFF_GIT_PREFIX, b"c ")

# Preamble lines that carry nothing we keep
_SKIPPED_HEADER_PREFIXES = (
    "old mode",
    "new mode",
    "index ",
    "similarity index",
    "dissimilarity index",
)


class MetadataTag(str, Enum):
    """Leading character of each commit metadata line."""
    HASH = "c"
    AUTHOR_NAME = "a"
    AUTHOR_EMAIL = "m"
    TIMESTAMP = "t"


class ParserState(Enum):
    """States of the commit assembler."""
    AWAITING_COMMIT_HEADER = auto()
    PARSING_COMMIT_METADATA = auto()
    PARSING_DIFF_SECTION = auto()
    END_OF_INPUT = auto()


class BoundaryKind(Enum):
    """What ended a file's header or body."""
    NEXT_FILE = auto()
    NEXT_COMMIT = auto()
    END_OF_SECTION = auto()
    END_OF_INPUT = auto()


@dataclass
class _Boundary:
    kind: BoundaryKind
    # The line that starts the next file or commit, handed to its owner
    line: Line | None = None


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _decode_content(data: bytes) -> str:
    # Undecodable bytes survive as surrogates and re-encode to the same bytes
    return data.decode("utf-8", errors="surrogateescape")


def _unquote(path: str) -> str:
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):  # noqa: PLR2004
        return path[1:-1]
    return path


def _strip_prefix(path: str, prefix: str) -> str:
    return path[len(prefix):] if path.startswith(prefix) else path


def _is_commit_line(data: bytes) -> bool:
    return _COMMIT_LINE_RE.match(data) is not None


def _next_boundary_aware_line(source: LineSource) -> Line | None:
    """Read a line without reassembling it, unless it may start a file or commit."""
    line = source.next_line(reassemble=False)
    if line is not None and line.fragmented and line.data.startswith(_BOUNDARY_PREFIXES):
        return source.complete(line)
    return line


@dataclass
class _CommitDraft:
    """Commit under construction; fields stay None until their line is seen."""
    hash: str
    author_name: str | None = None
    author_email: str | None = None
    timestamp: str | None = None
    files: list[File] = field(default_factory=list)

    def missing_fields(self) -> list[str]:
        return [
            name
            for name in ("author_name", "author_email", "timestamp")
            if getattr(self, name) is None
        ]

    def check(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise MalformedLogError(
                f"Commit {self.hash} is missing metadata: {', '.join(missing)}"
            )

    def build(self) -> Commit:
        self.check()
        return Commit(
            hash=self.hash,
            author_name=self.author_name,
            author_email=self.author_email,
            timestamp=self.timestamp,
            files=self.files,
        )


@dataclass
class _FileDraft:
    """File record under construction plus its content accumulator."""
    filename: str = ""
    old_filename: str = ""
    is_created: bool = False
    is_deleted: bool = False
    truncated: bool = False
    started: bool = False
    # A rename/copy pair names the paths; ---/+++ lines no longer apply
    explicit_paths: bool = False
    # Byte cap reached; nothing more is appended
    capped: bool = False
    size: int = 0
    lines: list[bytes] = field(default_factory=list)

    def append(self, data: bytes, max_bytes: int | None) -> None:
        if self.capped:
            return
        needed = len(data) + 1
        if max_bytes is not None and self.size + needed > max_bytes:
            self.capped = True
            self.truncated = True
            return
        self.lines.append(data)
        self.size += needed

    def build(self) -> File | None:
        if not self.filename:
            return None

        old_filename = self.old_filename
        if self.is_deleted:
            old_filename = old_filename or self.filename
        elif old_filename == self.filename:
            old_filename = ""

        return File(
            filename=self.filename,
            old_filename=old_filename,
            content=_decode_content(b"".join(line + b"\n" for line in self.lines)),
            is_created=self.is_created,
            is_deleted=self.is_deleted,
            truncated=self.truncated,
        )


class CommitHeaderParser:
    """Turns tagged metadata lines into commit drafts."""

    def __init__(self) -> None:
        self.current: _CommitDraft | None = None
        self._handlers: dict[MetadataTag, Callable[[str], Commit | None]] = {
            MetadataTag.HASH: self._start_commit,
            MetadataTag.AUTHOR_NAME: self._field_setter("author_name"),
            MetadataTag.AUTHOR_EMAIL: self._field_setter("author_email"),
            MetadataTag.TIMESTAMP: self._field_setter("timestamp"),
        }

    @staticmethod
    def classify(data: bytes) -> MetadataTag | None:
        """Return the metadata tag of a line, or None for any other line."""
        if len(data) < _MARKER_WIDTH or data[1:_MARKER_WIDTH] != b" ":
            return None
        try:
            return MetadataTag(chr(data[0]))
        except ValueError:
            return None

    def feed(self, tag: MetadataTag, data: bytes) -> Commit | None:
        """Apply one metadata line.

        Returns:
            The previous commit when a hash line starts a new one.
        """
        return self._handlers[tag](_decode(data[_MARKER_WIDTH:]))

    def finish(self) -> Commit | None:
        """Close the current commit and return it."""
        draft, self.current = self.current, None
        return draft.build() if draft is not None else None

    def discard_incomplete(self) -> Commit | None:
        """Close the current commit, dropping it if its metadata is incomplete."""
        if self.current is not None and self.current.missing_fields():
            logger.warning(
                "Dropping commit %s: stream ended before its metadata was complete",
                self.current.hash,
            )
            self.current = None
        return self.finish()

    def require_complete(self) -> None:
        """Raise MalformedLogError if the open commit lacks metadata."""
        if self.current is not None:
            self.current.check()

    def _start_commit(self, value: str) -> Commit | None:
        previous = self.finish()
        if not value.strip():
            logger.warning("Ignoring commit line without a hash; skipping its record")
            return previous
        self.current = _CommitDraft(hash=value)
        return previous

    def _field_setter(self, name: str) -> Callable[[str], Commit | None]:
        def assign(value: str) -> Commit | None:
            if self.current is None:
                logger.warning("Ignoring %s line before any commit hash", name)
            elif getattr(self.current, name) is not None:
                logger.warning("Ignoring repeated %s line in commit %s", name, self.current.hash)
            else:
                setattr(self.current, name, value)
            return None

        return assign


class DiffHeaderParser:
    """Reads one file's diff preamble and resolves its paths."""

    def __init__(self, source: LineSource):
        self._source = source

    def parse(self, first: Line) -> tuple[_FileDraft, _Boundary | None]:
        """Parse a file header starting at `first`.

        Returns:
            The draft and, when the header ended without a `+++` line, the
            boundary that ended it. A None boundary means the hunk body follows.
        """
        draft = _FileDraft()
        line: Line | None = first
        is_first = True

        while line is not None:
            data = line.data
            if not data:
                return draft, _Boundary(BoundaryKind.END_OF_SECTION)
            if data.startswith(_DIFF_GIT_PREFIX) and not is_first:
                return draft, _Boundary(BoundaryKind.NEXT_FILE, line)
            if _is_commit_line(data):
                return draft, _Boundary(BoundaryKind.NEXT_COMMIT, line)

            if self._apply(draft, _decode(data)):
                return draft, None

            is_first = False
            line = self._source.next_line()

        if not draft.filename and draft.started:
            logger.warning("Stream ended inside a diff header; dropping the partial file record")
        return draft, _Boundary(BoundaryKind.END_OF_INPUT)

    def _apply(self, draft: _FileDraft, text: str) -> bool:  # noqa: PLR0911, PLR0912
        """Apply one header line to the draft; True once `+++` is reached."""
        if text.startswith("diff --git "):
            draft.started = True
            match = _DIFF_GIT_RE.match(text)
            if match:
                draft.old_filename, draft.filename = match.group(1), match.group(2)
            return False

        if text.startswith(_SKIPPED_HEADER_PREFIXES):
            return False

        if text.startswith("rename from ") or text.startswith("copy from "):
            draft.started = draft.explicit_paths = True
            path = _unquote(text.split(" from ", 1)[1])
            draft.old_filename = _strip_prefix(path, "a/")
        elif text.startswith("rename to ") or text.startswith("copy to "):
            draft.started = draft.explicit_paths = True
            path = _unquote(text.split(" to ", 1)[1])
            draft.filename = _strip_prefix(path, "b/")
        elif text.startswith("new file"):
            draft.is_created = True
        elif text.startswith("deleted file"):
            draft.is_deleted = True
        elif text.startswith("--- "):
            draft.started = True
            path = _unquote(text[4:])
            if draft.explicit_paths:
                return False
            if draft.is_deleted:
                draft.filename = _strip_prefix(path, "a/")
            elif path.startswith("a/"):
                draft.old_filename = path[2:]
        elif text.startswith("+++ "):
            draft.started = True
            path = _unquote(text[4:])
            if not draft.explicit_paths and path.startswith("b/"):
                draft.filename = path[2:]
            return True

        return False


class HunkBodyParser:
    """Collects a file's hunk lines under the per-file byte cap."""

    def __init__(self, source: LineSource, max_bytes: int | None):
        self._source = source
        self._max_bytes = max_bytes

    def parse(self, draft: _FileDraft) -> _Boundary:
        while True:
            line = _next_boundary_aware_line(self._source)
            if line is None:
                return _Boundary(BoundaryKind.END_OF_INPUT)

            data = line.data
            if data.startswith(_DIFF_GIT_PREFIX):
                return _Boundary(BoundaryKind.NEXT_FILE, line)
            if not data:
                return _Boundary(BoundaryKind.END_OF_SECTION)
            if _is_commit_line(data):
                return _Boundary(BoundaryKind.NEXT_COMMIT, line)

            if line.fragmented:
                # Oversized lines are dropped whole, never spliced
                draft.truncated = True
                self._source.discard_rest()
                continue

            draft.append(data, self._max_bytes)


class CommitAssembler:
    """State machine driving the header, diff header and hunk parsers.

    Iterating an assembler yields each commit as soon as it is complete.
    Every instance owns its own state, so separate streams can be parsed
    concurrently with separate assemblers.
    """

    def __init__(
        self,
        stream: BinaryIO,
        max_files_per_commit: int | None = None,
        max_bytes_per_file: int | None = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        """Initialize the assembler.

        Args:
            stream: Binary stream of `git log -p` output.
            max_files_per_commit: Files kept per commit; None or negative for no limit.
            max_bytes_per_file: Content bytes kept per file; None or negative for no limit.
            buffer_size: Longest line kept in hunk content.
        """
        self._source = LineSource(stream, buffer_size=buffer_size)
        self._max_files = _as_cap(max_files_per_commit)
        self._header = CommitHeaderParser()
        self._diff_header = DiffHeaderParser(self._source)
        self._hunk_body = HunkBodyParser(self._source, _as_cap(max_bytes_per_file))
        self.state = ParserState.AWAITING_COMMIT_HEADER

    def __iter__(self) -> Iterator[Commit]:  # noqa: PLR0912
        carried: Line | None = None

        while self.state is not ParserState.END_OF_INPUT:
            line = carried if carried is not None else self._source.next_line()
            carried = None
            if line is None:
                self.state = ParserState.END_OF_INPUT
                break

            if self.state is ParserState.PARSING_DIFF_SECTION:
                boundary = self._parse_diff_section(line)
                if boundary.kind is BoundaryKind.NEXT_COMMIT:
                    carried = boundary.line
                self.state = (
                    ParserState.END_OF_INPUT
                    if boundary.kind is BoundaryKind.END_OF_INPUT
                    else ParserState.AWAITING_COMMIT_HEADER
                )
                commit = self._header.finish()
                if commit is not None:
                    yield commit
                continue

            tag = CommitHeaderParser.classify(line.data)
            if tag is MetadataTag.HASH:
                self._header.require_complete()
                finished = self._header.feed(tag, line.data)
                if finished is not None:
                    yield finished
                self.state = ParserState.PARSING_COMMIT_METADATA
            elif self.state is ParserState.AWAITING_COMMIT_HEADER:
                if tag is not None:
                    self._header.feed(tag, line.data)
                elif line.data:
                    logger.debug("Skipping line outside any commit: %.60r", line.data)
            elif tag is not None:
                self._header.feed(tag, line.data)
            elif line.data:
                self._header.require_complete()
                carried = line
                self.state = ParserState.PARSING_DIFF_SECTION

        commit = self._header.discard_incomplete()
        if commit is not None:
            yield commit

    def _parse_diff_section(self, first: Line) -> _Boundary:
        commit = self._header.current
        if commit is None:
            logger.warning("Skipping diff section outside any commit")
            return self._drain_commit()
        pending = first

        while True:
            if self._max_files is not None and len(commit.files) >= self._max_files:
                logger.debug("Commit %s reached %d files; skipping the rest", commit.hash, self._max_files)
                return self._drain_commit()

            draft, boundary = self._diff_header.parse(pending)
            if boundary is None:
                boundary = self._hunk_body.parse(draft)

            file = draft.build()
            if file is not None:
                commit.files.append(file)
            elif draft.started and boundary.kind is not BoundaryKind.END_OF_INPUT:
                logger.warning("Dropping diff record without a filename in commit %s", commit.hash)

            if boundary.kind is not BoundaryKind.NEXT_FILE or boundary.line is None:
                return boundary
            pending = boundary.line

    def _drain_commit(self) -> _Boundary:
        """Skip the rest of the current commit's diff lines."""
        while True:
            line = _next_boundary_aware_line(self._source)
            if line is None:
                return _Boundary(BoundaryKind.END_OF_INPUT)
            if not line.data:
                return _Boundary(BoundaryKind.END_OF_SECTION)
            if _is_commit_line(line.data):
                return _Boundary(BoundaryKind.NEXT_COMMIT, line)
            # Only the remainder of an oversized line is left to skip
            self._source.discard_rest()


def _as_cap(value: int | None) -> int | None:
    if value is None or value < 0:
        return None
    return value


def iter_commits(
    stream: BinaryIO,
    max_files_per_commit: int | None = None,
    max_bytes_per_file: int | None = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> Iterator[Commit]:
    """Yield commits from `git log -p` output as they complete."""
    return iter(CommitAssembler(stream, max_files_per_commit, max_bytes_per_file, buffer_size))


def parse_commits(
    stream: BinaryIO,
    max_files_per_commit: int | None = None,
    max_bytes_per_file: int | None = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> list[Commit]:
    """Parse `git log -p` output into commits.

    Args:
        stream: Binary stream of the log output.
        max_files_per_commit: Files kept per commit; None for no limit.
        max_bytes_per_file: Content bytes kept per file; None for no limit.
        buffer_size: Reader buffer size; longer hunk lines are dropped.

    Returns:
        Commits in stream order.

    Raises:
        StreamReadError: If reading the stream fails.
        MalformedLogError: If a commit is missing required metadata.
        Both carry the commits parsed before the failure in `commits`.
    """
    commits: list[Commit] = []
    try:
        for commit in iter_commits(stream, max_files_per_commit, max_bytes_per_file, buffer_size):
            commits.append(commit)
    except LogParseError as e:
        e.commits = commits
        raise
    return commits
