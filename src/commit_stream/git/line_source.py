"""Bounded line reader for streamed git output.

Lines are read through a fixed-capacity buffer. A line whose content does not
fit is reported as *fragmented*; the caller decides whether to reassemble the
remainder or drop it, so oversized hunk lines never have to be held in memory.
"""
from __future__ import annotations

import io
from typing import BinaryIO, NamedTuple

from commit_stream.config import DEFAULT_BUFFER_SIZE
from commit_stream.exceptions import StreamReadError

_MIN_BUFFER_SIZE = 16


class Line(NamedTuple):
    """A logical line with its terminator stripped."""
    data: bytes
    fragmented: bool = False


def _strip_terminator(data: bytes) -> bytes:
    if data.endswith(b"\r\n"):
        return data[:-2]
    if data.endswith(b"\n"):
        return data[:-1]
    return data


class LineSource:
    """Reads one logical line at a time from a binary stream."""

    def __init__(self, stream: BinaryIO | io.RawIOBase, buffer_size: int = DEFAULT_BUFFER_SIZE):
        """Initialize the line source.

        Args:
            stream: Binary stream positioned at the start of the log output.
            buffer_size: Largest line content, in bytes, returned without
                being flagged as fragmented.
        """
        if buffer_size < _MIN_BUFFER_SIZE:
            raise ValueError(f"buffer_size must be at least {_MIN_BUFFER_SIZE} bytes")
        if isinstance(stream, io.RawIOBase):
            stream = io.BufferedReader(stream, buffer_size=buffer_size)
        self._stream = stream
        self._buffer_size = buffer_size
        self._pending_rest = False

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    def _read_chunk(self) -> bytes:
        # One byte past capacity separates a full line from an overflowing one.
        try:
            return self._stream.readline(self._buffer_size + 1)
        except OSError as e:
            raise StreamReadError(f"Failed to read git output: {e}") from e

    def _is_complete(self, chunk: bytes) -> bool:
        return chunk.endswith(b"\n") or len(chunk) <= self._buffer_size

    def next_line(self, reassemble: bool = True) -> Line | None:
        """Read the next logical line.

        Args:
            reassemble: If True, a fragmented line is returned whole. If False,
                only its first buffer is returned and the remainder stays
                pending until complete() or discard_rest() is called (or the
                next read drains it).

        Returns:
            The line, or None at end of stream.

        Raises:
            StreamReadError: If the underlying stream fails.
        """
        if self._pending_rest:
            self.discard_rest()

        chunk = self._read_chunk()
        if not chunk:
            return None
        if self._is_complete(chunk):
            return Line(_strip_terminator(chunk))

        self._pending_rest = True
        line = Line(chunk, fragmented=True)
        if reassemble:
            return self.complete(line)
        return line

    def complete(self, line: Line) -> Line:
        """Append the pending remainder of a fragmented line to it."""
        if not self._pending_rest:
            return line

        parts = [line.data]
        while True:
            chunk = self._read_chunk()
            if not chunk:
                break
            parts.append(chunk)
            if chunk.endswith(b"\n"):
                break
        self._pending_rest = False
        return Line(_strip_terminator(b"".join(parts)), fragmented=True)

    def discard_rest(self) -> int:
        """Drop the pending remainder of a fragmented line.

        Returns:
            Number of bytes discarded, including the line terminator.
        """
        discarded = 0
        while self._pending_rest:
            chunk = self._read_chunk()
            discarded += len(chunk)
            if not chunk or chunk.endswith(b"\n"):
                self._pending_rest = False
        return discarded
