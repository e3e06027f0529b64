"""Byte-capped reading of git command output."""
from __future__ import annotations

from typing import BinaryIO

from commit_stream.exceptions import StreamReadError


def truncate_to_byte_limit(stream: BinaryIO, max_bytes: int | None) -> tuple[str, bool]:
    """Read a stream as text, keeping at most `max_bytes` bytes.

    When the stream holds more than `max_bytes`, the text is cut back to the
    last complete line inside the limit, so a partial line is never returned.

    Args:
        stream: Binary stream to read.
        max_bytes: Byte limit; None or negative reads everything.

    Returns:
        Tuple of (text, was_truncated).

    Raises:
        StreamReadError: If reading the stream fails.
    """
    try:
        if max_bytes is None or max_bytes < 0:
            return stream.read().decode("utf-8", errors="replace"), False
        # One extra byte tells "exactly at the limit" apart from "over it"
        data = stream.read(max_bytes + 1)
    except OSError as e:
        raise StreamReadError(f"Failed to read git output: {e}") from e

    if len(data) <= max_bytes:
        return data.decode("utf-8", errors="replace"), False

    data = data[:max_bytes]
    last_newline = data.rfind(b"\n")
    data = data[:last_newline] if last_newline >= 0 else b""
    return data.decode("utf-8", errors="replace"), True
