"""Hunk header (`@@ -l,s +l,s @@`) parsing."""
from __future__ import annotations

import logging
import re
from typing import NamedTuple

logger = logging.getLogger(__name__)

_RANGE_RE = re.compile(r"^[-+](\d+)(?:,(\d+))?$")


class HunkRange(NamedTuple):
    """Start line and line count of both sides of a hunk."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int


def _parse_range(text: str) -> tuple[int, int] | None:
    match = _RANGE_RE.match(text)
    if not match:
        return None
    start = int(match.group(1))
    # An omitted count means a single line
    count = int(match.group(2)) if match.group(2) is not None else 1
    return start, count


def parse_hunk_header(header: str) -> HunkRange | None:
    """Extract line ranges from a hunk header.

    Args:
        header: A line such as '@@ -10,7 +10,8 @@ def main():'.

    Returns:
        The ranges, or None if the line is not a hunk header. A header that
        only carries the old range reports the same range for the new side.
    """
    parts = header.split("@@")
    if len(parts) < 3 or parts[0]:  # noqa: PLR2004
        return None

    ranges = parts[1].split()
    if not ranges:
        return None

    old = _parse_range(ranges[0])
    if old is None or not ranges[0].startswith("-"):
        return None

    if len(ranges) > 1:
        new = _parse_range(ranges[1])
        if new is None or not ranges[1].startswith("+"):
            return None
    else:
        logger.debug("Hunk header has no new range: %s", header)
        new = old

    return HunkRange(old[0], old[1], new[0], new[1])
