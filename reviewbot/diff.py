"""Unified-diff patch helpers: head-side line numbers for added lines."""

from __future__ import annotations

import re
from typing import Iterator, List, Tuple

HUNK_HEADER_RE = re.compile(r"^@@\s+-(\d+)(?:,(\d+))?\s+\+(\d+)(?:,(\d+))?\s+@@")


def map_added_lines(patch: str) -> Iterator[Tuple[int, str]]:
    """Yield ``(head_line_number, content)`` for every added line of ``patch``.

    ``content`` has the ``+`` prefix and surrounding whitespace removed. Each
    call starts from scratch, so the generator can be re-created freely for
    the same patch. File headers (``---``/``+++``) are only recognised before
    the first hunk; inside a hunk a line such as ``+++i;`` is an added line.
    A patch without hunk headers (binary, truncated) yields nothing.
    """

    line_number: int | None = None
    for line in (patch or "").splitlines():
        header = HUNK_HEADER_RE.match(line)
        if header:
            line_number = int(header.group(3)) - 1
            continue
        if line_number is None:
            continue

        if line.startswith("+"):
            line_number += 1
            yield line_number, line[1:].strip()
        elif line.startswith("-") or line.startswith("\\"):
            # deleted lines and "\ No newline at end of file" are absent from the head version
            continue
        else:
            line_number += 1


def hunk_ranges(patch: str) -> List[range]:
    """Head-side line ranges covered by each hunk of ``patch``."""

    ranges: List[range] = []
    for line in (patch or "").splitlines():
        header = HUNK_HEADER_RE.match(line)
        if not header:
            continue
        start = int(header.group(3))
        count = int(header.group(4)) if header.group(4) is not None else 1
        ranges.append(range(start, start + count))
    return ranges


def line_in_patch(patch: str, line_number: int) -> bool:
    return any(line_number in span for span in hunk_ranges(patch))
