"""Core utility functions for Snippet Check.

This module provides shared text-position helpers used by the loader and the
checkers.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

_TOKEN_RE = re.compile(r"""[A-Za-z0-9_$]+|"[^"\n]*"?|'[^'\n]*'?|\S""")


def line_and_column(text: str, offset: int) -> Tuple[int, int]:
    """Convert a 0-based character offset into a 1-based (line, column) pair.

    Offsets past the end of the text are clamped to the end.

    Examples:
        >>> line_and_column("SELECT 1;\\nSELECT x FROM;", 17)
        (2, 8)
    """
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset) + 1
    line_start = text.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


def token_at(text: str, offset: int) -> Optional[str]:
    """Return the SQL token starting at (or spanning) a character offset.

    Returns None when the offset points at whitespace or past the end.

    Examples:
        >>> token_at("SELECT * FROM WHERE;", 14)
        'WHERE'
    """
    if offset < 0 or offset >= len(text) or text[offset].isspace():
        return None
    line_start = text.rfind("\n", 0, offset) + 1
    for match in _TOKEN_RE.finditer(text, line_start):
        if match.start() <= offset < match.end():
            return match.group(0)
        if match.start() > offset:
            break
    return None


def blank_meta_commands(text: str) -> Tuple[str, int]:
    """Replace psql meta-command lines (``\\c db``, ``\\dt``) with spaces.

    Line lengths are preserved so character offsets into the returned text
    match offsets into the original.

    Returns:
        A tuple of (blanked text, number of meta-command lines removed).
    """
    lines = text.split("\n")
    removed = 0
    for i, line in enumerate(lines):
        if line.lstrip().startswith("\\"):
            lines[i] = " " * len(line)
            removed += 1
    return "\n".join(lines), removed


def char_offset(text: str, byte_offset: int) -> int:
    """Convert a 0-based UTF-8 byte offset into ``text`` to a character offset.

    libpg_query positions count bytes, so any non-ASCII text before an error
    shifts them away from Python string indexes.

    Examples:
        >>> char_offset("SELECT 'é' FROM WHERE;", 17)
        16
    """
    return len(text.encode("utf-8")[: max(0, byte_offset)].decode("utf-8", "ignore"))
