"""Text helpers for netutil console output."""

from __future__ import annotations

import re

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[a-zA-Z]")
_SPACE_RUN_RE = re.compile(r" {2,}")


def strip_ansi(text: str) -> str:
    """Strip ANSI escape sequences from text."""
    return _ANSI_RE.sub("", text)


def sanitize_binary_output(text: str) -> str:
    """Remove binary garbage from output.

    Keeps printable chars, tabs, newlines, and carriage returns.
    Strips everything else (control chars, undefined code points, format chars).
    """
    cleaned = []
    for ch in text:
        cp = ord(ch)
        if ch in ("\t", "\n", "\r"):
            cleaned.append(ch)
        elif cp >= 32 and cp not in range(0x7F, 0xA0):
            if cp not in range(0xFFF9, 0xFFFC):
                cleaned.append(ch)
    return "".join(cleaned)


def collapse_spaces(text: str) -> str:
    """Collapse every run of two or more spaces into a single space.

    Only the space character is affected; tabs and newlines are kept.
    Applying it twice gives the same result as applying it once.
    """
    return _SPACE_RUN_RE.sub(" ", text)


def split_records(text: str) -> list[str]:
    """Split normalized output into its non-blank lines.

    Handles both CR/LF and bare LF separators.
    """
    return [line for line in text.splitlines() if line.strip()]


def tokenize(line: str) -> list[str]:
    """Split one normalized line into its space-separated fields."""
    stripped = line.strip(" ")
    if not stripped:
        return []
    return stripped.split(" ")
