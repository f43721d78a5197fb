"""Anchor lookups: positions of a trimmed line inside the original file's lines.

Anchors are compared by exact equality after strip(); no fuzzy matching.
"""

from typing import List, Sequence


def split_lines(text: str) -> List[str]:
    return (text or "").split("\n")


def non_empty_lines(lines: Sequence[str]) -> List[str]:
    return [ln for ln in lines if ln.strip() != ""]


def trim_blank_edges(lines: Sequence[str]) -> List[str]:
    """Drop leading and trailing blank lines."""
    start = 0
    end = len(lines)
    while start < end and lines[start].strip() == "":
        start += 1
    while end > start and lines[end - 1].strip() == "":
        end -= 1
    return list(lines[start:end])


def find_anchor_indices(lines: Sequence[str], anchor: str) -> List[int]:
    """All indices whose trimmed text equals anchor, in file order."""
    key = anchor.strip()
    return [i for i, ln in enumerate(lines) if ln.strip() == key]


def find_anchor_from(lines: Sequence[str], anchor: str, start: int = 0) -> int:
    """First index >= start matching anchor, or -1."""
    key = anchor.strip()
    for i in range(max(0, start), len(lines)):
        if lines[i].strip() == key:
            return i
    return -1


def find_last_anchor_from(lines: Sequence[str], anchor: str, start: int = 0) -> int:
    """Last index >= start matching anchor, or -1."""
    key = anchor.strip()
    found = -1
    for i in range(max(0, start), len(lines)):
        if lines[i].strip() == key:
            found = i
    return found


def window_fits(start: int, end: int, max_window_lines: int) -> bool:
    """Inclusive window [start, end] spans at most max_window_lines lines."""
    return end - start + 1 <= max_window_lines
