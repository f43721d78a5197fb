"""Recognise and apply model-produced unified diffs.

Hunks are located by context matching, not by trusting the @@ line numbers:
models routinely get those slightly wrong. The @@ start only serves as a hint
to break ties between equally good locations.
"""

import re
from typing import List, Optional, Tuple

from .diff import NEW, OLD, SAME, DiffLine, diff_split
from .errors import UnifiedDiffError
from .utils import dbg

_HUNK_HEADER_RE = re.compile(r"^@@\s+-(\d+)(?:,(\d+))?\s+\+(\d+)(?:,(\d+))?\s*@@")
_PREAMBLE_PREFIXES = ("diff --git ", "index ", "Index: ", "new file mode ", "deleted file mode ", "===")


class DiffHunk:
    """A single hunk from a unified diff."""

    __slots__ = ("old_start", "old_count", "new_start", "new_count", "lines")

    def __init__(
        self,
        old_start: int = 0,
        old_count: int = 0,
        new_start: int = 0,
        new_count: int = 0,
        lines: Optional[List[Tuple[str, str]]] = None,
    ):
        self.old_start = old_start
        self.old_count = old_count
        self.new_start = new_start
        self.new_count = new_count
        # each entry is (prefix, content) where prefix is one of " ", "+", "-"
        self.lines = lines or []

    def __repr__(self) -> str:
        return (
            f"DiffHunk(@@ -{self.old_start},{self.old_count} "
            f"+{self.new_start},{self.new_count} @@ {len(self.lines)} lines)"
        )

    @property
    def expected(self) -> List[Tuple[str, str]]:
        """Context and removal lines: what must already be in the file."""
        return [(p, c) for p, c in self.lines if p in (" ", "-")]

    def hint(self) -> int:
        """0-based line where the hunk claims to start."""
        if self.old_count == 0:
            return max(0, self.old_start)
        return max(0, self.old_start - 1)


def _is_change_line(line: str) -> bool:
    if line.startswith("+") and not line.startswith("+++"):
        return True
    return line.startswith("-") and not line.startswith("---")


def is_unified_diff_format(text: str) -> bool:
    """True when text looks like a unified diff rather than code."""
    if not text or not text.strip():
        return False
    lines = text.strip().split("\n")
    idx = 0
    while idx < len(lines) and lines[idx].startswith(_PREAMBLE_PREFIXES):
        idx += 1
    if idx >= len(lines):
        return False
    head = lines[idx]
    has_file_header = (
        head.startswith("---") and idx + 1 < len(lines) and lines[idx + 1].startswith("+++")
    )
    if not has_file_header and not _HUNK_HEADER_RE.match(head):
        return False
    has_hunk = any(_HUNK_HEADER_RE.match(ln) for ln in lines)
    return has_hunk and any(_is_change_line(ln) for ln in lines)


def parse_hunks(diff_text: str) -> List[DiffHunk]:
    """Parse the hunks of a single-file unified diff. No-op hunks are dropped."""
    lines = (diff_text or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")
    hunks: List[DiffHunk] = []
    current: Optional[DiffHunk] = None

    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("@@"):
            if current is not None and current.lines:
                hunks.append(current)
            m = _HUNK_HEADER_RE.match(line)
            if m:
                current = DiffHunk(
                    old_start=int(m.group(1)),
                    old_count=int(m.group(2)) if m.group(2) is not None else 1,
                    new_start=int(m.group(3)),
                    new_count=int(m.group(4)) if m.group(4) is not None else 1,
                )
            else:
                current = DiffHunk()
            i += 1
            continue

        if current is None:
            i += 1
            continue

        if line.startswith("--- ") and i + 1 < len(lines) and lines[i + 1].startswith("+++ "):
            dbg("parse_hunks: multi-file diff detected, stopping")
            break
        if line.startswith("\\"):
            # "\ No newline at end of file"
            i += 1
            continue
        if line[:1] in ("+", "-", " "):
            current.lines.append((line[0], line[1:]))
        elif line == "":
            # Editors and models drop the leading space of blank context lines
            has_more = any(
                lines[j].startswith(("+", "-", " ", "@@"))
                for j in range(i + 1, min(i + 3, len(lines)))
            )
            if not has_more:
                break
            current.lines.append((" ", ""))
        else:
            break
        i += 1

    if current is not None and current.lines:
        hunks.append(current)

    active = [h for h in hunks if any(p in ("+", "-") for p, _ in h.lines)]
    if len(active) != len(hunks):
        dbg(f"parse_hunks: dropped {len(hunks) - len(active)} no-op hunk(s)")
    return active


def _line_match(a: str, b: str) -> bool:
    """Exact, then whitespace-insensitive, then ignoring a trailing inline comment."""
    if a == b:
        return True
    sa = a.strip()
    sb = b.strip()
    if sa == sb:
        return True
    # Tolerate trailing inline comment drift in context lines
    def _strip_inline_comment(s: str) -> str:
        s2 = re.sub(r"\s*//.*$", "", s)
        s2 = re.sub(r"\s*/\*.*?\*/\s*$", "", s2)
        return s2.strip()
    ca = _strip_inline_comment(sa)
    cb = _strip_inline_comment(sb)
    return bool(ca and cb and ca == cb)


def find_hunk_location(
    file_lines: List[str],
    expected: List[Tuple[str, str]],
    hint_start: int,
    max_fuzz: int = 0,
) -> int:
    """Find the best position in file_lines to apply a hunk.

    expected: list of (prefix, content) where prefix is " " or "-".
    max_fuzz: number of expected lines allowed not to match at all.

    Returns the 0-based start, or -1 if no match. Ties prefer more exact
    matches, then the position closest to hint_start.
    """
    if not expected:
        # Pure insertion hunk: only the header says where it goes
        return max(0, min(hint_start, len(file_lines)))

    expect_content = [content for _, content in expected]
    expect_len = len(expect_content)
    candidates: List[Tuple[int, int, int]] = []  # (exact, fuzzy, position)
    for pos in range(0, len(file_lines) - expect_len + 1):
        exact = 0
        fuzzy = 0
        for j in range(expect_len):
            if file_lines[pos + j] == expect_content[j]:
                exact += 1
                fuzzy += 1
            elif _line_match(file_lines[pos + j], expect_content[j]):
                fuzzy += 1
        if fuzzy > 0 and fuzzy >= expect_len - max_fuzz:
            candidates.append((exact, fuzzy, pos))

    if not candidates:
        return -1
    candidates.sort(key=lambda c: (-c[1], -c[0], abs(c[2] - hint_start)))
    if len(candidates) > 1 and candidates[0][:2] == candidates[1][:2]:
        dbg(
            f"find_hunk_location: tied matches, picking closest to hint "
            f"{hint_start + 1}: line {candidates[0][2] + 1}"
        )
    return candidates[0][2]


def _locate(file_lines: List[str], hunk: DiffHunk) -> int:
    expected = hunk.expected
    hint = hunk.hint()
    pos = find_hunk_location(file_lines, expected, hint)
    if pos == -1 and len(expected) > 2:
        pos = find_hunk_location(file_lines, expected, hint, max_fuzz=2)
    if pos == -1:
        preview = [c for _, c in expected[:3]]
        raise UnifiedDiffError(f"hunk {hunk!r} could not be located; expected lines {preview!r}")
    for j, (prefix, content) in enumerate(expected):
        if prefix != "-":
            continue
        if pos + j >= len(file_lines):
            raise UnifiedDiffError(f"removal line at line {pos + j + 1}: unexpected EOF")
        if not _line_match(file_lines[pos + j], content):
            raise UnifiedDiffError(
                f"removal line mismatch at line {pos + j + 1}: "
                f"expected {content!r}, got {file_lines[pos + j]!r}"
            )
    return pos


def apply_unified_diff(old_file: str, diff_text: str) -> List[DiffLine]:
    """Apply a unified diff to old_file and return the resulting diff lines.

    Raises UnifiedDiffError when the diff has no hunks or a hunk cannot be
    placed unambiguously in order.
    """
    hunks = parse_hunks(diff_text)
    if not hunks:
        raise UnifiedDiffError("no hunks found in diff")

    file_lines = diff_split(old_file)
    ordered = sorted(hunks, key=lambda h: (h.old_start, h.new_start))
    out: List[DiffLine] = []
    cursor = 0
    for hunk in ordered:
        pos = _locate(file_lines, hunk)
        if pos < cursor:
            raise UnifiedDiffError(f"hunk {hunk!r} overlaps the previous hunk")
        out.extend(DiffLine(SAME, ln) for ln in file_lines[cursor:pos])
        j = pos
        for prefix, content in hunk.lines:
            if prefix == "+":
                out.append(DiffLine(NEW, content))
                continue
            kind = SAME if prefix == " " else OLD
            out.append(DiffLine(kind, file_lines[j]))
            j += 1
        dbg(f"apply_unified_diff: hunk applied at line {pos + 1}, consumed {j - pos} line(s)")
        cursor = j
    out.extend(DiffLine(SAME, ln) for ln in file_lines[cursor:])
    return out
