"""Line-level diff output shared by every apply strategy."""

import difflib
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, List

SAME = "same"
OLD = "old"
NEW = "new"
DIFF_KINDS = (SAME, OLD, NEW)


@dataclass(frozen=True)
class DiffLine:
    kind: str  # "same", "old" (removed), "new" (added)
    line: str

    def __post_init__(self):
        if self.kind not in DIFF_KINDS:
            raise ValueError(f"unknown diff line kind: {self.kind!r}")


def diff_split(text: str) -> List[str]:
    """Split on \\n, ignoring a single trailing newline at EOF."""
    if not text:
        return []
    lines = text.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def myers_diff(old_content: str, new_content: str) -> List[DiffLine]:
    """Diff two texts line by line. Removed lines precede added lines in a change."""
    old_lines = diff_split(old_content)
    new_lines = diff_split(new_content)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    out: List[DiffLine] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            out.extend(DiffLine(SAME, ln) for ln in old_lines[i1:i2])
            continue
        if tag in ("replace", "delete"):
            out.extend(DiffLine(OLD, ln) for ln in old_lines[i1:i2])
        if tag in ("replace", "insert"):
            out.extend(DiffLine(NEW, ln) for ln in new_lines[j1:j2])
    return out


async def generate_lines(diff_lines: Iterable[DiffLine]) -> AsyncIterator[DiffLine]:
    """Expose a finished diff as a single-pass async iterator."""
    for diff_line in diff_lines:
        yield diff_line


def new_text_from_diff(diff_lines: Iterable[DiffLine]) -> str:
    return "\n".join(d.line for d in diff_lines if d.kind != OLD)


def old_text_from_diff(diff_lines: Iterable[DiffLine]) -> str:
    return "\n".join(d.line for d in diff_lines if d.kind != NEW)


def is_noop_diff(diff_lines: Iterable[DiffLine]) -> bool:
    return all(d.kind == SAME for d in diff_lines)


def format_diff_lines(diff_lines: Iterable[DiffLine]) -> str:
    """Render as "  same", "- removed", "+ added" lines (inline preview style)."""
    prefix = {SAME: "  ", OLD: "- ", NEW: "+ "}
    return "\n".join(prefix[d.kind] + d.line for d in diff_lines)


async def collect_lines(diff_lines: AsyncIterator[DiffLine]) -> List[DiffLine]:
    return [d async for d in diff_lines]
