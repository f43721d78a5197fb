"""Heuristic patchers for proposals in languages without a syntax-tree applier.

Two shapes are handled:

  * placeholder sandwich: the changed block is bounded by placeholder lines
    ("// ... existing code ..." above and below), or only followed by one;
  * bare snippet: a marker-free excerpt of a contiguous region of the file.

Both anchor on trimmed lines of the original and return the full patched file,
or None when the anchors cannot be resolved inside the window cap.
"""

from typing import Iterable, List, Optional

from . import config
from .anchors import (
    find_anchor_from,
    find_anchor_indices,
    find_last_anchor_from,
    non_empty_lines,
    split_lines,
    trim_blank_edges,
    window_fits,
)
from .placeholders import is_placeholder_line
from .utils import dbg


def _last_placeholder_index(lines: List[str], phrases, token) -> int:
    for i in range(len(lines) - 1, -1, -1):
        if is_placeholder_line(lines[i], phrases, token):
            return i
    return -1


def _patch_core(
    old_lines: List[str],
    core_raw: List[str],
    max_window_lines: int,
    top_only: bool = False,
) -> Optional[str]:
    core = trim_blank_edges(core_raw)
    if not core:
        return None
    first_anchor = core[0].strip()
    last_anchor = core[-1].strip()
    if not first_anchor:
        return None

    if top_only:
        end = find_anchor_from(old_lines, last_anchor)
        if end < 0 or not window_fits(0, end, max_window_lines):
            dbg(f"snippet_patch: top-only anchor unresolved (end={end})")
            return None
        return "\n".join(core + old_lines[end + 1 :])

    starts = find_anchor_indices(old_lines, first_anchor)
    for start in starts:
        end = find_anchor_from(old_lines, last_anchor, start)
        while end >= 0 and not window_fits(start, end, max_window_lines):
            end = find_anchor_from(old_lines, last_anchor, end + 1)
        if end >= 0:
            dbg(f"snippet_patch: sandwich window {start + 1}-{end + 1} ({len(starts)} start candidate(s))")
            return "\n".join(old_lines[:start] + core + old_lines[end + 1 :])
    dbg(f"snippet_patch: sandwich anchors unresolved ({len(starts)} start candidate(s))")
    return None


def patch_placeholder_sandwich(
    old_file: str,
    new_lazy_file: str,
    max_window_lines: Optional[int] = None,
    phrases: Optional[Iterable[str]] = None,
    token: Optional[str] = None,
) -> Optional[str]:
    """Rebuild the file from a snippet bounded by placeholder lines.

    Full sandwich: first and last non-empty lines are placeholders; the lines
    strictly between the first and last placeholder replace the window from the
    first candidate start anchor to the nearest end anchor after it.
    Top-only: only the last non-empty line is a placeholder; everything before
    it replaces the file from line 1 to the first end-anchor match.
    """
    if max_window_lines is None:
        max_window_lines = config.MAX_WINDOW_LINES
    phrases = tuple(phrases) if phrases is not None else None
    raw_lines = split_lines(new_lazy_file)
    meaningful = non_empty_lines(raw_lines)
    if len(meaningful) < 2:
        return None

    first_is_placeholder = is_placeholder_line(meaningful[0], phrases, token)
    last_is_placeholder = is_placeholder_line(meaningful[-1], phrases, token)
    old_lines = split_lines(old_file)

    if first_is_placeholder and last_is_placeholder and len(meaningful) >= 3:
        first_idx = next(
            (i for i, ln in enumerate(raw_lines) if is_placeholder_line(ln, phrases, token)),
            -1,
        )
        last_idx = _last_placeholder_index(raw_lines, phrases, token)
        if first_idx >= 0 and last_idx - first_idx >= 2:
            return _patch_core(old_lines, raw_lines[first_idx + 1 : last_idx], max_window_lines)

    if not first_is_placeholder and last_is_placeholder:
        last_idx = _last_placeholder_index(raw_lines, phrases, token)
        if last_idx > 0:
            return _patch_core(old_lines, raw_lines[:last_idx], max_window_lines, top_only=True)

    return None


def patch_bare_snippet(
    old_file: str,
    new_lazy_file: str,
    max_window_lines: Optional[int] = None,
) -> Optional[str]:
    """Rebuild the file from a marker-free excerpt of it.

    The first non-empty snippet line must occur exactly once in the original.
    The end anchor is the last match of the final non-empty snippet line at or
    after that start. The window start..end is replaced by the whole snippet.
    Returns None for full-length proposals and for no-op reconstructions.
    """
    if max_window_lines is None:
        max_window_lines = config.MAX_WINDOW_LINES
    snippet_lines = split_lines(new_lazy_file)
    old_lines = split_lines(old_file)
    if len(snippet_lines) >= len(old_lines):
        return None

    meaningful = non_empty_lines(snippet_lines)
    if len(meaningful) < 2:
        return None
    first_anchor = meaningful[0].strip()
    last_anchor = meaningful[-1].strip()

    starts = find_anchor_indices(old_lines, first_anchor)
    if len(starts) != 1:
        dbg(f"snippet_patch: bare start anchor not unique ({len(starts)} match(es))")
        return None
    start = starts[0]

    end = find_last_anchor_from(old_lines, last_anchor, start)
    if end < 0:
        return None
    if not window_fits(start, end, max_window_lines):
        dbg(f"snippet_patch: bare window {start + 1}-{end + 1} exceeds {max_window_lines} lines")
        return None

    patched = "\n".join(old_lines[:start] + snippet_lines + old_lines[end + 1 :])
    if patched == old_file:
        return None
    dbg(f"snippet_patch: bare window {start + 1}-{end + 1}")
    return patched
