"""Deterministic apply for languages with a tree-sitter grammar.

A proposal without lazy markers is a full-file rewrite. Otherwise the
proposal is parsed and each marker comment ("// ... existing code ...",
"# UNCHANGED CODE") is replaced by the original siblings it stands for:
the old nodes between the matched neighbours of the marker.

Bodies (a Python `block`, a JS `class_body`, ...) have no header of their own,
so an edited body is paired with the single body of its original parent. A
marker that stands for nothing at its own level but sits right before or after
such a body is moved into it: tree-sitter-python attaches a comment written as
the first line of a function to the function, not to its block.

Whenever a marker's filler would repeat code the proposal also spells out,
the reconstruction is abandoned rather than guessed.
"""

from typing import Callable, Dict, List, Optional, Set, Tuple

from .config import ApplyPolicy
from .diff import DiffLine, myers_diff
from .languages import get_parser_for_file, language_for_file
from .placeholders import is_lazy_marker_line, lazy_marker_test
from .unified_diff import is_unified_diff_format
from .utils import dbg

# (new_start_row, new_end_row, old_start_row, old_end_row); old rows None = drop the marker
Replacement = Tuple[int, int, Optional[int], Optional[int]]
MarkerTest = Callable[[str], bool]

_BODY_TYPES = {"block", "declaration_list", "field_declaration_list", "compound_statement", "body_statement"}


def _node_text(node) -> str:
    return node.text.decode("utf-8", errors="replace")


def _first_line(node) -> str:
    return _node_text(node).split("\n", 1)[0].strip()


def _named(node) -> list:
    return [c for c in node.children if c.is_named]


def _is_body(node) -> bool:
    return node.type in _BODY_TYPES or node.type.endswith(("_block", "_body"))


class _LazyTreeMerger:
    """Collects marker replacements for one proposal, level by level."""

    def __init__(self, new_lazy_file: str, is_marker: MarkerTest):
        self.is_marker = is_marker
        self.line_bytes = [ln.encode("utf-8") for ln in new_lazy_file.split("\n")]
        self.replacements: List[Replacement] = []

    def has_marker(self, node) -> bool:
        return any(self.is_marker(ln) for ln in _node_text(node).split("\n"))

    def is_marker_node(self, node) -> bool:
        return "comment" in node.type and self.has_marker(node)

    def on_own_lines(self, node) -> bool:
        (start_row, start_col), (end_row, end_col) = node.start_point, node.end_point
        return (
            self.line_bytes[start_row][:start_col].strip() == b""
            and self.line_bytes[end_row][end_col:].strip() == b""
        )

    def code_lines(self, nodes) -> Set[str]:
        out: Set[str] = set()
        for node in nodes:
            for ln in _node_text(node).split("\n"):
                key = ln.strip()
                if any(ch.isalnum() for ch in key) and not self.is_marker(key):
                    out.add(key)
        return out

    def match_old(self, old_children: list, cursor: int, new_child) -> int:
        """Index of the old sibling at/after cursor that new_child rewrites, or -1."""
        key = (new_child.type, _first_line(new_child))
        for k in range(cursor, len(old_children)):
            if (old_children[k].type, _first_line(old_children[k])) == key:
                return k
        if self.has_marker(new_child):
            # Containers (class bodies, blocks) may change their first line
            same_type = [k for k in range(cursor, len(old_children)) if old_children[k].type == new_child.type]
            if len(same_type) == 1:
                return same_type[0]
        return -1

    def replace(self, marker, omitted: list) -> None:
        if omitted:
            self.replacements.append(
                (marker.start_point[0], marker.end_point[0], omitted[0].start_point[0], omitted[-1].end_point[0])
            )
        else:
            self.replacements.append((marker.start_point[0], marker.end_point[0], None, None))

    def merge(self, old_children: list, new_children: list) -> bool:
        matched: Dict[int, int] = {}
        cursor = 0
        for ni, child in enumerate(new_children):
            if self.is_marker_node(child):
                continue
            k = self.match_old(old_children, cursor, child)
            if k >= 0:
                matched[ni] = k
                cursor = k + 1

        # Pair an edited body with the one body of the same type left between its neighbours
        for ni, child in enumerate(new_children):
            if ni in matched or not _is_body(child):
                continue
            lo = max((matched[nj] for nj in matched if nj < ni), default=-1) + 1
            hi = min((matched[nj] for nj in matched if nj > ni), default=len(old_children))
            same_type = [k for k in range(lo, hi) if old_children[k].type == child.type]
            if len(same_type) == 1:
                dbg(f"deterministic: paired edited {child.type} at row {child.start_point[0] + 1}")
                matched[ni] = same_type[0]

        leading: Dict[int, object] = {}
        trailing: Dict[int, object] = {}
        for ni, child in enumerate(new_children):
            if not self.is_marker_node(child):
                continue
            if not self.on_own_lines(child):
                dbg(f"deterministic: marker shares a line at row {child.start_point[0] + 1}")
                return False
            prev_ni = max((nj for nj in matched if nj < ni), default=-1)
            next_ni = min((nj for nj in matched if nj > ni), default=len(new_children))
            prev_old = matched[prev_ni] if prev_ni >= 0 else -1
            next_old = matched[next_ni] if next_ni < len(new_children) else len(old_children)
            omitted = old_children[prev_old + 1 : next_old]
            if not omitted:
                if next_ni == ni + 1 and _is_body(new_children[next_ni]) and next_ni not in leading:
                    leading[next_ni] = child
                    continue
                if prev_ni == ni - 1 and prev_ni >= 0 and _is_body(new_children[prev_ni]) and prev_ni not in trailing:
                    trailing[prev_ni] = child
                    continue
            elif self.code_lines(new_children[prev_ni + 1 : next_ni]) & self.code_lines(omitted):
                dbg(f"deterministic: marker at row {child.start_point[0] + 1} would duplicate code the proposal repeats")
                return False
            self.replace(child, omitted)

        for ni in sorted(matched):
            child = new_children[ni]
            extra_lead = [leading[ni]] if ni in leading else []
            extra_trail = [trailing[ni]] if ni in trailing else []
            if extra_lead or extra_trail or self.has_marker(child):
                old_child = old_children[matched[ni]]
                if not self.merge(_named(old_child), extra_lead + _named(child) + extra_trail):
                    return False

        for ni, child in enumerate(new_children):
            if ni not in matched and not self.is_marker_node(child) and self.has_marker(child):
                dbg(f"deterministic: no original counterpart for {child.type} holding a marker")
                return False
        return True


def reconstruct_lazy_file(
    old_file: str,
    new_lazy_file: str,
    parser,
    is_marker: MarkerTest = is_lazy_marker_line,
) -> Optional[str]:
    """Fill every marker in new_lazy_file from old_file, or None if any cannot be resolved."""
    old_tree = parser.parse(old_file.encode("utf-8"))
    new_tree = parser.parse(new_lazy_file.encode("utf-8"))
    if new_tree.root_node.has_error:
        dbg("deterministic: proposal does not parse")
        return None

    merger = _LazyTreeMerger(new_lazy_file, is_marker)
    if not merger.merge(_named(old_tree.root_node), _named(new_tree.root_node)):
        return None

    old_lines = old_file.split("\n")
    out = new_lazy_file.split("\n")
    for new_start, new_end, old_start, old_end in sorted(merger.replacements, reverse=True):
        filler = old_lines[old_start : old_end + 1] if old_start is not None else []
        out[new_start : new_end + 1] = filler

    old_markers = sum(1 for ln in old_lines if is_marker(ln))
    if sum(1 for ln in out if is_marker(ln)) > old_markers:
        dbg("deterministic: unresolved markers remain")
        return None
    return "\n".join(out)


def deterministic_apply_lazy_edit(
    old_file: str,
    new_lazy_file: str,
    filename: str,
    only_full_file_rewrite: bool = False,
    policy: Optional[ApplyPolicy] = None,
) -> Optional[List[DiffLine]]:
    """Diff lines for the proposal, or None when it cannot be applied deterministically."""
    if not language_for_file(filename):
        return None
    if not new_lazy_file.strip() or is_unified_diff_format(new_lazy_file):
        return None

    is_marker = lazy_marker_test(policy)
    if not any(is_marker(ln) for ln in new_lazy_file.split("\n")):
        dbg(f"deterministic: full-file rewrite of {filename}")
        return myers_diff(old_file, new_lazy_file)
    if only_full_file_rewrite:
        return None

    parser = get_parser_for_file(filename)
    if parser is None:
        return None
    reconstructed = reconstruct_lazy_file(old_file, new_lazy_file, parser, is_marker)
    if reconstructed is None or reconstructed == old_file:
        return None
    dbg(f"deterministic: reconstructed {filename} from lazy markers")
    return myers_diff(old_file, reconstructed)
