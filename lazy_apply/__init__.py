"""Reconcile lazy LLM file edits (with "// ... existing code ..." style elisions) with the original file."""

from .apply import ApplyResult, CodeBlockApplier, apply_code_block
from .config import ApplyPolicy
from .diff import DiffLine, myers_diff
from .errors import (
    FullFileRequiredError,
    LazyApplyError,
    LazyApplyUnsupportedError,
    UnifiedDiffError,
)

__all__ = [
    "ApplyPolicy",
    "ApplyResult",
    "CodeBlockApplier",
    "DiffLine",
    "FullFileRequiredError",
    "LazyApplyError",
    "LazyApplyUnsupportedError",
    "UnifiedDiffError",
    "apply_code_block",
    "myers_diff",
]
