"""Reconcile a model's lazy edit with the file on disk.

apply_code_block tries, in a fixed order, the strategies below and returns
the first that succeeds:

  1. full-file guard for providers that must emit whole files (may raise)
  2. deterministic full-file rewrite (tree-sitter languages only)
  3. deterministic lazy-marker reconstruction
  4. placeholder-sandwich patch, then bare-snippet patch (other languages)
  5. unified diff
  6. streaming model rewrite (the only non-instant strategy)
"""

from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, List, Optional

from .config import ApplyPolicy
from .deterministic import deterministic_apply_lazy_edit
from .diff import DiffLine, generate_lines, myers_diff
from .guard import enforce_full_file_output
from .languages import SUPPORTED_LANGUAGES, can_use_instant_apply
from .llm import AbortSignal, LLMHandle
from .normalize import normalize_text
from .placeholders import strip_ephemeral_placeholders
from .snippet_patch import patch_bare_snippet, patch_placeholder_sandwich
from .stream_apply import stream_lazy_apply
from .unified_diff import apply_unified_diff, is_unified_diff_format
from .utils import dbg, dbg_dump, log_error

DeterministicApply = Callable[..., Optional[List[DiffLine]]]
UnifiedDiffApply = Callable[[str, str], List[DiffLine]]
StreamApply = Callable[..., AsyncIterator[DiffLine]]


@dataclass
class ApplyResult:
    is_instant_apply: bool
    diff_lines: AsyncIterator[DiffLine]


class CodeBlockApplier:
    """Strategy chain for one policy. Collaborators are swappable for tests."""

    def __init__(
        self,
        policy: Optional[ApplyPolicy] = None,
        *,
        supported_languages: Optional[Dict[str, str]] = None,
        deterministic_apply: Optional[DeterministicApply] = None,
        unified_diff_apply: Optional[UnifiedDiffApply] = None,
        stream_apply: Optional[StreamApply] = None,
    ):
        self.policy = policy or ApplyPolicy()
        self.supported_languages = SUPPORTED_LANGUAGES if supported_languages is None else supported_languages
        self.deterministic_apply = deterministic_apply or deterministic_apply_lazy_edit
        self.unified_diff_apply = unified_diff_apply or apply_unified_diff
        self.stream_apply = stream_apply or stream_lazy_apply

    def _patched_result(self, old_file: str, patched: str, strategy: str) -> ApplyResult:
        cleaned = strip_ephemeral_placeholders(
            patched, old_file, self.policy.placeholder_phrases, self.policy.unchanged_token
        )
        dbg(f"apply_code_block: {strategy} patch applied")
        dbg_dump(f"{strategy} patched", cleaned)
        return ApplyResult(True, generate_lines(myers_diff(old_file, cleaned)))

    def try_snippet_patches(self, old_file: str, new_lazy_file: str) -> Optional[ApplyResult]:
        patched = patch_placeholder_sandwich(
            old_file,
            new_lazy_file,
            self.policy.max_window_lines,
            self.policy.placeholder_phrases,
            self.policy.unchanged_token,
        )
        if patched and patched != old_file:
            return self._patched_result(old_file, patched, "sandwich")

        patched = patch_bare_snippet(old_file, new_lazy_file, self.policy.max_window_lines)
        if patched and patched != old_file:
            return self._patched_result(old_file, patched, "bare-snippet")
        return None

    async def apply(
        self,
        old_file: str,
        new_lazy_file: str,
        filename: str,
        llm: Optional[LLMHandle] = None,
        abort_signal: Optional[AbortSignal] = None,
    ) -> ApplyResult:
        old_file = normalize_text(old_file)
        new_lazy_file = normalize_text(new_lazy_file)
        dbg_dump(f"apply_code_block proposal for {filename}", new_lazy_file)

        provider = getattr(llm, "provider", None)
        enforce_full_file_output(old_file, new_lazy_file, provider, self.policy)

        instant = can_use_instant_apply(filename, self.supported_languages)
        if instant:
            diff_lines = self.deterministic_apply(
                old_file, new_lazy_file, filename, only_full_file_rewrite=True, policy=self.policy
            )
            if diff_lines is not None:
                dbg(f"apply_code_block: {filename} applied as full-file rewrite")
                return ApplyResult(True, generate_lines(diff_lines))

        diff_lines = self.deterministic_apply(old_file, new_lazy_file, filename, policy=self.policy)
        if diff_lines is not None:
            dbg(f"apply_code_block: {filename} applied by lazy reconstruction")
            return ApplyResult(True, generate_lines(diff_lines))

        if not instant:
            result = self.try_snippet_patches(old_file, new_lazy_file)
            if result is not None:
                return result

        if is_unified_diff_format(new_lazy_file):
            try:
                diff_lines = self.unified_diff_apply(old_file, new_lazy_file)
                dbg(f"apply_code_block: {filename} applied as unified diff")
                return ApplyResult(True, generate_lines(diff_lines))
            except Exception as exc:
                log_error(f"Failed to apply unified diff to {filename}: {exc}")

        dbg(f"apply_code_block: {filename} falling back to streaming apply")
        return ApplyResult(
            False,
            self.stream_apply(old_file, filename, new_lazy_file, llm, abort_signal, policy=self.policy),
        )


_default_applier: Optional[CodeBlockApplier] = None


def get_default_applier() -> CodeBlockApplier:
    global _default_applier
    if _default_applier is None:
        _default_applier = CodeBlockApplier()
    return _default_applier


async def apply_code_block(
    old_file: str,
    new_lazy_file: str,
    filename: str,
    llm: Optional[LLMHandle] = None,
    abort_signal: Optional[AbortSignal] = None,
) -> ApplyResult:
    """Reconcile new_lazy_file with old_file. See the module docstring for the strategy order.

    Raises FullFileRequiredError when an enforced provider returned a truncated file.
    """
    return await get_default_applier().apply(old_file, new_lazy_file, filename, llm, abort_signal)
