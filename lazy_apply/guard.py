"""Full-file enforcement for providers that must never emit partial files."""

from typing import Optional

from .config import ApplyPolicy
from .errors import FullFileRequiredError
from .placeholders import contains_placeholder
from .utils import dbg

FULL_FILE_REQUIRED_MESSAGE = (
    "This provider must output the complete updated file (no placeholders like "
    "'// ... existing code ...', 'UNCHANGED_CODE' or any ellipsis variants, and no "
    "partial snippets). Please regenerate with the full file contents including "
    "unchanged sections."
)


def is_enforced_provider(provider: Optional[str], policy: Optional[ApplyPolicy] = None) -> bool:
    if not provider or not isinstance(provider, str):
        return False
    policy = policy or ApplyPolicy()
    lowered = provider.lower()
    return any(token.lower() in lowered for token in policy.full_file_providers if token)


def _last_meaningful_line(text: str) -> Optional[str]:
    for line in reversed(text.split("\n")):
        if line.strip():
            return line
    return None


def enforce_full_file_output(
    old_file: str,
    new_lazy_file: str,
    provider: Optional[str],
    policy: Optional[ApplyPolicy] = None,
) -> None:
    """Raise FullFileRequiredError when an enforced provider returned a truncated file.

    The proposal is suspicious when it carries a placeholder or has fewer than
    min_line_ratio of the original's lines. It is rejected only when it is
    suspicious AND lacks the original's last non-blank line, so short but
    genuine full rewrites still pass.
    """
    policy = policy or ApplyPolicy()
    if not is_enforced_provider(provider, policy):
        return

    old_count = len(old_file.split("\n"))
    new_count = len(new_lazy_file.split("\n"))
    has_placeholder = contains_placeholder(
        new_lazy_file, policy.placeholder_phrases, policy.unchanged_token
    )
    looks_too_small = new_count < policy.min_line_ratio * old_count
    suspicious = has_placeholder or looks_too_small

    last_line = _last_meaningful_line(old_file)
    contains_last = last_line.strip() in new_lazy_file if last_line else True

    dbg(
        f"guard: provider={provider!r} old_lines={old_count} new_lines={new_count} "
        f"placeholder={has_placeholder} too_small={looks_too_small} contains_last={contains_last}"
    )
    if suspicious and not contains_last:
        raise FullFileRequiredError(FULL_FILE_REQUIRED_MESSAGE)
