"""Detection and removal of placeholder lines that stand in for omitted code.

A placeholder is a line such as "// ... existing code ..." or one carrying the
UNCHANGED_CODE token. The recognised phrases live in config.PLACEHOLDER_PHRASES.
"""

import re
from functools import lru_cache, partial
from typing import Callable, Iterable, Optional, Pattern, Tuple

from . import config
from .prompts import UNCHANGED_CODE


@lru_cache(maxsize=16)
def _ellipsis_pattern(phrases: Tuple[str, ...]) -> Pattern[str]:
    # Longest first so "omitted section" wins over "omitted"
    ordered = sorted(phrases, key=len, reverse=True)
    alternatives = "|".join(re.escape(p) for p in ordered)
    return re.compile(r"\.\.\.\s*(?:" + alternatives + r")\s*\.\.\.", re.IGNORECASE)


def _phrases(phrases: Optional[Iterable[str]]) -> Tuple[str, ...]:
    return tuple(phrases) if phrases is not None else config.PLACEHOLDER_PHRASES


def is_placeholder_line(
    line: str,
    phrases: Optional[Iterable[str]] = None,
    token: Optional[str] = None,
) -> bool:
    """True when the trimmed line stands in for omitted code."""
    trimmed = (line or "").strip()
    if not trimmed:
        return False
    if (token or config.UNCHANGED_CODE_TOKEN) in trimmed:
        return True
    return _ellipsis_pattern(_phrases(phrases)).search(trimmed) is not None


def contains_placeholder(
    text: str,
    phrases: Optional[Iterable[str]] = None,
    token: Optional[str] = None,
) -> bool:
    """True when any placeholder pattern appears anywhere in text.

    The token check is case-insensitive here: the full-file guard rejects
    "unchanged_code" just as it rejects "UNCHANGED_CODE".
    """
    if not text:
        return False
    tok = token or config.UNCHANGED_CODE_TOKEN
    if tok.lower() in text.lower():
        return True
    return _ellipsis_pattern(_phrases(phrases)).search(text) is not None


def strip_ephemeral_placeholders(
    content: str,
    original: str,
    phrases: Optional[Iterable[str]] = None,
    token: Optional[str] = None,
) -> str:
    """Drop placeholder lines from content unless the original already has them.

    When the original file contains placeholder text it is real content
    (docs, fixtures, this very kind of tool) and nothing is removed.
    """
    if contains_placeholder(original, phrases, token):
        return content
    kept = [ln for ln in content.split("\n") if not is_placeholder_line(ln, phrases, token)]
    return "\n".join(kept)


def is_lazy_marker_line(
    line: str,
    phrases: Optional[Iterable[str]] = None,
    token: Optional[str] = None,
) -> bool:
    """Placeholder line, or a comment carrying the prompt's "UNCHANGED CODE" marker."""
    return UNCHANGED_CODE in (line or "") or is_placeholder_line(line, phrases, token)


def lazy_marker_test(policy: Optional[config.ApplyPolicy] = None) -> Callable[[str], bool]:
    """is_lazy_marker_line bound to a policy's phrases and token."""
    if policy is None:
        return is_lazy_marker_line
    return partial(is_lazy_marker_line, phrases=policy.placeholder_phrases, token=policy.unchanged_token)
