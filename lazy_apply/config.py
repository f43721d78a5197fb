import os
from dataclasses import dataclass, field
from typing import Tuple

# Debug knobs
DEBUG = os.getenv("LAZY_APPLY_DEBUG", "").lower() in ("1", "true", "yes")
# Empty = stderr only
DEBUG_LOG_PATH = os.getenv("LAZY_APPLY_DEBUG_LOG", "").strip()
# LAZY_APPLY_DEBUG_DUMP_VERBOSE=1: write full proposals/patched files to the debug log (no truncation).
DEBUG_DUMP_VERBOSE = os.getenv("LAZY_APPLY_DEBUG_DUMP_VERBOSE", "false").lower() in ("1", "true", "yes")
DEBUG_DUMP_MAX_LINES = int(os.getenv("LAZY_APPLY_DEBUG_DUMP_MAX_LINES", "20"))
DEBUG_DUMP_MAX_CHARS = int(os.getenv("LAZY_APPLY_DEBUG_DUMP_MAX_CHARS", "2000"))

# Largest run of original lines a heuristic patch may replace
MAX_WINDOW_LINES = int(os.getenv("LAZY_APPLY_MAX_WINDOW_LINES", "5000"))

# Providers that must always return the complete file (lowercased substrings of llm.provider)
_FULL_FILE_PROVIDERS_DEFAULT = "gemini,vertexai_enterprise,vertexai_enterprise_wif,dbllm,dbllmrev1"
FULL_FILE_PROVIDERS = tuple(
    p.strip().lower()
    for p in os.getenv("LAZY_APPLY_FULL_FILE_PROVIDERS", _FULL_FILE_PROVIDERS_DEFAULT).split(",")
    if p.strip()
)
# Proposal shorter than this share of the original looks truncated
MIN_LINE_RATIO = float(os.getenv("LAZY_APPLY_MIN_LINE_RATIO", "0.5"))

# Phrases a model wraps in "..." when it omits code, e.g. "// ... existing code ..."
PLACEHOLDER_PHRASES: Tuple[str, ...] = (
    "existing code",
    "rest of code",
    "omitted",
    "omitted section",
    "snip",
    "snippet",
)
UNCHANGED_CODE_TOKEN = "UNCHANGED_CODE"


@dataclass(frozen=True)
class ApplyPolicy:
    """Tunable policy for one CodeBlockApplier.

    Defaults come from the module-level knobs above, so a bare ApplyPolicy()
    follows the environment while tests can pass their own values.
    """

    full_file_providers: Tuple[str, ...] = field(default_factory=lambda: FULL_FILE_PROVIDERS)
    max_window_lines: int = field(default_factory=lambda: MAX_WINDOW_LINES)
    min_line_ratio: float = field(default_factory=lambda: MIN_LINE_RATIO)
    placeholder_phrases: Tuple[str, ...] = field(default_factory=lambda: PLACEHOLDER_PHRASES)
    unchanged_token: str = field(default_factory=lambda: UNCHANGED_CODE_TOKEN)
