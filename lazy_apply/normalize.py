"""Text normalization applied to both sides before any reconciliation step."""

from typing import Optional

_BOM = "\ufeff"


def normalize_text(text: Optional[str]) -> str:
    """Strip a leading BOM and rewrite \\r\\n and lone \\r to \\n. Idempotent."""
    if not text:
        return text or ""
    if text.startswith(_BOM):
        text = text[1:]
    return text.replace("\r\n", "\n").replace("\r", "\n")
