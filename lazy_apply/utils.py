import os
import sys
import time

from . import config


def _append_log(line: str) -> None:
    if not config.DEBUG_LOG_PATH:
        return
    try:
        with open(config.DEBUG_LOG_PATH, "a") as f:
            f.write(line + "\n")
    except OSError:
        pass


def dbg(message: str):
    if not config.DEBUG:
        return
    ts = time.strftime("%Y-%m-%d %H:%M:%S")
    line = f"[debug] [{ts} pid={os.getpid()}] {message}"
    print(line, file=sys.stderr)
    _append_log(line)


def log_error(message: str):
    """Always printed; mirrored to the debug log when one is configured."""
    ts = time.strftime("%Y-%m-%d %H:%M:%S")
    print(f"[error] {message}", file=sys.stderr)
    _append_log(f"[error] [{ts} pid={os.getpid()}] {message}")


def dbg_dump(label: str, text: str):
    """Dump debug output. Truncated by default; full dump when LAZY_APPLY_DEBUG_DUMP_VERBOSE=true."""
    if not config.DEBUG:
        return
    content = text or ""
    if config.DEBUG_DUMP_VERBOSE:
        print(f"[debug_dump] {label}\n{content}", file=sys.stderr)
        _append_log(f"\n[debug_dump] {label}\n{content}")
        return
    # Truncated: header + first N non-empty lines / max chars
    max_lines = config.DEBUG_DUMP_MAX_LINES
    max_chars = config.DEBUG_DUMP_MAX_CHARS
    lines = [ln for ln in content.splitlines() if ln.strip()]
    preview = "\n".join(lines[:max_lines])
    if len(preview) > max_chars:
        preview = preview[:max_chars]
    truncated = len(lines) > max_lines or len(content) > max_chars
    header = (
        f"[debug_dump] {label} (len={len(content)})"
        f"{' …(truncated)' if truncated else ''}"
    )
    print(f"{header}\n{preview}", file=sys.stderr)
    _append_log(f"\n{header}\n{preview}")
