"""Preview how a proposed edit reconciles with a file on disk.

    python -m lazy_apply ORIGINAL PROPOSAL [--filename NAME] [--provider NAME]

Prints the diff as "  same" / "- removed" / "+ added" lines. Exit codes:
0 applied instantly, 1 rejected by the full-file guard, 2 only the
streaming model rewrite could apply it (nothing is printed then).
"""

import argparse
import asyncio
import sys

from .apply import apply_code_block
from .diff import collect_lines, format_diff_lines
from .errors import FullFileRequiredError
from .llm import ProviderHandle


def _read(path: str) -> str:
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


async def _run(args) -> int:
    old_file = _read(args.original)
    new_lazy_file = _read(args.proposal)
    filename = args.filename or args.original
    llm = ProviderHandle(args.provider) if args.provider else None

    try:
        result = await apply_code_block(old_file, new_lazy_file, filename, llm)
    except FullFileRequiredError as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1

    if not result.is_instant_apply:
        print("[lazy_apply] no instant strategy applies; a streaming model rewrite is required", file=sys.stderr)
        return 2
    print(format_diff_lines(await collect_lines(result.diff_lines)))
    return 0


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(prog="lazy_apply")
    ap.add_argument("original", help="file currently on disk")
    ap.add_argument("proposal", help="model output to reconcile with it")
    ap.add_argument("--filename", default="", help="name used for language detection (default: ORIGINAL)")
    ap.add_argument("--provider", default="", help="LLM provider name, enables the full-file guard")
    args = ap.parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
