"""Streaming fallback: ask the model to rewrite the file and diff it as it streams.

Pipeline over the chat completion:
  chunks -> lines -> strip code fences -> fill "UNCHANGED CODE" markers
  from the original -> incremental diff against the original lines.

Every stage is an async generator, so consumption is paced by the model's
token stream. The abort signal is checked before every diff line is yielded.
"""

from typing import AsyncIterator, Callable, List, Optional, Sequence, Tuple

from .config import ApplyPolicy
from .diff import NEW, OLD, SAME, DiffLine, diff_split
from .errors import LazyApplyUnsupportedError
from .llm import AbortSignal, StreamingLLM
from .placeholders import is_lazy_marker_line, lazy_marker_test
from .prompts import lazy_apply_prompt_for_model
from .utils import dbg, dbg_dump

END_BRACKETS = ("}", "};", "});", "})", ")", ");", "]", "];")
# Closing brackets only match this close to the diff cursor
END_BRACKET_LOOKAHEAD = 5


def _aborted(abort_signal: Optional[AbortSignal]) -> bool:
    return abort_signal is not None and abort_signal.is_set()


async def stream_lines(chunks: AsyncIterator[str]) -> AsyncIterator[str]:
    """Re-chunk a token stream into complete lines."""
    buffer = ""
    async for chunk in chunks:
        buffer += (chunk or "").replace("\r\n", "\n").replace("\r", "\n")
        while "\n" in buffer:
            line, buffer = buffer.split("\n", 1)
            yield line
    if buffer:
        yield buffer


async def filter_code_block_lines(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """Drop leading blank lines and an echoed opening fence; stop at the closing fence."""
    started = False
    async for line in lines:
        is_fence = line.strip().startswith("```")
        if not started:
            if not line.strip():
                continue
            started = True
            if is_fence:
                continue
        elif is_fence:
            return
        yield line


def _find_from(old_lines: Sequence[str], line: str, start: int) -> int:
    key = line.strip()
    if not key:
        return -1
    for i in range(start, len(old_lines)):
        if old_lines[i].strip() == key:
            return i
    return -1


async def fill_unchanged_code(
    lines: AsyncIterator[str],
    old_file: str,
    is_marker: Callable[[str], bool] = is_lazy_marker_line,
) -> AsyncIterator[str]:
    """Replace marker lines with the original lines they stand for.

    A marker covers the original lines between the last line already matched
    and the next streamed line found in the original; a trailing marker covers
    the rest. New lines streamed in between are held back and follow the
    filler.
    """
    old_lines = diff_split(old_file)
    cursor = 0
    pending = False
    held: List[str] = []
    async for line in lines:
        if is_marker(line):
            pending = True
            continue
        idx = _find_from(old_lines, line, cursor)
        if pending:
            if idx < 0:
                held.append(line)
                continue
            for old_line in old_lines[cursor:idx] + held:
                yield old_line
            cursor = idx
            pending = False
            held = []
        if idx >= 0 and (line.strip() not in END_BRACKETS or idx - cursor < END_BRACKET_LOOKAHEAD):
            cursor = idx + 1
        yield line
    if pending:
        for old_line in old_lines[cursor:] + held:
            yield old_line


def match_line(new_line: str, old_lines: Sequence[str], start: int = 0) -> Tuple[int, bool]:
    """Index of new_line in old_lines[start:] (absolute), and whether it matched exactly.

    Blank lines only match the next old line; closing brackets only match
    within END_BRACKET_LOOKAHEAD lines. Indentation-only differences count as
    an inexact match.
    """
    trimmed = new_line.strip()
    if not trimmed:
        if start < len(old_lines) and not old_lines[start].strip():
            return start, old_lines[start] == new_line
        return -1, False
    is_end_bracket = trimmed in END_BRACKETS
    for i in range(start, len(old_lines)):
        if is_end_bracket and i - start >= END_BRACKET_LOOKAHEAD:
            break
        if old_lines[i] == new_line:
            return i, True
        if old_lines[i].strip() == trimmed:
            return i, False
    return -1, False


async def stream_diff(
    old_lines: List[str],
    new_lines: AsyncIterator[str],
    abort_signal: Optional[AbortSignal] = None,
) -> AsyncIterator[DiffLine]:
    """Diff a stream of new lines against old_lines, yielding as lines arrive."""
    cursor = 0
    async for new_line in new_lines:
        idx, perfect = match_line(new_line, old_lines, cursor)
        if idx < 0:
            batch = [DiffLine(NEW, new_line)]
        else:
            batch = [DiffLine(OLD, old_line) for old_line in old_lines[cursor:idx]]
            if perfect:
                batch.append(DiffLine(SAME, old_lines[idx]))
            else:
                batch.extend([DiffLine(OLD, old_lines[idx]), DiffLine(NEW, new_line)])
            cursor = idx + 1
        for diff_line in batch:
            if _aborted(abort_signal):
                dbg("stream_diff: aborted")
                return
            yield diff_line
    for old_line in old_lines[cursor:]:
        if _aborted(abort_signal):
            return
        yield DiffLine(OLD, old_line)


async def stream_lazy_apply(
    old_file: str,
    filename: str,
    new_lazy_file: str,
    llm: StreamingLLM,
    abort_signal: Optional[AbortSignal] = None,
    policy: Optional[ApplyPolicy] = None,
) -> AsyncIterator[DiffLine]:
    """Have the model merge new_lazy_file into old_file, streaming diff lines.

    Raises LazyApplyUnsupportedError on first iteration when the model has no
    lazy-apply prompt or the handle cannot stream.
    """
    model = getattr(llm, "model", "") or ""
    provider = getattr(llm, "provider", "") or ""
    prompt_factory = lazy_apply_prompt_for_model(model, provider)
    if prompt_factory is None:
        raise LazyApplyUnsupportedError(f"Lazy apply not supported for model {model!r} ({provider})")
    stream_chat = getattr(llm, "stream_chat", None)
    if not callable(stream_chat):
        raise LazyApplyUnsupportedError(f"LLM handle for {provider!r} cannot stream chat completions")

    messages = prompt_factory(old_file, filename, new_lazy_file)
    dbg(f"stream_lazy_apply: {filename} via {provider}/{model}")
    dbg_dump("stream_lazy_apply prompt", messages[0]["content"])

    lines = stream_lines(stream_chat(messages, abort_signal=abort_signal))
    lines = filter_code_block_lines(lines)
    lines = fill_unchanged_code(lines, old_file, lazy_marker_test(policy))
    async for diff_line in stream_diff(diff_split(old_file), lines, abort_signal):
        yield diff_line
