import asyncio
import unittest

from lazy_apply.apply import CodeBlockApplier, apply_code_block
from lazy_apply.config import ApplyPolicy
from lazy_apply.diff import NEW, OLD, SAME, DiffLine, collect_lines, new_text_from_diff
from lazy_apply.errors import FullFileRequiredError
from lazy_apply.llm import ProviderHandle

FUNCS = "\n".join(
    [
        "function a() {",
        "  return 1;",
        "}",
        "",
        "function b() {",
        "  return 2;",
        "}",
        "",
        "function c() {",
        "  return 3;",
        "}",
    ]
)
MARKER = "// ... existing code ..."
HUNDRED = "\n".join(f"line {i}" for i in range(100))


class FakeStreamingLLM:
    def __init__(self, text, model="gemini-2.5-pro", provider="gemini"):
        self.text = text
        self.model = model
        self.provider = provider

    async def stream_chat(self, messages, abort_signal=None):
        for line in self.text.split("\n"):
            yield line + "\n"


class RecordingStream:
    def __init__(self):
        self.calls = []
        self.policy = None

    async def __call__(self, old_file, filename, new_lazy_file, llm, abort_signal=None, policy=None):
        self.policy = policy
        self.calls.append((old_file, filename, new_lazy_file))
        yield DiffLine(SAME, "streamed")


async def _apply(applier, old_file, new_lazy_file, filename, llm=None):
    result = await applier.apply(old_file, new_lazy_file, filename, llm)
    return result.is_instant_apply, await collect_lines(result.diff_lines)


class StrategyOrderTests(unittest.TestCase):
    def test_full_rewrite_tried_first_for_supported_languages(self) -> None:
        calls = []

        def deterministic(old_file, new_lazy_file, filename, only_full_file_rewrite=False, policy=None):
            calls.append(only_full_file_rewrite)
            return [DiffLine(NEW, "rewritten")] if only_full_file_rewrite else None

        applier = CodeBlockApplier(deterministic_apply=deterministic)
        instant, lines = asyncio.run(_apply(applier, "x", "y", "m.py"))
        self.assertTrue(instant)
        self.assertEqual(lines, [DiffLine(NEW, "rewritten")])
        self.assertEqual(calls, [True])

    def test_lazy_reconstruction_second(self) -> None:
        calls = []

        def deterministic(old_file, new_lazy_file, filename, only_full_file_rewrite=False, policy=None):
            calls.append(only_full_file_rewrite)
            return None if only_full_file_rewrite else [DiffLine(SAME, "x")]

        applier = CodeBlockApplier(deterministic_apply=deterministic)
        instant, _ = asyncio.run(_apply(applier, "x", "y", "m.py"))
        self.assertTrue(instant)
        self.assertEqual(calls, [True, False])

    def test_snippet_patches_skipped_for_supported_languages(self) -> None:
        stream = RecordingStream()
        applier = CodeBlockApplier(deterministic_apply=lambda *a, **k: None, stream_apply=stream)
        proposal = "\n".join([MARKER, "function b() {", "  return 20;", "}", MARKER])
        instant, lines = asyncio.run(_apply(applier, FUNCS, proposal, "funcs.js"))
        self.assertFalse(instant)
        self.assertEqual(lines, [DiffLine(SAME, "streamed")])
        self.assertEqual(len(stream.calls), 1)

    def test_sandwich_for_other_languages(self) -> None:
        proposal = "\n".join([MARKER, "function b() {", "  return 20;", "}", MARKER])
        instant, lines = asyncio.run(_apply(CodeBlockApplier(), FUNCS, proposal, "funcs.txt"))
        self.assertTrue(instant)
        self.assertEqual(new_text_from_diff(lines), FUNCS.replace("return 2;", "return 20;"))

    def test_inner_placeholders_are_stripped(self) -> None:
        proposal = "\n".join([MARKER, "function b() {", "  " + MARKER, "  return 20;", "}", MARKER])
        _, lines = asyncio.run(_apply(CodeBlockApplier(), FUNCS, proposal, "funcs.txt"))
        self.assertEqual(new_text_from_diff(lines), FUNCS.replace("return 2;", "return 20;"))

    def test_bare_snippet_for_other_languages(self) -> None:
        proposal = "function c() {\n  return 30;\n}"
        instant, lines = asyncio.run(_apply(CodeBlockApplier(), FUNCS, proposal, "funcs.txt"))
        self.assertTrue(instant)
        self.assertEqual(new_text_from_diff(lines), FUNCS.replace("return 3;", "return 30;"))

    def test_unified_diff(self) -> None:
        diff = "--- a/funcs.js\n+++ b/funcs.js\n@@ -5,3 +5,3 @@\n function b() {\n-  return 2;\n+  return 22;\n }\n"
        instant, lines = asyncio.run(_apply(CodeBlockApplier(), FUNCS, diff, "funcs.js"))
        self.assertTrue(instant)
        self.assertEqual(new_text_from_diff(lines), FUNCS.replace("return 2;", "return 22;"))

    def test_broken_unified_diff_falls_through(self) -> None:
        stream = RecordingStream()
        applier = CodeBlockApplier(stream_apply=stream)
        diff = "--- a/funcs.js\n+++ b/funcs.js\n@@ -1,1 +1,1 @@\n-function zzz() {\n+function yyy() {\n"
        instant, _ = asyncio.run(_apply(applier, FUNCS, diff, "funcs.js"))
        self.assertFalse(instant)
        self.assertEqual(stream.calls[0][2], diff)

    def test_crashing_diff_applier_falls_through(self) -> None:
        def crash(old_file, diff_text):
            raise RuntimeError("applier crashed")

        stream = RecordingStream()
        applier = CodeBlockApplier(unified_diff_apply=crash, stream_apply=stream)
        diff = "--- a/x.txt\n+++ b/x.txt\n@@ -1,1 +1,1 @@\n-function a() {\n+function aa() {\n"
        instant, lines = asyncio.run(_apply(applier, FUNCS, diff, "x.txt"))
        self.assertFalse(instant)
        self.assertEqual(lines, [DiffLine(SAME, "streamed")])

    def test_policy_reaches_streaming_fallback(self) -> None:
        stream = RecordingStream()
        policy = ApplyPolicy(placeholder_phrases=("keep as is",))
        applier = CodeBlockApplier(policy, stream_apply=stream)
        asyncio.run(_apply(applier, FUNCS, "unrelated", "funcs.txt"))
        self.assertIs(stream.policy, policy)

    def test_policy_phrases_drive_snippet_patches(self) -> None:
        keep = "// ... keep as is ..."
        proposal = "\n".join([keep, "function b() {", "  return 20;", "}", keep])
        applier = CodeBlockApplier(ApplyPolicy(placeholder_phrases=("keep as is",)))
        instant, lines = asyncio.run(_apply(applier, FUNCS, proposal, "funcs.txt"))
        self.assertTrue(instant)
        self.assertEqual(new_text_from_diff(lines), FUNCS.replace("return 2;", "return 20;"))

    def test_window_cap_from_policy(self) -> None:
        stream = RecordingStream()
        applier = CodeBlockApplier(ApplyPolicy(max_window_lines=2), stream_apply=stream)
        proposal = "\n".join([MARKER, "function b() {", "  return 20;", "}", MARKER])
        instant, _ = asyncio.run(_apply(applier, FUNCS, proposal, "funcs.txt"))
        self.assertFalse(instant)
        self.assertEqual(len(stream.calls), 1)

    def test_inputs_are_normalized(self) -> None:
        proposal = "\ufeff" + "\r\n".join([MARKER, "function b() {", "  return 20;", "}", MARKER])
        _, lines = asyncio.run(_apply(CodeBlockApplier(), FUNCS.replace("\n", "\r\n"), proposal, "funcs.txt"))
        self.assertEqual(new_text_from_diff(lines), FUNCS.replace("return 2;", "return 20;"))


class FullFileGuardTests(unittest.TestCase):
    def test_truncated_gemini_output_raises(self) -> None:
        proposal = "\n".join(f"line {i}" for i in range(30))
        with self.assertRaises(FullFileRequiredError):
            asyncio.run(apply_code_block(HUNDRED, proposal, "notes.txt", ProviderHandle("gemini")))

    def test_guard_skipped_without_llm(self) -> None:
        stream = RecordingStream()
        applier = CodeBlockApplier(stream_apply=stream)
        proposal = "\n".join(f"line {i}" for i in range(30))
        instant, _ = asyncio.run(_apply(applier, HUNDRED, proposal, "notes.txt"))
        self.assertFalse(instant)

    def test_policy_replaces_provider_list(self) -> None:
        proposal = "\n".join(f"line {i}" for i in range(30))
        applier = CodeBlockApplier(ApplyPolicy(full_file_providers=("acme",)), stream_apply=RecordingStream())
        asyncio.run(_apply(applier, HUNDRED, proposal, "notes.txt", ProviderHandle("gemini")))
        with self.assertRaises(FullFileRequiredError):
            asyncio.run(_apply(applier, HUNDRED, proposal, "notes.txt", ProviderHandle("acme")))


class EndToEndTests(unittest.TestCase):
    OLD = "a\nb\nc\nd\ne"
    NEW = "a\nZ\nc\nd\ne"

    def test_supported_language_is_instant(self) -> None:
        async def run():
            result = await apply_code_block(self.OLD, self.NEW, "letters.py")
            return result.is_instant_apply, await collect_lines(result.diff_lines)

        instant, lines = asyncio.run(run())
        self.assertTrue(instant)
        self.assertEqual(
            lines,
            [
                DiffLine(SAME, "a"),
                DiffLine(OLD, "b"),
                DiffLine(NEW, "Z"),
                DiffLine(SAME, "c"),
                DiffLine(SAME, "d"),
                DiffLine(SAME, "e"),
            ],
        )

    def test_other_language_streams(self) -> None:
        async def run():
            llm = FakeStreamingLLM("```letters.txt\n" + self.NEW + "\n```")
            result = await apply_code_block(self.OLD, self.NEW, "letters.txt", llm)
            return result.is_instant_apply, await collect_lines(result.diff_lines)

        instant, lines = asyncio.run(run())
        self.assertFalse(instant)
        self.assertEqual([d for d in lines if d.kind != SAME], [DiffLine(NEW, "Z"), DiffLine(OLD, "b")])
        self.assertEqual(new_text_from_diff(lines), self.NEW)


if __name__ == "__main__":
    unittest.main()
