import unittest

from lazy_apply.diff import NEW, OLD, SAME, DiffLine, new_text_from_diff
from lazy_apply.errors import UnifiedDiffError
from lazy_apply.unified_diff import apply_unified_diff, is_unified_diff_format, parse_hunks

OLD_FILE = "def f():\n    a = 1\n    return a\n\ndef g():\n    return 2\n"

DIFF = (
    "--- a/m.py\n"
    "+++ b/m.py\n"
    "@@ -1,3 +1,3 @@\n"
    " def f():\n"
    "-    a = 1\n"
    "+    a = 2\n"
    "     return a\n"
)


class FormatDetectionTests(unittest.TestCase):
    def test_detects_diff(self) -> None:
        self.assertTrue(is_unified_diff_format(DIFF))
        self.assertTrue(is_unified_diff_format("@@ -1 +1 @@\n-a\n+b\n"))
        self.assertTrue(is_unified_diff_format("diff --git a/m.py b/m.py\nindex 1..2\n" + DIFF))

    def test_rejects_code_and_lists(self) -> None:
        self.assertFalse(is_unified_diff_format("def f():\n    pass\n"))
        self.assertFalse(is_unified_diff_format("- item one\n- item two\n"))
        self.assertFalse(is_unified_diff_format("--- a\n+++ b\n"))
        self.assertFalse(is_unified_diff_format(""))


class ParseHunksTests(unittest.TestCase):
    def test_header_counts(self) -> None:
        hunks = parse_hunks(DIFF)
        self.assertEqual(len(hunks), 1)
        self.assertEqual((hunks[0].old_start, hunks[0].old_count), (1, 3))
        self.assertEqual(len(hunks[0].lines), 4)
        self.assertEqual(hunks[0].hint(), 0)

    def test_blank_context_without_space(self) -> None:
        diff = "@@ -3,3 +3,3 @@\n     return a\n\n-def g():\n+def h():\n"
        hunk = parse_hunks(diff)[0]
        self.assertEqual(hunk.lines[1], (" ", ""))

    def test_context_only_hunks_dropped(self) -> None:
        self.assertEqual(parse_hunks("@@ -1,1 +1,1 @@\n def f():\n"), [])


class ApplyUnifiedDiffTests(unittest.TestCase):
    def test_applies_hunk(self) -> None:
        self.assertEqual(
            apply_unified_diff(OLD_FILE, DIFF),
            [
                DiffLine(SAME, "def f():"),
                DiffLine(OLD, "    a = 1"),
                DiffLine(NEW, "    a = 2"),
                DiffLine(SAME, "    return a"),
                DiffLine(SAME, ""),
                DiffLine(SAME, "def g():"),
                DiffLine(SAME, "    return 2"),
            ],
        )

    def test_wrong_line_numbers_still_locate(self) -> None:
        diff = DIFF.replace("@@ -1,3 +1,3 @@", "@@ -40,3 +40,3 @@")
        result = apply_unified_diff(OLD_FILE, diff)
        self.assertEqual(new_text_from_diff(result), "def f():\n    a = 2\n    return a\n\ndef g():\n    return 2")

    def test_multiple_hunks(self) -> None:
        old = "\n".join(f"l{i}" for i in range(10))
        diff = "@@ -2,1 +2,1 @@\n-l1\n+L1\n@@ -8,1 +8,1 @@\n-l7\n+L7\n"
        result = apply_unified_diff(old, diff)
        self.assertEqual(
            new_text_from_diff(result),
            "\n".join(["l0", "L1", "l2", "l3", "l4", "l5", "l6", "L7", "l8", "l9"]),
        )

    def test_removal_mismatch_raises(self) -> None:
        diff = "@@ -1,3 +1,3 @@\n def f():\n-    a = 9\n+    a = 2\n     return a\n"
        with self.assertRaises(UnifiedDiffError):
            apply_unified_diff(OLD_FILE, diff)

    def test_unlocatable_hunk_raises_value_error(self) -> None:
        diff = "@@ -1,2 +1,2 @@\n-class Nope:\n+class Yes:\n"
        with self.assertRaises(ValueError):
            apply_unified_diff(OLD_FILE, diff)

    def test_no_hunks_raises(self) -> None:
        with self.assertRaises(UnifiedDiffError):
            apply_unified_diff(OLD_FILE, "--- a/m.py\n+++ b/m.py\n")


if __name__ == "__main__":
    unittest.main()
