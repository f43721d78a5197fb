import unittest

from lazy_apply.placeholders import (
    contains_placeholder,
    is_lazy_marker_line,
    is_placeholder_line,
    strip_ephemeral_placeholders,
)


class PlaceholderLineTests(unittest.TestCase):
    def test_common_markers(self) -> None:
        for line in (
            "// ...existing code...",
            "    // ... existing code ...",
            "...rest of code...",
            "# ... omitted section ...",
            "/* ... snip ... */",
            "UNCHANGED_CODE",
            "// ... Existing Code ...",
        ):
            self.assertTrue(is_placeholder_line(line), line)

    def test_plain_lines(self) -> None:
        for line in ("", "   ", "const x = 1;", "// existing code", "print('...')"):
            self.assertFalse(is_placeholder_line(line), line)

    def test_token_is_case_sensitive_per_line(self) -> None:
        self.assertFalse(is_placeholder_line("# unchanged_code"))
        self.assertTrue(contains_placeholder("x = 1\n# unchanged_code\n"))

    def test_phrases_are_data(self) -> None:
        self.assertFalse(is_placeholder_line("// ... keep as is ..."))
        self.assertTrue(is_placeholder_line("// ... keep as is ...", phrases=("keep as is",)))

    def test_lazy_marker_includes_prompt_marker(self) -> None:
        self.assertTrue(is_lazy_marker_line("    # UNCHANGED CODE"))
        self.assertTrue(is_lazy_marker_line("// ... existing code ..."))
        self.assertFalse(is_lazy_marker_line("return unchanged"))


class StripEphemeralPlaceholdersTests(unittest.TestCase):
    def test_removes_marker_lines(self) -> None:
        content = "a = 1\n// ... existing code ...\nb = 2"
        self.assertEqual(strip_ephemeral_placeholders(content, "a = 1\nb = 2"), "a = 1\nb = 2")

    def test_keeps_markers_when_original_has_them(self) -> None:
        original = 'DOC = "// ... existing code ..."\n'
        content = "x\n// ... existing code ...\ny"
        self.assertEqual(strip_ephemeral_placeholders(content, original), content)


if __name__ == "__main__":
    unittest.main()
