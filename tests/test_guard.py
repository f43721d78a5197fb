import unittest

from lazy_apply.config import ApplyPolicy
from lazy_apply.errors import FullFileRequiredError
from lazy_apply.guard import enforce_full_file_output, is_enforced_provider

OLD = "\n".join(f"line {i}" for i in range(100))


class ProviderTests(unittest.TestCase):
    def test_substring_match(self) -> None:
        self.assertTrue(is_enforced_provider("gemini"))
        self.assertTrue(is_enforced_provider("Vertexai_Enterprise_WIF"))
        self.assertTrue(is_enforced_provider("dbllmrev1"))
        self.assertFalse(is_enforced_provider("openai"))
        self.assertFalse(is_enforced_provider(None))
        self.assertFalse(is_enforced_provider(""))

    def test_policy_overrides_list(self) -> None:
        policy = ApplyPolicy(full_file_providers=("acme",))
        self.assertTrue(is_enforced_provider("acme-cloud", policy))
        self.assertFalse(is_enforced_provider("gemini", policy))

    def test_policy_tokens_ignore_case(self) -> None:
        policy = ApplyPolicy(full_file_providers=("Acme",))
        self.assertTrue(is_enforced_provider("acme-cloud", policy))
        self.assertTrue(is_enforced_provider("ACME", policy))


class EnforceFullFileTests(unittest.TestCase):
    def test_truncated_proposal_raises(self) -> None:
        proposal = "\n".join(f"line {i}" for i in range(30))
        with self.assertRaises(FullFileRequiredError):
            enforce_full_file_output(OLD, proposal, "gemini")

    def test_short_proposal_with_last_line_passes(self) -> None:
        proposal = "\n".join(f"line {i}" for i in range(29)) + "\nline 99"
        enforce_full_file_output(OLD, proposal, "gemini")

    def test_placeholder_without_last_line_raises(self) -> None:
        proposal = "\n".join(f"line {i}" for i in range(90)) + "\n// ... existing code ..."
        with self.assertRaises(FullFileRequiredError):
            enforce_full_file_output(OLD, proposal, "gemini")

    def test_other_providers_are_not_checked(self) -> None:
        enforce_full_file_output(OLD, "line 0", "openai")
        enforce_full_file_output(OLD, "line 0", None)

    def test_full_proposal_passes(self) -> None:
        enforce_full_file_output(OLD, OLD.replace("line 50", "line fifty"), "gemini")

    def test_min_line_ratio_from_policy(self) -> None:
        proposal = "\n".join(f"line {i}" for i in range(30))
        enforce_full_file_output(OLD, proposal, "gemini", ApplyPolicy(min_line_ratio=0.2))


if __name__ == "__main__":
    unittest.main()
