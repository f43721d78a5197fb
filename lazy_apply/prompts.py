"""Prompt templates for the streaming lazy-apply fallback."""

from typing import Callable, Dict, List, Optional

UNCHANGED_CODE = "UNCHANGED CODE"

Message = Dict[str, str]
LazyApplyPrompt = Callable[[str, str, str], List[Message]]

RULES = [
    "Your response should be a code block containing a rewritten version of the file.",
    f'Whenever any part of the code is the same as before, you may simply indicate this with a comment that says "{UNCHANGED_CODE}" instead of rewriting.',
    "You must keep at least one line above and below from the original code, so that we can identify what the previous code was.",
    f'Do not place miscellaneous "{UNCHANGED_CODE}" comments at the top or bottom of the file when there is nothing to replace them.',
    "The code should always be syntactically valid, even with the comments.",
]

GEMINI_RULES = [
    "Return the entire updated file inside a code block whose info string includes the filename, for example ```ts path/to/file.ts.",
    f'When a section is unchanged, replace it with a short comment that contains the exact phrase "{UNCHANGED_CODE}" so tooling can stitch the original contents back in.',
    "Keep the file syntactically correct and avoid extra narration outside the code block.",
]


def _code_blocks(old_code: str, filename: str, new_code: str) -> str:
    return (
        f"ORIGINAL CODE:\n```{filename}\n{old_code}\n```\n\n"
        f"NEW CODE:\n```\n{new_code}\n```\n\n"
    )


def claude_lazy_apply_prompt(old_code: str, filename: str, new_code: str) -> List[Message]:
    instructions = (
        "Above is a code block containing the original version of a file (ORIGINAL CODE) and below it "
        "is a code snippet (NEW CODE) that was suggested as modification to the original file. Your task "
        "is to apply the NEW CODE to the ORIGINAL CODE and show what the entire file would look like "
        "after it is applied.\n"
    )
    user = _code_blocks(old_code, filename, new_code) + instructions + "- " + "\n- ".join(RULES)
    assistant = f"Sure! Here's the modified version of the file after applying the new code:\n```{filename}"
    return [
        {"role": "user", "content": user},
        {"role": "assistant", "content": assistant},
    ]


def gemini_lazy_apply_prompt(old_code: str, filename: str, new_code: str) -> List[Message]:
    instructions = "Apply the NEW CODE changes to the ORIGINAL CODE and respond with the full updated file.\n"
    user = _code_blocks(old_code, filename, new_code) + instructions + "- " + "\n- ".join(GEMINI_RULES)
    assistant = f"Certainly! Here is the updated file with the requested edits applied:\n```{filename}"
    return [
        {"role": "user", "content": user},
        {"role": "assistant", "content": assistant},
    ]


def lazy_apply_prompt_for_model(model: str, provider: str) -> Optional[LazyApplyPrompt]:
    lower_model = (model or "").lower()
    lower_provider = (provider or "").lower()
    if "sonnet" in lower_model:
        return claude_lazy_apply_prompt
    if (
        "gemini" in lower_model
        or lower_provider == "gemini"
        or (lower_provider == "vertexai" and "gemini" in lower_model)
    ):
        return gemini_lazy_apply_prompt
    return None
