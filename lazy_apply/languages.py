"""Languages with a syntax-tree applier, keyed by file extension."""

import os
from typing import Dict, Optional
from urllib.parse import unquote, urlparse

from .utils import dbg

# Map file extension to tree-sitter language name
SUPPORTED_LANGUAGES: Dict[str, str] = {
    "py": "python",
    "pyi": "python",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "ts": "typescript",
    "mts": "typescript",
    "cts": "typescript",
    "tsx": "tsx",
    "go": "go",
    "rs": "rust",
    "rb": "ruby",
    "java": "java",
    "c": "c",
    "h": "c",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "hpp": "cpp",
    "cs": "c_sharp",
    "php": "php",
    "swift": "swift",
    "kt": "kotlin",
    "scala": "scala",
    "lua": "lua",
    "sh": "bash",
    "bash": "bash",
}


def get_file_extension(filename: str) -> str:
    """Lower-case extension without the dot; accepts paths and file:// URIs."""
    if not filename:
        return ""
    path = filename
    if "://" in filename:
        path = unquote(urlparse(filename).path)
    return os.path.splitext(path)[1].lstrip(".").lower()


def language_for_file(filename: str, languages: Optional[Dict[str, str]] = None) -> Optional[str]:
    table = SUPPORTED_LANGUAGES if languages is None else languages
    return table.get(get_file_extension(filename))


def can_use_instant_apply(filename: str, languages: Optional[Dict[str, str]] = None) -> bool:
    return language_for_file(filename, languages) is not None


def get_parser_for_file(filename: str, languages: Optional[Dict[str, str]] = None):
    """tree-sitter parser for the file's language, or None."""
    lang_name = language_for_file(filename, languages)
    if not lang_name:
        return None
    try:
        from tree_sitter_languages import get_parser
    except ImportError:
        dbg("get_parser_for_file: tree-sitter-languages not installed")
        return None
    try:
        return get_parser(lang_name)
    except Exception as exc:
        dbg(f"get_parser_for_file: no parser for {lang_name}: {exc}")
        return None
