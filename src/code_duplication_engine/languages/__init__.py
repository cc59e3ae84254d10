# Code Duplication Engine - Find duplicated code blocks across a codebase
# Copyright (C) 2025  Jonathan Louis
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
Language-specific line normalization.

Each language is a LanguageRules table; files are dispatched to a table by
extension and anything unrecognized falls back to the generic rules.
"""

from pathlib import Path
from typing import Dict, List, Optional

from .base import LanguageRules, normalize_lines
from .c import C_RULES
from .csharp import CSHARP_RULES
from .css import CSS_RULES, SCSS_RULES
from .erlang import ERLANG_RULES
from .generic import GENERIC_RULES
from .html import HTML_RULES
from .java import JAVA_RULES
from .javascript import JAVASCRIPT_RULES
from .python import PYTHON_RULES
from .rust import RUST_RULES
from .vb import VB_RULES


# Language registry - maps language name to its rule table
_RULES_REGISTRY: Dict[str, LanguageRules] = {}

# Extension to language mapping
EXTENSION_MAP = {
    ".c": "c",
    ".h": "c",
    ".cpp": "c",
    ".cxx": "c",
    ".cc": "c",
    ".hpp": "c",
    ".hxx": "c",
    ".hh": "c",
    ".java": "java",
    ".cs": "csharp",
    ".vb": "vb",
    ".erl": "erlang",
    ".hrl": "erlang",
    ".py": "python",
    ".pyw": "python",
    ".pyi": "python",
    ".rs": "rust",
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "javascript",
    ".tsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".html": "html",
    ".htm": "html",
    ".xhtml": "html",
    ".css": "css",
    ".scss": "scss",
    ".less": "scss",
}

SUPPORTED_EXTENSIONS = frozenset(EXTENSION_MAP)


def register_rules(rules: LanguageRules) -> None:
    """Register a rule table under its language name."""
    _RULES_REGISTRY[rules.name.lower()] = rules


for _rules in (
    C_RULES, JAVA_RULES, CSHARP_RULES, VB_RULES, ERLANG_RULES, PYTHON_RULES,
    RUST_RULES, JAVASCRIPT_RULES, HTML_RULES, CSS_RULES, SCSS_RULES, GENERIC_RULES,
):
    register_rules(_rules)


def get_rules(language: Optional[str]) -> LanguageRules:
    """
    Get the rule table for a language.

    Falls back to the generic rules if the language is unknown.
    """
    if language is None:
        return GENERIC_RULES
    return _RULES_REGISTRY.get(language.lower(), GENERIC_RULES)


def detect_language(file_path: Path) -> Optional[str]:
    """Detect language from file extension."""
    return EXTENSION_MAP.get(file_path.suffix.lower())


def is_supported(file_path: Path) -> bool:
    """True if the file has an extension with dedicated rules."""
    return file_path.suffix.lower() in SUPPORTED_EXTENSIONS


def normalize_file(
    raw_lines: List[str],
    file_path: Path,
    ignore_preprocessor: bool = False,
) -> List[str]:
    """Normalize a file's lines using the rules for its extension."""
    return normalize_lines(raw_lines, get_rules(detect_language(file_path)), ignore_preprocessor)


__all__ = [
    "LanguageRules",
    "EXTENSION_MAP",
    "SUPPORTED_EXTENSIONS",
    "register_rules",
    "get_rules",
    "detect_language",
    "is_supported",
    "normalize_lines",
    "normalize_file",
]
