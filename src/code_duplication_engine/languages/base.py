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
Shared line filter driven by per-language rule tables.

Every supported language is described by a LanguageRules instance; the
same driver applies any rule set to a file. Adding a language means
writing one rule table, never a new filter.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Tuple


OPENERS = "([{"
CLOSERS = ")]}"


@dataclass(frozen=True)
class LanguageRules:
    """Capabilities of one language's line filter."""

    name: str
    line_comments: Tuple[str, ...] = ()
    block_comments: Tuple[Tuple[str, str], ...] = ()
    nested_comments: bool = False
    string_quotes: Tuple[str, ...] = ('"', "'")
    escape: Optional[str] = "\\"
    comment_lines: Tuple[Pattern, ...] = ()      # Whole-line comments (VB REM)
    always_strip: Tuple[Pattern, ...] = ()       # Dropped regardless of flags
    directives: Tuple[Pattern, ...] = ()         # Dropped with ignore_preprocessor
    annotations: Tuple[Pattern, ...] = ()        # Dropped with ignore_preprocessor
    signature_start: Optional[Pattern] = None    # Dropped with ignore_preprocessor
    signature_terminators: Tuple[str, ...] = ()
    require_alpha: bool = True


@dataclass
class _ScanState:
    """Filter state that survives from one line to the next."""

    block: Optional[Tuple[str, str]] = None
    block_depth: int = 0
    directive_depth: int = 0
    in_signature: bool = False
    signature_depth: int = 0


def patterns(*sources: str, flags: int = 0) -> Tuple[Pattern, ...]:
    """Compile a tuple of regexes for a rule table."""
    return tuple(re.compile(source, flags) for source in sources)


def normalize_lines(
    raw_lines: List[str],
    rules: LanguageRules,
    ignore_preprocessor: bool = False,
) -> List[str]:
    """
    Normalize a file's lines with the given rule set.

    The result always has exactly one entry per raw line. Lines that carry
    no comparable code (comments, stripped directives, blank lines) become
    empty strings so line numbers stay aligned.

    Args:
        raw_lines: File lines without line terminators
        rules: Language rule table
        ignore_preprocessor: Also strip directives, annotations and signatures

    Returns:
        List of normalized lines
    """
    state = _ScanState()
    return [_normalize_line(line, rules, state, ignore_preprocessor) for line in raw_lines]


def _normalize_line(
    line: str,
    rules: LanguageRules,
    state: _ScanState,
    ignore_preprocessor: bool,
) -> str:
    text = " ".join(_strip_comments(line, rules, state).split())
    if not text:
        return ""

    if any(p.match(text) for p in rules.comment_lines):
        return ""
    if any(p.match(text) for p in rules.always_strip):
        return ""

    if ignore_preprocessor:
        if state.directive_depth > 0:
            state.directive_depth = max(0, state.directive_depth + _bracket_balance(text))
            return ""
        if any(p.match(text) for p in rules.directives):
            # Multi-line imports keep going until their brackets close
            state.directive_depth = max(0, _bracket_balance(text))
            return ""
        if any(p.match(text) for p in rules.annotations):
            return ""
        if state.in_signature or (rules.signature_start and rules.signature_start.match(text)):
            _consume_signature(text, rules, state)
            return ""

    if rules.require_alpha and not any(c.isalpha() for c in text):
        return ""

    return text


def _strip_comments(line: str, rules: LanguageRules, state: _ScanState) -> str:
    """Remove comments from one line, respecting string literals."""
    out = []
    quote = None
    i = 0
    n = len(line)

    while i < n:
        if state.block is not None:
            opener, closer = state.block
            if rules.nested_comments and line.startswith(opener, i):
                state.block_depth += 1
                i += len(opener)
            elif line.startswith(closer, i):
                state.block_depth -= 1
                i += len(closer)
                if state.block_depth == 0:
                    state.block = None
                    out.append(" ")
            else:
                i += 1
            continue

        ch = line[i]

        if quote is not None:
            out.append(ch)
            if rules.escape and ch == rules.escape and i + 1 < n:
                out.append(line[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue

        if any(line.startswith(marker, i) for marker in rules.line_comments):
            break

        block = next((pair for pair in rules.block_comments if line.startswith(pair[0], i)), None)
        if block is not None:
            state.block = block
            state.block_depth = 1
            i += len(block[0])
            continue

        if ch in rules.string_quotes:
            quote = ch
        out.append(ch)
        i += 1

    # Unterminated string literals end with the line
    return "".join(out)


def _bracket_balance(text: str) -> int:
    return sum(c in OPENERS for c in text) - sum(c in CLOSERS for c in text)


def _consume_signature(text: str, rules: LanguageRules, state: _ScanState) -> None:
    """Track a (possibly multi-line) signature until its terminator."""
    depth = state.signature_depth if state.in_signature else 0
    for ch in text:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif depth <= 0 and ch in rules.signature_terminators:
            state.in_signature = False
            state.signature_depth = 0
            return
    state.in_signature = True
    state.signature_depth = depth
