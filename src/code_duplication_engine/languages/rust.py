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
Rust rules.

Rust block comments nest, and single quotes are lifetimes as often as
they are char literals, so only double quotes open a string.
"""

from .base import LanguageRules, patterns


_VIS = r"(pub(\([^)]*\))?\s+)?"

RUST_RULES = LanguageRules(
    name="rust",
    line_comments=("//",),
    block_comments=(("/*", "*/"),),
    nested_comments=True,
    string_quotes=('"',),
    directives=patterns(
        _VIS + r"use\s",
        _VIS + r"mod\s+\w+\s*;$",
        r"extern\s+crate\s",
    ),
    annotations=patterns(r"#!?\["),
    signature_start=patterns(
        _VIS + r"((const|async|unsafe|default|extern(\s+\"[^\"]*\")?)\s+)*fn\s"
    )[0],
    signature_terminators=("{", ";"),
)
