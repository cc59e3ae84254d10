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
JavaScript and TypeScript rules.
"""

from .base import LanguageRules, patterns


JAVASCRIPT_RULES = LanguageRules(
    name="javascript",
    line_comments=("//",),
    block_comments=(("/*", "*/"),),
    string_quotes=('"', "'", "`"),
    directives=patterns(
        r"import[\s{*'\"]",
        r"export\s*\*",
        r"export\s.*\bfrom\s",
        r"((const|let|var)\s+.*=\s*)?require\(",
    ),
)
