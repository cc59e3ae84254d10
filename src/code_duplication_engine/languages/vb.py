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
Visual Basic rules.

VB has no block comments; besides the apostrophe, a statement that
starts with REM is a comment. Quotes are escaped by doubling them, which
the string scanner handles without an escape character.
"""

import re

from .base import LanguageRules, patterns


VB_RULES = LanguageRules(
    name="vb",
    line_comments=("'",),
    string_quotes=('"',),
    escape=None,
    comment_lines=patterns(r"rem(\s|$)", flags=re.IGNORECASE),
    directives=patterns(r"imports\s", r"#", flags=re.IGNORECASE),
)
