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
Exceptions raised by code-duplication-engine.

Everything a user can cause (bad settings, bad input, a broken baseline,
git trouble) derives from DuplicationError so the CLI can report it and
exit with status 2. InvariantError is a programming error and is
intentionally kept outside that hierarchy.
"""


class DuplicationError(Exception):
    """Base class for recoverable, user-facing failures."""


class ConfigError(DuplicationError):
    """Invalid or conflicting settings."""


class InputError(DuplicationError):
    """The run has nothing usable to analyze."""


class BaselineError(DuplicationError):
    """A baseline file could not be read, parsed or written."""


class DiscoveryError(DuplicationError):
    """Source files could not be discovered (usually a git failure)."""


class InvariantError(RuntimeError):
    """An internal invariant of the index or match engine was broken."""
