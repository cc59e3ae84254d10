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
Code Duplication Engine - Find duplicated code blocks across a codebase.

Normalizes each file line by line (language-aware comment and boilerplate
stripping), hashes the lines, and extracts maximal runs of identical lines
between every pair of files that share content.

No telemetry. Runs entirely locally.
"""

__version__ = "0.1.0"

from .config import DetectorConfig, load_config, find_config_file
from .detector import detect_duplicates
from .baseline import load_baseline, save_baseline, filter_new
from .reporter import render_result, OutputFormat
from .errors import DuplicationError

__all__ = [
    "__version__",
    "DetectorConfig",
    "detect_duplicates",
    "load_baseline",
    "save_baseline",
    "filter_new",
    "render_result",
    "OutputFormat",
    "DuplicationError",
    "load_config",
    "find_config_file",
]
