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
Data models for code-duplication-engine.
"""

from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np

from .errors import InvariantError


@dataclass(eq=False)
class SourceFile:
    """A loaded source file with its normalized and hashed lines."""

    path: Path                 # Path as given by discovery
    language: str              # Rule set used for normalization
    raw_lines: List[str]       # Original lines, newline stripped
    normalized: List[str]      # One normalized line per raw line
    hashes: np.ndarray         # uint64 line hashes (0 where ineligible)
    eligible: np.ndarray       # bool mask of lines that may match

    def __post_init__(self):
        n = len(self.raw_lines)
        if len(self.normalized) != n or len(self.hashes) != n or len(self.eligible) != n:
            raise InvariantError(
                f"{self.path}: {n} raw lines but {len(self.normalized)} normalized, "
                f"{len(self.hashes)} hashes, {len(self.eligible)} eligibility flags"
            )

    @property
    def line_count(self) -> int:
        """Number of raw lines in this file."""
        return len(self.raw_lines)

    @property
    def name(self) -> str:
        """Base filename, used by the same-filename filter."""
        return self.path.name


@dataclass(frozen=True)
class DuplicateBlock:
    """
    A run of identical normalized lines shared by two files.

    Line numbers are 1-based and inclusive. For a block found inside a
    single file, the first range always precedes the second and the two
    never overlap.
    """

    file1: Path
    start1: int
    end1: int
    file2: Path
    start2: int
    end2: int
    line_count: int
    lines: Tuple[str, ...]       # Raw lines of the first range
    hashes: Tuple[int, ...]      # Line hashes shared by both ranges

    def __post_init__(self):
        if self.line_count < 1:
            raise InvariantError(f"Block with non-positive line count: {self.line_count}")
        if self.start1 < 1 or self.start2 < 1:
            raise InvariantError(f"Block starts before line 1: {self.location1}, {self.location2}")
        if self.end1 - self.start1 + 1 != self.line_count or self.end2 - self.start2 + 1 != self.line_count:
            raise InvariantError(
                f"Block ranges {self.location1} and {self.location2} "
                f"disagree with line count {self.line_count}"
            )
        if len(self.lines) != self.line_count or len(self.hashes) != self.line_count:
            raise InvariantError(f"Block {self.location1} carries the wrong number of lines")
        if self.is_self_match and self.end1 >= self.start2:
            raise InvariantError(f"Overlapping self match: {self.location1} vs {self.location2}")

    @property
    def is_self_match(self) -> bool:
        """True when both ranges are in the same file."""
        return self.file1 == self.file2

    @property
    def location1(self) -> str:
        return f"{self.file1}({self.start1}-{self.end1})"

    @property
    def location2(self) -> str:
        return f"{self.file2}({self.start2}-{self.end2})"

    def sort_key(self) -> Tuple[str, int, str, int]:
        """Stable report order: first path, first start, second path, second start."""
        return (str(self.file1), self.start1, str(self.file2), self.start2)


@dataclass
class Summary:
    """Corpus-wide statistics for one detection run."""

    files_analyzed: int
    total_lines: int
    duplicate_blocks: int
    duplicate_lines: int

    @property
    def duplication_ratio(self) -> Fraction:
        """Exact share of duplicated lines; zero for an empty corpus."""
        if self.total_lines == 0:
            return Fraction(0)
        return Fraction(self.duplicate_lines, self.total_lines)

    @property
    def duplication_percent(self) -> float:
        """Duplication as a percentage, for display."""
        return float(self.duplication_ratio * 100)


@dataclass
class DetectionResult:
    """Everything a renderer needs from a run."""

    blocks: List[DuplicateBlock]
    summary: Summary
    warnings: List[str] = field(default_factory=list)
    suppressed: int = 0                        # Blocks hidden by the baseline
    baseline_saved: Optional[Path] = None      # Set when a baseline was written

    @property
    def has_duplicates(self) -> bool:
        return bool(self.blocks)
