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
Shared pytest fixtures for code-duplication-engine tests.

Kept small: factories for hashed source files, duplicate blocks and
on-disk source trees.
"""

from pathlib import Path
from typing import Dict, List, Sequence

import pytest

from code_duplication_engine.hashing import hash_line, hash_lines
from code_duplication_engine.models import DuplicateBlock, SourceFile


# Distinct lines long enough to be eligible at the default min_chars
CODE = [f"value_{i} = compute({i})" for i in range(40)]


@pytest.fixture()
def code_lines() -> List[str]:
    return list(CODE)


@pytest.fixture()
def make_source():
    """Build an in-memory SourceFile whose normalized lines are the raw lines, trimmed."""

    def _make(path: str, lines: Sequence[str], min_chars: int = 3) -> SourceFile:
        normalized = [" ".join(line.split()) for line in lines]
        hashes, eligible = hash_lines(normalized, min_chars)
        return SourceFile(
            path=Path(path),
            language="generic",
            raw_lines=list(lines),
            normalized=normalized,
            hashes=hashes,
            eligible=eligible,
        )

    return _make


@pytest.fixture()
def make_block():
    """Build a DuplicateBlock from a path pair, start lines and the shared lines."""

    def _make(file1: str, start1: int, file2: str, start2: int, lines: Sequence[str]) -> DuplicateBlock:
        count = len(lines)
        return DuplicateBlock(
            file1=Path(file1),
            start1=start1,
            end1=start1 + count - 1,
            file2=Path(file2),
            start2=start2,
            end2=start2 + count - 1,
            line_count=count,
            lines=tuple(lines),
            hashes=tuple(hash_line(line) for line in lines),
        )

    return _make


@pytest.fixture()
def write_files(tmp_path: Path):
    """Write {relative path: lines} under tmp_path and return the paths in order."""

    def _write(files: Dict[str, Sequence[str]]) -> List[Path]:
        paths = []
        for rel, lines in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("\n".join(lines) + "\n", encoding="utf-8")
            paths.append(path)
        return paths

    return _write
