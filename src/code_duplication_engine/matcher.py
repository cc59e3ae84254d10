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
Contiguous-run match engine.

For two files a[0..n) and b[0..m), the run-length matrix is

    M[i][j] = M[i-1][j-1] + 1   if a[i] and b[j] are eligible and equal
    M[i][j] = 0                 otherwise

A run ending at (i, j) with value v covers a[i-v+1..i] and b[j-v+1..j].
Only two rows of M are kept at a time; each row is computed with numpy
and a run is emitted on the row where its diagonal stops growing, so
every diagonal run is reported once, at its full length.

Runs are emitted in row-major order of their end cell. When two maximal
blocks only partially overlap, both are kept and the earlier one in that
order comes first.
"""

import logging
from typing import List, Tuple

import numpy as np

from .models import DuplicateBlock, SourceFile


logger = logging.getLogger(__name__)

Run = Tuple[int, int, int]   # (end row, end column, length), 0-based


def find_runs(
    a_hashes: np.ndarray,
    a_eligible: np.ndarray,
    b_hashes: np.ndarray,
    b_eligible: np.ndarray,
    min_lines: int,
    same_file: bool = False,
) -> List[Run]:
    """
    Find every maximal diagonal run of at least min_lines matching lines.

    Ineligible lines never match anything, including each other, so they
    break runs. For a file compared with itself only cells below the
    diagonal (column < row) are considered.

    Args:
        a_hashes: Row file line hashes
        a_eligible: Row file eligibility mask
        b_hashes: Column file line hashes
        b_eligible: Column file eligibility mask
        min_lines: Minimum run length to report
        same_file: True when a and b are the same file

    Returns:
        Runs as (end row, end column, length), in row-major order of their end cell
    """
    n, m = len(a_hashes), len(b_hashes)
    if n == 0 or m == 0:
        return []

    runs: List[Run] = []
    prev = np.zeros(m, dtype=np.int64)
    cur = np.zeros(m, dtype=np.int64)
    no_match = np.zeros(m, dtype=bool)

    for i in range(n):
        if a_eligible[i]:
            match = (b_hashes == a_hashes[i]) & b_eligible
            if same_file:
                match[i:] = False
        else:
            match = no_match

        cur[0] = 1 if match[0] else 0
        cur[1:] = np.where(match[1:], prev[:-1] + 1, 0)

        # A run ended on the previous row if its diagonal did not continue here
        ended = prev >= min_lines
        ended[:-1] &= cur[1:] == 0
        for j in np.flatnonzero(ended):
            runs.append((i - 1, int(j), int(prev[j])))

        prev, cur = cur, prev

    for j in np.flatnonzero(prev >= min_lines):
        runs.append((n - 1, int(j), int(prev[j])))

    return runs


def _run_to_ranges(run: Run, min_lines: int, same_file: bool) -> List[Tuple[int, int, int]]:
    """
    Turn a run into (start1, start2, length) triples, 0-based.

    For a self match the column range comes first. A self match whose two
    ranges would overlap is split into pieces no longer than the distance
    between them.
    """
    end_i, end_j, length = run
    row_start = end_i - length + 1
    col_start = end_j - length + 1

    if not same_file:
        return [(row_start, col_start, length)]

    offset = end_i - end_j
    if length <= offset:
        return [(col_start, row_start, length)]

    pieces = []
    for skip in range(0, length, offset):
        piece = min(offset, length - skip)
        if piece >= min_lines:
            pieces.append((col_start + skip, row_start + skip, piece))
    return pieces


def _contains(outer: DuplicateBlock, inner: DuplicateBlock) -> bool:
    return (
        outer.start1 <= inner.start1 and inner.end1 <= outer.end1
        and outer.start2 <= inner.start2 and inner.end2 <= outer.end2
        and (outer.start1, outer.end1, outer.start2, outer.end2)
        != (inner.start1, inner.end1, inner.start2, inner.end2)
    )


def drop_contained(blocks: List[DuplicateBlock]) -> List[DuplicateBlock]:
    """Remove blocks whose ranges lie inside another block's ranges in both files."""
    if len(blocks) < 2:
        return blocks
    return [
        block for block in blocks
        if not any(_contains(other, block) for other in blocks if other is not block)
    ]


def match_pair(
    source1: SourceFile,
    source2: SourceFile,
    min_lines: int,
) -> List[DuplicateBlock]:
    """
    Extract duplicate blocks shared by two files (or one file with itself).

    Args:
        source1: First file of the candidate pair
        source2: Second file (may be the same object as source1)
        min_lines: Minimum block size in lines

    Returns:
        Maximal, non-nested blocks in row-major order of their end cell
    """
    same_file = source1 is source2
    runs = find_runs(
        source1.hashes, source1.eligible,
        source2.hashes, source2.eligible,
        min_lines, same_file,
    )

    blocks = []
    for run in runs:
        for start1, start2, length in _run_to_ranges(run, min_lines, same_file):
            blocks.append(DuplicateBlock(
                file1=source1.path,
                start1=start1 + 1,
                end1=start1 + length,
                file2=source2.path,
                start2=start2 + 1,
                end2=start2 + length,
                line_count=length,
                lines=tuple(source1.raw_lines[start1:start1 + length]),
                hashes=tuple(int(h) for h in source1.hashes[start1:start1 + length]),
            ))

    blocks = drop_contained(blocks)
    if blocks:
        logger.debug(f"{source1.path} <-> {source2.path}: {len(blocks)} blocks")
    return blocks
