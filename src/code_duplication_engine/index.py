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
Hash index and candidate pair selection.

Each worker builds a small local index for its own file; the local
indexes are folded into one HashIndex in file order once every file is
hashed. The folded index is frozen and only read from then on.
"""

from collections import Counter
from itertools import combinations
from typing import Dict, Iterable, List, Sequence, Set, Tuple

import numpy as np

from .errors import InvariantError
from .models import SourceFile


Occurrence = Tuple[int, int]          # (file id, 1-based line number)
LocalIndex = Dict[int, List[int]]     # hash -> line numbers in one file
CandidatePair = Tuple[int, int]       # (file id, file id), first <= second


def build_local_index(source: SourceFile) -> LocalIndex:
    """
    Index the eligible lines of a single file.

    Args:
        source: Hashed source file

    Returns:
        Mapping of line hash to the 1-based line numbers carrying it
    """
    local: LocalIndex = {}
    for idx in np.flatnonzero(source.eligible):
        local.setdefault(int(source.hashes[idx]), []).append(int(idx) + 1)
    return local


class HashIndex:
    """Mapping from line hash to every (file id, line) occurrence."""

    def __init__(self):
        self._buckets: Dict[int, List[Occurrence]] = {}
        self._frozen = False

    @classmethod
    def from_local_indexes(cls, locals_by_file: Iterable[Tuple[int, LocalIndex]]) -> "HashIndex":
        """Fold per-file indexes in ascending file id order and freeze the result."""
        index = cls()
        for file_id, local in sorted(locals_by_file, key=lambda item: item[0]):
            index.add_local(file_id, local)
        index.freeze()
        return index

    @classmethod
    def from_files(cls, files: Sequence[SourceFile]) -> "HashIndex":
        return cls.from_local_indexes(
            (file_id, build_local_index(source)) for file_id, source in enumerate(files)
        )

    def add_local(self, file_id: int, local: LocalIndex) -> None:
        if self._frozen:
            raise InvariantError("Hash index modified after it was frozen")
        for line_hash, line_numbers in local.items():
            bucket = self._buckets.setdefault(line_hash, [])
            bucket.extend((file_id, line) for line in line_numbers)

    def freeze(self) -> None:
        self._frozen = True

    def occurrences(self, line_hash: int) -> List[Occurrence]:
        return list(self._buckets.get(line_hash, ()))

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, line_hash: int) -> bool:
        return line_hash in self._buckets

    def candidate_pairs(
        self,
        files: Sequence[SourceFile],
        ignore_same_filename: bool = False,
    ) -> List[CandidatePair]:
        """
        Derive the file pairs worth running the match engine on.

        A pair qualifies if the two files share at least one indexed hash.
        A file pairs with itself if some hash occurs on two of its lines.
        With ignore_same_filename, pairs of distinct files with the same
        basename are dropped.

        Args:
            files: Source files, indexed by file id
            ignore_same_filename: Skip pairs whose files share a basename

        Returns:
            Deduplicated pairs, sorted
        """
        pairs: Set[CandidatePair] = set()

        for bucket in self._buckets.values():
            if len(bucket) < 2:
                continue
            counts = Counter(file_id for file_id, _ in bucket)
            pairs.update((file_id, file_id) for file_id, count in counts.items() if count >= 2)
            pairs.update(combinations(sorted(counts), 2))

        if ignore_same_filename:
            pairs = {
                (a, b) for a, b in pairs
                if a == b or files[a].name != files[b].name
            }

        return sorted(pairs)
