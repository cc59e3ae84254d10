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
Line hashing for duplicate detection.

Lines are hashed with 64-bit FNV-1a so results are reproducible across
runs, machines and implementations. Whitespace bytes are skipped while
hashing, so incidental indentation or spacing never changes a hash.
"""

from typing import List, Tuple

import numpy as np


FNV_OFFSET_BASIS = 0xCBF29CE484222325
FNV_PRIME = 0x100000001B3
MASK_64 = 0xFFFFFFFFFFFFFFFF


def fnv1a_64(data: bytes) -> int:
    """
    Compute the 64-bit FNV-1a hash of raw bytes.

    Args:
        data: Bytes to hash

    Returns:
        Unsigned 64-bit hash value
    """
    h = FNV_OFFSET_BASIS
    for byte in data:
        h ^= byte
        h = (h * FNV_PRIME) & MASK_64
    return h


def hash_line(text: str) -> int:
    """
    Hash a normalized line, ignoring every whitespace byte.

    Args:
        text: Normalized line text

    Returns:
        Unsigned 64-bit hash value
    """
    # ASCII control characters and space are all <= 0x20
    return fnv1a_64(bytes(b for b in text.encode("utf-8") if b > 0x20))


def is_eligible(text: str, min_chars: int) -> bool:
    """
    Check whether a normalized line may take part in matching.

    Empty lines are never eligible, even with min_chars == 0.
    """
    return bool(text) and len(text) >= min_chars


def hash_lines(normalized: List[str], min_chars: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Hash every normalized line of a file.

    Ineligible lines keep their slot (hash 0) so line numbers stay aligned;
    the eligibility mask is what keeps them out of matching.

    Args:
        normalized: Normalized lines, one per raw line
        min_chars: Minimum normalized length for a line to be eligible

    Returns:
        (hashes, eligible) arrays of dtype uint64 and bool
    """
    hashes = np.zeros(len(normalized), dtype=np.uint64)
    eligible = np.zeros(len(normalized), dtype=bool)

    for i, text in enumerate(normalized):
        if is_eligible(text, min_chars):
            hashes[i] = hash_line(text)
            eligible[i] = True

    return hashes, eligible


def eligibility_mask(normalized: List[str], min_chars: int) -> np.ndarray:
    """Recompute the eligibility mask for cached normalized lines."""
    return np.fromiter(
        (is_eligible(text, min_chars) for text in normalized),
        dtype=bool,
        count=len(normalized),
    )
