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
Baseline support: accept known duplication and report only new blocks.

A baseline is a JSON file of block fingerprints. A fingerprint covers the
pair of file paths (in sorted order), the block length and the block's
line hashes, but not its line numbers, so code that merely moves within
a file does not show up as new duplication. Fingerprints are counted:
if a baseline knows two copies of a block, a third copy is new.

Format:
    {
      "version": 1,
      "entries": [
        {"fingerprint": "...", "count": 1,
         "file1": "src/a.c", "file2": "src/b.c", "line_count": 6}
      ]
    }
"""

import hashlib
import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from .errors import BaselineError
from .models import DuplicateBlock


logger = logging.getLogger(__name__)

BASELINE_VERSION = 1


def fingerprint(block: DuplicateBlock) -> str:
    """
    Compute the stable identifier of a duplicate block.

    Swapping file1 and file2 yields the same fingerprint.

    Args:
        block: Duplicate block

    Returns:
        Hexadecimal SHA-256 digest
    """
    path_a, path_b = sorted((block.file1.as_posix(), block.file2.as_posix()))
    digest = hashlib.sha256()
    digest.update(path_a.encode("utf-8"))
    digest.update(b"\0")
    digest.update(path_b.encode("utf-8"))
    digest.update(b"\0")
    digest.update(str(block.line_count).encode("ascii"))
    for line_hash in block.hashes:
        digest.update(line_hash.to_bytes(8, "little"))
    return digest.hexdigest()


@dataclass
class BaselineEntry:
    """One fingerprint with enough metadata to recognize it by eye."""

    fingerprint: str
    file1: str
    file2: str
    line_count: int
    count: int = 1


@dataclass
class Baseline:
    """A counted set of accepted block fingerprints."""

    entries: Dict[str, BaselineEntry] = field(default_factory=dict)

    @classmethod
    def from_blocks(cls, blocks: Iterable[DuplicateBlock]) -> "Baseline":
        baseline = cls()
        for block in blocks:
            fp = fingerprint(block)
            entry = baseline.entries.get(fp)
            if entry is None:
                file1, file2 = sorted((block.file1.as_posix(), block.file2.as_posix()))
                baseline.entries[fp] = BaselineEntry(fp, file1, file2, block.line_count)
            else:
                entry.count += 1
        return baseline

    def counts(self) -> Counter:
        return Counter({fp: entry.count for fp, entry in self.entries.items()})

    def __len__(self) -> int:
        return sum(entry.count for entry in self.entries.values())

    def __contains__(self, fp: str) -> bool:
        return fp in self.entries

    def to_dict(self) -> dict:
        return {
            "version": BASELINE_VERSION,
            "entries": [
                {
                    "fingerprint": entry.fingerprint,
                    "count": entry.count,
                    "file1": entry.file1,
                    "file2": entry.file2,
                    "line_count": entry.line_count,
                }
                for _, entry in sorted(self.entries.items())
            ],
        }


def load_baseline(path: Path) -> Baseline:
    """
    Load a baseline saved by a previous run.

    Args:
        path: Baseline file

    Returns:
        Parsed Baseline

    Raises:
        BaselineError: If the file is missing, unreadable, malformed or of
            an unsupported version
    """
    path = Path(path)
    if not path.is_file():
        raise BaselineError(f"Baseline file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise BaselineError(f"Cannot read baseline {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise BaselineError(f"Baseline {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise BaselineError(f"Baseline {path} must contain a JSON object")

    version = data.get("version")
    if version != BASELINE_VERSION:
        raise BaselineError(
            f"Baseline {path} has unsupported version {version!r} (expected {BASELINE_VERSION})"
        )

    baseline = Baseline()
    try:
        for raw in data["entries"]:
            entry = BaselineEntry(
                fingerprint=str(raw["fingerprint"]),
                file1=str(raw["file1"]),
                file2=str(raw["file2"]),
                line_count=int(raw["line_count"]),
                count=int(raw.get("count", 1)),
            )
            if entry.count < 1:
                raise ValueError(f"non-positive count for {entry.fingerprint}")
            baseline.entries[entry.fingerprint] = entry
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise BaselineError(f"Baseline {path} is malformed: {e}") from e

    logger.info(f"Loaded baseline {path} with {len(baseline)} known blocks")
    return baseline


def save_baseline(blocks: Iterable[DuplicateBlock], path: Path) -> Baseline:
    """
    Save blocks as a baseline, atomically.

    Entries are sorted and carry no timestamp, so saving the same blocks
    twice produces the same file.

    Args:
        blocks: Blocks to accept
        path: Destination file

    Returns:
        The Baseline that was written

    Raises:
        BaselineError: If the file cannot be written
    """
    path = Path(path)
    baseline = Baseline.from_blocks(blocks)
    temp_path = path.with_name(path.name + ".tmp")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(baseline.to_dict(), f, indent=2)
            f.write("\n")
        temp_path.replace(path)
    except OSError as e:
        raise BaselineError(f"Cannot write baseline {path}: {e}") from e

    logger.info(f"Saved baseline {path} with {len(baseline)} blocks")
    return baseline


def filter_new(blocks: List[DuplicateBlock], baseline: Baseline) -> List[DuplicateBlock]:
    """
    Keep only blocks the baseline does not account for.

    Each baseline fingerprint absorbs as many blocks as its count; input
    order is preserved.

    Args:
        blocks: Blocks from the current run
        baseline: Accepted blocks

    Returns:
        New blocks, in input order
    """
    remaining = baseline.counts()
    new_blocks = []
    for block in blocks:
        fp = fingerprint(block)
        if remaining[fp] > 0:
            remaining[fp] -= 1
        else:
            new_blocks.append(block)
    return new_blocks
