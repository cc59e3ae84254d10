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
Duplicate detection pipeline.

Runs in two parallel phases separated by a barrier:

1. Per file: read, consult the cache, normalize, hash, build a local index.
2. Per candidate pair: run the match engine on two hashed files.

The hash index is folded from the phase 1 local indexes only after every
file is done, so no pair is selected from a partial index.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .baseline import filter_new, load_baseline, save_baseline
from .cache import CacheEntry, CacheStore, clear_cache, get_content_hash
from .config import DetectorConfig
from .errors import InputError
from .hashing import eligibility_mask, hash_lines
from .index import HashIndex, LocalIndex, build_local_index
from .languages import detect_language, normalize_file
from .matcher import match_pair
from .models import DetectionResult, DuplicateBlock, SourceFile, Summary


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]

# Bytes sniffed for NUL when deciding whether a file is binary
BINARY_SNIFF_BYTES = 8192


def split_lines(text: str) -> List[str]:
    """Split text into lines without terminators, accepting \\n and \\r\\n."""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def load_source_file(
    path: Path,
    config: DetectorConfig,
    cache: Optional[CacheStore] = None,
) -> SourceFile:
    """
    Read, normalize and hash one file, using the cache when possible.

    Args:
        path: File to load
        config: Detection settings
        cache: Open cache store, or None

    Returns:
        Hashed SourceFile

    Raises:
        InputError: If the file is unreadable or binary
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise InputError(f"Cannot read {path}: {e.strerror or e}") from e

    if b"\0" in data[:BINARY_SNIFF_BYTES]:
        raise InputError(f"Skipping binary file {path}")

    raw_lines = split_lines(data.decode("utf-8", errors="replace"))
    content_hash = get_content_hash(data)
    cache_key = path.resolve()

    entry = cache.get(cache_key, content_hash) if cache is not None else None
    if entry is not None and len(entry.normalized) == len(raw_lines):
        normalized = entry.normalized
        hashes = entry.hashes
        eligible = eligibility_mask(normalized, config.min_chars)
    else:
        normalized = normalize_file(raw_lines, path, config.ignore_preprocessor)
        hashes, eligible = hash_lines(normalized, config.min_chars)
        if cache is not None:
            try:
                mtime = path.stat().st_mtime
            except OSError:
                mtime = None
            cache.put(cache_key, CacheEntry(content_hash, normalized, hashes), mtime)

    return SourceFile(
        path=path,
        language=detect_language(path) or "generic",
        raw_lines=raw_lines,
        normalized=normalized,
        hashes=hashes,
        eligible=eligible,
    )


def _index_file(
    path: Path,
    config: DetectorConfig,
    cache: Optional[CacheStore],
) -> Tuple[SourceFile, LocalIndex]:
    source = load_source_file(path, config, cache)
    return source, build_local_index(source)


def _dedupe_paths(paths: Iterable[Union[str, Path]]) -> List[Path]:
    seen = set()
    unique = []
    for p in paths:
        path = Path(p)
        if path not in seen:
            seen.add(path)
            unique.append(path)
    return unique


def summarize(files: Sequence[SourceFile], blocks: Sequence[DuplicateBlock]) -> Summary:
    """Compute run statistics; file totals cover every analyzed file."""
    return Summary(
        files_analyzed=len(files),
        total_lines=sum(f.line_count for f in files),
        duplicate_blocks=len(blocks),
        duplicate_lines=sum(b.line_count for b in blocks),
    )


def order_blocks(blocks: Iterable[DuplicateBlock]) -> List[DuplicateBlock]:
    """Sort blocks by first path, first start, second path, second start (stable)."""
    return sorted(blocks, key=DuplicateBlock.sort_key)


def _touches(block: DuplicateBlock, changed: Iterable[Path]) -> bool:
    return block.file1.resolve() in changed or block.file2.resolve() in changed


def detect_duplicates(
    paths: Sequence[Union[str, Path]],
    config: Optional[DetectorConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> DetectionResult:
    """
    Find duplicated blocks across a set of files.

    Args:
        paths: Files to analyze, in order (duplicates are ignored)
        config: Detection settings; defaults to DetectorConfig()
        on_progress: Optional callback(current, total, message)

    Returns:
        DetectionResult with ordered blocks, summary and per-file warnings

    Raises:
        ConfigError: If the settings are invalid
        InputError: If there is nothing readable to analyze
        BaselineError: If a requested baseline cannot be loaded or saved
    """
    config = config or DetectorConfig()
    config.validate()

    file_paths = _dedupe_paths(paths)
    if not file_paths:
        raise InputError("No files to analyze")
    if config.max_files is not None:
        file_paths = file_paths[:config.max_files]

    baseline = load_baseline(config.baseline_path) if config.baseline_path else None

    if config.clear_cache and clear_cache(config.cache_dir):
        logger.info(f"Cleared cache {config.cache_dir}")

    cache = CacheStore(config.cache_dir, config.normalization_key).open() if config.cache_enabled else None
    workers = config.workers or os.cpu_count() or 1

    try:
        files, local_indexes, warnings = _load_all(file_paths, config, cache, workers, on_progress)
    finally:
        if cache is not None:
            logger.debug(f"Cache: {cache.hits} hits, {cache.misses} misses")
            cache.close()

    if not files:
        raise InputError("None of the listed files could be read")

    # Barrier: every file is hashed before any pair is selected
    index = HashIndex.from_local_indexes(enumerate(local_indexes))
    pairs = index.candidate_pairs(files, config.ignore_same_filename)
    logger.info(f"{len(files)} files, {len(index)} distinct lines, {len(pairs)} candidate pairs")

    blocks = order_blocks(_match_all(files, pairs, config.min_lines, workers, on_progress))

    if config.changed_files is not None:
        changed = {Path(p).resolve() for p in config.changed_files}
        blocks = [b for b in blocks if _touches(b, changed)]

    suppressed = 0
    if baseline is not None:
        new_blocks = filter_new(blocks, baseline)
        suppressed = len(blocks) - len(new_blocks)
        blocks = new_blocks

    saved = None
    if config.save_baseline_path is not None:
        save_baseline(blocks, config.save_baseline_path)
        saved = Path(config.save_baseline_path)

    return DetectionResult(
        blocks=blocks,
        summary=summarize(files, blocks),
        warnings=warnings,
        suppressed=suppressed,
        baseline_saved=saved,
    )


def _load_all(
    file_paths: List[Path],
    config: DetectorConfig,
    cache: Optional[CacheStore],
    workers: int,
    on_progress: Optional[ProgressCallback],
) -> Tuple[List[SourceFile], List[LocalIndex], List[str]]:
    """Phase 1: load every file in parallel, keeping input order."""
    results: Dict[int, Tuple[SourceFile, LocalIndex]] = {}
    failures: Dict[int, str] = {}
    total = len(file_paths)
    done = 0

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(_index_file, path, config, cache): position
            for position, path in enumerate(file_paths)
        }

        for future in as_completed(futures):
            position = futures[future]
            try:
                results[position] = future.result()
            except InputError as e:
                logger.info(str(e))
                failures[position] = str(e)

            done += 1
            if on_progress:
                on_progress(done, total, "files")

    files, local_indexes = [], []
    for position in sorted(results):
        source, local = results[position]
        files.append(source)
        local_indexes.append(local)
    warnings = [failures[position] for position in sorted(failures)]
    return files, local_indexes, warnings


def _match_all(
    files: List[SourceFile],
    pairs: List[Tuple[int, int]],
    min_lines: int,
    workers: int,
    on_progress: Optional[ProgressCallback],
) -> List[DuplicateBlock]:
    """Phase 2: match every candidate pair in parallel."""
    per_pair: Dict[int, List[DuplicateBlock]] = {}
    total = len(pairs)
    done = 0

    if not pairs:
        return []

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(match_pair, files[a], files[b], min_lines): position
            for position, (a, b) in enumerate(pairs)
        }

        for future in as_completed(futures):
            per_pair[futures[future]] = future.result()
            done += 1
            if on_progress:
                on_progress(done, total, "pairs")

    blocks: List[DuplicateBlock] = []
    for position in sorted(per_pair):
        blocks.extend(per_pair[position])
    return blocks
