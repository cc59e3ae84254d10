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
Normalization cache for code-duplication-engine.

Stores each file's normalized lines and line hashes so unchanged files
skip normalization and hashing on later runs. Uses SQLite for storage and
a SHA-256 digest of the file bytes for invalidation. Anything that fails
validation on the way out is treated as a miss, never as a result.
"""

import hashlib
import json
import logging
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np


logger = logging.getLogger(__name__)

CACHE_DB = "files.db"
CACHE_VERSION = 2

# SQLite files that make up the cache; nothing else in cache_dir is touched
CACHE_FILES = [CACHE_DB, f"{CACHE_DB}-journal", f"{CACHE_DB}-wal", f"{CACHE_DB}-shm"]

SCHEMA = """
CREATE TABLE IF NOT EXISTS files (
    path TEXT PRIMARY KEY,
    version INTEGER NOT NULL,
    content_hash TEXT NOT NULL,
    config_key TEXT NOT NULL,
    line_count INTEGER NOT NULL,
    normalized TEXT NOT NULL,
    hashes BLOB NOT NULL,
    digest TEXT NOT NULL,
    mtime REAL,
    created_at REAL
);
"""

# Hashes are stored little-endian regardless of platform
_HASH_DTYPE = np.dtype("<u8")


@dataclass(frozen=True)
class CacheEntry:
    """Cached normalization of one file at one content digest."""

    content_hash: str
    normalized: List[str]
    hashes: np.ndarray


def get_content_hash(data: bytes) -> str:
    """
    Hash file content for cache invalidation using SHA-256.

    Args:
        data: Raw file bytes

    Returns:
        Hexadecimal SHA-256 hash string
    """
    return hashlib.sha256(data).hexdigest()


def _entry_digest(normalized_json: str, blob: bytes) -> str:
    """Digest over a row's stored payload, checked on every read."""
    digest = hashlib.sha256(normalized_json.encode("utf-8"))
    digest.update(blob)
    return digest.hexdigest()


class CacheStore:
    """
    Thread-safe path -> CacheEntry store backed by one SQLite database.

    If the database cannot be opened, even after recreating it, the store
    disables itself and every lookup is a miss.
    """

    def __init__(self, cache_dir: Path, config_key: str):
        self.cache_dir = Path(cache_dir)
        self.config_key = config_key
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        self.hits = 0
        self.misses = 0

    @property
    def db_path(self) -> Path:
        return self.cache_dir / CACHE_DB

    @property
    def enabled(self) -> bool:
        return self._conn is not None

    def open(self) -> "CacheStore":
        """Open (creating if needed) the cache database."""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cache disabled: cannot create {self.cache_dir}: {e}")
            return self

        try:
            self._conn = self._connect()
        except sqlite3.DatabaseError as e:
            logger.warning(f"Cache database {self.db_path} is unusable ({e}), recreating it")
            try:
                self.db_path.unlink()
                self._conn = self._connect()
            except (OSError, sqlite3.DatabaseError) as retry_error:
                logger.warning(f"Cache disabled: {retry_error}")
                self._conn = None
        return self

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        try:
            # A database written by another cache version is rebuilt
            if conn.execute("PRAGMA user_version").fetchone()[0] != CACHE_VERSION:
                conn.execute("DROP TABLE IF EXISTS files")
                conn.execute(f"PRAGMA user_version = {CACHE_VERSION}")
            conn.executescript(SCHEMA)
            conn.commit()
        except sqlite3.DatabaseError:
            conn.close()
            raise
        return conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self) -> "CacheStore":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def get(self, path: Path, content_hash: str) -> Optional[CacheEntry]:
        """
        Get the cached entry for a file if it is still valid.

        Args:
            path: Source file path (the cache key)
            content_hash: SHA-256 of the file's current bytes

        Returns:
            CacheEntry, or None on a miss, stale entry or corrupt row
        """
        if self._conn is None:
            return None

        try:
            with self._lock:
                row = self._conn.execute(
                    """
                    SELECT version, content_hash, config_key, line_count, normalized, hashes, digest
                    FROM files WHERE path = ?
                    """,
                    (str(path),),
                ).fetchone()
        except sqlite3.DatabaseError as e:
            logger.warning(f"Cache read failed for {path}: {e}")
            row = None

        entry = self._validate(path, row, content_hash) if row is not None else None
        with self._lock:
            if entry is None:
                self.misses += 1
            else:
                self.hits += 1
        return entry

    def _validate(self, path: Path, row: tuple, content_hash: str) -> Optional[CacheEntry]:
        version, stored_hash, config_key, line_count, normalized_json, blob, digest = row

        if version != CACHE_VERSION or stored_hash != content_hash or config_key != self.config_key:
            return None

        if (
            not isinstance(normalized_json, str)
            or not isinstance(blob, bytes)
            or digest != _entry_digest(normalized_json, blob)
        ):
            logger.debug(f"Cache entry for {path} does not match its digest")
            return None

        try:
            normalized = json.loads(normalized_json)
        except (TypeError, ValueError):
            logger.debug(f"Cache entry for {path} has undecodable lines")
            return None

        if (
            not isinstance(normalized, list)
            or len(normalized) != line_count
            or not all(isinstance(line, str) for line in normalized)
            or len(blob) != line_count * _HASH_DTYPE.itemsize
        ):
            logger.debug(f"Cache entry for {path} failed validation")
            return None

        hashes = np.frombuffer(blob, dtype=_HASH_DTYPE).astype(np.uint64)
        return CacheEntry(content_hash=stored_hash, normalized=normalized, hashes=hashes)

    def put(self, path: Path, entry: CacheEntry, mtime: Optional[float] = None) -> None:
        """
        Store a file's normalization, replacing any previous entry.

        Args:
            path: Source file path
            entry: Normalized lines and hashes to store
            mtime: File modification time, kept for inspection only
        """
        if self._conn is None:
            return

        blob = np.asarray(entry.hashes, dtype=_HASH_DTYPE).tobytes()
        normalized_json = json.dumps(entry.normalized)
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT OR REPLACE INTO files
                    (path, version, content_hash, config_key, line_count, normalized, hashes, digest, mtime, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (str(path), CACHE_VERSION, entry.content_hash, self.config_key,
                     len(entry.normalized), normalized_json, blob, _entry_digest(normalized_json, blob),
                     mtime, time.time()),
                )
                self._conn.commit()
        except sqlite3.DatabaseError as e:
            logger.warning(f"Cache write failed for {path}: {e}")

    def clear(self) -> None:
        """Remove every entry from the open store."""
        if self._conn is None:
            return
        with self._lock:
            self._conn.execute("DELETE FROM files")
            self._conn.commit()


def clear_cache(cache_dir: Path) -> bool:
    """
    Delete the cache database files, and cache_dir itself once it is empty.

    Files in cache_dir that the cache did not create are left alone.

    Args:
        cache_dir: Cache directory

    Returns:
        True if any cache file was deleted, False if there was none
    """
    cache_dir = Path(cache_dir)
    removed = False
    for name in CACHE_FILES:
        cache_file = cache_dir / name
        if cache_file.is_file():
            cache_file.unlink()
            removed = True

    if cache_dir.is_dir() and not any(cache_dir.iterdir()):
        cache_dir.rmdir()
    return removed
