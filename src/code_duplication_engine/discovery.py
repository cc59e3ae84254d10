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
Source file discovery.

Files come from a plain list (a file, or stdin), from git's tracked
files, or from the files changed on the current branch.
"""

import logging
import subprocess
import sys
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from .errors import DiscoveryError, InputError
from .languages import is_supported


logger = logging.getLogger(__name__)

BASE_BRANCH_CANDIDATES = ["main", "master", "develop"]


def parse_file_list(text: str) -> List[Path]:
    """One path per line; blank lines skipped, duplicates dropped, order kept."""
    seen = set()
    paths = []
    for line in text.splitlines():
        name = line.strip()
        if name and name not in seen:
            seen.add(name)
            paths.append(Path(name))
    return paths


def read_file_list(source: str, stdin: Optional[TextIO] = None) -> List[Path]:
    """
    Read the list of files to analyze.

    Args:
        source: Path of a file with one source path per line, or "-" for stdin
        stdin: Stream to use for "-" (defaults to sys.stdin)

    Returns:
        Source paths in listed order

    Raises:
        InputError: If the list cannot be read or names no files
    """
    if source == "-":
        text = (stdin or sys.stdin).read()
    else:
        try:
            text = Path(source).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise InputError(f"Cannot read file list {source}: {e.strerror or e}") from e

    paths = parse_file_list(text)
    if not paths:
        raise InputError(f"File list {source} names no files")
    return paths


def _git(args: List[str], cwd: Optional[Path] = None) -> str:
    """Run a git command and return its stdout."""
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise DiscoveryError("git executable not found") from e

    if completed.returncode != 0:
        message = completed.stderr.strip() or f"exit status {completed.returncode}"
        raise DiscoveryError(f"git {' '.join(args)} failed: {message}")
    return completed.stdout


def is_git_repo(cwd: Optional[Path] = None) -> bool:
    """Check whether cwd is inside a git work tree."""
    try:
        _git(["rev-parse", "--git-dir"], cwd)
    except DiscoveryError:
        return False
    return True


def get_repo_root(cwd: Optional[Path] = None) -> Path:
    if not is_git_repo(cwd):
        raise DiscoveryError(f"Not a git repository: {Path(cwd or Path.cwd()).resolve()}")
    return Path(_git(["rev-parse", "--show-toplevel"], cwd).strip())


def _supported_existing(names: Iterable[str], root: Path) -> List[Path]:
    paths = []
    for name in names:
        name = name.strip()
        if not name:
            continue
        path = root / name
        if is_supported(path) and path.is_file():
            paths.append(path)
    return paths


def git_tracked_files(cwd: Optional[Path] = None) -> List[Path]:
    """
    List git-tracked source files with supported extensions.

    Args:
        cwd: Directory inside the repository (defaults to the current one)

    Returns:
        Absolute paths of tracked files that exist on disk
    """
    root = get_repo_root(cwd)
    files = _supported_existing(_git(["ls-files"], root).splitlines(), root)
    logger.info(f"Found {len(files)} tracked source files in {root}")
    return files


def detect_base_branch(cwd: Optional[Path] = None) -> str:
    """
    Guess the branch the current work is based on.

    Tries main, master and develop in that order, then the branch that
    origin/HEAD points to.

    Raises:
        DiscoveryError: If no base branch can be found
    """
    for branch in BASE_BRANCH_CANDIDATES:
        try:
            _git(["rev-parse", "--verify", "--quiet", f"refs/heads/{branch}"], cwd)
            return branch
        except DiscoveryError:
            continue

    try:
        remote_head = _git(["symbolic-ref", "--short", "refs/remotes/origin/HEAD"], cwd).strip()
    except DiscoveryError:
        remote_head = ""
    if remote_head:
        return remote_head.split("/")[-1]

    raise DiscoveryError("Could not detect base branch; pass --base-branch")


def git_changed_files(base_branch: Optional[str] = None, cwd: Optional[Path] = None) -> List[Path]:
    """
    List supported source files changed since the merge base with base_branch.

    Args:
        base_branch: Branch to compare against (detected if None)
        cwd: Directory inside the repository

    Returns:
        Absolute paths of changed files that still exist
    """
    root = get_repo_root(cwd)
    base_branch = base_branch or detect_base_branch(root)
    merge_base = _git(["merge-base", "HEAD", base_branch], root).strip()
    changed = _git(["diff", "--name-only", merge_base, "HEAD"], root).splitlines()
    files = _supported_existing(changed, root)
    logger.info(f"Found {len(files)} source files changed since '{base_branch}'")
    return files
