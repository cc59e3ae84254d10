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
Configuration for code-duplication-engine.

DetectorConfig holds the settings the engine consumes. Project defaults
can be stored in .cderc or .cde.toml in the current directory or any
parent directory.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional

from .errors import ConfigError

try:
    import tomllib  # Python 3.11+
except ImportError:
    try:
        import tomli as tomllib  # type: ignore
    except ImportError:
        tomllib = None  # type: ignore


CONFIG_NAMES = [".cderc", ".cde.toml"]
CONFIG_SECTION = "cde"
DEFAULT_CACHE_DIR = ".cde_cache"


@dataclass
class DetectorConfig:
    """Settings for one detection run."""

    min_lines: int = 4                      # Minimum block size in lines
    min_chars: int = 3                      # Minimum normalized characters per line
    ignore_preprocessor: bool = False       # Strip directives, annotations, signatures
    ignore_same_filename: bool = False      # Skip pairs of files with the same basename
    cache_enabled: bool = False
    cache_dir: Path = Path(DEFAULT_CACHE_DIR)
    clear_cache: bool = False               # Purge the cache before the run
    baseline_path: Optional[Path] = None    # Hide blocks already in this baseline
    save_baseline_path: Optional[Path] = None
    workers: Optional[int] = None           # Defaults to os.cpu_count()
    max_files: Optional[int] = None         # Analyze only the first N files
    changed_files: Optional[FrozenSet[Path]] = None  # Report only blocks touching these

    def validate(self) -> None:
        """
        Reject invalid or conflicting settings.

        Raises:
            ConfigError: If any setting is out of range or two settings conflict
        """
        if self.min_lines < 1:
            raise ConfigError(f"min_lines must be at least 1, got {self.min_lines}")
        if self.min_chars < 0:
            raise ConfigError(f"min_chars must not be negative, got {self.min_chars}")
        if self.workers is not None and self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.max_files is not None and self.max_files < 1:
            raise ConfigError(f"max_files must be at least 1, got {self.max_files}")
        if self.baseline_path is not None and self.save_baseline_path is not None:
            raise ConfigError("Cannot compare against a baseline and save a baseline in the same run")

    @property
    def normalization_key(self) -> str:
        """Identifies the settings that change normalized or hashed output."""
        return f"min_chars={self.min_chars};ignore_preprocessor={int(self.ignore_preprocessor)}"


def find_config_file(start_path: Path) -> Optional[Path]:
    """
    Search for .cderc or .cde.toml in start_path and parent directories.

    Args:
        start_path: Directory to start searching from

    Returns:
        Path to config file if found, None otherwise
    """
    current = start_path.resolve()

    while True:
        for name in CONFIG_NAMES:
            config_path = current / name
            if config_path.is_file():
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def load_config(path: Path) -> Dict[str, Any]:
    """
    Load project configuration from .cderc or .cde.toml.

    Returns an empty dict if no config file is found or it cannot be parsed.

    Args:
        path: Directory to start searching from

    Returns:
        Dictionary of configuration values from the [cde] section

    Example config file (.cderc or .cde.toml):
        [cde]
        min_lines = 6
        min_chars = 5
        ignore_preprocessor = true
        ignore_same_filename = false
        cache = true
        cache_dir = ".cde_cache"
        baseline = "duplication-baseline.json"
        workers = 4
        output_format = "json"
    """
    if tomllib is None:
        return {}

    config_path = find_config_file(path)
    if config_path is None:
        return {}

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return {}

    section = data.get(CONFIG_SECTION, {})
    return section if isinstance(section, dict) else {}
