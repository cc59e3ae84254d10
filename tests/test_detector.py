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

"""End-to-end tests for the detection pipeline."""

from fractions import Fraction
from pathlib import Path

import pytest

from code_duplication_engine.cache import CACHE_DB
from code_duplication_engine.config import DetectorConfig
from code_duplication_engine.detector import detect_duplicates, load_source_file, split_lines
from code_duplication_engine.errors import BaselineError, ConfigError, InputError


def _ranges(result):
    return [(b.file1.name, b.start1, b.end1, b.file2.name, b.start2, b.end2) for b in result.blocks]


class TestScenarios:
    def test_two_files_with_the_same_five_lines(self, write_files, code_lines) -> None:
        paths = write_files({"a.txt": code_lines[0:5], "b.txt": code_lines[0:5]})
        result = detect_duplicates(paths, DetectorConfig(workers=2))

        assert _ranges(result) == [("a.txt", 1, 5, "b.txt", 1, 5)]
        assert result.blocks[0].line_count == 5

    def test_repeat_within_one_file(self, write_files, code_lines) -> None:
        lines = code_lines[0:4] + [code_lines[20]] + code_lines[0:4]
        paths = write_files({"a.txt": lines})
        result = detect_duplicates(paths, DetectorConfig())

        assert _ranges(result) == [("a.txt", 1, 4, "a.txt", 6, 9)]

    def test_ignore_same_filename(self, write_files, code_lines) -> None:
        paths = write_files({"one/same.py": code_lines[0:6], "two/same.py": code_lines[0:6]})

        assert detect_duplicates(paths, DetectorConfig(ignore_same_filename=True)).blocks == []
        assert len(detect_duplicates(paths, DetectorConfig()).blocks) == 1

    def test_min_lines_threshold(self, write_files, code_lines) -> None:
        paths = write_files({
            "a.txt": code_lines[0:3] + code_lines[10:12],
            "b.txt": code_lines[20:22] + code_lines[0:3],
        })

        assert detect_duplicates(paths, DetectorConfig(min_lines=4)).blocks == []
        assert len(detect_duplicates(paths, DetectorConfig(min_lines=3)).blocks) == 1

    def test_duplication_percent(self, write_files, code_lines) -> None:
        paths = write_files({
            "a.txt": code_lines[0:5] + code_lines[10:15],
            "b.txt": code_lines[0:5],
        })
        summary = detect_duplicates(paths, DetectorConfig()).summary

        assert summary.files_analyzed == 2
        assert summary.total_lines == 15
        assert summary.duplicate_blocks == 1
        assert summary.duplicate_lines == 5
        assert summary.duplication_ratio == Fraction(1, 3)
        assert summary.duplication_percent == pytest.approx(100 / 3)


class TestPipeline:
    def test_blocks_are_ordered(self, write_files, code_lines) -> None:
        paths = write_files({
            "c.txt": code_lines[0:4],
            "a.txt": code_lines[0:4] + code_lines[10:14],
            "b.txt": code_lines[10:14],
        })
        result = detect_duplicates(paths, DetectorConfig())
        keys = [b.sort_key() for b in result.blocks]

        assert keys == sorted(keys)
        assert len(result.blocks) == 2

    def test_idempotent(self, write_files, code_lines) -> None:
        paths = write_files({
            "a.txt": code_lines[0:8] + code_lines[0:4],
            "b.txt": code_lines[2:10],
            "c.txt": code_lines[5:12],
        })
        first = detect_duplicates(paths, DetectorConfig(min_lines=3))
        second = detect_duplicates(paths, DetectorConfig(min_lines=3))

        assert first.blocks == second.blocks
        assert first.summary == second.summary

    def test_cache_gives_identical_results(self, tmp_path: Path, write_files, code_lines) -> None:
        paths = write_files({
            "a.py": ["import os", "# note"] + code_lines[0:6],
            "b.py": code_lines[0:6] + ['"""doc"""'],
        })
        cached = DetectorConfig(cache_enabled=True, cache_dir=tmp_path / "cache")

        plain = detect_duplicates(paths, DetectorConfig())
        cold = detect_duplicates(paths, cached)
        warm = detect_duplicates(paths, cached)

        assert (tmp_path / "cache" / "files.db").is_file()
        assert plain.blocks == cold.blocks == warm.blocks
        assert plain.summary == warm.summary

    def test_cache_notices_changed_file(self, tmp_path: Path, write_files, code_lines) -> None:
        paths = write_files({"a.txt": code_lines[0:5], "b.txt": code_lines[0:5]})
        cached = DetectorConfig(cache_enabled=True, cache_dir=tmp_path / "cache")
        assert len(detect_duplicates(paths, cached).blocks) == 1

        paths[1].write_text("\n".join(code_lines[20:25]) + "\n", encoding="utf-8")
        assert detect_duplicates(paths, cached).blocks == []

    def test_clear_cache_before_run(self, tmp_path: Path, write_files, code_lines) -> None:
        paths = write_files({"a.txt": code_lines[0:5]})
        cache_dir = tmp_path / "cache"
        detect_duplicates(paths, DetectorConfig(cache_enabled=True, cache_dir=cache_dir))
        foreign = cache_dir / "notes.txt"
        foreign.write_text("keep me", encoding="utf-8")

        detect_duplicates(paths, DetectorConfig(cache_dir=cache_dir, clear_cache=True))
        assert foreign.read_text(encoding="utf-8") == "keep me"
        assert not (cache_dir / CACHE_DB).exists()

    def test_clear_cache_leaves_sources_in_cache_dir(self, tmp_path: Path, write_files, code_lines) -> None:
        paths = write_files({"src/keep.c": code_lines[0:5], "src/copy.c": code_lines[0:5]})
        result = detect_duplicates(paths, DetectorConfig(cache_dir=tmp_path / "src", clear_cache=True))

        assert all(path.is_file() for path in paths)
        assert result.summary.files_analyzed == 2
        assert len(result.blocks) == 1

    def test_changed_files_filter(self, write_files, code_lines) -> None:
        paths = write_files({
            "a.txt": code_lines[0:4] + code_lines[10:14],
            "b.txt": code_lines[0:4],
            "c.txt": code_lines[10:14],
        })
        result = detect_duplicates(paths, DetectorConfig(changed_files=frozenset([paths[2]])))

        assert _ranges(result) == [("a.txt", 5, 8, "c.txt", 1, 4)]
        assert result.summary.files_analyzed == 3

    def test_max_files(self, write_files, code_lines) -> None:
        paths = write_files({"a.txt": code_lines[0:4], "b.txt": code_lines[0:4], "c.txt": code_lines[0:4]})
        result = detect_duplicates(paths, DetectorConfig(max_files=2))

        assert result.summary.files_analyzed == 2
        assert _ranges(result) == [("a.txt", 1, 4, "b.txt", 1, 4)]

    def test_duplicate_paths_are_analyzed_once(self, write_files, code_lines) -> None:
        paths = write_files({"a.txt": code_lines[0:4]})
        result = detect_duplicates(paths + paths, DetectorConfig())
        assert result.summary.files_analyzed == 1
        assert result.blocks == []


class TestBaselineRuns:
    def test_save_then_compare(self, tmp_path: Path, write_files, code_lines) -> None:
        paths = write_files({"a.txt": code_lines[0:5], "b.txt": code_lines[0:5]})
        baseline = tmp_path / "baseline.json"

        saved = detect_duplicates(paths, DetectorConfig(save_baseline_path=baseline))
        assert saved.baseline_saved == baseline
        assert len(saved.blocks) == 1

        compared = detect_duplicates(paths, DetectorConfig(baseline_path=baseline))
        assert compared.blocks == []
        assert compared.suppressed == 1
        assert compared.summary.duplicate_blocks == 0
        assert compared.summary.total_lines == 10

    def test_new_duplication_is_reported(self, tmp_path: Path, write_files, code_lines) -> None:
        paths = write_files({"a.txt": code_lines[0:5], "b.txt": code_lines[0:5]})
        baseline = tmp_path / "baseline.json"
        detect_duplicates(paths, DetectorConfig(save_baseline_path=baseline))

        paths += write_files({"c.txt": code_lines[20:26], "d.txt": code_lines[20:26]})
        result = detect_duplicates(paths, DetectorConfig(baseline_path=baseline))
        assert _ranges(result) == [("c.txt", 1, 6, "d.txt", 1, 6)]

    def test_malformed_baseline_is_an_error(self, tmp_path: Path, write_files, code_lines) -> None:
        paths = write_files({"a.txt": code_lines[0:5]})
        baseline = tmp_path / "baseline.json"
        baseline.write_text("not json", encoding="utf-8")

        with pytest.raises(BaselineError):
            detect_duplicates(paths, DetectorConfig(baseline_path=baseline))


class TestInputHandling:
    def test_unreadable_file_is_a_warning(self, tmp_path: Path, write_files, code_lines) -> None:
        paths = write_files({"a.txt": code_lines[0:5], "b.txt": code_lines[0:5]})
        result = detect_duplicates(paths + [tmp_path / "missing.txt"], DetectorConfig())

        assert len(result.warnings) == 1
        assert "missing.txt" in result.warnings[0]
        assert result.summary.files_analyzed == 2
        assert len(result.blocks) == 1

    def test_binary_file_is_skipped(self, tmp_path: Path, write_files, code_lines) -> None:
        paths = write_files({"a.txt": code_lines[0:5]})
        binary = tmp_path / "blob.bin"
        binary.write_bytes(b"\x00\x01\x02" * 100)

        result = detect_duplicates(paths + [binary], DetectorConfig())
        assert result.summary.files_analyzed == 1
        assert "binary" in result.warnings[0]

    def test_no_files(self) -> None:
        with pytest.raises(InputError):
            detect_duplicates([], DetectorConfig())

    def test_no_readable_files(self, tmp_path: Path) -> None:
        with pytest.raises(InputError):
            detect_duplicates([tmp_path / "gone.txt"], DetectorConfig())

    @pytest.mark.parametrize(
        "config",
        [
            DetectorConfig(min_lines=0),
            DetectorConfig(min_chars=-1),
            DetectorConfig(workers=0),
            DetectorConfig(baseline_path=Path("a.json"), save_baseline_path=Path("b.json")),
        ],
    )
    def test_invalid_config(self, write_files, code_lines, config) -> None:
        paths = write_files({"a.txt": code_lines[0:5]})
        with pytest.raises(ConfigError):
            detect_duplicates(paths, config)


class TestLoading:
    def test_split_lines(self) -> None:
        assert split_lines("a\r\nb\n\nc") == ["a", "b", "", "c"]
        assert split_lines("a\n") == ["a"]
        assert split_lines("") == []

    def test_normalized_lines_align_with_raw(self, write_files) -> None:
        raw = ["/* header", " */", "#include <x.h>", "", "int f(void) {", "  return 1; // one", "}"]
        (path,) = write_files({"f.c": raw})
        source = load_source_file(path, DetectorConfig(ignore_preprocessor=True))

        assert source.line_count == len(raw)
        assert len(source.normalized) == len(raw)
        assert source.normalized[5] == "return 1;"
        assert source.eligible.tolist() == [False, False, False, False, True, True, False]
