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

"""Tests for the cde command line."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from code_duplication_engine import __version__
from code_duplication_engine.cli import cli, merge_config_with_cli


SHARED = [f"total_{i} = accumulate(total_{i - 1}, {i})" for i in range(1, 7)]


@pytest.fixture()
def project(tmp_path: Path, monkeypatch) -> Path:
    """Two Python files sharing six lines, listed in files.txt."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.py").write_text("\n".join(["import os", *SHARED]) + "\n", encoding="utf-8")
    (tmp_path / "b.py").write_text("\n".join([*SHARED, "print(total_6)"]) + "\n", encoding="utf-8")
    (tmp_path / "files.txt").write_text("a.py\nb.py\n", encoding="utf-8")
    return tmp_path


def _run(*args: str, input=None):
    return CliRunner().invoke(cli, list(args), input=input)


def _report(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


class TestBasics:
    def test_help(self) -> None:
        result = _run("--help")
        assert result.exit_code == 0
        assert "FILE_LIST" in result.output

    def test_version(self) -> None:
        result = _run("--version")
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_merge_config_with_cli(self) -> None:
        assert merge_config_with_cli({"min_lines": 8}, 4, "min_lines", 4) == 8
        assert merge_config_with_cli({"min_lines": 8}, 6, "min_lines", 4) == 6
        assert merge_config_with_cli({}, 4, "min_lines", 4) == 4


class TestDetection:
    def test_duplicates_exit_one(self, project: Path) -> None:
        result = _run("files.txt", "report.json", "--json", "-q", "--no-cache")
        assert result.exit_code == 1

        report = _report(project / "report.json")
        assert report["summary"]["duplicate_blocks"] == 1
        block = report["duplicates"][0]
        assert block["line_count"] == 6
        assert block["file1"] == {"path": "a.py", "start_line": 2, "end_line": 7}
        assert block["file2"] == {"path": "b.py", "start_line": 1, "end_line": 6}

    def test_no_duplicates_exit_zero(self, project: Path) -> None:
        result = _run("files.txt", "report.json", "--json", "-q", "--no-cache", "-m", "7")
        assert result.exit_code == 0
        assert _report(project / "report.json")["duplicates"] == []

    def test_console_report_on_stdout(self, project: Path) -> None:
        result = _run("files.txt", "-q", "--no-cache")
        assert result.exit_code == 1
        assert "a.py(2-7) <-> b.py(1-6)" in result.output
        assert "Duplicate blocks: 1" in result.output

    def test_xml_report(self, project: Path) -> None:
        result = _run("files.txt", "report.xml", "--xml", "-q", "--no-cache")
        assert result.exit_code == 1
        assert (project / "report.xml").read_text(encoding="utf-8").startswith("<?xml")

    def test_file_list_from_stdin(self, project: Path) -> None:
        result = _run("-", "report.json", "--json", "-q", "--no-cache", input="a.py\nb.py\n")
        assert result.exit_code == 1
        assert _report(project / "report.json")["summary"]["files_analyzed"] == 2

    def test_stdin_is_read_directly(self, project: Path, monkeypatch) -> None:
        def no_text_stream(*args, **kwargs):
            raise AssertionError("stdin should be read from sys.stdin")

        monkeypatch.setattr("click.get_text_stream", no_text_stream)
        result = _run("-", "report.json", "--json", "-q", "--no-cache", input="a.py\nb.py\n")
        assert not isinstance(result.exception, AssertionError)
        assert result.exit_code == 1
        assert _report(project / "report.json")["summary"]["files_analyzed"] == 2

    def test_unreadable_file_is_skipped(self, project: Path) -> None:
        (project / "files.txt").write_text("a.py\nmissing.py\nb.py\n", encoding="utf-8")
        result = _run("files.txt", "report.json", "--json", "-q", "--no-cache")
        assert result.exit_code == 1
        assert _report(project / "report.json")["summary"]["files_analyzed"] == 2

    def test_config_file_sets_min_lines(self, project: Path) -> None:
        (project / ".cderc").write_text("[cde]\nmin_lines = 10\n", encoding="utf-8")
        result = _run("files.txt", "report.json", "--json", "-q", "--no-cache")
        assert result.exit_code == 0

    def test_cache_is_written(self, project: Path) -> None:
        result = _run("files.txt", "report.json", "--json", "-q", "--cache-dir", "cache")
        assert result.exit_code == 1
        assert (project / "cache" / "files.db").is_file()

        again = _run("files.txt", "report.json", "--json", "-q", "--cache-dir", "cache")
        assert again.exit_code == 1
        assert _report(project / "report.json")["summary"]["duplicate_blocks"] == 1


class TestBaseline:
    def test_save_then_compare(self, project: Path) -> None:
        saved = _run("files.txt", "-q", "--no-cache", "--save-baseline", "baseline.json")
        assert saved.exit_code == 0
        assert (project / "baseline.json").is_file()

        compared = _run("files.txt", "report.json", "--json", "-q", "--no-cache", "--baseline", "baseline.json")
        assert compared.exit_code == 0
        assert _report(project / "report.json")["duplicates"] == []

    def test_configured_baseline_can_be_refreshed(self, project: Path) -> None:
        (project / ".cderc").write_text('[cde]\nbaseline = "base.json"\n', encoding="utf-8")

        saved = _run("files.txt", "-q", "--no-cache", "--save-baseline", "base.json")
        assert saved.exit_code == 0
        assert (project / "base.json").is_file()

        compared = _run("files.txt", "report.json", "--json", "-q", "--no-cache")
        assert compared.exit_code == 0
        assert _report(project / "report.json")["duplicates"] == []

    def test_new_duplication_is_reported(self, project: Path) -> None:
        _run("files.txt", "-q", "--no-cache", "--save-baseline", "baseline.json")
        extra = [f"other_{i} = transform(other_{i - 1})" for i in range(1, 6)]
        (project / "c.py").write_text("\n".join(extra) + "\n", encoding="utf-8")
        (project / "d.py").write_text("\n".join(extra) + "\n", encoding="utf-8")
        (project / "files.txt").write_text("a.py\nb.py\nc.py\nd.py\n", encoding="utf-8")

        result = _run("files.txt", "report.json", "--json", "-q", "--no-cache", "--baseline", "baseline.json")
        assert result.exit_code == 1
        [block] = _report(project / "report.json")["duplicates"]
        assert block["file1"]["path"] == "c.py"


class TestErrors:
    def test_json_and_xml_conflict(self, project: Path) -> None:
        result = _run("files.txt", "--json", "--xml")
        assert result.exit_code == 2

    def test_missing_file_list(self, project: Path) -> None:
        result = _run("nope.txt", "-q")
        assert result.exit_code == 2

    def test_no_file_list(self, project: Path) -> None:
        result = _run("-q")
        assert result.exit_code == 2

    def test_invalid_min_lines(self, project: Path) -> None:
        result = _run("files.txt", "-q", "--no-cache", "-m", "0")
        assert result.exit_code == 2

    def test_baseline_and_save_baseline_conflict(self, project: Path) -> None:
        result = _run("files.txt", "-q", "--baseline", "a.json", "--save-baseline", "b.json")
        assert result.exit_code == 2


class TestClearCache:
    def test_clear_cache_alone(self, project: Path) -> None:
        cache_dir = project / ".cde_cache"
        cache_dir.mkdir()
        (cache_dir / "files.db").write_bytes(b"")

        result = _run("--clear-cache")
        assert result.exit_code == 0
        assert not cache_dir.exists()

    def test_clear_cache_without_cache(self, project: Path) -> None:
        result = _run("--clear-cache")
        assert result.exit_code == 0
