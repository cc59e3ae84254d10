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
CLI entry point for code-duplication-engine.

Usage:
    cde <file_list> [output] [options]
    cde --git [output] [options]
    cde --clear-cache
    cde --help

Exit status: 0 when no (new) duplicates are found, 1 when duplicates are
reported, 2 on error.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import click

from . import __version__
from .config import DEFAULT_CACHE_DIR, DetectorConfig, load_config
from .detector import detect_duplicates
from .discovery import git_changed_files, git_tracked_files, read_file_list
from .errors import ConfigError, DuplicationError
from .reporter import OutputFormat, render_result


EXIT_CLEAN = 0
EXIT_DUPLICATES = 1
EXIT_ERROR = 2


def merge_config_with_cli(
    config: dict,
    cli_value,
    config_key: str,
    default_value,
):
    """
    Merge config file value with CLI value.

    If CLI value differs from default, use CLI (user explicitly set it).
    Otherwise, use config value if present, else use default.

    Args:
        config: Config dict from file
        cli_value: Value from CLI argument
        config_key: Key to look up in config
        default_value: Default value for this option

    Returns:
        Final value to use
    """
    if cli_value != default_value:
        return cli_value
    return config.get(config_key, default_value)


def print_progress(current: int, total: int, message: str, width: int = 30):
    """Print a progress bar with message to stderr."""
    filled = int(width * current / max(total, 1))
    bar = "=" * filled + ">" + " " * (width - filled - 1) if filled < width else "=" * width
    click.echo(f"\r   [{bar}] {current}/{total} {message}\033[K", nl=False, err=True)
    if current >= total:
        click.echo(err=True)


def choose_output_format(json_output: bool, xml_output: bool, configured: Optional[str]) -> OutputFormat:
    """
    Pick the report format from --json/--xml, falling back to the config file.

    Raises:
        ConfigError: If both --json and --xml are given, or the configured
            format is unknown
    """
    if json_output and xml_output:
        raise ConfigError("--json and --xml cannot be used together")
    if json_output:
        return OutputFormat.JSON
    if xml_output:
        return OutputFormat.XML
    if configured:
        try:
            return OutputFormat(str(configured).lower())
        except ValueError:
            raise ConfigError(f"Unknown output_format in config file: {configured}") from None
    return OutputFormat.CONSOLE


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _write_report(report: str, output: str) -> None:
    if output == "-":
        click.echo(report, nl=False)
        return
    try:
        Path(output).write_text(report, encoding="utf-8")
    except OSError as e:
        raise DuplicationError(f"Cannot write report to {output}: {e.strerror or e}") from e


@click.command()
@click.argument("file_list", required=False)
@click.argument("output", required=False, default="-")
@click.option(
    "-m", "--min-lines",
    type=int,
    default=4,
    help="Minimum block size in lines (default: 4)"
)
@click.option(
    "-c", "--min-chars",
    type=int,
    default=3,
    help="Minimum characters per line (default: 3)"
)
@click.option(
    "-j", "--threads",
    type=int,
    default=None,
    help="Number of worker threads (default: CPU count)"
)
@click.option(
    "-n", "--num-files",
    type=int,
    default=None,
    help="Analyze only the first N files"
)
@click.option(
    "-d", "--ignore-same-name",
    is_flag=True,
    help="Ignore file pairs with the same filename"
)
@click.option(
    "-P", "--ignore-preprocessor",
    is_flag=True,
    help="Ignore preprocessor directives, imports, annotations and signatures"
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.option("--xml", "xml_output", is_flag=True, help="Output in XML format")
@click.option(
    "--git",
    is_flag=True,
    help="Analyze git-tracked files instead of a file list"
)
@click.option(
    "--changed-only",
    is_flag=True,
    help="With git: report only blocks touching files changed vs the base branch"
)
@click.option(
    "--base-branch",
    type=str,
    default=None,
    help="Base branch for --changed-only (default: main, master or develop)"
)
@click.option(
    "--baseline",
    type=click.Path(dir_okay=False),
    default=None,
    help="Report only duplicates not present in this baseline file"
)
@click.option(
    "--save-baseline",
    type=click.Path(dir_okay=False),
    default=None,
    help="Save the duplicates found as a baseline file"
)
@click.option(
    "--cache/--no-cache",
    default=True,
    help="Reuse normalized files from previous runs (default: on)"
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False),
    default=DEFAULT_CACHE_DIR,
    help=f"Cache directory (default: {DEFAULT_CACHE_DIR})"
)
@click.option(
    "--clear-cache",
    is_flag=True,
    help="Clear the cache before running (alone: clear and exit)"
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Show debug logging"
)
@click.option(
    "-q", "--quiet",
    is_flag=True,
    help="Suppress progress output"
)
@click.version_option(version=__version__)
def main(
    file_list: Optional[str],
    output: str,
    min_lines: int,
    min_chars: int,
    threads: Optional[int],
    num_files: Optional[int],
    ignore_same_name: bool,
    ignore_preprocessor: bool,
    json_output: bool,
    xml_output: bool,
    git: bool,
    changed_only: bool,
    base_branch: Optional[str],
    baseline: Optional[str],
    save_baseline: Optional[str],
    cache: bool,
    cache_dir: str,
    clear_cache: bool,
    verbose: bool,
    quiet: bool,
):
    """
    Find duplicated code blocks in source files.

    FILE_LIST is a file with one source path per line ("-" reads stdin).
    OUTPUT is where the report goes ("-" for stdout, the default).

    Examples:

      # Check every file listed in files.txt
      cde files.txt

      # JSON report for all git-tracked files
      cde --git --json report.json

      # Accept today's duplication, then gate CI on new duplication only
      cde --git --save-baseline .cde-baseline.json
      cde --git --baseline .cde-baseline.json
    """
    _setup_logging(verbose)
    project_config = load_config(Path.cwd())

    min_lines = merge_config_with_cli(project_config, min_lines, "min_lines", 4)
    min_chars = merge_config_with_cli(project_config, min_chars, "min_chars", 3)
    threads = merge_config_with_cli(project_config, threads, "workers", None)
    ignore_same_name = merge_config_with_cli(project_config, ignore_same_name, "ignore_same_filename", False)
    ignore_preprocessor = merge_config_with_cli(project_config, ignore_preprocessor, "ignore_preprocessor", False)
    cache = merge_config_with_cli(project_config, cache, "cache", True)
    cache_dir = merge_config_with_cli(project_config, cache_dir, "cache_dir", DEFAULT_CACHE_DIR)
    # A configured baseline is only compared against, never in a run that saves one
    if baseline is None and save_baseline is None and "baseline" in project_config:
        baseline = project_config["baseline"]

    if verbose and project_config:
        click.echo("📝 Loaded config from .cderc/.cde.toml", err=True)

    try:
        output_format = choose_output_format(json_output, xml_output, project_config.get("output_format"))
    except ConfigError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(EXIT_ERROR)

    # --clear-cache on its own just clears and exits
    if clear_cache and file_list is None and not (git or changed_only):
        from .cache import clear_cache as do_clear_cache
        if do_clear_cache(Path(cache_dir)):
            click.echo("🗑️  Cleared cache", err=True)
        else:
            click.echo("   No cache to clear", err=True)
        sys.exit(EXIT_CLEAN)

    # With --git there is no file list, so a single positional is the output
    if (git or changed_only) and file_list is not None:
        if output != "-":
            click.echo("❌ Error: FILE_LIST cannot be combined with --git", err=True)
            sys.exit(EXIT_ERROR)
        output, file_list = file_list, None

    progress = None if quiet else print_progress

    try:
        paths, changed = _discover_files(file_list, git or changed_only, changed_only, base_branch)
        if not quiet:
            click.echo(f"📂 Analyzing {len(paths)} files...", err=True)

        config = DetectorConfig(
            min_lines=min_lines,
            min_chars=min_chars,
            ignore_preprocessor=ignore_preprocessor,
            ignore_same_filename=ignore_same_name,
            cache_enabled=cache,
            cache_dir=Path(cache_dir),
            clear_cache=clear_cache,
            baseline_path=Path(baseline) if baseline else None,
            save_baseline_path=Path(save_baseline) if save_baseline else None,
            workers=threads,
            max_files=num_files,
            changed_files=frozenset(changed) if changed is not None else None,
        )
        result = detect_duplicates(paths, config, on_progress=progress)

        for warning in result.warnings:
            click.echo(f"⚠️  {warning}", err=True)

        _write_report(render_result(result, config, output_format), output)
    except DuplicationError as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(EXIT_ERROR)

    if result.baseline_saved is not None:
        if not quiet:
            click.echo(f"💾 Saved {len(result.blocks)} blocks to baseline {result.baseline_saved}", err=True)
        sys.exit(EXIT_CLEAN)

    if result.suppressed and not quiet:
        click.echo(f"   {result.suppressed} known blocks hidden by baseline", err=True)

    sys.exit(EXIT_DUPLICATES if result.has_duplicates else EXIT_CLEAN)


def _discover_files(
    file_list: Optional[str],
    use_git: bool,
    changed_only: bool,
    base_branch: Optional[str],
):
    """Resolve the files to analyze and, for --changed-only, the changed set."""
    if use_git:
        paths: List[Path] = git_tracked_files()
        changed = git_changed_files(base_branch) if changed_only else None
        return paths, changed

    if file_list is None:
        raise ConfigError("FILE_LIST is required unless --git is given (use --help for usage)")
    return read_file_list(file_list), None


# Entry point alias
cli = main


if __name__ == "__main__":
    main()
