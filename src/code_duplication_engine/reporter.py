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
Report generator - formats detection results for output.

Supports console, json and xml output formats. The JSON field names and
XML element/attribute names are consumed by other tools and must not
change.
"""

import html
import json
import re
from enum import Enum
from typing import List

from .config import DetectorConfig
from .models import DetectionResult, DuplicateBlock, Summary


class OutputFormat(Enum):
    CONSOLE = "console"
    JSON = "json"
    XML = "xml"


# Characters XML 1.0 does not allow, even escaped
_XML_INVALID = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f]")


def render_result(
    result: DetectionResult,
    config: DetectorConfig,
    output_format: OutputFormat = OutputFormat.CONSOLE,
) -> str:
    """
    Generate a report of duplicate blocks.

    Args:
        result: Detection result
        config: Settings used for the run (echoed by the console format)
        output_format: Desired output format

    Returns:
        Formatted report string
    """
    if output_format == OutputFormat.CONSOLE:
        return _format_console(result, config)
    elif output_format == OutputFormat.JSON:
        return _format_json(result)
    elif output_format == OutputFormat.XML:
        return _format_xml(result)
    else:
        raise ValueError(f"Unknown format: {output_format}")


def _percent(summary: Summary) -> str:
    return f"{summary.duplication_percent:.1f}"


def _format_console(result: DetectionResult, config: DetectorConfig) -> str:
    """Plain text, one block after another, then configuration and summary."""
    lines = []

    for block in result.blocks:
        lines.append(f"{block.location1} <-> {block.location2}")
        for code_line in block.lines:
            lines.append(f"    {code_line}")
        lines.append("")

    lines.append("Configuration:")
    lines.append(f"  Minimum block size: {config.min_lines} lines")
    lines.append(f"  Minimum characters per line: {config.min_chars}")
    lines.append(f"  Ignore preprocessor directives: {'yes' if config.ignore_preprocessor else 'no'}")
    lines.append(f"  Ignore same filenames: {'yes' if config.ignore_same_filename else 'no'}")
    lines.append("")

    summary = result.summary
    lines.append("Summary:")
    lines.append(f"  Files analyzed: {summary.files_analyzed}")
    lines.append(f"  Total lines: {summary.total_lines}")
    lines.append(f"  Duplicate blocks: {summary.duplicate_blocks}")
    lines.append(f"  Duplicate lines: {summary.duplicate_lines}")
    if summary.total_lines > 0:
        lines.append(f"  Duplication: {_percent(summary)}%")
    if result.suppressed:
        lines.append(f"  Known blocks (baseline): {result.suppressed}")

    return "\n".join(lines) + "\n"


def _block_to_dict(block: DuplicateBlock) -> dict:
    return {
        "line_count": block.line_count,
        "file1": {
            "path": str(block.file1),
            "start_line": block.start1,
            "end_line": block.end1,
        },
        "file2": {
            "path": str(block.file2),
            "start_line": block.start2,
            "end_line": block.end2,
        },
        "lines": list(block.lines),
    }


def _format_json(result: DetectionResult) -> str:
    """JSON for machine consumption."""
    summary = result.summary
    data = {
        "duplicates": [_block_to_dict(block) for block in result.blocks],
        "summary": {
            "files_analyzed": summary.files_analyzed,
            "total_lines": summary.total_lines,
            "duplicate_blocks": summary.duplicate_blocks,
            "duplicate_lines": summary.duplicate_lines,
            "duplication_percent": round(summary.duplication_percent, 1),
        },
    }
    return json.dumps(data, indent=2) + "\n"


def _attr(value) -> str:
    return html.escape(_XML_INVALID.sub("", str(value)), quote=True)


def _format_xml(result: DetectionResult) -> str:
    """XML in the classic Duplo layout."""
    lines: List[str] = ['<?xml version="1.0" encoding="UTF-8"?>', "<duplo>"]

    for block in result.blocks:
        lines.append(f'  <set LineCount="{block.line_count}">')
        lines.append(
            f'    <block SourceFile="{_attr(block.file1)}" '
            f'StartLineNumber="{block.start1}" EndLineNumber="{block.end1}"/>'
        )
        lines.append(
            f'    <block SourceFile="{_attr(block.file2)}" '
            f'StartLineNumber="{block.start2}" EndLineNumber="{block.end2}"/>'
        )
        lines.append('    <lines xml:space="preserve">')
        for code_line in block.lines:
            lines.append(f'      <line Text="{_attr(code_line)}"/>')
        lines.append("    </lines>")
        lines.append("  </set>")

    summary = result.summary
    lines.append(
        f'  <summary FilesAnalyzed="{summary.files_analyzed}" '
        f'TotalLines="{summary.total_lines}" '
        f'DuplicateBlocks="{summary.duplicate_blocks}" '
        f'DuplicateLines="{summary.duplicate_lines}" '
        f'DuplicationPercent="{_percent(summary)}"/>'
    )
    lines.append("</duplo>")
    return "\n".join(lines) + "\n"
