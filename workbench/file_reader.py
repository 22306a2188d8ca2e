"""Line-numbered, windowed file reads."""

from __future__ import annotations

from pathlib import Path

from workbench.errors import LineRangeError, McpError
from workbench.file_io import read_bytes_with_mode
from workbench.models import ReadResult
from workbench.search_engine import split_lines

MAX_LINES_PER_READ = 5000


def read_file(
    target_path: Path, start_line: int | None = None, end_line: int | None = None
) -> ReadResult:
    if target_path.is_dir():
        raise McpError(
            "INVALID_PATH",
            f"Path '{target_path}' is a directory, not a file. Use search_files "
            "to list its contents.",
            {"path": str(target_path)},
        )

    raw, _mode = read_bytes_with_mode(target_path)
    lines = split_lines(raw.decode("utf-8", errors="replace"))
    total_lines = len(lines)

    first = max(start_line or 1, 1)
    if end_line is not None and end_line < first:
        raise LineRangeError(
            f"end_line {end_line} is before start_line {first}.",
            {"start_line": first, "end_line": end_line},
        )
    if total_lines and first > total_lines:
        raise LineRangeError(
            f"start_line {first} is beyond the end of the file "
            f"(total lines: {total_lines}).",
            {"start_line": first, "total_lines": total_lines},
        )

    last = total_lines if end_line is None else min(end_line, total_lines)
    last = min(last, first + MAX_LINES_PER_READ - 1)
    window = lines[first - 1 : last]
    content = "\n".join(
        f"{number:4d}|{line}" for number, line in enumerate(window, start=first)
    )
    return ReadResult(
        content=content,
        total_lines=total_lines,
        file_size=len(raw),
        start_line=first,
        end_line=first + len(window) - 1 if window else 0,
    )
