"""Glob/regex file search with a parallel content scanner.

Candidates come either from a recursive glob or from a pruned directory walk,
are narrowed by an optional path regex, and, when a content pattern is given,
are scanned line by line on a bounded thread pool. Every content match carries
its 1-indexed line number and a five-line context snippet.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path, PurePosixPath
from typing import Callable

from workbench.errors import (
    InvalidPatternError,
    McpError,
    NotFoundError,
    SearchCancelledError,
)
from workbench.models import FileMatch, SearchRequest, SearchResult

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "vendor",
        "node_modules",
        ".venv",
        "venv",
        "__pycache__",
        ".idea",
        ".vscode",
    }
)
SNIPPET_CONTEXT_LINES = 2
MATCH_MARKER = "→ "
CONTEXT_MARKER = "  "

# Leading bytes inspected for binary content, and the control bytes that never
# appear in text.
_SNIFF_BYTES = 512
_BINARY_BYTES = frozenset(
    [*range(0x00, 0x09), 0x0B, *range(0x0E, 0x1B), *range(0x1C, 0x20)]
)

PathRenderer = Callable[[Path], str]


def search(
    request: SearchRequest,
    *,
    workers: int | None = None,
    cancel_event: threading.Event | None = None,
    relative_to: Path | None = None,
) -> SearchResult:
    """Run a search and report failures inside the result instead of raising."""
    try:
        matches = search_files(
            request,
            workers=workers,
            cancel_event=cancel_event,
            relative_to=relative_to,
        )
    except McpError as exc:
        logger.debug("Search under %s failed: %s", request.root_path, exc)
        return SearchResult(matches=[], failure=exc.error)
    return SearchResult(matches=matches)


def search_files(
    request: SearchRequest,
    *,
    workers: int | None = None,
    cancel_event: threading.Event | None = None,
    relative_to: Path | None = None,
) -> list[FileMatch]:
    filter_re = _compile_pattern(request.path_filter, "filter")
    contains_re = _compile_pattern(request.content_pattern, "contains")
    if request.glob_pattern is not None:
        _validate_glob(request.glob_pattern)

    root = request.root_path
    if not root.exists():
        raise NotFoundError(
            "Search directory does not exist. Check the path or search from the "
            "workspace root with path='.'.",
            {"path": str(root)},
        )
    if not root.is_dir():
        raise NotFoundError(
            "Search path is not a directory. Pass its parent directory and narrow "
            "the search with 'pattern' or 'filter'.",
            {"path": str(root)},
        )

    render = _path_renderer(relative_to)
    candidates = _collect_files(root, request.glob_pattern, cancel_event)

    if filter_re is not None:
        candidates = [path for path in candidates if filter_re.search(render(path))]

    if contains_re is None:
        matches = [FileMatch(path=render(path)) for path in candidates]
    else:
        matches = _scan_contents(candidates, contains_re, workers, cancel_event, render)

    matches.sort(key=lambda match: match.path)
    logger.debug(
        "Search under %s: %d candidates, %d matches",
        root,
        len(candidates),
        len(matches),
    )
    return matches


def _compile_pattern(
    raw_pattern: str | None, field_name: str
) -> re.Pattern[str] | None:
    if raw_pattern is None:
        return None
    try:
        return re.compile(raw_pattern)
    except re.error as exc:
        raise InvalidPatternError(
            f"Invalid regex for '{field_name}': {exc}. Fix the expression and retry.",
            {"field": field_name, "pattern": raw_pattern},
        ) from exc


def _validate_glob(pattern: str) -> None:
    if not pattern.strip():
        raise InvalidPatternError(
            "Glob pattern must be a non-empty string such as '**/*.py'.",
            {"pattern": pattern},
        )
    candidate = PurePosixPath(pattern.replace("\\", "/"))
    if candidate.is_absolute():
        raise InvalidPatternError(
            "Glob pattern must be relative to the search path.",
            {"pattern": pattern},
        )
    if ".." in candidate.parts:
        raise InvalidPatternError(
            "Glob pattern must not contain '..'.",
            {"pattern": pattern},
        )
    if any(_unbalanced_brackets(part) for part in candidate.parts):
        raise InvalidPatternError(
            "Glob pattern has an unclosed '[' or a stray ']'. Close the "
            "character class, for example '*.[ch]'.",
            {"pattern": pattern},
        )


def _unbalanced_brackets(component: str) -> bool:
    index = 0
    while index < len(component):
        char = component[index]
        if char == "]":
            return True
        if char == "[":
            # A leading '!' negates and a leading ']' is a literal member.
            end = index + 1
            if component[end : end + 1] == "!":
                end += 1
            if component[end : end + 1] == "]":
                end += 1
            close = component.find("]", end)
            if close == -1:
                return True
            index = close + 1
            continue
        index += 1
    return False


def _path_renderer(relative_to: Path | None) -> PathRenderer:
    if relative_to is None:
        return lambda path: path.as_posix()

    def render(path: Path) -> str:
        try:
            return path.relative_to(relative_to).as_posix()
        except ValueError:
            return path.as_posix()

    return render


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise SearchCancelledError(
            "Search was cancelled before it finished. Narrow the search with "
            "'pattern' or a deeper 'path' and retry."
        )


def _in_skipped_dir(root: Path, path: Path) -> bool:
    try:
        parts = path.relative_to(root).parts[:-1]
    except ValueError:
        parts = path.parts[:-1]
    return any(part in SKIP_DIRS for part in parts)


def _collect_files(
    root: Path, pattern: str | None, cancel_event: threading.Event | None
) -> list[Path]:
    if pattern is not None:
        return _collect_glob(root, pattern, cancel_event)
    return _collect_walk(root, cancel_event)


def _collect_glob(
    root: Path, pattern: str, cancel_event: threading.Event | None
) -> list[Path]:
    files: list[Path] = []
    try:
        for candidate in root.glob(pattern.replace("\\", "/")):
            _check_cancelled(cancel_event)
            if _in_skipped_dir(root, candidate) or candidate.is_symlink():
                continue
            try:
                if candidate.is_dir():
                    continue
                if not candidate.exists():
                    continue
            except OSError:
                continue
            files.append(candidate)
    except (ValueError, NotImplementedError) as exc:
        raise InvalidPatternError(
            f"Invalid glob pattern '{pattern}': {exc}.",
            {"pattern": pattern},
        ) from exc
    return files


def _collect_walk(root: Path, cancel_event: threading.Event | None) -> list[Path]:
    files: list[Path] = []
    for current, dirnames, filenames in os.walk(root, followlinks=False):
        _check_cancelled(cancel_event)
        dir_path = Path(current)
        dirnames[:] = sorted(
            name
            for name in dirnames
            if name not in SKIP_DIRS and not (dir_path / name).is_symlink()
        )
        for filename in sorted(filenames):
            file_path = dir_path / filename
            if file_path.is_symlink():
                continue
            files.append(file_path)
    return files


def _scan_contents(
    candidates: list[Path],
    pattern: re.Pattern[str],
    workers: int | None,
    cancel_event: threading.Event | None,
    render: PathRenderer,
) -> list[FileMatch]:
    if not candidates:
        return []

    worker_count = min(workers or os.cpu_count() or 1, len(candidates))
    matches: list[FileMatch] = []
    with ThreadPoolExecutor(
        max_workers=worker_count, thread_name_prefix="search"
    ) as executor:
        futures = [
            executor.submit(
                _scan_file, path, render(path), pattern, cancel_event
            )
            for path in candidates
        ]
        try:
            for future in as_completed(futures):
                match = future.result()
                if match is not None:
                    matches.append(match)
        except Exception:
            for future in futures:
                future.cancel()
            raise
    return matches


def _looks_binary(data: bytes) -> bool:
    return any(byte in _BINARY_BYTES for byte in data[:_SNIFF_BYTES])


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` the way line numbers are reported to callers."""
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _build_snippet(lines: list[str], index: int) -> str:
    start = max(0, index - SNIPPET_CONTEXT_LINES)
    end = min(len(lines), index + SNIPPET_CONTEXT_LINES + 1)
    rendered = []
    for position in range(start, end):
        marker = MATCH_MARKER if position == index else CONTEXT_MARKER
        rendered.append(f"{marker}{position + 1:4d}| {lines[position]}")
    return "\n".join(rendered)


def _scan_file(
    path: Path,
    display: str,
    pattern: re.Pattern[str],
    cancel_event: threading.Event | None,
) -> FileMatch | None:
    _check_cancelled(cancel_event)
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.debug("Skipping unreadable file %s: %s", path, exc)
        return None

    if _looks_binary(data):
        return None

    lines = split_lines(data.decode("utf-8", errors="replace"))
    matched_lines: list[int] = []
    snippets: list[str] = []
    for index, line in enumerate(lines):
        if pattern.search(line):
            matched_lines.append(index + 1)
            snippets.append(_build_snippet(lines, index))

    if not matched_lines:
        return None
    return FileMatch(
        path=display,
        matched_lines=matched_lines,
        snippets=snippets,
        total_lines=len(lines),
    )
