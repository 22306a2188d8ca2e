"""Exact-text and AST-driven patching of source files.

An edit moves through ``Loaded -> Validated -> Formatted -> Committed``.
Anything that fails before ``Committed`` rejects the edit and leaves the
file on disk byte-for-byte unchanged.
"""

from __future__ import annotations

import logging

from workbench.errors import AmbiguousMatchError, McpError, NotFoundError
from workbench.file_io import PathLocks, atomic_write_bytes, read_bytes_with_mode
from workbench.models import (
    AddDeclaration,
    AddFunction,
    AddImport,
    EditRequest,
    EditResult,
    RemoveImport,
    ReplaceExact,
    ReplaceLineRange,
)
from workbench.python_ast import (
    EditOutcome,
    add_declaration,
    add_function,
    add_import,
    format_source,
    is_python_source,
    parse_source,
    remove_import,
    replace_line_range,
)

logger = logging.getLogger(__name__)


def apply_edit(
    edit: EditRequest,
    *,
    format_code: bool = True,
    locks: PathLocks | None = None,
) -> EditResult:
    """Apply ``edit`` and report the outcome; expected failures never raise."""
    try:
        if locks is None:
            return _apply(edit, format_code)
        with locks.hold(edit.path):
            return _apply(edit, format_code)
    except McpError as exc:
        logger.debug("Edit of %s rejected: %s", edit.path, exc.error.describe())
        return EditResult(success=False, failure=exc.error)


def _count_occurrences(source: str, needle: str) -> int:
    """Count matches of ``needle`` including ones that overlap each other."""
    count = 0
    start = source.find(needle)
    while start != -1:
        count += 1
        start = source.find(needle, start + 1)
    return count


def replace_exact(source: str, edit: ReplaceExact) -> EditOutcome:
    occurrences = _count_occurrences(source, edit.old_text)
    if occurrences == 0:
        raise NotFoundError(
            "old_string was not found in the file. Re-read the file and copy "
            "the exact text to replace, including whitespace and indentation.",
            {"occurrences": 0},
        )
    if occurrences > 1:
        raise AmbiguousMatchError(
            f"old_string appears {occurrences} times in the file. Add more "
            "surrounding lines to old_string so it matches exactly once.",
            {"occurrences": occurrences},
        )
    updated = source.replace(edit.old_text, edit.new_text, 1)
    if edit.new_text:
        return updated, "Replaced 1 occurrence"
    return updated, "Deleted 1 occurrence"


def _decode(raw: bytes, edit: EditRequest) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise McpError(
            "INVALID_ENCODING",
            "File must be UTF-8 encoded to be edited.",
            {"path": str(edit.path)},
        ) from exc


def _apply_structured(source: str, edit: EditRequest) -> EditOutcome:
    if isinstance(edit, ReplaceLineRange):
        return replace_line_range(source, edit)

    try:
        tree = parse_source(source, filename=str(edit.path))
    except McpError as exc:
        raise McpError(
            exc.error.code,
            "The file does not parse as Python, so structured edits cannot be "
            "applied. Use edit_file with exact text instead. "
            + exc.error.message,
            exc.error.details,
        ) from exc

    if isinstance(edit, AddImport):
        return add_import(source, tree, edit)
    if isinstance(edit, RemoveImport):
        return remove_import(source, tree, edit)
    if isinstance(edit, AddDeclaration):
        return add_declaration(source, tree, edit)
    if isinstance(edit, AddFunction):
        return add_function(source, tree, edit)
    raise TypeError(f"Unsupported edit type: {type(edit).__name__}")


def _apply(edit: EditRequest, format_code: bool) -> EditResult:
    raw, mode = read_bytes_with_mode(edit.path)
    source = _decode(raw, edit)
    python_file = is_python_source(edit.path)

    if isinstance(edit, ReplaceExact):
        updated, message = replace_exact(source, edit)
    elif python_file:
        updated, message = _apply_structured(source, edit)
    else:
        raise McpError(
            "UNSUPPORTED_LANGUAGE",
            "Structured edits only support Python files (.py, .pyi). Use "
            "edit_file with exact text for other files.",
            {"path": str(edit.path)},
        )

    if updated is None or updated == source:
        return EditResult(success=True, message=message, changed=False)

    if python_file:
        parse_source(updated, filename=str(edit.path))
        if format_code:
            updated = format_source(
                updated, is_stub=edit.path.suffix.lower() == ".pyi"
            )
        if updated == source:
            return EditResult(success=True, message=message, changed=False)

    atomic_write_bytes(edit.path, updated.encode("utf-8"), mode)
    logger.info("%s in %s", message, edit.path)
    return EditResult(success=True, message=message, changed=True)
