"""Shared constants for tool endpoints."""

from __future__ import annotations

SEARCH_FIELDS = {"path", "pattern", "filter", "contains"}
READ_FIELDS = {"path", "start_line", "end_line"}
EDIT_FILE_FIELDS = {"path", "old_string", "new_string"}
SOURCE_EDIT_FIELDS = {
    "path",
    "operation",
    "import_path",
    "import_alias",
    "var_name",
    "var_type",
    "var_value",
    "code",
    "start_line",
    "end_line",
}
SOURCE_OPERATIONS = (
    "add_import",
    "remove_import",
    "add_var",
    "add_const",
    "add_function",
    "replace_code_block",
)
DEFAULT_SEARCH_PATH = "."
