"""Decoding of tool payloads into typed edit requests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from workbench.constants import SOURCE_OPERATIONS
from workbench.errors import McpError
from workbench.models import (
    AddDeclaration,
    AddFunction,
    AddImport,
    EditRequest,
    RemoveImport,
    ReplaceExact,
    ReplaceLineRange,
)
from workbench.payload import (
    _optional_int,
    _optional_string,
    _required_string,
)

# Placeholder until the endpoint has validated and resolved the real path.
_UNRESOLVED = Path()


def _decode_exact_edit(payload: dict[str, Any]) -> ReplaceExact:
    old_text = _required_string(payload, "old_string")
    new_text = _required_string(payload, "new_string", allow_empty=True)
    return ReplaceExact(path=_UNRESOLVED, old_text=old_text, new_text=new_text)


def _decode_line_range(payload: dict[str, Any]) -> ReplaceLineRange:
    start_line = _optional_int(payload, "start_line")
    end_line = _optional_int(payload, "end_line")
    if start_line is None or end_line is None:
        raise McpError(
            "MISSING_FIELD",
            "start_line and end_line are required for replace_code_block.",
            {"fields": ["start_line", "end_line"]},
        )
    code = _required_string(payload, "code")
    return ReplaceLineRange(
        path=_UNRESOLVED, start_line=start_line, end_line=end_line, new_text=code
    )


def _decode_declaration(payload: dict[str, Any], is_const: bool) -> AddDeclaration:
    name = _required_string(payload, "var_name")
    declared_type = _optional_string(payload, "var_type")
    value_expr = _optional_string(payload, "var_value")
    if declared_type is None and value_expr is None:
        raise McpError(
            "MISSING_FIELD",
            "Either var_type or var_value must be provided.",
            {"fields": ["var_type", "var_value"]},
        )
    return AddDeclaration(
        path=_UNRESOLVED,
        name=name,
        declared_type=declared_type,
        value_expr=value_expr,
        is_const=is_const,
    )


def _decode_source_edit(payload: dict[str, Any]) -> EditRequest:
    """Turn an ``edit_source`` payload into one of the typed edit requests."""
    if "operation" not in payload:
        raise McpError(
            "MISSING_OPERATION",
            "Operation is required.",
            {"fields": ["operation"], "allowed": list(SOURCE_OPERATIONS)},
        )
    operation = payload["operation"]
    if not isinstance(operation, str) or operation not in SOURCE_OPERATIONS:
        raise McpError(
            "INVALID_OPERATION",
            f"Unknown operation '{operation}'. Use one of: "
            + ", ".join(SOURCE_OPERATIONS)
            + ".",
            {"operation": str(operation), "allowed": list(SOURCE_OPERATIONS)},
        )

    if operation == "add_import":
        return AddImport(
            path=_UNRESOLVED,
            import_path=_required_string(payload, "import_path"),
            alias=_optional_string(payload, "import_alias"),
        )
    if operation == "remove_import":
        return RemoveImport(
            path=_UNRESOLVED, import_path=_required_string(payload, "import_path")
        )
    if operation in {"add_var", "add_const"}:
        return _decode_declaration(payload, is_const=operation == "add_const")
    if operation == "add_function":
        return AddFunction(
            path=_UNRESOLVED, source_code=_required_string(payload, "code")
        )
    return _decode_line_range(payload)
