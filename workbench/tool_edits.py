"""Source editing tool endpoints."""

from __future__ import annotations

import dataclasses
from typing import Any

from fastapi import Body, Request

from workbench.constants import EDIT_FILE_FIELDS, SOURCE_EDIT_FIELDS
from workbench.context import get_format_code, get_path_locks, get_workspace_root
from workbench.errors import McpError, error_response, success_response
from workbench.models import EditRequest, EditResult
from workbench.operations import _decode_exact_edit, _decode_source_edit
from workbench.paths import display_path, validate_path
from workbench.payload import (
    _ensure_payload_dict,
    _reject_unknown_fields,
    _require_path,
)
from workbench.source_patcher import apply_edit
from workbench.tool_router import tool_router


@tool_router.post("/tool:edit_file")
def edit_file(request: Request, payload: Any = Body(None)) -> dict[str, Any]:
    """Replace one exact occurrence of old_string with new_string."""
    try:
        payload = _ensure_payload_dict(payload)
        _reject_unknown_fields(payload, EDIT_FILE_FIELDS)
        raw_path = _require_path(payload)
        edit = _decode_exact_edit(payload)
    except McpError as exc:
        return error_response(exc.error)
    return _apply_to_path(request, raw_path, edit)


@tool_router.post("/tool:edit_source")
def edit_source(request: Request, payload: Any = Body(None)) -> dict[str, Any]:
    """Apply a structured edit (imports, declarations, functions, line blocks)."""
    try:
        payload = _ensure_payload_dict(payload)
        _reject_unknown_fields(payload, SOURCE_EDIT_FIELDS)
        raw_path = _require_path(payload)
        edit = _decode_source_edit(payload)
    except McpError as exc:
        return error_response(exc.error)
    return _apply_to_path(request, raw_path, edit)


def _apply_to_path(
    request: Request, raw_path: Any, edit: EditRequest
) -> dict[str, Any]:
    workspace_root = get_workspace_root(request)
    try:
        resolved_path = validate_path(workspace_root, raw_path)
    except McpError as exc:
        return error_response(exc.error)

    result = apply_edit(
        dataclasses.replace(edit, path=resolved_path),
        format_code=get_format_code(request),
        locks=get_path_locks(request),
    )
    return _edit_response(result, display_path(workspace_root, resolved_path))


def _edit_response(result: EditResult, shown_path: str) -> dict[str, Any]:
    if result.failure is not None:
        failure = dataclasses.replace(
            result.failure, details={**result.failure.details, "path": shown_path}
        )
        return error_response(failure)
    return success_response(
        {"message": f"{result.message} in {shown_path}", "changed": result.changed}
    )
