"""Payload validation helpers for tool endpoints."""

from __future__ import annotations

from typing import Any

from workbench.errors import McpError


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise McpError(
            "INVALID_TYPE",
            "Payload must be an object.",
            {"type": type(payload).__name__},
        )
    return payload


def _reject_unknown_fields(payload: dict[str, Any], allowed_fields: set[str]) -> None:
    unknown_fields = sorted(set(payload) - allowed_fields)
    if unknown_fields:
        raise McpError(
            "UNKNOWN_FIELD",
            "Unknown fields are not allowed.",
            {"fields": unknown_fields, "allowed": sorted(allowed_fields)},
        )


def _require_path(payload: dict[str, Any]) -> Any:
    if "path" not in payload:
        raise McpError(
            "MISSING_PATH",
            "Path is required.",
            {"fields": ["path"]},
        )
    raw_path = payload["path"]
    if isinstance(raw_path, str) and not raw_path.strip():
        raise McpError(
            "MISSING_PATH",
            "Path must be a non-empty string.",
            {"fields": ["path"]},
        )
    return raw_path


def _optional_string(payload: dict[str, Any], field_name: str) -> str | None:
    """Return a string field, treating absent, null and empty as unset."""
    value = payload.get(field_name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise McpError(
            "INVALID_TYPE",
            f"{field_name} must be a string.",
            {field_name: str(value), "type": type(value).__name__},
        )
    return value or None


def _required_string(
    payload: dict[str, Any], field_name: str, *, allow_empty: bool = False
) -> str:
    if field_name not in payload or payload[field_name] is None:
        raise McpError(
            "MISSING_FIELD",
            f"{field_name} is required.",
            {"fields": [field_name]},
        )
    value = payload[field_name]
    if not isinstance(value, str):
        raise McpError(
            "INVALID_TYPE",
            f"{field_name} must be a string.",
            {field_name: str(value), "type": type(value).__name__},
        )
    if not allow_empty and not value:
        raise McpError(
            "MISSING_FIELD",
            f"{field_name} must be a non-empty string.",
            {"fields": [field_name]},
        )
    return value


def _optional_int(payload: dict[str, Any], field_name: str) -> int | None:
    value = payload.get(field_name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise McpError(
            "INVALID_TYPE",
            f"{field_name} must be an integer.",
            {field_name: str(value), "type": type(value).__name__},
        )
    return value
