"""Structured error types for tool responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class ErrorResponse:
    """Serializable error payload returned by tool handlers."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def describe(self) -> str:
        return f"{self.code}: {self.message}"


class McpError(RuntimeError):
    """Exception carrying a structured error response."""

    def __init__(
        self, code: str, message: str, details: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.error = ErrorResponse(
            code=code, message=message, details=dict(details or {})
        )


class _CodedError(McpError):
    code = "ERROR"

    def __init__(
        self, message: str, details: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(self.code, message, details)


class NotFoundError(_CodedError):
    """A path or substring the caller referenced does not exist."""

    code = "NOT_FOUND"


class AmbiguousMatchError(_CodedError):
    """More than one candidate matched; the engine refuses to guess."""

    code = "AMBIGUOUS_MATCH"


class InvalidPatternError(_CodedError):
    code = "INVALID_PATTERN"


class SourceSyntaxError(_CodedError):
    """Edited content no longer parses."""

    code = "SYNTAX_ERROR"


class InvalidExpressionError(_CodedError):
    code = "INVALID_EXPRESSION"


class InvalidFragmentError(_CodedError):
    code = "INVALID_FRAGMENT"


class LineRangeError(_CodedError):
    code = "RANGE_ERROR"


class AccessDeniedError(_CodedError):
    code = "PERMISSION_DENIED"


class FileIOError(_CodedError):
    code = "IO_ERROR"


class SearchCancelledError(_CodedError):
    code = "CANCELLED"


def success_response(payload: dict[str, Any]) -> dict[str, Any]:
    """Wrap a successful tool response in the standard envelope."""
    return {"ok": True, "data": payload}


def error_response(
    error: ErrorResponse, payload: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Wrap an error response in the standard envelope.

    ``payload`` carries partial data (for example an empty match list) that
    callers may still read alongside the error.
    """
    envelope: dict[str, Any] = {"ok": False, "error": error.to_dict()}
    if payload is not None:
        envelope["data"] = payload
    return envelope
