"""File discovery and reading tool endpoints."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from fastapi import Body, Request

from workbench.config import AppConfig
from workbench.constants import DEFAULT_SEARCH_PATH, READ_FIELDS, SEARCH_FIELDS
from workbench.context import get_request_config, get_workspace_root
from workbench.errors import McpError, error_response, success_response
from workbench.file_reader import read_file as read_file_window
from workbench.models import SearchRequest, SearchResult
from workbench.paths import validate_path
from workbench.payload import (
    _ensure_payload_dict,
    _optional_int,
    _optional_string,
    _reject_unknown_fields,
    _require_path,
)
from workbench.search_engine import search
from workbench.tool_router import tool_router

logger = logging.getLogger(__name__)


@tool_router.post("/tool:search_files")
def search_files(request: Request, payload: Any = Body(None)) -> dict[str, Any]:
    """Search files by glob, path regex and content regex."""
    try:
        payload = _ensure_payload_dict(payload)
        _reject_unknown_fields(payload, SEARCH_FIELDS)

        raw_path = payload.get("path")
        if raw_path is None or raw_path == "":
            raw_path = DEFAULT_SEARCH_PATH
        glob_pattern = _optional_string(payload, "pattern")
        path_filter = _optional_string(payload, "filter")
        content_pattern = _optional_string(payload, "contains")

        workspace_root = get_workspace_root(request)
        resolved_path = validate_path(workspace_root, raw_path)
    except McpError as exc:
        return error_response(exc.error, {"matches": []})

    search_request = SearchRequest(
        root_path=resolved_path,
        glob_pattern=glob_pattern,
        path_filter=path_filter,
        content_pattern=content_pattern,
    )
    result = _run_search(search_request, get_request_config(request), workspace_root)
    matches = [match.to_dict() for match in result.matches]
    if result.failure is not None:
        return error_response(result.failure, {"matches": matches})
    return success_response({"matches": matches})


def _run_search(
    search_request: SearchRequest, config: AppConfig | None, workspace_root: Path
) -> SearchResult:
    workers = getattr(config, "search_workers", None)
    timeout = getattr(config, "search_timeout_seconds", None)

    cancel_event = threading.Event()
    timer: threading.Timer | None = None
    if timeout:
        timer = threading.Timer(timeout, cancel_event.set)
        timer.daemon = True
        timer.start()
    try:
        return search(
            search_request,
            workers=workers,
            cancel_event=cancel_event,
            relative_to=workspace_root,
        )
    finally:
        if timer is not None:
            timer.cancel()


@tool_router.post("/tool:read_file")
def read_file(request: Request, payload: Any = Body(None)) -> dict[str, Any]:
    """Read a file with line numbers, optionally limited to a line window."""
    try:
        payload = _ensure_payload_dict(payload)
        _reject_unknown_fields(payload, READ_FIELDS)
        raw_path = _require_path(payload)
        start_line = _optional_int(payload, "start_line")
        end_line = _optional_int(payload, "end_line")

        workspace_root = get_workspace_root(request)
        resolved_path = validate_path(workspace_root, raw_path)
        result = read_file_window(resolved_path, start_line, end_line)
    except McpError as exc:
        logger.debug("read_file failed: %s", exc.error.describe())
        return error_response(exc.error)
    return success_response(result.to_dict())
