"""Catalog of the search, read and edit tools in function-calling form.

Agents fetch ``GET /tools`` once and register every entry with their model,
so the schemas must stay in step with the fields each endpoint accepts.
"""

from __future__ import annotations

import logging
from typing import Any

from tool_schemas.loader import ToolSchemaError, load_tool_definitions
from workbench.errors import McpError, success_response
from workbench.tool_router import tool_router

logger = logging.getLogger(__name__)


@tool_router.get("/tools")
def list_tool_schemas() -> dict[str, Any]:
    """Return the function schemas for search_files, read_file and the edit tools."""
    try:
        tools = load_tool_definitions()
    except ToolSchemaError as exc:
        logger.error("Tool definitions are unusable: %s", exc)
        raise McpError(
            "TOOL_SCHEMA_ERROR",
            "Workbench tool definitions could not be loaded; the server "
            "installation is incomplete.",
            {"error": str(exc)},
        ) from exc
    return success_response({"tools": tools})
