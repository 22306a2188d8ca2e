"""Tool handler registration."""

# ruff: noqa: F401

from __future__ import annotations

from fastapi import FastAPI

from workbench.tool_router import tool_router

# Import modules to register routes with the shared router.
from workbench import tool_catalog, tool_edits, tool_files

# Re-export endpoints for tests and direct imports.
from workbench.tool_catalog import list_tool_schemas
from workbench.tool_edits import edit_file, edit_source
from workbench.tool_files import read_file, search_files


def register_tool_handlers(app: FastAPI) -> None:
    """Attach tool routes to the FastAPI application."""
    app.include_router(tool_router)
