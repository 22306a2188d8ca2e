"""Request-scoped access to configuration and shared service state."""

from __future__ import annotations

from pathlib import Path

from fastapi import Request

from workbench.config import AppConfig
from workbench.file_io import PathLocks

SERVICE_TOKEN_HEADER = "X-Workbench-Service-Token"
AUTH_EXEMPT_PATHS = {"/health"}


def get_request_config(request: Request) -> AppConfig | None:
    return getattr(request.app.state, "config", None)


def get_workspace_root(request: Request) -> Path:
    """Resolve the workspace root every tool path is relative to."""
    config = get_request_config(request)
    if config is not None and hasattr(config, "workspace_root"):
        return Path(config.workspace_root)
    return Path(request.app.state.workspace_root)


def get_path_locks(request: Request) -> PathLocks | None:
    return getattr(request.app.state, "path_locks", None)


def get_format_code(request: Request) -> bool:
    config = get_request_config(request)
    return bool(getattr(config, "format_code", True))
