"""Workspace-relative path handling for every tool.

Callers name files the way search_files reports them: POSIX paths relative to
the workspace root. Anything that could step outside the root is refused
before a search or edit touches the filesystem.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from workbench.errors import McpError


def validate_path(workspace_root: Path, raw_path: str) -> Path:
    """Resolve a tool path against ``workspace_root``.

    Backslashes are accepted as separators and ``"."`` names the root itself.
    Absolute paths, ``..`` segments and symlinked components are rejected.
    """
    if not isinstance(raw_path, str):
        raise McpError(
            "INVALID_TYPE",
            "Path must be a string.",
            {"path": str(raw_path), "type": type(raw_path).__name__},
        )

    normalized = raw_path.replace("\\", "/")
    candidate = PurePosixPath(normalized)

    if candidate.is_absolute():
        raise McpError(
            "ABSOLUTE_PATH",
            "Absolute paths are not allowed; use a path relative to the "
            "workspace root, exactly as returned by search_files.",
            {"path": raw_path},
        )

    if ".." in candidate.parts:
        raise McpError(
            "PATH_TRAVERSAL",
            "Path traversal is not allowed.",
            {"path": raw_path},
        )

    if _contains_symlink(workspace_root, candidate):
        raise McpError(
            "PATH_SYMLINK",
            "Symlinked paths are not allowed.",
            {"path": raw_path},
        )

    return workspace_root.joinpath(*candidate.parts)


def display_path(workspace_root: Path, resolved_path: Path) -> str:
    """Render a resolved path the way tools report it back to callers."""
    try:
        return resolved_path.relative_to(workspace_root).as_posix()
    except ValueError:
        return resolved_path.as_posix()


def _contains_symlink(workspace_root: Path, relative_path: PurePosixPath) -> bool:
    current = workspace_root
    for segment in relative_path.parts:
        current = current / segment
        if current.is_symlink():
            return True
    return False
