"""Shared filesystem helpers for tool endpoints."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from workbench.errors import AccessDeniedError, FileIOError, NotFoundError

logger = logging.getLogger(__name__)


def read_bytes_with_mode(target_path: Path) -> tuple[bytes, int]:
    """Return file content together with its permission bits."""
    try:
        info = target_path.stat()
    except FileNotFoundError as exc:
        raise NotFoundError(
            "File does not exist. Use the exact path from a previous "
            "search_files result.",
            {"path": str(target_path)},
        ) from exc
    except PermissionError as exc:
        raise AccessDeniedError(
            f"Permission denied reading '{target_path}'.",
            {"path": str(target_path)},
        ) from exc

    if not stat.S_ISREG(info.st_mode):
        raise NotFoundError(
            "Path is not a regular file.",
            {"path": str(target_path)},
        )

    try:
        content = target_path.read_bytes()
    except PermissionError as exc:
        raise AccessDeniedError(
            f"Permission denied reading '{target_path}'.",
            {"path": str(target_path)},
        ) from exc
    except OSError as exc:
        raise FileIOError(
            f"Failed to read '{target_path}': {exc}",
            {"path": str(target_path)},
        ) from exc
    return content, stat.S_IMODE(info.st_mode)


def atomic_write_bytes(
    target_path: Path, content: bytes, mode: int | None = None
) -> None:
    """Replace ``target_path`` with ``content`` via a same-directory rename.

    Either the target ends up with the new bytes and ``mode``, or it is left
    exactly as it was.
    """
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "wb",
            dir=target_path.parent,
            prefix=f".{target_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        if mode is not None:
            os.chmod(temp_path, mode)
        os.replace(temp_path, target_path)
        temp_path = None
    except PermissionError as exc:
        raise AccessDeniedError(
            f"Permission denied writing '{target_path}'.",
            {"path": str(target_path)},
        ) from exc
    except OSError as exc:
        raise FileIOError(
            f"Failed to write '{target_path}': {exc}. The file was left unchanged.",
            {"path": str(target_path)},
        ) from exc
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                logger.warning("Could not remove temporary file %s", temp_path)


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class PathLocks:
    """Per-path locks serializing concurrent edits to the same file.

    An entry lives only while some thread holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _LockEntry] = {}

    @contextmanager
    def hold(self, target_path: Path) -> Iterator[None]:
        key = os.path.realpath(target_path)
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _LockEntry()
                self._locks[key] = entry
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[key]
