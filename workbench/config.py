"""Configuration loading for the workbench tool server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 18180


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class AppConfig:
    workspace_root: Path
    search_workers: int | None = None
    search_timeout_seconds: float | None = None
    format_code: bool = True
    service_token: str | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def _read_dotenv_value(dotenv_path: Path, key: str) -> str | None:
    """Read a single key from a .env file without mutating the environment."""
    if not dotenv_path.is_file():
        return None
    try:
        content = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].strip()
        if "=" not in stripped:
            continue
        name, value = stripped.split("=", 1)
        name = name.strip()
        if name != key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return value or None
    return None


def _read_setting(dotenv_path: Path, key: str) -> str | None:
    raw_value = os.environ.get(key)
    if raw_value is None:
        raw_value = _read_dotenv_value(dotenv_path, key)
    if raw_value is None:
        return None
    raw_value = raw_value.strip()
    return raw_value or None


def _read_bool(raw_value: str | None, *, default: bool, key: str) -> bool:
    if raw_value is None:
        return default
    normalized = raw_value.strip().lower()
    if not normalized:
        return default
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{key} must be a boolean value.")


def _read_positive_int(raw_value: str | None, *, key: str) -> int | None:
    if raw_value is None:
        return None
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a positive integer.") from exc
    if value <= 0:
        raise ConfigError(f"{key} must be a positive integer.")
    return value


def _read_positive_float(raw_value: str | None, *, key: str) -> float | None:
    if raw_value is None:
        return None
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a positive number.") from exc
    if value <= 0:
        raise ConfigError(f"{key} must be a positive number.")
    return value


def load_config() -> AppConfig:
    """Load configuration from the environment, falling back to ./.env."""
    dotenv_path = Path.cwd() / ".env"

    root_key = "WORKBENCH_ROOT"
    raw_root = _read_setting(dotenv_path, root_key)
    if not raw_root:
        raise ConfigError(
            "WORKBENCH_ROOT is required; set it to the workspace root path."
        )

    search_workers = _read_positive_int(
        _read_setting(dotenv_path, "WORKBENCH_SEARCH_WORKERS"),
        key="WORKBENCH_SEARCH_WORKERS",
    )
    search_timeout = _read_positive_float(
        _read_setting(dotenv_path, "WORKBENCH_SEARCH_TIMEOUT_SECONDS"),
        key="WORKBENCH_SEARCH_TIMEOUT_SECONDS",
    )
    format_key = "WORKBENCH_FORMAT_CODE"
    format_code = _read_bool(
        _read_setting(dotenv_path, format_key), default=True, key=format_key
    )
    service_token = _read_setting(dotenv_path, "WORKBENCH_SERVICE_TOKEN")
    host = _read_setting(dotenv_path, "WORKBENCH_HOST") or DEFAULT_HOST
    port = _read_positive_int(
        _read_setting(dotenv_path, "WORKBENCH_PORT"), key="WORKBENCH_PORT"
    )

    return AppConfig(
        workspace_root=Path(raw_root).resolve(),
        search_workers=search_workers,
        search_timeout_seconds=search_timeout,
        format_code=format_code,
        service_token=service_token,
        host=host,
        port=port or DEFAULT_PORT,
    )
