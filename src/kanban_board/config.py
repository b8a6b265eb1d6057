"""Load optional board configuration from `.kanban/config.yaml`."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import (
    CONFIG_FILE,
    DEFAULT_HOST,
    DEFAULT_ONLINE_WINDOW_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_PORT,
    DEFAULT_STORAGE_FORMAT,
    STATE_DIR_NAME,
    STORAGE_FORMATS,
)
from .io_utils import _load_data_with_error

VALID_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def load_board_config(project_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional config file.

    Args:
        project_dir: Directory holding the `.kanban/` state directory.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    path = project_dir.resolve() / STATE_DIR_NAME / CONFIG_FILE
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    raw = _get_nested(config, name)
    return raw if isinstance(raw, dict) else {}


def get_storage_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the `storage` block, or an empty dict."""
    return _section(config, "storage")


def get_presence_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the `presence` block, or an empty dict."""
    return _section(config, "presence")


def get_server_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the `server` block, or an empty dict."""
    return _section(config, "server")


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return default


def _as_positive(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)) and value > 0:
        return value
    return default


@dataclass
class Settings:
    """Resolved runtime settings (config file + environment + defaults)."""

    state_dir: Path
    storage_format: str = DEFAULT_STORAGE_FORMAT
    seed_demo: bool = True
    online_window_seconds: float = DEFAULT_ONLINE_WINDOW_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors: bool = True
    log_level: str = "INFO"
    config_error: str | None = None


def resolve_settings(project_dir: Path) -> Settings:
    """Build :class:`Settings` for *project_dir*.

    Environment variables `KANBAN_STORAGE_FORMAT`, `KANBAN_SEED_DEMO` and
    `KANBAN_LOG_LEVEL` take precedence over the config file.
    """
    config, err = load_board_config(project_dir)
    storage = get_storage_config(config)
    presence = get_presence_config(config)
    server = get_server_config(config)
    logging_cfg = _section(config, "logging")

    fmt = str(os.getenv("KANBAN_STORAGE_FORMAT") or storage.get("format") or DEFAULT_STORAGE_FORMAT).lower()
    if fmt not in STORAGE_FORMATS:
        fmt = DEFAULT_STORAGE_FORMAT

    seed_demo = _as_bool(storage.get("seed_demo"), True)
    seed_demo = _as_bool(os.getenv("KANBAN_SEED_DEMO"), seed_demo)

    level = str(os.getenv("KANBAN_LOG_LEVEL") or logging_cfg.get("level") or "INFO").upper()
    if level not in VALID_LOG_LEVELS:
        level = "INFO"

    port = server.get("port")
    return Settings(
        state_dir=project_dir.resolve() / STATE_DIR_NAME,
        storage_format=fmt,
        seed_demo=seed_demo,
        online_window_seconds=_as_positive(presence.get("online_window_seconds"), DEFAULT_ONLINE_WINDOW_SECONDS),
        poll_interval_seconds=_as_positive(presence.get("poll_interval_seconds"), DEFAULT_POLL_INTERVAL_SECONDS),
        host=str(server.get("host") or DEFAULT_HOST),
        port=port if isinstance(port, int) and not isinstance(port, bool) and port > 0 else DEFAULT_PORT,
        cors=_as_bool(server.get("cors"), True),
        log_level=level,
        config_error=err,
    )
