"""Configure logging and format board commands for log lines."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Install a single stderr sink at *level*.

    Server and CLI code log through loguru; engine modules use the stdlib
    `logging` module, whose root level is aligned here.

    Args:
        level: Level name understood by loguru (e.g. `DEBUG`, `INFO`).
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {name} - {message}",
    )
    std_level = getattr(logging, level, None)
    if not isinstance(std_level, int):
        std_level = logging.INFO
    logging.basicConfig(
        level=std_level,
        format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
    )
    logging.getLogger().setLevel(std_level)


def summarize_command(command: Any) -> dict[str, Any]:
    """Render a compact, JSON-friendly summary of a command object.

    Args:
        command: Validated command model (or None).

    Returns:
        A dictionary suitable for logging. Long text fields are truncated.
    """
    if command is None:
        return {"command": None}

    kind = getattr(command, "kind", None)
    d: dict[str, Any] = {"command": getattr(kind, "value", type(command).__name__)}

    for attr in ("task_id", "column_id", "from_column_id", "to_column_id", "new_index", "author_id"):
        value = getattr(command, attr, None)
        if value is not None:
            d[attr] = value

    title = getattr(command, "title", None)
    if title:
        d["title"] = (title[:80] + "…") if len(title) > 80 else title

    content = getattr(command, "content", None)
    if content:
        d["content_len"] = len(content)

    patch = getattr(command, "patch", None)
    if patch is not None:
        d["fields"] = sorted(patch.changes())

    columns = getattr(command, "columns", None)
    if columns is not None:
        d["columns"] = [c.id for c in columns]

    labels = getattr(command, "labels", None)
    if labels is not None:
        d["labels_n"] = len(labels)

    return d


def pretty(obj: Any, *, indent: int = 2) -> str:
    """Serialize an object as JSON for readable logs.

    Args:
        obj: Object to serialize.
        indent: Indentation level for JSON output.

    Returns:
        A JSON string when possible; otherwise `str(obj)`.
    """
    try:
        return json.dumps(obj, indent=indent, default=str)
    except (TypeError, ValueError):
        return str(obj)
