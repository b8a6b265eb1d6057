"""Check that the distribution metadata matches what the package imports."""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Any

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _load_pyproject() -> dict[str, Any]:
    raw = (PROJECT_ROOT / "pyproject.toml").read_text(encoding="utf-8")
    if sys.version_info >= (3, 11):
        import tomllib

        return tomllib.loads(raw)

    import tomli

    return tomli.loads(raw)


def _names(requirements: list[str]) -> set[str]:
    return {re.split(r"[<>=!~;\[ ]", req, maxsplit=1)[0].strip().lower() for req in requirements}


def test_runtime_dependencies_cover_server_and_client_stack() -> None:
    project = _load_pyproject()["project"]
    assert project["name"] == "kanban-board-engine"
    assert {"fastapi", "uvicorn", "pydantic", "loguru", "pyyaml", "httpx"} <= _names(project["dependencies"])


def test_test_extra_carries_pytest_and_anyio() -> None:
    extras = _load_pyproject()["project"]["optional-dependencies"]
    assert {"pytest", "anyio"} <= _names(extras["test"])


def test_console_script_and_src_layout() -> None:
    data = _load_pyproject()
    assert data["project"]["scripts"] == {"kanban-board": "kanban_board.cli:main"}
    find = data["tool"]["setuptools"]["packages"]["find"]
    assert find["where"] == ["src"]
    assert (PROJECT_ROOT / "src" / "kanban_board" / "cli.py").is_file()
