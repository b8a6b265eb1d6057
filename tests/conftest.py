"""Shared board builders for the test suite."""

from __future__ import annotations

from typing import Optional

import pytest

from kanban_board.board_engine.model import Board, Column, Task

NOW = "2026-01-01T00:00:00+00:00"
LATER = "2026-01-02T00:00:00+00:00"


def make_board(layout: dict[str, list[str]], board_id: str = "board-test", title: Optional[str] = None) -> Board:
    """Build a consistent board from ``{column_id: [task_id, ...]}``."""
    columns: list[Column] = []
    tasks: list[Task] = []
    for column_id, task_ids in layout.items():
        columns.append(Column(id=column_id, title=column_id, task_ids=list(task_ids)))
        for index, task_id in enumerate(task_ids):
            tasks.append(Task(
                id=task_id,
                title=f"Task {task_id}",
                status=column_id,
                order=index,
                created_at=NOW,
                updated_at=NOW,
            ))
    return Board(id=board_id, title=title or "Test board", columns=columns, tasks=tasks, created_at=NOW)


def layout_of(board: Board) -> dict[str, list[str]]:
    return {c.id: list(c.task_ids) for c in board.columns}


@pytest.fixture
def board() -> Board:
    return make_board({"Backlog": ["t1", "t2"], "Done": []})


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
