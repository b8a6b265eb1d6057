"""Demo board written into an empty store on first read."""

from __future__ import annotations

from typing import Optional

from ..utils import _now_iso
from .model import Board, Column, Label, Task, User

DEMO_USERS = [
    {"id": "user-1", "name": "Alex Johnson", "avatarUrl": "https://i.pravatar.cc/150?u=user-1"},
    {"id": "user-2", "name": "Maria Garcia", "avatarUrl": "https://i.pravatar.cc/150?u=user-2"},
    {"id": "user-3", "name": "James Smith", "avatarUrl": "https://i.pravatar.cc/150?u=user-3"},
]

DEMO_LABELS = [
    {"id": "label-1", "name": "Bug", "color": "#ef4444"},
    {"id": "label-2", "name": "Feature", "color": "#3b82f6"},
    {"id": "label-3", "name": "Docs", "color": "#16a34a"},
    {"id": "label-4", "name": "UI", "color": "#8b5cf6"},
]

# (id, title, column, assignee, labels, estimate, description)
_DEMO_TASKS = [
    ("task-1", "Setup CI/CD pipeline", "col-1", "user-1", ["label-2"], 8, None),
    ("task-2", "Design database schema", "col-1", "user-2", ["label-2"], 5, None),
    ("task-3", "Implement authentication service", "col-2", "user-1", ["label-2"], 13,
     "Use JWT-based authentication with passwordless login."),
    ("task-4", "Fix login button styling on mobile", "col-2", "user-3", ["label-1", "label-4"], 2, None),
    ("task-5", "Write API documentation for v1", "col-3", "user-2", ["label-3"], 8, None),
    ("task-6", "Deploy staging environment", "col-4", "user-1", [], 3, None),
]

_DEMO_COLUMNS = [
    ("col-1", "Backlog"),
    ("col-2", "In Progress"),
    ("col-3", "In Review"),
    ("col-4", "Done"),
]


def demo_board(now: Optional[str] = None) -> Board:
    now = now or _now_iso()
    columns = [Column(id=cid, title=title) for cid, title in _DEMO_COLUMNS]
    by_id = {c.id: c for c in columns}
    tasks: list[Task] = []
    for task_id, title, column_id, assignee, labels, estimate, description in _DEMO_TASKS:
        column = by_id[column_id]
        tasks.append(Task(
            id=task_id,
            title=title,
            description=description,
            status=column_id,
            assignee_id=assignee,
            label_ids=list(labels),
            estimate=estimate,
            order=len(column.task_ids),
            created_at=now,
            updated_at=now,
        ))
        column.task_ids.append(task_id)
    return Board(
        id="board-1",
        title="Demo Project",
        columns=columns,
        tasks=tasks,
        users=[User.from_dict(u) for u in DEMO_USERS],
        labels=[Label.from_dict(lb) for lb in DEMO_LABELS],
        created_at=now,
    )


def demo_boards() -> list[Board]:
    return [demo_board()]
