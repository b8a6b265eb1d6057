"""Board document model: boards, columns, tasks, comments, labels and users.

Every type is a plain dataclass that serializes to the camelCase document
layout shared by the storage layer and the JSON API.  Python attributes stay
snake_case; ``to_dict()`` / ``from_dict()`` translate at the boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..utils import _generate_id, _now_iso, _parse_iso


# ---------------------------------------------------------------------------
# Leaf records
# ---------------------------------------------------------------------------

@dataclass
class User:
    """A board member that tasks can be assigned to."""

    id: str
    name: str = ""
    avatar_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.avatar_url is not None:
            data["avatarUrl"] = self.avatar_url
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "") or ""),
            avatar_url=data.get("avatarUrl"),
        )


@dataclass
class Label:
    id: str
    name: str = ""
    color: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Label":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "") or ""),
            color=str(data.get("color", "") or ""),
        )


@dataclass
class Comment:
    """An append-only remark on a task."""

    id: str = field(default_factory=lambda: _generate_id("comment"))
    author_id: str = ""
    content: str = ""
    created_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "authorId": self.author_id,
            "content": self.content,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Comment":
        return cls(
            id=str(data.get("id") or _generate_id("comment")),
            author_id=str(data.get("authorId", "") or ""),
            content=str(data.get("content", "") or ""),
            created_at=str(data.get("createdAt") or _now_iso()),
        )


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """A unit of work living in exactly one column.

    ``status`` holds the id of the owning column and ``order`` caches the
    task's index in that column's ``task_ids``.  Both are maintained by the
    mutation engine only.
    """

    id: str = field(default_factory=lambda: _generate_id("task"))
    title: str = ""
    description: Optional[str] = None
    status: str = ""
    assignee_id: Optional[str] = None
    label_ids: list[str] = field(default_factory=list)
    estimate: Optional[float] = None
    order: int = 0
    comments: list[Comment] = field(default_factory=list)
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "labelIds": list(self.label_ids),
            "order": self.order,
            "comments": [c.to_dict() for c in self.comments],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.description is not None:
            data["description"] = self.description
        if self.assignee_id is not None:
            data["assigneeId"] = self.assignee_id
        if self.estimate is not None:
            data["estimate"] = self.estimate
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        now = _now_iso()
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "") or ""),
            description=data.get("description"),
            status=str(data.get("status", "") or ""),
            assignee_id=data.get("assigneeId"),
            label_ids=list(data.get("labelIds", []) or []),
            estimate=data.get("estimate"),
            order=int(data.get("order", 0) or 0),
            comments=[Comment.from_dict(c) for c in data.get("comments", []) or []],
            created_at=str(data.get("createdAt") or now),
            updated_at=str(data.get("updatedAt") or now),
        )

    def touch(self, now: Optional[str] = None) -> None:
        """Bump ``updated_at`` to *now* (wall-clock time by default)."""
        self.updated_at = now or _now_iso()


# ---------------------------------------------------------------------------
# Column
# ---------------------------------------------------------------------------

@dataclass
class Column:
    id: str
    title: str = ""
    task_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "taskIds": list(self.task_ids)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Column":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "") or ""),
            task_ids=[str(t) for t in data.get("taskIds", []) or []],
        )


# ---------------------------------------------------------------------------
# Board
# ---------------------------------------------------------------------------

@dataclass
class Board:
    """Top-level document: ordered columns plus the tasks they reference."""

    id: str = field(default_factory=lambda: _generate_id("board"))
    title: str = ""
    columns: list[Column] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    users: list[User] = field(default_factory=list)
    labels: list[Label] = field(default_factory=list)
    created_at: str = field(default_factory=_now_iso)

    # -- lookups ------------------------------------------------------------

    def get_task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def column_of(self, task_id: str) -> Optional[Column]:
        """Return the column whose sequence currently contains *task_id*."""
        for column in self.columns:
            if task_id in column.task_ids:
                return column
        return None

    def ordered_tasks(self, column_id: str) -> list[Task]:
        """Tasks of *column_id* in display order, skipping dangling ids."""
        column = self.get_column(column_id)
        if column is None:
            return []
        by_id = {t.id: t for t in self.tasks}
        return [by_id[tid] for tid in column.task_ids if tid in by_id]

    # -- summaries ----------------------------------------------------------

    def last_activity(self) -> str:
        """Most recent task ``updatedAt``, or the board creation time."""
        latest = None
        latest_raw = None
        for task in self.tasks:
            parsed = _parse_iso(task.updated_at)
            if parsed is not None and (latest is None or parsed > latest):
                latest = parsed
                latest_raw = task.updated_at
        return latest_raw or self.created_at

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "taskCount": len(self.tasks),
            "lastActivity": self.last_activity(),
        }

    # -- serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "columns": [c.to_dict() for c in self.columns],
            "tasks": [t.to_dict() for t in self.tasks],
            "users": [u.to_dict() for u in self.users],
            "labels": [lb.to_dict() for lb in self.labels],
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Board":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "") or ""),
            columns=[Column.from_dict(c) for c in data.get("columns", []) or []],
            tasks=[Task.from_dict(t) for t in data.get("tasks", []) or []],
            users=[User.from_dict(u) for u in data.get("users", []) or []],
            labels=[Label.from_dict(lb) for lb in data.get("labels", []) or []],
            created_at=str(data.get("createdAt") or _now_iso()),
        )
