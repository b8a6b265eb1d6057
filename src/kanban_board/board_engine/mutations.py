"""Board mutation engine: pure functions over a :class:`Board` document.

Every operation deep-copies its input, applies the change to the copy and
returns it; the argument is never modified, so callers can keep the original
as a rollback snapshot.  Operations raise :class:`NotFoundError` (or
:class:`ValidationError` for structurally impossible requests) instead of
returning partial results.

Column sequences are the source of truth for ordering.  Whenever a mutation
changes a column's ``task_ids`` it renumbers that column so that
``task.order`` always equals the task's index.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Iterable, Optional

from ..constants import DEFAULT_COLUMN_TITLES
from ..utils import _now_iso
from .commands import (
    AddComment,
    AddTask,
    ColumnSpec,
    DeleteTask,
    LabelSpec,
    MoveTask,
    ReplaceColumns,
    ReplaceLabels,
    TaskPatch,
    UpdateTask,
    validate_contract,
)
from .errors import NotFoundError, ValidationError
from .model import Board, Column, Comment, Label, Task

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _copy(board: Board) -> Board:
    return copy.deepcopy(board)


def _require_task(board: Board, task_id: str) -> Task:
    task = board.get_task(task_id)
    if task is None:
        raise NotFoundError("task", task_id)
    return task


def _require_column(board: Board, column_id: str) -> Column:
    column = board.get_column(column_id)
    if column is None:
        raise NotFoundError("column", column_id)
    return column


def renumber(board: Board, column_ids: Optional[Iterable[str]] = None) -> None:
    """Rewrite ``order`` of every task in *column_ids* (all columns if None).

    Mutates *board* in place; only called on copies inside this module.
    """
    wanted = None if column_ids is None else set(column_ids)
    by_id = {t.id: t for t in board.tasks}
    for column in board.columns:
        if wanted is not None and column.id not in wanted:
            continue
        for index, task_id in enumerate(column.task_ids):
            task = by_id.get(task_id)
            if task is not None:
                task.order = index


def check_invariants(board: Board) -> list[str]:
    """Return human-readable invariant violations (empty = consistent)."""
    problems: list[str] = []
    task_ids = [t.id for t in board.tasks]
    if len(task_ids) != len(set(task_ids)):
        problems.append("duplicate task ids in tasks")
    by_id = {t.id: t for t in board.tasks}

    seen: dict[str, str] = {}
    for column in board.columns:
        for index, task_id in enumerate(column.task_ids):
            if task_id in seen:
                problems.append(f"task {task_id} appears in {seen[task_id]} and {column.id}")
                continue
            seen[task_id] = column.id
            task = by_id.get(task_id)
            if task is None:
                problems.append(f"column {column.id} references missing task {task_id}")
                continue
            if task.status != column.id:
                problems.append(f"task {task_id} has status {task.status} but lives in {column.id}")
            if task.order != index:
                problems.append(f"task {task_id} has order {task.order} but sits at index {index}")

    for task in board.tasks:
        if task.id not in seen:
            problems.append(f"task {task.id} is not in any column")
    return problems


def _clamp(index: int, upper: int) -> int:
    return max(0, min(index, upper))


def _dedupe(values: Iterable[str]) -> list[str]:
    out: list[str] = []
    for value in values:
        if value not in out:
            out.append(value)
    return out


# ---------------------------------------------------------------------------
# Board creation
# ---------------------------------------------------------------------------

def create_board(title: str, *, now: Optional[str] = None) -> Board:
    """Build a new board with the four seeded columns and no tasks."""
    now = now or _now_iso()
    columns = [
        Column(id=f"col-{i}", title=col_title)
        for i, col_title in enumerate(DEFAULT_COLUMN_TITLES, start=1)
    ]
    return Board(title=title, columns=columns, created_at=now)


# ---------------------------------------------------------------------------
# Task operations
# ---------------------------------------------------------------------------

def add_task(board: Board, column_id: str, title: str, *, now: Optional[str] = None) -> Board:
    """Create a task at the tail of *column_id*."""
    now = now or _now_iso()
    new_board = _copy(board)
    column = _require_column(new_board, column_id)
    task = Task(
        title=title,
        status=column_id,
        order=len(column.task_ids),
        created_at=now,
        updated_at=now,
    )
    new_board.tasks.append(task)
    column.task_ids.append(task.id)
    logger.debug("Added task %s to column %s", task.id, column_id)
    return new_board


_PATCHABLE = {"title", "description", "assignee_id", "label_ids", "estimate"}


def update_task(
    board: Board,
    task_id: str,
    patch: TaskPatch | dict[str, Any],
    *,
    now: Optional[str] = None,
) -> Board:
    """Overlay *patch* onto a task.  Column membership is never touched."""
    changes = patch.changes() if isinstance(patch, TaskPatch) else dict(patch)
    unknown = set(changes) - _PATCHABLE
    if unknown:
        name = sorted(unknown)[0]
        raise ValidationError(f"Unrecognized field '{name}'", code="InvalidField", field=name)

    new_board = _copy(board)
    task = _require_task(new_board, task_id)
    for key, value in changes.items():
        if key == "label_ids":
            value = _dedupe(value)
        setattr(task, key, value)
    task.touch(now)
    return new_board


def move_task(
    board: Board,
    task_id: str,
    from_column_id: str,
    to_column_id: str,
    new_index: int,
    *,
    now: Optional[str] = None,
) -> Board:
    """Move a task between (or within) columns.

    The task is removed from the source sequence first; *new_index* is then
    clamped to ``[0, len(destination)]`` measured after that removal.
    """
    new_board = _copy(board)
    task = _require_task(new_board, task_id)
    source = _require_column(new_board, from_column_id)
    target = _require_column(new_board, to_column_id)
    if task_id not in source.task_ids:
        raise NotFoundError(
            "task",
            task_id,
            f"Task {task_id} not found in column {from_column_id}",
        )

    source.task_ids.remove(task_id)
    index = _clamp(new_index, len(target.task_ids))
    target.task_ids.insert(index, task_id)

    task.status = to_column_id
    task.touch(now)
    renumber(new_board, {from_column_id, to_column_id})
    logger.debug("Moved task %s %s -> %s[%d]", task_id, from_column_id, to_column_id, index)
    return new_board


def delete_task(board: Board, task_id: str) -> Board:
    """Remove a task from ``tasks`` and from its owning column."""
    new_board = _copy(board)
    task = _require_task(new_board, task_id)
    new_board.tasks = [t for t in new_board.tasks if t.id != task_id]
    touched = []
    for column in new_board.columns:
        if task_id in column.task_ids:
            column.task_ids = [tid for tid in column.task_ids if tid != task_id]
            touched.append(column.id)
    if task.status not in touched:
        touched.append(task.status)
    renumber(new_board, touched)
    return new_board


def add_comment(
    board: Board,
    task_id: str,
    content: str,
    author_id: str,
    *,
    now: Optional[str] = None,
) -> Board:
    """Append a comment at the tail of the task's comment list."""
    now = now or _now_iso()
    new_board = _copy(board)
    task = _require_task(new_board, task_id)
    task.comments.append(Comment(author_id=author_id, content=content, created_at=now))
    task.touch(now)
    return new_board


# ---------------------------------------------------------------------------
# Board configuration
# ---------------------------------------------------------------------------

def fallback_column_id(old_ids: list[str], new_ids: list[str]) -> str:
    """Column receiving the tasks of removed columns.

    The first column of the old ordering that survives into the new list;
    when nothing survives, the first column of the new list.
    """
    surviving = set(new_ids)
    for column_id in old_ids:
        if column_id in surviving:
            return column_id
    return new_ids[0]


def replace_columns(
    board: Board,
    columns: list[ColumnSpec] | list[dict[str, Any]],
    *,
    now: Optional[str] = None,
) -> Board:
    """Replace the column set, reassigning tasks of removed columns."""
    specs = [c if isinstance(c, ColumnSpec) else validate_contract(ColumnSpec, c) for c in columns]
    if not specs:
        raise ValidationError("A board needs at least one column", field="columns")
    new_ids = [spec.id for spec in specs]
    if len(new_ids) != len(set(new_ids)):
        raise ValidationError("Column ids must be unique", field="columns")

    now = now or _now_iso()
    new_board = _copy(board)
    old_columns = {c.id: c for c in new_board.columns}
    old_ids = [c.id for c in new_board.columns]

    replacement: list[Column] = []
    for spec in specs:
        existing = old_columns.get(spec.id)
        if existing is not None:
            replacement.append(Column(
                id=spec.id,
                title=spec.title or existing.title,
                task_ids=list(existing.task_ids),
            ))
        else:
            replacement.append(Column(id=spec.id, title=spec.title or spec.id))

    removed = [cid for cid in old_ids if cid not in set(new_ids)]
    if removed:
        fallback_id = fallback_column_id(old_ids, new_ids)
        fallback = next(c for c in replacement if c.id == fallback_id)
        by_id = {t.id: t for t in new_board.tasks}
        moved = 0
        for column_id in removed:
            for task_id in old_columns[column_id].task_ids:
                task = by_id.get(task_id)
                if task is None or task_id in fallback.task_ids:
                    continue
                fallback.task_ids.append(task_id)
                task.status = fallback_id
                task.touch(now)
                moved += 1
        logger.info(
            "Removed columns %s; reassigned %d task(s) to %s",
            ", ".join(removed), moved, fallback_id,
        )

    new_board.columns = replacement
    renumber(new_board)
    return new_board


def replace_labels(board: Board, labels: list[LabelSpec] | list[dict[str, Any]]) -> Board:
    """Replace the label set.  Task ``label_ids`` may dangle afterwards."""
    new_board = _copy(board)
    new_board.labels = [
        Label(id=lb.id, name=lb.name, color=lb.color) if isinstance(lb, LabelSpec) else Label.from_dict(lb)
        for lb in labels
    ]
    return new_board


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def apply_command(board: Board, command: Any, *, now: Optional[str] = None) -> Board:
    """Apply a validated command object and return the new board."""
    if isinstance(command, AddTask):
        return add_task(board, command.column_id, command.title, now=now)
    if isinstance(command, UpdateTask):
        return update_task(board, command.task_id, command.patch, now=now)
    if isinstance(command, MoveTask):
        return move_task(
            board,
            command.task_id,
            command.from_column_id,
            command.to_column_id,
            command.new_index,
            now=now,
        )
    if isinstance(command, DeleteTask):
        return delete_task(board, command.task_id)
    if isinstance(command, AddComment):
        return add_comment(board, command.task_id, command.content, command.author_id, now=now)
    if isinstance(command, ReplaceColumns):
        return replace_columns(board, command.columns, now=now)
    if isinstance(command, ReplaceLabels):
        return replace_labels(board, command.labels)
    raise ValidationError(f"Unsupported command: {type(command).__name__}")
