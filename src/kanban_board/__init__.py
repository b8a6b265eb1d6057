"""Provide the public `kanban_board` package exports."""

from __future__ import annotations

from .board_engine.engine import BoardService
from .board_engine.errors import BoardError, NotFoundError, StorageError, ValidationError
from .board_engine.model import Board, Column, Comment, Label, Task, User
from .reconcile.session import BoardSession, SessionState

__all__ = [
    "Board",
    "BoardError",
    "BoardService",
    "BoardSession",
    "Column",
    "Comment",
    "Label",
    "NotFoundError",
    "SessionState",
    "StorageError",
    "Task",
    "User",
    "ValidationError",
]

__version__ = "1.0.0"
