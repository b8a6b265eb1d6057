"""Board service: authoritative execution of validated commands.

This is the server-side entry point for all board manipulation.  It wraps a
:class:`BoardRepository` with the read-modify-write cycle: load the whole
collection, run the pure mutation, replace the collection.  The new document
is computed in full before the single ``put``, so a failing command never
leaves a partial write behind.

There is no compare-and-swap on the store: two requests racing on the same
board both read the same collection and the later ``put`` wins.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from ..constants import DEFAULT_STORAGE_FORMAT
from .commands import CreateBoard
from .errors import NotFoundError
from .model import Board, User
from .mutations import apply_command, create_board
from .seed import demo_boards
from .store import BoardRepository, DocumentStore, FileDocumentStore

logger = logging.getLogger(__name__)


class BoardService:
    """Run commands against the boards held in a :class:`DocumentStore`.

    Parameters
    ----------
    store:
        Backing key-value document store.
    seed_demo:
        Write the demo board the first time the collection is read while
        the store is empty.
    """

    def __init__(self, store: DocumentStore, seed_demo: bool = False) -> None:
        self.store = store
        self.repo = BoardRepository(store, seed=demo_boards if seed_demo else None)

    @classmethod
    def from_state_dir(
        cls,
        state_dir: Path,
        fmt: str = DEFAULT_STORAGE_FORMAT,
        seed_demo: bool = False,
    ) -> "BoardService":
        return cls(FileDocumentStore(state_dir, fmt), seed_demo=seed_demo)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_summaries(self) -> list[dict[str, Any]]:
        return [b.summary() for b in self.repo.load_all()]

    def get_board(self, board_id: str) -> Board:
        board = self.repo.get(board_id)
        if board is None:
            raise NotFoundError("board", board_id)
        return board

    def board_users(self, board_id: str) -> list[User]:
        return list(self.get_board(board_id).users)

    def task_history(self, board_id: str, task_id: str) -> list[dict[str, Any]]:
        """History is not recorded; only checks that the task exists."""
        board = self.get_board(board_id)
        if board.get_task(task_id) is None:
            raise NotFoundError("task", task_id)
        return []

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_board(self, command: CreateBoard) -> Board:
        boards = self.repo.load_all()
        board = create_board(command.title)
        boards.append(board)
        self.repo.save_all(boards)
        logger.info("Created board %s: %s", board.id, board.title)
        return board

    def execute(self, board_id: str, command: Any, *, now: Optional[str] = None) -> Board:
        """Apply *command* to *board_id* and persist the resulting board."""
        boards = self.repo.load_all()
        for index, board in enumerate(boards):
            if board.id == board_id:
                break
        else:
            raise NotFoundError("board", board_id)

        updated = apply_command(board, command, now=now)
        boards[index] = updated
        self.repo.save_all(boards)
        logger.info("Applied %s to board %s", command.kind.value, board_id)
        return updated
