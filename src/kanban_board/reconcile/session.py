"""Optimistic client session for one board.

A :class:`BoardSession` applies each user intent to its local copy of the
board immediately (the prediction) and forwards the same command through a
:class:`BoardTransport`.  The session keeps the last board the server
confirmed; what it presents is always that board with every still-pending
command replayed on top.  A confirmation replaces the confirmed board, a
failure simply drops its own command, and in both cases the pending tail is
replayed again.  A pending command that no longer applies is left out of the
view until its own response arrives.

Every mutation carries a sequence number in issue order.  A response whose
number is not newer than the last one applied is discarded, so a slow reply
to an old request can never overwrite the result of a newer one.

States::

    SYNCED -> PREDICTING -> CONFIRMED | ROLLED_BACK -> SYNCED

The session stays in PREDICTING while any newer mutation is still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from ..board_engine.errors import BoardError
from ..board_engine.model import Board
from ..board_engine.mutations import apply_command
from .transport import BoardTransport, TransportError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    SYNCED = "synced"
    PREDICTING = "predicting"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


class OutcomeStatus(str, Enum):
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"
    SUPERSEDED = "superseded"


@dataclass
class PendingMutation:
    seq: int
    command: Any
    snapshot: Board
    predicted: Board


@dataclass
class MutationOutcome:
    """Result of reconciling one response.

    ``board`` is what the session presents after handling it; ``error`` is
    the failure text (verbatim from the server when available).
    """

    seq: int
    status: OutcomeStatus
    board: Board
    error: Optional[str] = None


Listener = Callable[[Board, SessionState], None]


class BoardSession:
    """Session-scoped optimistic state for a single board.

    Parameters
    ----------
    board:
        Last board confirmed by the authoritative side.
    transport:
        Where commands are sent for confirmation.
    """

    def __init__(self, board: Board, transport: BoardTransport) -> None:
        self.board_id = board.id
        self._board = board
        self._confirmed = board
        self._transport = transport
        self._state = SessionState.SYNCED
        self._seq = 0
        self._last_applied = 0
        self._pending: dict[int, PendingMutation] = {}
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()
        self.last_error: Optional[str] = None

    @classmethod
    async def open(cls, board_id: str, transport: BoardTransport) -> "BoardSession":
        return cls(await transport.fetch(board_id), transport)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def board(self) -> Board:
        return self._board

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def last_applied_seq(self) -> int:
        return self._last_applied

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with every board the session presents."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _present(self, board: Board) -> None:
        self._board = board
        for listener in list(self._listeners):
            listener(board, self._state)

    def _settle(self) -> None:
        newer = any(seq > self._last_applied for seq in self._pending)
        self._state = SessionState.PREDICTING if newer else SessionState.SYNCED

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(self, command: Any) -> PendingMutation:
        """Apply *command* locally and publish the predicted board.

        Engine failures (unknown task, column, …) propagate to the caller;
        nothing is dispatched in that case.
        """
        snapshot = self._board
        predicted = apply_command(snapshot, command)
        self._seq += 1
        pending = PendingMutation(seq=self._seq, command=command, snapshot=snapshot, predicted=predicted)
        self._pending[pending.seq] = pending
        self._state = SessionState.PREDICTING
        self._present(predicted)
        return pending

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    async def confirm(self, pending: PendingMutation) -> MutationOutcome:
        """Send *pending* to the authoritative side and reconcile the reply."""
        try:
            board = await self._transport.send(self.board_id, pending.command)
        except TransportError as exc:
            return self._reconcile(pending, None, exc.message)
        except Exception as exc:
            self._reconcile(pending, None, str(exc))
            raise
        return self._reconcile(pending, board, None)

    async def submit(self, command: Any) -> MutationOutcome:
        return await self.confirm(self.predict(command))

    def submit_nowait(self, command: Any) -> asyncio.Task:
        """Predict now and confirm in the background.

        Must be called from a running event loop.
        """
        pending = self.predict(command)
        task = asyncio.get_running_loop().create_task(self.confirm(pending))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> list[MutationOutcome]:
        """Wait for every background confirmation started so far."""
        if not self._tasks:
            return []
        return list(await asyncio.gather(*list(self._tasks)))

    def _reconcile(
        self,
        pending: PendingMutation,
        board: Optional[Board],
        error: Optional[str],
    ) -> MutationOutcome:
        self._pending.pop(pending.seq, None)

        if pending.seq <= self._last_applied:
            logger.debug(
                "Discarding response for seq %d (last applied %d)",
                pending.seq, self._last_applied,
            )
            self._settle()
            return MutationOutcome(pending.seq, OutcomeStatus.SUPERSEDED, self._board, error)

        self._last_applied = pending.seq
        if board is not None:
            self._confirmed = board
            self._state = SessionState.CONFIRMED
            view = self._rebase()
            self._present(view)
            outcome = MutationOutcome(pending.seq, OutcomeStatus.CONFIRMED, view)
        else:
            logger.warning("Rolling back seq %d: %s", pending.seq, error)
            self.last_error = error
            self._state = SessionState.ROLLED_BACK
            view = self._rebase()
            self._present(view)
            outcome = MutationOutcome(pending.seq, OutcomeStatus.ROLLED_BACK, view, error)

        self._settle()
        return outcome

    def _rebase(self) -> Board:
        """Replay the still-pending commands on top of the confirmed board."""
        board = self._confirmed
        for seq in sorted(self._pending):
            if seq <= self._last_applied:
                continue
            pending = self._pending[seq]
            try:
                board = apply_command(board, pending.command)
            except BoardError as exc:
                logger.warning("Dropping seq %d from the view: %s", seq, exc.message)
                continue
            pending.predicted = board
        return board

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> Board:
        """Re-fetch the board; adopted only when nothing is in flight."""
        board = await self._transport.fetch(self.board_id)
        if self._pending:
            logger.debug("Skipping refresh of %s: %d mutation(s) in flight", self.board_id, len(self._pending))
            return self._board
        self._confirmed = board
        self._state = SessionState.SYNCED
        self._present(board)
        return board
