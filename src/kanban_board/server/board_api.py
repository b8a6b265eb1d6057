"""Board API endpoints.

Every mutation endpoint reads the raw JSON body, validates it through
:func:`~kanban_board.board_engine.commands.parse_command` and hands the
resulting command to the :class:`BoardService`.  Failures surface as
:class:`BoardError` subclasses and are turned into envelopes by the handlers
registered in :func:`kanban_board.server.api.create_app`.
"""

from __future__ import annotations

import json
from typing import Any, Callable

from fastapi import APIRouter, Header, Request
from loguru import logger

from ..board_engine.commands import CommandKind, parse_command
from ..board_engine.engine import BoardService
from ..board_engine.errors import ValidationError
from ..constants import ANONYMOUS_USER_ID, USER_ID_HEADER
from ..logging_utils import summarize_command
from .models import ok
from .presence import PresenceTracker


async def _read_json(request: Request) -> Any:
    """Decode the request body; an empty body is ``None``."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationError("Request body is not valid JSON") from exc


def _acting_user(value: str | None) -> str:
    value = (value or "").strip()
    return value or ANONYMOUS_USER_ID


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------

def create_board_router(
    get_service: Callable[[], BoardService],
    presence: PresenceTracker,
) -> APIRouter:
    """Create the board API router.

    Parameters
    ----------
    get_service:
        Zero-argument callable returning the :class:`BoardService` that
        backs this app.
    presence:
        Tracker fed by presence heartbeats.
    """
    router = APIRouter(prefix="/api", tags=["boards"])

    def _execute(board_id: str, command: Any) -> dict[str, Any]:
        logger.debug("Board {} <- {}", board_id, summarize_command(command))
        board = get_service().execute(board_id, command)
        return ok(board.to_dict())

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    @router.get("/boards")
    async def list_boards() -> dict[str, Any]:
        return ok(get_service().list_summaries())

    @router.post("/board")
    async def create_board(request: Request) -> dict[str, Any]:
        command = parse_command(CommandKind.CREATE_BOARD, await _read_json(request))
        board = get_service().create_board(command)
        logger.info("Board created: {} ({})", board.id, board.title)
        return ok(board.to_dict())

    @router.get("/board/{board_id}")
    async def get_board(board_id: str) -> dict[str, Any]:
        return ok(get_service().get_board(board_id).to_dict())

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    @router.post("/board/{board_id}/task")
    async def add_task(board_id: str, request: Request) -> dict[str, Any]:
        command = parse_command(CommandKind.ADD_TASK, await _read_json(request))
        return _execute(board_id, command)

    @router.post("/board/{board_id}/task/move")
    async def move_task(board_id: str, request: Request) -> dict[str, Any]:
        command = parse_command(CommandKind.MOVE_TASK, await _read_json(request))
        return _execute(board_id, command)

    @router.put("/board/{board_id}/task/{task_id}")
    async def update_task(board_id: str, task_id: str, request: Request) -> dict[str, Any]:
        command = parse_command(CommandKind.UPDATE_TASK, await _read_json(request), task_id=task_id)
        return _execute(board_id, command)

    @router.delete("/board/{board_id}/task/{task_id}")
    async def delete_task(board_id: str, task_id: str, request: Request) -> dict[str, Any]:
        command = parse_command(CommandKind.DELETE_TASK, await _read_json(request), task_id=task_id)
        return _execute(board_id, command)

    @router.post("/board/{board_id}/task/{task_id}/comment")
    async def add_comment(
        board_id: str,
        task_id: str,
        request: Request,
        x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
    ) -> dict[str, Any]:
        command = parse_command(
            CommandKind.ADD_COMMENT,
            await _read_json(request),
            task_id=task_id,
            author_id=_acting_user(x_user_id),
        )
        return _execute(board_id, command)

    @router.get("/board/{board_id}/task/{task_id}/history")
    async def task_history(board_id: str, task_id: str) -> dict[str, Any]:
        return ok(get_service().task_history(board_id, task_id))

    # ------------------------------------------------------------------
    # Board configuration
    # ------------------------------------------------------------------

    @router.put("/board/{board_id}/columns")
    async def replace_columns(board_id: str, request: Request) -> dict[str, Any]:
        command = parse_command(CommandKind.REPLACE_COLUMNS, await _read_json(request))
        return _execute(board_id, command)

    @router.put("/board/{board_id}/labels")
    async def replace_labels(board_id: str, request: Request) -> dict[str, Any]:
        command = parse_command(CommandKind.REPLACE_LABELS, await _read_json(request))
        return _execute(board_id, command)

    # ------------------------------------------------------------------
    # Presence
    # ------------------------------------------------------------------

    def _presence(board_id: str) -> list[dict[str, Any]]:
        members = [u.id for u in get_service().board_users(board_id)]
        return presence.snapshot(board_id, members)

    @router.get("/board/{board_id}/presence")
    async def get_presence(board_id: str) -> dict[str, Any]:
        return ok(_presence(board_id))

    @router.post("/board/{board_id}/presence")
    async def heartbeat(
        board_id: str,
        x_user_id: str | None = Header(None, alias=USER_ID_HEADER),
    ) -> dict[str, Any]:
        get_service().get_board(board_id)
        presence.heartbeat(board_id, _acting_user(x_user_id))
        return ok(_presence(board_id))

    return router
