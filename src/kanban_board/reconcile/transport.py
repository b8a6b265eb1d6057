"""Client transports carrying board commands to the authoritative side."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from ..board_engine.commands import (
    AddComment,
    AddTask,
    DeleteTask,
    MoveTask,
    ReplaceColumns,
    ReplaceLabels,
    UpdateTask,
)
from ..board_engine.engine import BoardService
from ..board_engine.errors import BoardError
from ..board_engine.model import Board
from ..constants import USER_ID_HEADER


class TransportError(Exception):
    """The authoritative side rejected a request or could not be reached.

    ``message`` is the server's error text verbatim when one was returned.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class BoardTransport(ABC):
    @abstractmethod
    async def send(self, board_id: str, command: Any) -> Board:
        """Execute *command* remotely and return the authoritative board."""
        raise NotImplementedError

    @abstractmethod
    async def fetch(self, board_id: str) -> Board:
        raise NotImplementedError

    @abstractmethod
    async def presence(self, board_id: str) -> list[dict[str, Any]]:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def route_command(board_id: str, command: Any) -> tuple[str, str, Optional[dict[str, Any]], dict[str, str]]:
    """Map a command to ``(method, path, json_body, extra_headers)``."""
    base = f"/api/board/{board_id}"
    if isinstance(command, AddTask):
        return "POST", f"{base}/task", command.model_dump(by_alias=True), {}
    if isinstance(command, UpdateTask):
        body = command.patch.model_dump(by_alias=True, exclude_unset=True)
        return "PUT", f"{base}/task/{command.task_id}", body, {}
    if isinstance(command, MoveTask):
        return "POST", f"{base}/task/move", command.model_dump(by_alias=True), {}
    if isinstance(command, DeleteTask):
        return "DELETE", f"{base}/task/{command.task_id}", None, {}
    if isinstance(command, AddComment):
        return (
            "POST",
            f"{base}/task/{command.task_id}/comment",
            {"content": command.content},
            {USER_ID_HEADER: command.author_id},
        )
    if isinstance(command, ReplaceColumns):
        return "PUT", f"{base}/columns", command.model_dump(by_alias=True, exclude_none=True), {}
    if isinstance(command, ReplaceLabels):
        return "PUT", f"{base}/labels", command.model_dump(by_alias=True), {}
    raise TypeError(f"Cannot route command {type(command).__name__}")


class HttpBoardTransport(BoardTransport):
    """Talk to the JSON API over HTTP with :mod:`httpx`.

    Parameters
    ----------
    base_url:
        Server root, e.g. ``http://127.0.0.1:8000``.  Ignored when *client*
        is given.
    client:
        Pre-built :class:`httpx.AsyncClient` (tests pass one bound to an
        ASGI app).
    user_id:
        Sent as ``X-User-Id`` on every request.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        *,
        client: Optional[httpx.AsyncClient] = None,
        user_id: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._user_id = user_id

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        merged: dict[str, str] = {}
        if self._user_id:
            merged[USER_ID_HEADER] = self._user_id
        merged.update(headers or {})
        try:
            resp = await self._client.request(method, path, json=body, headers=merged)
        except httpx.HTTPError as exc:
            raise TransportError(f"{exc.__class__.__name__}: {exc}") from exc

        try:
            envelope = resp.json()
        except ValueError as exc:
            raise TransportError(f"Invalid response from server ({resp.status_code})", resp.status_code) from exc

        if not isinstance(envelope, dict) or not envelope.get("success"):
            error = envelope.get("error") if isinstance(envelope, dict) else None
            raise TransportError(error or f"Request failed with status {resp.status_code}", resp.status_code)
        return envelope.get("data")

    async def send(self, board_id: str, command: Any) -> Board:
        method, path, body, headers = route_command(board_id, command)
        data = await self._request(method, path, body, headers)
        return Board.from_dict(data)

    async def fetch(self, board_id: str) -> Board:
        return Board.from_dict(await self._request("GET", f"/api/board/{board_id}"))

    async def presence(self, board_id: str) -> list[dict[str, Any]]:
        data = await self._request("GET", f"/api/board/{board_id}/presence")
        return list(data or [])


# ---------------------------------------------------------------------------
# In-process
# ---------------------------------------------------------------------------

class LocalBoardTransport(BoardTransport):
    """Call a :class:`BoardService` directly (single-process setups, tests)."""

    def __init__(self, service: BoardService) -> None:
        self._service = service

    async def send(self, board_id: str, command: Any) -> Board:
        try:
            return self._service.execute(board_id, command)
        except BoardError as exc:
            raise TransportError(exc.message, exc.status_code) from exc

    async def fetch(self, board_id: str) -> Board:
        try:
            return self._service.get_board(board_id)
        except BoardError as exc:
            raise TransportError(exc.message, exc.status_code) from exc

    async def presence(self, board_id: str) -> list[dict[str, Any]]:
        try:
            users = self._service.board_users(board_id)
        except BoardError as exc:
            raise TransportError(exc.message, exc.status_code) from exc
        return [{"userId": u.id, "isOnline": False, "lastSeen": None} for u in users]
