"""Tests for the HTTP and in-process board transports."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from kanban_board.board_engine.commands import (
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
)
from kanban_board.board_engine.engine import BoardService
from kanban_board.board_engine.store import MemoryDocumentStore
from kanban_board.reconcile.session import BoardSession, OutcomeStatus
from kanban_board.reconcile.transport import (
    HttpBoardTransport,
    LocalBoardTransport,
    TransportError,
    route_command,
)
from kanban_board.server.api import create_app


@pytest.fixture
def service() -> BoardService:
    return BoardService(MemoryDocumentStore(), seed_demo=True)


@pytest.fixture
def app(tmp_path: Path, service: BoardService):
    return create_app(project_dir=tmp_path, enable_cors=False, service=service)


@pytest.fixture
async def transport(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield HttpBoardTransport(client=client, user_id="user-1")


def test_route_command_paths_and_bodies() -> None:
    assert route_command("b", AddTask(title="x", column_id="c")) == (
        "POST", "/api/board/b/task", {"title": "x", "columnId": "c"}, {},
    )
    assert route_command("b", UpdateTask(task_id="t", patch=TaskPatch(estimate=None))) == (
        "PUT", "/api/board/b/task/t", {"estimate": None}, {},
    )
    assert route_command("b", MoveTask(task_id="t", from_column_id="c1", to_column_id="c2", new_index=3)) == (
        "POST", "/api/board/b/task/move",
        {"taskId": "t", "fromColumnId": "c1", "toColumnId": "c2", "newIndex": 3}, {},
    )
    assert route_command("b", DeleteTask(task_id="t")) == ("DELETE", "/api/board/b/task/t", None, {})
    assert route_command("b", AddComment(task_id="t", content="hi", author_id="u")) == (
        "POST", "/api/board/b/task/t/comment", {"content": "hi"}, {"X-User-Id": "u"},
    )
    assert route_command("b", ReplaceColumns(columns=[ColumnSpec(id="c1"), ColumnSpec(id="c2", title="T")])) == (
        "PUT", "/api/board/b/columns", {"columns": [{"id": "c1"}, {"id": "c2", "title": "T"}]}, {},
    )
    assert route_command("b", ReplaceLabels(labels=[LabelSpec(id="l", name="n", color="c")])) == (
        "PUT", "/api/board/b/labels", {"labels": [{"id": "l", "name": "n", "color": "c"}]}, {},
    )
    with pytest.raises(TypeError):
        route_command("b", object())


@pytest.mark.anyio
class TestHttpBoardTransport:
    async def test_fetch(self, transport: HttpBoardTransport) -> None:
        board = await transport.fetch("board-1")
        assert board.title == "Demo Project"
        assert len(board.tasks) == 6

    async def test_send_every_command(self, transport: HttpBoardTransport, service: BoardService) -> None:
        board = await transport.send("board-1", AddTask(title="Over the wire", column_id="col-1"))
        new_id = board.columns[0].task_ids[-1]
        board = await transport.send("board-1", UpdateTask(task_id=new_id, patch=TaskPatch(estimate=2)))
        assert board.get_task(new_id).estimate == 2
        board = await transport.send(
            "board-1",
            MoveTask(task_id=new_id, from_column_id="col-1", to_column_id="col-3", new_index=0),
        )
        assert board.columns[2].task_ids[0] == new_id
        board = await transport.send("board-1", AddComment(task_id=new_id, content="hi", author_id="user-3"))
        assert board.get_task(new_id).comments[-1].author_id == "user-3"
        board = await transport.send("board-1", ReplaceLabels(labels=[LabelSpec(id="l", name="n", color="c")]))
        assert [lb.id for lb in board.labels] == ["l"]
        board = await transport.send("board-1", ReplaceColumns(columns=[ColumnSpec(id="col-3")]))
        assert [c.id for c in board.columns] == ["col-3"]
        board = await transport.send("board-1", DeleteTask(task_id=new_id))
        assert board.get_task(new_id) is None

        assert service.get_board("board-1") == board

    async def test_server_error_is_raised_verbatim(self, transport: HttpBoardTransport) -> None:
        with pytest.raises(TransportError) as excinfo:
            await transport.send("board-1", DeleteTask(task_id="task-404"))
        assert excinfo.value.message == "Task task-404 not found"
        assert excinfo.value.status_code == 404

        with pytest.raises(TransportError) as excinfo:
            await transport.fetch("board-missing")
        assert excinfo.value.status_code == 404

    async def test_presence_uses_acting_user(self, transport: HttpBoardTransport, app) -> None:
        app.state.presence.heartbeat("board-1", "user-1")
        entries = await transport.presence("board-1")
        online = {e["userId"] for e in entries if e["isOnline"]}
        assert online == {"user-1"}

    async def test_session_over_http(self, transport: HttpBoardTransport) -> None:
        session = await BoardSession.open("board-1", transport)
        outcome = await session.submit(
            MoveTask(task_id="task-6", from_column_id="col-4", to_column_id="col-1", new_index=0)
        )
        assert outcome.status is OutcomeStatus.CONFIRMED
        assert session.board.columns[0].task_ids == ["task-6", "task-1", "task-2"]

        outcome = await session.submit(UpdateTask(task_id="task-6", patch=TaskPatch(title="Redeploy")))
        assert session.board.get_task("task-6").title == "Redeploy"


@pytest.mark.anyio
async def test_connection_failure_becomes_transport_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://test") as client:
        transport = HttpBoardTransport(client=client)
        with pytest.raises(TransportError) as excinfo:
            await transport.fetch("board-1")
    assert excinfo.value.status_code is None
    assert "connection refused" in excinfo.value.message


@pytest.mark.anyio
async def test_non_json_response_becomes_transport_error() -> None:
    def html(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>")

    async with AsyncClient(transport=httpx.MockTransport(html), base_url="http://test") as client:
        with pytest.raises(TransportError) as excinfo:
            await HttpBoardTransport(client=client).fetch("board-1")
    assert excinfo.value.status_code == 502


@pytest.mark.anyio
async def test_local_transport_maps_board_errors(service: BoardService) -> None:
    transport = LocalBoardTransport(service)
    board = await transport.fetch("board-1")
    assert board.id == "board-1"

    with pytest.raises(TransportError) as excinfo:
        await transport.send("board-1", AddTask(title="x", column_id="col-77"))
    assert excinfo.value.message == "Column col-77 not found"
    assert excinfo.value.status_code == 404

    entries = await transport.presence("board-1")
    assert [e["userId"] for e in entries] == ["user-1", "user-2", "user-3"]
