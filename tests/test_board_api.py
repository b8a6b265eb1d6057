"""Tests for the board HTTP API."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from kanban_board.board_engine.engine import BoardService
from kanban_board.board_engine.store import MemoryDocumentStore
from kanban_board.server.api import create_app


@pytest.fixture
def service() -> BoardService:
    return BoardService(MemoryDocumentStore(), seed_demo=True)


@pytest.fixture
def client(tmp_path: Path, service: BoardService) -> TestClient:
    app = create_app(project_dir=tmp_path, enable_cors=False, service=service)
    return TestClient(app)


def _data(resp):
    body = resp.json()
    assert body["success"] is True, body
    assert "error" not in body
    return body["data"]


def _error(resp, status: int) -> str:
    assert resp.status_code == status, resp.text
    body = resp.json()
    assert body["success"] is False
    assert "data" not in body
    return body["error"]


def _column(board: dict, column_id: str) -> list[str]:
    return next(c["taskIds"] for c in board["columns"] if c["id"] == column_id)


# ---------------------------------------------------------------------------
# Boards
# ---------------------------------------------------------------------------

def test_root_and_health(client: TestClient) -> None:
    assert client.get("/").json()["status"] == "running"
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": "1.0.0"}


def test_list_boards_returns_summaries(client: TestClient) -> None:
    boards = _data(client.get("/api/boards"))
    assert len(boards) == 1
    assert set(boards[0]) == {"id", "title", "taskCount", "lastActivity"}
    assert boards[0]["taskCount"] == 6


def test_create_and_fetch_board(client: TestClient) -> None:
    created = _data(client.post("/api/board", json={"title": "Launch plan"}))
    assert created["title"] == "Launch plan"
    assert [c["id"] for c in created["columns"]] == ["col-1", "col-2", "col-3", "col-4"]

    fetched = _data(client.get(f"/api/board/{created['id']}"))
    assert fetched == created
    assert len(_data(client.get("/api/boards"))) == 2


def test_create_board_validation(client: TestClient) -> None:
    assert "title" in _error(client.post("/api/board", json={"title": ""}), 400)
    assert _error(client.post("/api/board", json={"title": "x", "owner": "me"}), 400) == "Unrecognized field 'owner'"
    assert _error(client.post("/api/board", content=b"{oops", headers={"content-type": "application/json"}), 400) \
        == "Request body is not valid JSON"


def test_unknown_board_is_404(client: TestClient) -> None:
    assert _error(client.get("/api/board/board-missing"), 404) == "Board board-missing not found"


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

def test_add_task(client: TestClient) -> None:
    board = _data(client.post("/api/board/board-1/task", json={"title": "Ship it", "columnId": "col-3"}))
    new_id = _column(board, "col-3")[-1]
    task = next(t for t in board["tasks"] if t["id"] == new_id)
    assert task["title"] == "Ship it"
    assert task["status"] == "col-3"
    assert task["order"] == 1


def test_add_task_to_unknown_column(client: TestClient) -> None:
    assert _error(client.post("/api/board/board-1/task", json={"title": "x", "columnId": "col-9"}), 404) \
        == "Column col-9 not found"


def test_move_task(client: TestClient) -> None:
    board = _data(client.post("/api/board/board-1/task/move", json={
        "taskId": "task-1",
        "fromColumnId": "col-1",
        "toColumnId": "col-4",
        "newIndex": 0,
    }))
    assert _column(board, "col-1") == ["task-2"]
    assert _column(board, "col-4") == ["task-1", "task-6"]
    orders = {t["id"]: (t["status"], t["order"]) for t in board["tasks"]}
    assert orders["task-1"] == ("col-4", 0)
    assert orders["task-6"] == ("col-4", 1)
    assert orders["task-2"] == ("col-1", 0)


def test_move_task_validation(client: TestClient) -> None:
    body = {"taskId": "task-1", "fromColumnId": "col-1", "toColumnId": "col-4", "newIndex": -3}
    _error(client.post("/api/board/board-1/task/move", json=body), 400)
    _error(client.post("/api/board/board-1/task/move", json={**body, "newIndex": 0, "fromColumnId": "col-2"}), 404)


def test_update_task(client: TestClient) -> None:
    board = _data(client.put("/api/board/board-1/task/task-1", json={
        "title": "Renamed",
        "assigneeId": None,
        "estimate": 1.5,
    }))
    task = next(t for t in board["tasks"] if t["id"] == "task-1")
    assert task["title"] == "Renamed"
    assert task["estimate"] == 1.5
    assert "assigneeId" not in task
    assert task["status"] == "col-1"


def test_update_task_rejects_non_finite_estimate(client: TestClient) -> None:
    before = _data(client.get("/api/board/board-1"))
    for literal in (b"NaN", b"Infinity", b"-Infinity"):
        resp = client.put(
            "/api/board/board-1/task/task-1",
            content=b"{\"estimate\": " + literal + b"}",
            headers={"content-type": "application/json"},
        )
        _error(resp, 400)
    assert _data(client.get("/api/board/board-1")) == before


def test_update_task_rejects_status(client: TestClient) -> None:
    assert _error(client.put("/api/board/board-1/task/task-1", json={"status": "col-4"}), 400) \
        == "Unrecognized field 'status'"
    board = _data(client.get("/api/board/board-1"))
    assert "task-1" in _column(board, "col-1")


def test_delete_task(client: TestClient) -> None:
    board = _data(client.delete("/api/board/board-1/task/task-3"))
    assert _column(board, "col-2") == ["task-4"]
    assert next(t for t in board["tasks"] if t["id"] == "task-4")["order"] == 0
    assert _error(client.delete("/api/board/board-1/task/task-3"), 404) == "Task task-3 not found"


def test_comment_author_comes_from_header(client: TestClient) -> None:
    board = _data(client.post(
        "/api/board/board-1/task/task-2/comment",
        json={"content": "On it"},
        headers={"X-User-Id": "user-2"},
    ))
    comments = next(t for t in board["tasks"] if t["id"] == "task-2")["comments"]
    assert comments[-1]["authorId"] == "user-2"
    assert comments[-1]["content"] == "On it"

    board = _data(client.post("/api/board/board-1/task/task-2/comment", json={"content": "Me too"}))
    comments = next(t for t in board["tasks"] if t["id"] == "task-2")["comments"]
    assert comments[-1]["authorId"] == "anonymous"


def test_comment_requires_content(client: TestClient) -> None:
    _error(client.post("/api/board/board-1/task/task-2/comment", json={"content": ""}), 400)


def test_task_history_stub(client: TestClient) -> None:
    assert _data(client.get("/api/board/board-1/task/task-1/history")) == []
    _error(client.get("/api/board/board-1/task/task-99/history"), 404)


# ---------------------------------------------------------------------------
# Columns and labels
# ---------------------------------------------------------------------------

def test_replace_columns_reassigns_removed_tasks(client: TestClient) -> None:
    board = _data(client.put("/api/board/board-1/columns", json={"columns": [
        {"id": "col-2"},
        {"id": "col-4", "title": "Shipped"},
        {"id": "col-qa", "title": "QA"},
    ]}))
    assert [(c["id"], c["title"]) for c in board["columns"]] == [
        ("col-2", "In Progress"),
        ("col-4", "Shipped"),
        ("col-qa", "QA"),
    ]
    assert _column(board, "col-2") == ["task-3", "task-4", "task-1", "task-2", "task-5"]
    assert _column(board, "col-qa") == []


def test_replace_columns_rejects_empty_list(client: TestClient) -> None:
    _error(client.put("/api/board/board-1/columns", json={"columns": []}), 400)


def test_replace_labels(client: TestClient) -> None:
    board = _data(client.put("/api/board/board-1/labels", json={"labels": [
        {"id": "label-9", "name": "Urgent", "color": "#000000"},
    ]}))
    assert board["labels"] == [{"id": "label-9", "name": "Urgent", "color": "#000000"}]
    _error(client.put("/api/board/board-1/labels", json={"labels": [{"id": "x", "name": "y"}]}), 400)


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------

def test_presence_lists_members_offline_until_heartbeat(client: TestClient) -> None:
    entries = _data(client.get("/api/board/board-1/presence"))
    assert [e["userId"] for e in entries] == ["user-1", "user-2", "user-3"]
    assert all(e["isOnline"] is False and e["lastSeen"] is None for e in entries)

    entries = _data(client.post("/api/board/board-1/presence", headers={"X-User-Id": "user-2"}))
    by_user = {e["userId"]: e for e in entries}
    assert by_user["user-2"]["isOnline"] is True
    assert by_user["user-2"]["lastSeen"]
    assert by_user["user-1"]["isOnline"] is False


def test_presence_for_unknown_board(client: TestClient) -> None:
    _error(client.get("/api/board/nope/presence"), 404)
    _error(client.post("/api/board/nope/presence"), 404)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

def test_storage_failure_is_500(tmp_path: Path) -> None:
    class BrokenStore(MemoryDocumentStore):
        def get(self, key):
            raise RuntimeError("backend offline")

    app = create_app(project_dir=tmp_path, enable_cors=False, service=BoardService(BrokenStore()))
    client = TestClient(app)
    assert "backend offline" in _error(client.get("/api/boards"), 500)


def test_unexpected_failure_is_generic_500(tmp_path: Path, service: BoardService, monkeypatch) -> None:
    def boom():
        raise RuntimeError("secret detail")

    monkeypatch.setattr(service, "list_summaries", boom)
    app = create_app(project_dir=tmp_path, enable_cors=False, service=service)
    client = TestClient(app, raise_server_exceptions=False)
    assert _error(client.get("/api/boards"), 500) == "Internal server error"


def test_unknown_route_uses_envelope(client: TestClient) -> None:
    _error(client.get("/api/nothing-here"), 404)


def test_file_backed_app_seeds_demo_board(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("KANBAN_SEED_DEMO", raising=False)
    monkeypatch.setenv("KANBAN_STORAGE_FORMAT", "json")
    client = TestClient(create_app(project_dir=tmp_path, enable_cors=False))

    assert [b["id"] for b in _data(client.get("/api/boards"))] == ["board-1"]
    assert (tmp_path / ".kanban" / "boards.json").exists()
