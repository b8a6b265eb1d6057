from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .board_engine.commands import CommandKind, parse_command
from .board_engine.engine import BoardService
from .board_engine.errors import BoardError
from .config import Settings, resolve_settings
from .constants import ANONYMOUS_USER_ID
from .logging_utils import configure_logging

PROJECT_DIR_ENV = "KANBAN_PROJECT_DIR"


def _resolve_project_dir(project_dir: Optional[str]) -> Path:
    return Path(project_dir).expanduser().resolve() if project_dir else Path.cwd().resolve()


def _ctx(project_dir: Optional[str]) -> tuple[Settings, BoardService]:
    settings = resolve_settings(_resolve_project_dir(project_dir))
    configure_logging(settings.log_level)
    if settings.config_error:
        logger.warning("Ignoring board config: {}", settings.config_error)
    service = BoardService.from_state_dir(
        settings.state_dir,
        fmt=settings.storage_format,
        seed_demo=settings.seed_demo,
    )
    return settings, service


def _emit(payload: Any) -> int:
    sys.stdout.write(json.dumps(payload, indent=2) + '\n')
    return 0


def _board_list(args: argparse.Namespace) -> int:
    _, service = _ctx(args.project_dir)
    return _emit({'boards': service.list_summaries()})


def _board_create(args: argparse.Namespace) -> int:
    _, service = _ctx(args.project_dir)
    board = service.create_board(parse_command(CommandKind.CREATE_BOARD, {'title': args.title}))
    return _emit({'board': board.to_dict()})


def _board_show(args: argparse.Namespace) -> int:
    _, service = _ctx(args.project_dir)
    return _emit({'board': service.get_board(args.board_id).to_dict()})


def _run(args: argparse.Namespace, kind: CommandKind, payload: Any = None, **path_params: str) -> int:
    _, service = _ctx(args.project_dir)
    command = parse_command(kind, payload, **path_params)
    board = service.execute(args.board_id, command)
    return _emit({'board': board.to_dict()})


def _task_add(args: argparse.Namespace) -> int:
    return _run(args, CommandKind.ADD_TASK, {'title': args.title, 'columnId': args.column_id})


def _task_move(args: argparse.Namespace) -> int:
    payload = {
        'taskId': args.task_id,
        'fromColumnId': args.from_column_id,
        'toColumnId': args.to_column_id,
        'newIndex': args.new_index,
    }
    return _run(args, CommandKind.MOVE_TASK, payload)


def _task_delete(args: argparse.Namespace) -> int:
    return _run(args, CommandKind.DELETE_TASK, task_id=args.task_id)


def _task_comment(args: argparse.Namespace) -> int:
    return _run(
        args,
        CommandKind.ADD_COMMENT,
        {'content': args.content},
        task_id=args.task_id,
        author_id=args.author,
    )


def app_from_env():
    """uvicorn factory used when the server runs with ``--reload``."""
    from .server import create_app

    return create_app(project_dir=_resolve_project_dir(os.getenv(PROJECT_DIR_ENV)))


def _server(args: argparse.Namespace) -> int:
    import uvicorn

    from .server import create_app

    settings, _ = _ctx(args.project_dir)
    host = args.host or settings.host
    port = args.port or settings.port
    if args.reload:
        os.environ[PROJECT_DIR_ENV] = str(_resolve_project_dir(args.project_dir))
        uvicorn.run('kanban_board.cli:app_from_env', factory=True, host=host, port=port, reload=True)
        return 0

    app = create_app(
        project_dir=_resolve_project_dir(args.project_dir),
        enable_cors=settings.cors,
        settings=settings,
    )
    uvicorn.run(app, host=host, port=port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Kanban board CLI')
    parser.add_argument('--project-dir', default=None, help='Project directory holding .kanban/ (default: current working directory)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    server = subparsers.add_parser('server', help='Start the board API server')
    server.add_argument('--host', default=None, help='Bind address (default: server.host from config)')
    server.add_argument('--port', default=None, type=int, help='Port (default: server.port from config)')
    server.add_argument('--reload', action='store_true')
    server.set_defaults(func=_server)

    board = subparsers.add_parser('board', help='Manage boards')
    board_sub = board.add_subparsers(dest='board_cmd', required=True)
    blist = board_sub.add_parser('list', help='List board summaries')
    blist.set_defaults(func=_board_list)
    bcreate = board_sub.add_parser('create', help='Create a board with the default columns')
    bcreate.add_argument('title')
    bcreate.set_defaults(func=_board_create)
    bshow = board_sub.add_parser('show', help='Print a board document')
    bshow.add_argument('board_id')
    bshow.set_defaults(func=_board_show)

    task = subparsers.add_parser('task', help='Manage tasks on a board')
    task_sub = task.add_subparsers(dest='task_cmd', required=True)
    tadd = task_sub.add_parser('add', help='Append a task to a column')
    tadd.add_argument('board_id')
    tadd.add_argument('column_id')
    tadd.add_argument('title')
    tadd.set_defaults(func=_task_add)
    tmove = task_sub.add_parser('move', help='Move a task to a column position')
    tmove.add_argument('board_id')
    tmove.add_argument('task_id')
    tmove.add_argument('from_column_id')
    tmove.add_argument('to_column_id')
    tmove.add_argument('new_index', type=int)
    tmove.set_defaults(func=_task_move)
    tdelete = task_sub.add_parser('delete', help='Delete a task')
    tdelete.add_argument('board_id')
    tdelete.add_argument('task_id')
    tdelete.set_defaults(func=_task_delete)
    tcomment = task_sub.add_parser('comment', help='Comment on a task')
    tcomment.add_argument('board_id')
    tcomment.add_argument('task_id')
    tcomment.add_argument('content')
    tcomment.add_argument('--author', default=ANONYMOUS_USER_ID)
    tcomment.set_defaults(func=_task_comment)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, 'func', None)
    if handler is None:
        parser.print_help()
        return 1
    try:
        return int(handler(args) or 0)
    except BoardError as exc:
        sys.stderr.write(exc.message + '\n')
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
