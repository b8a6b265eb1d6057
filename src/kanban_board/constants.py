"""Shared constants for storage layout, seeding and presence."""

from __future__ import annotations

STATE_DIR_NAME = ".kanban"
CONFIG_FILE = "config.yaml"

# Single logical collection key holding every board document.
BOARDS_KEY = "boards"

STORAGE_FORMATS = ("yaml", "json")
DEFAULT_STORAGE_FORMAT = "yaml"

WINDOWS_LOCK_BYTES = 1024

BOARD_TITLE_MAX_LENGTH = 100

# Seeded on every new board, in display order.
DEFAULT_COLUMN_TITLES = ("Backlog", "In Progress", "In Review", "Done")

DEFAULT_ONLINE_WINDOW_SECONDS = 30
DEFAULT_POLL_INTERVAL_SECONDS = 10

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

ANONYMOUS_USER_ID = "anonymous"
USER_ID_HEADER = "X-User-Id"
