"""Board document store contract and implementations.

The store is an opaque key-value document store: ``get(key)`` returns the
whole value stored under *key* (``None`` if never written) and ``put(key,
value)`` replaces it.  Each call is atomic on its own; nothing spans two
calls, so there is no compare-and-swap.  Two writers racing a
read-modify-write on the same key lose the earlier write.

All boards live in one logical collection under :data:`BOARDS_KEY`; the
:class:`BoardRepository` reads and replaces that whole collection.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from ..constants import BOARDS_KEY, DEFAULT_STORAGE_FORMAT, STORAGE_FORMATS
from ..io_utils import FileLock, _read_data, _save_data
from .errors import StorageError
from .model import Board

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Store contract
# ---------------------------------------------------------------------------

class DocumentStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Any:
        """Return the value stored under *key*, or ``None``."""
        raise NotImplementedError

    @abstractmethod
    def put(self, key: str, value: Any) -> None:
        """Replace the value stored under *key*."""
        raise NotImplementedError


class MemoryDocumentStore(DocumentStore):
    """Process-local store.  Values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._data.get(key))

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)


class FileDocumentStore(DocumentStore):
    """One file per key inside *state_dir*.

    Parameters
    ----------
    state_dir:
        Directory holding ``<key>.yaml`` (or ``.json``) and ``<key>.lock``.
    fmt:
        ``"yaml"`` or ``"json"``.
    """

    def __init__(self, state_dir: Path, fmt: str = DEFAULT_STORAGE_FORMAT) -> None:
        if fmt not in STORAGE_FORMATS:
            raise ValueError(f"Unsupported storage format: {fmt}")
        self._state_dir = state_dir
        self._suffix = ".yaml" if fmt == "yaml" else ".json"
        self._thread_lock = threading.RLock()

    def _path(self, key: str) -> Path:
        return self._state_dir / f"{key}{self._suffix}"

    def _lock(self, key: str) -> FileLock:
        return FileLock(self._state_dir / f"{key}.lock")

    def get(self, key: str) -> Any:
        path = self._path(key)
        with self._thread_lock, self._lock(key):
            if not path.exists():
                return None
            try:
                raw = _read_data(path)
            except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
                raise StorageError(f"Failed to read {path.name}: {exc}") from exc
        if not isinstance(raw, dict) or "value" not in raw:
            raise StorageError(f"{path.name}: expected a stored document envelope")
        return raw["value"]

    def put(self, key: str, value: Any) -> None:
        path = self._path(key)
        with self._thread_lock, self._lock(key):
            try:
                _save_data(path, {"version": 1, "value": value})
            except (OSError, TypeError, yaml.YAMLError) as exc:
                raise StorageError(f"Failed to write {path.name}: {exc}") from exc


# ---------------------------------------------------------------------------
# Board collection
# ---------------------------------------------------------------------------

class BoardRepository:
    """Whole-collection access to the boards stored under one key.

    Parameters
    ----------
    store:
        Any :class:`DocumentStore`.
    seed:
        Optional factory returning the boards to write the first time the
        collection key is found empty (never written).
    """

    def __init__(
        self,
        store: DocumentStore,
        seed: Optional[Callable[[], list[Board]]] = None,
        key: str = BOARDS_KEY,
    ) -> None:
        self._store = store
        self._seed = seed
        self._key = key

    def _get(self) -> Any:
        try:
            return self._store.get(self._key)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"Store get failed: {exc}") from exc

    def _put(self, value: Any) -> None:
        try:
            self._store.put(self._key, value)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"Store put failed: {exc}") from exc

    def load_all(self) -> list[Board]:
        raw = self._get()
        if raw is None:
            boards = self._seed() if self._seed else []
            if boards:
                logger.info("Seeding board collection with %d board(s)", len(boards))
                self.save_all(boards)
            return boards
        if not isinstance(raw, list):
            raise StorageError(f"Stored '{self._key}' value is not a list")
        try:
            return [Board.from_dict(item) for item in raw if isinstance(item, dict)]
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"Stored board document is malformed: {exc}") from exc

    def save_all(self, boards: list[Board]) -> None:
        self._put([b.to_dict() for b in boards])

    def get(self, board_id: str) -> Optional[Board]:
        for board in self.load_all():
            if board.id == board_id:
                return board
        return None
