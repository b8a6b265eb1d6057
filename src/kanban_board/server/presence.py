"""Server-side presence tracking keyed by board.

Clients send a heartbeat with their ``X-User-Id``; a user is reported
online while their last heartbeat on that board is within the online window.
Presence lives in memory only and resets when the server restarts.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from datetime import timedelta
from typing import Any, Iterable, Optional

from ..constants import DEFAULT_ONLINE_WINDOW_SECONDS
from ..utils import _now_iso, _parse_iso
from .models import PresenceInfo


class PresenceTracker:
    """Tracks the last heartbeat of each user on each board."""

    def __init__(self, online_window_seconds: float = DEFAULT_ONLINE_WINDOW_SECONDS) -> None:
        self._window = timedelta(seconds=online_window_seconds)
        self._seen: dict[str, dict[str, str]] = defaultdict(dict)
        self._lock = threading.Lock()

    def heartbeat(self, board_id: str, user_id: str, now: Optional[str] = None) -> str:
        stamp = now or _now_iso()
        with self._lock:
            self._seen[board_id][user_id] = stamp
        return stamp

    def last_seen(self, board_id: str, user_id: str) -> Optional[str]:
        with self._lock:
            return self._seen.get(board_id, {}).get(user_id)

    def snapshot(
        self,
        board_id: str,
        members: Iterable[str],
        now: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Presence for every board member, then any other recent visitor."""
        current = _parse_iso(now or _now_iso())
        with self._lock:
            seen = dict(self._seen.get(board_id, {}))

        user_ids = list(members)
        user_ids.extend(uid for uid in seen if uid not in user_ids)

        entries: list[dict[str, Any]] = []
        for user_id in user_ids:
            stamp = seen.get(user_id)
            parsed = _parse_iso(stamp)
            online = parsed is not None and current is not None and current - parsed <= self._window
            entries.append(
                PresenceInfo(user_id=user_id, is_online=online, last_seen=stamp).model_dump(by_alias=True)
            )
        return entries
