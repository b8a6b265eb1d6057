"""Fixed-interval presence polling, independent of mutation traffic."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Callable, Optional

from ..constants import DEFAULT_POLL_INTERVAL_SECONDS
from .transport import BoardTransport, TransportError

logger = logging.getLogger(__name__)


class PresencePoller:
    """Poll ``presence(board_id)`` every *interval* seconds.

    Failed polls are logged and retried on the next tick; the last good
    result stays in :attr:`latest`.
    """

    def __init__(
        self,
        transport: BoardTransport,
        board_id: str,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        on_update: Optional[Callable[[list[dict[str, Any]]], None]] = None,
    ) -> None:
        self._transport = transport
        self._board_id = board_id
        self._interval = interval
        self._on_update = on_update
        self._task: Optional[asyncio.Task] = None
        self.latest: list[dict[str, Any]] = []

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def poll_once(self) -> list[dict[str, Any]]:
        self.latest = await self._transport.presence(self._board_id)
        if self._on_update:
            self._on_update(self.latest)
        return self.latest

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except TransportError as exc:
                logger.warning("Presence poll for %s failed: %s", self._board_id, exc.message)
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
