"""
Debounced broker reload.

Every credential write asks for a reload; the debouncer collapses requests
that arrive within ``delay`` seconds of each other into one reload issued
after the window goes quiet.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

from claim_service.app.services.credential_store import CredentialStoreError

logger = logging.getLogger(__name__)


class ReloadDebouncer:
    """Single owner of the pending-reload set and its timer"""

    def __init__(self, reload: Callable[[], Awaitable[None]], delay: float = 2.0):
        self._reload = reload
        self.delay = delay
        self._pending: Set[str] = set()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_flight: Set[asyncio.Task] = set()
        self.reload_count = 0

    @property
    def pending(self) -> Set[str]:
        return set(self._pending)

    def schedule(self, username: str) -> None:
        """Record a changed entry and restart the quiet-period timer"""
        self._pending.add(username)
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        batch = self._pending
        self._pending = set()
        task = asyncio.ensure_future(self._run(batch))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run(self, batch: Set[str]) -> None:
        try:
            await self._reload()
        except CredentialStoreError as exc:
            logger.error(f"Broker reload failed for {len(batch)} credential change(s): {exc}")
            return
        self.reload_count += 1
        logger.info(f"Broker reloaded after {len(batch)} credential change(s)")

    async def flush(self) -> None:
        """Run any pending reload now and wait for in-flight reloads"""
        if self._timer is not None:
            self._timer.cancel()
            self._fire()
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight))
