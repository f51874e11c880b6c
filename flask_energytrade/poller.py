"""Poll a connected account until it can receive transfers.

After a seller is created (or restored from storage) the platform still has
to verify them before the ``transfers`` capability turns ``active``.
:class:`AccountStatusPoller` fetches the status once immediately and then
every *interval* seconds on the running asyncio loop, and stops for good at
the first status whose capability is ``active``::

    poller = AccountStatusPoller(client.account_status, on_update=render)
    poller.watch("acct_123")
    ...
    poller.stop()

Watching a different account cancels the previous schedule; a fetch that
was still in flight for the old account is cancelled with it, so its result
never reaches the observable state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from flask_energytrade.status import AccountStatus, Capability

logger = logging.getLogger(__name__)

#: Seconds between two status fetches.
POLL_INTERVAL = 3.0

Fetch = Callable[[str], Awaitable[Any]]
OnUpdate = Callable[[AccountStatus, bool], Any]


class AccountStatusPoller:
    """Fixed-interval account status poll.

    Args:
        fetch: Coroutine function returning the raw status payload for an
            account id.  Exceptions it raises are logged and the schedule
            carries on at the next tick.
        interval: Seconds between fetches.
        capability: Capability that has to become ``active``.
        on_update: Called with ``(status, is_capable)`` after every fetch
            that returned a payload, error and malformed payloads included.
            Exceptions it raises are logged.
    """

    def __init__(
        self,
        fetch: Fetch,
        *,
        interval: float = POLL_INTERVAL,
        capability: Capability = Capability.TRANSFERS,
        on_update: OnUpdate | None = None,
    ) -> None:
        self._fetch = fetch
        self.interval = interval
        self.capability = capability
        self._on_update = on_update
        self._task: asyncio.Task | None = None

        self.account_id: str | None = None
        self.status: AccountStatus | None = None
        self.is_capable = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def watch(self, account_id: str) -> None:
        """Start polling *account_id*, cancelling any previous schedule.

        Must be called while an event loop is running.
        """
        self.stop()
        self.account_id = account_id
        self.status = None
        self.is_capable = False
        self._task = asyncio.get_running_loop().create_task(self._run(account_id))

    def stop(self) -> None:
        """Cancel the current schedule, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Wait until the current schedule ends (capability active or stopped)."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _run(self, account_id: str) -> None:
        while True:
            if await self._tick(account_id):
                logger.info("account %s: %s active, polling stopped", account_id, self.capability.value)
                return
            await asyncio.sleep(self.interval)

    async def _tick(self, account_id: str) -> bool:
        try:
            payload = await self._fetch(account_id)
        except Exception as exc:
            logger.warning("error fetching account status for %s: %s", account_id, exc)
            return False

        if account_id != self.account_id:
            return True

        status = AccountStatus.from_payload(payload)
        self.status = status
        self.is_capable = status.is_active(self.capability)
        if self._on_update is not None:
            try:
                self._on_update(status, self.is_capable)
            except Exception as exc:
                logger.warning("status callback failed for %s: %s", account_id, exc)
        return self.is_capable
