"""Polling bridge between the ingress mailbox and the local notification store.

A baseline poller runs every ``interval`` seconds while started. Upload batches
additionally hold burst subscriptions; while at least one is held a single
burst poller runs every ``burst_interval`` seconds. Both pollers feed the same
id-keyed merge, so running them side by side never delivers an item twice.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from cv_intake.errors import NotificationFetchError
from cv_intake.notifications.ingress_client import NotificationFetcher
from cv_intake.notifications.notification import Notification
from cv_intake.notifications.store import NotificationStore

LOGGER = logging.getLogger(__name__)


class BurstSubscription:
    def __init__(self, sync: "NotificationSync") -> None:
        self._sync = sync
        self._released = False

    @property
    def active(self) -> bool:
        return not self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._sync._release_burst()


class NotificationSync:
    def __init__(
        self,
        store: NotificationStore,
        fetcher: NotificationFetcher,
        *,
        interval: float = 5.0,
        burst_interval: float = 2.0,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._interval = interval
        self._burst_interval = burst_interval
        self._baseline_task: asyncio.Task | None = None
        self._burst_task: asyncio.Task | None = None
        self._burst_holders = 0

    @property
    def running(self) -> bool:
        return self._baseline_task is not None and not self._baseline_task.done()

    @property
    def bursting(self) -> bool:
        return self._burst_task is not None and not self._burst_task.done()

    @property
    def burst_holders(self) -> int:
        return self._burst_holders

    async def sync_now(self) -> list[Notification]:
        try:
            items = await self._fetcher.fetch()
        except NotificationFetchError as exc:
            LOGGER.warning("Notification sync failed, retrying next tick: %s", exc)
            return []
        added = self._store.merge(items)
        if added:
            LOGGER.info("Merged %d new notification(s) from ingress", len(added))
        return added

    def start(self) -> None:
        if self.running:
            return
        self._baseline_task = asyncio.get_running_loop().create_task(
            self._poll(self._interval), name="notification-sync"
        )

    async def stop(self) -> None:
        tasks = [t for t in (self._baseline_task, self._burst_task) if t is not None]
        self._baseline_task = None
        self._burst_task = None
        self._burst_holders = 0
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def start_burst(self) -> BurstSubscription:
        self._burst_holders += 1
        subscription = BurstSubscription(self)
        if not self.bursting:
            self._burst_task = asyncio.get_running_loop().create_task(
                self._poll(self._burst_interval), name="notification-sync-burst"
            )
        try:
            await self.sync_now()
        except BaseException:
            subscription.release()
            raise
        return subscription

    @asynccontextmanager
    async def burst(self) -> AsyncIterator[BurstSubscription]:
        subscription = await self.start_burst()
        try:
            yield subscription
        finally:
            subscription.release()

    def _release_burst(self) -> None:
        self._burst_holders = max(0, self._burst_holders - 1)
        if self._burst_holders == 0 and self._burst_task is not None:
            self._burst_task.cancel()
            self._burst_task = None

    async def _poll(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sync_now()
            except Exception:
                LOGGER.exception("Unexpected error during notification sync")
