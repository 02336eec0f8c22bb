from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Callable, Protocol, Sequence

from cv_intake.errors import UploadError
from cv_intake.notifications.notification import Notification, NotificationDraft
from cv_intake.notifications.sync import BurstSubscription, NotificationSync
from cv_intake.staging.staged_file import StagedFile, UploadStatus
from cv_intake.uploads.pending_counter import PendingUploadCounter
from cv_intake.uploads.webhook_client import UploadClient, UploadResult

LOGGER = logging.getLogger(__name__)

StatusListener = Callable[[StagedFile], None]
FailureListener = Callable[[StagedFile, str], None]
BatchListener = Callable[["UploadBatch"], None]


class NotificationSink(Protocol):
    def add(self, item: NotificationDraft) -> Notification: ...


class UploadBatch:
    def __init__(self, entries: Sequence[StagedFile]) -> None:
        self.batch_id = secrets.token_hex(4)
        self.entries = tuple(entries)
        self._finished = asyncio.Event()

    @property
    def done(self) -> bool:
        return self._finished.is_set()

    @property
    def succeeded(self) -> list[StagedFile]:
        return [e for e in self.entries if e.status is UploadStatus.SUCCESS]

    @property
    def failed(self) -> list[StagedFile]:
        return [e for e in self.entries if e.status is UploadStatus.ERROR]

    async def wait(self) -> "UploadBatch":
        await self._finished.wait()
        return self

    def _finish(self) -> None:
        self._finished.set()


class UploadQueue:
    """Submits staged files to the analysis webhook, one request per file.

    Entries are independent: one failing never stops its siblings, each ends
    in exactly one terminal status, and nothing is retried automatically.
    Batches are owned here, so closing the staging UI does not cancel them.
    """

    def __init__(
        self,
        client: UploadClient,
        *,
        notifications: NotificationSink,
        pending: PendingUploadCounter | None = None,
        sync: NotificationSync | None = None,
        burst_linger: float = 30.0,
    ) -> None:
        self._client = client
        self._notifications = notifications
        self._pending = pending
        self._sync = sync
        self._burst_linger = burst_linger
        self._tasks: set[asyncio.Task] = set()
        self._status_listeners: list[StatusListener] = []
        self._failure_listeners: list[FailureListener] = []
        self._batch_listeners: list[BatchListener] = []

    def on_status(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    def on_failure(self, listener: FailureListener) -> None:
        self._failure_listeners.append(listener)

    def on_batch_complete(self, listener: BatchListener) -> None:
        self._batch_listeners.append(listener)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, entries: Sequence[StagedFile]) -> UploadBatch:
        if not entries:
            raise ValueError("At least one file is required to upload")
        not_pending = [e.name for e in entries if e.status is not UploadStatus.PENDING]
        if not_pending:
            raise ValueError(
                "Only pending files can be uploaded: %s" % ", ".join(not_pending)
            )

        batch = UploadBatch(entries)
        # Flip to uploading before yielding so the same entry cannot be queued twice.
        for entry in batch.entries:
            entry.error = None
            self._transition(entry, UploadStatus.UPLOADING)

        task = asyncio.get_running_loop().create_task(
            self._run_batch(batch), name=f"upload-batch-{batch.batch_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        LOGGER.info("Submitted upload batch %s with %d file(s)", batch.batch_id, len(entries))
        return batch

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run_batch(self, batch: UploadBatch) -> None:
        if self._pending is not None:
            self._pending.increment()
        burst = (
            asyncio.ensure_future(self._sync.start_burst())
            if self._sync is not None
            else None
        )
        try:
            await asyncio.gather(*(self._upload_one(entry) for entry in batch.entries))
        finally:
            if self._pending is not None:
                self._pending.decrement()
            batch._finish()
            LOGGER.info(
                "Upload batch %s finished: %d succeeded, %d failed",
                batch.batch_id,
                len(batch.succeeded),
                len(batch.failed),
            )
            for listener in list(self._batch_listeners):
                _call_listener(listener, batch)
            # Completion is signalled before the burst's first fetch returns.
            if burst is not None:
                await self._release_burst_later(burst)

    async def _upload_one(self, entry: StagedFile) -> None:
        try:
            result = await self._client.send(entry)
        except asyncio.CancelledError:
            self._fail(entry, "Upload cancelled")
            raise
        except UploadError as exc:
            self._fail(entry, str(exc) or "Upload failed")
        except Exception as exc:
            LOGGER.exception("Unexpected error uploading %s", entry.name)
            self._fail(entry, str(exc) or "Upload failed")
        else:
            self._transition(entry, UploadStatus.SUCCESS)
            self._notifications.add(_success_draft(entry, result))

    def _fail(self, entry: StagedFile, detail: str) -> None:
        entry.error = detail
        self._transition(entry, UploadStatus.ERROR)
        LOGGER.error("Upload of %s failed: %s", entry.name, detail)
        self._notifications.add(
            NotificationDraft(
                title="Upload Failed",
                message=(
                    f"{entry.name}: {detail}. Please try again or contact support "
                    "if the issue persists."
                ),
                type="error",
                priority="high",
                persistent=True,
                auto_close=False,
                duration=10.0,
            )
        )
        for listener in list(self._failure_listeners):
            _call_listener(listener, entry, detail)

    def _transition(self, entry: StagedFile, status: UploadStatus) -> None:
        entry.status = status
        for listener in list(self._status_listeners):
            _call_listener(listener, entry)

    async def _release_burst_later(
        self, burst: "asyncio.Future[BurstSubscription]"
    ) -> None:
        try:
            subscription = await burst
        except Exception:
            LOGGER.exception("Could not start burst notification sync")
            return
        if self._burst_linger > 0:
            asyncio.get_running_loop().call_later(
                self._burst_linger, subscription.release
            )
        else:
            subscription.release()


def _success_draft(entry: StagedFile, result: UploadResult) -> NotificationDraft:
    if result.status == "success":
        candidate = result.candidate or "Candidate"
        return NotificationDraft(
            title=f"{candidate} CV is done",
            message=f"CV analysis completed successfully for {candidate}",
            type="success",
            candidate=result.candidate,
            persistent=True,
            auto_close=False,
            duration=12.0,
        )
    return NotificationDraft(
        title="CV Analysis Complete!",
        message=f"{entry.name} was submitted. Please reload the CV records to see updates.",
        type="success",
        persistent=True,
        auto_close=False,
        duration=12.0,
    )


def _call_listener(listener: Callable[..., None], *args: object) -> None:
    try:
        listener(*args)
    except Exception:
        LOGGER.exception("Upload listener failed")
