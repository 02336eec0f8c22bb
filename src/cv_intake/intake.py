"""Wires the intake core together from an ``IntakeConfig``."""

from __future__ import annotations

from dataclasses import dataclass

from cv_intake.capture.camera_session import CameraSession, CameraSettings
from cv_intake.composition.compositor import ImageCompositor
from cv_intake.config import IntakeConfig, load_config
from cv_intake.notifications.ingress_client import IngressNotificationClient
from cv_intake.notifications.storage import JsonNotificationStorage
from cv_intake.notifications.store import NotificationStore
from cv_intake.notifications.sync import NotificationSync
from cv_intake.staging.upload_session import UploadSession
from cv_intake.uploads.pending_counter import PendingUploadCounter
from cv_intake.uploads.upload_queue import UploadQueue
from cv_intake.uploads.webhook_client import WebhookUploadClient
from cv_intake.validation.file_validator import FileValidator


@dataclass
class Intake:
    config: IntakeConfig
    store: NotificationStore
    sync: NotificationSync
    pending: PendingUploadCounter
    queue: UploadQueue
    validator: FileValidator
    upload_client: WebhookUploadClient
    ingress_client: IngressNotificationClient

    def new_session(self) -> UploadSession:
        settings = CameraSettings(
            device=self.config.camera_device,
            preferred_width=self.config.camera_width,
            preferred_height=self.config.camera_height,
            jpeg_quality=self.config.capture_quality,
        )
        return UploadSession(
            validator=self.validator,
            queue=self.queue,
            compositor=ImageCompositor(
                decode_timeout=self.config.decode_timeout_seconds
            ),
            camera_factory=lambda: CameraSession(settings),
        )

    async def start(self) -> None:
        self.store.load()
        self.sync.start()

    async def shutdown(self) -> None:
        """Stop polling after in-flight uploads have delivered their outcome."""
        await self.queue.drain()
        await self.sync.stop()
        await self.upload_client.aclose()
        await self.ingress_client.aclose()


def build_intake(config: IntakeConfig | None = None) -> Intake:
    cfg = config or load_config()
    store = NotificationStore(storage=JsonNotificationStorage(cfg.notifications_path))
    ingress_client = IngressNotificationClient(cfg.ingress_url)
    sync = NotificationSync(
        store,
        ingress_client,
        interval=cfg.poll_interval_seconds,
        burst_interval=cfg.burst_interval_seconds,
    )
    pending = PendingUploadCounter()
    upload_client = WebhookUploadClient(
        cfg.upload_endpoint_url, timeout=cfg.upload_timeout_seconds
    )
    queue = UploadQueue(
        upload_client,
        notifications=store,
        pending=pending,
        sync=sync,
        burst_linger=cfg.burst_linger_seconds,
    )
    return Intake(
        config=cfg,
        store=store,
        sync=sync,
        pending=pending,
        queue=queue,
        validator=FileValidator(cfg.max_file_bytes),
        upload_client=upload_client,
        ingress_client=ingress_client,
    )
