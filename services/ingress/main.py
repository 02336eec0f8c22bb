from __future__ import annotations

import logging

from fastapi import FastAPI

from cv_intake.validation.file_validator import FileValidator

from .api.record_routes import create_record_router
from .api.routes import create_router
from .application.forward_upload import ForwardUploadUseCase
from .application.interfaces import (
    AnalysisWebhook,
    CvRecordRepository,
    NotificationMailbox,
)
from .application.query_cv_records import QueryCvRecordsUseCase
from .application.record_analysis_callback import (
    ListNotificationsUseCase,
    RecordAnalysisCallbackUseCase,
)
from .config import IngressConfig, load_config
from .infrastructure.airtable_records import AirtableCvRecordRepository
from .infrastructure.analysis_webhook import HttpAnalysisWebhook
from .infrastructure.ids import TimestampedIdProvider
from .infrastructure.notification_mailbox import InMemoryNotificationMailbox
from .infrastructure.redis_mailbox import RedisNotificationMailbox

LOGGER = logging.getLogger(__name__)


def _build_mailbox(cfg: IngressConfig) -> NotificationMailbox:
    if cfg.mailbox_backend == "redis":
        return RedisNotificationMailbox.connect(
            host=cfg.redis_host,
            port=cfg.redis_port,
            db=cfg.redis_db,
            key=cfg.redis_mailbox_key,
            capacity=cfg.mailbox_capacity,
        )
    return InMemoryNotificationMailbox(capacity=cfg.mailbox_capacity)


def build_app(
    config: IngressConfig | None = None,
    *,
    mailbox: NotificationMailbox | None = None,
    webhook: AnalysisWebhook | None = None,
    record_repository: CvRecordRepository | None = None,
) -> FastAPI:
    cfg = config or load_config()
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"message": "pong"}

    if mailbox is None:
        mailbox = _build_mailbox(cfg)
    if webhook is None and cfg.analysis_webhook_url:
        webhook = HttpAnalysisWebhook(
            url=cfg.analysis_webhook_url,
            timeout_seconds=cfg.webhook_timeout_seconds,
        )
    if webhook is None:
        LOGGER.warning("No analysis webhook configured; uploads will be refused")
    if record_repository is None and cfg.airtable_configured:
        record_repository = AirtableCvRecordRepository(
            api_key=cfg.airtable_api_key,
            base_id=cfg.airtable_base_id,
            table_name=cfg.airtable_table_name,
            api_url=cfg.airtable_api_url,
        )

    record_callback_use_case = RecordAnalysisCallbackUseCase(
        id_provider=TimestampedIdProvider(prefix="webhook"),
        mailbox=mailbox,
    )
    list_notifications_use_case = ListNotificationsUseCase(mailbox)
    forward_upload_use_case = ForwardUploadUseCase(
        validator=FileValidator(max_size_bytes=cfg.max_upload_bytes),
        webhook=webhook,
    )
    query_records_use_case = (
        QueryCvRecordsUseCase(record_repository)
        if record_repository is not None
        else None
    )

    app.include_router(
        create_router(
            record_callback_use_case,
            list_notifications_use_case,
            forward_upload_use_case,
        )
    )
    app.include_router(create_record_router(query_records_use_case))

    return app
