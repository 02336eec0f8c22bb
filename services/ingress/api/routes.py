from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from ..application.dto import AnalysisCallbackCommand, ForwardUploadCommand
from ..application.forward_upload import ForwardingNotConfigured, ForwardUploadUseCase
from ..application.record_analysis_callback import (
    ListNotificationsUseCase,
    RecordAnalysisCallbackUseCase,
)
from ..domain.webhook_notification import WebhookNotification
from ..infrastructure.analysis_webhook import WebhookForwardError
from ..infrastructure.redis_mailbox import MailboxUnavailable

LOGGER = logging.getLogger(__name__)


class NotificationResponse(BaseModel):
    id: str
    title: str
    message: str
    type: str
    priority: str
    timestamp: int
    read: bool
    candidate: Optional[str]
    canHide: bool
    originalMessage: str

    @classmethod
    def from_domain(cls, notification: WebhookNotification) -> "NotificationResponse":
        return cls(**notification.to_payload())


class WebhookAckResponse(BaseModel):
    success: bool = True
    message: str
    notification: Optional[NotificationResponse] = None


class NotificationListResponse(BaseModel):
    success: bool = True
    notifications: List[NotificationResponse]


class UploadResponse(BaseModel):
    success: bool = True
    message: str
    data: Optional[Dict[str, Any]] = None


def _callback_command(payload: Dict[str, Any]) -> AnalysisCallbackCommand | None:
    if "status" not in payload or "message" not in payload:
        return None
    candidate = payload.get("candidate")
    return AnalysisCallbackCommand(
        status=str(payload["status"] or ""),
        message=str(payload["message"] or ""),
        candidate=str(candidate) if candidate else None,
    )


def create_router(
    record_callback_use_case: RecordAnalysisCallbackUseCase,
    list_notifications_use_case: ListNotificationsUseCase,
    forward_upload_use_case: ForwardUploadUseCase,
) -> APIRouter:
    router = APIRouter()
    webhook_router = APIRouter(prefix="/v1/webhook", tags=["webhook"])
    uploads_router = APIRouter(prefix="/v1/uploads", tags=["uploads"])

    @webhook_router.post("", response_model=WebhookAckResponse)
    async def analysis_callback_endpoint(payload: Dict[str, Any] = Body(...)):
        command = _callback_command(payload)
        if command is None:
            return WebhookAckResponse(message="Webhook received successfully")
        try:
            notification = record_callback_use_case.execute(command)
        except MailboxUnavailable as exc:
            raise HTTPException(
                status_code=503, detail="Notification mailbox unavailable"
            ) from exc
        LOGGER.info("Stored analysis callback %s (%s)", notification.id, command.status)
        return WebhookAckResponse(
            message="Webhook processed successfully",
            notification=NotificationResponse.from_domain(notification),
        )

    @webhook_router.get("", response_model=NotificationListResponse)
    async def list_notifications_endpoint():
        try:
            notifications = list_notifications_use_case.execute()
        except MailboxUnavailable as exc:
            raise HTTPException(
                status_code=503, detail="Notification mailbox unavailable"
            ) from exc
        return NotificationListResponse(
            notifications=[NotificationResponse.from_domain(n) for n in notifications]
        )

    @uploads_router.post("", response_model=UploadResponse)
    async def forward_upload_endpoint(
        file: Optional[UploadFile] = File(default=None),
        fileName: Optional[str] = Form(default=None),
        fileSize: Optional[str] = Form(default=None),
        mimeType: Optional[str] = Form(default=None),
        fileId: Optional[str] = Form(default=None),
        uploadedAt: Optional[str] = Form(default=None),
    ):
        if file is None:
            raise HTTPException(status_code=400, detail="No file provided")
        metadata = {
            key: value
            for key, value in (
                ("fileName", fileName),
                ("fileSize", fileSize),
                ("mimeType", mimeType),
                ("fileId", fileId),
                ("uploadedAt", uploadedAt),
            )
            if value is not None
        }
        command = ForwardUploadCommand(
            filename=file.filename or fileName or "",
            content_type=file.content_type or mimeType or "",
            content=await file.read(),
            metadata=metadata,
        )
        try:
            result = await run_in_threadpool(forward_upload_use_case.execute, command)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ForwardingNotConfigured as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        except WebhookForwardError as exc:
            LOGGER.error("Forwarding %s failed: %s", command.filename, exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return UploadResponse(
            message=f"Successfully uploaded {result.filename}",
            data=dict(result.data) if result.data is not None else None,
        )

    router.include_router(webhook_router)
    router.include_router(uploads_router)
    return router
