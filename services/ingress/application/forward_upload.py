from __future__ import annotations

import logging
from pathlib import Path

from cv_intake.validation.file_validator import FileValidator

from .dto import ForwardUploadCommand
from .interfaces import AnalysisWebhook
from ..domain.upload import ForwardedUpload, ForwardResult

LOGGER = logging.getLogger(__name__)


class ForwardingNotConfigured(RuntimeError):
    pass


class ForwardUploadUseCase:
    """Re-checks a client upload and relays it to the analysis webhook.

    Client-side checks are advisory; this is the gate the webhook relies on.
    """

    def __init__(
        self,
        *,
        validator: FileValidator,
        webhook: AnalysisWebhook | None,
    ) -> None:
        self._validator = validator
        self._webhook = webhook

    def execute(self, command: ForwardUploadCommand) -> ForwardResult:
        if not command.content:
            raise ValueError("No file provided")
        verdict = self._validator.validate_metadata(
            command.content_type, len(command.content)
        )
        if not verdict.accepted:
            raise ValueError(verdict.reason)
        if self._webhook is None:
            raise ForwardingNotConfigured("Webhook URL not configured")

        upload = ForwardedUpload(
            filename=Path(command.filename or "").name or "upload.bin",
            content_type=command.content_type,
            content=command.content,
            metadata=dict(command.metadata),
        )
        data = self._webhook.forward(upload)
        LOGGER.info("Forwarded %s (%d bytes) to analysis webhook", upload.filename, upload.size)
        return ForwardResult(filename=upload.filename, data=data)
