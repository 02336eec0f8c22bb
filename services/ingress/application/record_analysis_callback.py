from __future__ import annotations

from .dto import AnalysisCallbackCommand
from .interfaces import IdProvider, NotificationMailbox
from ..domain.webhook_notification import WebhookNotification


class RecordAnalysisCallbackUseCase:
    def __init__(self, *, id_provider: IdProvider, mailbox: NotificationMailbox) -> None:
        self._id_provider = id_provider
        self._mailbox = mailbox

    def execute(self, command: AnalysisCallbackCommand) -> WebhookNotification:
        notification = WebhookNotification.from_callback(
            notification_id=self._id_provider.generate(),
            status=command.status,
            message=command.message,
            candidate=command.candidate,
        )
        self._mailbox.append(notification)
        return notification


class ListNotificationsUseCase:
    def __init__(self, mailbox: NotificationMailbox) -> None:
        self._mailbox = mailbox

    def execute(self) -> list[WebhookNotification]:
        return self._mailbox.list_recent()
