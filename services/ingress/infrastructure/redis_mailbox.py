from __future__ import annotations

import json
import logging
from typing import List

from redis import Redis
from redis.exceptions import RedisError

from ..domain.webhook_notification import WebhookNotification
from .notification_mailbox import DEFAULT_CAPACITY

LOGGER = logging.getLogger(__name__)


class MailboxUnavailable(RuntimeError):
    pass


class RedisNotificationMailbox:
    """Mailbox shared by every ingress worker, kept in one capped Redis list."""

    def __init__(
        self,
        *,
        client: Redis,
        key: str = "ingress:notifications",
        capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        if capacity < 1:
            raise ValueError("Mailbox capacity must be at least 1")
        self._redis = client
        self._key = key
        self._capacity = capacity

    @classmethod
    def connect(
        cls, *, host: str, port: int, db: int, key: str, capacity: int
    ) -> "RedisNotificationMailbox":
        client = Redis(host=host, port=port, db=db, decode_responses=True)
        return cls(client=client, key=key, capacity=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, notification: WebhookNotification) -> None:
        payload = json.dumps(notification.to_payload())
        try:
            pipe = self._redis.pipeline()
            pipe.lpush(self._key, payload)
            pipe.ltrim(self._key, 0, self._capacity - 1)
            pipe.execute()
        except RedisError as exc:
            LOGGER.error("Failed to store notification %s: %s", notification.id, exc)
            raise MailboxUnavailable(str(exc)) from exc

    def list_recent(self) -> List[WebhookNotification]:
        try:
            raw = self._redis.lrange(self._key, 0, self._capacity - 1)
        except RedisError as exc:
            LOGGER.error("Failed to read notifications from %s: %s", self._key, exc)
            raise MailboxUnavailable(str(exc)) from exc
        notifications = []
        for item in raw:
            try:
                notifications.append(WebhookNotification.from_payload(json.loads(item)))
            except (KeyError, TypeError, ValueError):
                LOGGER.warning("Skipping malformed mailbox entry in %s", self._key)
        return notifications

    def reset(self) -> None:
        try:
            self._redis.delete(self._key)
        except RedisError as exc:
            raise MailboxUnavailable(str(exc)) from exc
