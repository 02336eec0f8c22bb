from __future__ import annotations

from typing import Protocol

import httpx

from cv_intake.errors import NotificationFetchError
from cv_intake.notifications.notification import Notification


class NotificationFetcher(Protocol):
    async def fetch(self) -> list[Notification]: ...


class IngressNotificationClient:
    """Reads the notifications retained by the ingress service."""

    def __init__(
        self,
        ingress_url: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = ingress_url.rstrip("/") + "/v1/webhook"
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def fetch(self) -> list[Notification]:
        try:
            response = await self._client.get(self._url)
        except httpx.HTTPError as exc:
            raise NotificationFetchError(f"Ingress unreachable: {exc}") from exc
        if not response.is_success:
            raise NotificationFetchError(f"Ingress answered HTTP {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            raise NotificationFetchError("Ingress returned invalid JSON") from exc
        items = body.get("notifications") if isinstance(body, dict) else None
        if not isinstance(items, list):
            raise NotificationFetchError("Ingress response has no notification list")
        try:
            return [Notification.from_payload(item) for item in items]
        except (TypeError, ValueError) as exc:
            raise NotificationFetchError(f"Malformed notification: {exc}") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
