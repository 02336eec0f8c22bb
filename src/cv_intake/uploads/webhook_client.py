from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Protocol

import httpx

from cv_intake.errors import UploadError
from cv_intake.staging.staged_file import StagedFile

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadResult:
    status: str | None = None
    candidate: str | None = None
    data: Mapping[str, Any] | None = None


class UploadClient(Protocol):
    async def send(self, entry: StagedFile) -> UploadResult: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WebhookUploadClient:
    """Posts one staged file per request to the analysis webhook."""

    def __init__(
        self,
        endpoint_url: str,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._clock = clock

    async def send(self, entry: StagedFile) -> UploadResult:
        fields = {
            "fileName": entry.name,
            "fileSize": str(entry.size),
            "mimeType": entry.content_type,
            "fileId": entry.file_id,
            "uploadedAt": self._clock().isoformat().replace("+00:00", "Z"),
        }
        files = {"file": (entry.name, entry.payload.content, entry.content_type)}
        try:
            response = await self._client.post(self._endpoint_url, data=fields, files=files)
        except httpx.HTTPError as exc:
            raise UploadError(f"Upload request failed: {exc}") from exc

        if not response.is_success:
            raise UploadError(
                _error_detail(response) or f"Upload failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return _parse_result(response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _parse_result(response: httpx.Response) -> UploadResult:
    if not response.content.strip():
        return UploadResult()
    try:
        body = response.json()
    except ValueError as exc:
        raise UploadError(
            "Malformed response from upload endpoint", status_code=response.status_code
        ) from exc
    if not isinstance(body, dict):
        raise UploadError(
            "Malformed response from upload endpoint", status_code=response.status_code
        )
    # The ingress forwarder wraps the webhook's own body under "data".
    inner = body.get("data") if isinstance(body.get("data"), dict) else body
    return UploadResult(
        status=inner.get("status"),
        candidate=inner.get("candidate"),
        data=body,
    )


def _error_detail(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            if isinstance(body.get(key), str):
                return body[key]
    return None
