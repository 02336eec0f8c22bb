from __future__ import annotations

from typing import Any, Mapping

import httpx

from ..domain.upload import ForwardedUpload


class WebhookForwardError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class HttpAnalysisWebhook:
    """Relays an upload as multipart form data to the analysis workflow."""

    def __init__(
        self,
        *,
        url: str,
        timeout_seconds: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def forward(self, upload: ForwardedUpload) -> Mapping[str, Any] | None:
        files = {"files": (upload.filename, upload.content, upload.content_type)}
        try:
            response = self._client.post(self._url, data=dict(upload.metadata), files=files)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise WebhookForwardError(
                f"Webhook error: HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise WebhookForwardError(f"Webhook error: {exc}") from exc

        if not response.content.strip():
            return None
        try:
            body = response.json()
        except ValueError:
            return {"raw": response.text}
        return body if isinstance(body, dict) else {"result": body}

    def close(self) -> None:
        self._client.close()
