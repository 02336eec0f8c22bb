import httpx
import pytest

from services.ingress.domain.upload import ForwardedUpload
from services.ingress.infrastructure.analysis_webhook import (
    HttpAnalysisWebhook,
    WebhookForwardError,
)

UPLOAD = ForwardedUpload(
    filename="cv.pdf",
    content_type="application/pdf",
    content=b"%PDF-1.4",
    metadata={"fileId": "abc"},
)


def _webhook(handler):
    return HttpAnalysisWebhook(
        url="https://automation.test/hook",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def test_forward_sends_files_part_and_returns_json():
    bodies = []

    def handler(request):
        bodies.append(request.content)
        return httpx.Response(200, json={"status": "success", "candidate": "Ada"})

    assert _webhook(handler).forward(UPLOAD) == {"status": "success", "candidate": "Ada"}
    assert b'name="files"; filename="cv.pdf"' in bodies[0]
    assert b'name="fileId"' in bodies[0]


def test_empty_and_non_json_responses():
    assert _webhook(lambda request: httpx.Response(200)).forward(UPLOAD) is None
    assert _webhook(lambda request: httpx.Response(200, text="Accepted")).forward(UPLOAD) == {
        "raw": "Accepted"
    }


def test_upstream_error_status():
    with pytest.raises(WebhookForwardError) as excinfo:
        _webhook(lambda request: httpx.Response(500)).forward(UPLOAD)
    assert excinfo.value.status_code == 500


def test_upstream_unreachable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(WebhookForwardError, match="timed out"):
        _webhook(handler).forward(UPLOAD)
