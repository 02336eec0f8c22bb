import pytest
from fastapi.testclient import TestClient

from services.ingress.config import IngressConfig
from services.ingress.domain.cv_record import CvRecord, SortDirection, SortField
from services.ingress.infrastructure.analysis_webhook import WebhookForwardError
from services.ingress.infrastructure.notification_mailbox import (
    InMemoryNotificationMailbox,
)
from services.ingress.main import build_app


class FakeWebhook:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.uploads = []

    def forward(self, upload):
        self.uploads.append(upload)
        if self.error is not None:
            raise self.error
        return self.response


class FakeRecords:
    def __init__(self):
        self.calls = []

    def search(self, *, search, sort_field, direction):
        self.calls.append((search, sort_field, direction))
        return [
            CvRecord(
                id="rec1",
                first_name="Ada",
                last_name="Lovelace",
                email="ada@example.com",
                universities="Cambridge",
                resume_summary="Analyst",
                detected_gaps="",
                interview_questions="",
                holder_summary="",
                cv_url="https://files.test/ada.pdf",
                upload_date="2024-02-02T10:00:00.000Z",
            )
        ]


def _client(config=None, **overrides):
    overrides.setdefault("mailbox", InMemoryNotificationMailbox())
    return TestClient(build_app(config or IngressConfig(), **overrides))


def test_ping():
    assert _client().get("/ping").json() == {"message": "pong"}


def test_callback_is_normalized_and_listed():
    client = _client()

    response = client.post(
        "/v1/webhook",
        json={"status": "success", "message": "Row updated", "candidate": "Ada"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Webhook processed successfully"
    notification = body["notification"]
    assert notification["title"] == "CV Analysis: Ada"
    assert notification["type"] == "cv_analysis"
    assert notification["priority"] == "medium"
    assert notification["originalMessage"] == "Row updated"
    assert notification["id"].startswith("webhook_")

    listed = client.get("/v1/webhook").json()
    assert listed["success"] is True
    assert [n["id"] for n in listed["notifications"]] == [notification["id"]]


def test_other_payloads_are_acknowledged_but_not_stored():
    client = _client()

    response = client.post("/v1/webhook", json={"event": "ping"})

    assert response.status_code == 200
    assert response.json()["message"] == "Webhook received successfully"
    assert response.json()["notification"] is None
    assert client.get("/v1/webhook").json()["notifications"] == []


def test_upload_is_forwarded_with_metadata():
    webhook = FakeWebhook(response={"status": "success", "candidate": "Ada"})
    client = _client(webhook=webhook)

    response = client.post(
        "/v1/uploads",
        files={"file": ("cv.pdf", b"%PDF-1.4", "application/pdf")},
        data={"fileName": "cv.pdf", "fileId": "abc123"},
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"status": "success", "candidate": "Ada"}
    (upload,) = webhook.uploads
    assert upload.content == b"%PDF-1.4"
    assert upload.metadata == {"fileName": "cv.pdf", "fileId": "abc123"}


def test_upload_rejections():
    client = _client(IngressConfig(max_upload_bytes=4), webhook=FakeWebhook())

    missing = client.post("/v1/uploads", data={"fileName": "cv.pdf"})
    wrong_type = client.post(
        "/v1/uploads", files={"file": ("page.html", b"<p>", "text/html")}
    )
    too_big = client.post(
        "/v1/uploads", files={"file": ("cv.pdf", b"%PDF-1.4", "application/pdf")}
    )

    assert missing.status_code == 400
    assert missing.json()["detail"] == "No file provided"
    assert wrong_type.status_code == 400
    assert wrong_type.json()["detail"].startswith("Only PDF, Word documents")
    assert too_big.status_code == 400
    assert too_big.json()["detail"] == "File size must be less than 4 bytes"


def test_upload_without_webhook_is_server_error():
    response = _client().post(
        "/v1/uploads", files={"file": ("cv.pdf", b"%PDF", "application/pdf")}
    )
    assert response.status_code == 500
    assert response.json()["detail"] == "Webhook URL not configured"


def test_upstream_failure_is_bad_gateway():
    webhook = FakeWebhook(error=WebhookForwardError("Webhook error: HTTP 500", status_code=500))
    response = _client(webhook=webhook).post(
        "/v1/uploads", files={"file": ("cv.pdf", b"%PDF", "application/pdf")}
    )
    assert response.status_code == 502
    assert response.json()["detail"] == "Webhook error: HTTP 500"


def test_records_unavailable_without_airtable():
    assert _client().get("/v1/cvs").status_code == 503


def test_records_are_returned_in_camel_case():
    records = FakeRecords()
    client = _client(record_repository=records)

    response = client.get(
        "/v1/cvs",
        params={"search": "ada", "sortBy": "bogus", "sortDirection": "asc", "pageSize": 5},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["totalRecords"] == 1
    assert body["totalPages"] == 1
    assert body["currentPage"] == 1
    assert body["hasNextPage"] is False
    assert body["hasPreviousPage"] is False
    (record,) = body["records"]
    assert record["firstName"] == "Ada"
    assert record["cvUrl"] == "https://files.test/ada.pdf"
    assert records.calls == [("ada", SortField.UPLOAD_DATE, SortDirection.ASC)]


@pytest.mark.parametrize("params", [{"page": 0}, {"pageSize": 101}])
def test_records_paging_bounds(params):
    client = _client(record_repository=FakeRecords())
    assert client.get("/v1/cvs", params=params).status_code == 400
