from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from ..domain.cv_record import CvRecord, SortDirection, SortField

LOGGER = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.airtable.com/v0"
SEARCH_FIELDS = ("First Name", "Last Name", "Email")


class RecordStoreError(RuntimeError):
    pass


def build_search_formula(search: str) -> str | None:
    if not search:
        return None
    needle = search.lower().replace("\\", "\\\\").replace('"', '\\"')
    conditions = ", ".join(
        f'SEARCH("{needle}", LOWER({{{field}}}))' for field in SEARCH_FIELDS
    )
    return f"OR({conditions})"


def record_from_airtable(record: Mapping[str, Any]) -> CvRecord:
    fields = record.get("fields") or {}
    cv = fields.get("CV") or ""
    if isinstance(cv, list):
        # Attachment fields arrive as a list of {"url": ..., "filename": ...}.
        cv = cv[0].get("url", "") if cv and isinstance(cv[0], dict) else ""
    return CvRecord(
        id=record["id"],
        first_name=fields.get("First Name") or "",
        last_name=fields.get("Last Name") or "",
        email=fields.get("Email") or "",
        universities=fields.get("Univeristies ") or "",
        resume_summary=fields.get("doc_resume_summary") or "",
        detected_gaps=fields.get("detected_gaps_1") or "",
        interview_questions=fields.get("interview_questions") or "",
        holder_summary=fields.get("holder_summary") or "",
        cv_url=cv,
        upload_date=fields.get("Time") or record.get("createdTime") or "",
    )


class AirtableCvRecordRepository:
    def __init__(
        self,
        *,
        api_key: str,
        base_id: str,
        table_name: str,
        api_url: str = DEFAULT_API_URL,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = f"{api_url.rstrip('/')}/{base_id}/{table_name}"
        self._client = client or httpx.Client(timeout=15.0)
        self._headers = {"Authorization": f"Bearer {api_key}"}

    def search(
        self,
        *,
        search: str,
        sort_field: SortField,
        direction: SortDirection,
    ) -> list[CvRecord]:
        params: dict[str, str] = {
            "sort[0][field]": sort_field.airtable_field,
            "sort[0][direction]": direction.value,
            "pageSize": "100",
        }
        formula = build_search_formula(search)
        if formula:
            params["filterByFormula"] = formula

        records: list[CvRecord] = []
        offset: str | None = None
        while True:
            page_params = dict(params, offset=offset) if offset else params
            body = self._get(page_params)
            records.extend(record_from_airtable(r) for r in body.get("records", []))
            offset = body.get("offset")
            if not offset:
                return records

    def _get(self, params: Mapping[str, str]) -> dict[str, Any]:
        try:
            response = self._client.get(self._url, params=params, headers=self._headers)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.error("Error fetching CV records: %s", exc)
            raise RecordStoreError("Failed to fetch CV records") from exc
