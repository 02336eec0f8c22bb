from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from ..application.dto import QueryCvRecordsCommand
from ..application.query_cv_records import QueryCvRecordsUseCase
from ..domain.cv_record import CvRecord, CvRecordPage
from ..infrastructure.airtable_records import RecordStoreError

LOGGER = logging.getLogger(__name__)


class CvRecordResponse(BaseModel):
    id: str
    firstName: str
    lastName: str
    email: str
    universities: str
    resumeSummary: str
    detectedGaps: str
    interviewQuestions: str
    holderSummary: str
    cvUrl: str
    uploadDate: str

    @classmethod
    def from_domain(cls, record: CvRecord) -> "CvRecordResponse":
        return cls(
            id=record.id,
            firstName=record.first_name,
            lastName=record.last_name,
            email=record.email,
            universities=record.universities,
            resumeSummary=record.resume_summary,
            detectedGaps=record.detected_gaps,
            interviewQuestions=record.interview_questions,
            holderSummary=record.holder_summary,
            cvUrl=record.cv_url,
            uploadDate=record.upload_date,
        )


class CvRecordPageResponse(BaseModel):
    records: List[CvRecordResponse]
    totalRecords: int
    totalPages: int
    currentPage: int
    hasNextPage: bool
    hasPreviousPage: bool

    @classmethod
    def from_domain(cls, page: CvRecordPage) -> "CvRecordPageResponse":
        return cls(
            records=[CvRecordResponse.from_domain(r) for r in page.records],
            totalRecords=page.total_records,
            totalPages=page.total_pages,
            currentPage=page.current_page,
            hasNextPage=page.has_next_page,
            hasPreviousPage=page.has_previous_page,
        )


def create_record_router(use_case: Optional[QueryCvRecordsUseCase]) -> APIRouter:
    router = APIRouter(prefix="/v1/cvs", tags=["cvs"])

    @router.get("", response_model=CvRecordPageResponse)
    async def query_cv_records_endpoint(
        search: str = "",
        sortBy: Optional[str] = None,
        sortDirection: Optional[str] = None,
        page: int = Query(default=1),
        pageSize: int = Query(default=10),
    ):
        if use_case is None:
            raise HTTPException(status_code=503, detail="CV records are not configured")
        command = QueryCvRecordsCommand(
            search=search,
            sort_by=sortBy,
            sort_direction=sortDirection,
            page=page,
            page_size=pageSize,
        )
        try:
            result = await run_in_threadpool(use_case.execute, command)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except RecordStoreError as exc:
            raise HTTPException(status_code=500, detail=str(exc)) from exc
        return CvRecordPageResponse.from_domain(result)

    return router
