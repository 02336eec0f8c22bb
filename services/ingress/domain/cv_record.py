from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List


class SortField(str, Enum):
    UPLOAD_DATE = "uploadDate"
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    EMAIL = "email"

    @property
    def airtable_field(self) -> str:
        return _AIRTABLE_SORT_FIELDS[self]

    @classmethod
    def parse(cls, raw: str | None) -> "SortField":
        try:
            return cls(raw)
        except ValueError:
            return cls.UPLOAD_DATE


_AIRTABLE_SORT_FIELDS = {
    SortField.UPLOAD_DATE: "Time",
    SortField.FIRST_NAME: "First Name",
    SortField.LAST_NAME: "Last Name",
    SortField.EMAIL: "Email",
}


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, raw: str | None) -> "SortDirection":
        try:
            return cls(raw)
        except ValueError:
            return cls.DESC


@dataclass(frozen=True)
class CvRecord:
    id: str
    first_name: str
    last_name: str
    email: str
    universities: str
    resume_summary: str
    detected_gaps: str
    interview_questions: str
    holder_summary: str
    cv_url: str
    upload_date: str


@dataclass(frozen=True)
class CvRecordPage:
    records: List[CvRecord]
    total_records: int
    total_pages: int
    current_page: int

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 1
