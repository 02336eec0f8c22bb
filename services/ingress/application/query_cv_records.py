from __future__ import annotations

import math

from .dto import QueryCvRecordsCommand
from .interfaces import CvRecordRepository
from ..domain.cv_record import CvRecordPage, SortDirection, SortField

MAX_PAGE_SIZE = 100


class QueryCvRecordsUseCase:
    def __init__(self, repository: CvRecordRepository) -> None:
        self._repository = repository

    def execute(self, command: QueryCvRecordsCommand) -> CvRecordPage:
        if command.page < 1:
            raise ValueError("page must be at least 1")
        if not 1 <= command.page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"pageSize must be between 1 and {MAX_PAGE_SIZE}")

        # Airtable pages by cursor only; fetch the full match set and slice locally.
        records = self._repository.search(
            search=command.search.strip(),
            sort_field=SortField.parse(command.sort_by),
            direction=SortDirection.parse(command.sort_direction),
        )
        start = (command.page - 1) * command.page_size
        total = len(records)
        return CvRecordPage(
            records=records[start : start + command.page_size],
            total_records=total,
            total_pages=math.ceil(total / command.page_size),
            current_page=command.page,
        )
