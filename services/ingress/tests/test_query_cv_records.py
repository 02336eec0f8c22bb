import pytest

from services.ingress.application.dto import QueryCvRecordsCommand
from services.ingress.application.query_cv_records import QueryCvRecordsUseCase
from services.ingress.domain.cv_record import CvRecord, SortDirection, SortField


def _record(index):
    return CvRecord(
        id=f"rec{index}",
        first_name=f"First{index}",
        last_name=f"Last{index}",
        email=f"person{index}@example.com",
        universities="",
        resume_summary="",
        detected_gaps="",
        interview_questions="",
        holder_summary="",
        cv_url="",
        upload_date="2024-01-01T00:00:00.000Z",
    )


class FakeRepository:
    def __init__(self, count):
        self.records = [_record(i) for i in range(count)]
        self.calls = []

    def search(self, *, search, sort_field, direction):
        self.calls.append((search, sort_field, direction))
        return list(self.records)


def test_last_page_is_partial():
    use_case = QueryCvRecordsUseCase(FakeRepository(25))

    page = use_case.execute(QueryCvRecordsCommand(page=3, page_size=10))

    assert [r.id for r in page.records] == ["rec20", "rec21", "rec22", "rec23", "rec24"]
    assert page.total_records == 25
    assert page.total_pages == 3
    assert not page.has_next_page
    assert page.has_previous_page


def test_first_page_has_next():
    page = QueryCvRecordsUseCase(FakeRepository(11)).execute(QueryCvRecordsCommand())
    assert len(page.records) == 10
    assert page.has_next_page
    assert not page.has_previous_page


def test_empty_result():
    page = QueryCvRecordsUseCase(FakeRepository(0)).execute(QueryCvRecordsCommand())
    assert page.records == []
    assert page.total_pages == 0
    assert not page.has_next_page


def test_unknown_sort_options_fall_back_to_defaults():
    repository = FakeRepository(1)
    QueryCvRecordsUseCase(repository).execute(
        QueryCvRecordsCommand(search="  ada ", sort_by="salary", sort_direction="sideways")
    )
    assert repository.calls == [("ada", SortField.UPLOAD_DATE, SortDirection.DESC)]


def test_known_sort_options_are_passed_through():
    repository = FakeRepository(1)
    QueryCvRecordsUseCase(repository).execute(
        QueryCvRecordsCommand(sort_by="lastName", sort_direction="asc")
    )
    assert repository.calls == [("", SortField.LAST_NAME, SortDirection.ASC)]


@pytest.mark.parametrize("page, page_size", [(0, 10), (1, 0), (1, 101)])
def test_out_of_range_paging_is_rejected(page, page_size):
    with pytest.raises(ValueError):
        QueryCvRecordsUseCase(FakeRepository(1)).execute(
            QueryCvRecordsCommand(page=page, page_size=page_size)
        )
