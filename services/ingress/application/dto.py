from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class AnalysisCallbackCommand:
    status: str
    message: str
    candidate: str | None = None


@dataclass(frozen=True)
class ForwardUploadCommand:
    filename: str
    content_type: str
    content: bytes
    metadata: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryCvRecordsCommand:
    search: str = ""
    sort_by: str | None = None
    sort_direction: str | None = None
    page: int = 1
    page_size: int = 10
