from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from cv_intake.staging.files import FilePayload

ALLOWED_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
    }
)

UNSUPPORTED_TYPE_MESSAGE = (
    "Only PDF, Word documents, and images (JPEG, PNG, GIF, WebP) are allowed"
)

MEGABYTE = 1024 * 1024


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, reason: str) -> "ValidationResult":
        return cls(accepted=False, reason=reason)


@dataclass(frozen=True)
class Rejection:
    filename: str
    reason: str

    @property
    def message(self) -> str:
        return f"{self.filename}: {self.reason}"


class FileValidator:
    """Gates files by MIME allow-list and a configurable size ceiling."""

    def __init__(
        self,
        max_size_bytes: int,
        allowed_content_types: Iterable[str] = ALLOWED_CONTENT_TYPES,
    ) -> None:
        if max_size_bytes <= 0:
            raise ValueError("max_size_bytes must be positive")
        self._max_size_bytes = max_size_bytes
        self._allowed = frozenset(allowed_content_types)

    @property
    def max_size_bytes(self) -> int:
        return self._max_size_bytes

    def validate_metadata(self, content_type: str, size: int) -> ValidationResult:
        if content_type not in self._allowed:
            return ValidationResult.rejected(UNSUPPORTED_TYPE_MESSAGE)
        if size > self._max_size_bytes:
            return ValidationResult.rejected(
                f"File size must be less than {_format_limit(self._max_size_bytes)}"
            )
        return ValidationResult.ok()

    def validate(self, payload: FilePayload) -> ValidationResult:
        return self.validate_metadata(payload.content_type, payload.size)

    def partition(
        self, payloads: Iterable[FilePayload]
    ) -> tuple[list[FilePayload], list[Rejection]]:
        accepted: list[FilePayload] = []
        rejected: list[Rejection] = []
        for payload in payloads:
            result = self.validate(payload)
            if result.accepted:
                accepted.append(payload)
            else:
                rejected.append(Rejection(filename=payload.name, reason=result.reason or ""))
        return accepted, rejected


def _format_limit(size_bytes: int) -> str:
    if size_bytes % MEGABYTE == 0:
        return f"{size_bytes // MEGABYTE}MB"
    return f"{size_bytes} bytes"
