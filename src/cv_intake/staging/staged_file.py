from __future__ import annotations

import os
import secrets
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from cv_intake.staging.files import FilePayload


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadStatus.SUCCESS, UploadStatus.ERROR)


def new_file_id() -> str:
    return secrets.token_hex(6)


class Preview:
    """A temporary on-disk copy of an image, owned by one staged entry."""

    def __init__(self, path: Path) -> None:
        self._path: Path | None = path

    @classmethod
    def create(cls, payload: FilePayload) -> "Preview":
        fd, name = tempfile.mkstemp(prefix="cv-intake-preview-", suffix=payload.suffix)
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload.content)
        return cls(Path(name))

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def released(self) -> bool:
        return self._path is None

    def release(self) -> None:
        path, self._path = self._path, None
        if path is not None:
            path.unlink(missing_ok=True)


@dataclass
class StagedFile:
    file_id: str
    payload: FilePayload
    status: UploadStatus = UploadStatus.PENDING
    error: str | None = None
    preview: Preview | None = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return self.payload.name

    @property
    def content_type(self) -> str:
        return self.payload.content_type

    @property
    def size(self) -> int:
        return self.payload.size

    @property
    def is_image(self) -> bool:
        return self.payload.is_image

    def release_preview(self) -> None:
        if self.preview is not None:
            self.preview.release()
            self.preview = None
