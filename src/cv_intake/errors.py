from __future__ import annotations


class IntakeError(Exception):
    """Base class for errors raised by the intake core."""


class CameraUnavailable(IntakeError):
    """The camera could not be opened (permission denied, missing or busy device)."""


class CaptureUnavailable(IntakeError):
    """A still was requested while the camera session was not live."""


class CompositionError(IntakeError):
    pass


class InsufficientSelection(CompositionError):
    def __init__(self, selected: int) -> None:
        super().__init__(
            f"Select at least 2 images to merge ({selected} selected)"
        )
        self.selected = selected


class DecodeError(CompositionError):
    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"Could not decode {filename}: {reason}")
        self.filename = filename
        self.reason = reason


class CompositeRejected(CompositionError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Merged image was rejected: {reason}")
        self.reason = reason


class UploadError(IntakeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotificationFetchError(IntakeError):
    pass


class UnknownStagedFile(IntakeError, KeyError):
    def __init__(self, file_id: str) -> None:
        super().__init__(file_id)
        self.file_id = file_id

    def __str__(self) -> str:
        return f"No staged file with id {self.file_id!r}"
