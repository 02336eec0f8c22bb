from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from cv_intake.capture.camera_session import CameraSession
from cv_intake.composition.compositor import (
    MIN_SOURCES,
    CompositionQuality,
    ImageCompositor,
)
from cv_intake.errors import (
    CaptureUnavailable,
    CompositeRejected,
    InsufficientSelection,
    UnknownStagedFile,
)
from cv_intake.staging.files import FilePayload
from cv_intake.staging.staged_file import (
    Preview,
    StagedFile,
    UploadStatus,
    new_file_id,
)
from cv_intake.uploads.upload_queue import UploadBatch, UploadQueue
from cv_intake.validation.file_validator import FileValidator, Rejection

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddResult:
    staged: list[StagedFile] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [rejection.message for rejection in self.rejections]


class UploadSession:
    """Files a user has staged for one submission, plus the camera feeding them.

    Only this object's own operations mutate the staged list. Closing the
    session releases the camera and all previews but leaves submitted uploads
    running in the queue.
    """

    def __init__(
        self,
        *,
        validator: FileValidator,
        queue: UploadQueue,
        compositor: ImageCompositor | None = None,
        camera_factory: Callable[[], CameraSession] = CameraSession,
        create_previews: bool = True,
    ) -> None:
        self._validator = validator
        self._queue = queue
        self._compositor = compositor or ImageCompositor()
        self._camera_factory = camera_factory
        self._create_previews = create_previews
        self._files: list[StagedFile] = []
        self._selected: set[str] = set()
        self._camera: CameraSession | None = None
        self._closed = False

    @property
    def files(self) -> tuple[StagedFile, ...]:
        return tuple(self._files)

    @property
    def selection(self) -> tuple[str, ...]:
        return tuple(f.file_id for f in self._files if f.file_id in self._selected)

    @property
    def camera(self) -> CameraSession | None:
        return self._camera

    def get(self, file_id: str) -> StagedFile:
        for entry in self._files:
            if entry.file_id == file_id:
                return entry
        raise UnknownStagedFile(file_id)

    def add_files(self, payloads: Iterable[FilePayload]) -> AddResult:
        self._ensure_open()
        accepted, rejections = self._validator.partition(payloads)
        for rejection in rejections:
            LOGGER.warning("Rejected %s", rejection.message)
        staged = [self._stage(payload) for payload in accepted]
        self._files.extend(staged)
        return AddResult(staged=staged, rejections=rejections)

    def remove(self, file_id: str) -> None:
        entry = self.get(file_id)
        self._files.remove(entry)
        self._selected.discard(file_id)
        entry.release_preview()

    def acknowledge(self, file_id: str) -> None:
        """Drop an entry whose upload has finished."""
        entry = self.get(file_id)
        if not entry.status.is_terminal:
            raise ValueError(f"{entry.name} is still {entry.status.value}")
        self.remove(file_id)

    def clear(self) -> None:
        for entry in self._files:
            entry.release_preview()
        self._files = []
        self._selected.clear()

    def toggle_selection(self, file_id: str) -> bool:
        entry = self.get(file_id)
        if file_id in self._selected:
            self._selected.discard(file_id)
            return False
        if not entry.is_image:
            raise ValueError(f"{entry.name} is not an image and cannot be merged")
        if entry.status is not UploadStatus.PENDING:
            raise ValueError(f"{entry.name} is already {entry.status.value}")
        self._selected.add(file_id)
        return True

    async def compose_selection(
        self, quality: CompositionQuality = CompositionQuality.MEDIUM
    ) -> StagedFile:
        self._ensure_open()
        sources = [f for f in self._files if f.file_id in self._selected]
        if len(sources) < MIN_SOURCES:
            raise InsufficientSelection(len(sources))

        merged = await self._compositor.compose([s.payload for s in sources], quality)
        verdict = self._validator.validate(merged)
        if not verdict.accepted:
            raise CompositeRejected(verdict.reason or "rejected")

        # Sources may have been removed, deselected or submitted while decoding.
        staged = {f.file_id: f for f in self._files}
        usable = [
            s
            for s in sources
            if staged.get(s.file_id) is s
            and s.file_id in self._selected
            and s.status is UploadStatus.PENDING
        ]
        if len(usable) != len(sources):
            raise InsufficientSelection(len(usable))
        consumed = {s.file_id for s in sources}
        composite = self._stage(merged)
        replaced: list[StagedFile] = []
        inserted = False
        for entry in self._files:
            if entry.file_id not in consumed:
                replaced.append(entry)
            elif not inserted:
                replaced.append(composite)
                inserted = True
        self._files = replaced
        self._selected.clear()
        for source in sources:
            source.release_preview()
        LOGGER.info("Replaced %d selected images with %s", len(sources), merged.name)
        return composite

    async def start_camera(self) -> CameraSession:
        self._ensure_open()
        self.stop_camera()
        camera = self._camera_factory()
        self._camera = camera
        try:
            await camera.start()
        except BaseException:
            camera.stop()
            if self._camera is camera:
                self._camera = None
            raise
        return camera

    async def capture_photo(self) -> AddResult:
        if self._camera is None:
            raise CaptureUnavailable("Camera is not started")
        payload = await self._camera.capture()
        return self.add_files([payload])

    def stop_camera(self) -> None:
        camera, self._camera = self._camera, None
        if camera is not None:
            camera.stop()

    def submit(self, file_ids: Sequence[str] | None = None) -> UploadBatch:
        self._ensure_open()
        if file_ids is None:
            entries = [f for f in self._files if f.status is UploadStatus.PENDING]
        else:
            entries = [self.get(file_id) for file_id in file_ids]
        batch = self._queue.submit(entries)
        self._selected -= {e.file_id for e in entries}
        return batch

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.stop_camera()
        for entry in self._files:
            entry.release_preview()

    def __enter__(self) -> "UploadSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _stage(self, payload: FilePayload) -> StagedFile:
        known = {f.file_id for f in self._files}
        file_id = new_file_id()
        while file_id in known:
            file_id = new_file_id()
        preview = (
            Preview.create(payload) if self._create_previews and payload.is_image else None
        )
        return StagedFile(file_id=file_id, payload=payload, preview=preview)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Upload session is closed")
