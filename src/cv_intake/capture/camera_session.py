"""Live camera capture backed by OpenCV.

A ``CameraSession`` owns at most one ``cv2.VideoCapture``. Blocking OpenCV
calls run in the default executor so the event loop stays responsive. Every
exit path (failed start, explicit stop, context exit) releases the device,
and it is released exactly once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

import cv2
import numpy as np

from cv_intake.errors import CameraUnavailable, CaptureUnavailable
from cv_intake.staging.files import FilePayload

LOGGER = logging.getLogger(__name__)


class CameraState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    LIVE = "live"
    CAPTURING = "capturing"


@dataclass(frozen=True)
class CameraSettings:
    device: int | str = 0
    preferred_width: int = 1920
    preferred_height: int = 1080
    jpeg_quality: float = 0.9


def capture_filename(taken_at: datetime) -> str:
    stamp = taken_at.astimezone(timezone.utc)
    millis = stamp.microsecond // 1000
    return f"camera-capture-{stamp:%Y-%m-%dT%H-%M-%S}-{millis:03d}Z.jpg"


class CameraSession:
    def __init__(
        self,
        settings: CameraSettings | None = None,
        *,
        capture_factory: Callable[[int | str], Any] = cv2.VideoCapture,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._settings = settings or CameraSettings()
        self._capture_factory = capture_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._state = CameraState.IDLE
        self._capture: Any = None
        self._frame_size: tuple[int, int] | None = None
        # Bumped on every start/stop so late executor results can tell they are stale.
        self._generation = 0

    @property
    def state(self) -> CameraState:
        return self._state

    @property
    def is_live(self) -> bool:
        return self._state in (CameraState.LIVE, CameraState.CAPTURING)

    @property
    def holds_device(self) -> bool:
        return self._capture is not None

    @property
    def frame_size(self) -> tuple[int, int] | None:
        """(width, height) the device actually delivers, once live."""
        return self._frame_size

    async def start(self) -> None:
        if self._state is not CameraState.IDLE:
            self.stop()
        self._generation += 1
        generation = self._generation
        self._state = CameraState.STARTING
        opening = asyncio.get_running_loop().run_in_executor(None, self._open_device)
        try:
            capture, frame_size = await asyncio.shield(opening)
        except asyncio.CancelledError:
            opening.add_done_callback(_release_abandoned)
            if generation == self._generation:
                self._state = CameraState.IDLE
            raise
        except Exception as exc:
            if generation == self._generation:
                self._state = CameraState.IDLE
            LOGGER.warning("Unable to access camera %r: %s", self._settings.device, exc)
            raise
        if generation != self._generation:
            capture.release()
            raise CameraUnavailable("Camera was stopped before it became ready")
        self._capture = capture
        self._frame_size = frame_size
        self._state = CameraState.LIVE
        LOGGER.info(
            "Camera %r live at %sx%s", self._settings.device, frame_size[0], frame_size[1]
        )

    async def capture(self) -> FilePayload:
        if self._state is not CameraState.LIVE or self._capture is None:
            raise CaptureUnavailable(f"Camera is {self._state.value}, not live")
        generation = self._generation
        capture = self._capture
        taken_at = self._clock()
        self._state = CameraState.CAPTURING
        try:
            frame = await asyncio.to_thread(_read_frame, capture)
        except BaseException:
            if generation == self._generation:
                self._state = CameraState.LIVE
            raise
        if generation != self._generation:
            raise CaptureUnavailable("Camera was stopped during capture")
        self._state = CameraState.LIVE

        content = await asyncio.to_thread(
            _encode_jpeg, frame, self._settings.jpeg_quality
        )
        return FilePayload(
            name=capture_filename(taken_at), content_type="image/jpeg", content=content
        )

    def stop(self) -> None:
        self._generation += 1
        capture, self._capture = self._capture, None
        self._state = CameraState.IDLE
        self._frame_size = None
        if capture is not None:
            capture.release()
            LOGGER.info("Camera %r released", self._settings.device)

    async def __aenter__(self) -> "CameraSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _open_device(self) -> tuple[Any, tuple[int, int]]:
        try:
            capture = self._capture_factory(self._settings.device)
        except cv2.error as exc:
            raise CameraUnavailable(str(exc)) from exc
        try:
            if not capture.isOpened():
                raise CameraUnavailable("Camera could not be opened")
            # Requested size is a hint; drivers are free to pick another mode.
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self._settings.preferred_width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self._settings.preferred_height)
            ok, frame = capture.read()
            if not ok or frame is None:
                raise CameraUnavailable("Camera did not deliver a frame")
        except cv2.error as exc:
            capture.release()
            raise CameraUnavailable(str(exc)) from exc
        except CameraUnavailable:
            capture.release()
            raise
        height, width = frame.shape[:2]
        return capture, (int(width), int(height))


def _release_abandoned(opening: "asyncio.Future[tuple[Any, tuple[int, int]]]") -> None:
    if opening.cancelled() or opening.exception() is not None:
        return
    capture, _ = opening.result()
    capture.release()


def _read_frame(capture: Any) -> np.ndarray:
    ok, frame = capture.read()
    if not ok or frame is None:
        raise CaptureUnavailable("Camera returned no frame")
    return frame


def _encode_jpeg(frame: np.ndarray, quality: float) -> bytes:
    # The still takes the frame's own dimensions, never the requested ones.
    params = [int(cv2.IMWRITE_JPEG_QUALITY), int(round(quality * 100))]
    ok, buffer = cv2.imencode(".jpg", frame, params)
    if not ok:
        raise CaptureUnavailable("Captured frame could not be encoded")
    return buffer.tobytes()
