from __future__ import annotations

import asyncio
import io
import logging
from contextlib import ExitStack
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Sequence

from PIL import Image, UnidentifiedImageError

from cv_intake.errors import DecodeError, InsufficientSelection
from cv_intake.staging.files import FilePayload

LOGGER = logging.getLogger(__name__)

MIN_SOURCES = 2
BACKGROUND = (255, 255, 255)


class CompositionQuality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def factor(self) -> float:
        return _QUALITY_FACTORS[self]


_QUALITY_FACTORS = {
    CompositionQuality.LOW: 0.6,
    CompositionQuality.MEDIUM: 0.8,
    CompositionQuality.HIGH: 0.95,
}


def composite_filename(created_at: datetime) -> str:
    stamp = created_at.astimezone(timezone.utc)
    millis = stamp.microsecond // 1000
    return f"merged-image-{stamp:%Y-%m-%dT%H-%M-%S}-{millis:03d}Z.jpg"


def stack_layout(sizes: Sequence[tuple[int, int]]) -> tuple[tuple[int, int], list[tuple[int, int]]]:
    """Canvas size and top-left offsets for a centred vertical stack."""
    canvas_width = max(width for width, _ in sizes)
    offsets = []
    top = 0
    for width, height in sizes:
        offsets.append(((canvas_width - width) // 2, top))
        top += height
    return (canvas_width, top), offsets


class ImageCompositor:
    """Merges several images into one vertically stacked JPEG."""

    def __init__(
        self,
        *,
        decode_timeout: float = 10.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._decode_timeout = decode_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def compose(
        self,
        sources: Sequence[FilePayload],
        quality: CompositionQuality = CompositionQuality.MEDIUM,
    ) -> FilePayload:
        images = [source for source in sources if source.is_image]
        if len(sources) < MIN_SOURCES or len(images) != len(sources):
            raise InsufficientSelection(len(images))

        with ExitStack() as decoded:
            results = await asyncio.gather(
                *(self._decode(source) for source in sources), return_exceptions=True
            )
            for result in results:
                if isinstance(result, Image.Image):
                    decoded.callback(result.close)
            for result in results:
                if isinstance(result, BaseException):
                    raise result

            content = await asyncio.to_thread(_render, results, quality.factor)

        name = composite_filename(self._clock())
        LOGGER.info(
            "Merged %d images into %s (%d bytes, %s quality)",
            len(sources),
            name,
            len(content),
            quality.value,
        )
        return FilePayload(name=name, content_type="image/jpeg", content=content)

    async def _decode(self, source: FilePayload) -> Image.Image:
        decoding = asyncio.get_running_loop().run_in_executor(
            None, _decode_image, source.content
        )
        try:
            return await asyncio.wait_for(asyncio.shield(decoding), self._decode_timeout)
        except asyncio.TimeoutError as exc:
            decoding.add_done_callback(_close_abandoned)
            raise DecodeError(source.name, "timed out") from exc
        except asyncio.CancelledError:
            decoding.add_done_callback(_close_abandoned)
            raise
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            ValueError,
        ) as exc:
            raise DecodeError(source.name, str(exc) or type(exc).__name__) from exc


def _decode_image(content: bytes) -> Image.Image:
    with Image.open(io.BytesIO(content)) as opened:
        # Force a full decode so broken payloads fail here, not while drawing.
        opened.load()
        return opened.convert("RGB")


def _close_abandoned(decoding: "asyncio.Future[Image.Image]") -> None:
    if decoding.cancelled() or decoding.exception() is not None:
        return
    decoding.result().close()


def _render(images: Sequence[Image.Image], quality: float) -> bytes:
    (width, height), offsets = stack_layout([image.size for image in images])
    with Image.new("RGB", (width, height), BACKGROUND) as canvas:
        for image, offset in zip(images, offsets):
            canvas.paste(image, offset)
        buffer = io.BytesIO()
        canvas.save(buffer, format="JPEG", quality=int(round(quality * 100)))
    return buffer.getvalue()
