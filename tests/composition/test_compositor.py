import asyncio
import io
import time
from datetime import datetime, timezone

import pytest
from PIL import Image

from cv_intake.composition import compositor as compositor_module
from cv_intake.composition.compositor import (
    CompositionQuality,
    ImageCompositor,
    stack_layout,
)
from cv_intake.errors import DecodeError, InsufficientSelection
from cv_intake.staging.files import FilePayload


def _png(name, size, color):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return FilePayload(name=name, content_type="image/png", content=buffer.getvalue())


def _compositor():
    return ImageCompositor(
        clock=lambda: datetime(2024, 1, 2, 3, 4, 5, 6000, tzinfo=timezone.utc)
    )


def test_stack_layout_centres_narrower_images():
    canvas, offsets = stack_layout([(100, 50), (60, 30), (100, 20)])
    assert canvas == (100, 100)
    assert offsets == [(0, 0), (20, 50), (0, 80)]


def test_quality_factors():
    assert CompositionQuality.LOW.factor == 0.6
    assert CompositionQuality.MEDIUM.factor == 0.8
    assert CompositionQuality.HIGH.factor == 0.95


def test_compose_stacks_vertically_on_white():
    sources = [
        _png("red.png", (100, 50), (255, 0, 0)),
        _png("blue.png", (60, 30), (0, 0, 255)),
    ]

    merged = asyncio.run(_compositor().compose(sources, CompositionQuality.HIGH))

    assert merged.name == "merged-image-2024-01-02T03-04-05-006Z.jpg"
    assert merged.content_type == "image/jpeg"
    with Image.open(io.BytesIO(merged.content)) as image:
        assert image.size == (100, 80)
        red, green, blue = image.convert("RGB").getpixel((50, 65))
        assert blue > 200 and red < 60
        assert all(channel > 200 for channel in image.convert("RGB").getpixel((5, 65)))


def test_compose_requires_two_images():
    with pytest.raises(InsufficientSelection):
        asyncio.run(_compositor().compose([_png("one.png", (10, 10), "white")]))


def test_compose_rejects_non_image_sources():
    sources = [
        _png("one.png", (10, 10), "white"),
        FilePayload(name="cv.pdf", content_type="application/pdf", content=b"%PDF"),
    ]
    with pytest.raises(InsufficientSelection):
        asyncio.run(_compositor().compose(sources))


def test_undecodable_source_names_the_file():
    sources = [
        _png("good.png", (10, 10), "white"),
        FilePayload(name="broken.jpg", content_type="image/jpeg", content=b"not a jpeg"),
    ]
    with pytest.raises(DecodeError) as excinfo:
        asyncio.run(_compositor().compose(sources))
    assert excinfo.value.filename == "broken.jpg"


def test_slow_decode_times_out_and_late_image_is_closed(monkeypatch):
    closed = []

    class SlowImage:
        def close(self):
            closed.append(self)

    def slow_decode(content):
        time.sleep(0.2)
        return SlowImage()

    monkeypatch.setattr(compositor_module, "_decode_image", slow_decode)
    sources = [_png("first.png", (10, 10), "white"), _png("second.png", (10, 10), "black")]

    async def scenario():
        with pytest.raises(DecodeError) as excinfo:
            await ImageCompositor(decode_timeout=0.05).compose(sources)
        for _ in range(40):
            if len(closed) == 2:
                break
            await asyncio.sleep(0.05)
        return excinfo.value

    error = asyncio.run(scenario())

    assert error.filename == "first.png"
    assert "timed out" in str(error)
    assert len(closed) == 2


def test_decompression_bomb_is_a_decode_error(monkeypatch):
    sources = [_png("wide.png", (64, 64), "white"), _png("tall.png", (32, 96), "black")]
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)

    with pytest.raises(DecodeError) as excinfo:
        asyncio.run(_compositor().compose(sources))
    assert excinfo.value.filename == "wide.png"
