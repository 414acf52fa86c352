from __future__ import annotations

import io
import wave

import pytest
from PIL import Image


def make_wav_bytes(
    *,
    duration_seconds: float = 0.25,
    sample_rate: int = 44_100,
    channels: int = 2,
    sample_width: int = 2,
) -> bytes:
    frames = int(duration_seconds * sample_rate)
    with io.BytesIO() as buffer:
        with wave.open(buffer, "wb") as wav:
            wav.setnchannels(channels)
            wav.setsampwidth(sample_width)
            wav.setframerate(sample_rate)
            wav.writeframes(b"\x00" * sample_width * channels * frames)
        return buffer.getvalue()


def make_png_bytes(*, width: int = 1200, height: int = 1200, color: str = "RGB") -> bytes:
    with io.BytesIO() as buffer:
        Image.new(color, (width, height)).save(buffer, format="PNG")
        return buffer.getvalue()


@pytest.fixture
def wav_bytes() -> bytes:
    return make_wav_bytes()


@pytest.fixture
def cover_png() -> bytes:
    return make_png_bytes()
