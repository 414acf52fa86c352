from __future__ import annotations

from pathlib import Path

import pytest

from conftest import make_wav_bytes
from tuneflow.ingest_validation import (
    IngestValidationError,
    ValidationPolicy,
    validate_audio_bytes,
    validate_audio_file,
)


def make_flac_bytes(
    *,
    duration_seconds: float = 1.0,
    sample_rate: int = 44_100,
    channels: int = 2,
    bits_per_sample: int = 16,
) -> bytes:
    total_samples = int(duration_seconds * sample_rate)
    min_block = (4096).to_bytes(2, "big")
    max_block = (4096).to_bytes(2, "big")
    min_frame = (0).to_bytes(3, "big")
    max_frame = (0).to_bytes(3, "big")
    sample_field = (
        ((sample_rate & 0xFFFFF) << 44)
        | (((channels - 1) & 0x7) << 41)
        | (((bits_per_sample - 1) & 0x1F) << 36)
        | (total_samples & 0xFFFFFFFFF)
    )
    stream_info = min_block + max_block + min_frame + max_frame + sample_field.to_bytes(8, "big") + (b"\x00" * 16)
    return b"fLaC" + bytes([0x80]) + (34).to_bytes(3, "big") + stream_info + b"\x00\x00"


def make_mp3_frame() -> bytes:
    header = (0x7FF << 21) | (0x3 << 19) | (0x1 << 17) | (0x1 << 16) | (9 << 12)
    return header.to_bytes(4, "big") + b"\x00" * 413


def test_validate_accepts_broadcast_wav_and_flac(tmp_path: Path) -> None:
    wav = tmp_path / "valid.wav"
    flac = tmp_path / "valid.flac"
    wav.write_bytes(make_wav_bytes(duration_seconds=1.0))
    flac.write_bytes(make_flac_bytes())

    wav_meta = validate_audio_file(wav)
    flac_meta = validate_audio_file(flac)

    assert wav_meta.container == "wav"
    assert wav_meta.sample_rate_hz == 44_100
    assert wav_meta.bit_depth == 16
    assert wav_meta.duration_seconds == pytest.approx(1.0)
    assert flac_meta.container == "flac"
    assert flac_meta.bit_depth == 16


def test_validate_rejects_48k_wav_with_sample_rate_message() -> None:
    with pytest.raises(IngestValidationError) as exc:
        validate_audio_bytes(make_wav_bytes(sample_rate=48_000), filename="song.wav")

    assert exc.value.code == "invalid_sample_rate"
    assert "44,100Hz" in exc.value.message


def test_validate_rejects_24_bit_wav() -> None:
    with pytest.raises(IngestValidationError) as exc:
        validate_audio_bytes(make_wav_bytes(sample_width=3), filename="song.wav")

    assert exc.value.code == "invalid_bit_depth"


def test_validate_rejects_24_bit_flac() -> None:
    with pytest.raises(IngestValidationError) as exc:
        validate_audio_bytes(make_flac_bytes(bits_per_sample=24), filename="song.flac")

    assert exc.value.code == "invalid_bit_depth"


def test_validate_rejects_lossy_extension_before_parsing() -> None:
    with pytest.raises(IngestValidationError) as exc:
        validate_audio_bytes(make_wav_bytes(), filename="song.mp3")

    assert exc.value.code == "lossy_container"


def test_validate_rejects_mp3_payload_without_extension() -> None:
    with pytest.raises(IngestValidationError) as exc:
        validate_audio_bytes(make_mp3_frame() * 4, filename=None)

    assert exc.value.code == "lossy_container"


def test_validate_rejects_unknown_extension() -> None:
    with pytest.raises(IngestValidationError) as exc:
        validate_audio_bytes(make_wav_bytes(), filename="song.aiff")

    assert exc.value.code == "unsupported_container"


def test_validate_rejects_corrupt_file(tmp_path: Path) -> None:
    bad = tmp_path / "bad.wav"
    bad.write_bytes(b"RIFF\x24\x00\x00\x00WAVEfmt \x02\x00\x00\x00")

    with pytest.raises(IngestValidationError) as exc:
        validate_audio_file(bad)

    assert exc.value.code == "corrupted_file"


def test_validate_rejects_empty_file(tmp_path: Path) -> None:
    empty = tmp_path / "empty.wav"
    empty.write_bytes(b"")

    with pytest.raises(IngestValidationError) as exc:
        validate_audio_file(empty)

    assert exc.value.code == "empty_file"


def test_validate_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(IngestValidationError) as exc:
        validate_audio_file(tmp_path / "missing.wav")

    assert exc.value.code == "file_not_found"


def test_validate_rejects_out_of_policy_size(tmp_path: Path) -> None:
    wav = tmp_path / "size.wav"
    wav.write_bytes(make_wav_bytes(duration_seconds=0.5))

    policy = ValidationPolicy(max_file_size_bytes=32)
    with pytest.raises(IngestValidationError) as exc:
        validate_audio_file(wav, policy=policy)

    assert exc.value.code == "file_too_large"


def test_validate_rejects_invalid_channel_count(tmp_path: Path) -> None:
    wav = tmp_path / "channels.wav"
    wav.write_bytes(make_wav_bytes(channels=2))

    policy = ValidationPolicy(max_channel_count=1)
    with pytest.raises(IngestValidationError) as exc:
        validate_audio_file(wav, policy=policy)

    assert exc.value.code == "invalid_channel_count"


def test_validation_error_as_dict() -> None:
    error = IngestValidationError("invalid_sample_rate", "bad rate")

    assert error.as_dict() == {"code": "invalid_sample_rate", "message": "bad rate"}
    assert str(error) == "bad rate"
