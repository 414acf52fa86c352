"""Audio ingest validation service.

This module performs lightweight container validation and reads just enough of
the binary header to enforce the broadcast profile (sample rate and bit depth)
before an audio file is accepted into a release.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import struct

from tuneflow.audio_contract import (
    ACCEPTED_SOURCE_EXTENSIONS,
    BROADCAST_BIT_DEPTH,
    BROADCAST_SAMPLE_RATE_HZ,
    LOSSY_SOURCE_EXTENSIONS,
    MAX_AUDIO_FILE_SIZE_BYTES,
)


@dataclass(frozen=True, slots=True)
class ValidationPolicy:
    max_file_size_bytes: int = MAX_AUDIO_FILE_SIZE_BYTES
    required_sample_rate_hz: int = BROADCAST_SAMPLE_RATE_HZ
    required_bit_depth: int = BROADCAST_BIT_DEPTH
    min_channel_count: int = 1
    max_channel_count: int = 2


@dataclass(frozen=True, slots=True)
class AudioMetadata:
    container: str
    codec: str
    duration_seconds: float
    sample_rate_hz: int
    bit_depth: int
    channel_count: int
    size_bytes: int


@dataclass(frozen=True, slots=True)
class IngestValidationError(ValueError):
    code: str
    message: str

    def __str__(self) -> str:
        return self.message

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


def validate_audio_file(path: Path, policy: ValidationPolicy | None = None) -> AudioMetadata:
    policy = policy or ValidationPolicy()
    if not path.exists() or not path.is_file():
        raise IngestValidationError("file_not_found", f"Audio file not found: {path}")

    try:
        raw_bytes = path.read_bytes()
    except OSError as exc:
        raise IngestValidationError("file_unreadable", f"Audio file is unreadable: {path}") from exc

    return validate_audio_bytes(raw_bytes, filename=path.name, policy=policy)


def validate_audio_bytes(
    raw_bytes: bytes,
    *,
    filename: str | None,
    policy: ValidationPolicy | None = None,
) -> AudioMetadata:
    policy = policy or ValidationPolicy()
    size_bytes = len(raw_bytes)
    if size_bytes == 0:
        raise IngestValidationError("empty_file", "Audio file is empty.")
    if size_bytes > policy.max_file_size_bytes:
        raise IngestValidationError(
            "file_too_large",
            f"Audio file exceeds max size limit of {policy.max_file_size_bytes} bytes.",
        )

    extension = Path(filename).suffix.lower() if filename else ""
    if extension in LOSSY_SOURCE_EXTENSIONS:
        raise IngestValidationError(
            "lossy_container",
            f"'{filename}' uses a lossy format. Only lossless WAV or FLAC masters are accepted.",
        )
    if extension and extension not in ACCEPTED_SOURCE_EXTENSIONS:
        supported = ", ".join(ACCEPTED_SOURCE_EXTENSIONS)
        raise IngestValidationError(
            "unsupported_container",
            f"Unsupported container for '{filename}'. Supported extensions: {supported}.",
        )

    metadata = _parse_metadata(raw_bytes)
    _check_policy(metadata, policy, filename)
    return metadata


def _check_policy(metadata: AudioMetadata, policy: ValidationPolicy, filename: str | None) -> None:
    label = filename or "audio file"
    if metadata.sample_rate_hz != policy.required_sample_rate_hz:
        raise IngestValidationError(
            "invalid_sample_rate",
            f"Invalid sample rate for {label}: {metadata.sample_rate_hz}Hz. "
            f"File must be {policy.required_sample_rate_hz:,}Hz.",
        )
    if metadata.bit_depth != policy.required_bit_depth:
        raise IngestValidationError(
            "invalid_bit_depth",
            f"Invalid bit depth for {label}: {metadata.bit_depth}-bit. "
            f"File must be {policy.required_bit_depth}-bit.",
        )
    if not (policy.min_channel_count <= metadata.channel_count <= policy.max_channel_count):
        raise IngestValidationError(
            "invalid_channel_count",
            f"Channel count {metadata.channel_count} is outside supported range.",
        )


def _parse_metadata(raw_bytes: bytes) -> AudioMetadata:
    if raw_bytes.startswith(b"RIFF") and raw_bytes[8:12] == b"WAVE":
        return _parse_wav(raw_bytes)
    if raw_bytes.startswith(b"fLaC"):
        return _parse_flac(raw_bytes)
    if raw_bytes.startswith(b"ID3") or raw_bytes[:1] == b"\xFF":
        raise IngestValidationError("lossy_container", "MP3 audio is lossy. Only lossless WAV or FLAC masters are accepted.")
    raise IngestValidationError("unsupported_container", "Unsupported or unrecognized audio container.")


def _parse_wav(raw_bytes: bytes) -> AudioMetadata:
    offset = 12
    sample_rate = 0
    channels = 0
    audio_format = 0
    bits_per_sample = 0
    data_size = 0
    while offset + 8 <= len(raw_bytes):
        chunk_id = raw_bytes[offset : offset + 4]
        chunk_size = int.from_bytes(raw_bytes[offset + 4 : offset + 8], "little")
        chunk_data_start = offset + 8
        chunk_data_end = chunk_data_start + chunk_size
        if chunk_id == b"data":
            # Header inspection only needs the declared size; truncated payloads still carry a valid header.
            data_size = chunk_size
            break
        if chunk_data_end > len(raw_bytes):
            raise IngestValidationError("corrupted_file", "Corrupted WAV file structure.")
        if chunk_id == b"fmt ":
            if chunk_size < 16:
                raise IngestValidationError("corrupted_file", "Corrupted WAV fmt chunk.")
            audio_format, channels, sample_rate = struct.unpack("<HHI", raw_bytes[chunk_data_start : chunk_data_start + 8])
            bits_per_sample = int.from_bytes(raw_bytes[chunk_data_start + 14 : chunk_data_start + 16], "little")
        offset = chunk_data_end + (chunk_size % 2)
    if not sample_rate or not channels or not bits_per_sample:
        raise IngestValidationError("corrupted_file", "Incomplete WAV metadata.")
    if audio_format not in (1, 3, 0xFFFE):
        raise IngestValidationError("unsupported_codec", f"Unsupported WAV codec format code: {audio_format}.")
    bytes_per_second = sample_rate * channels * max(bits_per_sample // 8, 1)
    duration_seconds = data_size / bytes_per_second if bytes_per_second else 0.0
    codec = "ieee_float" if audio_format == 3 else "pcm"
    return AudioMetadata("wav", codec, duration_seconds, sample_rate, bits_per_sample, channels, len(raw_bytes))


def _parse_flac(raw_bytes: bytes) -> AudioMetadata:
    if len(raw_bytes) < 42:
        raise IngestValidationError("corrupted_file", "Corrupted FLAC header.")
    block_header = raw_bytes[4]
    block_type = block_header & 0x7F
    block_len = int.from_bytes(raw_bytes[5:8], "big")
    if block_type != 0 or block_len != 34:
        raise IngestValidationError("corrupted_file", "Missing FLAC STREAMINFO metadata.")
    stream_info = raw_bytes[8:42]
    packed = int.from_bytes(stream_info[10:18], "big")
    sample_rate = (packed >> 44) & 0xFFFFF
    channels = ((packed >> 41) & 0x7) + 1
    bits_per_sample = ((packed >> 36) & 0x1F) + 1
    total_samples = packed & 0xFFFFFFFFF
    duration_seconds = (total_samples / sample_rate) if sample_rate else 0.0
    return AudioMetadata("flac", "flac", duration_seconds, sample_rate, bits_per_sample, channels, len(raw_bytes))
