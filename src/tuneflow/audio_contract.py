"""Audio ingest contract shared by all release entry points.

Invariants
----------
* Ingest accepts only lossless source containers.
* Every accepted audio file matches the broadcast profile defined here
  (fixed sample rate and bit depth) as reported by its header.
"""

from __future__ import annotations

# Supported source extensions (lower-case, with leading dot).
ACCEPTED_SOURCE_EXTENSIONS: tuple[str, ...] = (".wav", ".flac")

LOSSY_SOURCE_EXTENSIONS: tuple[str, ...] = (".mp3", ".aac", ".m4a", ".ogg", ".opus", ".wma")

# Broadcast profile every distributed master must match.
BROADCAST_SAMPLE_RATE_HZ = 44_100
BROADCAST_BIT_DEPTH = 16

MAX_AUDIO_FILE_SIZE_BYTES = 500 * 1024 * 1024
