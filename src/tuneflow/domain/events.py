"""Domain event contracts for release drafting workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True, slots=True)
class DomainEvent:
    """Base domain event emitted by application services."""

    correlation_id: str
    payload_summary: dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


@dataclass(frozen=True, slots=True)
class AudioFileAccepted(DomainEvent):
    """An audio file passed ingest validation and was added to the release."""


@dataclass(frozen=True, slots=True)
class AudioFileRejected(DomainEvent):
    """An audio file failed ingest validation or upload."""


@dataclass(frozen=True, slots=True)
class TrackLinked(DomainEvent):
    """A track's audio reference was assigned or cleared."""


@dataclass(frozen=True, slots=True)
class CoverArtChecked(DomainEvent):
    """The compliance collaborator returned a verdict for a cover image."""


@dataclass(frozen=True, slots=True)
class AssetUploaded(DomainEvent):
    """A binary asset reached storage and has a usable reference."""


@dataclass(frozen=True, slots=True)
class ReleaseSubmitted(DomainEvent):
    """The assembled release was accepted by the submission collaborator."""


@dataclass(frozen=True, slots=True)
class SubmissionRejected(DomainEvent):
    """Final validation collected one or more violated rules."""
