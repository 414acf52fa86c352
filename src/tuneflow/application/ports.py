"""Application ports implemented by infrastructure adapters for external collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Protocol

from tuneflow.domain.models import ArtistProfile
from tuneflow.domain.policies import FieldRule


class ArtistSearchPort(Protocol):
    """Search one streaming platform for artist identities."""

    async def search(self, query: str, limit: int) -> list[ArtistProfile]:
        """Return candidates in the platform's ranking order."""


@dataclass(frozen=True, slots=True)
class PlanRecord:
    """Plan limits as served by the plan data collaborator."""

    artist_limit: int | None
    allow_concurrent: bool
    allowed_formats: tuple[str, ...]


class PlanDataPort(Protocol):
    """Read-only plan configuration source."""

    async def fetch_limits(self, plan_key: str, *, force_refresh: bool = False) -> PlanRecord | None:
        """Return limits for ``plan_key`` or ``None`` when the plan is unknown."""

    async def fetch_field_rules(self, plan_key: str, *, force_refresh: bool = False) -> Mapping[str, FieldRule]:
        """Return per-field rules keyed by snake_case field name."""


class ComplianceStatus(str, Enum):
    """Verdicts returned by the cover-art compliance collaborator."""

    ACCEPTED = "accepted"
    WARNING = "warning"
    REJECTED = "rejected"


class DefectSeverity(str, Enum):
    WARNING = "warning"
    REJECTING = "rejecting"


@dataclass(frozen=True, slots=True)
class ComplianceDefect:
    """A defect the compliance collaborator found in a cover image."""

    code: str
    message: str
    severity: DefectSeverity = DefectSeverity.REJECTING


@dataclass(frozen=True, slots=True)
class ComplianceReport:
    status: ComplianceStatus
    defects: tuple[ComplianceDefect, ...] = ()


@dataclass(frozen=True, slots=True)
class CoverArtContext:
    """Release metadata the compliance check compares the artwork against."""

    artist_name: str
    track_title: str
    featured_artists: tuple[str, ...] = ()
    is_explicit: bool = False
    release_year: str | None = None
    record_label: str | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "artistName": self.artist_name,
            "trackTitle": self.track_title,
            "featuredArtists": list(self.featured_artists),
            "isExplicit": self.is_explicit,
        }
        if self.release_year:
            payload["releaseYear"] = self.release_year
        if self.record_label:
            payload["recordLabel"] = self.record_label
        return payload


class CoverArtCompliancePort(Protocol):
    async def validate(
        self,
        image: bytes,
        *,
        file_name: str,
        content_type: str,
        context: CoverArtContext,
    ) -> ComplianceReport:
        """Run content-based compliance analysis on ``image``."""


@dataclass(frozen=True, slots=True)
class UploadReceipt:
    """Storage response; intermediate chunk acknowledgements carry no path."""

    path: str | None = None
    duration_seconds: float | None = None
    width: int | None = None
    height: int | None = None


class UploadTransport(Protocol):
    """Storage endpoint accepting whole files or ordered byte-range chunks."""

    async def upload_whole(self, *, file_name: str, payload: bytes, content_type: str) -> UploadReceipt:
        """Upload a complete file in one request."""

    async def upload_chunk(
        self,
        *,
        session_id: str,
        chunk_index: int,
        total_chunks: int,
        chunk: bytes,
        file_name: str,
        content_type: str,
    ) -> UploadReceipt:
        """Upload one chunk; the final chunk's receipt carries the storage path."""


@dataclass(frozen=True, slots=True)
class SubmissionReceipt:
    release_id: str
    status: str = "In Process"
    raw: Mapping[str, Any] = field(default_factory=dict)


class SubmissionPort(Protocol):
    async def submit(self, payload: Mapping[str, Any]) -> SubmissionReceipt:
        """Create the release record and return its identifier."""


class SubmissionServiceError(RuntimeError):
    """Raised when the submission collaborator returns a structured error."""

    def __init__(self, code: str, message: str, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = dict(details or {})

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}
