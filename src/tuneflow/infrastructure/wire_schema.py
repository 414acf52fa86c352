"""Pydantic models for collaborator JSON payloads and their domain translations."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from tuneflow.application.plan_rules import parse_field_rules
from tuneflow.application.ports import (
    ComplianceDefect,
    ComplianceReport,
    ComplianceStatus,
    DefectSeverity,
    PlanRecord,
    SubmissionReceipt,
    UploadReceipt,
)
from tuneflow.domain.models import ArtistProfile
from tuneflow.domain.policies import FieldRule
from tuneflow.release_options import Platform


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SearchHit(_Payload):
    id: str
    name: str
    image: str | None = None
    url: str | None = Field(default=None, validation_alias=AliasChoices("url", "externalUrl", "channelUrl"))
    followers: int | None = None
    track: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    def to_profile(self, platform: Platform) -> ArtistProfile:
        return ArtistProfile(
            platform=platform,
            external_id=self.id,
            name=self.name,
            image_url=self.image,
            profile_url=self.url,
            followers=self.followers,
            caption=self.track,
        )


def parse_search_hits(payload: Any, platform: Platform) -> list[ArtistProfile]:
    """Accept either a bare list or an object wrapping the list under a known key."""

    if isinstance(payload, dict):
        for key in ("artists", "channels", "results", "items"):
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
        else:
            return []
    if not isinstance(payload, list):
        return []
    return [SearchHit.model_validate(item).to_profile(platform) for item in payload]


class PlanLimitsPayload(_Payload):
    max_artists: int | None = Field(default=1, alias="maxArtists")
    allow_concurrent: bool = Field(default=False, alias="allowConcurrent")
    allowed_formats: list[str] = Field(default_factory=lambda: ["single"], alias="allowedFormats")


class PlanPayload(_Payload):
    key: str
    limits: PlanLimitsPayload = Field(default_factory=PlanLimitsPayload)
    field_rules: dict[str, Any] | None = Field(default=None, alias="fieldRules")

    def to_record(self) -> PlanRecord:
        artist_limit = self.limits.max_artists
        if artist_limit is not None and artist_limit < 0:
            artist_limit = None
        return PlanRecord(
            artist_limit=artist_limit,
            allow_concurrent=self.limits.allow_concurrent,
            allowed_formats=tuple(self.limits.allowed_formats),
        )

    def to_field_rules(self) -> dict[str, FieldRule]:
        return parse_field_rules(self.field_rules)


class ComplianceErrorPayload(_Payload):
    code: str
    message: str = ""
    field: str | None = None
    severity: str | None = None


class CompliancePayload(_Payload):
    status: str
    errors: list[ComplianceErrorPayload] = Field(default_factory=list)
    issues: list[ComplianceErrorPayload] = Field(default_factory=list)


_STATUS_SYNONYMS = {
    "accepted": ComplianceStatus.ACCEPTED,
    "approved": ComplianceStatus.ACCEPTED,
    "warning": ComplianceStatus.WARNING,
    "warned": ComplianceStatus.WARNING,
    "rejected": ComplianceStatus.REJECTED,
}


def normalize_compliance_status(raw: str) -> ComplianceStatus:
    try:
        return _STATUS_SYNONYMS[raw.strip().lower()]
    except KeyError as exc:
        raise ValueError(f"Unknown compliance status: {raw!r}") from exc


def report_from_payload(payload: Any) -> ComplianceReport:
    parsed = CompliancePayload.model_validate(payload)
    defects = []
    seen: set[tuple[str, str]] = set()
    for item in (*parsed.errors, *parsed.issues):
        key = (item.code, item.message)
        if key in seen:
            continue
        seen.add(key)
        severity = DefectSeverity.WARNING if (item.severity or "").lower() == "warning" else DefectSeverity.REJECTING
        defects.append(ComplianceDefect(code=item.code, message=item.message, severity=severity))
    return ComplianceReport(status=normalize_compliance_status(parsed.status), defects=tuple(defects))


class UploadMetaData(_Payload):
    duration: float | None = None
    resolution: str | None = None


class UploadResponse(_Payload):
    path: str | None = None
    meta_data: UploadMetaData | None = Field(default=None, alias="metaData")

    def to_receipt(self) -> UploadReceipt:
        width = height = None
        meta = self.meta_data or UploadMetaData()
        if meta.resolution and "x" in meta.resolution.lower():
            raw_width, _, raw_height = meta.resolution.lower().partition("x")
            if raw_width.strip().isdigit() and raw_height.strip().isdigit():
                width, height = int(raw_width), int(raw_height)
        return UploadReceipt(path=self.path, duration_seconds=meta.duration, width=width, height=height)


class SubmissionResponse(_Payload):
    release_id: str = Field(validation_alias=AliasChoices("id", "_id", "releaseId"))
    status: str = "In Process"

    @field_validator("release_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    def to_receipt(self, raw: dict[str, Any]) -> SubmissionReceipt:
        return SubmissionReceipt(release_id=self.release_id, status=self.status, raw=raw)


class ErrorPayload(_Payload):
    code: str = "submission_failed"
    message: str = "Submission failed."
    details: dict[str, Any] = Field(default_factory=dict)
