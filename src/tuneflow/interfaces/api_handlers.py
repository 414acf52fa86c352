"""API-facing handlers that delegate to application services."""

from __future__ import annotations

import os
from typing import Any, Iterable, Sequence

import httpx

from tuneflow.application.artist_roster import ArtistIdentity, ArtistRosterResolver
from tuneflow.application.cover_art import CoverArtComplianceValidator, CoverArtState, build_checklist
from tuneflow.application.event_publisher import EventPublisher
from tuneflow.application.plan_rules import PlanRuleEngine
from tuneflow.application.release_wizard import ReleaseWizard
from tuneflow.application.submission import SubmissionAssembler
from tuneflow.application.upload_coordinator import ChunkedUploadCoordinator, ProgressCallback, UploadError
from tuneflow.domain.events import AudioFileAccepted, AudioFileRejected
from tuneflow.domain.models import ArtistProfile, StoredAsset
from tuneflow.domain.policies import KNOWN_FIELDS, PlanLimits, ReleaseRules
from tuneflow.infrastructure.endpoints import build_http_client
from tuneflow.infrastructure.http_clients import (
    HttpComplianceClient,
    HttpPlanSource,
    HttpSubmissionClient,
    HttpUploadTransport,
    build_search_clients,
)
from tuneflow.infrastructure.logging_event_publisher import LoggingEventPublisher
from tuneflow.infrastructure.minio_storage import MinioUploadTransport
from tuneflow.infrastructure.static_plans import StaticPlanSource
from tuneflow.infrastructure.wire_schema import report_from_payload
from tuneflow.ingest_validation import AudioMetadata, IngestValidationError, validate_audio_bytes
from tuneflow.storage import load_storage_config
from tuneflow.utils.config import EngineConfig, SearchConfig, UploadConfig, load_engine_config_from_env

_event_publisher = LoggingEventPublisher()


def audio_metadata_to_dict(metadata: AudioMetadata) -> dict[str, Any]:
    return {
        "container": metadata.container,
        "codec": metadata.codec,
        "duration_seconds": metadata.duration_seconds,
        "sample_rate_hz": metadata.sample_rate_hz,
        "bit_depth": metadata.bit_depth,
        "channel_count": metadata.channel_count,
        "size_bytes": metadata.size_bytes,
    }


def validate_uploaded_audio(payload: bytes, filename: str | None, correlation_id: str) -> AudioMetadata:
    try:
        metadata = validate_audio_bytes(payload, filename=filename)
    except IngestValidationError as error:
        _event_publisher.publish(
            AudioFileRejected(correlation_id=correlation_id, payload_summary={"file_name": filename, "code": error.code})
        )
        raise
    _event_publisher.publish(
        AudioFileAccepted(
            correlation_id=correlation_id,
            payload_summary={"file_name": filename, "duration_seconds": metadata.duration_seconds},
        )
    )
    return metadata


def profile_to_dict(profile: ArtistProfile) -> dict[str, Any]:
    return {
        "id": profile.external_id,
        "name": profile.name,
        "image": profile.image_url,
        "url": profile.profile_url,
        "followers": profile.followers,
        "caption": profile.caption,
    }


async def search_all_platforms(query: str, limit: int | None = None) -> dict[str, list[dict[str, Any]]]:
    settings = load_engine_config_from_env().search
    async with build_http_client() as client:
        resolver = _build_resolver(build_search_clients(client), settings, result_limit=limit)
        candidates = await resolver.fan_out(query.strip())
    return {platform.value: [profile_to_dict(profile) for profile in profiles] for platform, profiles in candidates.items()}


def _use_static_plans() -> bool:
    return os.getenv("TUNEFLOW_PLAN_SOURCE", "http").lower() == "static"


async def resolve_plan_limits(plan_key: str, *, force_refresh: bool = False) -> PlanLimits:
    if _use_static_plans():
        return await PlanRuleEngine(StaticPlanSource()).limits_for(plan_key, force_refresh=force_refresh)

    ttl = load_engine_config_from_env().plans.cache_ttl_seconds
    async with build_http_client() as client:
        engine = PlanRuleEngine(HttpPlanSource(client, ttl_seconds=ttl))
        return await engine.limits_for(plan_key, force_refresh=force_refresh)


def plan_limits_to_dict(limits: PlanLimits) -> dict[str, Any]:
    return {
        "plan_key": limits.plan_key,
        "artist_limit": limits.artist_limit,
        "allowed_formats": sorted(item.value for item in limits.allowed_formats),
        "allow_concurrent": limits.allow_concurrent,
        "fallback": limits.is_fallback,
        "field_rules": {
            name: {"allow": limits.field_rule(name).allow, "required": limits.field_rule(name).required}
            for name in sorted({*KNOWN_FIELDS, *limits.field_rules})
        },
    }


def checklist_from_payload(payload: Any) -> dict[str, Any]:
    """Map a raw compliance response onto the checklist without re-running validation."""

    report = report_from_payload(payload)
    state = CoverArtState(report.status.value)
    return {
        "status": state.value,
        "blocks_upload": state is CoverArtState.REJECTED,
        "checklist": [item.as_dict() for item in build_checklist(report)],
        "defects": [
            {"code": defect.code, "message": defect.message, "severity": defect.severity.value} for defect in report.defects
        ],
    }


def _build_resolver(search_clients, settings: SearchConfig, *, result_limit: int | None = None) -> ArtistRosterResolver:
    return ArtistRosterResolver(
        search_clients,
        debounce_seconds=settings.debounce_seconds,
        min_query_length=settings.min_query_length,
        result_limit=result_limit or settings.result_limit,
    )


def _build_coordinator(transport, settings: UploadConfig | None = None) -> ChunkedUploadCoordinator:
    settings = settings or load_engine_config_from_env().upload
    return ChunkedUploadCoordinator(
        transport,
        chunk_size=settings.chunk_size_bytes,
        direct_upload_threshold=settings.direct_upload_threshold_bytes,
        max_retries=settings.max_retries,
        backoff_base_seconds=settings.retry_backoff_base_seconds,
        backoff_ceiling_seconds=settings.retry_backoff_ceiling_seconds,
        concurrency=settings.concurrency,
    )


async def upload_asset(
    payload: bytes,
    *,
    file_name: str,
    content_type: str,
    to_object_storage: bool = False,
    on_progress: ProgressCallback | None = None,
) -> StoredAsset:
    if to_object_storage:
        if not load_storage_config().enabled:
            raise UploadError("Object storage is disabled; set TUNEFLOW_STORAGE_ENABLED=true.", code="storage_disabled", file_name=file_name)
        return await _build_coordinator(MinioUploadTransport()).upload(
            payload, file_name=file_name, content_type=content_type, on_progress=on_progress
        )
    async with build_http_client() as client:
        return await _build_coordinator(HttpUploadTransport(client)).upload(
            payload, file_name=file_name, content_type=content_type, on_progress=on_progress
        )


def build_release_wizard(
    client: httpx.AsyncClient,
    *,
    config: EngineConfig | None = None,
    publisher: EventPublisher | None = None,
    previously_used_artists: Iterable[str] = (),
    prior_identities: Sequence[ArtistIdentity] = (),
) -> ReleaseWizard:
    """Wire a ``ReleaseWizard`` to the HTTP collaborators behind ``client``.

    Every tunable comes from ``config``, defaulting to ``TUNEFLOW_CONFIG_PATH``.
    """

    config = config or load_engine_config_from_env()
    return ReleaseWizard(
        plan_rules=PlanRuleEngine(HttpPlanSource(client, ttl_seconds=config.plans.cache_ttl_seconds)),
        roster=_build_resolver(build_search_clients(client), config.search),
        cover_art=CoverArtComplianceValidator(
            HttpComplianceClient(client),
            max_bytes=config.cover_art.max_bytes,
            min_dimension=config.cover_art.min_dimension,
        ),
        uploads=_build_coordinator(HttpUploadTransport(client), config.upload),
        assembler=SubmissionAssembler(
            rules=ReleaseRules(
                min_lead_days=config.release.min_lead_days,
                default_label=config.release.default_label,
                default_isrc=config.release.default_isrc,
            )
        ),
        submission=HttpSubmissionClient(client),
        publisher=publisher or _event_publisher,
        previously_used_artists=previously_used_artists,
        prior_identities=prior_identities,
    )


__all__ = [
    "IngestValidationError",
    "audio_metadata_to_dict",
    "build_release_wizard",
    "checklist_from_payload",
    "plan_limits_to_dict",
    "profile_to_dict",
    "resolve_plan_limits",
    "search_all_platforms",
    "upload_asset",
    "validate_uploaded_audio",
]
