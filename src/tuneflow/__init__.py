"""Public package exports for TuneFlow with lazy imports."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "Release",
    "ReleaseComposition",
    "PlanLimits",
    "PlanRuleEngine",
    "ArtistRosterResolver",
    "CoverArtComplianceValidator",
    "ChunkedUploadCoordinator",
    "SubmissionAssembler",
    "ReleaseWizard",
    "IngestValidationError",
    "ValidationPolicy",
    "validate_audio_bytes",
    "validate_audio_file",
]

_EXPORT_MODULES: dict[str, str] = {
    "Release": "tuneflow.domain.release",
    "ReleaseComposition": "tuneflow.domain.composition",
    "PlanLimits": "tuneflow.domain.policies",
    "PlanRuleEngine": "tuneflow.application.plan_rules",
    "ArtistRosterResolver": "tuneflow.application.artist_roster",
    "CoverArtComplianceValidator": "tuneflow.application.cover_art",
    "ChunkedUploadCoordinator": "tuneflow.application.upload_coordinator",
    "SubmissionAssembler": "tuneflow.application.submission",
    "ReleaseWizard": "tuneflow.application.release_wizard",
    "IngestValidationError": "tuneflow.ingest_validation",
    "ValidationPolicy": "tuneflow.ingest_validation",
    "validate_audio_bytes": "tuneflow.ingest_validation",
    "validate_audio_file": "tuneflow.ingest_validation",
}


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MODULES:
        raise AttributeError(f"module 'tuneflow' has no attribute {name!r}")

    module = import_module(_EXPORT_MODULES[name])
    value = getattr(module, name)
    globals()[name] = value
    return value
