"""DDD domain layer."""

from .composition import CompositionError, ReleaseComposition
from .events import (
    AssetUploaded,
    AudioFileAccepted,
    AudioFileRejected,
    CoverArtChecked,
    DomainEvent,
    ReleaseSubmitted,
    SubmissionRejected,
    TrackLinked,
)
from .models import (
    ArtistProfile,
    AudioFile,
    CoverArtReference,
    Credit,
    ProfileSelection,
    ProfileState,
    SocialLink,
    StoredAsset,
    Track,
)
from .policies import DEFAULT_RELEASE_RULES, FieldRule, PlanLimits, ReleaseRules, most_restrictive_limits
from .release import Release
from .services import PlanLimitError, has_irregular_capitalization, is_valid_isrc

__all__ = [
    "DomainEvent",
    "AudioFileAccepted",
    "AudioFileRejected",
    "TrackLinked",
    "CoverArtChecked",
    "AssetUploaded",
    "ReleaseSubmitted",
    "SubmissionRejected",
    "ArtistProfile",
    "AudioFile",
    "CoverArtReference",
    "Credit",
    "ProfileSelection",
    "ProfileState",
    "SocialLink",
    "StoredAsset",
    "Track",
    "Release",
    "ReleaseComposition",
    "CompositionError",
    "FieldRule",
    "PlanLimits",
    "ReleaseRules",
    "DEFAULT_RELEASE_RULES",
    "most_restrictive_limits",
    "PlanLimitError",
    "has_irregular_capitalization",
    "is_valid_isrc",
]
