"""DDD application layer."""

from .artist_roster import ArtistField, ArtistIdentity, ArtistRosterResolver, SearchResults
from .cover_art import CoverArtComplianceValidator, CoverArtInputError, CoverArtServiceError, CoverArtState
from .event_publisher import EventPublisher, NullEventPublisher
from .plan_rules import PlanRuleEngine
from .release_wizard import ReleaseWizard
from .submission import MandatoryChecks, SubmissionAssembler, SubmissionRejected, SubmissionViolation
from .upload_coordinator import ChunkedUploadCoordinator, UploadError

__all__ = [
    "ArtistField",
    "ArtistIdentity",
    "ArtistRosterResolver",
    "SearchResults",
    "CoverArtComplianceValidator",
    "CoverArtInputError",
    "CoverArtServiceError",
    "CoverArtState",
    "EventPublisher",
    "NullEventPublisher",
    "PlanRuleEngine",
    "ReleaseWizard",
    "MandatoryChecks",
    "SubmissionAssembler",
    "SubmissionRejected",
    "SubmissionViolation",
    "ChunkedUploadCoordinator",
    "UploadError",
]
