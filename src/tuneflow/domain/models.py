"""Domain models for release composition."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from uuid import uuid4

from tuneflow.release_options import Platform, SocialStatus


def new_identifier() -> str:
    return str(uuid4())


@dataclass(frozen=True, slots=True)
class ArtistProfile:
    """A resolved artist identity on one platform."""

    platform: Platform
    external_id: str
    name: str
    image_url: str | None = None
    profile_url: str | None = None
    followers: int | None = None
    caption: str | None = None

    def matches_reference(self, reference: str) -> bool:
        """True when a legacy stored string names this profile by id or URL."""

        candidate = reference.strip()
        if not candidate:
            return False
        if candidate == self.external_id:
            return True
        if self.profile_url and candidate.rstrip("/") == self.profile_url.rstrip("/"):
            return True
        return False


class ProfileState(str, Enum):
    """The four shapes a stored per-platform profile can take."""

    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    NEW = "new"
    MANUAL_URL = "manual_url"


@dataclass(frozen=True, slots=True)
class ProfileSelection:
    """Per-platform profile choice stored on a release or track."""

    state: ProfileState = ProfileState.UNRESOLVED
    profile: ArtistProfile | None = None
    url: str | None = None

    def __post_init__(self) -> None:
        if self.state is ProfileState.RESOLVED and self.profile is None:
            raise ValueError("resolved profile selections need a profile")
        if self.state is ProfileState.MANUAL_URL and not self.url:
            raise ValueError("manual profile selections need a URL")

    @classmethod
    def unresolved(cls) -> ProfileSelection:
        return cls()

    @classmethod
    def resolved(cls, profile: ArtistProfile) -> ProfileSelection:
        return cls(state=ProfileState.RESOLVED, profile=profile)

    @classmethod
    def new_profile(cls) -> ProfileSelection:
        return cls(state=ProfileState.NEW)

    @classmethod
    def manual(cls, url: str) -> ProfileSelection:
        return cls(state=ProfileState.MANUAL_URL, url=url.strip())

    @property
    def is_set(self) -> bool:
        return self.state is not ProfileState.UNRESOLVED

    def to_payload(self) -> dict[str, object] | str | None:
        if self.state is ProfileState.UNRESOLVED:
            return None
        if self.state is ProfileState.NEW:
            return "new"
        if self.state is ProfileState.MANUAL_URL:
            return self.url
        if self.state is ProfileState.RESOLVED and self.profile is not None:
            return {
                "id": self.profile.external_id,
                "name": self.profile.name,
                "image": self.profile.image_url,
                "url": self.profile.profile_url,
                "followers": self.profile.followers,
            }
        raise ValueError(f"Unhandled profile state: {self.state}")


def empty_profiles() -> dict[Platform, ProfileSelection]:
    return {platform: ProfileSelection.unresolved() for platform in Platform}


@dataclass(frozen=True, slots=True)
class SocialLink:
    """Instagram/Facebook linkage: an explicit yes/no plus an optional URL."""

    status: SocialStatus = SocialStatus.NO
    url: str | None = None

    @classmethod
    def from_legacy(cls, value: str | None) -> SocialLink:
        """Migrate the legacy single-string representation ("yes"/"no"/URL)."""

        raw = (value or "").strip()
        if not raw or raw.lower() == SocialStatus.NO.value:
            return cls()
        if raw.lower() == SocialStatus.YES.value:
            return cls(status=SocialStatus.YES)
        return cls(status=SocialStatus.YES, url=raw)

    def to_payload(self) -> dict[str, str | None]:
        return {"status": self.status.value, "url": self.url if self.status is SocialStatus.YES else None}


@dataclass(frozen=True, slots=True)
class Credit:
    """Songwriter/composer credit line."""

    name: str
    role: str = "Music and lyrics"


@dataclass(frozen=True, slots=True)
class StoredAsset:
    """Reference returned by storage once a binary has been persisted."""

    path: str
    duration_seconds: float | None = None
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True, slots=True)
class AudioFile:
    """An uploaded audio binary, independent of any track metadata."""

    id: str
    file_name: str
    size_bytes: int
    sample_rate_hz: int | None = None
    bit_depth: int | None = None
    duration_seconds: float | None = None
    storage: StoredAsset | None = None
    content: bytes | None = field(default=None, repr=False, compare=False)

    @property
    def is_stored(self) -> bool:
        return self.storage is not None

    @property
    def default_track_title(self) -> str:
        stem, _, _ = self.file_name.rpartition(".")
        return (stem or self.file_name).replace("_", " ").strip()


@dataclass(frozen=True, slots=True)
class Track:
    """Per-song metadata, linked to at most one audio file by identifier."""

    id: str
    title: str = ""
    audio_file_id: str | None = None
    subtitle: str = ""
    artist_name: str = ""
    language: str = ""
    isrc: str = ""
    primary_genre: str = ""
    secondary_genre: str = ""
    explicit: bool = False
    instrumental: bool = False
    previously_released: bool = False
    original_release_date: date | None = None
    preview_start_seconds: int | None = None
    songwriters: tuple[Credit, ...] = ()
    composers: tuple[Credit, ...] = ()
    profiles: dict[Platform, ProfileSelection] = field(default_factory=empty_profiles, compare=False)
    instagram: SocialLink = SocialLink()
    facebook: SocialLink = SocialLink()


@dataclass(frozen=True, slots=True)
class CoverArtReference:
    """Cover art that passed compliance and reached storage."""

    file_name: str
    storage: StoredAsset
