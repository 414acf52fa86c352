"""Release aggregate root."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from tuneflow.domain.composition import ReleaseComposition
from tuneflow.domain.models import CoverArtReference, Credit, ProfileSelection, SocialLink, empty_profiles
from tuneflow.release_options import Platform, ReleaseFormat


@dataclass(slots=True)
class Release:
    """One distribution submission, mutated step by step while it is drafted."""

    title: str = ""
    primary_artist: str = ""
    secondary_artists: list[str] = field(default_factory=list)
    format: ReleaseFormat | None = None
    language: str = ""
    release_date: date | None = None
    explicit: bool = False
    primary_genre: str = ""
    secondary_genre: str = ""
    profiles: dict[Platform, ProfileSelection] = field(default_factory=empty_profiles)
    instagram: SocialLink = SocialLink()
    facebook: SocialLink = SocialLink()
    record_label: str = ""
    copyright: str = ""
    producers: list[str] = field(default_factory=list)
    isrc: str = ""
    songwriters: tuple[Credit, ...] = ()
    composers: tuple[Credit, ...] = ()
    preview_start_seconds: int | None = None
    instrumental: bool = False
    dolby_atmos: bool = False
    previously_released: bool = False
    original_release_date: date | None = None
    cover_art: CoverArtReference | None = None
    cover_art_preview: bytes | None = field(default=None, repr=False)
    composition: ReleaseComposition = field(default_factory=ReleaseComposition)

    @property
    def is_multi_track(self) -> bool:
        return self.format is not None and self.format.is_multi_track

    def artist_names(self) -> list[str]:
        """Every non-empty artist name across primary, secondary and track fields."""

        names = [self.primary_artist, *self.secondary_artists]
        names.extend(track.artist_name for track in self.composition.tracks)
        return [name.strip() for name in names if name and name.strip()]

    def distinct_artists(self) -> set[str]:
        return set(self.artist_names())
