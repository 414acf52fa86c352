"""Final release validation and submission payload assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable

from tuneflow.application.cover_art import CoverArtState
from tuneflow.application.ports import SubmissionPort, SubmissionReceipt
from tuneflow.domain.models import Credit, Track
from tuneflow.domain.policies import (
    DEFAULT_RELEASE_RULES,
    FIELD_COPYRIGHT,
    FIELD_DOLBY_ATMOS,
    FIELD_FEATURED_ARTISTS,
    FIELD_ISRC,
    FIELD_PREVIEW_START,
    FIELD_PRODUCERS,
    FIELD_RECORD_LABEL,
    FIELD_SECONDARY_GENRE,
    KNOWN_FIELDS,
    PlanLimits,
    ReleaseRules,
)
from tuneflow.domain.release import Release
from tuneflow.domain.services import (
    PlanLimitError,
    credit_name_error,
    earliest_release_date,
    ensure_artist_limit,
    has_irregular_capitalization,
    is_valid_isrc,
)
from tuneflow.release_options import Platform

logger = logging.getLogger(__name__)

OPTIONAL_FIELDS: tuple[str, ...] = (
    FIELD_FEATURED_ARTISTS,
    FIELD_ISRC,
    FIELD_COPYRIGHT,
    FIELD_PRODUCERS,
    FIELD_RECORD_LABEL,
    FIELD_PREVIEW_START,
    FIELD_SECONDARY_GENRE,
    FIELD_DOLBY_ATMOS,
)

_PROFILE_KEYS = {
    Platform.SPOTIFY: "spotifyProfile",
    Platform.APPLE: "appleMusicProfile",
    Platform.YOUTUBE: "youtubeMusicProfile",
}


@dataclass(slots=True)
class MandatoryChecks:
    """Acknowledgements the user must tick before a release can be submitted."""

    rights_authorization: bool = False
    promo_services: bool = False
    name_usage: bool = False
    terms_agreement: bool = False
    capitalization_confirmation: bool = False
    youtube_confirmation: bool = False


@dataclass(frozen=True, slots=True)
class SubmissionViolation:
    code: str
    message: str
    field: str | None = None

    def as_dict(self) -> dict[str, str | None]:
        return {"code": self.code, "message": self.message, "field": self.field}


class SubmissionRejected(ValueError):
    """Carries every rule the release violated."""

    def __init__(self, violations: Iterable[SubmissionViolation]) -> None:
        self.violations = tuple(violations)
        super().__init__("; ".join(violation.message for violation in self.violations))

    @property
    def codes(self) -> list[str]:
        return [violation.code for violation in self.violations]

    def as_dict(self) -> dict[str, Any]:
        return {
            "code": "submission_rejected",
            "message": "The release cannot be submitted yet.",
            "violations": [violation.as_dict() for violation in self.violations],
        }


def requires_capitalization_confirmation(release: Release) -> bool:
    return has_irregular_capitalization(release.title) or has_irregular_capitalization(release.primary_artist)


def _field_value(release: Release, field_name: str) -> Any:
    if field_name == FIELD_FEATURED_ARTISTS:
        return release.secondary_artists
    return getattr(release, field_name, None)


def _is_filled(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, frozenset)):
        return any(_is_filled(item) for item in value)
    return True


class SubmissionAssembler:
    """Collects all violated rules, or builds the payload the submission collaborator expects."""

    def __init__(self, *, rules: ReleaseRules = DEFAULT_RELEASE_RULES, today: Callable[[], date] = date.today) -> None:
        self.rules = rules
        self._today = today

    def violations(
        self,
        release: Release,
        *,
        limits: PlanLimits,
        checks: MandatoryChecks,
        cover_state: CoverArtState,
        previously_used_artists: Iterable[str] = (),
    ) -> list[SubmissionViolation]:
        found: list[SubmissionViolation] = []
        found.extend(self._release_field_violations(release, limits, previously_used_artists))
        found.extend(self._plan_field_violations(release, limits))
        found.extend(self._composition_violations(release))
        found.extend(self._cover_art_violations(release, cover_state))
        found.extend(self._check_violations(release, checks))
        return found

    def assemble(
        self,
        release: Release,
        *,
        limits: PlanLimits,
        checks: MandatoryChecks,
        cover_state: CoverArtState,
        previously_used_artists: Iterable[str] = (),
    ) -> dict[str, Any]:
        violations = self.violations(
            release,
            limits=limits,
            checks=checks,
            cover_state=cover_state,
            previously_used_artists=previously_used_artists,
        )
        if violations:
            logger.info("Release failed final validation", extra={"violations": [v.code for v in violations]})
            raise SubmissionRejected(violations)
        return self.build_payload(release, limits=limits, checks=checks)

    async def submit(
        self,
        port: SubmissionPort,
        release: Release,
        *,
        limits: PlanLimits,
        checks: MandatoryChecks,
        cover_state: CoverArtState,
        previously_used_artists: Iterable[str] = (),
    ) -> SubmissionReceipt:
        payload = self.assemble(
            release,
            limits=limits,
            checks=checks,
            cover_state=cover_state,
            previously_used_artists=previously_used_artists,
        )
        receipt = await port.submit(payload)
        logger.info("Release submitted", extra={"release_id": receipt.release_id, "status": receipt.status})
        return receipt

    def build_payload(self, release: Release, *, limits: PlanLimits, checks: MandatoryChecks) -> dict[str, Any]:
        missing: list[SubmissionViolation] = []
        if release.format is None:
            missing.append(SubmissionViolation("missing_format", "Choose a release format.", "format"))
        if release.cover_art is None:
            missing.append(SubmissionViolation("missing_cover_art", "Upload cover art before submitting.", "cover_art"))
        if missing:
            raise SubmissionRejected(missing)
        label = release.record_label.strip() if limits.is_field_allowed(FIELD_RECORD_LABEL) else ""
        payload: dict[str, Any] = {
            "title": release.title.strip(),
            "artistName": release.primary_artist.strip(),
            "featuredArtists": [name.strip() for name in release.secondary_artists if name.strip()],
            "releaseType": release.format.value,
            "language": release.language,
            "releaseDate": release.release_date.isoformat() if release.release_date else None,
            "isExplicit": release.explicit,
            "primaryGenre": release.primary_genre,
            "secondaryGenre": release.secondary_genre,
            "labelName": label or self.rules.default_label,
            "copyright": release.copyright,
            "producers": [name for name in release.producers if name.strip()],
            "isrc": release.isrc.strip() or self.rules.default_isrc,
            "instrumental": release.instrumental,
            "dolbyAtmos": release.dolby_atmos,
            "previewClipStartTime": release.preview_start_seconds,
            "previouslyReleased": release.previously_released,
            "originalReleaseDate": release.original_release_date.isoformat() if release.original_release_date else None,
            "instagram": release.instagram.to_payload(),
            "facebook": release.facebook.to_payload(),
            "coverArt": {
                "url": release.cover_art.storage.path,
                "filename": release.cover_art.file_name,
                "dimensions": {"width": release.cover_art.storage.width, "height": release.cover_art.storage.height},
            },
            "tracks": [self._track_payload(release, track) for track in release.composition.tracks],
            "confirmations": {
                "rightsAuthorization": checks.rights_authorization,
                "promoServices": checks.promo_services,
                "nameUsage": checks.name_usage,
                "termsAgreement": checks.terms_agreement,
                "capitalizationConfirmation": checks.capitalization_confirmation,
                "youtubeConfirmation": checks.youtube_confirmation,
            },
        }
        for platform, key in _PROFILE_KEYS.items():
            payload[key] = release.profiles[platform].to_payload()
        return payload

    def _track_payload(self, release: Release, track: Track) -> dict[str, Any]:
        audio = release.composition.audio_file(track.audio_file_id) if track.audio_file_id else None
        return {
            "title": track.title.strip() or release.title.strip(),
            "subtitle": track.subtitle,
            "artistName": track.artist_name.strip() or release.primary_artist.strip(),
            "language": track.language or release.language,
            "isrc": track.isrc.strip() or None,
            "primaryGenre": track.primary_genre or release.primary_genre,
            "secondaryGenre": track.secondary_genre or release.secondary_genre,
            "isExplicit": track.explicit,
            "instrumental": track.instrumental,
            "previewClipStartTime": track.preview_start_seconds,
            "songwriters": [_credit_payload(credit) for credit in self._songwriters(release, track)],
            "composers": [_credit_payload(credit) for credit in (track.composers or release.composers)],
            "profiles": {key: track.profiles[platform].to_payload() for platform, key in _PROFILE_KEYS.items()},
            "audioFile": None
            if audio is None or audio.storage is None
            else {
                "url": audio.storage.path,
                "filename": audio.file_name,
                "size": audio.size_bytes,
                "duration": audio.storage.duration_seconds or audio.duration_seconds,
            },
        }

    def _songwriters(self, release: Release, track: Track) -> tuple[Credit, ...]:
        return track.songwriters or release.songwriters

    def _release_field_violations(
        self,
        release: Release,
        limits: PlanLimits,
        previously_used_artists: Iterable[str],
    ) -> list[SubmissionViolation]:
        found: list[SubmissionViolation] = []
        if not release.title.strip():
            found.append(SubmissionViolation("missing_title", "Release title is required.", "title"))
        if not release.primary_artist.strip():
            found.append(SubmissionViolation("missing_primary_artist", "Primary artist name is required.", "primary_artist"))
        if release.format is None:
            found.append(SubmissionViolation("missing_format", "Choose a release format.", "format"))
        elif not limits.allows_format(release.format):
            found.append(
                SubmissionViolation(
                    "format_not_allowed",
                    f"Your plan does not allow '{release.format.value}' releases.",
                    "format",
                )
            )
        try:
            ensure_artist_limit(limits, release.artist_names(), previously_used_artists)
        except PlanLimitError as error:
            found.append(SubmissionViolation(error.code, error.message, "artists"))

        minimum = earliest_release_date(self._today(), self.rules.min_lead_days)
        if release.release_date is None:
            found.append(SubmissionViolation("missing_release_date", "Release date is required.", "release_date"))
        elif release.release_date < minimum:
            found.append(
                SubmissionViolation(
                    "release_date_too_soon",
                    f"Release date must be on or after {minimum.isoformat()}.",
                    "release_date",
                )
            )
        if release.isrc.strip() and not is_valid_isrc(release.isrc):
            found.append(SubmissionViolation("invalid_isrc", "ISRC must look like XX-XXX-XX-XXXXX.", "isrc"))
        if release.previously_released and release.original_release_date is None:
            found.append(
                SubmissionViolation(
                    "missing_original_release_date",
                    "Original release date is required for previously released music.",
                    "original_release_date",
                )
            )
        return found

    def _plan_field_violations(self, release: Release, limits: PlanLimits) -> list[SubmissionViolation]:
        found: list[SubmissionViolation] = []
        for field_name in KNOWN_FIELDS:
            filled = _is_filled(_field_value(release, field_name))
            if limits.is_field_required(field_name) and not filled:
                found.append(
                    SubmissionViolation("required_field_missing", f"{_label(field_name)} is required by your plan.", field_name)
                )
            elif field_name in OPTIONAL_FIELDS and filled and not limits.is_field_allowed(field_name):
                found.append(
                    SubmissionViolation("field_not_allowed", f"{_label(field_name)} is not available on your plan.", field_name)
                )
        return found

    def _composition_violations(self, release: Release) -> list[SubmissionViolation]:
        found: list[SubmissionViolation] = []
        composition = release.composition
        if not composition.tracks:
            found.append(SubmissionViolation("no_tracks", "Add at least one track.", "tracks"))
        if release.is_multi_track:
            for track in composition.tracks_missing_audio():
                found.append(
                    SubmissionViolation(
                        "track_missing_audio",
                        f"Track '{track.title or track.id}' has no audio file linked.",
                        f"tracks.{track.id}.audio_file_id",
                    )
                )
        elif not composition.audio_files:
            found.append(SubmissionViolation("missing_audio", "Upload an audio file.", "audio_file"))

        for audio in composition.audio_files:
            if not audio.is_stored and composition.track_for_audio(audio.id) is not None:
                found.append(
                    SubmissionViolation(
                        "audio_not_uploaded",
                        f"Audio file '{audio.file_name}' has not finished uploading.",
                        f"audio_files.{audio.id}",
                    )
                )

        for track in composition.tracks:
            prefix = f"tracks.{track.id}"
            if release.is_multi_track and not track.title.strip():
                found.append(SubmissionViolation("missing_track_title", "Every track needs a title.", f"{prefix}.title"))
            if track.isrc.strip() and not is_valid_isrc(track.isrc):
                found.append(
                    SubmissionViolation("invalid_isrc", f"ISRC '{track.isrc}' must look like XX-XXX-XX-XXXXX.", f"{prefix}.isrc")
                )
            songwriters = self._songwriters(release, track)
            if not songwriters:
                found.append(SubmissionViolation("missing_songwriter", "At least one songwriter is required.", f"{prefix}.songwriters"))
            for credit in (*songwriters, *(track.composers or release.composers)):
                message = credit_name_error(credit.name)
                if message:
                    found.append(SubmissionViolation("invalid_credit_name", message, f"{prefix}.credits"))
        return found

    def _cover_art_violations(self, release: Release, cover_state: CoverArtState) -> list[SubmissionViolation]:
        if cover_state not in (CoverArtState.ACCEPTED, CoverArtState.WARNING) or release.cover_art is None:
            return [SubmissionViolation("cover_art_not_accepted", "Cover art must pass validation before submitting.", "cover_art")]
        return []

    def _check_violations(self, release: Release, checks: MandatoryChecks) -> list[SubmissionViolation]:
        required = [
            ("rights_authorization", checks.rights_authorization, "Confirm you own or control the rights to this release."),
            ("promo_services", checks.promo_services, "Confirm you will not use bots or artificial streaming services."),
            ("name_usage", checks.name_usage, "Confirm the artist names are used honestly."),
            ("terms_agreement", checks.terms_agreement, "Agree to the distribution terms."),
        ]
        if requires_capitalization_confirmation(release):
            required.append(
                (
                    "capitalization_confirmation",
                    checks.capitalization_confirmation,
                    "Confirm the non-standard capitalization of the title or artist name is intentional.",
                )
            )
        return [
            SubmissionViolation(f"unchecked_{name}", message, f"checks.{name}")
            for name, checked, message in required
            if not checked
        ]


def _credit_payload(credit: Credit) -> dict[str, str]:
    return {"name": credit.name.strip(), "role": credit.role}


def _label(field_name: str) -> str:
    return field_name.replace("_", " ").capitalize()
