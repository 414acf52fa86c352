"""Release drafting use case.

``ReleaseWizard`` owns one ``Release`` while it is drafted. Every command either
commits a state that satisfies the release invariants or raises and leaves the
previous state in place. Collaborator calls (plan data, artist search, cover-art
compliance, uploads, submission) are delegated to the application services it
is constructed with.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from tuneflow.application.artist_roster import (
    MAIN_ARTIST_FIELD,
    ArtistField,
    ArtistIdentity,
    ArtistRosterResolver,
    SearchResults,
    hydrate_profiles,
    prefill_main_artist,
)
from tuneflow.application.cover_art import CoverArtComplianceValidator, CoverArtOutcome, CoverArtServiceError
from tuneflow.application.event_publisher import EventPublisher, NullEventPublisher
from tuneflow.application.plan_rules import PlanRuleEngine
from tuneflow.application.ports import CoverArtContext, SubmissionPort, SubmissionReceipt
from tuneflow.application.submission import MandatoryChecks, SubmissionAssembler, SubmissionRejected
from tuneflow.application.upload_coordinator import ChunkedUploadCoordinator, ProgressCallback, UploadError
from tuneflow.domain import events
from tuneflow.domain.composition import CompositionError
from tuneflow.domain.models import AudioFile, CoverArtReference, ProfileSelection, Track, new_identifier
from tuneflow.domain.policies import FIELD_FEATURED_ARTISTS, PlanLimits
from tuneflow.domain.release import Release
from tuneflow.domain.services import (
    PlanLimitError,
    ensure_artist_limit,
    ensure_format_allowed,
    is_valid_isrc,
    release_year,
)
from tuneflow.ingest_validation import IngestValidationError, ValidationPolicy, validate_audio_bytes
from tuneflow.release_options import Platform, ReleaseFormat

logger = logging.getLogger(__name__)


class ReleaseWizard:
    """Drafting session for one release.

    Artist-name commands schedule debounced searches, so they must be called
    from within a running event loop.
    """

    def __init__(
        self,
        *,
        plan_rules: PlanRuleEngine,
        roster: ArtistRosterResolver,
        cover_art: CoverArtComplianceValidator,
        uploads: ChunkedUploadCoordinator,
        assembler: SubmissionAssembler,
        submission: SubmissionPort,
        publisher: EventPublisher | None = None,
        validation_policy: ValidationPolicy | None = None,
        previously_used_artists: Iterable[str] = (),
        prior_identities: Sequence[ArtistIdentity] = (),
        release: Release | None = None,
    ) -> None:
        self.plan_rules = plan_rules
        self.roster = roster
        self.cover_art = cover_art
        self.uploads = uploads
        self.assembler = assembler
        self.submission = submission
        self.publisher = publisher or NullEventPublisher()
        self.validation_policy = validation_policy or ValidationPolicy()
        self.previously_used_artists = tuple(previously_used_artists)
        self.prior_identities = tuple(prior_identities)
        self.release = release or Release()
        self.correlation_id = new_identifier()
        if self.roster.on_results is None:
            self.roster.on_results = self.apply_search_results

    @property
    def limits(self) -> PlanLimits:
        return self.plan_rules.active

    async def start(self, plan_key: str) -> PlanLimits:
        """Load the plan and prefill the main artist where the plan allows only one."""

        limits = await self.plan_rules.activate(plan_key)
        if prefill_main_artist(self.release, limits, self.prior_identities):
            logger.info("Prefilled main artist from prior identity", extra={"correlation_id": self.correlation_id})
        return limits

    async def change_plan(self, plan_key: str, *, force_refresh: bool = False) -> PlanLimits:
        return await self.plan_rules.activate(plan_key, force_refresh=force_refresh)

    # Release-level fields

    def set_format(self, release_format: ReleaseFormat) -> None:
        ensure_format_allowed(self.limits, release_format)
        if not release_format.is_multi_track and len(self.release.composition.tracks) > 1:
            raise CompositionError(
                "too_many_tracks_for_single",
                "Remove extra tracks before switching to a single.",
            )
        self.release.format = release_format

    def set_primary_artist(self, name: str) -> None:
        self._ensure_artists(primary=name)
        self.release.primary_artist = name
        self.roster.name_changed(MAIN_ARTIST_FIELD, name)

    def set_secondary_artists(self, names: Sequence[str]) -> None:
        if any(name.strip() for name in names) and not self.limits.is_field_allowed(FIELD_FEATURED_ARTISTS):
            raise PlanLimitError("field_not_allowed", "Featured artists are not available on your plan.")
        self._ensure_artists(secondary=names)
        previous = list(self.release.secondary_artists)
        self.release.secondary_artists = list(names)
        for index, name in enumerate(names):
            if index >= len(previous) or previous[index] != name:
                self.roster.name_changed(ArtistField("secondary", index), name)
        for index in range(len(names), len(previous)):
            self.roster.remove_field(ArtistField("secondary", index))

    def set_isrc(self, isrc: str) -> None:
        if isrc.strip() and not is_valid_isrc(isrc):
            raise CompositionError("invalid_isrc", "ISRC must look like XX-XXX-XX-XXXXX.")
        self.release.isrc = isrc.strip().upper()

    # Artist profiles

    def select_profile(self, artist_field: ArtistField, platform: Platform, selection: ProfileSelection) -> None:
        """Store a platform choice: a candidate, the "new profile" sentinel, or a raw URL."""

        if artist_field.scope == "track":
            track = self._track_at(artist_field.index)
            profiles = {**track.profiles, platform: selection}
            self.release.composition = self.release.composition.update_track(track.id, profiles=profiles)
        elif artist_field.scope == "main":
            self.release.profiles[platform] = selection
        else:
            raise ValueError(f"Profiles are not stored for {artist_field}")

    def clear_profile(self, artist_field: ArtistField, platform: Platform) -> None:
        name = self._artist_name(artist_field)
        self.select_profile(artist_field, platform, self.roster.clear_selection(artist_field, name))

    def apply_search_results(self, artist_field: ArtistField, results: SearchResults) -> None:
        """Upgrade raw-URL profiles on the searched field to the matching candidates."""

        if artist_field.scope == "main":
            self.release.profiles = hydrate_profiles(self.release.profiles, results)
        elif artist_field.scope == "track" and artist_field.index < len(self.release.composition.tracks):
            track = self._track_at(artist_field.index)
            hydrated = hydrate_profiles(track.profiles, results)
            if hydrated != track.profiles:
                self.release.composition = self.release.composition.update_track(track.id, profiles=hydrated)

    # Tracks and audio

    async def add_audio_file(
        self,
        content: bytes,
        *,
        file_name: str,
        content_type: str = "audio/wav",
        on_progress: ProgressCallback | None = None,
    ) -> AudioFile:
        """Validate, upload, then attach an audio file; nothing is attached on failure."""

        try:
            metadata = validate_audio_bytes(content, filename=file_name, policy=self.validation_policy)
        except IngestValidationError as error:
            self._publish(events.AudioFileRejected, {"file_name": file_name, "code": error.code})
            raise

        try:
            stored = await self.uploads.upload(content, file_name=file_name, content_type=content_type, on_progress=on_progress)
        except UploadError as error:
            self._publish(events.AudioFileRejected, {"file_name": file_name, "code": error.code})
            raise
        self._publish(events.AssetUploaded, {"file_name": file_name, "path": stored.path, "kind": "audio"})

        audio_file = AudioFile(
            id=new_identifier(),
            file_name=file_name,
            size_bytes=metadata.size_bytes,
            sample_rate_hz=metadata.sample_rate_hz,
            bit_depth=metadata.bit_depth,
            duration_seconds=metadata.duration_seconds,
            storage=stored,
        )
        self.release.composition = self.release.composition.add_audio_file(
            audio_file,
            multi_track=self.release.is_multi_track,
        )
        self._publish(
            events.AudioFileAccepted,
            {"audio_file_id": audio_file.id, "file_name": file_name, "duration_seconds": metadata.duration_seconds},
        )
        return audio_file

    def add_track(self, title: str = "") -> Track:
        if not self.release.is_multi_track:
            raise CompositionError("single_has_one_track", "Singles have exactly one track.")
        track = Track(id=new_identifier(), title=title)
        self.release.composition = self.release.composition.add_track(track)
        return track

    def update_track(self, track_id: str, **changes: Any) -> Track:
        isrc = changes.get("isrc")
        if isrc and not is_valid_isrc(isrc):
            raise CompositionError("invalid_isrc", "ISRC must look like XX-XXX-XX-XXXXX.")
        if "artist_name" in changes:
            index = self._track_index(track_id)
            self._ensure_artists(track_overrides={track_id: changes["artist_name"]})
        self.release.composition = self.release.composition.update_track(track_id, **changes)
        if "artist_name" in changes:
            self.roster.name_changed(ArtistField("track", index), changes["artist_name"])
        return self.release.composition.track(track_id)

    def link_track(self, track_id: str, audio_file_id: str | None) -> Track:
        self.release.composition = self.release.composition.link_track_to_audio(track_id, audio_file_id)
        self._publish(events.TrackLinked, {"track_id": track_id, "audio_file_id": audio_file_id})
        return self.release.composition.track(track_id)

    def remove_track(self, track_id: str) -> None:
        self.release.composition = self.release.composition.remove_track(track_id)

    def remove_audio_file(self, audio_file_id: str) -> None:
        self.release.composition = self.release.composition.remove_audio_file(audio_file_id)

    def audio_options_for(self, track_id: str) -> tuple[AudioFile, ...]:
        return self.release.composition.unassigned_audio_files(excluding_track_id=track_id)

    # Cover art

    def cover_art_context(self) -> CoverArtContext:
        primary = self.release.primary_artist.strip()
        featured: list[str] = []
        for name in self.release.artist_names():
            if name != primary and name not in featured:
                featured.append(name)
        return CoverArtContext(
            artist_name=primary,
            track_title=self.release.title.strip(),
            featured_artists=tuple(featured),
            is_explicit=self.release.explicit,
            release_year=release_year(self.release.release_date),
            record_label=self.release.record_label.strip() or self.assembler.rules.default_label,
        )

    async def set_cover_art(
        self,
        image: bytes,
        *,
        file_name: str,
        content_type: str,
        on_progress: ProgressCallback | None = None,
    ) -> CoverArtOutcome:
        """Validate then upload cover art; a rejected verdict never reaches storage.

        A local input rejection leaves the previous preview, verdict and stored
        asset untouched.
        """

        try:
            outcome = await self.cover_art.check(
                image,
                file_name=file_name,
                content_type=content_type,
                context=self.cover_art_context(),
            )
        except CoverArtServiceError:
            self.release.cover_art_preview = image
            raise
        self.release.cover_art_preview = image
        self._publish(
            events.CoverArtChecked,
            {"file_name": file_name, "status": outcome.state.value, "defects": [d.code for d in outcome.report.defects]},
        )
        if outcome.blocks_upload:
            self.release.cover_art = None
            return outcome

        try:
            stored = await self.uploads.upload(image, file_name=file_name, content_type=content_type, on_progress=on_progress)
        except UploadError:
            self.release.cover_art = None
            raise
        self.release.cover_art = CoverArtReference(file_name=file_name, storage=stored)
        self._publish(events.AssetUploaded, {"file_name": file_name, "path": stored.path, "kind": "cover_art"})
        return outcome

    # Submission

    async def submit(self, checks: MandatoryChecks) -> SubmissionReceipt:
        try:
            receipt = await self.assembler.submit(
                self.submission,
                self.release,
                limits=self.limits,
                checks=checks,
                cover_state=self.cover_art.state,
                previously_used_artists=self.previously_used_artists,
            )
        except SubmissionRejected as error:
            self._publish(events.SubmissionRejected, {"violations": error.codes})
            raise
        self._publish(events.ReleaseSubmitted, {"release_id": receipt.release_id, "status": receipt.status})
        return receipt

    def _ensure_artists(
        self,
        *,
        primary: str | None = None,
        secondary: Sequence[str] | None = None,
        track_overrides: dict[str, str] | None = None,
    ) -> None:
        overrides = track_overrides or {}
        names = [self.release.primary_artist if primary is None else primary]
        names.extend(self.release.secondary_artists if secondary is None else secondary)
        names.extend(overrides.get(track.id, track.artist_name) for track in self.release.composition.tracks)
        ensure_artist_limit(self.limits, names, self.previously_used_artists)

    def _track_at(self, index: int) -> Track:
        tracks = self.release.composition.tracks
        if index < 0 or index >= len(tracks):
            raise CompositionError("track_not_found", f"No track at position {index}.")
        return tracks[index]

    def _track_index(self, track_id: str) -> int:
        for index, track in enumerate(self.release.composition.tracks):
            if track.id == track_id:
                return index
        raise CompositionError("track_not_found", f"Track {track_id} does not exist.")

    def _artist_name(self, artist_field: ArtistField) -> str:
        if artist_field.scope == "main":
            return self.release.primary_artist
        if artist_field.scope == "secondary":
            names = self.release.secondary_artists
            return names[artist_field.index] if artist_field.index < len(names) else ""
        return self._track_at(artist_field.index).artist_name

    def _publish(self, event_type: type[events.DomainEvent], summary: dict[str, Any]) -> None:
        self.publisher.publish(event_type(correlation_id=self.correlation_id, payload_summary=summary))
