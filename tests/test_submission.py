from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from tuneflow.application.cover_art import CoverArtState
from tuneflow.application.ports import SubmissionReceipt
from tuneflow.application.submission import (
    MandatoryChecks,
    SubmissionAssembler,
    SubmissionRejected,
    requires_capitalization_confirmation,
)
from tuneflow.domain.composition import ReleaseComposition
from tuneflow.domain.models import AudioFile, CoverArtReference, Credit, ProfileSelection, StoredAsset, Track
from tuneflow.domain.policies import FieldRule, PlanLimits
from tuneflow.domain.release import Release
from tuneflow.release_options import Platform, ReleaseFormat

TODAY = date(2026, 1, 1)


def _limits(**overrides) -> PlanLimits:
    options = {
        "plan_key": "creator_plus",
        "artist_limit": 5,
        "allowed_formats": frozenset(ReleaseFormat),
    }
    options.update(overrides)
    return PlanLimits(**options)


def _stored_audio(audio_id: str, name: str = "night_drive.wav") -> AudioFile:
    return AudioFile(
        id=audio_id,
        file_name=name,
        size_bytes=2048,
        duration_seconds=181.0,
        storage=StoredAsset(f"audio/{audio_id}.wav", duration_seconds=180.0),
    )


def _ready_single() -> Release:
    return Release(
        title="Night Drive",
        primary_artist="Nova",
        format=ReleaseFormat.SINGLE,
        language="English",
        release_date=date(2026, 1, 15),
        primary_genre="Electronic",
        songwriters=(Credit("Jane Doe"),),
        cover_art=CoverArtReference("cover.png", StoredAsset("covers/cover.png", width=3000, height=3000)),
        composition=ReleaseComposition().add_audio_file(_stored_audio("a1"), multi_track=False),
    )


def _checks(**overrides) -> MandatoryChecks:
    options = {"rights_authorization": True, "promo_services": True, "name_usage": True, "terms_agreement": True}
    options.update(overrides)
    return MandatoryChecks(**options)


def _assembler() -> SubmissionAssembler:
    return SubmissionAssembler(today=lambda: TODAY)


class _FakeSubmissionPort:
    def __init__(self) -> None:
        self.payloads: list[dict] = []

    async def submit(self, payload):
        self.payloads.append(dict(payload))
        return SubmissionReceipt(release_id="rel-42")


def test_ready_release_has_no_violations() -> None:
    violations = _assembler().violations(
        _ready_single(), limits=_limits(), checks=_checks(), cover_state=CoverArtState.ACCEPTED
    )

    assert violations == []


def test_empty_release_collects_every_violation() -> None:
    with pytest.raises(SubmissionRejected) as exc:
        _assembler().assemble(Release(), limits=_limits(), checks=MandatoryChecks(), cover_state=CoverArtState.PENDING)

    assert exc.value.codes == [
        "missing_title",
        "missing_primary_artist",
        "missing_format",
        "missing_release_date",
        "no_tracks",
        "missing_audio",
        "cover_art_not_accepted",
        "unchecked_rights_authorization",
        "unchecked_promo_services",
        "unchecked_name_usage",
        "unchecked_terms_agreement",
    ]
    assert exc.value.as_dict()["code"] == "submission_rejected"


def test_shouting_title_requires_capitalization_confirmation() -> None:
    release = _ready_single()
    release.title = "SHOUT"

    assert requires_capitalization_confirmation(release)
    codes = [
        v.code
        for v in _assembler().violations(release, limits=_limits(), checks=_checks(), cover_state=CoverArtState.ACCEPTED)
    ]
    confirmed = _assembler().violations(
        release,
        limits=_limits(),
        checks=_checks(capitalization_confirmation=True),
        cover_state=CoverArtState.ACCEPTED,
    )

    assert codes == ["unchecked_capitalization_confirmation"]
    assert confirmed == []


def test_release_date_must_respect_lead_time() -> None:
    release = _ready_single()
    release.release_date = date(2026, 1, 7)

    violations = _assembler().violations(release, limits=_limits(), checks=_checks(), cover_state=CoverArtState.ACCEPTED)

    assert [v.code for v in violations] == ["release_date_too_soon"]
    assert "2026-01-08" in violations[0].message


def test_plan_limits_are_rechecked_at_submission() -> None:
    release = _ready_single()
    release.format = ReleaseFormat.ALBUM
    release.secondary_artists = ["Guest One"]
    release.isrc = "BAD"
    limits = _limits(
        plan_key="free",
        artist_limit=1,
        allowed_formats=frozenset({ReleaseFormat.SINGLE}),
        field_rules={"featured_artists": FieldRule(allow=False), "copyright": FieldRule(required=True)},
    )

    codes = [v.code for v in _assembler().violations(release, limits=limits, checks=_checks(), cover_state=CoverArtState.ACCEPTED)]

    assert "format_not_allowed" in codes
    assert "artist_limit_exceeded" in codes
    assert "invalid_isrc" in codes
    assert "field_not_allowed" in codes
    assert "required_field_missing" in codes
    assert "track_missing_audio" not in codes


def test_multi_track_release_checks_every_track() -> None:
    release = _ready_single()
    release.format = ReleaseFormat.EP
    composition = ReleaseComposition().add_audio_file(_stored_audio("a1"), multi_track=True)
    composition = composition.add_audio_file(replace(_stored_audio("a2", "b_side.wav"), storage=None), multi_track=True)
    composition = composition.add_track(Track(id="t3", songwriters=(Credit("Al B"),)))
    release.composition = composition

    violations = _assembler().violations(release, limits=_limits(), checks=_checks(), cover_state=CoverArtState.WARNING)
    codes = [v.code for v in violations]

    assert codes.count("track_missing_audio") == 1
    assert "audio_not_uploaded" in codes
    assert "missing_track_title" in codes
    assert "invalid_credit_name" in codes


def test_previously_released_needs_original_date() -> None:
    release = _ready_single()
    release.previously_released = True

    codes = [v.code for v in _assembler().violations(release, limits=_limits(), checks=_checks(), cover_state=CoverArtState.ACCEPTED)]

    assert codes == ["missing_original_release_date"]


def test_rejected_cover_art_blocks_submission() -> None:
    codes = [
        v.code
        for v in _assembler().violations(
            _ready_single(), limits=_limits(), checks=_checks(), cover_state=CoverArtState.REJECTED
        )
    ]

    assert codes == ["cover_art_not_accepted"]


def test_payload_applies_defaults_and_fallbacks() -> None:
    release = _ready_single()
    release.profiles[Platform.YOUTUBE] = ProfileSelection.new_profile()

    payload = _assembler().assemble(release, limits=_limits(), checks=_checks(), cover_state=CoverArtState.ACCEPTED)

    assert payload["labelName"] == "TuneFlow"
    assert payload["isrc"] == "QZ-K6P-25-00001"
    assert payload["releaseType"] == "single"
    assert payload["releaseDate"] == "2026-01-15"
    assert payload["coverArt"]["url"] == "covers/cover.png"
    assert payload["youtubeMusicProfile"] == "new"
    assert payload["spotifyProfile"] is None
    assert payload["confirmations"]["termsAgreement"] is True
    track = payload["tracks"][0]
    assert track["title"] == "Night Drive"
    assert track["artistName"] == "Nova"
    assert track["songwriters"] == [{"name": "Jane Doe", "role": "Music and lyrics"}]
    assert track["audioFile"]["url"] == "audio/a1.wav"
    assert track["audioFile"]["duration"] == 180.0


def test_record_label_hidden_by_plan_falls_back_to_default() -> None:
    release = _ready_single()
    release.record_label = "Indie Co"
    limits = _limits(field_rules={"record_label": FieldRule(allow=False)})

    payload = _assembler().build_payload(release, limits=limits, checks=_checks())

    assert payload["labelName"] == "TuneFlow"


@pytest.mark.asyncio
async def test_submit_sends_payload_to_port() -> None:
    port = _FakeSubmissionPort()

    receipt = await _assembler().submit(
        port, _ready_single(), limits=_limits(), checks=_checks(), cover_state=CoverArtState.ACCEPTED
    )

    assert receipt.release_id == "rel-42"
    assert port.payloads[0]["title"] == "Night Drive"


@pytest.mark.asyncio
async def test_submit_never_calls_port_when_rejected() -> None:
    port = _FakeSubmissionPort()

    with pytest.raises(SubmissionRejected):
        await _assembler().submit(port, Release(), limits=_limits(), checks=_checks(), cover_state=CoverArtState.ACCEPTED)

    assert port.payloads == []


def test_build_payload_rejects_incomplete_release() -> None:
    release = _ready_single()
    release.format = None
    release.cover_art = None

    with pytest.raises(SubmissionRejected) as exc:
        _assembler().build_payload(release, limits=_limits(), checks=_checks())

    assert exc.value.codes == ["missing_format", "missing_cover_art"]
