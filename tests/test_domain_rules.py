from __future__ import annotations

from datetime import date

import pytest

from tuneflow.domain.models import ArtistProfile, ProfileSelection, ProfileState, SocialLink
from tuneflow.domain.policies import FieldRule, PlanLimits, most_restrictive_limits
from tuneflow.domain.services import (
    PlanLimitError,
    credit_name_error,
    earliest_release_date,
    ensure_artist_limit,
    ensure_format_allowed,
    has_irregular_capitalization,
    is_valid_isrc,
    release_year,
)
from tuneflow.release_options import Platform, ReleaseFormat, SocialStatus, parse_case_insensitive_enum


def _limits(artist_limit: int | None = 2) -> PlanLimits:
    return PlanLimits(
        plan_key="creator_plus",
        artist_limit=artist_limit,
        allowed_formats=frozenset({ReleaseFormat.SINGLE, ReleaseFormat.EP}),
        field_rules={"isrc": FieldRule(allow=True, required=True), "dolby_atmos": FieldRule(allow=False)},
    )


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("QZ-K6P-25-00001", True),
        ("qz-k6p-25-00001", True),
        ("QZK6P2500001", False),
        ("QZ-K6P-25-0001", False),
        ("", False),
    ],
)
def test_isrc_format(value: str, expected: bool) -> None:
    assert is_valid_isrc(value) is expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("SHOUT", True),
        ("iPhone Song", True),
        ("Quiet Song", False),
        ("ABC", False),
        ("", False),
    ],
)
def test_irregular_capitalization(text: str, expected: bool) -> None:
    assert has_irregular_capitalization(text) is expected


def test_credit_names_require_first_and_last_name() -> None:
    assert credit_name_error("Jane Doe") is None
    assert credit_name_error("Jo Doe") is not None
    assert credit_name_error("Prince") is not None


def test_artist_limit_counts_previously_used_names_once() -> None:
    limits = _limits(artist_limit=2)

    ensure_artist_limit(limits, ["Nova", "Guest"], previously_used=["Nova"])
    with pytest.raises(PlanLimitError) as exc:
        ensure_artist_limit(limits, ["Nova", "Guest"], previously_used=["Other"])

    assert exc.value.code == "artist_limit_exceeded"
    assert "Creator+" in exc.value.message


def test_unbounded_plan_accepts_any_artist_count() -> None:
    ensure_artist_limit(_limits(artist_limit=None), [f"Artist {index}" for index in range(50)])


def test_format_not_allowed_lists_allowed_formats() -> None:
    with pytest.raises(PlanLimitError) as exc:
        ensure_format_allowed(_limits(), ReleaseFormat.ALBUM)

    assert exc.value.code == "format_not_allowed"
    assert "ep, single" in exc.value.message


def test_field_rules_default_to_allowed_and_optional() -> None:
    limits = _limits()

    assert limits.is_field_required("isrc")
    assert not limits.is_field_allowed("dolby_atmos")
    assert limits.is_field_allowed("language")
    assert not limits.is_field_required("language")


def test_most_restrictive_limits_hide_every_field() -> None:
    limits = most_restrictive_limits("mystery")

    assert limits.is_fallback
    assert limits.artist_limit == 1
    assert limits.allowed_formats == frozenset({ReleaseFormat.SINGLE})
    assert not limits.is_field_allowed("isrc")


def test_release_date_helpers() -> None:
    assert earliest_release_date(date(2026, 1, 1), 7) == date(2026, 1, 8)
    assert release_year(date(2026, 5, 1)) == "2026"
    assert release_year(None) is None


def test_profile_selection_payload_shapes() -> None:
    profile = ArtistProfile(Platform.SPOTIFY, "sp-1", "Nova", profile_url="https://open.spotify.com/artist/sp-1")

    assert ProfileSelection.unresolved().to_payload() is None
    assert ProfileSelection.new_profile().to_payload() == "new"
    assert ProfileSelection.manual(" https://x.test/nova ").to_payload() == "https://x.test/nova"
    assert ProfileSelection.resolved(profile).to_payload()["id"] == "sp-1"
    assert ProfileSelection.resolved(profile).state is ProfileState.RESOLVED


def test_profile_selection_invariants() -> None:
    with pytest.raises(ValueError):
        ProfileSelection(state=ProfileState.RESOLVED)
    with pytest.raises(ValueError):
        ProfileSelection(state=ProfileState.MANUAL_URL)


def test_profile_matches_reference_by_id_or_url() -> None:
    profile = ArtistProfile(Platform.APPLE, "123", "Nova", profile_url="https://music.apple.com/artist/123")

    assert profile.matches_reference("123")
    assert profile.matches_reference("https://music.apple.com/artist/123/")
    assert not profile.matches_reference("456")
    assert not profile.matches_reference("  ")


def test_social_link_migrates_legacy_strings() -> None:
    assert SocialLink.from_legacy(None) == SocialLink()
    assert SocialLink.from_legacy("YES") == SocialLink(status=SocialStatus.YES)
    assert SocialLink.from_legacy("https://instagram.com/nova").url == "https://instagram.com/nova"
    assert SocialLink(status=SocialStatus.NO, url="stale").to_payload() == {"status": "no", "url": None}


def test_parse_case_insensitive_enum_reports_allowed_values() -> None:
    assert parse_case_insensitive_enum("EP", ReleaseFormat) is ReleaseFormat.EP

    with pytest.raises(ValueError, match="Allowed values: single, ep, album"):
        parse_case_insensitive_enum("mixtape", ReleaseFormat)
