"""Domain value objects representing plan-tier release policies."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from tuneflow.release_options import ReleaseFormat


@dataclass(frozen=True, slots=True)
class FieldRule:
    """Whether a plan shows a form field at all, and whether it must be filled."""

    allow: bool = True
    required: bool = False


@dataclass(frozen=True, slots=True)
class PlanLimits:
    """Read-only limits for one plan tier.

    ``artist_limit`` counts the primary artist; ``None`` means unbounded.
    """

    plan_key: str
    artist_limit: int | None
    allowed_formats: frozenset[ReleaseFormat]
    allow_concurrent: bool = False
    field_rules: Mapping[str, FieldRule] = field(default_factory=lambda: MappingProxyType({}))
    default_field_rule: FieldRule = FieldRule()
    is_fallback: bool = False

    def allows_format(self, release_format: ReleaseFormat) -> bool:
        return release_format in self.allowed_formats

    def field_rule(self, field_name: str) -> FieldRule:
        return self.field_rules.get(field_name, self.default_field_rule)

    def is_field_allowed(self, field_name: str) -> bool:
        return self.field_rule(field_name).allow

    def is_field_required(self, field_name: str) -> bool:
        rule = self.field_rule(field_name)
        return rule.allow and rule.required

    @property
    def unbounded_artists(self) -> bool:
        return self.artist_limit is None


def most_restrictive_limits(plan_key: str) -> PlanLimits:
    """Limits used whenever plan data cannot be loaded; never fails open."""

    return PlanLimits(
        plan_key=plan_key,
        artist_limit=1,
        allowed_formats=frozenset({ReleaseFormat.SINGLE}),
        allow_concurrent=False,
        field_rules=MappingProxyType({}),
        default_field_rule=FieldRule(allow=False, required=False),
        is_fallback=True,
    )


# Field names understood by plan field rules.
FIELD_FEATURED_ARTISTS = "featured_artists"
FIELD_ISRC = "isrc"
FIELD_COPYRIGHT = "copyright"
FIELD_PRODUCERS = "producers"
FIELD_RECORD_LABEL = "record_label"
FIELD_PREVIEW_START = "preview_start_seconds"
FIELD_LANGUAGE = "language"
FIELD_PRIMARY_GENRE = "primary_genre"
FIELD_SECONDARY_GENRE = "secondary_genre"
FIELD_RELEASE_DATE = "release_date"
FIELD_DOLBY_ATMOS = "dolby_atmos"

KNOWN_FIELDS: tuple[str, ...] = (
    FIELD_FEATURED_ARTISTS,
    FIELD_ISRC,
    FIELD_COPYRIGHT,
    FIELD_PRODUCERS,
    FIELD_RECORD_LABEL,
    FIELD_PREVIEW_START,
    FIELD_LANGUAGE,
    FIELD_PRIMARY_GENRE,
    FIELD_SECONDARY_GENRE,
    FIELD_RELEASE_DATE,
    FIELD_DOLBY_ATMOS,
)


@dataclass(frozen=True, slots=True)
class ReleaseRules:
    """Non plan-specific release rules and their defaults."""

    min_lead_days: int = 7
    default_label: str = "TuneFlow"
    default_isrc: str = "QZ-K6P-25-00001"


DEFAULT_RELEASE_RULES = ReleaseRules()
