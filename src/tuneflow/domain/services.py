"""Domain services that contain pure business rules."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from tuneflow.domain.policies import PlanLimits
from tuneflow.release_options import ReleaseFormat

ISRC_PATTERN = re.compile(r"^[A-Z0-9]{2}-[A-Z0-9]{3}-[A-Z0-9]{2}-[A-Z0-9]{5}$", re.IGNORECASE)
CREDIT_NAME_PATTERN = re.compile(r"^[a-zA-Z]{3,} [a-zA-Z]{3,}$")
_LOWER_UPPER_PATTERN = re.compile(r"[a-z][A-Z]")


@dataclass(frozen=True, slots=True)
class PlanLimitError(ValueError):
    code: str
    message: str

    def __str__(self) -> str:
        return self.message

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


def is_valid_isrc(value: str) -> bool:
    """ISRC codes are four hyphenated alphanumeric groups: XX-XXX-XX-XXXXX."""

    return bool(ISRC_PATTERN.match(value.strip()))


def has_irregular_capitalization(text: str) -> bool:
    if not text:
        return False
    return bool(_LOWER_UPPER_PATTERN.search(text)) or (text == text.upper() and len(text) > 3)


def credit_name_error(name: str) -> str | None:
    """Return a message when a songwriter/composer name is not "Firstname Lastname"."""

    if not CREDIT_NAME_PATTERN.match(name.strip()):
        return f'Invalid credit name: "{name}". Must be "Firstname Lastname" (letters only, min 3 chars each).'
    return None


def earliest_release_date(today: date, min_lead_days: int) -> date:
    return today + timedelta(days=min_lead_days)


def release_year(release_date: date | None) -> str | None:
    return str(release_date.year) if release_date else None


def artist_count_after(names: Iterable[str], previously_used: Iterable[str] = ()) -> int:
    """Total distinct artists the account would hold once ``names`` are committed."""

    used = {name.strip() for name in previously_used if name and name.strip()}
    release_names = {name.strip() for name in names if name and name.strip()}
    return len(used) + len(release_names - used)


def ensure_artist_limit(limits: PlanLimits, names: Iterable[str], previously_used: Iterable[str] = ()) -> None:
    if limits.artist_limit is None:
        return
    total = artist_count_after(names, previously_used)
    if total > limits.artist_limit:
        raise PlanLimitError(
            "artist_limit_exceeded",
            f"You have reached your artist limit ({limits.artist_limit}) for the {plan_display_name(limits.plan_key)} plan.",
        )


def ensure_format_allowed(limits: PlanLimits, release_format: ReleaseFormat) -> None:
    if not limits.allows_format(release_format):
        allowed = ", ".join(sorted(item.value for item in limits.allowed_formats))
        raise PlanLimitError(
            "format_not_allowed",
            f"The {plan_display_name(limits.plan_key)} plan does not allow '{release_format.value}' releases. Allowed: {allowed}.",
        )


def plan_display_name(plan_key: str) -> str:
    if plan_key == "creator_plus":
        return "Creator+"
    return plan_key[:1].upper() + plan_key[1:]
