"""Built-in plan table for offline use and tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from tuneflow.application.ports import PlanRecord
from tuneflow.domain.policies import FieldRule

_ALL_FORMATS = ("single", "ep", "album")

PLAN_TABLE: dict[str, PlanRecord] = {
    "free": PlanRecord(artist_limit=1, allow_concurrent=False, allowed_formats=("single",)),
    "solo": PlanRecord(artist_limit=1, allow_concurrent=True, allowed_formats=("single",)),
    "creator_plus": PlanRecord(artist_limit=5, allow_concurrent=True, allowed_formats=_ALL_FORMATS),
    "label_mx": PlanRecord(artist_limit=10, allow_concurrent=True, allowed_formats=_ALL_FORMATS),
    "enterprise": PlanRecord(artist_limit=None, allow_concurrent=True, allowed_formats=_ALL_FORMATS),
}


@dataclass(slots=True)
class StaticPlanSource:
    plans: Mapping[str, PlanRecord] = field(default_factory=lambda: dict(PLAN_TABLE))
    field_rules: Mapping[str, Mapping[str, FieldRule]] = field(default_factory=dict)

    async def fetch_limits(self, plan_key: str, *, force_refresh: bool = False) -> PlanRecord | None:
        return self.plans.get(plan_key)

    async def fetch_field_rules(self, plan_key: str, *, force_refresh: bool = False) -> Mapping[str, FieldRule]:
        return dict(self.field_rules.get(plan_key, {}))
