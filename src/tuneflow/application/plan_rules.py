"""Plan-tier rule engine: artist ceiling, allowed formats and field rules."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from types import MappingProxyType

from pydantic.alias_generators import to_snake

from tuneflow.application.ports import PlanDataPort
from tuneflow.domain.policies import FieldRule, PlanLimits, most_restrictive_limits
from tuneflow.release_options import ReleaseFormat

logger = logging.getLogger(__name__)


def limits_from_record(plan_key: str, record, field_rules) -> PlanLimits:
    """Combine collaborator data into ``PlanLimits``, dropping unknown format names."""

    formats: set[ReleaseFormat] = set()
    for raw in record.allowed_formats:
        try:
            formats.add(ReleaseFormat(str(raw).lower()))
        except ValueError:
            logger.warning("Ignoring unknown release format in plan data", extra={"plan_key": plan_key, "format": raw})
    return PlanLimits(
        plan_key=plan_key,
        artist_limit=record.artist_limit,
        allowed_formats=frozenset(formats or {ReleaseFormat.SINGLE}),
        allow_concurrent=record.allow_concurrent,
        field_rules=MappingProxyType(dict(field_rules)),
    )


@dataclass(slots=True)
class PlanRuleEngine:
    """Resolve plan limits once per plan key, failing closed on collaborator errors.

    Limits for the active plan are exposed through :attr:`active`; changing the
    plan key replaces them, so callers must always read from the engine instead of
    holding on to an old ``PlanLimits``.
    """

    plan_data: PlanDataPort
    _cache: dict[str, PlanLimits] = field(default_factory=dict)
    _active: PlanLimits | None = None

    async def limits_for(self, plan_key: str, *, force_refresh: bool = False) -> PlanLimits:
        if not force_refresh and plan_key in self._cache:
            return self._cache[plan_key]

        try:
            record, field_rules = await asyncio.gather(
                self.plan_data.fetch_limits(plan_key, force_refresh=force_refresh),
                self.plan_data.fetch_field_rules(plan_key, force_refresh=force_refresh),
            )
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "Plan data unavailable; falling back to most restrictive limits.",
                extra={"plan_key": plan_key},
                exc_info=error,
            )
            return most_restrictive_limits(plan_key)

        if record is None:
            logger.warning("Unknown plan key; using most restrictive limits.", extra={"plan_key": plan_key})
            limits = most_restrictive_limits(plan_key)
        else:
            limits = limits_from_record(plan_key, record, field_rules)
        self._cache[plan_key] = limits
        return limits

    async def activate(self, plan_key: str, *, force_refresh: bool = False) -> PlanLimits:
        """Switch the active plan and return its limits."""

        self._active = await self.limits_for(plan_key, force_refresh=force_refresh)
        return self._active

    @property
    def active(self) -> PlanLimits:
        if self._active is None:
            return most_restrictive_limits("unknown")
        return self._active

    def clear(self) -> None:
        self._cache.clear()


def parse_field_rules(raw_rules: dict | None) -> dict[str, FieldRule]:
    """Normalise a wire field-rules map (camelCase keys, loose values) to ``FieldRule``s."""

    rules: dict[str, FieldRule] = {}
    for raw_name, raw_rule in (raw_rules or {}).items():
        name = to_snake(str(raw_name))
        if isinstance(raw_rule, dict):
            rules[name] = FieldRule(allow=bool(raw_rule.get("allow", True)), required=bool(raw_rule.get("required", False)))
        elif isinstance(raw_rule, bool):
            rules[name] = FieldRule(allow=raw_rule, required=False)
    return rules
