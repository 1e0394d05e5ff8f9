"""Representative roster and owner bindings.

The roster is loaded once per process from settings into immutable values
and passed by reference into the engine; nothing here is mutated at runtime.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Mapping

from django.conf import settings

from commissions.exceptions import CommissionConfigurationError

TIERED_REVENUE = "tiered_revenue"
THRESHOLD_ACTIVITY = "threshold_activity"

_MONTH_KEY = re.compile(r"^\d{4}-\d{2}$")


def _decimal(value: Any, what: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise CommissionConfigurationError(f"{what} is not a number: {value!r}") from exc
    if not amount.is_finite():
        raise CommissionConfigurationError(f"{what} is not a finite number: {value!r}")
    return amount


@dataclass(frozen=True)
class RateTier:
    label: str
    ceiling: Decimal | None  # None: unbounded top band
    rate: Decimal


@dataclass(frozen=True)
class TieredRevenuePlan:
    tiers: tuple[RateTier, ...]

    kind = TIERED_REVENUE


@dataclass(frozen=True)
class ThresholdActivityPlan:
    flat_rate: Decimal
    accelerated_rate: Decimal
    accelerator_threshold: Decimal

    kind = THRESHOLD_ACTIVITY


@dataclass(frozen=True)
class Representative:
    id: str
    display_name: str
    monthly_quota: Decimal
    plan: TieredRevenuePlan | ThresholdActivityPlan
    role: str = ""
    initials: str = ""
    color: str = ""
    target_variable: Decimal = Decimal("0")
    active_from: str | None = None
    active_to: str | None = None

    @property
    def is_activity_quota(self) -> bool:
        return self.plan.kind == THRESHOLD_ACTIVITY

    def is_active_in(self, month_key: str) -> bool:
        if self.active_from and month_key < self.active_from:
            return False
        if self.active_to and month_key > self.active_to:
            return False
        return True


def resolve_owner(owner_map: Mapping[str, str], owner_id: str | None) -> str | None:
    if not owner_id:
        return None
    return owner_map.get(owner_id)


@dataclass(frozen=True)
class Roster:
    representatives: tuple[Representative, ...]
    owner_map: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def active_representatives(self, month_key: str) -> list[Representative]:
        return [rep for rep in self.representatives if rep.is_active_in(month_key)]

    def owner_to_rep_id(self, owner_id: str | None) -> str | None:
        """Representative bound to a CRM user id; None when unmapped."""
        return resolve_owner(self.owner_map, owner_id)

    def get(self, rep_id: str) -> Representative | None:
        return next((rep for rep in self.representatives if rep.id == rep_id), None)


# ----------------------------------------------------------------------
# Loading & validation
# ----------------------------------------------------------------------

def _build_tiers(rep_id: str, raw_tiers: Any) -> tuple[RateTier, ...]:
    if not raw_tiers:
        raise CommissionConfigurationError(f"{rep_id}: tiered plan needs at least one tier")
    tiers = []
    previous = Decimal("0")
    for index, raw in enumerate(raw_tiers):
        is_last = index == len(raw_tiers) - 1
        ceiling = raw.get("ceiling")
        rate = _decimal(raw.get("rate"), f"{rep_id} tier {index} rate")
        if rate < 0:
            raise CommissionConfigurationError(f"{rep_id} tier {index}: negative rate")
        if ceiling is None or str(ceiling).lower() in ("inf", "infinity"):
            if not is_last:
                raise CommissionConfigurationError(
                    f"{rep_id} tier {index}: only the last tier may be unbounded"
                )
            ceiling_value = None
        else:
            if is_last:
                raise CommissionConfigurationError(
                    f"{rep_id} tier {index}: the last tier must be unbounded"
                )
            ceiling_value = _decimal(ceiling, f"{rep_id} tier {index} ceiling")
            if ceiling_value <= previous:
                raise CommissionConfigurationError(
                    f"{rep_id} tier {index}: ceilings must be strictly ascending"
                )
            previous = ceiling_value
        tiers.append(
            RateTier(
                label=raw.get("label") or f"tier {index + 1}",
                ceiling=ceiling_value,
                rate=rate,
            )
        )
    return tuple(tiers)


def _build_plan(rep_id: str, entry: Mapping) -> TieredRevenuePlan | ThresholdActivityPlan:
    model = entry.get("model", TIERED_REVENUE)
    if model == TIERED_REVENUE:
        return TieredRevenuePlan(tiers=_build_tiers(rep_id, entry.get("tiers")))
    if model == THRESHOLD_ACTIVITY:
        plan = ThresholdActivityPlan(
            flat_rate=_decimal(entry.get("flat_rate"), f"{rep_id} flat_rate"),
            accelerated_rate=_decimal(entry.get("accelerated_rate"), f"{rep_id} accelerated_rate"),
            accelerator_threshold=_decimal(
                entry.get("accelerator_threshold"), f"{rep_id} accelerator_threshold"
            ),
        )
        if plan.flat_rate < 0 or plan.accelerated_rate < 0:
            raise CommissionConfigurationError(f"{rep_id}: negative meeting rate")
        if plan.accelerator_threshold <= 0:
            raise CommissionConfigurationError(f"{rep_id}: accelerator threshold must be positive")
        return plan
    raise CommissionConfigurationError(f"{rep_id}: unknown compensation model {model!r}")


def build_representative(entry: Mapping) -> Representative:
    rep_id = entry.get("id")
    if not rep_id:
        raise CommissionConfigurationError(f"Roster entry without id: {entry!r}")
    quota = _decimal(entry.get("monthly_quota"), f"{rep_id} monthly_quota")
    if quota < 0:
        raise CommissionConfigurationError(f"{rep_id}: monthly quota cannot be negative")

    active_from = entry.get("active_from") or None
    active_to = entry.get("active_to") or None
    for bound in (active_from, active_to):
        if bound is not None and not _MONTH_KEY.match(bound):
            raise CommissionConfigurationError(f"{rep_id}: bad active month {bound!r}")
    if active_from and active_to and active_from > active_to:
        raise CommissionConfigurationError(f"{rep_id}: active_from is after active_to")

    return Representative(
        id=rep_id,
        display_name=entry.get("name") or rep_id,
        role=entry.get("role", ""),
        initials=entry.get("initials", ""),
        color=entry.get("color", ""),
        monthly_quota=quota,
        target_variable=_decimal(entry.get("target_variable", 0), f"{rep_id} target_variable"),
        plan=_build_plan(rep_id, entry),
        active_from=active_from,
        active_to=active_to,
    )


def build_roster(entries: list[Mapping], owner_map: Mapping[str, str] | None = None) -> Roster:
    representatives = tuple(build_representative(entry) for entry in entries)
    ids = [rep.id for rep in representatives]
    if len(ids) != len(set(ids)):
        raise CommissionConfigurationError("Duplicate representative ids in roster")

    owner_map = dict(owner_map or {})
    unknown = sorted(set(owner_map.values()) - set(ids))
    if unknown:
        raise CommissionConfigurationError(f"Owner bindings point at unknown representatives: {unknown}")
    return Roster(representatives=representatives, owner_map=MappingProxyType(owner_map))


@lru_cache
def get_roster() -> Roster:
    return build_roster(settings.COMMISSION_ROSTER, settings.ATTIO_OWNER_MAP)
