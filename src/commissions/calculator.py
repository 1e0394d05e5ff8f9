"""Commission calculators: pure functions, no I/O."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Iterable

from commissions.exceptions import CommissionConfigurationError
from commissions.roster import RateTier

ZERO = Decimal("0")


@dataclass(frozen=True)
class TierContribution:
    label: str
    ceiling: Decimal | None
    rate: Decimal
    amount: Decimal


@dataclass(frozen=True)
class TieredCommission:
    attainment: Decimal
    commission: Decimal
    tier_breakdown: tuple[TierContribution, ...]


@dataclass(frozen=True)
class ActivityCommission:
    attainment: Decimal
    commission: Decimal
    base_meetings: int
    accelerated_meetings: int


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _check_quota(quota: Decimal) -> None:
    if quota < 0:
        raise CommissionConfigurationError(f"Quota cannot be negative: {quota}")


def tiered_revenue_commission(quota, tiers: Iterable[RateTier], net_revenue) -> TieredCommission:
    """Progressive marginal-rate commission on attainment bands.

    Each band pays its own rate on the slice of attainment that falls inside
    it: ``(min(attainment, ceiling) - lower) * quota * rate``.
    """
    quota = _as_decimal(quota)
    net_revenue = _as_decimal(net_revenue)
    _check_quota(quota)

    attainment = net_revenue / quota if quota > 0 else ZERO
    commission = ZERO
    breakdown = []
    lower = ZERO
    for tier in tiers:
        if attainment <= lower:
            amount = ZERO
        else:
            capped = attainment if tier.ceiling is None else min(attainment, tier.ceiling)
            amount = (capped - lower) * quota * tier.rate
        commission += amount
        breakdown.append(
            TierContribution(label=tier.label, ceiling=tier.ceiling, rate=tier.rate, amount=amount)
        )
        if tier.ceiling is None:
            break
        lower = tier.ceiling

    return TieredCommission(
        attainment=attainment,
        commission=commission,
        tier_breakdown=tuple(breakdown),
    )


def threshold_activity_commission(
    quota,
    flat_rate,
    accelerated_rate,
    accelerator_threshold,
    net_meeting_count: int,
) -> ActivityCommission:
    """Flat per-meeting pay with an accelerator unlocked above a threshold.

    Above the threshold the base count is pinned at
    ``floor(quota * threshold)`` meetings; only meetings beyond it earn the
    accelerated rate.
    """
    quota = _as_decimal(quota)
    flat_rate = _as_decimal(flat_rate)
    accelerated_rate = _as_decimal(accelerated_rate)
    accelerator_threshold = _as_decimal(accelerator_threshold)
    _check_quota(quota)

    meetings = Decimal(net_meeting_count)
    attainment = meetings / quota if quota > 0 else ZERO

    if attainment <= accelerator_threshold:
        return ActivityCommission(
            attainment=attainment,
            commission=meetings * flat_rate,
            base_meetings=net_meeting_count,
            accelerated_meetings=0,
        )

    base = int((quota * accelerator_threshold).to_integral_value(rounding=ROUND_FLOOR))
    extra = net_meeting_count - base
    return ActivityCommission(
        attainment=attainment,
        commission=base * flat_rate + extra * accelerated_rate,
        base_meetings=base,
        accelerated_meetings=extra,
    )
