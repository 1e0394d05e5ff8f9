"""Revenue aggregation: month-bucketed deal totals per representative.

All routines share one settlement-date window and one owner-resolution
path so that won, lost and pipeline figures stay mutually consistent.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, Mapping

from commissions.periods import MonthWindow
from commissions.roster import resolve_owner
from crm.records import Deal


@dataclass
class RevenueBucket:
    revenue: Decimal = Decimal("0")
    count: int = 0


@dataclass
class DemoTally:
    held: int = 0
    won: int = 0

    @property
    def closed_won_rate(self) -> Decimal | None:
        if self.held == 0:
            return None
        return Decimal(self.won) / Decimal(self.held)


def deals_in_window(deals: Iterable[Deal], window: MonthWindow, stage: str) -> list[Deal]:
    """Deals in ``stage`` whose settlement date falls in ``window``."""
    return [d for d in deals if d.stage == stage and window.contains(d.settlement_date)]


def _bucket_by(
    deals: Iterable[Deal],
    window: MonthWindow,
    stage: str,
    owner_map: Mapping[str, str],
    owner_of: Callable[[Deal], str | None],
) -> dict[str, RevenueBucket]:
    buckets: dict[str, RevenueBucket] = {}
    for deal in deals_in_window(deals, window, stage):
        owner_id = owner_of(deal)
        rep_id = resolve_owner(owner_map, owner_id)
        if rep_id is None:
            continue
        bucket = buckets.setdefault(rep_id, RevenueBucket())
        bucket.revenue += deal.value
        bucket.count += 1
    return buckets


def aggregate_stage(
    deals: Iterable[Deal],
    window: MonthWindow,
    owner_map: Mapping[str, str],
    stage: str,
) -> dict[str, RevenueBucket]:
    """Revenue and deal count per representative (by deal owner)."""
    return _bucket_by(deals, window, stage, owner_map, lambda d: d.owner_id)


def aggregate_gross_revenue(
    deals: Iterable[Deal],
    window: MonthWindow,
    owner_map: Mapping[str, str],
    stage: str = "Closed Won",
) -> dict[str, RevenueBucket]:
    """Gross won revenue (``revenue``) and deals won (``count``) per rep."""
    return aggregate_stage(deals, window, owner_map, stage)


def aggregate_closed_lost(
    deals: Iterable[Deal],
    window: MonthWindow,
    owner_map: Mapping[str, str],
    stage: str = "Closed Lost",
) -> dict[str, RevenueBucket]:
    """Lost revenue and deals lost per rep, same window and owner rules as won."""
    return aggregate_stage(deals, window, owner_map, stage)


def aggregate_by_lead_owner(
    deals: Iterable[Deal],
    window: MonthWindow,
    owner_map: Mapping[str, str],
    stage: str,
) -> dict[str, RevenueBucket]:
    """Same as ``aggregate_stage`` but credited to the deal's lead owner."""
    return _bucket_by(deals, window, stage, owner_map, lambda d: d.lead_owner_id)


def count_meetings(
    deals: Iterable[Deal],
    window: MonthWindow,
    owner_map: Mapping[str, str],
    stage: str = "Closed Won",
    voided_deal_ids: frozenset[str] = frozenset(),
) -> dict[str, tuple[int, int]]:
    """``(total, net)`` meetings per lead owner; net excludes voided deals."""
    meetings: dict[str, tuple[int, int]] = {}
    for deal in deals_in_window(deals, window, stage):
        rep_id = resolve_owner(owner_map, deal.lead_owner_id)
        if rep_id is None:
            continue
        total, net = meetings.get(rep_id, (0, 0))
        voided = deal.id is not None and deal.id in voided_deal_ids
        meetings[rep_id] = (total + 1, net + (0 if voided else 1))
    return meetings


def tally_demos(
    deals: Iterable[Deal],
    window: MonthWindow,
    owner_map: Mapping[str, str],
    won_stage: str = "Closed Won",
) -> dict[str, DemoTally]:
    """Demos held in the month (any stage) and how many of them were won."""
    tallies: dict[str, DemoTally] = {}
    for deal in deals:
        if not window.contains(deal.demo_held_date):
            continue
        rep_id = resolve_owner(owner_map, deal.owner_id)
        if rep_id is None:
            continue
        tally = tallies.setdefault(rep_id, DemoTally())
        tally.held += 1
        if deal.stage == won_stage:
            tally.won += 1
    return tallies
