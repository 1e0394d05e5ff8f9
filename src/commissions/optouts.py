"""Opt-out reconciliation.

A won deal is voided for commission purposes when one of its linked people
asked to cancel within a fixed number of days after the deal closed. The
pass runs one month in arrears: the report for month M only ever looks at
cancellations dated in M-1, so numbers already paid out never move when
new cancellations are recorded.

Only deals settled in M are inspected, so a deal can be voided only when
its close date falls before its settlement month (closed in M-1 or
earlier, onboarded in M). A deal that closes and settles in the same month
is never voided by any report.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Mapping

from commissions.aggregation import deals_in_window
from commissions.periods import MonthWindow
from commissions.roster import resolve_owner
from crm.records import ChurnedPerson, Deal

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30


@dataclass
class OptOutBucket:
    count: int = 0
    revenue: Decimal = Decimal("0")

    def add(self, revenue: Decimal) -> None:
        self.count += 1
        self.revenue += revenue


@dataclass
class OptOutReconciliation:
    lag_window: MonthWindow
    by_representative: dict[str, OptOutBucket] = field(default_factory=dict)
    unattributed: OptOutBucket = field(default_factory=OptOutBucket)
    voided_deal_ids: frozenset[str] = frozenset()


def _cancellations_by_person(
    churned_persons: Iterable[ChurnedPerson], lag_window: MonthWindow
) -> dict[str, list[date]]:
    dates: dict[str, list[date]] = {}
    for person in churned_persons:
        if not lag_window.contains(person.cancellation_requested_at):
            continue
        dates.setdefault(person.person_record_id, []).append(
            date.fromisoformat(person.cancellation_requested_at)
        )
    return dates


def is_opt_out(
    deal: Deal, cancellations: Mapping[str, list[date]], window_days: int = DEFAULT_WINDOW_DAYS
) -> bool:
    """True when a linked person cancelled within ``window_days`` of close."""
    closed = deal.close_date or deal.settlement_date
    if closed is None:
        return False
    start = date.fromisoformat(closed)
    end = start + timedelta(days=window_days)
    for person_id in deal.linked_person_ids:
        if any(start <= when <= end for when in cancellations.get(person_id, ())):
            return True
    return False


def reconcile_opt_outs(
    churned_persons: Iterable[ChurnedPerson],
    window: MonthWindow,
    closed_won_deals: Iterable[Deal],
    owner_map: Mapping[str, str],
    active_rep_ids: Iterable[str],
    *,
    stage: str = "Closed Won",
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> OptOutReconciliation:
    active = set(active_rep_ids)
    lag_window = window.previous()
    cancellations = _cancellations_by_person(churned_persons, lag_window)
    result = OptOutReconciliation(lag_window=lag_window)
    if not cancellations:
        return result

    voided = set()
    for deal in deals_in_window(closed_won_deals, window, stage):
        if not is_opt_out(deal, cancellations, window_days):
            continue
        if deal.id:
            voided.add(deal.id)
        rep_id = resolve_owner(owner_map, deal.owner_id)
        if rep_id is None or rep_id not in active:
            result.unattributed.add(deal.value)
            continue
        result.by_representative.setdefault(rep_id, OptOutBucket()).add(deal.value)

    result.voided_deal_ids = frozenset(voided)
    logger.info(
        "%s: %d opt-out deal(s) against %s cancellations",
        window.key,
        len(voided),
        lag_window.key,
    )
    return result
