"""Churn attribution.

Each cancellation in the month is traced back to the churned person's most
recently settled won deal, across the person's whole deal history, and
debited to that deal's owner. Events that cannot be attributed to an
active representative land in an observable ``unattributed`` bucket.

The churn debit is kept for display and audit; the authoritative revenue
deduction is the opt-out pass (see ``commissions.optouts``).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping

from commissions.periods import MonthWindow
from commissions.roster import resolve_owner
from crm.records import ChurnedPerson, Deal

logger = logging.getLogger(__name__)


@dataclass
class ChurnBucket:
    count: int = 0
    revenue: Decimal = Decimal("0")

    def add(self, revenue: Decimal) -> None:
        self.count += 1
        self.revenue += revenue


@dataclass
class ChurnAttribution:
    by_representative: dict[str, ChurnBucket] = field(default_factory=dict)
    unattributed: ChurnBucket = field(default_factory=ChurnBucket)
    # person id -> deal id the event was traced to (None when no dated deal)
    traced_deals: dict[str, str | None] = field(default_factory=dict)

    @property
    def total_revenue(self) -> Decimal:
        return sum(
            (b.revenue for b in self.by_representative.values()),
            self.unattributed.revenue,
        )


def index_deals_by_person(closed_won_deals: Iterable[Deal]) -> dict[str, list[Deal]]:
    """person id -> every won deal linking to that person (no date filter)."""
    index: dict[str, list[Deal]] = {}
    for deal in closed_won_deals:
        for person_id in deal.linked_person_ids:
            index.setdefault(person_id, []).append(deal)
    return index


def latest_settled_deal(deals: Iterable[Deal]) -> Deal | None:
    """Deal with the latest settlement date; the first seen wins a tie."""
    latest = None
    for deal in deals:
        if deal.settlement_date is None:
            continue
        if latest is None or deal.settlement_date > latest.settlement_date:
            latest = deal
    return latest


def attribute_churn(
    churned_persons: Iterable[ChurnedPerson],
    window: MonthWindow,
    closed_won_deals: Iterable[Deal],
    owner_map: Mapping[str, str],
    active_rep_ids: Iterable[str],
) -> ChurnAttribution:
    active = set(active_rep_ids)
    index = index_deals_by_person(closed_won_deals)
    result = ChurnAttribution()

    for person in churned_persons:
        if not window.contains(person.cancellation_requested_at):
            continue
        if person.person_record_id in result.traced_deals:
            # one event per person per month
            continue

        deal = latest_settled_deal(index.get(person.person_record_id, ()))
        result.traced_deals[person.person_record_id] = deal.id if deal else None
        if deal is None:
            result.unattributed.add(Decimal("0"))
            continue

        rep_id = resolve_owner(owner_map, deal.owner_id)
        if rep_id is None or rep_id not in active:
            result.unattributed.add(deal.value)
            continue
        result.by_representative.setdefault(rep_id, ChurnBucket()).add(deal.value)

    if result.unattributed.count:
        logger.warning(
            "%s: %d churn event(s) unattributed (%s revenue)",
            window.key,
            result.unattributed.count,
            result.unattributed.revenue,
        )
    return result
