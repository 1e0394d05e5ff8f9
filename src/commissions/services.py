"""Glue between the CRM sources and the reconciliation engine."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from django.conf import settings
from django.core.cache import cache

from commissions.engine import CommissionReport, ReconciliationEngine
from commissions.periods import MonthWindow
from commissions.roster import get_roster
from crm.attio import AttioClient
from crm.records import ChurnedPerson, Deal, StageLabels
from crm.sources import ChurnSource, DealSource, fetch_or_empty

logger = logging.getLogger(__name__)

REPORT_CACHE_PREFIX = "commissions:report"


@dataclass(frozen=True)
class MonthInputs:
    deals: list[Deal]
    churned_persons: list[ChurnedPerson]
    degraded_sources: tuple[str, ...] = ()


def get_engine() -> ReconciliationEngine:
    return ReconciliationEngine(
        get_roster(),
        StageLabels.from_settings(),
        opt_out_window_days=settings.COMMISSION_OPT_OUT_WINDOW_DAYS,
        empty_month_grace_days=settings.COMMISSION_EMPTY_MONTH_GRACE_DAYS,
    )


def fetch_month_inputs(client: AttioClient | None = None) -> MonthInputs:
    """Fetch every deal and churned person, fully paginated.

    Missing CRM schema (unknown list or attribute) degrades to an empty
    source; transport errors propagate.
    """
    client = client or AttioClient.from_settings()
    deals = fetch_or_empty(DealSource.from_settings(client).fetch, label="deals")
    churn = fetch_or_empty(ChurnSource.from_settings(client).fetch, label="churned people")
    degraded = tuple(r.reason for r in (deals, churn) if r.degraded)
    return MonthInputs(
        deals=deals.records,
        churned_persons=churn.records,
        degraded_sources=degraded,
    )


def build_month_report(window: MonthWindow, *, as_of: date | None = None) -> CommissionReport:
    as_of = as_of or date.today()
    inputs = fetch_month_inputs()
    logger.info(
        "Reconciling %s: %d deals, %d churned people",
        window.key,
        len(inputs.deals),
        len(inputs.churned_persons),
    )
    return get_engine().reconcile(
        window,
        inputs.deals,
        inputs.churned_persons,
        as_of=as_of,
        degraded_sources=inputs.degraded_sources,
    )


def get_month_report(window: MonthWindow, *, as_of: date | None = None) -> CommissionReport:
    """``build_month_report`` behind the Django cache.

    Entries are keyed by month and reporting day, since the empty-month
    warning depends on the day. Degraded reports are never cached.
    """
    as_of = as_of or date.today()
    key = f"{REPORT_CACHE_PREFIX}:{window.key}:{as_of.isoformat()}"
    report = cache.get(key)
    if report is None:
        report = build_month_report(window, as_of=as_of)
        if report.meta.degraded_sources:
            logger.warning(
                "Not caching degraded report for %s: %s",
                window.key,
                ", ".join(report.meta.degraded_sources),
            )
        else:
            cache.set(key, report, settings.COMMISSION_CACHE_SECONDS)
    return report
