"""Reconciliation engine: one month of commissions for the whole roster.

Core design principles:
- Pure and synchronous: every call receives complete, already-fetched
  deal and churned-person lists and returns a fresh report
- The opt-out bucket is the only revenue deduction; the churn debit is
  carried for display and audit
- Every representative active in the month gets exactly one result row,
  even with no activity at all
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from commissions.aggregation import (
    DemoTally,
    RevenueBucket,
    aggregate_by_lead_owner,
    aggregate_closed_lost,
    aggregate_gross_revenue,
    aggregate_stage,
    count_meetings,
    deals_in_window,
    tally_demos,
)
from commissions.calculator import (
    TierContribution,
    threshold_activity_commission,
    tiered_revenue_commission,
)
from commissions.churn import ChurnAttribution, attribute_churn
from commissions.optouts import DEFAULT_WINDOW_DAYS, OptOutReconciliation, reconcile_opt_outs
from commissions.periods import MonthWindow
from commissions.roster import Representative, Roster
from crm.records import ChurnedPerson, Deal, StageLabels

logger = logging.getLogger(__name__)

# Which bucket is subtracted from gross revenue. The churn debit is never
# deducted; it is reported in the churn audit block only.
NET_REVENUE_DEDUCTION = "opt_out"

DEFAULT_EMPTY_MONTH_GRACE_DAYS = 5

ZERO = Decimal("0")


@dataclass
class AttributionResult:
    """Per-representative, per-month accumulator."""

    gross_revenue: Decimal = ZERO
    churn_debit_revenue: Decimal = ZERO
    churn_debit_count: int = 0
    opt_out_revenue: Decimal = ZERO
    opt_out_count: int = 0
    deals_won: int = 0
    deals_lost: int = 0
    closed_lost_revenue: Decimal = ZERO

    @property
    def net_revenue(self) -> Decimal:
        return self.gross_revenue - self.opt_out_revenue


@dataclass(frozen=True)
class PipelineSnapshot:
    to_be_onboarded_count: int = 0
    to_be_onboarded_value: Decimal = ZERO
    introductory_calls: int = 0


@dataclass(frozen=True)
class RepresentativeReport:
    representative: Representative
    attribution: AttributionResult
    commission: Decimal
    attainment: Decimal
    tier_breakdown: tuple[TierContribution, ...] = ()
    meetings_total: int = 0
    meetings_net: int = 0
    base_meetings: int = 0
    accelerated_meetings: int = 0
    demos_held: int = 0
    closed_won_rate: Decimal | None = None
    pipeline: PipelineSnapshot = field(default_factory=PipelineSnapshot)

    @property
    def rep_id(self) -> str:
        return self.representative.id

    @property
    def target_variable(self) -> Decimal:
        return self.representative.target_variable

    @property
    def vs_target(self) -> Decimal:
        return self.commission - self.representative.target_variable


@dataclass(frozen=True)
class ChurnAudit:
    unattributed_count: int = 0
    unattributed_revenue: Decimal = ZERO
    unattributed_opt_out_count: int = 0
    unattributed_opt_out_revenue: Decimal = ZERO
    opt_out_lag_month: str = ""


@dataclass(frozen=True)
class ReportMeta:
    month_key: str
    label: str
    deal_count: int
    warning: str | None = None
    degraded_sources: tuple[str, ...] = ()
    net_revenue_deduction: str = NET_REVENUE_DEDUCTION


@dataclass(frozen=True)
class CommissionReport:
    meta: ReportMeta
    representatives: tuple[RepresentativeReport, ...]
    churn_audit: ChurnAudit

    def get(self, rep_id: str) -> RepresentativeReport | None:
        return next((r for r in self.representatives if r.rep_id == rep_id), None)

    @property
    def total_commission(self) -> Decimal:
        return sum((r.commission for r in self.representatives), ZERO)

    @property
    def total_gross_revenue(self) -> Decimal:
        return sum((r.attribution.gross_revenue for r in self.representatives), ZERO)

    @property
    def total_opt_out_revenue(self) -> Decimal:
        return sum((r.attribution.opt_out_revenue for r in self.representatives), ZERO)

    @property
    def total_net_revenue(self) -> Decimal:
        return sum((r.attribution.net_revenue for r in self.representatives), ZERO)


class ReconciliationEngine:
    """Merge aggregation, churn and opt-out passes into a month report."""

    def __init__(
        self,
        roster: Roster,
        stages: StageLabels | None = None,
        *,
        opt_out_window_days: int = DEFAULT_WINDOW_DAYS,
        empty_month_grace_days: int = DEFAULT_EMPTY_MONTH_GRACE_DAYS,
    ) -> None:
        self.roster = roster
        self.stages = stages or StageLabels()
        self.opt_out_window_days = opt_out_window_days
        self.empty_month_grace_days = empty_month_grace_days

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def reconcile(
        self,
        window: MonthWindow,
        deals: Sequence[Deal],
        churned_persons: Sequence[ChurnedPerson],
        *,
        as_of: date,
        degraded_sources: Iterable[str] = (),
    ) -> CommissionReport:
        """Compute every active representative's commission for ``window``.

        ``as_of`` is only used to decide whether an empty month deserves a
        warning; it never changes any figure.
        """
        owner_map = self.roster.owner_map
        won = self.stages.closed_won
        active = self.roster.active_representatives(window.key)
        active_ids = [rep.id for rep in active]

        won_deals = [d for d in deals if d.stage == won]
        deal_count = len(deals_in_window(won_deals, window, won))

        gross = aggregate_gross_revenue(deals, window, owner_map, won)
        lost = aggregate_closed_lost(deals, window, owner_map, self.stages.closed_lost)
        churn = attribute_churn(churned_persons, window, won_deals, owner_map, active_ids)
        opt_outs = reconcile_opt_outs(
            churned_persons,
            window,
            won_deals,
            owner_map,
            active_ids,
            stage=won,
            window_days=self.opt_out_window_days,
        )
        meetings = count_meetings(deals, window, owner_map, won, opt_outs.voided_deal_ids)
        demos = tally_demos(deals, window, owner_map, won)

        rows = []
        for rep in active:
            attribution = self._attribution(rep.id, gross, lost, churn, opt_outs)
            rows.append(
                self._report_for(
                    rep, attribution, window, deals, meetings.get(rep.id, (0, 0)), demos.get(rep.id)
                )
            )
            logger.info(
                "%s %s: gross=%s opt_out=%s net=%s commission=%s",
                window.key,
                rep.id,
                attribution.gross_revenue,
                attribution.opt_out_revenue,
                attribution.net_revenue,
                rows[-1].commission,
            )

        warning = self._empty_month_warning(window, deal_count, as_of)
        if warning:
            logger.warning(warning)
        logger.info(
            "%s: %d closed-won deal(s) in month, %d representative(s) reconciled",
            window.key,
            deal_count,
            len(rows),
        )

        return CommissionReport(
            meta=ReportMeta(
                month_key=window.key,
                label=window.label,
                deal_count=deal_count,
                warning=warning,
                degraded_sources=tuple(degraded_sources),
            ),
            representatives=tuple(rows),
            churn_audit=ChurnAudit(
                unattributed_count=churn.unattributed.count,
                unattributed_revenue=churn.unattributed.revenue,
                unattributed_opt_out_count=opt_outs.unattributed.count,
                unattributed_opt_out_revenue=opt_outs.unattributed.revenue,
                opt_out_lag_month=opt_outs.lag_window.key,
            ),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _attribution(
        rep_id: str,
        gross: dict[str, RevenueBucket],
        lost: dict[str, RevenueBucket],
        churn: ChurnAttribution,
        opt_outs: OptOutReconciliation,
    ) -> AttributionResult:
        result = AttributionResult()
        if rep_id in gross:
            result.gross_revenue = gross[rep_id].revenue
            result.deals_won = gross[rep_id].count
        if rep_id in lost:
            result.closed_lost_revenue = lost[rep_id].revenue
            result.deals_lost = lost[rep_id].count
        if rep_id in churn.by_representative:
            result.churn_debit_revenue = churn.by_representative[rep_id].revenue
            result.churn_debit_count = churn.by_representative[rep_id].count
        if rep_id in opt_outs.by_representative:
            result.opt_out_revenue = opt_outs.by_representative[rep_id].revenue
            result.opt_out_count = opt_outs.by_representative[rep_id].count
        return result

    def _report_for(
        self,
        rep: Representative,
        attribution: AttributionResult,
        window: MonthWindow,
        deals: Sequence[Deal],
        meetings: tuple[int, int],
        demos: DemoTally | None,
    ) -> RepresentativeReport:
        owner_map = self.roster.owner_map
        meetings_total, meetings_net = meetings

        # Activity reps are credited through the lead owner, AEs through the owner.
        aggregate = aggregate_by_lead_owner if rep.is_activity_quota else aggregate_stage
        onboarding = aggregate(deals, window, owner_map, self.stages.to_be_onboarded).get(
            rep.id, RevenueBucket()
        )
        intro_calls = aggregate(deals, window, owner_map, self.stages.introductory_call).get(
            rep.id, RevenueBucket()
        )
        pipeline = PipelineSnapshot(
            to_be_onboarded_count=onboarding.count,
            to_be_onboarded_value=onboarding.revenue,
            introductory_calls=intro_calls.count,
        )

        if rep.is_activity_quota:
            plan = rep.plan
            calc = threshold_activity_commission(
                rep.monthly_quota,
                plan.flat_rate,
                plan.accelerated_rate,
                plan.accelerator_threshold,
                meetings_net,
            )
            return RepresentativeReport(
                representative=rep,
                attribution=attribution,
                commission=calc.commission,
                attainment=calc.attainment,
                meetings_total=meetings_total,
                meetings_net=meetings_net,
                base_meetings=calc.base_meetings,
                accelerated_meetings=calc.accelerated_meetings,
                pipeline=pipeline,
            )

        calc = tiered_revenue_commission(rep.monthly_quota, rep.plan.tiers, attribution.net_revenue)
        return RepresentativeReport(
            representative=rep,
            attribution=attribution,
            commission=calc.commission,
            attainment=calc.attainment,
            tier_breakdown=calc.tier_breakdown,
            meetings_total=meetings_total,
            meetings_net=meetings_net,
            demos_held=demos.held if demos else 0,
            closed_won_rate=demos.closed_won_rate if demos else None,
            pipeline=pipeline,
        )

    def _empty_month_warning(self, window: MonthWindow, deal_count: int, as_of: date) -> str | None:
        if deal_count:
            return None
        # day-of-month must be past the grace period
        if (as_of - window.start).days + 1 <= self.empty_month_grace_days:
            return None
        return (
            f"No {self.stages.closed_won} deals found for {window.label}. "
            "Check the stage label and the close/onboarding date attributes."
        )
