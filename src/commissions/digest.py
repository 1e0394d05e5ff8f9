"""Slack digest of a month's commission report."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import requests

from commissions.engine import CommissionReport, RepresentativeReport


def fmt_money(amount: Decimal) -> str:
    return f"${amount.quantize(Decimal('1'), rounding=ROUND_HALF_UP):,}"


def fmt_percent(ratio: Decimal) -> str:
    return f"{(ratio * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP)}%"


def progress_bar(attainment: Decimal) -> str:
    filled = min(int((attainment * 10).quantize(Decimal("1"), rounding=ROUND_HALF_UP)), 15)
    return "█" * filled + "░" * max(10 - filled, 0)


def _signed(amount: Decimal) -> str:
    return ("+" if amount >= 0 else "-") + fmt_money(abs(amount))


def representative_line(row: RepresentativeReport) -> str:
    rep = row.representative
    lines = [
        f"*{rep.display_name}* ({rep.role or rep.plan.kind})",
        f"{progress_bar(row.attainment)}  *{fmt_percent(row.attainment)}* attainment",
    ]
    if rep.is_activity_quota:
        lines.append(f"Meetings: *{row.meetings_net}* / {rep.monthly_quota} target")
    else:
        lines.append(
            f"Net revenue: *{fmt_money(row.attribution.net_revenue)}* / "
            f"{fmt_money(rep.monthly_quota)} quota  |  {row.attribution.deals_won} deals"
        )
    lines.append(f"Commission: *{fmt_money(row.commission)}*  |  vs Target: {_signed(row.vs_target)}")
    return "\n".join(lines)


def build_digest(report: CommissionReport) -> dict[str, Any]:
    """Slack webhook payload: header, one section per rep, team totals."""
    title = f"{report.meta.label} Commission Update"
    blocks: list[dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": title}},
        {"type": "divider"},
    ]
    for row in report.representatives:
        blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": representative_line(row)}})

    blocks.append({"type": "divider"})
    blocks.append(
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"*Team Total:*  Net revenue {fmt_money(report.total_net_revenue)}  |  "
                    f"Total Commission {fmt_money(report.total_commission)}"
                ),
            },
        }
    )
    context = f"{report.meta.deal_count} closed-won deals in {report.meta.label}"
    if report.meta.warning:
        context += f"  |  {report.meta.warning}"
    blocks.append({"type": "context", "elements": [{"type": "mrkdwn", "text": context}]})
    return {"text": title, "blocks": blocks}


def post_digest(webhook_url: str, payload: dict[str, Any], *, timeout: float = 10) -> int:
    """POST to a Slack incoming webhook; raises on transport or HTTP errors."""
    response = requests.post(webhook_url, json=payload, timeout=timeout)
    response.raise_for_status()
    return response.status_code
