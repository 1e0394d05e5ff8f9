from datetime import date
from decimal import Decimal

import pytest
import requests
from celery.exceptions import Retry
from django.test import override_settings

from conftest import make_deal
from commissions import digest, tasks
from commissions.digest import build_digest, fmt_money, progress_bar
from commissions.engine import ReconciliationEngine
from commissions.periods import MonthWindow


@pytest.fixture
def report(roster):
    deals = [
        make_deal("a-1", value="130000", close_date="2026-02-03", lead_owner="member-quinn"),
        make_deal("k-1", owner="member-kai", value="50000", close_date="2026-02-11"),
    ]
    return ReconciliationEngine(roster).reconcile(MonthWindow(2026, 2), deals, [], as_of=date(2026, 2, 20))


def test_formatting_helpers():
    assert fmt_money(Decimal("12500.4")) == "$12,500"
    assert progress_bar(Decimal("0.5")) == "█████░░░░░"
    assert progress_bar(Decimal("2")) == "█" * 15


def test_digest_has_one_section_per_rep_and_team_totals(report):
    payload = build_digest(report)
    sections = [b["text"]["text"] for b in payload["blocks"] if b["type"] == "section"]

    assert payload["text"] == "February 2026 Commission Update"
    assert len(sections) == len(report.representatives) + 1
    assert "*Avery Holt*" in sections[0]
    assert "Commission: *$12,500*" in sections[0]
    assert "vs Target: +$10,000" in sections[0]
    assert "Meetings: *1* / 15 target" in sections[2]
    assert sections[-1].startswith("*Team Total:*")


def test_task_skips_without_webhook(monkeypatch, report):
    monkeypatch.setattr("commissions.services.build_month_report", lambda window, as_of=None: report)

    result = tasks.post_daily_commission_digest.apply().get()

    assert result["skipped"] is True
    assert result["total_commission"] == str(report.total_commission)


@override_settings(SLACK_WEBHOOK_URL="https://hooks.slack.test/T000/B000")
def test_task_posts_digest(monkeypatch, report):
    posted = []
    monkeypatch.setattr("commissions.services.build_month_report", lambda window, as_of=None: report)
    monkeypatch.setattr(
        digest, "post_digest", lambda url, payload, timeout=10: posted.append((url, payload)) or 200
    )

    result = tasks.post_daily_commission_digest.apply().get()

    assert result["skipped"] is False
    assert posted[0][0] == "https://hooks.slack.test/T000/B000"
    assert posted[0][1]["blocks"][0]["type"] == "header"


@override_settings(SLACK_WEBHOOK_URL="https://hooks.slack.test/T000/B000")
def test_task_retries_on_transport_failure(monkeypatch, report):
    def fail(url, payload, timeout=10):
        raise requests.ConnectionError("slack down")

    monkeypatch.setattr("commissions.services.build_month_report", lambda window, as_of=None: report)
    monkeypatch.setattr(digest, "post_digest", fail)
    monkeypatch.setattr(tasks.post_daily_commission_digest, "retry", lambda exc=None, **kw: Retry(exc=exc))

    with pytest.raises(Retry):
        tasks.post_daily_commission_digest.run()
