"""Celery tasks for the commissions module."""
from __future__ import annotations

import logging

import requests
from celery import shared_task
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=30)
def post_daily_commission_digest(self):
    """
    Scheduled daily (Celery Beat).
    Reconcile the current month and post the digest to Slack.
    """
    from commissions.digest import build_digest, post_digest
    from commissions.periods import MonthWindow
    from commissions.services import build_month_report

    today = timezone.localdate()
    window = MonthWindow.for_date(today)
    report = build_month_report(window, as_of=today)
    summary = {
        "month": window.key,
        "total_net_revenue": str(report.total_net_revenue),
        "total_commission": str(report.total_commission),
    }

    webhook_url = settings.SLACK_WEBHOOK_URL
    if not webhook_url:
        logger.warning("SLACK_WEBHOOK_URL not set, skipping digest for %s", window.key)
        return {"skipped": True, **summary}

    try:
        post_digest(webhook_url, build_digest(report), timeout=settings.SLACK_TIMEOUT)
    except requests.RequestException as exc:
        logger.exception("Slack digest post failed for %s: %s", window.key, exc)
        raise self.retry(exc=exc)

    logger.info("Posted commission digest for %s", window.key)
    return {"skipped": False, **summary}
