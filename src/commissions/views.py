"""API views for commission dashboards."""
from __future__ import annotations

import logging

from django.conf import settings
from django.utils import timezone
from django.utils.cache import patch_cache_control
from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import APIView

from commissions import services
from commissions.authentication import DashboardTokenAuthentication
from commissions.periods import available_months, parse_month_key
from commissions.permissions import HasExecToken, HasRepresentativeToken
from commissions.roster import get_roster
from commissions.serializers import (
    CommissionReportSerializer,
    RepresentativeReportSerializer,
    RepresentativeSerializer,
    ReportMetaSerializer,
)
from crm.exceptions import CRMError

logger = logging.getLogger(__name__)

CRM_UNAVAILABLE = "The CRM could not be reached. Try again in a minute."


def _private(response: Response) -> Response:
    patch_cache_control(response, private=True, max_age=settings.COMMISSION_CACHE_SECONDS)
    return response


def _crm_failure(exc: CRMError) -> Response:
    logger.exception("CRM fetch failed: %s", exc)
    return Response({"detail": CRM_UNAVAILABLE}, status=status.HTTP_502_BAD_GATEWAY)


class CommissionTeamView(APIView):
    """
    GET /api/v1/commissions/?month=YYYY-MM&live=true
    Team report for the exec dashboard. Without ``live=true`` only the
    configured roster is returned so figures can be entered by hand.
    """

    authentication_classes = [DashboardTokenAuthentication]
    permission_classes = [HasExecToken]

    def get(self, request):
        today = timezone.localdate()
        window = parse_month_key(request.query_params.get("month"), today)
        months = available_months(settings.COMMISSION_FIRST_MONTH, today)

        if request.query_params.get("live") != "true":
            representatives = get_roster().active_representatives(window.key)
            return _private(
                Response(
                    {
                        "mode": "manual",
                        "month": window.key,
                        "label": window.label,
                        "available_months": months,
                        "representatives": RepresentativeSerializer(representatives, many=True).data,
                    }
                )
            )

        try:
            report = services.get_month_report(window, as_of=today)
        except CRMError as exc:
            return _crm_failure(exc)

        data = CommissionReportSerializer(report).data
        data["mode"] = "live"
        data["available_months"] = months
        return _private(Response(data))


class RepresentativeCommissionView(APIView):
    """
    GET /api/v1/commissions/reps/<rep_id>/?month=YYYY-MM
    One representative's report (their own token or the exec token).
    """

    authentication_classes = [DashboardTokenAuthentication]
    permission_classes = [HasRepresentativeToken]

    def get(self, request, rep_id: str):
        if get_roster().get(rep_id) is None:
            raise NotFound("Unknown representative.")

        today = timezone.localdate()
        window = parse_month_key(request.query_params.get("month"), today)
        try:
            report = services.get_month_report(window, as_of=today)
        except CRMError as exc:
            return _crm_failure(exc)

        row = report.get(rep_id)
        if row is None:
            raise NotFound(f"{rep_id} is not active in {window.label}.")

        return _private(
            Response(
                {
                    "meta": ReportMetaSerializer(report.meta).data,
                    "available_months": available_months(settings.COMMISSION_FIRST_MONTH, today),
                    "report": RepresentativeReportSerializer(row).data,
                }
            )
        )
