"""DRF serializers for commission reports (read-only, plain objects)."""
from __future__ import annotations

from rest_framework import serializers


def money(**kwargs):
    return serializers.DecimalField(max_digits=16, decimal_places=2, read_only=True, **kwargs)


def ratio(**kwargs):
    return serializers.DecimalField(max_digits=12, decimal_places=4, read_only=True, **kwargs)


# ────────────────────────────────────────────────────────────
# Roster
# ────────────────────────────────────────────────────────────

class RepresentativeSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    name = serializers.CharField(source="display_name", read_only=True)
    role = serializers.CharField(read_only=True)
    initials = serializers.CharField(read_only=True)
    color = serializers.CharField(read_only=True)
    model = serializers.CharField(source="plan.kind", read_only=True)
    monthly_quota = money()
    target_variable = money()
    active_from = serializers.CharField(read_only=True, allow_null=True)
    active_to = serializers.CharField(read_only=True, allow_null=True)


# ────────────────────────────────────────────────────────────
# Report rows
# ────────────────────────────────────────────────────────────

class TierContributionSerializer(serializers.Serializer):
    label = serializers.CharField(read_only=True)
    ceiling = ratio(allow_null=True)
    rate = ratio()
    amount = money()


class AttributionSerializer(serializers.Serializer):
    gross_revenue = money()
    opt_out_revenue = money()
    opt_out_count = serializers.IntegerField(read_only=True)
    net_revenue = money()
    churn_debit_revenue = money()
    churn_debit_count = serializers.IntegerField(read_only=True)
    deals_won = serializers.IntegerField(read_only=True)
    deals_lost = serializers.IntegerField(read_only=True)
    closed_lost_revenue = money()


class PipelineSerializer(serializers.Serializer):
    to_be_onboarded_count = serializers.IntegerField(read_only=True)
    to_be_onboarded_value = money()
    introductory_calls = serializers.IntegerField(read_only=True)


class RepresentativeReportSerializer(serializers.Serializer):
    representative = RepresentativeSerializer(read_only=True)
    attribution = AttributionSerializer(read_only=True)
    commission = money()
    attainment = ratio()
    tier_breakdown = TierContributionSerializer(many=True, read_only=True)
    meetings_total = serializers.IntegerField(read_only=True)
    meetings_net = serializers.IntegerField(read_only=True)
    base_meetings = serializers.IntegerField(read_only=True)
    accelerated_meetings = serializers.IntegerField(read_only=True)
    demos_held = serializers.IntegerField(read_only=True)
    closed_won_rate = ratio(allow_null=True)
    pipeline = PipelineSerializer(read_only=True)
    target_variable = money()
    vs_target = money()


# ────────────────────────────────────────────────────────────
# Report
# ────────────────────────────────────────────────────────────

class ReportMetaSerializer(serializers.Serializer):
    month = serializers.CharField(source="month_key", read_only=True)
    label = serializers.CharField(read_only=True)
    deal_count = serializers.IntegerField(read_only=True)
    warning = serializers.CharField(read_only=True, allow_null=True)
    degraded_sources = serializers.ListField(child=serializers.CharField(), read_only=True)
    net_revenue_deduction = serializers.CharField(read_only=True)


class ChurnAuditSerializer(serializers.Serializer):
    unattributed_count = serializers.IntegerField(read_only=True)
    unattributed_revenue = money()
    unattributed_opt_out_count = serializers.IntegerField(read_only=True)
    unattributed_opt_out_revenue = money()
    opt_out_lag_month = serializers.CharField(read_only=True)


class CommissionReportSerializer(serializers.Serializer):
    meta = ReportMetaSerializer(read_only=True)
    representatives = RepresentativeReportSerializer(many=True, read_only=True)
    churn_audit = ChurnAuditSerializer(read_only=True)
    total_commission = money()
    total_gross_revenue = money()
    total_opt_out_revenue = money()
    total_net_revenue = money()
