"""Main API URL router for /api/v1/."""
from django.urls import path

from commissions import views as commission_views

urlpatterns = [
    path(
        "commissions/",
        commission_views.CommissionTeamView.as_view(),
        name="api-commissions-team",
    ),
    path(
        "commissions/reps/<str:rep_id>/",
        commission_views.RepresentativeCommissionView.as_view(),
        name="api-commissions-rep",
    ),
]
