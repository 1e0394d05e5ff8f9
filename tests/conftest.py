from decimal import Decimal

import pytest
from django.core.cache import cache

from commissions.roster import build_roster, get_roster
from crm.records import ChurnedPerson, Deal

AE_TIERS = [
    {"label": "Up to quota", "ceiling": "1.0", "rate": "0.09"},
    {"label": "Quota to 120%", "ceiling": "1.2", "rate": "0.11"},
    {"label": "Above 120%", "ceiling": None, "rate": "0.13"},
]

OWNER_MAP = {
    "member-avery": "avery",
    "member-kai": "kai",
    "member-rowan": "rowan",
    "member-quinn": "quinn",
}


@pytest.fixture(autouse=True)
def _fresh_caches():
    get_roster.cache_clear()
    cache.clear()
    yield
    get_roster.cache_clear()
    cache.clear()


# ----------------------------------------------------------------------
# Raw Attio payload builders
# ----------------------------------------------------------------------

def attio_record(record_id="deal-1", **values):
    """A record payload; each value becomes a list of slots.

    Plain values become ``{"value": ...}`` slots; dicts are used as-is;
    lists become several slots.
    """
    def slot(value):
        return value if isinstance(value, dict) else {"value": value}

    payload = {}
    for key, value in values.items():
        items = value if isinstance(value, list) else [value]
        payload[key] = [slot(item) for item in items]
    return {"id": {"record_id": record_id}, "values": payload}


def actor(member_id):
    return {"referenced_actor_type": "workspace-member", "referenced_actor_id": member_id}


def person_ref(person_id):
    return {"target_object": "people", "target_record_id": person_id}


def status(title):
    return {"status": {"id": {"status_id": f"status-{title}"}, "title": title}}


def currency(amount):
    return {"currency_value": amount, "currency_code": "USD"}


# ----------------------------------------------------------------------
# Typed builders
# ----------------------------------------------------------------------

def make_deal(
    deal_id="deal-1",
    *,
    owner="member-avery",
    stage="Closed Won",
    value="10000",
    close_date=None,
    onboarding_date=None,
    people=(),
    lead_owner=None,
    demo_held_date=None,
):
    return Deal(
        id=deal_id,
        owner_id=owner,
        stage=stage,
        value=Decimal(value),
        close_date=close_date,
        onboarding_date=onboarding_date,
        linked_person_ids=tuple(people),
        lead_owner_id=lead_owner,
        demo_held_date=demo_held_date,
    )


def churned(person_id, requested_at):
    return ChurnedPerson(person_record_id=person_id, cancellation_requested_at=requested_at)


# ----------------------------------------------------------------------
# Roster fixtures
# ----------------------------------------------------------------------

def roster_entries():
    return [
        {
            "id": "avery", "name": "Avery Holt", "role": "Account Executive",
            "monthly_quota": "100000", "target_variable": "2500",
            "model": "tiered_revenue", "tiers": AE_TIERS,
        },
        {
            "id": "kai", "name": "Kai Moreno", "role": "Account Executive",
            "monthly_quota": "100000", "target_variable": "2500",
            "model": "tiered_revenue", "tiers": AE_TIERS,
        },
        {
            "id": "rowan", "name": "Rowan Ellis", "role": "Account Executive",
            "monthly_quota": "80000", "model": "tiered_revenue", "tiers": AE_TIERS,
            "active_from": "2025-11", "active_to": "2026-01",
        },
        {
            "id": "quinn", "name": "Quinn Abara", "role": "Business Development Rep",
            "monthly_quota": "15", "target_variable": "833.33",
            "model": "threshold_activity",
            "flat_rate": "33", "accelerated_rate": "40", "accelerator_threshold": "1.25",
        },
    ]


@pytest.fixture
def roster():
    return build_roster(roster_entries(), OWNER_MAP)


@pytest.fixture
def owner_map(roster):
    return roster.owner_map
