from types import SimpleNamespace

import pytest

from conftest import actor, attio_record, currency, status
from crm.exceptions import CRMRequestError, CRMSchemaError
from crm.records import ChurnedPerson
from crm.sources import ChurnSource, DealSource, SourceResult, fetch_or_empty, stage_filter

CANCEL = "subscription_cancel_request_date"


class FakeClient:
    def __init__(self, records=(), entries=(), error=None):
        self.records = list(records)
        self.entries = list(entries)
        self.error = error
        self.queries = []

    def query_records(self, object_slug, filter=None):
        self.queries.append(SimpleNamespace(slug=object_slug, filter=filter))
        if self.error:
            raise self.error
        return self.records

    def query_list_entries(self, list_slug, filter=None):
        self.queries.append(SimpleNamespace(slug=list_slug, filter=filter))
        if self.error:
            raise self.error
        return self.entries


def entry(person_id, day):
    return {"parent_record_id": person_id, "entry_values": {CANCEL: [{"value": day}]}}


# ----------------------------------------------------------------------
# fetch_or_empty
# ----------------------------------------------------------------------

def test_fetch_or_empty_passes_records_through():
    result = fetch_or_empty(lambda: iter([1, 2]), label="deals")
    assert result == SourceResult(records=[1, 2], degraded=False, reason="")


def test_fetch_or_empty_turns_missing_schema_into_degraded_empty_result():
    def fetch():
        raise CRMSchemaError("no list 'users'")

    result = fetch_or_empty(fetch, label="churned people")

    assert result.records == []
    assert result.degraded is True
    assert "churned people" in result.reason


def test_fetch_or_empty_propagates_transport_errors():
    def fetch():
        raise CRMRequestError("unreachable", status_code=503)

    with pytest.raises(CRMRequestError):
        fetch_or_empty(fetch, label="deals")


# ----------------------------------------------------------------------
# DealSource
# ----------------------------------------------------------------------

def test_stage_filter_single_and_many():
    assert stage_filter(["Closed Won"]) == {"stage": "Closed Won"}
    assert stage_filter(["Closed Won", "Closed Lost"], "deal_stage") == {
        "$or": [{"deal_stage": "Closed Won"}, {"deal_stage": "Closed Lost"}]
    }


def test_deal_source_normalizes_every_record():
    client = FakeClient(
        records=[
            attio_record("d-1", owner=actor("member-avery"), stage=status("Closed Won"), value=currency(10)),
            attio_record("d-2", stage=status("Closed Lost")),
        ]
    )

    deals = DealSource(client).fetch(["Closed Won", "Closed Lost"])

    assert [d.id for d in deals] == ["d-1", "d-2"]
    assert deals[0].owner_id == "member-avery"
    assert deals[1].owner_id is None
    assert client.queries[0].slug == "deals"
    assert "$or" in client.queries[0].filter


def test_deal_source_without_stages_queries_everything():
    client = FakeClient(records=[])
    assert DealSource(client).fetch() == []
    assert client.queries[0].filter is None


# ----------------------------------------------------------------------
# ChurnSource
# ----------------------------------------------------------------------

def test_churn_source_keeps_dated_entries_once_per_person_and_day():
    client = FakeClient(
        entries=[
            entry("p-1", "2026-01-04"),
            entry("p-1", "2026-01-04T12:00:00Z"),
            entry("p-1", "2026-02-01"),
            entry("p-2", ""),
            {"parent_record_id": "p-3", "entry_values": {}},
        ]
    )

    people = ChurnSource(client, "users", CANCEL).fetch()

    assert people == [ChurnedPerson("p-1", "2026-01-04"), ChurnedPerson("p-1", "2026-02-01")]


def test_churn_source_without_list_is_a_schema_error():
    with pytest.raises(CRMSchemaError):
        ChurnSource(FakeClient(), "", CANCEL).fetch()


def test_missing_churn_list_degrades_to_empty_set():
    client = FakeClient(error=CRMSchemaError("unknown list"))
    result = fetch_or_empty(ChurnSource(client, "users", CANCEL).fetch, label="churned people")
    assert result.records == []
    assert result.degraded
