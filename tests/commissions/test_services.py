from datetime import date

from conftest import attio_record, status
from commissions import services
from commissions.periods import MonthWindow
from crm.exceptions import CRMSchemaError


class FakeClient:
    def __init__(self, records, list_error=None):
        self.records = records
        self.list_error = list_error

    def query_records(self, object_slug, filter=None):
        return self.records

    def query_list_entries(self, list_slug, filter=None):
        if self.list_error:
            raise self.list_error
        return [
            {
                "parent_record_id": "p-1",
                "entry_values": {"subscription_cancel_request_date": [{"value": "2026-01-10"}]},
            }
        ]


def test_fetch_month_inputs_normalizes_both_sources():
    client = FakeClient([attio_record("d-1", stage=status("Closed Won"))])

    inputs = services.fetch_month_inputs(client)

    assert [d.id for d in inputs.deals] == ["d-1"]
    assert [p.person_record_id for p in inputs.churned_persons] == ["p-1"]
    assert inputs.degraded_sources == ()


def test_missing_users_list_degrades_to_no_churn():
    client = FakeClient([], list_error=CRMSchemaError("unknown list"))

    inputs = services.fetch_month_inputs(client)

    assert inputs.churned_persons == []
    assert len(inputs.degraded_sources) == 1
    assert inputs.degraded_sources[0].startswith("churned people")


def test_build_month_report_passes_degraded_sources_through(monkeypatch):
    monkeypatch.setattr(
        services,
        "fetch_month_inputs",
        lambda client=None: services.MonthInputs([], [], ("churned people: unknown list",)),
    )

    report = services.build_month_report(MonthWindow(2026, 2), as_of=date(2026, 2, 2))

    assert report.meta.degraded_sources == ("churned people: unknown list",)
    assert [r.rep_id for r in report.representatives] == ["avery", "kai", "sam", "quinn"]


def _counting_fetch(monkeypatch, degraded=()):
    calls = []

    def fake_fetch(client=None):
        calls.append(client)
        return services.MonthInputs([], [], degraded)

    monkeypatch.setattr(services, "fetch_month_inputs", fake_fetch)
    return calls


def test_cached_report_is_keyed_by_reporting_day(monkeypatch):
    calls = _counting_fetch(monkeypatch)
    window = MonthWindow(2026, 2)

    early = services.get_month_report(window, as_of=date(2026, 2, 3))
    services.get_month_report(window, as_of=date(2026, 2, 3))
    late = services.get_month_report(window, as_of=date(2026, 2, 20))

    assert len(calls) == 2
    assert early.meta.warning is None
    assert late.meta.warning is not None


def test_degraded_report_is_not_cached(monkeypatch):
    calls = _counting_fetch(monkeypatch, degraded=("churned people: unknown list",))
    window = MonthWindow(2026, 2)

    services.get_month_report(window, as_of=date(2026, 2, 3))
    services.get_month_report(window, as_of=date(2026, 2, 3))

    assert len(calls) == 2
