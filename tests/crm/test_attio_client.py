import pytest
import requests

from crm.attio import AttioClient
from crm.exceptions import CRMRequestError, CRMSchemaError


class StubResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class StubSession:
    """Records posted bodies and replays queued responses."""

    def __init__(self, responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def page(n, start=0):
    return StubResponse(payload={"data": [{"id": {"record_id": f"r-{i}"}} for i in range(start, start + n)]})


def make_client(responses, page_size=2):
    session = StubSession(responses)
    client = AttioClient("secret", base_url="https://crm.test/v2/", page_size=page_size, session=session)
    return client, session


def test_paginates_until_a_short_page():
    client, session = make_client([page(2), page(2, 2), page(1, 4)])

    records = client.query_records("deals", {"stage": "Closed Won"})

    assert [r["id"]["record_id"] for r in records] == ["r-0", "r-1", "r-2", "r-3", "r-4"]
    assert [c["json"]["offset"] for c in session.calls] == [0, 2, 4]
    assert all(c["json"]["limit"] == 2 for c in session.calls)
    assert session.calls[0]["json"]["filter"] == {"stage": "Closed Won"}
    assert session.calls[0]["url"] == "https://crm.test/v2/objects/deals/records/query"


def test_empty_first_page_stops_immediately():
    client, session = make_client([page(0)])
    assert client.query_list_entries("users") == []
    assert len(session.calls) == 1
    assert "filter" not in session.calls[0]["json"]
    assert session.calls[0]["url"].endswith("/lists/users/entries/query")


def test_exact_multiple_of_page_size_fetches_one_extra_empty_page():
    client, session = make_client([page(2), page(0)])
    assert len(client.query_records("deals")) == 2
    assert len(session.calls) == 2


def test_bearer_header_is_set():
    client, session = make_client([])
    assert session.headers["Authorization"] == "Bearer secret"


def test_missing_list_is_a_schema_error():
    client, _ = make_client([StubResponse(404, {"code": "not_found"})])
    with pytest.raises(CRMSchemaError):
        client.query_list_entries("users")


def test_unknown_attribute_is_a_schema_error():
    client, _ = make_client([StubResponse(400, {"code": "unknown_filter_attribute_slug"})])
    with pytest.raises(CRMSchemaError):
        client.query_records("deals", {"stagee": "Closed Won"})


def test_rate_limit_is_a_request_error_with_status():
    client, _ = make_client([StubResponse(429, {"code": "rate_limit_exceeded"}, "slow down")])
    with pytest.raises(CRMRequestError) as excinfo:
        client.query_records("deals")
    assert excinfo.value.status_code == 429
    assert not isinstance(excinfo.value, CRMSchemaError)


def test_transport_failure_is_a_request_error():
    client, _ = make_client([requests.ConnectionError("boom")])
    with pytest.raises(CRMRequestError):
        client.query_records("deals")


def test_invalid_json_is_a_request_error():
    client, _ = make_client([StubResponse(200, ValueError("not json"))])
    with pytest.raises(CRMRequestError):
        client.query_records("deals")
