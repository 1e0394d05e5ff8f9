import json
import logging
import sys
from decimal import Decimal

from core.logging import JSONFormatter


def make_record(msg="hello %s", args=("world",), exc_info=None, **extra):
    record = logging.LogRecord("commissions.engine", logging.INFO, __file__, 1, msg, args, exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_one_json_object():
    payload = json.loads(JSONFormatter().format(make_record()))
    assert payload["message"] == "hello world"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "commissions.engine"
    assert "timestamp" in payload


def test_extra_fields_are_merged_and_stringified():
    payload = json.loads(JSONFormatter().format(make_record(month="2026-02", net=Decimal("10.5"))))
    assert payload["month"] == "2026-02"
    assert payload["net"] == "10.5"


def test_exceptions_are_included():
    try:
        raise ValueError("boom")
    except ValueError:
        record = make_record("failed", (), exc_info=sys.exc_info())
    payload = json.loads(JSONFormatter().format(record))
    assert "ValueError: boom" in payload["exc_info"]
