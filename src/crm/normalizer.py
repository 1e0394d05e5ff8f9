"""Typed accessors over Attio attribute payloads.

Attio returns every attribute as a list of value slots (field history,
multi-value attributes). Scalar attributes are always read from the first
slot; record-reference lists are read from every slot.

None of these accessors raise on a missing attribute or a record without
``values``: the workspace schema is configurable, so absence is data.
"""
from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}")

# Where a list entry may surface an attribute, list-scoped values first.
ENTRY_VALUE_CONTAINERS = ("entry_values", "record_values", "values")


def _slots(container: Any, key: str) -> list:
    if not isinstance(container, dict):
        return []
    slots = container.get(key)
    if not isinstance(slots, list):
        return []
    return slots


def _record_slots(record: Any, key: str) -> list:
    if not isinstance(record, dict):
        return []
    return _slots(record.get("values"), key)


def slot_value(slot: Any) -> Any:
    """Unwrap one value slot, whatever its attribute type."""
    if not isinstance(slot, dict):
        return slot
    if slot.get("value") is not None:
        return slot["value"]
    if slot.get("target_record_id"):
        return slot["target_record_id"]
    if slot.get("referenced_actor_id"):
        return slot["referenced_actor_id"]
    if slot.get("currency_value") is not None:
        return slot["currency_value"]
    # status / select attributes: read the display label, not the option id
    for nested in ("status", "option"):
        if isinstance(slot.get(nested), dict):
            return slot[nested].get("title")
    return None


def extract_scalar(record: Any, key: str) -> Any:
    """Return the first slot's value for ``key``, or None."""
    slots = _record_slots(record, key)
    if not slots:
        return None
    return slot_value(slots[0])


def to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    # NaN and infinities do not order against money
    return amount if amount.is_finite() else None


def extract_currency(record: Any, key: str) -> Decimal:
    """Currency amount; absent or unparseable amounts count as zero."""
    amount = to_decimal(extract_scalar(record, key))
    return amount if amount is not None else Decimal("0")


def extract_number(record: Any, key: str) -> Decimal | None:
    return to_decimal(extract_scalar(record, key))


def extract_text(record: Any, key: str) -> str | None:
    value = extract_scalar(record, key)
    if value is None:
        return None
    return str(value)


def extract_label(record: Any, key: str) -> str | None:
    value = extract_scalar(record, key)
    if isinstance(value, dict):
        value = value.get("title")
    if value is None:
        return None
    return str(value)


def extract_reference(record: Any, key: str) -> str | None:
    value = extract_scalar(record, key)
    if value is None or isinstance(value, dict):
        return None
    return str(value)


def extract_references(record: Any, key: str) -> list[str]:
    """All referenced ids across every slot, de-duplicated in slot order."""
    ids: list[str] = []
    for slot in _record_slots(record, key):
        ref = None
        if isinstance(slot, dict):
            ref = slot.get("target_record_id") or slot.get("value")
        elif isinstance(slot, str):
            ref = slot
        if ref and not isinstance(ref, dict) and str(ref) not in ids:
            ids.append(str(ref))
    return ids


def normalize_date(value: Any) -> str | None:
    """Truncate an ISO-8601 date/timestamp to ``YYYY-MM-DD``.

    Values failing the day-prefix check return None so the record drops out
    of month-windowed aggregation.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not _ISO_DAY.match(text):
        return None
    try:
        date.fromisoformat(text[:10])
    except ValueError:
        # 2026-02-30 and friends
        return None
    return text[:10]


def extract_date(record: Any, key: str) -> str | None:
    return normalize_date(extract_scalar(record, key))


def extract_entry_value(entry: Any, key: str) -> Any:
    """Read ``key`` from a list entry (entry, then parent record values)."""
    if not isinstance(entry, dict):
        return None
    for container in ENTRY_VALUE_CONTAINERS:
        slots = _slots(entry.get(container), key)
        if slots:
            return slot_value(slots[0])
    return None


def is_present(value: Any) -> bool:
    """True for any non-empty value (blank strings count as absent)."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def record_id(record: Any) -> str | None:
    if not isinstance(record, dict):
        return None
    ident = record.get("id")
    if isinstance(ident, dict):
        ident = ident.get("record_id")
    return str(ident) if ident else None


def attribute_slugs(record: Any) -> list[str]:
    """Attribute slugs present on a record (diagnostic logging)."""
    if not isinstance(record, dict) or not isinstance(record.get("values"), dict):
        return []
    return sorted(record["values"].keys())
