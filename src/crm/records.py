"""Typed deal and churned-person values built from raw CRM payloads."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from django.conf import settings

from crm.normalizer import (
    extract_currency,
    extract_date,
    extract_entry_value,
    extract_label,
    extract_reference,
    extract_references,
    is_present,
    normalize_date,
    record_id,
)


@dataclass(frozen=True)
class DealAttributes:
    """Attribute slugs used to read a deal record."""

    owner: str = "owner"
    stage: str = "stage"
    value: str = "value"
    close_date: str = "close_date"
    onboarding_date: str = "onboarding_date"
    linked_people: str = "associated_person"
    lead_owner: str = "lead_owner"
    demo_held_date: str = "demo_held_date"

    @classmethod
    def from_settings(cls) -> "DealAttributes":
        return cls(**settings.ATTIO_DEAL_ATTRIBUTES)


@dataclass(frozen=True)
class StageLabels:
    """Workspace display labels for the stages the engine reasons about."""

    closed_won: str = "Closed Won"
    closed_lost: str = "Closed Lost"
    introductory_call: str = "Introductory Call"
    to_be_onboarded: str = "To Be Onboarded"
    live: str = "Live"

    @classmethod
    def from_settings(cls) -> "StageLabels":
        return cls(**settings.COMMISSION_STAGES)


@dataclass(frozen=True)
class Deal:
    id: str | None
    owner_id: str | None = None
    stage: str | None = None
    value: Decimal = Decimal("0")
    close_date: str | None = None
    onboarding_date: str | None = None
    linked_person_ids: tuple[str, ...] = field(default_factory=tuple)
    lead_owner_id: str | None = None
    demo_held_date: str | None = None

    @property
    def settlement_date(self) -> str | None:
        """Date placing the deal in a month: onboarding date, else close date."""
        return self.onboarding_date or self.close_date

    @classmethod
    def from_record(cls, record: Any, attrs: DealAttributes | None = None) -> "Deal":
        attrs = attrs or DealAttributes()
        return cls(
            id=record_id(record),
            owner_id=extract_reference(record, attrs.owner),
            stage=extract_label(record, attrs.stage),
            value=extract_currency(record, attrs.value),
            close_date=extract_date(record, attrs.close_date),
            onboarding_date=extract_date(record, attrs.onboarding_date),
            linked_person_ids=tuple(extract_references(record, attrs.linked_people)),
            lead_owner_id=extract_reference(record, attrs.lead_owner),
            demo_held_date=extract_date(record, attrs.demo_held_date),
        )


@dataclass(frozen=True)
class ChurnedPerson:
    """A customer that requested cancellation.

    ``cancellation_requested_at`` is None when the stored date failed the
    ``YYYY-MM-DD`` sanity check; such people never match a month window.
    """

    person_record_id: str
    cancellation_requested_at: str | None

    @classmethod
    def from_entry(cls, entry: Any, cancellation_attr: str) -> "ChurnedPerson | None":
        """Build from a Users-list entry; None when the entry is not churned."""
        if not isinstance(entry, dict):
            return None
        raw = extract_entry_value(entry, cancellation_attr)
        parent_id = entry.get("parent_record_id")
        if not is_present(raw) or not parent_id:
            return None
        return cls(
            person_record_id=str(parent_id),
            cancellation_requested_at=normalize_date(raw),
        )
