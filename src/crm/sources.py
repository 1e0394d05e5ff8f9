"""Deal and churn sources, plus the empty-default combinator.

The reconciliation engine never talks to the CRM: these sources fetch and
normalize complete lists, and ``fetch_or_empty`` turns a missing workspace
schema into an explicit, observable empty result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable

from django.conf import settings

from crm.attio import AttioClient
from crm.exceptions import CRMSchemaError
from crm.normalizer import attribute_slugs
from crm.records import ChurnedPerson, Deal, DealAttributes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceResult:
    records: list = field(default_factory=list)
    degraded: bool = False
    reason: str = ""


def fetch_or_empty(fetch: Callable[[], Iterable], *, label: str) -> SourceResult:
    """Run ``fetch``; a missing schema yields an empty, degraded result.

    Only ``CRMSchemaError`` is absorbed. Transport failures propagate to the
    caller.
    """
    try:
        return SourceResult(records=list(fetch()))
    except CRMSchemaError as exc:
        logger.warning("%s unavailable, continuing with no data: %s", label, exc)
        return SourceResult(records=[], degraded=True, reason=f"{label}: {exc}")


def stage_filter(stages: list[str], attribute: str = "stage") -> dict:
    if len(stages) == 1:
        return {attribute: stages[0]}
    return {"$or": [{attribute: stage} for stage in stages]}


class DealSource:
    """Fetch every deal (optionally restricted to some stages)."""

    object_slug = "deals"

    def __init__(self, client: AttioClient, attrs: DealAttributes | None = None) -> None:
        self.client = client
        self.attrs = attrs or DealAttributes()

    @classmethod
    def from_settings(cls, client: AttioClient) -> "DealSource":
        return cls(client, DealAttributes.from_settings())

    def fetch(self, stages: list[str] | None = None) -> list[Deal]:
        filter = stage_filter(stages, self.attrs.stage) if stages else None
        records = self.client.query_records(self.object_slug, filter)
        if records:
            logger.debug(
                "Deal record shape: attrs=%s",
                attribute_slugs(records[0])[:25],
            )
        return [Deal.from_record(record, self.attrs) for record in records]


class ChurnSource:
    """People whose subscription cancellation date is set on the Users list."""

    def __init__(self, client: AttioClient, list_slug: str, cancellation_attr: str) -> None:
        self.client = client
        self.list_slug = list_slug
        self.cancellation_attr = cancellation_attr

    @classmethod
    def from_settings(cls, client: AttioClient) -> "ChurnSource":
        return cls(
            client,
            settings.ATTIO_USERS_LIST_SLUG,
            settings.ATTIO_CHURN_REQUEST_DATE_ATTR,
        )

    def fetch(self) -> list[ChurnedPerson]:
        if not self.list_slug:
            raise CRMSchemaError("no Users list configured")

        entries = self.client.query_list_entries(self.list_slug)
        seen: set[tuple[str, str | None]] = set()
        people: list[ChurnedPerson] = []
        for entry in entries:
            person = ChurnedPerson.from_entry(entry, self.cancellation_attr)
            if person is None:
                continue
            key = (person.person_record_id, person.cancellation_requested_at)
            if key in seen:
                continue
            seen.add(key)
            people.append(person)

        logger.info(
            "Scanned %d entries from list %r, found %d churned people",
            len(entries),
            self.list_slug,
            len(people),
        )
        return people
