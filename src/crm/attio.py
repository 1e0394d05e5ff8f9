"""Attio REST client.

Every query is paginated to completion before it is returned: callers
always receive the full materialized list.
"""
from __future__ import annotations

import logging
from typing import Any

import requests
from django.conf import settings

from crm.exceptions import CRMRequestError, CRMSchemaError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.attio.com/v2"
DEFAULT_PAGE_SIZE = 500

# 400 codes Attio uses when a filter or slug names something the workspace lacks.
SCHEMA_ERROR_CODES = {
    "unknown_filter_attribute_slug",
    "unknown_attribute_slug",
    "filter_error",
    "not_found",
}


class AttioClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        page_size: int = DEFAULT_PAGE_SIZE,
        timeout: float = 20,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )

    @classmethod
    def from_settings(cls) -> "AttioClient":
        return cls(
            settings.ATTIO_API_KEY,
            base_url=settings.ATTIO_BASE_URL,
            page_size=settings.ATTIO_PAGE_SIZE,
            timeout=settings.ATTIO_TIMEOUT,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def query_records(self, object_slug: str, filter: dict | None = None) -> list[dict]:
        """All records of ``object_slug`` matching ``filter``."""
        return self._paginate(f"/objects/{object_slug}/records/query", filter)

    def query_list_entries(self, list_slug: str, filter: dict | None = None) -> list[dict]:
        """All entries of a list (slug or UUID)."""
        return self._paginate(f"/lists/{list_slug}/entries/query", filter)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _paginate(self, path: str, filter: dict | None) -> list[dict]:
        records: list[dict] = []
        offset = 0
        while True:
            body: dict[str, Any] = {"limit": self.page_size, "offset": offset}
            if filter:
                body["filter"] = filter
            page = self._post(path, body)
            data = page.get("data") or []
            records.extend(data)
            if len(data) < self.page_size:
                break
            offset += self.page_size
        logger.debug("Attio %s returned %d rows", path, len(records))
        return records

    def _post(self, path: str, body: dict) -> dict:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(url, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            raise CRMRequestError(f"Attio request to {path} failed: {exc}") from exc

        if response.ok:
            try:
                payload = response.json()
            except ValueError as exc:
                raise CRMRequestError(f"Attio {path} returned invalid JSON") from exc
            return payload if isinstance(payload, dict) else {}

        logger.error(
            "Attio %s failed (%s): %s",
            path,
            response.status_code,
            response.text[:500],
        )
        if response.status_code == 404 or self._error_code(response) in SCHEMA_ERROR_CODES:
            raise CRMSchemaError(f"Attio {path}: {self._error_code(response) or 'not found'}")
        raise CRMRequestError(
            f"Attio query {path} failed",
            status_code=response.status_code,
        )

    @staticmethod
    def _error_code(response: requests.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return ""
        if not isinstance(payload, dict):
            return ""
        return str(payload.get("code") or "")
