"""Airtable REST client for the CRM base."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from tablehand.config import settings
from tablehand.observability.logging import get_logger
from tablehand.records.errors import (
    RecordStoreTransportError,
    classify_airtable_error,
)
from tablehand.records.protocols import (
    fields_contain,
    is_linked_to,
    validate_record_id,
    validate_table_id,
)

logger = get_logger(__name__)

__all__ = ["AirtableClient"]

_PAGE_SIZE = 100
_FIELD_SAMPLE_SIZE = 3


class AirtableClient:
    """Async client over the Airtable records API.

    Search is done client side: Airtable formulas do not handle Hebrew field
    names well, so tables are scanned page by page (bounded by
    ``max_pages``) and filtered locally.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_id: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
        max_pages: int | None = None,
        transactions_table: str | None = None,
        customer_field: str | None = None,
        project_field: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = settings.airtable_api_key if api_key is None else api_key
        self.base_id = settings.airtable_base_id if base_id is None else base_id
        self.api_url = (api_url or settings.airtable_api_url).rstrip("/")
        self.max_pages = max_pages or settings.airtable_max_pages
        self.transactions_table = transactions_table or settings.airtable_transactions_table
        self.customer_field = customer_field or settings.transaction_customer_field
        self.project_field = project_field or settings.transaction_project_field
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.airtable_timeout_seconds
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "AirtableClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def _url(self, table_id: str) -> str:
        return f"{self.api_url}/{self.base_id}/{quote(table_id, safe='')}"

    async def _request(
        self,
        method: str,
        table_id: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            response = await self._client.request(
                method, self._url(table_id), params=params, json=json, headers=headers
            )
        except httpx.TimeoutException as exc:
            logger.warning("airtable_timeout", method=method, table=table_id)
            raise RecordStoreTransportError(f"Airtable request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.warning("airtable_unreachable", method=method, table=table_id, error=str(exc))
            raise RecordStoreTransportError(f"Airtable request failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            error = classify_airtable_error(response.status_code, body)
            logger.warning(
                "airtable_error",
                method=method,
                table=table_id,
                status_code=response.status_code,
                kind=error.kind,
            )
            raise error

        try:
            return response.json()
        except ValueError as exc:
            raise RecordStoreTransportError("Airtable returned a non-JSON response") from exc

    async def _scan(self, table_id: str) -> list[dict[str, Any]]:
        """Fetch every record of a table, following pagination offsets."""
        records: list[dict[str, Any]] = []
        offset: str | None = None
        for _ in range(self.max_pages):
            params: dict[str, Any] = {"pageSize": _PAGE_SIZE}
            if offset:
                params["offset"] = offset
            data = await self._request("GET", table_id, params=params)
            records.extend(data.get("records", []))
            offset = data.get("offset")
            if not offset:
                break
        else:
            logger.warning("airtable_scan_truncated", table=table_id, pages=self.max_pages)
        return records

    async def search(self, table_id: str, search_term: str) -> dict[str, Any]:
        table_id = validate_table_id(table_id)
        records = await self._scan(table_id)
        matches = [
            record for record in records if fields_contain(record.get("fields", {}), search_term)
        ]
        logger.info("airtable_search", table=table_id, scanned=len(records), found=len(matches))
        return {"found": len(matches), "records": matches}

    async def search_related(self, customer_id: str, project_id: str) -> dict[str, Any]:
        """Transactions linked to both the given customer and project."""
        records = await self._scan(self.transactions_table)
        matches = [
            record
            for record in records
            if is_linked_to(record.get("fields", {}).get(self.customer_field), customer_id)
            and is_linked_to(record.get("fields", {}).get(self.project_field), project_id)
        ]
        return {"found": len(matches), "transactions": matches}

    async def list_all(self, table_id: str, page_size: int = _PAGE_SIZE) -> list[dict[str, Any]]:
        table_id = validate_table_id(table_id)
        data = await self._request("GET", table_id, params={"maxRecords": page_size})
        return data.get("records", [])

    async def create(self, table_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        table_id = validate_table_id(table_id)
        record = await self._request("POST", table_id, json={"fields": fields})
        logger.info("airtable_record_created", table=table_id, record_id=record.get("id"))
        return record

    async def update(
        self, table_id: str, record_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        table_id = validate_table_id(table_id)
        record_id = validate_record_id(record_id)
        data = await self._request(
            "PATCH", table_id, json={"records": [{"id": record_id, "fields": fields}]}
        )
        records = data.get("records") or []
        logger.info("airtable_record_updated", table=table_id, record_id=record_id)
        return records[0] if records else data

    async def describe_fields(self, table_id: str) -> dict[str, Any]:
        """Field names seen across a few sample records, plus one sample."""
        table_id = validate_table_id(table_id)
        data = await self._request("GET", table_id, params={"maxRecords": _FIELD_SAMPLE_SIZE})
        records = data.get("records", [])
        field_names: list[str] = []
        for record in records:
            for name in record.get("fields", {}):
                if name not in field_names:
                    field_names.append(name)
        return {
            "availableFields": field_names,
            "sampleRecord": records[0].get("fields", {}) if records else None,
        }

    async def ping(self) -> None:
        """Cheap reachability probe used by the health endpoint."""
        await self._request("GET", self.transactions_table, params={"maxRecords": 1})
