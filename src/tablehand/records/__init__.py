"""Record store access: Airtable client, in-memory fake and the tool executor."""

from __future__ import annotations

from tablehand.config import effective_record_store_provider, settings
from tablehand.records.airtable import AirtableClient
from tablehand.records.errors import (
    InvalidArgumentError,
    RecordNotFoundError,
    RecordStoreError,
    RecordStoreTransportError,
    SchemaMismatchError,
)
from tablehand.records.executor import RecordToolExecutor, ToolExecutor
from tablehand.records.fake import FakeRecordStore
from tablehand.records.protocols import RecordStore

__all__ = [
    "AirtableClient",
    "FakeRecordStore",
    "RecordStore",
    "RecordToolExecutor",
    "ToolExecutor",
    "RecordStoreError",
    "RecordNotFoundError",
    "InvalidArgumentError",
    "SchemaMismatchError",
    "RecordStoreTransportError",
    "get_record_store",
]


def get_record_store() -> RecordStore:
    """Build the record store selected by configuration."""
    if effective_record_store_provider(settings) == "fake":
        return FakeRecordStore()
    return AirtableClient()
