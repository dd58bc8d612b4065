"""Unit tests for Airtable error classification."""

from __future__ import annotations

import pytest

from tablehand.records.errors import (
    InvalidArgumentError,
    RecordNotFoundError,
    RecordStoreTransportError,
    SchemaMismatchError,
    classify_airtable_error,
)
from tablehand.records.protocols import validate_record_id, validate_table_id


@pytest.mark.parametrize(
    ("status_code", "payload", "expected"),
    [
        (
            422,
            {
                "error": {
                    "type": "INVALID_MULTIPLE_CHOICE_OPTIONS",
                    "message": "Insufficient permissions to create new select option \"x\"",
                }
            },
            SchemaMismatchError,
        ),
        (
            422,
            {"error": {"type": "UNKNOWN_FIELD_NAME", "message": "Unknown field name: \"Foo\""}},
            SchemaMismatchError,
        ),
        (
            422,
            {
                "error": {
                    "type": "ROW_DOES_NOT_EXIST",
                    "message": "Record ID \"recX\" does not exist in this table",
                }
            },
            RecordNotFoundError,
        ),
        (404, {"error": "NOT_FOUND"}, RecordNotFoundError),
        (
            422,
            {"error": {"type": "INVALID_REQUEST_UNKNOWN", "message": "bad body"}},
            InvalidArgumentError,
        ),
        (400, "plain text", InvalidArgumentError),
        (
            503,
            {"error": {"type": "SERVICE_UNAVAILABLE", "message": "down"}},
            RecordStoreTransportError,
        ),
        (429, None, RecordStoreTransportError),
    ],
)
def test_classify_airtable_error(status_code, payload, expected) -> None:  # type: ignore[no-untyped-def]
    error = classify_airtable_error(status_code, payload)

    assert isinstance(error, expected)
    assert error.status_code == status_code
    assert str(error)


def test_error_kinds_are_stable() -> None:
    assert RecordNotFoundError("x").kind == "not_found"
    assert InvalidArgumentError("x").kind == "invalid_argument"
    assert SchemaMismatchError("x").kind == "schema_mismatch"
    assert RecordStoreTransportError("x").kind == "transport"


def test_validate_record_id() -> None:
    assert validate_record_id("rec1234567890abc") == "rec1234567890abc"
    for bad in ("", "tbl1234567890abc", "rec123", None, 42):
        with pytest.raises(InvalidArgumentError, match="Invalid Record ID"):
            validate_record_id(bad)


def test_validate_table_id() -> None:
    assert validate_table_id(" tblX ") == "tblX"
    with pytest.raises(InvalidArgumentError):
        validate_table_id("  ")
