from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from psycopg.types.json import Jsonb

from docflow.documents.exceptions import DocumentNotFoundError, InvalidTransitionError
from docflow.documents.models import (
    DocumentRecord,
    DocumentStatus,
    InvoiceFields,
    RecognitionResult,
)
from docflow.store.postgres_store import PostgresRecordStore

NOW = datetime(2025, 7, 8, 12, 0, tzinfo=timezone.utc)


def _make_row(**overrides: object) -> dict:
    row: dict[str, object] = {
        "id": "doc-1",
        "filename": "invoice.pdf",
        "status": "OCR_COMPLETED",
        "content_ref": "doc-1",
        "recognition_result": {"text": "Invoice", "confidence": 0.98, "language": "en"},
        "extracted_fields": None,
        "validation_errors": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


def _mock_database() -> tuple[MagicMock, MagicMock, MagicMock]:
    """Wire up a mock Database + connection + cursor and return all three."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_database = MagicMock()
    mock_database.connection.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_database.connection.return_value.__exit__ = MagicMock(return_value=False)
    return mock_database, mock_conn, mock_cursor


class TestGet:
    def test_returns_typed_record(self) -> None:
        database, _conn, cursor = _mock_database()
        cursor.fetchone.return_value = _make_row()

        record = PostgresRecordStore(database).get("doc-1")

        assert isinstance(record, DocumentRecord)
        assert record.status == DocumentStatus.OCR_COMPLETED
        assert record.recognition_result == RecognitionResult("Invoice", 0.98, "en")
        assert record.extracted_fields is None
        assert record.validation_errors is None

    def test_restores_extraction_outputs(self) -> None:
        database, _conn, cursor = _mock_database()
        cursor.fetchone.return_value = _make_row(
            status="VALIDATION_FAILED",
            extracted_fields={"invoiceNumber": "INV-1"},
            validation_errors=["Customer Name is missing or empty."],
        )

        record = PostgresRecordStore(database).get("doc-1")

        assert record is not None
        assert record.extracted_fields == InvoiceFields(invoice_number="INV-1")
        assert record.validation_errors == ["Customer Name is missing or empty."]

    def test_returns_none_when_missing(self) -> None:
        database, _conn, cursor = _mock_database()
        cursor.fetchone.return_value = None

        assert PostgresRecordStore(database).get("nope") is None


class TestCreate:
    def test_inserts_record_and_payload_then_commits(self) -> None:
        database, conn, cursor = _mock_database()
        record = DocumentRecord(
            id="doc-1",
            filename="invoice.pdf",
            status=DocumentStatus.UPLOADED,
            content_ref="doc-1",
            created_at=NOW,
            updated_at=NOW,
        )

        PostgresRecordStore(database).create(record, b"%PDF-fake")

        assert cursor.execute.call_count == 2
        record_params = cursor.execute.call_args_list[0].args[1]
        assert record_params[0] == "doc-1"
        assert record_params[2] == "UPLOADED"
        payload_params = cursor.execute.call_args_list[1].args[1]
        assert payload_params == ("doc-1", b"%PDF-fake")
        conn.commit.assert_called_once()


class TestUpdate:
    def test_status_change_uses_compare_and_set(self) -> None:
        database, conn, cursor = _mock_database()
        cursor.rowcount = 1

        applied = PostgresRecordStore(database).update(
            "doc-1",
            {"status": DocumentStatus.OCR_PENDING},
            expected_status=DocumentStatus.UPLOADED,
        )

        assert applied is True
        params = cursor.execute.call_args_list[0].args[1]
        assert params == ["OCR_PENDING", "doc-1", "UPLOADED"]
        conn.commit.assert_called_once()

    def test_structured_fields_are_sent_as_jsonb(self) -> None:
        database, _conn, cursor = _mock_database()
        cursor.rowcount = 1
        result = RecognitionResult("Invoice", 0.98, "en")

        PostgresRecordStore(database).update(
            "doc-1",
            {"recognition_result": result, "validation_errors": ["bad"]},
        )

        params = cursor.execute.call_args_list[0].args[1]
        assert isinstance(params[0], Jsonb)
        assert params[0].obj == result.to_dict()
        assert isinstance(params[1], Jsonb)
        assert params[1].obj == ["bad"]
        assert params[2] == "doc-1"

    def test_returns_false_when_status_moved_on(self) -> None:
        database, _conn, cursor = _mock_database()
        cursor.rowcount = 0
        cursor.fetchone.return_value = (1,)

        applied = PostgresRecordStore(database).update(
            "doc-1",
            {"status": DocumentStatus.OCR_PENDING},
            expected_status=DocumentStatus.UPLOADED,
        )

        assert applied is False

    def test_raises_when_document_missing(self) -> None:
        database, _conn, cursor = _mock_database()
        cursor.rowcount = 0
        cursor.fetchone.return_value = None

        with pytest.raises(DocumentNotFoundError, match="Document nope not found"):
            PostgresRecordStore(database).update("nope", {"validation_errors": None})

    def test_invalid_transition_never_reaches_database(self) -> None:
        database, _conn, cursor = _mock_database()

        with pytest.raises(InvalidTransitionError):
            PostgresRecordStore(database).update(
                "doc-1",
                {"status": DocumentStatus.PERSISTED},
                expected_status=DocumentStatus.OCR_PENDING,
            )

        cursor.execute.assert_not_called()


class TestPayload:
    def test_get_payload_returns_bytes(self) -> None:
        database, _conn, cursor = _mock_database()
        cursor.fetchone.return_value = (memoryview(b"%PDF-fake"),)

        assert PostgresRecordStore(database).get_payload("doc-1") == b"%PDF-fake"

    def test_get_payload_missing_returns_none(self) -> None:
        database, _conn, cursor = _mock_database()
        cursor.fetchone.return_value = None

        assert PostgresRecordStore(database).get_payload("doc-1") is None

    def test_delete_payload_clears_reference_and_row(self) -> None:
        database, conn, cursor = _mock_database()
        cursor.rowcount = 1

        assert PostgresRecordStore(database).delete_payload("doc-1") is True
        assert cursor.execute.call_count == 2
        conn.commit.assert_called_once()

    def test_delete_payload_of_missing_document_raises(self) -> None:
        database, conn, cursor = _mock_database()
        cursor.rowcount = 0

        with pytest.raises(DocumentNotFoundError):
            PostgresRecordStore(database).delete_payload("nope")
        conn.commit.assert_not_called()
