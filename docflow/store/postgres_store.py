from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docflow.database.connection import Database
from docflow.documents.exceptions import DocumentNotFoundError
from docflow.documents.models import (
    DocumentRecord,
    DocumentStatus,
    InvoiceFields,
    RecognitionResult,
)
from docflow.store.base import BaseRecordStore

_RECORD_COLUMNS = """
    id, filename, status, content_ref, recognition_result,
    extracted_fields, validation_errors, created_at, updated_at
"""


class PostgresRecordStore(BaseRecordStore):
    """Database operations for the documents and document_payloads tables."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def create(self, record: DocumentRecord, content: bytes) -> None:
        with self._database.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO documents
                    (id, filename, status, content_ref, created_at, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    """,
                    (
                        record.id,
                        record.filename,
                        record.status.value,
                        record.content_ref,
                        record.created_at,
                        record.updated_at,
                    ),
                )
                cur.execute(
                    """
                    INSERT INTO document_payloads (document_id, content)
                    VALUES (%s, %s)
                    """,
                    (record.id, content),
                )
            conn.commit()

    def get(self, document_id: str) -> DocumentRecord | None:
        with self._database.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_RECORD_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return _row_to_record(row)

    def get_payload(self, document_id: str) -> bytes | None:
        with self._database.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT content FROM document_payloads WHERE document_id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None
        return bytes(row[0])

    def delete_payload(self, document_id: str) -> bool:
        """Discard the payload and clear content_ref in one transaction.

        Raises:
            DocumentNotFoundError: if no document with this id exists.
        """
        with self._database.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET content_ref = NULL, updated_at = NOW()
                    WHERE id = %s
                    """,
                    (document_id,),
                )
                if cur.rowcount == 0:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
                cur.execute(
                    "DELETE FROM document_payloads WHERE document_id = %s",
                    (document_id,),
                )
                removed = cur.rowcount > 0
            conn.commit()
        return removed

    def _apply_update(
        self,
        document_id: str,
        changes: dict[str, object],
        expected_status: DocumentStatus | None,
    ) -> bool:
        columns = list(changes)
        assignments = [
            sql.SQL("{} = %s").format(sql.Identifier(column)) for column in columns
        ]
        assignments.append(sql.SQL("updated_at = NOW()"))
        query = sql.SQL("UPDATE documents SET {} WHERE id = %s").format(
            sql.SQL(", ").join(assignments)
        )
        params: list[object] = [_to_column(column, changes[column]) for column in columns]
        params.append(document_id)
        if expected_status is not None:
            query = query + sql.SQL(" AND status = %s")
            params.append(expected_status.value)

        with self._database.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                applied = cur.rowcount > 0
                if not applied:
                    cur.execute("SELECT 1 FROM documents WHERE id = %s", (document_id,))
                    if cur.fetchone() is None:
                        raise DocumentNotFoundError(f"Document {document_id} not found")
            conn.commit()
        return applied


def _to_column(column: str, value: object) -> object:
    if value is None:
        return None
    if column == "status" and isinstance(value, DocumentStatus):
        return value.value
    if isinstance(value, (RecognitionResult, InvoiceFields)):
        return Jsonb(value.to_dict())
    if column == "validation_errors" and isinstance(value, list):
        return Jsonb(list(value))
    return value


def _row_to_record(row: dict[str, Any]) -> DocumentRecord:
    recognition = row["recognition_result"]
    fields = row["extracted_fields"]
    errors = row["validation_errors"]
    return DocumentRecord(
        id=row["id"],
        filename=row["filename"],
        status=DocumentStatus(row["status"]),
        content_ref=row["content_ref"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        recognition_result=(
            RecognitionResult.from_dict(recognition) if recognition is not None else None
        ),
        extracted_fields=InvoiceFields.from_dict(fields) if fields is not None else None,
        validation_errors=list(errors) if errors is not None else None,
    )
