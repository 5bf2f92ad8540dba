import copy
import dataclasses
import threading
from datetime import datetime, timezone

from docflow.documents.exceptions import DocumentNotFoundError
from docflow.documents.models import DocumentRecord, DocumentStatus
from docflow.store.base import BaseRecordStore


class InMemoryRecordStore(BaseRecordStore):
    """Thread-safe record store kept in process memory.

    Useful for local runs and tests. Records are copied on the way in and
    out so callers never share state with the store.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, DocumentRecord] = {}
        self._payloads: dict[str, bytes] = {}

    def create(self, record: DocumentRecord, content: bytes) -> None:
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"Document {record.id} already exists")
            self._records[record.id] = copy.deepcopy(record)
            self._payloads[record.id] = bytes(content)

    def get(self, document_id: str) -> DocumentRecord | None:
        with self._lock:
            record = self._records.get(document_id)
            return copy.deepcopy(record) if record is not None else None

    def get_payload(self, document_id: str) -> bytes | None:
        with self._lock:
            return self._payloads.get(document_id)

    def delete_payload(self, document_id: str) -> bool:
        with self._lock:
            record = self._records.get(document_id)
            if record is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")
            removed = self._payloads.pop(document_id, None) is not None
            self._records[document_id] = dataclasses.replace(
                record, content_ref=None, updated_at=datetime.now(timezone.utc)
            )
            return removed

    def _apply_update(
        self,
        document_id: str,
        changes: dict[str, object],
        expected_status: DocumentStatus | None,
    ) -> bool:
        with self._lock:
            record = self._records.get(document_id)
            if record is None:
                raise DocumentNotFoundError(f"Document {document_id} not found")
            if expected_status is not None and record.status != expected_status:
                return False
            self._records[document_id] = dataclasses.replace(
                record,
                **copy.deepcopy(changes),
                updated_at=datetime.now(timezone.utc),
            )
            return True
