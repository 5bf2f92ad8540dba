import uuid
from datetime import datetime, timezone
from typing import Any

from docflow.broker.base import BaseStreamBroker
from docflow.broker.messages import StageMessage
from docflow.documents.models import DocumentRecord, DocumentStatus
from docflow.logging.logger import Log
from docflow.stages import topics
from docflow.store.base import BaseRecordStore


class DocumentIngestor:
    """Publishes uploaded documents into the pipeline.

    Creates the UPLOADED record with its payload, then appends the first
    entry to the document queue. This is the library half of an upload
    endpoint; the transport that receives the bytes lives elsewhere.
    """

    def __init__(self, store: BaseRecordStore, broker: BaseStreamBroker) -> None:
        self._store = store
        self._broker = broker

    def ingest(self, filename: str, content: bytes) -> DocumentRecord:
        """Store a new document and queue it for recognition.

        Raises:
            ValueError: if the filename or the payload is empty.
        """
        if not filename:
            raise ValueError("filename must not be empty")
        if not content:
            raise ValueError("content must not be empty")

        document_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        record = DocumentRecord(
            id=document_id,
            filename=filename,
            status=DocumentStatus.UPLOADED,
            content_ref=document_id,
            created_at=now,
            updated_at=now,
        )
        self._store.create(record, content)
        entry_id = self._broker.append(
            topics.DOCUMENT_QUEUE,
            StageMessage(document_id, DocumentStatus.UPLOADED).to_fields(),
        )
        Log.info(
            f"[Ingest] Document {document_id} ({filename}, {len(content)} bytes) "
            f"queued as {entry_id}"
        )
        return record

    def project(self, document_id: str) -> dict[str, Any] | None:
        """Return the record without its payload, or None if absent."""
        record = self._store.get(document_id)
        return record.projection() if record is not None else None
