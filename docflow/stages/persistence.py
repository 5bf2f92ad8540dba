from docflow.documents.models import DocumentRecord, DocumentStatus
from docflow.logging.logger import Log
from docflow.stages import topics
from docflow.stages.base import StageHandler


class PersistenceHandler(StageHandler):
    """VALIDATED -> PERSISTED (payload discarded); VALIDATION_FAILED -> FAILED."""

    name = "persistence"
    label = "Persistence"
    input_topic = topics.VALIDATION_QUEUE
    group = topics.PERSISTENCE_GROUP
    dead_letter_topic = topics.DLQ_PERSISTENCE_FAILED
    failure_status = DocumentStatus.FAILED

    def process(self, record: DocumentRecord) -> None:
        if record.status == DocumentStatus.VALIDATED:
            self._persist(record)
        elif record.status == DocumentStatus.PERSISTED and record.content_ref is not None:
            Log.warning(
                f"[{self.label}] Document {record.id} persisted with its original "
                f"content still stored, finishing cleanup"
            )
            self._discard_payload(record)
        elif record.status == DocumentStatus.VALIDATION_FAILED:
            self._reject(record)
        else:
            Log.warning(
                f"[{self.label}] Document {record.id} received with unexpected "
                f"status {record.status.value}, no action taken"
            )

    def _persist(self, record: DocumentRecord) -> None:
        if self._finalize(record, DocumentStatus.PERSISTED):
            self._discard_payload(record)

    def _discard_payload(self, record: DocumentRecord) -> None:
        if self._store.delete_payload(record.id):
            Log.info(
                f"[{self.label}] Original content for document {record.id} "
                f"removed from temporary storage"
            )

    def _reject(self, record: DocumentRecord) -> None:
        if self._finalize(record, DocumentStatus.FAILED):
            Log.info(
                f"[{self.label}] Document {record.id} not persisted due to "
                f"validation failure"
            )

    def _finalize(self, record: DocumentRecord, target: DocumentStatus) -> bool:
        applied = self._store.update(
            record.id, {"status": target}, expected_status=record.status
        )
        if not applied:
            Log.warning(
                f"[{self.label}] Document {record.id} was finalized by another consumer"
            )
            return False
        Log.info(f"[{self.label}] Document {record.id} final status: {target.value}")
        return True
