from abc import ABC, abstractmethod
from typing import ClassVar

from docflow.broker.base import BaseStreamBroker
from docflow.broker.messages import DeadLetterMessage, StageMessage
from docflow.documents.exceptions import DocumentNotFoundError, OutOfSequenceError
from docflow.documents.models import DocumentRecord, DocumentStatus
from docflow.documents.status import can_transition, is_after
from docflow.logging.logger import Log
from docflow.store.base import BaseRecordStore


class StageHandler(ABC):
    """One pipeline stage: read record -> check -> transform -> write -> emit.

    `handle` contains the stage's own failures: a missing record is logged
    and dropped, anything raised by `process` is turned into the stage's
    failure status plus an entry on the stage's dead-letter topic. The
    failure status is only written for a record this handler claimed or
    resumed, and only where the transition graph allows it. Only errors
    raised while reading the record or while recording a failure escape to
    the caller.
    """

    name: ClassVar[str]
    label: ClassVar[str]
    input_topic: ClassVar[str]
    group: ClassVar[str]
    dead_letter_topic: ClassVar[str]
    failure_status: ClassVar[DocumentStatus]

    def __init__(self, store: BaseRecordStore, broker: BaseStreamBroker) -> None:
        self._store = store
        self._broker = broker

    def handle(self, document_id: str) -> None:
        record = self._store.get(document_id)
        if record is None:
            Log.error(f"[{self.label}] Document not found: {document_id}")
            return
        try:
            self.process(record)
        except DocumentNotFoundError as exc:
            Log.error(f"[{self.label}] {exc}")
        except OutOfSequenceError as exc:
            self._dead_letter(document_id, exc, mark_failed=False)
        except Exception as exc:
            self._dead_letter(document_id, exc)

    @abstractmethod
    def process(self, record: DocumentRecord) -> None:
        """Run the stage's transform for a record that exists."""

    def _claim(
        self,
        record: DocumentRecord,
        expected: DocumentStatus,
        pending: DocumentStatus,
    ) -> bool:
        """Move the record from `expected` to `pending`.

        A record already at `pending` was claimed by a consumer that has not
        finished (it crashed, or is still running). The delivery resumes it:
        the transform runs again and `_complete` decides which run wins.

        Returns False when the record is past `pending` or another consumer
        claimed it first.

        Raises:
            OutOfSequenceError: if the record is not at `expected` and
                has not passed it either.
        """
        if record.status == pending:
            Log.warning(
                f"[{self.label}] Document {record.id} found at {pending.value}, "
                f"resuming unfinished processing"
            )
            return True
        if record.status != expected:
            if is_after(record.status, expected):
                Log.warning(
                    f"[{self.label}] Document {record.id} already at "
                    f"{record.status.value}, skipping duplicate delivery"
                )
                return False
            raise OutOfSequenceError(
                f"Document {record.id} has status {record.status.value}, "
                f"expected {expected.value}"
            )
        if not self._store.update(record.id, {"status": pending}, expected_status=expected):
            Log.warning(
                f"[{self.label}] Document {record.id} was claimed by another consumer"
            )
            return False
        Log.info(f"[{self.label}] Document {record.id} status updated to {pending.value}")
        return True

    def _complete(
        self,
        document_id: str,
        current: DocumentStatus,
        target: DocumentStatus,
        changes: dict[str, object],
    ) -> bool:
        """Write the stage's outcome if the record is still at `current`.

        Returns False when another consumer moved the record first; the
        caller must then leave the record and emit nothing.
        """
        applied = self._store.update(
            document_id, {**changes, "status": target}, expected_status=current
        )
        if not applied:
            Log.warning(
                f"[{self.label}] Document {document_id} left {current.value} "
                f"while being processed, keeping the other consumer's outcome"
            )
            return False
        Log.info(f"[{self.label}] Document {document_id} status updated to {target.value}")
        return True

    def _forward(self, topic: str, record: DocumentRecord) -> None:
        """Re-emit the downstream entry for a record this stage already finished.

        Covers a previous delivery that wrote its outcome but failed to emit.
        Downstream stages skip the entry if they have already handled it.
        """
        Log.warning(
            f"[{self.label}] Document {record.id} already at "
            f"{record.status.value}, forwarding again"
        )
        self._emit(topic, record.id, record.status)

    def _emit(self, topic: str, document_id: str, status: DocumentStatus) -> None:
        entry_id = self._broker.append(topic, StageMessage(document_id, status).to_fields())
        Log.info(
            f"[{self.label}] Document {document_id} ({status.value}) queued on "
            f"'{topic}' as {entry_id}"
        )

    def _dead_letter(
        self, document_id: str, exc: Exception, mark_failed: bool = True
    ) -> None:
        error = str(exc) or type(exc).__name__
        Log.error(f"[{self.label}] Error processing document {document_id}: {error}")
        current = self._store.get(document_id) if mark_failed else None
        if current is not None and can_transition(current.status, self.failure_status):
            self._store.update(
                document_id,
                {"status": self.failure_status},
                expected_status=current.status,
            )
            Log.info(
                f"[{self.label}] Document {document_id} marked as "
                f"{self.failure_status.value}"
            )
        elif current is not None:
            Log.warning(
                f"[{self.label}] Document {document_id} left at "
                f"{current.status.value}: {self.failure_status.value} is not reachable"
            )
        self._broker.append(
            self.dead_letter_topic,
            DeadLetterMessage(document_id, error, self.name).to_fields(),
        )
        Log.info(
            f"[{self.label}] Document {document_id} sent to '{self.dead_letter_topic}'"
        )
