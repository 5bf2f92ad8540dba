from docflow.broker.base import BaseStreamBroker
from docflow.documents.exceptions import PreconditionFailedError
from docflow.documents.models import DocumentRecord, DocumentStatus
from docflow.logging.logger import Log
from docflow.recognition.base import BaseRecognizer
from docflow.stages import topics
from docflow.stages.base import StageHandler
from docflow.store.base import BaseRecordStore


class RecognitionHandler(StageHandler):
    """UPLOADED -> OCR_PENDING -> OCR_COMPLETED | OCR_FAILED."""

    name = "recognition"
    label = "Recognition"
    input_topic = topics.DOCUMENT_QUEUE
    group = topics.OCR_GROUP
    dead_letter_topic = topics.DLQ_OCR_FAILED
    failure_status = DocumentStatus.OCR_FAILED

    def __init__(
        self,
        store: BaseRecordStore,
        broker: BaseStreamBroker,
        recognizer: BaseRecognizer,
    ) -> None:
        super().__init__(store, broker)
        self._recognizer = recognizer

    def process(self, record: DocumentRecord) -> None:
        if record.status == DocumentStatus.OCR_COMPLETED:
            self._forward(topics.OCR_RESULT_QUEUE, record)
            return
        if not self._claim(record, DocumentStatus.UPLOADED, DocumentStatus.OCR_PENDING):
            return

        content = self._store.get_payload(record.id)
        if content is None:
            raise PreconditionFailedError(
                f"Original content not found for document {record.id}"
            )

        result = self._recognizer.recognize(content)
        Log.info(
            f"[{self.label}] Recognized {len(result.text)} chars for document "
            f"{record.id} (confidence {result.confidence:.2f})"
        )
        if not self._complete(
            record.id,
            DocumentStatus.OCR_PENDING,
            DocumentStatus.OCR_COMPLETED,
            {"recognition_result": result},
        ):
            return
        self._emit(topics.OCR_RESULT_QUEUE, record.id, DocumentStatus.OCR_COMPLETED)
