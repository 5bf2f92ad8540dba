from docflow.documents.exceptions import PreconditionFailedError
from docflow.documents.models import DocumentRecord, DocumentStatus
from docflow.extraction.extractor import extract_invoice_fields
from docflow.extraction.validator import validate_invoice_fields
from docflow.logging.logger import Log
from docflow.stages import topics
from docflow.stages.base import StageHandler


class ExtractionHandler(StageHandler):
    """OCR_COMPLETED -> VALIDATION_PENDING -> VALIDATED | VALIDATION_FAILED.

    A failed validation is a normal outcome: it is recorded on the document
    and forwarded to persistence like a success, never dead-lettered.
    """

    name = "extraction"
    label = "Extraction"
    input_topic = topics.OCR_RESULT_QUEUE
    group = topics.VALIDATION_GROUP
    dead_letter_topic = topics.DLQ_VALIDATION_FAILED
    failure_status = DocumentStatus.VALIDATION_FAILED

    def process(self, record: DocumentRecord) -> None:
        if record.status in (DocumentStatus.VALIDATED, DocumentStatus.VALIDATION_FAILED):
            self._forward(topics.VALIDATION_QUEUE, record)
            return
        if not self._claim(
            record, DocumentStatus.OCR_COMPLETED, DocumentStatus.VALIDATION_PENDING
        ):
            return

        recognition = record.recognition_result
        if recognition is None or not recognition.text.strip():
            raise PreconditionFailedError(
                f"Recognition result missing for document {record.id}"
            )

        fields = extract_invoice_fields(recognition.text)
        errors = validate_invoice_fields(fields)
        outcome = DocumentStatus.VALIDATION_FAILED if errors else DocumentStatus.VALIDATED

        if not self._complete(
            record.id,
            DocumentStatus.VALIDATION_PENDING,
            outcome,
            {"extracted_fields": fields, "validation_errors": errors or None},
        ):
            return
        if errors:
            Log.warning(
                f"[{self.label}] Validation failed for document {record.id}: "
                f"{'; '.join(errors)}"
            )

        self._emit(topics.VALIDATION_QUEUE, record.id, outcome)
