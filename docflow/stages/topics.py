"""Fixed topic chain and consumer groups of the pipeline."""

DOCUMENT_QUEUE = "document_queue"
OCR_RESULT_QUEUE = "ocr_result_queue"
VALIDATION_QUEUE = "validation_queue"

DLQ_OCR_FAILED = "dlq_ocr_failed"
DLQ_VALIDATION_FAILED = "dlq_validation_failed"
DLQ_PERSISTENCE_FAILED = "dlq_persistence_failed"

OCR_GROUP = "ocr_processor_group"
VALIDATION_GROUP = "validation_processor_group"
PERSISTENCE_GROUP = "persistence_processor_group"

DEAD_LETTER_TOPICS = {
    "recognition": DLQ_OCR_FAILED,
    "extraction": DLQ_VALIDATION_FAILED,
    "persistence": DLQ_PERSISTENCE_FAILED,
}
