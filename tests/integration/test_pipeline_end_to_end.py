import time

import pytest

from docflow.broker.redis_broker import RedisStreamBroker
from docflow.config.settings import Settings
from docflow.documents.models import DocumentStatus
from docflow.ingest.ingestor import DocumentIngestor
from docflow.recognition.simulated import SimulatedRecognizer
from docflow.stages import topics
from docflow.store.postgres_store import PostgresRecordStore
from docflow.worker.pipeline import build_pipeline

INVOICE_WITHOUT_CUSTOMER = """
Invoice Number: INV-2025-002
Total: 99.00 EUR
Date: 2025-07-09
"""

FINAL_STATUSES = {
    DocumentStatus.PERSISTED,
    DocumentStatus.FAILED,
    DocumentStatus.OCR_FAILED,
}


def _ensure_groups(broker: RedisStreamBroker) -> None:
    broker.ensure_group(topics.DOCUMENT_QUEUE, topics.OCR_GROUP)
    broker.ensure_group(topics.OCR_RESULT_QUEUE, topics.VALIDATION_GROUP)
    broker.ensure_group(topics.VALIDATION_QUEUE, topics.PERSISTENCE_GROUP)


def _run_document(
    settings: Settings,
    store: PostgresRecordStore,
    broker: RedisStreamBroker,
    recognizer: SimulatedRecognizer,
    cleanup: list[str],
) -> str:
    _ensure_groups(broker)
    pipeline = build_pipeline(settings, store, broker, recognizer=recognizer)
    pipeline.start()
    try:
        record = DocumentIngestor(store, broker).ingest("invoice.pdf", b"%PDF-1.4")
        cleanup.append(record.id)
        deadline = time.monotonic() + 15
        while time.monotonic() < deadline:
            current = store.get(record.id)
            if current is not None and current.status in FINAL_STATUSES:
                return record.id
            time.sleep(0.05)
        pytest.fail(f"Document {record.id} did not reach a final status")
    finally:
        pipeline.stop()


@pytest.mark.integration
class TestPipelineEndToEnd:
    def test_valid_invoice_is_persisted(
        self,
        test_settings: Settings,
        record_store: PostgresRecordStore,
        stream_broker: RedisStreamBroker,
        integration_cleanup: list[str],
        pipeline_topics: None,
    ) -> None:
        document_id = _run_document(
            test_settings,
            record_store,
            stream_broker,
            SimulatedRecognizer(delay_seconds=0),
            integration_cleanup,
        )

        record = record_store.get(document_id)
        assert record is not None
        assert record.status == DocumentStatus.PERSISTED
        assert record.content_ref is None
        assert record.extracted_fields is not None
        assert record.extracted_fields.invoice_number == "INV-2025-001"
        assert record_store.get_payload(document_id) is None
        assert stream_broker.pending_count(topics.DOCUMENT_QUEUE, topics.OCR_GROUP) == 0

    def test_invalid_invoice_fails_and_keeps_payload(
        self,
        test_settings: Settings,
        record_store: PostgresRecordStore,
        stream_broker: RedisStreamBroker,
        integration_cleanup: list[str],
        pipeline_topics: None,
    ) -> None:
        document_id = _run_document(
            test_settings,
            record_store,
            stream_broker,
            SimulatedRecognizer(delay_seconds=0, text=INVOICE_WITHOUT_CUSTOMER),
            integration_cleanup,
        )

        record = record_store.get(document_id)
        assert record is not None
        assert record.status == DocumentStatus.FAILED
        assert record.validation_errors == ["Customer Name is missing or empty."]
        assert record_store.get_payload(document_id) == b"%PDF-1.4"
        assert stream_broker.entries(topics.DLQ_VALIDATION_FAILED) == []
