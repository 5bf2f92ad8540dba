import pytest

from docflow.broker.memory_broker import InMemoryStreamBroker
from docflow.config.settings import Settings
from docflow.store.memory_store import InMemoryRecordStore

VALID_INVOICE_TEXT = """
Invoice Number: INV-2025-001
Customer: Acme Corp
Total: 1234.56 USD
Currency: USD
Date: 2025-07-08
"""

INVOICE_WITHOUT_CUSTOMER_TEXT = """
Invoice Number: INV-2025-002
Total: 99.00 EUR
Date: 2025-07-09
"""


@pytest.fixture()
def settings() -> Settings:
    """Settings wired to in-memory backends with short timings."""
    return Settings(
        _env_file=None,
        store_backend="memory",
        broker_backend="memory",
        consumer_name="test",
        stream_block_ms=50,
        claim_min_idle_ms=0,
        loop_retry_delay_seconds=0.01,
        shutdown_timeout_seconds=5,
        recognition_delay_seconds=0,
    )


@pytest.fixture()
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def broker() -> InMemoryStreamBroker:
    return InMemoryStreamBroker(claim_min_idle_ms=0)


@pytest.fixture()
def valid_invoice_text() -> str:
    return VALID_INVOICE_TEXT


@pytest.fixture()
def invoice_without_customer_text() -> str:
    return INVOICE_WITHOUT_CUSTOMER_TEXT
