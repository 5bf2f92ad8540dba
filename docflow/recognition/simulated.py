"""Simulated recognition adapter.

Returns a fixed invoice text after a short delay. Stands in for a real OCR
engine during local development and tests.
"""

import time
from typing import ClassVar

from docflow.documents.models import RecognitionResult
from docflow.recognition.base import BaseRecognizer
from docflow.recognition.exceptions import RecognitionError

SIMULATED_INVOICE_TEXT = """
Invoice Number: INV-2025-001
Customer: Acme Corp
Date: 2025-07-08
Total: 1234.56 USD
Currency: USD
Description: Consulting Services
Item 1: Product A - 10 units @ 50.00 USD
Item 2: Product B - 5 units @ 100.00 USD
Tax: 100.00 USD
Subtotal: 1134.56 USD
Vendor: Example Solutions Inc.
Address: 123 Business Rd, City, Country
VAT ID: GB123456789
"""


class SimulatedRecognizer(BaseRecognizer):
    """Recognizer that ignores its input and returns SIMULATED_INVOICE_TEXT."""

    CONFIDENCE: ClassVar[float] = 0.98
    LANGUAGE: ClassVar[str] = "en"

    def __init__(self, delay_seconds: float = 0.5, text: str = SIMULATED_INVOICE_TEXT) -> None:
        self._delay_seconds = delay_seconds
        self._text = text

    def recognize(self, content: bytes) -> RecognitionResult:
        if not content:
            raise RecognitionError("Cannot recognize an empty payload")
        if self._delay_seconds > 0:
            time.sleep(self._delay_seconds)
        return RecognitionResult(
            text=self._text,
            confidence=self.CONFIDENCE,
            language=self.LANGUAGE,
        )
