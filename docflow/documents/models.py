from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class DocumentStatus(StrEnum):
    """Wire values of a document's processing status."""

    UPLOADED = "UPLOADED"
    OCR_PENDING = "OCR_PENDING"
    OCR_COMPLETED = "OCR_COMPLETED"
    OCR_FAILED = "OCR_FAILED"
    VALIDATION_PENDING = "VALIDATION_PENDING"
    VALIDATED = "VALIDATED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    PERSISTENCE_PENDING = "PERSISTENCE_PENDING"
    PERSISTED = "PERSISTED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class RecognitionResult:
    """Output of the recognition stage."""

    text: str
    confidence: float
    language: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecognitionResult":
        return cls(
            text=str(data["text"]),
            confidence=float(data["confidence"]),
            language=str(data["language"]),
        )


@dataclass(frozen=True)
class InvoiceFields:
    """Structured fields extracted from recognized invoice text.

    Every field is optional: extraction records what it found and
    validation reports what is missing.
    """

    invoice_number: str | None = None
    customer_name: str | None = None
    total_amount: float | None = None
    currency: str | None = None
    issue_date: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase shape exposed by the record projection."""
        data = {
            "invoiceNumber": self.invoice_number,
            "customerName": self.customer_name,
            "totalAmount": self.total_amount,
            "currency": self.currency,
            "issueDate": self.issue_date,
        }
        return {key: value for key, value in data.items() if value is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InvoiceFields":
        amount = data.get("totalAmount")
        return cls(
            invoice_number=data.get("invoiceNumber"),
            customer_name=data.get("customerName"),
            total_amount=float(amount) if amount is not None else None,
            currency=data.get("currency"),
            issue_date=data.get("issueDate"),
        )


# Fields a stage may change through BaseRecordStore.update().
UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "content_ref",
        "recognition_result",
        "extracted_fields",
        "validation_errors",
    }
)


@dataclass
class DocumentRecord:
    """The persisted, mutable state of one document across the pipeline."""

    id: str
    filename: str
    status: DocumentStatus
    content_ref: str | None
    created_at: datetime
    updated_at: datetime
    recognition_result: RecognitionResult | None = None
    extracted_fields: InvoiceFields | None = None
    validation_errors: list[str] | None = field(default=None)

    def projection(self) -> dict[str, Any]:
        """Return the JSON-ready view of the record, without its payload."""
        data: dict[str, Any] = {
            "id": self.id,
            "filename": self.filename,
            "status": self.status.value,
            "hasContent": self.content_ref is not None,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
        if self.recognition_result is not None:
            data["recognitionResult"] = self.recognition_result.to_dict()
        if self.extracted_fields is not None:
            data["extractedFields"] = self.extracted_fields.to_dict()
        if self.validation_errors is not None:
            data["validationErrors"] = list(self.validation_errors)
        return data
