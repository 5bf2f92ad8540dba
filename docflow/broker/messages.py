from dataclasses import dataclass

from docflow.documents.models import DocumentStatus


@dataclass(frozen=True)
class StreamEntry:
    """One entry as read from a topic: broker-assigned id plus its fields."""

    entry_id: str
    fields: dict[str, str]


@dataclass(frozen=True)
class StageMessage:
    """Flow entry handed from one stage to the next.

    `status` is informational: handlers act on the status held by the
    record store, so a missing or unknown tag parses to None.
    """

    document_id: str
    status: DocumentStatus | None = None

    def to_fields(self) -> dict[str, str]:
        fields = {"documentId": self.document_id}
        if self.status is not None:
            fields["status"] = self.status.value
        return fields

    @classmethod
    def from_fields(cls, fields: dict[str, str]) -> "StageMessage | None":
        """Parse an entry's fields; None if documentId is missing or empty."""
        document_id = fields.get("documentId")
        if not document_id:
            return None
        raw_status = fields.get("status")
        status = (
            DocumentStatus(raw_status)
            if raw_status in DocumentStatus.__members__
            else None
        )
        return cls(document_id=document_id, status=status)


@dataclass(frozen=True)
class DeadLetterMessage:
    """Entry recorded on a stage's dead-letter topic for manual inspection."""

    document_id: str
    error: str
    stage: str

    def to_fields(self) -> dict[str, str]:
        return {"documentId": self.document_id, "error": self.error, "stage": self.stage}

    @classmethod
    def from_fields(cls, fields: dict[str, str]) -> "DeadLetterMessage":
        return cls(
            document_id=fields.get("documentId", ""),
            error=fields.get("error", ""),
            stage=fields.get("stage", ""),
        )
