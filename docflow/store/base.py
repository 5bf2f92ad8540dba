from abc import ABC, abstractmethod

from docflow.documents.models import UPDATABLE_FIELDS, DocumentRecord, DocumentStatus
from docflow.documents.status import ensure_transition


class BaseRecordStore(ABC):
    """Contract for document record storage.

    A record is always read whole (`get`) and changed through `update`,
    which only writes a status together with the status it replaces.
    """

    @abstractmethod
    def create(self, record: DocumentRecord, content: bytes) -> None:
        """Insert a new record together with its binary payload."""

    @abstractmethod
    def get(self, document_id: str) -> DocumentRecord | None:
        """Return the full record, or None if no record has this id."""

    @abstractmethod
    def get_payload(self, document_id: str) -> bytes | None:
        """Return the binary payload, or None if it is absent."""

    @abstractmethod
    def delete_payload(self, document_id: str) -> bool:
        """Discard the binary payload and clear the record's content_ref.

        Returns False if there was no payload to discard.
        """

    def update(
        self,
        document_id: str,
        changes: dict[str, object],
        expected_status: DocumentStatus | None = None,
    ) -> bool:
        """Apply field changes and refresh updated_at.

        When `expected_status` is given the write only happens if the record
        currently has that status (compare-and-set). A status change must
        always name the status it replaces, and the pair must be an edge of
        the transition graph.

        Returns:
            True if the change was applied, False if the current status did
            not match `expected_status`.

        Raises:
            DocumentNotFoundError: if no record with this id exists.
            InvalidTransitionError: if the status change is not allowed.
            ValueError: if `changes` names a field that cannot be updated.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")
        if "status" in changes:
            if expected_status is None:
                raise ValueError("A status change requires expected_status")
            target = changes["status"]
            if not isinstance(target, DocumentStatus):
                raise ValueError(f"Invalid status value: {target!r}")
            ensure_transition(expected_status, target)
        return self._apply_update(document_id, changes, expected_status)

    @abstractmethod
    def _apply_update(
        self,
        document_id: str,
        changes: dict[str, object],
        expected_status: DocumentStatus | None,
    ) -> bool:
        """Atomically apply validated changes; see `update`."""
