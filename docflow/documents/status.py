"""Document status transition graph.

UPLOADED -> OCR_PENDING -> OCR_COMPLETED | OCR_FAILED
OCR_COMPLETED -> VALIDATION_PENDING -> VALIDATED | VALIDATION_FAILED
VALIDATED -> PERSISTED
VALIDATION_FAILED -> FAILED

PERSISTENCE_PENDING is part of the wire enumeration but has no edges.
"""

from docflow.documents.exceptions import InvalidTransitionError
from docflow.documents.models import DocumentStatus

TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.UPLOADED: frozenset({DocumentStatus.OCR_PENDING}),
    DocumentStatus.OCR_PENDING: frozenset(
        {DocumentStatus.OCR_COMPLETED, DocumentStatus.OCR_FAILED}
    ),
    DocumentStatus.OCR_COMPLETED: frozenset({DocumentStatus.VALIDATION_PENDING}),
    DocumentStatus.OCR_FAILED: frozenset(),
    DocumentStatus.VALIDATION_PENDING: frozenset(
        {DocumentStatus.VALIDATED, DocumentStatus.VALIDATION_FAILED}
    ),
    DocumentStatus.VALIDATED: frozenset({DocumentStatus.PERSISTED}),
    DocumentStatus.VALIDATION_FAILED: frozenset({DocumentStatus.FAILED}),
    DocumentStatus.PERSISTENCE_PENDING: frozenset(),
    DocumentStatus.PERSISTED: frozenset(),
    DocumentStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    {DocumentStatus.PERSISTED, DocumentStatus.FAILED, DocumentStatus.OCR_FAILED}
)


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    """Return True if `current -> target` is an edge of the graph."""
    return target in TRANSITIONS[current]


def ensure_transition(current: DocumentStatus, target: DocumentStatus) -> None:
    """Raises:
    InvalidTransitionError: if `current -> target` is not an edge.
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Status transition {current.value} -> {target.value} is not allowed"
        )


def is_terminal(status: DocumentStatus) -> bool:
    return status in TERMINAL_STATUSES


def is_after(status: DocumentStatus, reference: DocumentStatus) -> bool:
    """Return True if `status` is reachable from `reference` by one or more edges."""
    seen: set[DocumentStatus] = set()
    frontier = list(TRANSITIONS[reference])
    while frontier:
        candidate = frontier.pop()
        if candidate == status:
            return True
        if candidate in seen:
            continue
        seen.add(candidate)
        frontier.extend(TRANSITIONS[candidate])
    return False


def is_reachable(status: DocumentStatus) -> bool:
    """Return True if `status` can be reached from UPLOADED."""
    return status == DocumentStatus.UPLOADED or is_after(
        status, DocumentStatus.UPLOADED
    )
