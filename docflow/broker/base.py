from abc import ABC, abstractmethod

from docflow.broker.messages import StreamEntry


class BaseStreamBroker(ABC):
    """Contract for the append-only, per-topic log with consumer groups."""

    @abstractmethod
    def ensure_group(self, topic: str, group: str) -> None:
        """Create `group` at the tail of `topic` unless it already exists.

        Creates the topic if it does not exist. An existing group is not an
        error.
        """

    @abstractmethod
    def read_next(
        self,
        topic: str,
        group: str,
        consumer: str,
        max_count: int = 1,
        block_ms: int | None = 0,
    ) -> list[StreamEntry]:
        """Claim up to `max_count` entries for `consumer`.

        Entries left unacknowledged for at least the broker's reclaim idle
        time are handed out first; otherwise entries never delivered to the
        group are returned in append order.

        Args:
            block_ms: 0 blocks until an entry is available, a positive value
                bounds the wait, None returns immediately.

        Returns:
            The claimed entries; empty if a bounded wait expired.
        """

    @abstractmethod
    def append(self, topic: str, fields: dict[str, str]) -> str:
        """Append an entry to the tail of `topic` and return its id."""

    @abstractmethod
    def ack(self, topic: str, group: str, entry_id: str) -> int:
        """Mark an entry as processed for `group`.

        Returns the number of entries acknowledged; acking twice returns 0.
        """

    @abstractmethod
    def entries(self, topic: str, count: int | None = None) -> list[StreamEntry]:
        """Return entries of `topic` from the head, without claiming them."""

    @abstractmethod
    def pending_count(self, topic: str, group: str) -> int:
        """Return how many entries are delivered but not yet acknowledged."""

    def close(self) -> None:
        """Release broker resources."""
