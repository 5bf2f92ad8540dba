import threading
import time
from dataclasses import dataclass, field

from docflow.broker.base import BaseStreamBroker
from docflow.broker.exceptions import ConsumerGroupNotFoundError
from docflow.broker.messages import StreamEntry


@dataclass
class _PendingEntry:
    consumer: str
    delivered_at: float
    deliveries: int = 1


@dataclass
class _GroupState:
    cursor: int
    pending: dict[str, _PendingEntry] = field(default_factory=dict)


class InMemoryStreamBroker(BaseStreamBroker):
    """Thread-safe stream broker kept in process memory.

    Mirrors the consumer-group behaviour of Redis Streams closely enough for
    local runs and tests: groups start at the tail, new entries are handed
    out once per group, and unacknowledged entries idle for
    `claim_min_idle_ms` are reclaimed by the next reader.
    """

    def __init__(self, claim_min_idle_ms: int = 60000) -> None:
        self._claim_min_idle_ms = claim_min_idle_ms
        self._condition = threading.Condition()
        self._topics: dict[str, list[StreamEntry]] = {}
        self._index: dict[str, dict[str, StreamEntry]] = {}
        self._groups: dict[tuple[str, str], _GroupState] = {}
        self._last_millis = 0
        self._sequence = 0

    def ensure_group(self, topic: str, group: str) -> None:
        with self._condition:
            entries = self._create_topic(topic)
            self._groups.setdefault((topic, group), _GroupState(cursor=len(entries)))

    def read_next(
        self,
        topic: str,
        group: str,
        consumer: str,
        max_count: int = 1,
        block_ms: int | None = 0,
    ) -> list[StreamEntry]:
        deadline = None
        if block_ms:
            deadline = time.monotonic() + block_ms / 1000
        with self._condition:
            while True:
                state = self._groups.get((topic, group))
                if state is None:
                    raise ConsumerGroupNotFoundError(
                        f"No consumer group '{group}' for topic '{topic}'"
                    )
                claimed = self._reclaim(topic, state, consumer, max_count)
                if not claimed:
                    claimed = self._deliver_new(topic, state, consumer, max_count)
                if claimed or block_ms is None:
                    return claimed
                if deadline is None:
                    self._condition.wait(self._wait_interval())
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return []
                interval = self._wait_interval()
                self._condition.wait(remaining if interval is None else min(remaining, interval))

    def append(self, topic: str, fields: dict[str, str]) -> str:
        with self._condition:
            entries = self._create_topic(topic)
            entry = StreamEntry(entry_id=self._next_id(), fields=dict(fields))
            entries.append(entry)
            self._index[topic][entry.entry_id] = entry
            self._condition.notify_all()
            return entry.entry_id

    def ack(self, topic: str, group: str, entry_id: str) -> int:
        with self._condition:
            state = self._groups.get((topic, group))
            if state is None:
                return 0
            return 1 if state.pending.pop(entry_id, None) is not None else 0

    def entries(self, topic: str, count: int | None = None) -> list[StreamEntry]:
        with self._condition:
            entries = list(self._topics.get(topic, []))
        return entries if count is None else entries[:count]

    def pending_count(self, topic: str, group: str) -> int:
        with self._condition:
            state = self._groups.get((topic, group))
            return len(state.pending) if state is not None else 0

    def _create_topic(self, topic: str) -> list[StreamEntry]:
        self._index.setdefault(topic, {})
        return self._topics.setdefault(topic, [])

    def _next_id(self) -> str:
        millis = int(time.time() * 1000)
        if millis <= self._last_millis:
            self._sequence += 1
        else:
            self._last_millis = millis
            self._sequence = 0
        return f"{self._last_millis}-{self._sequence}"

    def _wait_interval(self) -> float | None:
        # Reclaim is time-driven, so a blocked reader must wake up to check it.
        if self._claim_min_idle_ms > 0:
            return self._claim_min_idle_ms / 1000
        return None

    def _reclaim(
        self, topic: str, state: _GroupState, consumer: str, max_count: int
    ) -> list[StreamEntry]:
        if self._claim_min_idle_ms <= 0:
            return []
        now = time.monotonic()
        min_idle = self._claim_min_idle_ms / 1000
        claimed: list[StreamEntry] = []
        for entry_id, pending in state.pending.items():
            if len(claimed) >= max_count:
                break
            if now - pending.delivered_at < min_idle:
                continue
            pending.consumer = consumer
            pending.delivered_at = now
            pending.deliveries += 1
            claimed.append(self._index[topic][entry_id])
        return claimed

    def _deliver_new(
        self, topic: str, state: _GroupState, consumer: str, max_count: int
    ) -> list[StreamEntry]:
        entries = self._topics[topic]
        batch = entries[state.cursor : state.cursor + max_count]
        now = time.monotonic()
        for entry in batch:
            state.pending[entry.entry_id] = _PendingEntry(consumer=consumer, delivered_at=now)
        state.cursor += len(batch)
        return batch
