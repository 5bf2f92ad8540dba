from typing import Any

import redis
from redis.exceptions import ResponseError

from docflow.broker.base import BaseStreamBroker
from docflow.broker.exceptions import ConsumerGroupNotFoundError
from docflow.broker.messages import StreamEntry
from docflow.logging.logger import Log


class RedisStreamBroker(BaseStreamBroker):
    """Stream broker backed by Redis Streams and consumer groups."""

    def __init__(self, client: redis.Redis, claim_min_idle_ms: int = 60000) -> None:
        self._client = client
        self._claim_min_idle_ms = claim_min_idle_ms

    @classmethod
    def from_url(cls, url: str, claim_min_idle_ms: int = 60000) -> "RedisStreamBroker":
        client = redis.Redis.from_url(url, decode_responses=True)
        return cls(client, claim_min_idle_ms=claim_min_idle_ms)

    def ensure_group(self, topic: str, group: str) -> None:
        try:
            self._client.xgroup_create(topic, group, id="$", mkstream=True)
            Log.info(f"Consumer group '{group}' created for topic '{topic}'")
        except ResponseError as exc:
            if "BUSYGROUP" not in str(exc):
                raise
            Log.debug(f"Consumer group '{group}' already exists for topic '{topic}'")

    def read_next(
        self,
        topic: str,
        group: str,
        consumer: str,
        max_count: int = 1,
        block_ms: int | None = 0,
    ) -> list[StreamEntry]:
        try:
            claimed = self._reclaim(topic, group, consumer, max_count)
            if claimed:
                return claimed
            response = self._client.xreadgroup(
                group, consumer, {topic: ">"}, count=max_count, block=block_ms
            )
        except ResponseError as exc:
            if "NOGROUP" in str(exc):
                raise ConsumerGroupNotFoundError(
                    f"No consumer group '{group}' for topic '{topic}'"
                ) from exc
            raise
        return _parse_read_response(response)

    def append(self, topic: str, fields: dict[str, str]) -> str:
        return str(self._client.xadd(topic, fields))

    def ack(self, topic: str, group: str, entry_id: str) -> int:
        return int(self._client.xack(topic, group, entry_id))

    def entries(self, topic: str, count: int | None = None) -> list[StreamEntry]:
        rows = self._client.xrange(topic, count=count)
        return [StreamEntry(entry_id=entry_id, fields=dict(fields)) for entry_id, fields in rows]

    def pending_count(self, topic: str, group: str) -> int:
        summary = self._client.xpending(topic, group)
        return int(summary["pending"])

    def close(self) -> None:
        self._client.close()

    def _reclaim(
        self, topic: str, group: str, consumer: str, max_count: int
    ) -> list[StreamEntry]:
        """Take over entries another consumer left unacknowledged for too long."""
        if self._claim_min_idle_ms <= 0:
            return []
        result = self._client.xautoclaim(
            topic,
            group,
            consumer,
            min_idle_time=self._claim_min_idle_ms,
            start_id="0-0",
            count=max_count,
        )
        messages = result[1]
        claimed = [
            StreamEntry(entry_id=entry_id, fields=dict(fields))
            for entry_id, fields in messages
            if fields
        ]
        if claimed:
            Log.warning(
                f"Reclaimed {len(claimed)} idle entries on '{topic}' for {consumer}"
            )
        return claimed


def _parse_read_response(response: Any) -> list[StreamEntry]:
    """Flatten an XREADGROUP reply: [[topic, [(entry_id, fields), ...]], ...]."""
    if not response:
        return []
    entries: list[StreamEntry] = []
    for _topic, messages in response:
        for entry_id, fields in messages:
            entries.append(StreamEntry(entry_id=entry_id, fields=dict(fields or {})))
    return entries
