import os
import socket
import threading

from docflow.broker.base import BaseStreamBroker
from docflow.broker.messages import StageMessage, StreamEntry
from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.stages.base import StageHandler


def default_consumer_name(stage: str, settings: Settings) -> str:
    """Consumer identity within the stage's group; unique per process."""
    if settings.consumer_name:
        return f"{settings.consumer_name}_{stage}"
    return f"{stage}_worker_{socket.gethostname()}_{os.getpid()}"


class StageProcessor:
    """Consume loop for one (topic, group, handler): read -> handle -> ack.

    Entries are acknowledged once the handler returns. If reading, handling
    or acknowledging raises, the in-flight entry stays unacknowledged (the
    broker redelivers it later) and the loop resumes after a fixed delay.
    """

    def __init__(
        self,
        topic: str,
        group: str,
        handler: StageHandler,
        broker: BaseStreamBroker,
        settings: Settings,
        consumer: str | None = None,
    ) -> None:
        self._topic = topic
        self._group = group
        self._handler = handler
        self._broker = broker
        self._settings = settings
        self._consumer = consumer or default_consumer_name(handler.name, settings)
        self._group_ready = False

    @property
    def name(self) -> str:
        return self._handler.name

    @property
    def consumer(self) -> str:
        return self._consumer

    def run(
        self,
        stop_event: threading.Event | None = None,
        max_entries: int | None = None,
    ) -> None:
        """Main consume loop. Runs until `stop_event` is set or interrupted.

        The stop event is checked between entries, so an in-flight handler
        always finishes. If max_entries is set, stop after handling that many
        entries (for testing).
        """
        stop_event = stop_event if stop_event is not None else threading.Event()
        label = self._handler.label
        Log.info(f"[{label}] {self._consumer} started, listening to '{self._topic}'")
        entries_done = 0
        try:
            while not stop_event.is_set():
                if max_entries is not None and entries_done >= max_entries:
                    break
                try:
                    entries_done += self._poll_once()
                except Exception as exc:
                    Log.exception(
                        f"[{label}] Error in main processing loop, will retry: {exc}"
                    )
                    stop_event.wait(self._settings.loop_retry_delay_seconds)
        except KeyboardInterrupt:
            Log.info(f"[{label}] Shutting down")
        Log.info(f"[{label}] {self._consumer} stopped")

    def _poll_once(self) -> int:
        if not self._group_ready:
            self._broker.ensure_group(self._topic, self._group)
            self._group_ready = True
        entries = self._broker.read_next(
            self._topic,
            self._group,
            self._consumer,
            max_count=1,
            block_ms=self._settings.stream_block_ms,
        )
        for entry in entries:
            self._dispatch(entry)
        return len(entries)

    def _dispatch(self, entry: StreamEntry) -> None:
        label = self._handler.label
        message = StageMessage.from_fields(entry.fields)
        if message is None:
            Log.warning(
                f"[{label}] Entry {entry.entry_id} has no documentId: {entry.fields}. "
                f"Acknowledging to avoid reprocessing"
            )
        else:
            Log.info(
                f"[{label}] Received entry {entry.entry_id} for document "
                f"{message.document_id}"
            )
            self._handler.handle(message.document_id)
        self._broker.ack(self._topic, self._group, entry.entry_id)
        Log.debug(f"[{label}] Entry {entry.entry_id} acknowledged")
