import threading
import time

from docflow.broker.base import BaseStreamBroker
from docflow.config.settings import Settings
from docflow.logging.logger import Log
from docflow.recognition.base import BaseRecognizer
from docflow.recognition.factory import RecognizerFactory
from docflow.stages import ExtractionHandler, PersistenceHandler, RecognitionHandler
from docflow.stages.base import StageHandler
from docflow.store.base import BaseRecordStore
from docflow.worker.stage_processor import StageProcessor

STAGE_NAMES = ("recognition", "extraction", "persistence")


class Pipeline:
    """Runs stage processors on threads bound to one shared stop event."""

    def __init__(self, processors: list[StageProcessor], shutdown_timeout_seconds: float) -> None:
        self._processors = processors
        self._shutdown_timeout_seconds = shutdown_timeout_seconds
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []

    @property
    def processors(self) -> list[StageProcessor]:
        return list(self._processors)

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def start(self) -> None:
        """Start one daemon thread per stage processor."""
        if self._threads:
            raise RuntimeError("Pipeline already started")
        for processor in self._processors:
            thread = threading.Thread(
                target=processor.run,
                kwargs={"stop_event": self._stop_event},
                name=processor.name,
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        Log.info(f"Pipeline started with stages: {[p.name for p in self._processors]}")

    def stop(self, timeout: float | None = None) -> bool:
        """Signal cancellation and wait for in-flight handlers to finish.

        Waits at most `timeout` seconds in total (default: the configured
        shutdown timeout). Returns True if every thread stopped in time.
        """
        self._stop_event.set()
        wait_seconds = self._shutdown_timeout_seconds if timeout is None else timeout
        deadline = time.monotonic() + wait_seconds
        for thread in self._threads:
            thread.join(max(0.0, deadline - time.monotonic()))
        still_running = [thread.name for thread in self._threads if thread.is_alive()]
        if still_running:
            Log.warning(f"Pipeline stopped with stages still running: {still_running}")
            return False
        Log.info("Pipeline stopped")
        return True

    def wait(self, poll_seconds: float = 0.5) -> None:
        """Block until the stop event is set."""
        while not self._stop_event.wait(poll_seconds):
            pass


def build_handlers(
    settings: Settings,
    store: BaseRecordStore,
    broker: BaseStreamBroker,
    recognizer: BaseRecognizer | None = None,
) -> dict[str, StageHandler]:
    """Build every stage handler, keyed by stage name."""
    recognizer = recognizer if recognizer is not None else RecognizerFactory.create(settings)
    return {
        "recognition": RecognitionHandler(store, broker, recognizer),
        "extraction": ExtractionHandler(store, broker),
        "persistence": PersistenceHandler(store, broker),
    }


def build_pipeline(
    settings: Settings,
    store: BaseRecordStore,
    broker: BaseStreamBroker,
    stages: list[str] | None = None,
    recognizer: BaseRecognizer | None = None,
) -> Pipeline:
    """Wire the selected stages (all by default) to the fixed topic chain."""
    selected = list(stages) if stages else list(STAGE_NAMES)
    unknown = [stage for stage in selected if stage not in STAGE_NAMES]
    if unknown:
        raise ValueError(f"Unknown stages {unknown}. Choose from: {list(STAGE_NAMES)}")
    handlers = build_handlers(settings, store, broker, recognizer)
    processors = [
        StageProcessor(
            handlers[stage].input_topic,
            handlers[stage].group,
            handlers[stage],
            broker,
            settings,
        )
        for stage in STAGE_NAMES
        if stage in selected
    ]
    return Pipeline(processors, settings.shutdown_timeout_seconds)
