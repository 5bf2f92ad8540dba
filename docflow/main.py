import argparse
import json
import signal
import sys
from collections.abc import Callable
from pathlib import Path
from types import FrameType

from docflow.broker.base import BaseStreamBroker
from docflow.broker.factory import StreamBrokerFactory
from docflow.broker.messages import DeadLetterMessage
from docflow.config.settings import Settings
from docflow.database.connection import Database
from docflow.database.schema import apply_schema
from docflow.ingest.ingestor import DocumentIngestor
from docflow.logging.logger import Log
from docflow.stages import topics
from docflow.store.base import BaseRecordStore
from docflow.store.factory import RecordStoreFactory
from docflow.worker.pipeline import STAGE_NAMES, Pipeline, build_pipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docflow")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run pipeline stages until interrupted")
    run.add_argument(
        "stages",
        nargs="*",
        metavar="STAGE",
        help=f"stages to run (default: all of {', '.join(STAGE_NAMES)})",
    )

    submit = sub.add_parser("submit", help="ingest a file into the pipeline")
    submit.add_argument("path", type=Path)

    show = sub.add_parser("show", help="print a document record as JSON")
    show.add_argument("document_id")

    dead = sub.add_parser("dead-letters", help="print dead-letter entries as JSON lines")
    dead.add_argument("--stage", choices=sorted(topics.DEAD_LETTER_TOPICS))
    dead.add_argument("--count", type=int, default=None)
    return parser


def run_stages(
    args: argparse.Namespace,
    settings: Settings,
    store: BaseRecordStore,
    broker: BaseStreamBroker,
) -> int:
    try:
        pipeline = build_pipeline(settings, store, broker, stages=args.stages)
    except ValueError as exc:
        Log.error(str(exc))
        return 2
    _install_signal_handlers(pipeline)
    pipeline.start()
    pipeline.wait()
    return 0 if pipeline.stop() else 1


def submit_document(
    args: argparse.Namespace,
    settings: Settings,
    store: BaseRecordStore,
    broker: BaseStreamBroker,
) -> int:
    path: Path = args.path
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 1
    record = DocumentIngestor(store, broker).ingest(path.name, path.read_bytes())
    print(json.dumps({"documentId": record.id, "status": record.status.value}))
    return 0


def show_document(
    args: argparse.Namespace,
    settings: Settings,
    store: BaseRecordStore,
    broker: BaseStreamBroker,
) -> int:
    projection = DocumentIngestor(store, broker).project(args.document_id)
    if projection is None:
        print(f"Document {args.document_id} not found", file=sys.stderr)
        return 1
    print(json.dumps(projection, indent=2))
    return 0


def list_dead_letters(
    args: argparse.Namespace,
    settings: Settings,
    store: BaseRecordStore,
    broker: BaseStreamBroker,
) -> int:
    stages = [args.stage] if args.stage else sorted(topics.DEAD_LETTER_TOPICS)
    for stage in stages:
        topic = topics.DEAD_LETTER_TOPICS[stage]
        for entry in broker.entries(topic, count=args.count):
            message = DeadLetterMessage.from_fields(entry.fields)
            print(
                json.dumps(
                    {
                        "topic": topic,
                        "entryId": entry.entry_id,
                        "documentId": message.document_id,
                        "stage": message.stage,
                        "error": message.error,
                    }
                )
            )
    return 0


COMMANDS: dict[
    str,
    Callable[[argparse.Namespace, Settings, BaseRecordStore, BaseStreamBroker], int],
] = {
    "run": run_stages,
    "submit": submit_document,
    "show": show_document,
    "dead-letters": list_dead_letters,
}


def _install_signal_handlers(pipeline: Pipeline) -> None:
    def _handle_signal(signum: int, frame: FrameType | None) -> None:
        Log.info(f"Received signal {signum}, shutting down")
        pipeline.stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)


def main(argv: list[str] | None = None) -> int:
    """Entry point: load settings -> open backends -> dispatch the command."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    database: Database | None = None
    broker: BaseStreamBroker | None = None
    try:
        if settings.store_backend.lower() == "postgres":
            database = Database(settings)
            database.open()
            apply_schema(database)
        broker = StreamBrokerFactory.create(settings)
        store = RecordStoreFactory.create(settings, database)
        return COMMANDS[args.command](args, settings, store, broker)
    finally:
        if broker is not None:
            broker.close()
        if database is not None:
            database.close()


if __name__ == "__main__":
    sys.exit(main())
