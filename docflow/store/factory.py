from docflow.config.settings import Settings
from docflow.database.connection import Database
from docflow.store.base import BaseRecordStore
from docflow.store.memory_store import InMemoryRecordStore
from docflow.store.postgres_store import PostgresRecordStore


class RecordStoreFactory:
    """Creates the configured record store."""

    BACKENDS = ("postgres", "memory")

    @classmethod
    def create(cls, settings: Settings, database: Database | None = None) -> BaseRecordStore:
        backend = settings.store_backend.lower()
        if backend == "memory":
            return InMemoryRecordStore()
        if backend == "postgres":
            if database is None:
                raise ValueError("store_backend=postgres requires an open Database")
            return PostgresRecordStore(database)
        raise ValueError(
            f"Unknown store backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
