from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool

from docflow.config.settings import Settings


class Database:
    """Owns the PostgreSQL connection pool shared by the record store."""

    def __init__(self, settings: Settings) -> None:
        self._conninfo = (
            f"host={settings.db_host} "
            f"port={settings.db_port} "
            f"dbname={settings.db_database} "
            f"user={settings.db_username} "
            f"password={settings.db_password}"
        )
        self._min_size = settings.db_pool_min_size
        self._max_size = settings.db_pool_max_size
        self._connect_timeout = settings.db_connect_timeout_seconds
        self._pool: ConnectionPool | None = None

    def open(self) -> None:
        """Open the connection pool and wait until it holds `min_size` connections.

        Raises:
            psycopg_pool.PoolTimeout: if the database is not reachable within
                `db_connect_timeout_seconds`.
        """
        if self._pool is None:
            pool = ConnectionPool(
                self._conninfo,
                min_size=self._min_size,
                max_size=self._max_size,
                open=True,
            )
            try:
                pool.wait(timeout=self._connect_timeout)
            except Exception:
                pool.close()
                raise
            self._pool = pool

    def close(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a connection from the pool. Caller manages commit/rollback."""
        if self._pool is None:
            raise RuntimeError("Connection pool not initialized. Call open() first.")
        with self._pool.connection() as conn:
            yield conn
