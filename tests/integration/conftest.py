import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest
import redis

from docflow.broker.redis_broker import RedisStreamBroker
from docflow.config.settings import Settings
from docflow.database.connection import Database
from docflow.database.schema import apply_schema
from docflow.stages import topics
from docflow.store.postgres_store import PostgresRecordStore


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docflow_test")
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
    return Settings(
        db_connect_timeout_seconds=3,
        consumer_name="integration",
        stream_block_ms=100,
        claim_min_idle_ms=0,
        loop_retry_delay_seconds=0.1,
        shutdown_timeout_seconds=5,
        recognition_delay_seconds=0,
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_database(test_settings: Settings) -> Generator[Database, None, None]:
    database = Database(test_settings)
    try:
        database.open()
        apply_schema(database)
    except Exception as e:
        database.close()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def db_conn(
    integration_database: Database,
) -> Generator[psycopg.Connection[Any], None, None]:
    with integration_database.connection() as conn:
        yield conn


@pytest.fixture
def record_store(integration_database: Database) -> PostgresRecordStore:
    return PostgresRecordStore(integration_database)


@pytest.fixture
def integration_cleanup(
    integration_database: Database,
) -> Generator[list[str], None, None]:
    """Collects document ids created by a test and deletes them afterwards."""
    cleanup: list[str] = []
    yield cleanup
    if not cleanup:
        return
    with integration_database.connection() as conn:
        with conn.cursor() as cur:
            for document_id in cleanup:
                cur.execute(
                    "DELETE FROM document_payloads WHERE document_id = %s",
                    (document_id,),
                )
                cur.execute("DELETE FROM documents WHERE id = %s", (document_id,))
        conn.commit()


@pytest.fixture(scope="session")
def redis_client(test_settings: Settings) -> Generator[redis.Redis, None, None]:
    client = redis.Redis.from_url(test_settings.redis_url, decode_responses=True)
    try:
        client.ping()
    except redis.RedisError as e:
        client.close()
        pytest.skip(f"Redis not available: {e}. Set REDIS_URL to run.")
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def stream_broker(redis_client: redis.Redis) -> RedisStreamBroker:
    return RedisStreamBroker(redis_client, claim_min_idle_ms=0)


@pytest.fixture
def topic(redis_client: redis.Redis) -> Generator[str, None, None]:
    """A throwaway stream key, deleted after the test."""
    name = f"test_stream_{uuid.uuid4().hex}"
    yield name
    redis_client.delete(name)


@pytest.fixture
def pipeline_topics(redis_client: redis.Redis) -> Generator[None, None, None]:
    """Removes the pipeline's fixed streams before and after the test."""
    keys = [
        topics.DOCUMENT_QUEUE,
        topics.OCR_RESULT_QUEUE,
        topics.VALIDATION_QUEUE,
        *topics.DEAD_LETTER_TOPICS.values(),
    ]
    redis_client.delete(*keys)
    yield
    redis_client.delete(*keys)
