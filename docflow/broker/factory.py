from docflow.broker.base import BaseStreamBroker
from docflow.broker.memory_broker import InMemoryStreamBroker
from docflow.broker.redis_broker import RedisStreamBroker
from docflow.config.settings import Settings


class StreamBrokerFactory:
    """Creates the configured stream broker."""

    BACKENDS = ("redis", "memory")

    @classmethod
    def create(cls, settings: Settings) -> BaseStreamBroker:
        backend = settings.broker_backend.lower()
        if backend == "redis":
            return RedisStreamBroker.from_url(
                settings.redis_url, claim_min_idle_ms=settings.claim_min_idle_ms
            )
        if backend == "memory":
            return InMemoryStreamBroker(claim_min_idle_ms=settings.claim_min_idle_ms)
        raise ValueError(
            f"Unknown broker backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
