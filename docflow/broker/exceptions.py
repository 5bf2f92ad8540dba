class BrokerError(Exception):
    """Base exception for stream broker errors raised by docflow itself."""


class ConsumerGroupNotFoundError(BrokerError):
    """Raised when reading through a consumer group that was never created."""
