from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "docflow"
    db_username: str = "docflow"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10
    db_connect_timeout_seconds: float = 10.0

    redis_url: str = "redis://localhost:6379"

    store_backend: str = "postgres"
    broker_backend: str = "redis"

    consumer_name: str = ""
    stream_block_ms: int = 5000
    claim_min_idle_ms: int = 60000
    loop_retry_delay_seconds: float = 5.0
    shutdown_timeout_seconds: float = 30.0

    recognition_engine: str = "simulated"
    recognition_delay_seconds: float = 0.5
