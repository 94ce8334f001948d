"""Environment-driven settings for the TailorHub backend.

The process builds one `Settings` instance at startup and passes it explicitly
into `build_services`/`create_app`; nothing reads configuration from a module
global.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "tailorhub"
    log_level: str = "INFO"
    database_url: str
    gateway_secret: str
    verification_mode: Literal["signature", "lookup", "both"] = "signature"
    push_gateway_url: str | None = None
    push_timeout_seconds: float = 5.0
    db_lock_timeout_seconds: float = 5.0
    db_pool_timeout_seconds: float = 10.0
    transition_max_retries: int = 3
    notification_max_attempts: int = 5
    notification_dispatch_interval_seconds: float = 0.5
    run_background_workers: bool = True
    create_schema: bool = False
    otel_exporter_otlp_endpoint: str | None = None
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
