from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TIERCACHE_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "tiercache"
    env: str = "dev"

    # Shared tier (Redis)
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "redis_url"),
    )
    redis_enabled: bool = True
    redis_connect_timeout: float = Field(default=5.0, gt=0)
    # Applied per command so a partitioned Redis cannot stall every get()
    redis_operation_timeout: float = Field(default=1.0, gt=0)
    redis_reconnect_interval: float = Field(default=30.0, ge=0)

    # Local tier
    local_max_entries: int = Field(default=10_000, ge=0)  # 0 = unbounded
    cleanup_interval: float = Field(default=60.0, ge=0)  # 0 = no background sweep

    # Default TTLs (seconds)
    memory_ttl: float = Field(default=300.0, gt=0)  # 5 minutes
    shared_ttl: float = Field(default=3600.0, gt=0)  # 1 hour
    edge_ttl: float = Field(default=86400.0, gt=0)  # 24 hours

    # Single-flight
    coalesce_timeout: float = Field(default=30.0, gt=0)

    # Observability
    enable_metrics: bool = True
    log_level: str = "INFO"
    log_json: bool = False


settings = Settings()
