"""Configuration management for the virtual database."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseModel):
    """Query engine configuration."""

    default_collation: str = Field(
        default="BINARY", description="Collation for tables without their own (BINARY, NOCASE, RTRIM or a locale)"
    )
    require_where_for_dml: bool = Field(
        default=True, description="Reject UPDATE and DELETE statements without a WHERE clause"
    )
    sql_dialect: str = Field(default="sqlite", description="sqlglot dialect used to parse SQL")

    @field_validator("default_collation")
    @classmethod
    def _collation_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("default_collation must not be empty")
        return value.strip()


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="HTTP API port")
    metrics_port: int = Field(default=8001, ge=1, le=65535, description="Prometheus metrics port")


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="virtual_db", description="Service name for tracing")


class Config(BaseSettings):
    """Main configuration for the virtual database."""

    model_config = SettingsConfigDict(
        env_prefix="VIRTUAL_DB_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    engine: EngineConfig = Field(default_factory=EngineConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
