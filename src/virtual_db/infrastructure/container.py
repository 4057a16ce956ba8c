"""Dependency injection container for the virtual database."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import structlog
from opentelemetry import trace

from virtual_db.application import VirtualDatabase
from virtual_db.infrastructure.config import Config, get_config
from virtual_db.infrastructure.logging import setup_logging
from virtual_db.infrastructure.metrics import MetricsRegistry, get_metrics
from virtual_db.infrastructure.tracing import setup_tracing


@dataclass
class Container:
    """Process-wide components: configuration, observability and the database."""

    config: Config
    logger: structlog.stdlib.BoundLogger
    tracer: trace.Tracer
    metrics: MetricsRegistry
    database: VirtualDatabase

    _instance: ClassVar[Container | None] = None

    @classmethod
    def create(cls) -> Container:
        """Create and initialize the container with all dependencies."""
        if cls._instance is not None:
            return cls._instance

        config = get_config()
        logger = setup_logging(
            level=config.observability.log_level,
            log_format=config.observability.log_format,
        )
        tracer = setup_tracing(
            service_name=config.observability.otel_service_name,
            otlp_endpoint=config.observability.otel_endpoint,
        )
        metrics = get_metrics()
        database = VirtualDatabase.from_config(config, metrics=metrics)

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
            database=database,
        )

        logger.info(
            "virtual_db_container_initialized",
            default_collation=database.default_collator.name,
            sql_dialect=config.engine.sql_dialect,
        )

        return cls._instance

    @classmethod
    def get(cls) -> Container:
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()


def reset_container() -> None:
    """Drop the container and the cached configuration."""
    Container.reset()
    get_config.cache_clear()
