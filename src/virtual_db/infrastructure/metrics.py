"""Prometheus metrics for the virtual database."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all virtual database metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Statement metrics
        self.queries_total = Counter(
            "vdb_queries_total",
            "Total number of statements executed",
            ["statement", "status"],  # statement: select, insert, update, delete
            registry=self._registry,
        )

        self.query_latency_seconds = Histogram(
            "vdb_query_latency_seconds",
            "Statement latency in seconds (SELECT: until the result is exhausted)",
            ["statement"],
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self._registry,
        )

        # Planner metrics
        self.select_strategy_total = Counter(
            "vdb_select_strategy_total",
            "SELECT executions by strategy",
            ["strategy"],  # stream, materialize
            registry=self._registry,
        )

        self.rows_scanned_total = Counter(
            "vdb_rows_scanned_total",
            "Rows pulled from virtual tables",
            ["table"],
            registry=self._registry,
        )

        self.contract_violations_total = Counter(
            "vdb_contract_violations_total",
            "Virtual table contract violations",
            ["table"],
            registry=self._registry,
        )

        # DML metrics
        self.dml_rows_affected_total = Counter(
            "vdb_dml_rows_affected_total",
            "Rows affected by INSERT, UPDATE and DELETE",
            ["statement"],
            registry=self._registry,
        )

        # Server info
        self.info = Info(
            "virtual_db",
            "Virtual database information",
            registry=self._registry,
        )


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from virtual_db import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
