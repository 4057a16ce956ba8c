"""Pytest configuration and fixtures for virtual_db tests."""

from __future__ import annotations

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from virtual_db.adapters.outbound import InMemoryTable
from virtual_db.application import VirtualDatabase
from virtual_db.infrastructure.config import Config, EngineConfig
from virtual_db.infrastructure.container import reset_container
from virtual_db.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration."""
    return Config(engine=EngineConfig(default_collation="NOCASE"))


@pytest.fixture
def clean_container() -> Generator[None, None, None]:
    """Reset the global DI container around a test."""
    reset_container()
    yield
    reset_container()


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def users_table() -> InMemoryTable:
    """Three users with mixed-case names and no declared order."""
    return InMemoryTable({
        1: {"id": 1, "name": "Bob", "age": 25},
        2: {"id": 2, "name": "alice", "age": 30},
        3: {"id": 3, "name": "Carol", "age": 17},
    })


@pytest.fixture
def orders_table() -> InMemoryTable:
    return InMemoryTable([
        {"order_id": 10, "user_id": 1, "status": "active", "total": 50},
        {"order_id": 11, "user_id": 2, "status": "cancelled", "total": 20},
        {"order_id": 12, "user_id": 1, "status": "active", "total": 5},
    ])


@pytest.fixture
def db(
    users_table: InMemoryTable,
    orders_table: InMemoryTable,
    metrics_registry: MetricsRegistry,
) -> VirtualDatabase:
    """A database with ``users`` and ``orders`` registered."""
    database = VirtualDatabase(metrics=metrics_registry)
    database.register_table("users", users_table)
    database.register_table("orders", orders_table)
    return database


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
