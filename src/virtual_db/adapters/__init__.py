"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Inbound adapters: Handle incoming requests (SQL text, REST)
- Outbound adapters: Data sources exposed as virtual tables
"""

from virtual_db.adapters.outbound import (
    CsvTable,
    InMemoryTable,
    VirtualTable,
)

__all__ = [
    # Outbound adapters
    "CsvTable",
    "InMemoryTable",
    "VirtualTable",
]
