"""Outbound adapters - implementations of the virtual table port.

These adapters expose concrete data sources to the query engine:
callables, in-memory collections and CSV files.
"""

from virtual_db.adapters.outbound.csv_table import CsvTable
from virtual_db.adapters.outbound.memory_table import InMemoryTable
from virtual_db.adapters.outbound.virtual_table import VirtualTable

__all__ = [
    "CsvTable",
    "InMemoryTable",
    "VirtualTable",
]
