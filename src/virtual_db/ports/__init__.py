"""Ports layer - interface definitions following Hexagonal Architecture.

Outbound ports define the contract data sources implement to be queried
by the engine (virtual tables).
"""

from virtual_db.ports.outbound import SelectResult, TableInterface

__all__ = [
    "SelectResult",
    "TableInterface",
]
