"""Application layer for the virtual database.

The application layer orchestrates domain logic to fulfill use cases:
running SELECT statements against virtual tables and dispatching DML.

Exports:
    VirtualDatabase:
        - VirtualDatabase: Table registry and SQL entry point
    Select execution:
        - SelectExecutor: Streams or materializes one SELECT
        - SelectPlan: Strategy decision for one execution
        - Strategy: STREAM or MATERIALIZE
"""

from virtual_db.application.select_executor import SelectExecutor, SelectPlan, Strategy
from virtual_db.application.virtual_database import VirtualDatabase

__all__ = [
    "VirtualDatabase",
    "SelectExecutor",
    "SelectPlan",
    "Strategy",
]
