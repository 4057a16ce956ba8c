"""Domain entities for the virtual database.

Exports:
    Row:
        - Row: Row ID plus column values, yielded by virtual tables
        - OrderInfo: Ordering and OFFSET pushdown claim
        - RowId: Type of row identifiers (str or int)
"""

from virtual_db.domain.entities.row import OrderInfo, Row, RowId

__all__ = [
    "OrderInfo",
    "Row",
    "RowId",
]
