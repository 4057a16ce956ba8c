"""Virtual table port: the capability contract for data sources.

A virtual table exposes a non-SQL data source (a list, a CSV file, a
remote API, a generator) to the query engine. It supplies any subset of
four operations; the ones it does not supply raise NotSupportedError.

Contract for ``select``:
    - Optionally yield one OrderInfo, and only as the very first item.
    - Yield Row instances for every other item.
    - Row IDs are unique within one result set.
    - The statement's placeholders are already bound to literals.
    - Filtering by WHERE is optional. A table that filters and skips rows
      for OFFSET itself reports this through ``OrderInfo.skipped``.

Contract for ``update`` and ``delete``:
    - The engine passes the IDs of the rows it has already matched
      against WHERE; the table applies the change by ID only.

References:
    - SQLite virtual tables: https://www.sqlite.org/vtab.html
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Iterable
from typing import Any

from virtual_db.domain.entities import OrderInfo, Row, RowId
from virtual_db.domain.errors import NotSupportedError
from virtual_db.domain.services.collation import Collator
from virtual_db.domain.value_objects.ast import SelectStatement

SelectResult = Iterable[Row | OrderInfo]


class TableInterface(ABC):
    """Base class for virtual tables.

    Every operation is optional; the defaults raise NotSupportedError.

    Attributes:
        name: Name the table is registered under (used in diagnostics).
        collator: Collation override for queries on this table, or None to
            use the database default.
    """

    name: str = ""
    collator: Collator | None = None

    def select(self, statement: SelectStatement, collator: Collator) -> SelectResult:
        """Yield an optional OrderInfo followed by the table's rows.

        Args:
            statement: The SELECT with placeholders bound. Tables may use
                it to push down filtering, ordering or OFFSET.
            collator: The collation the query uses for comparisons.

        Returns:
            A lazy sequence of an optional leading OrderInfo and Rows.

        Raises:
            NotSupportedError: If the table cannot be read.
        """
        raise NotSupportedError.for_operation("select")

    def insert(self, row: dict[str | int, Any]) -> RowId:
        """Insert one row.

        Args:
            row: Column values keyed by column name (or by position when
                the INSERT listed no columns).

        Returns:
            The generated row ID.

        Raises:
            NotSupportedError: If the table is read-only.
        """
        raise NotSupportedError.for_operation("insert")

    def update(self, row_ids: list[RowId], changes: dict[str, Any]) -> int:
        """Apply ``changes`` to the rows with the given IDs.

        Returns:
            Number of rows updated.

        Raises:
            NotSupportedError: If the table is read-only.
        """
        raise NotSupportedError.for_operation("update")

    def delete(self, row_ids: list[RowId]) -> int:
        """Remove the rows with the given IDs.

        Returns:
            Number of rows deleted.

        Raises:
            NotSupportedError: If the table is read-only.
        """
        raise NotSupportedError.for_operation("delete")
