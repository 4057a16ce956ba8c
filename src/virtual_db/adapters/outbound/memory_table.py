"""In-memory read-write table.

Rows live in a dict keyed by row ID. When constructed with ``sorted_by``
the table keeps its output ordered by that column (using the collator
the engine passes to ``select``) and announces it with an OrderInfo, so
queries ordering by the same column stream instead of materializing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from virtual_db.domain.entities import OrderInfo, Row, RowId
from virtual_db.domain.services.collation import Collator
from virtual_db.domain.value_objects.ast import SelectStatement
from virtual_db.ports.outbound.virtual_table import SelectResult, TableInterface

logger = logging.getLogger(__name__)


class InMemoryTable(TableInterface):
    """A mutable table held in a dict.

    Args:
        rows: Initial rows, either a mapping of row ID to columns or a
            sequence of column mappings (IDs are then 0, 1, 2, ...).
        sorted_by: Column to keep output sorted by, announced via OrderInfo.
        desc: Sort descending when ``sorted_by`` is set.
        collator: Collation override for queries on this table.

    Example:
        >>> table = InMemoryTable([{"name": "Bob"}, {"name": "alice"}], sorted_by="name")
        >>> db.register_table("users", table)
    """

    def __init__(
        self,
        rows: Mapping[RowId, Mapping[str, Any]] | list[Mapping[str, Any]] | None = None,
        sorted_by: str | None = None,
        desc: bool = False,
        collator: Collator | None = None,
    ) -> None:
        self._rows: dict[RowId, dict[str, Any]] = {}
        if isinstance(rows, Mapping):
            for row_id, columns in rows.items():
                self._rows[row_id] = dict(columns)
        elif rows is not None:
            for row_id, columns in enumerate(rows):
                self._rows[row_id] = dict(columns)

        self._sorted_by = sorted_by
        self._desc = desc
        self.collator = collator
        self._next_id = self._initial_next_id()

    def _initial_next_id(self) -> int:
        int_ids = [row_id for row_id in self._rows if isinstance(row_id, int)]
        return max(int_ids) + 1 if int_ids else 0

    def __len__(self) -> int:
        return len(self._rows)

    def rows(self) -> dict[RowId, dict[str, Any]]:
        """Return a copy of the stored rows keyed by row ID."""
        return {row_id: dict(columns) for row_id, columns in self._rows.items()}

    def select(self, statement: SelectStatement, collator: Collator) -> SelectResult:
        return self._scan(collator)

    def _scan(self, collator: Collator) -> Iterator[Row | OrderInfo]:
        items = list(self._rows.items())
        if self._sorted_by is not None:
            column = self._sorted_by
            items.sort(key=lambda item: collator.sort_key(item[1].get(column)), reverse=self._desc)
            yield OrderInfo(column=column, desc=self._desc, collation=collator.name)
        for row_id, columns in items:
            yield Row(row_id, dict(columns))

    def insert(self, row: dict[Any, Any]) -> RowId:
        row_id: RowId = self._next_id
        while row_id in self._rows:
            row_id += 1
        self._rows[row_id] = dict(row)
        self._next_id = row_id + 1
        logger.debug(f"Inserted row {row_id}")
        return row_id

    def update(self, row_ids: list[RowId], changes: dict[str, Any]) -> int:
        affected = 0
        for row_id in row_ids:
            if row_id in self._rows:
                self._rows[row_id].update(changes)
                affected += 1
        return affected

    def delete(self, row_ids: list[RowId]) -> int:
        affected = 0
        for row_id in row_ids:
            if self._rows.pop(row_id, None) is not None:
                affected += 1
        return affected
