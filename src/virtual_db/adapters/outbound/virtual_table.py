"""Callable-backed virtual table.

Wraps up to four plain functions as a table, which is the quickest way
to expose a generator, an API client or a file to the engine:

    def select_users(statement, collator):
        yield OrderInfo(column="id")
        for user in api.list_users(sort="id"):
            yield Row(user["id"], user)

    db.register_table("users", VirtualTable(select=select_users))
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from virtual_db.domain.entities import RowId
from virtual_db.domain.errors import NotSupportedError
from virtual_db.domain.services.collation import Collator
from virtual_db.domain.value_objects.ast import SelectStatement
from virtual_db.ports.outbound.virtual_table import SelectResult, TableInterface

SelectFn = Callable[[SelectStatement, Collator], SelectResult]
InsertFn = Callable[[dict[Any, Any]], RowId]
UpdateFn = Callable[[list[RowId], dict[str, Any]], int]
DeleteFn = Callable[[list[RowId]], int]


class VirtualTable(TableInterface):
    """A table whose operations are supplied as callables.

    Args:
        select: ``(statement, collator) -> iterable of OrderInfo/Row``.
        insert: ``(row) -> row id``.
        update: ``(row_ids, changes) -> affected count``.
        delete: ``(row_ids) -> affected count``.
        collator: Collation override for queries on this table.
    """

    def __init__(
        self,
        select: SelectFn | None = None,
        insert: InsertFn | None = None,
        update: UpdateFn | None = None,
        delete: DeleteFn | None = None,
        collator: Collator | None = None,
    ) -> None:
        self._select_fn = select
        self._insert_fn = insert
        self._update_fn = update
        self._delete_fn = delete
        self.collator = collator

    def supports(self, operation: str) -> bool:
        """Return True if a callable was supplied for ``operation``."""
        return getattr(self, f"_{operation.lower()}_fn", None) is not None

    def select(self, statement: SelectStatement, collator: Collator) -> SelectResult:
        if self._select_fn is None:
            raise NotSupportedError.for_operation("select")
        return self._select_fn(statement, collator)

    def insert(self, row: dict[Any, Any]) -> RowId:
        if self._insert_fn is None:
            raise NotSupportedError.for_operation("insert")
        return self._insert_fn(row)

    def update(self, row_ids: list[RowId], changes: dict[str, Any]) -> int:
        if self._update_fn is None:
            raise NotSupportedError.for_operation("update")
        return self._update_fn(row_ids, changes)

    def delete(self, row_ids: list[RowId]) -> int:
        if self._delete_fn is None:
            raise NotSupportedError.for_operation("delete")
        return self._delete_fn(row_ids)
