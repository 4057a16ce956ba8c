"""Result items yielded by virtual tables.

A table's ``select`` yields an optional leading OrderInfo followed by
Row instances. The row ID is what UPDATE and DELETE use to address rows
after the engine has evaluated WHERE, so it must be unique within one
result set.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

RowId = str | int


@dataclass(frozen=True, slots=True)
class Row:
    """A single row: its stable ID plus column values."""

    id: RowId
    columns: Mapping[str, Any] = field(default_factory=dict)

    def get(self, column: str, default: Any = None) -> Any:
        """Return a column value, or ``default`` when the column is absent."""
        return self.columns.get(column, default)

    def __contains__(self, column: object) -> bool:
        return column in self.columns


@dataclass(frozen=True, slots=True)
class OrderInfo:
    """Ordering claim a table may yield before its rows.

    Attributes:
        column: Physical column the rows are sorted by.
        desc: True when sorted in descending order.
        skipped: Number of matching rows the table already skipped for
            OFFSET. ``None`` means the table neither evaluated WHERE nor
            skipped anything; an integer means the table filtered by WHERE
            itself and the engine only skips the remaining offset.
        collation: Collation name the table sorted with. ``None`` means the
            collation the engine passed to ``select``.
    """

    column: str
    desc: bool = False
    skipped: int | None = None
    collation: str | None = None

    def validation_error(self) -> str | None:
        """Return a description of what is wrong with this claim, if anything."""
        if not isinstance(self.column, str) or not self.column:
            return "column must be a non-empty string"
        if self.skipped is not None:
            if isinstance(self.skipped, bool) or not isinstance(self.skipped, int):
                return f"skipped must be an integer or None, got {type(self.skipped).__name__}"
            if self.skipped < 0:
                return f"skipped must not be negative, got {self.skipped}"
        return None
