"""Exception taxonomy for the virtual database.

Every error raised by the engine derives from VirtualDatabaseError, and
each one also inherits the builtin exception that best describes it, so
callers can catch ``KeyError`` for unknown tables or ``ValueError`` for
arity problems without importing this module.
"""

from __future__ import annotations

from typing import Any


class VirtualDatabaseError(Exception):
    """Base class for all virtual database errors."""


class VirtualTableException(VirtualDatabaseError, RuntimeError):
    """A virtual table violated its implementation contract.

    Raised when a table yields something other than a Row, yields a
    duplicate row ID, or yields an invalid OrderInfo.
    """

    def __init__(self, message: str, table: str = "") -> None:
        super().__init__(message)
        self.table = table

    @classmethod
    def not_row_instance(cls, table: str, row_number: int, value: Any) -> VirtualTableException:
        """Table yielded a value that is not a Row."""
        return cls(
            f"Virtual table '{table}' violated implementation contract: "
            f"row #{row_number} yielded {type(value).__name__} instead of Row. "
            "Virtual tables must yield Row instances so that UPDATE and DELETE "
            "can address rows by ID.",
            table,
        )

    @classmethod
    def duplicate_row_id(
        cls, table: str, row_number: int, row_id: str | int
    ) -> VirtualTableException:
        """Table yielded the same row ID twice in one result set."""
        return cls(
            f"Virtual table '{table}' violated implementation contract: "
            f"duplicate row ID {row_id!r} yielded at row #{row_number}. "
            "Row IDs must be unique within a result set.",
            table,
        )

    @classmethod
    def invalid_order_info(cls, table: str, reason: str) -> VirtualTableException:
        """Table yielded a malformed or inconsistent OrderInfo."""
        return cls(f"Virtual table '{table}' yielded invalid OrderInfo: {reason}", table)


class UnsupportedFeatureError(VirtualDatabaseError, NotImplementedError):
    """The query uses a SQL feature the engine does not implement."""


class ArityError(VirtualDatabaseError, ValueError):
    """A scalar was requested from a set that does not hold exactly one value."""

    @classmethod
    def for_count(cls, count: int) -> ArityError:
        if count == 0:
            return cls("Subquery returned no rows (expected exactly 1 for scalar context)")
        return cls(f"Subquery returned {count} rows (expected exactly 1 for scalar context)")


class NotSupportedError(VirtualDatabaseError, RuntimeError):
    """The table does not offer the requested capability."""

    @classmethod
    def for_operation(cls, operation: str) -> NotSupportedError:
        return cls(f"{operation.upper()} not supported for this table")


class UnsafeDMLError(VirtualDatabaseError, RuntimeError):
    """UPDATE or DELETE without a WHERE clause."""


class EvaluationError(VirtualDatabaseError, TypeError):
    """An expression node cannot be evaluated in the requested context."""


class ParseError(VirtualDatabaseError, ValueError):
    """Error during SQL parsing."""


class UnknownTableError(VirtualDatabaseError, KeyError):
    """The statement references a table that is not registered."""

    def __init__(self, table: str) -> None:
        super().__init__(table)
        self.table = table

    def __str__(self) -> str:
        return f"Table not found: {self.table}"
