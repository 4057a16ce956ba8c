"""Value abstraction: one scalar or a deferred set of values.

The evaluator resolves the right-hand side of ``IN`` and scalar subqueries
to a ValueInterface. A scalar and a single-row set behave the same in
scalar context; ``get_value`` on an empty or multi-row set raises
ArityError. A LazySubquery executes its query at most once, and only when
its values are first needed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from virtual_db.domain.errors import ArityError

SubqueryExecutor = Callable[[Any], Iterable[Mapping[str, Any]]]


def parse_number(value: Any) -> int | float | None:
    """Return ``value`` as a number when it is numeric-looking, else None.

    Booleans count as 0/1. Strings are numeric when they parse as a
    decimal number after stripping surrounding whitespace. Bytes that are
    not valid UTF-8 are never numeric.
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (str, bytes)):
        if isinstance(value, bytes):
            try:
                text = value.decode()
            except UnicodeDecodeError:
                return None
        else:
            text = value
        text = text.strip()
        if not text:
            return None
        if "_" in text or text.lower().lstrip("+-") in ("inf", "infinity", "nan"):
            return None
        try:
            if any(ch in text for ch in ".eE"):
                return float(text)
            return int(text)
        except ValueError:
            return None
    return None


def loose_equals(left: Any, right: Any) -> bool:
    """SQL-style equality with numeric coercion.

    NULL equals nothing, not even NULL. Two numeric-looking values are
    compared as numbers (``'1' == 1``); anything else by string form.
    """
    if left is None or right is None:
        return False
    left_num = parse_number(left)
    right_num = parse_number(right)
    if left_num is not None and right_num is not None:
        return left_num == right_num
    return _as_text(left) == _as_text(right)


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode(errors="surrogateescape")
    return str(value)


class ValueInterface(ABC):
    """A scalar value or a set of values (e.g. a subquery result)."""

    @abstractmethod
    def contains(self, value: Any) -> bool:
        """Return True if ``value`` is loosely equal to any member."""

    @abstractmethod
    def compare_to(self, value: Any) -> int:
        """Compare the scalar value with ``value``; returns -1, 0 or 1."""

    @abstractmethod
    def get_value(self) -> Any:
        """Return the single value.

        Raises:
            ArityError: If the set does not hold exactly one value.
        """

    @abstractmethod
    def to_list(self) -> list[Any]:
        """Return all member values."""

    @abstractmethod
    def is_scalar(self) -> bool:
        """Return True for a single scalar value."""

    def __iter__(self):
        return iter(self.to_list())


def _compare(left: Any, right: Any) -> int:
    # collation imports this module
    from virtual_db.domain.services.collation import BINARY

    return BINARY.compare(left, right)


class ScalarValue(ValueInterface):
    """A single value."""

    __slots__ = ("_value",)

    def __init__(self, value: Any) -> None:
        self._value = value

    def contains(self, value: Any) -> bool:
        return loose_equals(self._value, value)

    def compare_to(self, value: Any) -> int:
        return _compare(self._value, value)

    def get_value(self) -> Any:
        return self._value

    def to_list(self) -> list[Any]:
        return [self._value]

    def is_scalar(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"ScalarValue({self._value!r})"


class ValueList(ValueInterface):
    """An already-materialized list of values, such as ``IN (1, 2, 3)``."""

    __slots__ = ("_values",)

    def __init__(self, values: Iterable[Any]) -> None:
        self._values = list(values)

    def contains(self, value: Any) -> bool:
        return any(loose_equals(value, member) for member in self._values)

    def compare_to(self, value: Any) -> int:
        return _compare(self.get_value(), value)

    def get_value(self) -> Any:
        if len(self._values) != 1:
            raise ArityError.for_count(len(self._values))
        return self._values[0]

    def to_list(self) -> list[Any]:
        return list(self._values)

    def is_scalar(self) -> bool:
        return False

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ValueList({self._values!r})"


class LazySubquery(ValueInterface):
    """A subquery that runs on first use and caches its values.

    Args:
        statement: The (bound) SELECT statement to run.
        executor: Callback that runs ``statement`` and yields result rows.
        column: Column to extract from each row; when absent from a row,
            the row's first column is used.
    """

    def __init__(self, statement: Any, executor: SubqueryExecutor, column: str = "*") -> None:
        self._statement = statement
        self._executor = executor
        self._column = column
        self._values: list[Any] | None = None

    @property
    def is_materialized(self) -> bool:
        return self._values is not None

    def _materialize(self) -> list[Any]:
        if self._values is None:
            values = []
            for row in self._executor(self._statement):
                values.append(self._extract(row))
            self._values = values
        return self._values

    def _extract(self, row: Mapping[str, Any]) -> Any:
        if self._column != "*" and self._column in row:
            return row[self._column]
        for value in row.values():
            return value
        return None

    def contains(self, value: Any) -> bool:
        return any(loose_equals(value, member) for member in self._materialize())

    def compare_to(self, value: Any) -> int:
        return _compare(self.get_value(), value)

    def get_value(self) -> Any:
        values = self._materialize()
        if len(values) != 1:
            raise ArityError.for_count(len(values))
        return values[0]

    def to_list(self) -> list[Any]:
        return list(self._materialize())

    def is_scalar(self) -> bool:
        return False

    def __repr__(self) -> str:
        state = "materialized" if self.is_materialized else "pending"
        return f"LazySubquery(column={self._column!r}, {state})"
