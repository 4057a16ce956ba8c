"""Unit tests for the value abstraction."""

from __future__ import annotations

import pytest

from virtual_db.domain.errors import ArityError
from virtual_db.domain.value_objects import (
    LazySubquery,
    ScalarValue,
    SelectStatement,
    ValueList,
    loose_equals,
    parse_number,
)


@pytest.mark.unit
class TestParseNumber:
    """Tests for numeric coercion."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (5, 5),
            (2.5, 2.5),
            (True, 1),
            ("42", 42),
            (" -7 ", -7),
            ("3.14", 3.14),
            ("1e3", 1000.0),
            (b"12", 12),
        ],
    )
    def test_numeric_values(self, value, expected) -> None:
        """Numbers and numeric-looking strings become numbers."""
        assert parse_number(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "12abc", "1_000", "nan", "inf", b"\xff1", [1]])
    def test_non_numeric_values(self, value) -> None:
        """Anything else is not a number."""
        assert parse_number(value) is None

    def test_integer_strings_stay_integers(self) -> None:
        """Integer text does not turn into a float."""
        assert isinstance(parse_number("10"), int)


@pytest.mark.unit
class TestLooseEquals:
    """Tests for SQL-style equality."""

    def test_numeric_coercion(self) -> None:
        assert loose_equals("1", 1)
        assert loose_equals(1.0, "1")

    def test_string_comparison(self) -> None:
        assert loose_equals("abc", "abc")
        assert not loose_equals("abc", "ABC")

    def test_invalid_utf8_bytes_compare_raw(self) -> None:
        assert loose_equals(b"\xff", b"\xff")
        assert not loose_equals(b"\xff", b"\xfe")
        assert not loose_equals(b"\xff", "a")

    def test_null_never_equal(self) -> None:
        assert not loose_equals(None, None)
        assert not loose_equals(None, 0)


@pytest.mark.unit
class TestScalarAndList:
    """Tests for ScalarValue and ValueList."""

    @pytest.mark.parametrize("value", [0, 1, "x", "10", 2.5, ""])
    def test_scalar_matches_single_element_list(self, value) -> None:
        """A scalar behaves like a one-element list."""
        scalar = ScalarValue(value)
        single = ValueList([value])

        assert scalar.contains(value)
        assert scalar.contains(value) == single.contains(value)
        assert scalar.get_value() == single.get_value()

    def test_scalar_properties(self) -> None:
        scalar = ScalarValue(3)
        assert scalar.is_scalar()
        assert scalar.to_list() == [3]
        assert list(scalar) == [3]
        assert scalar.compare_to(5) < 0

    def test_list_contains_with_coercion(self) -> None:
        """Membership uses loose equality."""
        values = ValueList([1, 2, "3"])
        assert values.contains("2")
        assert values.contains(3)
        assert not values.contains(4)
        assert not values.is_scalar()

    def test_get_value_requires_one_element(self) -> None:
        """Scalar context on empty or multi-valued lists raises ArityError."""
        with pytest.raises(ArityError, match="no rows"):
            ValueList([]).get_value()
        with pytest.raises(ArityError, match="returned 2 rows"):
            ValueList([1, 2]).get_value()


@pytest.mark.unit
class TestLazySubquery:
    """Tests for deferred subquery values."""

    @pytest.fixture
    def calls(self) -> list[SelectStatement]:
        return []

    @pytest.fixture
    def lazy(self, calls: list[SelectStatement]) -> LazySubquery:
        statement = SelectStatement(table="orders")

        def executor(stmt: SelectStatement):
            calls.append(stmt)
            yield {"user_id": 1, "status": "active"}
            yield {"user_id": 3, "status": "active"}

        return LazySubquery(statement, executor, column="user_id")

    def test_not_executed_until_used(self, lazy: LazySubquery, calls: list) -> None:
        """Creating the value runs nothing."""
        assert not lazy.is_materialized
        assert calls == []

    def test_executes_at_most_once(self, lazy: LazySubquery, calls: list) -> None:
        """Repeated use reuses the cached rows."""
        assert lazy.contains(1)
        assert lazy.contains("3")
        assert not lazy.contains(2)
        assert lazy.to_list() == [1, 3]

        assert len(calls) == 1
        assert lazy.is_materialized

    def test_scalar_context_on_multiple_rows(self, lazy: LazySubquery) -> None:
        with pytest.raises(ArityError):
            lazy.get_value()

    def test_missing_column_uses_first_value(self) -> None:
        """Rows without the named column contribute their first value."""
        lazy = LazySubquery(None, lambda stmt: [{"total": 7}], column="user_id")
        assert lazy.get_value() == 7
        assert lazy.compare_to(7) == 0
