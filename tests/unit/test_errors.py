"""Unit tests for the error taxonomy."""

from __future__ import annotations

import pytest

from virtual_db.domain.errors import (
    ArityError,
    EvaluationError,
    NotSupportedError,
    ParseError,
    UnknownTableError,
    UnsafeDMLError,
    UnsupportedFeatureError,
    VirtualDatabaseError,
    VirtualTableException,
)


@pytest.mark.unit
class TestErrorHierarchy:
    """Every error is a VirtualDatabaseError and a matching builtin."""

    @pytest.mark.parametrize(
        "error, builtin",
        [
            (VirtualTableException("x"), RuntimeError),
            (UnsupportedFeatureError("x"), NotImplementedError),
            (ArityError("x"), ValueError),
            (NotSupportedError("x"), RuntimeError),
            (UnsafeDMLError("x"), RuntimeError),
            (EvaluationError("x"), TypeError),
            (ParseError("x"), ValueError),
            (UnknownTableError("x"), KeyError),
        ],
    )
    def test_bases(self, error: Exception, builtin: type) -> None:
        assert isinstance(error, VirtualDatabaseError)
        assert isinstance(error, builtin)


@pytest.mark.unit
class TestErrorMessages:
    """Tests for the error constructors."""

    def test_not_row_instance(self) -> None:
        error = VirtualTableException.not_row_instance("users", 3, [1, 2])

        assert "Virtual table 'users'" in str(error)
        assert "row #3 yielded list instead of Row" in str(error)
        assert error.table == "users"

    def test_duplicate_row_id(self) -> None:
        error = VirtualTableException.duplicate_row_id("users", 4, "abc")

        assert "duplicate row ID 'abc' yielded at row #4" in str(error)

    def test_invalid_order_info(self) -> None:
        error = VirtualTableException.invalid_order_info("users", "bad column")

        assert str(error) == "Virtual table 'users' yielded invalid OrderInfo: bad column"

    def test_arity(self) -> None:
        assert "no rows" in str(ArityError.for_count(0))
        assert "returned 3 rows" in str(ArityError.for_count(3))

    def test_not_supported(self) -> None:
        assert str(NotSupportedError.for_operation("delete")) == "DELETE not supported for this table"

    def test_unknown_table(self) -> None:
        error = UnknownTableError("ghosts")

        assert str(error) == "Table not found: ghosts"
        assert error.table == "ghosts"
