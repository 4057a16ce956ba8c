"""Unit tests for SQL Parser."""

from __future__ import annotations

import pytest

from virtual_db.adapters.inbound import SQLParser
from virtual_db.domain.errors import ParseError, UnsupportedFeatureError
from virtual_db.domain.value_objects import (
    BinaryOp,
    BinaryOperator,
    DeleteStatement,
    FunctionCall,
    Identifier,
    InOp,
    InsertStatement,
    IsNullOp,
    LikeOp,
    Literal,
    Placeholder,
    SelectStatement,
    Star,
    Subquery,
    UnaryOp,
    UnaryOperator,
    UpdateStatement,
    bind_parameters,
    has_placeholders,
)


@pytest.fixture
def parser() -> SQLParser:
    """Create a SQL parser for testing."""
    return SQLParser()


@pytest.mark.unit
class TestSQLParserSelect:
    """Tests for SELECT statement parsing."""

    def test_select_star(self, parser: SQLParser) -> None:
        """Parse SELECT *."""
        stmt = parser.parse("SELECT * FROM users")

        assert isinstance(stmt, SelectStatement)
        assert stmt.table == "users"
        assert len(stmt.columns) == 1
        assert stmt.columns[0].is_star
        assert stmt.where is None

    def test_select_columns_and_aliases(self, parser: SQLParser) -> None:
        """Result labels are the alias, else the column name, else the SQL text."""
        stmt = parser.parse("SELECT id, users.name, age AS years, age + 1 FROM users")

        labels = [col.label for col in stmt.columns]
        assert labels[:3] == ["id", "name", "years"]
        assert stmt.columns[2].alias == "years"
        assert isinstance(stmt.columns[3].expression, BinaryOp)
        assert stmt.columns[1].expression == Identifier("users.name")

    def test_select_with_where(self, parser: SQLParser) -> None:
        """Parse SELECT with WHERE clause."""
        stmt = parser.parse("SELECT id FROM users WHERE age > 18 AND name = 'John'")

        assert stmt.where == BinaryOp(
            BinaryOperator.AND,
            BinaryOp(BinaryOperator.GT, Identifier("age"), Literal(18)),
            BinaryOp(BinaryOperator.EQ, Identifier("name"), Literal("John")),
        )

    def test_order_limit_offset(self, parser: SQLParser) -> None:
        """Parse ORDER BY, LIMIT and OFFSET."""
        stmt = parser.parse("SELECT * FROM users ORDER BY name DESC, id LIMIT 10 OFFSET 5")

        assert [(str(t.expression), t.desc) for t in stmt.order_by] == [("name", True), ("id", False)]
        assert stmt.limit == Literal(10)
        assert stmt.offset == Literal(5)

    def test_sqlite_limit_offset_form(self, parser: SQLParser) -> None:
        """``LIMIT offset, count``."""
        stmt = parser.parse("SELECT * FROM users LIMIT 5, 10")

        assert stmt.limit == Literal(10)
        assert stmt.offset == Literal(5)

    def test_placeholders_numbered_in_source_order(self, parser: SQLParser) -> None:
        """Positional markers get ordinals in the order they appear."""
        stmt = parser.parse("SELECT * FROM users WHERE a = ? OR b = ? LIMIT ?")

        assert stmt.where.left.right == Placeholder(index=0)
        assert stmt.where.right.right == Placeholder(index=1)
        assert stmt.limit == Placeholder(index=2)

    def test_named_placeholder(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT * FROM users WHERE name = :name")

        assert stmt.where.right == Placeholder(name="name")

    def test_operators(self, parser: SQLParser) -> None:
        """IN, IS NULL, LIKE and NOT forms map to their nodes."""
        stmt = parser.parse(
            "SELECT * FROM t WHERE a IN (1, 2) AND b NOT IN (3) AND c IS NOT NULL "
            "AND d NOT LIKE 'x%' AND NOT e = 1"
        )
        nodes = []
        node = stmt.where
        while isinstance(node, BinaryOp) and node.op is BinaryOperator.AND:
            nodes.append(node.right)
            node = node.left
        nodes.append(node)
        nodes.reverse()

        assert nodes[0] == InOp(Identifier("a"), values=(Literal(1), Literal(2)))
        assert nodes[1] == InOp(Identifier("b"), values=(Literal(3),), negated=True)
        assert nodes[2] == IsNullOp(Identifier("c"), negated=True)
        assert nodes[3] == LikeOp(Identifier("d"), Literal("x%"), negated=True)
        assert isinstance(nodes[4], UnaryOp) and nodes[4].op is UnaryOperator.NOT

    def test_in_subquery(self, parser: SQLParser) -> None:
        stmt = parser.parse(
            "SELECT * FROM users WHERE id IN (SELECT user_id FROM orders WHERE status = ?)"
        )

        assert isinstance(stmt.where, InOp)
        assert isinstance(stmt.where.subquery, Subquery)
        inner = stmt.where.subquery.statement
        assert inner.table == "orders"
        assert inner.where.right == Placeholder(index=0)

    def test_negative_literal(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT * FROM t WHERE a > -5")

        assert stmt.where.right == Literal(-5)

    def test_function_call(self, parser: SQLParser) -> None:
        """Function calls are parsed so they can be reported later."""
        stmt = parser.parse("SELECT * FROM t WHERE UPPER(name) = 'X'")

        assert isinstance(stmt.where.left, FunctionCall)
        assert stmt.where.left.name == "UPPER"


@pytest.mark.unit
class TestSQLParserDML:
    """Tests for INSERT, UPDATE and DELETE parsing."""

    def test_insert(self, parser: SQLParser) -> None:
        stmt = parser.parse("INSERT INTO users (id, name) VALUES (1, 'Alice'), (2, ?)")

        assert isinstance(stmt, InsertStatement)
        assert stmt.table == "users"
        assert stmt.columns == ("id", "name")
        assert stmt.rows == (
            (Literal(1), Literal("Alice")),
            (Literal(2), Placeholder(index=0)),
        )

    def test_insert_without_columns(self, parser: SQLParser) -> None:
        stmt = parser.parse("INSERT INTO users VALUES (1, 'Alice')")

        assert stmt.columns == ()
        assert len(stmt.rows[0]) == 2

    def test_insert_column_count_mismatch(self, parser: SQLParser) -> None:
        with pytest.raises(ParseError):
            parser.parse("INSERT INTO users (id, name) VALUES (1)")

    def test_update(self, parser: SQLParser) -> None:
        stmt = parser.parse("UPDATE users SET name = ?, age = 30 WHERE id = ?")

        assert isinstance(stmt, UpdateStatement)
        assert stmt.assignments == (("name", Placeholder(index=0)), ("age", Literal(30)))
        assert stmt.where.right == Placeholder(index=1)

    def test_delete(self, parser: SQLParser) -> None:
        stmt = parser.parse("DELETE FROM users WHERE id = 1")

        assert isinstance(stmt, DeleteStatement)
        assert stmt.table == "users"
        assert stmt.where is not None

    def test_delete_without_where(self, parser: SQLParser) -> None:
        stmt = parser.parse("DELETE FROM users")

        assert stmt.where is None


@pytest.mark.unit
class TestSQLParserErrors:
    """Tests for rejected SQL."""

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT * FROM a JOIN b ON a.id = b.id",
            "SELECT status FROM orders GROUP BY status",
            "SELECT COUNT(*) FROM orders",
            "SELECT DISTINCT status FROM orders",
            "SELECT * FROM a UNION SELECT * FROM b",
            "WITH x AS (SELECT * FROM a) SELECT * FROM x",
        ],
    )
    def test_unsupported_features(self, parser: SQLParser, sql: str) -> None:
        with pytest.raises(UnsupportedFeatureError):
            parser.parse(sql)

    @pytest.mark.parametrize("sql", ["", "   ", "SELECT * FROM a; SELECT * FROM b", "SELECT 1"])
    def test_parse_errors(self, parser: SQLParser, sql: str) -> None:
        with pytest.raises(ParseError):
            parser.parse(sql)

    def test_parse_error_is_value_error(self, parser: SQLParser) -> None:
        with pytest.raises(ValueError):
            parser.parse("SELECT * FROM users WHERE (age > 1")


@pytest.mark.unit
class TestParameterBinding:
    """Tests for bind_parameters."""

    def test_bind_positional(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT * FROM users WHERE age > ? AND name = ? LIMIT ?")
        bound = bind_parameters(stmt, [18, "Bob", 5])

        assert not has_placeholders(bound)
        assert bound.where.left.right == Literal(18)
        assert bound.where.right.right == Literal("Bob")
        assert bound.limit == Literal(5)
        # the parsed statement is untouched
        assert has_placeholders(stmt)

    def test_bind_named_and_missing(self, parser: SQLParser) -> None:
        stmt = parser.parse("SELECT * FROM users WHERE name = :name AND age = :age")
        bound = bind_parameters(stmt, {"name": "Bob"})

        assert bound.where.left.right == Literal("Bob")
        assert bound.where.right.right == Literal(None)

    def test_bind_inside_subquery(self, parser: SQLParser) -> None:
        stmt = parser.parse(
            "SELECT * FROM users WHERE age > ? AND id IN (SELECT user_id FROM orders WHERE status = ?)"
        )
        bound = bind_parameters(stmt, [20, "active"])

        assert bound.where.right.subquery.statement.where.right == Literal("active")

    def test_bind_keeps_star(self, parser: SQLParser) -> None:
        bound = bind_parameters(parser.parse("SELECT * FROM users"), [])

        assert isinstance(bound.columns[0].expression, Star)
