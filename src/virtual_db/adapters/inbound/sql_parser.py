"""SQL Parser using sqlglot.

This module converts SQL strings into the virtual database's own
statement and expression trees (see ``virtual_db.domain.value_objects.ast``).
sqlglot does the tokenizing and grammar work; this adapter maps its
parse tree onto the closed set of node kinds the engine evaluates and
rejects everything else up front.

Supported statements:
    - SELECT (with WHERE, ORDER BY, LIMIT, OFFSET)
    - INSERT ... VALUES
    - UPDATE
    - DELETE

Not supported: JOIN, GROUP BY, HAVING, DISTINCT, aggregate functions,
set operations (UNION, INTERSECT, EXCEPT), CTEs and subqueries in FROM.

Positional ``?`` placeholders are numbered in the order they appear in
the SQL text, so every placeholder is bound to the same parameter no
matter how often or in which order the evaluator visits it.

References:
    - sqlglot documentation: https://sqlglot.com/
"""

from __future__ import annotations

import logging
from typing import Any

import sqlglot
from sqlglot.errors import SqlglotError
from sqlglot import exp

from virtual_db.domain.errors import ParseError, UnsupportedFeatureError
from virtual_db.domain.value_objects.ast import (
    BinaryOp,
    BinaryOperator,
    DeleteStatement,
    Expression,
    FunctionCall,
    Identifier,
    InOp,
    InsertStatement,
    IsNullOp,
    LikeOp,
    Literal,
    OrderTerm,
    Placeholder,
    ResultColumn,
    SelectStatement,
    Star,
    Statement,
    Subquery,
    UnaryOp,
    UnaryOperator,
    UpdateStatement,
)

logger = logging.getLogger(__name__)

_BINARY_OPS: dict[type[exp.Expression], BinaryOperator] = {
    exp.And: BinaryOperator.AND,
    exp.Or: BinaryOperator.OR,
    exp.EQ: BinaryOperator.EQ,
    exp.NEQ: BinaryOperator.NE,
    exp.LT: BinaryOperator.LT,
    exp.LTE: BinaryOperator.LE,
    exp.GT: BinaryOperator.GT,
    exp.GTE: BinaryOperator.GE,
    exp.Add: BinaryOperator.ADD,
    exp.Sub: BinaryOperator.SUB,
    exp.Mul: BinaryOperator.MUL,
    exp.Div: BinaryOperator.DIV,
    exp.Mod: BinaryOperator.MOD,
    exp.DPipe: BinaryOperator.CONCAT,
}

# SELECT clauses the engine does not implement, by sqlglot clause type
_UNSUPPORTED_CLAUSES: dict[type[exp.Expression], str] = {
    exp.Join: "JOIN",
    exp.Group: "GROUP BY",
    exp.Having: "HAVING",
    exp.Distinct: "DISTINCT",
    exp.With: "WITH (common table expressions)",
    exp.Lateral: "LATERAL",
}


def _clause(node: exp.Expression, clause_type: type[exp.Expression]) -> Any:
    """Return the first direct child clause of the given type, if any.

    Looks at the node's own arguments only, so clauses of nested
    subqueries are never picked up.
    """
    for value in node.args.values():
        items = value if isinstance(value, list) else [value]
        for item in items:
            if isinstance(item, clause_type):
                return item
    return None


class _Converter:
    """Converts one sqlglot tree; owns the positional placeholder counter."""

    def __init__(self) -> None:
        self._positional = 0

    # Statements

    def statement(self, stmt: exp.Expression) -> Statement:
        if isinstance(stmt, exp.Select):
            return self.select(stmt)
        elif isinstance(stmt, exp.Insert):
            return self.insert(stmt)
        elif isinstance(stmt, exp.Update):
            return self.update(stmt)
        elif isinstance(stmt, exp.Delete):
            return self.delete(stmt)
        elif isinstance(stmt, (exp.Union, exp.Intersect, exp.Except)):
            raise UnsupportedFeatureError(f"{stmt.key.upper()} is not supported")
        raise ParseError(f"Unsupported statement type: {type(stmt).__name__}")

    def select(self, stmt: exp.Select) -> SelectStatement:
        for clause_type, label in _UNSUPPORTED_CLAUSES.items():
            if _clause(stmt, clause_type) is not None:
                raise UnsupportedFeatureError(f"{label} is not supported")
        agg = stmt.find(exp.AggFunc)
        if agg is not None:
            raise UnsupportedFeatureError(
                f"Aggregate functions are not supported: {agg.key.upper()}"
            )

        from_clause = _clause(stmt, exp.From)
        if from_clause is None:
            raise ParseError("SELECT requires FROM clause")
        table = self._table_name(from_clause.this, "SELECT")

        # Source order: select list, WHERE, ORDER BY, LIMIT, OFFSET
        columns = tuple(self.result_column(col) for col in stmt.expressions)

        where = _clause(stmt, exp.Where)
        predicate = self.expression(where.this) if where is not None else None

        order_by: tuple[OrderTerm, ...] = ()
        order = _clause(stmt, exp.Order)
        if order is not None:
            order_by = tuple(self.order_term(item) for item in order.expressions)

        limit = offset = None
        limit_clause = _clause(stmt, exp.Limit)
        if limit_clause is not None:
            # sqlite "LIMIT offset, count"
            inline_offset = limit_clause.args.get("offset")
            if inline_offset is not None:
                offset = self.expression(inline_offset)
            limit = self.expression(self._clause_value(limit_clause))
        offset_clause = _clause(stmt, exp.Offset)
        if offset_clause is not None:
            offset = self.expression(self._clause_value(offset_clause))

        return SelectStatement(
            table=table,
            columns=columns,
            where=predicate,
            order_by=order_by,
            limit=limit,
            offset=offset,
        )

    def insert(self, stmt: exp.Insert) -> InsertStatement:
        target = stmt.this
        columns: tuple[str, ...] = ()
        if isinstance(target, exp.Schema):
            columns = tuple(col.name for col in target.expressions)
            target = target.this
        table = self._table_name(target, "INSERT")

        values = stmt.expression
        if not isinstance(values, exp.Values):
            raise UnsupportedFeatureError("INSERT supports only a VALUES list")

        rows = []
        for tuple_expr in values.expressions:
            items = tuple_expr.expressions if isinstance(tuple_expr, exp.Tuple) else [tuple_expr]
            row = tuple(self.expression(item) for item in items)
            if columns and len(row) != len(columns):
                raise ParseError(
                    f"INSERT has {len(columns)} columns but {len(row)} values"
                )
            rows.append(row)

        return InsertStatement(table=table, columns=columns, rows=tuple(rows))

    def update(self, stmt: exp.Update) -> UpdateStatement:
        table = self._table_name(stmt.this, "UPDATE")
        if _clause(stmt, exp.From) is not None:
            raise UnsupportedFeatureError("UPDATE ... FROM is not supported")

        assignments = []
        for eq in stmt.expressions:
            if not isinstance(eq, exp.EQ) or not isinstance(eq.left, exp.Column):
                raise ParseError(f"Invalid SET assignment: {eq.sql()}")
            assignments.append((eq.left.name, self.expression(eq.right)))
        if not assignments:
            raise ParseError("UPDATE requires at least one SET assignment")

        where = _clause(stmt, exp.Where)
        predicate = self.expression(where.this) if where is not None else None

        return UpdateStatement(table=table, assignments=tuple(assignments), where=predicate)

    def delete(self, stmt: exp.Delete) -> DeleteStatement:
        table = self._table_name(stmt.this, "DELETE")

        where = _clause(stmt, exp.Where)
        predicate = self.expression(where.this) if where is not None else None

        return DeleteStatement(table=table, where=predicate)

    # Clause helpers

    def result_column(self, col: exp.Expression) -> ResultColumn:
        alias = None
        if isinstance(col, exp.Alias):
            alias = col.alias
            col = col.this

        if isinstance(col, exp.Star) or (
            isinstance(col, exp.Column) and isinstance(col.this, exp.Star)
        ):
            return ResultColumn(expression=Star(), alias=alias, label="*")

        expression = self.expression(col)
        if alias:
            label = alias
        elif isinstance(expression, Identifier):
            label = expression.column
        else:
            label = col.sql()
        return ResultColumn(expression=expression, alias=alias, label=label)

    def order_term(self, item: exp.Expression) -> OrderTerm:
        desc = False
        if isinstance(item, exp.Ordered):
            desc = bool(item.args.get("desc"))
            item = item.this
        return OrderTerm(expression=self.expression(item), desc=desc)

    @staticmethod
    def _clause_value(clause: exp.Expression) -> exp.Expression:
        value = clause.args.get("expression") or clause.this
        if value is None:
            raise ParseError(f"Missing value in {clause.key.upper()} clause")
        return value

    @staticmethod
    def _table_name(node: Any, statement: str) -> str:
        if isinstance(node, exp.Table) and node.name:
            return node.name
        if isinstance(node, exp.Subquery):
            raise UnsupportedFeatureError("Subqueries in FROM are not supported")
        raise ParseError(f"{statement} requires a table name")

    # Expressions

    def expression(self, node: exp.Expression) -> Expression:
        """Convert a sqlglot expression to the engine's expression tree."""
        if isinstance(node, exp.Paren):
            return self.expression(node.this)
        elif isinstance(node, exp.Column):
            if isinstance(node.this, exp.Star):
                raise ParseError("'*' is only allowed in the SELECT list")
            return Identifier(".".join(part.name for part in node.parts))
        elif isinstance(node, exp.Literal):
            return Literal(self._literal_value(node))
        elif isinstance(node, exp.Null):
            return Literal(None)
        elif isinstance(node, exp.Boolean):
            return Literal(bool(node.this))
        elif isinstance(node, exp.Placeholder):
            return self.placeholder(node)
        elif isinstance(node, exp.Not):
            return self.negation(node.this)
        elif isinstance(node, exp.Neg):
            operand = self.expression(node.this)
            if isinstance(operand, Literal) and isinstance(operand.value, (int, float)):
                return Literal(-operand.value)
            return UnaryOp(UnaryOperator.NEG, operand)
        elif isinstance(node, exp.In):
            return self.in_op(node)
        elif isinstance(node, exp.Is):
            return self.is_null(node)
        elif isinstance(node, exp.Like):
            return LikeOp(self.expression(node.this), self.expression(node.expression))
        elif isinstance(node, exp.Between):
            subject = self.expression(node.this)
            low = self.expression(node.args["low"])
            high = self.expression(node.args["high"])
            return BinaryOp(
                BinaryOperator.AND,
                BinaryOp(BinaryOperator.GE, subject, low),
                BinaryOp(BinaryOperator.LE, subject, high),
            )
        elif isinstance(node, exp.Subquery):
            return self.subquery(node.this)
        elif isinstance(node, exp.Select):
            return self.subquery(node)
        elif type(node) in _BINARY_OPS:
            return BinaryOp(
                _BINARY_OPS[type(node)],
                self.expression(node.left),
                self.expression(node.right),
            )
        elif isinstance(node, exp.AggFunc):
            raise UnsupportedFeatureError(
                f"Aggregate functions are not supported: {node.key.upper()}"
            )
        elif isinstance(node, exp.Func):
            return self.function_call(node)
        raise ParseError(f"Unsupported expression type: {type(node).__name__}")

    def negation(self, inner: exp.Expression) -> Expression:
        """``NOT x``; folds into IN / LIKE / IS NULL where possible."""
        while isinstance(inner, exp.Paren):
            inner = inner.this
        if isinstance(inner, exp.In):
            return self.in_op(inner, negated=True)
        elif isinstance(inner, exp.Like):
            return LikeOp(
                self.expression(inner.this), self.expression(inner.expression), negated=True
            )
        elif isinstance(inner, exp.Is):
            return self.is_null(inner, negated=True)
        return UnaryOp(UnaryOperator.NOT, self.expression(inner))

    def in_op(self, node: exp.In, negated: bool = False) -> InOp:
        left = self.expression(node.this)

        query = node.args.get("query")
        items = node.expressions
        if query is None and len(items) == 1 and isinstance(items[0], (exp.Select, exp.Subquery)):
            query = items[0]
        if query is not None:
            if isinstance(query, exp.Subquery):
                query = query.this
            return InOp(left, subquery=self.subquery(query), negated=negated)

        if node.args.get("unnest") or node.args.get("field"):
            raise UnsupportedFeatureError("Unsupported IN form")
        values = tuple(self.expression(item) for item in items)
        return InOp(left, values=values, negated=negated)

    def is_null(self, node: exp.Is, negated: bool = False) -> IsNullOp:
        target = node.expression
        if isinstance(target, exp.Not):
            negated = not negated
            target = target.this
        if not isinstance(target, exp.Null):
            raise UnsupportedFeatureError(f"IS is only supported with NULL: {node.sql()}")
        return IsNullOp(self.expression(node.this), negated=negated)

    def subquery(self, node: exp.Expression) -> Subquery:
        if not isinstance(node, exp.Select):
            raise UnsupportedFeatureError(
                f"Unsupported subquery: {type(node).__name__}"
            )
        return Subquery(self.select(node))

    def placeholder(self, node: exp.Placeholder) -> Placeholder:
        name = node.name
        if name and name != "?":
            if name.isdigit():
                # ":1" and "?1" style markers are 1-based positions
                return Placeholder(index=int(name) - 1)
            return Placeholder(name=name)
        index = self._positional
        self._positional += 1
        return Placeholder(index=index)

    def function_call(self, node: exp.Func) -> FunctionCall:
        if isinstance(node, exp.Anonymous):
            name = str(node.this).upper()
        else:
            name = node.sql_name()
        args = []
        for arg in node.iter_expressions():
            try:
                args.append(self.expression(arg))
            except ParseError:
                # Type names and other non-value arguments (CAST(x AS INT))
                args.append(Literal(arg.sql()))
        return FunctionCall(name=name, args=tuple(args))

    @staticmethod
    def _literal_value(node: exp.Literal) -> Any:
        if node.is_string:
            return node.this
        text = node.this
        try:
            if any(ch in text for ch in ".eE"):
                return float(text)
            return int(text, 0) if text.lower().startswith("0x") else int(text)
        except ValueError as e:
            raise ParseError(f"Invalid numeric literal: {text}") from e


class SQLParser:
    """SQL parser using sqlglot.

    Parses SQL strings into statement trees the engine can execute.

    Example:
        >>> parser = SQLParser()
        >>> stmt = parser.parse("SELECT id, name FROM users WHERE age > ?")
        >>> stmt.table
        'users'
    """

    def __init__(self, dialect: str = "sqlite") -> None:
        """Initialize the parser.

        Args:
            dialect: SQL dialect to use for parsing (default: sqlite).
        """
        self._dialect = dialect

    @property
    def dialect(self) -> str:
        return self._dialect

    def parse(self, sql: str) -> Statement:
        """Parse a SQL string into a statement.

        Args:
            sql: The SQL statement to parse.

        Returns:
            The statement tree.

        Raises:
            ParseError: If the SQL is invalid.
            UnsupportedFeatureError: If the SQL uses an unsupported feature.
        """
        try:
            statements = sqlglot.parse(sql, dialect=self._dialect)
        except SqlglotError as e:
            raise ParseError(f"Failed to parse SQL: {e}") from e

        statements = [s for s in statements if s is not None]
        if not statements:
            raise ParseError("Empty SQL statement")
        if len(statements) > 1:
            raise ParseError("Multiple statements not supported")

        statement = _Converter().statement(statements[0])
        logger.debug(f"Parsed {type(statement).__name__} on table {statement.table}")
        return statement

    def parse_expression(self, sql: str) -> Expression:
        """Parse a standalone expression such as ``"age > ? AND name LIKE 'a%'"``.

        Raises:
            ParseError: If the SQL is not a valid expression.
        """
        try:
            node = sqlglot.parse_one(sql, dialect=self._dialect)
        except SqlglotError as e:
            raise ParseError(f"Failed to parse expression: {e}") from e
        return _Converter().expression(node)
