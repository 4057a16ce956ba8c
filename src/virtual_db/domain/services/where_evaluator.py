"""WHERE clause evaluation against a single row.

The evaluator walks the expression tree for each row. It is created once
per query execution with the bound parameters, an optional subquery
resolver and the active collator, and keeps no state between rows: each
call builds a fresh frame holding the row and the positional parameter
cursor.

Boolean rules:
    - AND / OR short-circuit.
    - Comparisons resolve both sides to scalars and use the collator.
    - ``NULL [NOT] IN (...)`` and ``NULL [NOT] LIKE ...`` are false.
    - LIKE is anchored and case-insensitive; ``%`` matches any run of
      characters and ``_`` exactly one.

Scalar rules:
    - Identifiers use the last dot segment (``users.name`` -> ``name``);
      absent columns are NULL.
    - Arithmetic with a NULL or non-numeric operand is NULL, and so is
      division or modulo by zero.
    - A missing parameter is NULL.
    - Function calls are not supported.

References:
    - SQLite expression syntax: https://www.sqlite.org/lang_expr.html
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from virtual_db.domain.entities import Row
from virtual_db.domain.errors import EvaluationError, UnsupportedFeatureError
from virtual_db.domain.services.collation import BINARY, Collator
from virtual_db.domain.value_objects.ast import (
    BinaryOp,
    BinaryOperator,
    FunctionCall,
    Identifier,
    InOp,
    IsNullOp,
    LikeOp,
    Literal,
    Parameters,
    Placeholder,
    Subquery,
    UnaryOp,
    UnaryOperator,
    lookup_parameter,
)
from virtual_db.domain.value_objects.values import ValueInterface, ValueList, parse_number

SubqueryResolver = Callable[[Subquery], ValueInterface]


@lru_cache(maxsize=256)
def like_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a SQL LIKE pattern into an anchored case-insensitive regex."""
    parts = []
    for ch in pattern:
        if ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def like(value: Any, pattern: Any) -> bool:
    """Return True when ``value`` matches the LIKE ``pattern``."""
    if value is None or pattern is None:
        return False
    return like_to_regex(_text(pattern)).fullmatch(_text(value)) is not None


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode(errors="replace")
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


@dataclass
class _Frame:
    """Per-row evaluation state."""

    columns: Mapping[str, Any]
    cursor: int = 0


class WhereEvaluator:
    """Evaluates expression trees against rows.

    Example:
        >>> evaluator = WhereEvaluator(params=[18])
        >>> evaluator.matches({"age": 30}, parser.parse_expression("age > ?"))
        True
    """

    def __init__(
        self,
        params: Parameters = (),
        subquery_resolver: SubqueryResolver | None = None,
        collator: Collator | None = None,
    ) -> None:
        """Initialize the evaluator.

        Args:
            params: Bound parameters, positional (sequence) or named (mapping).
            subquery_resolver: Turns a Subquery node into a value set.
            collator: Collation for comparisons (default BINARY).
        """
        self._params = params
        self._resolver = subquery_resolver
        self._collator = collator or BINARY

    @property
    def collator(self) -> Collator:
        return self._collator

    def matches(self, row: Row | Mapping[str, Any], where: Any) -> bool:
        """Return True if ``row`` satisfies ``where`` (always True when absent).

        Raises:
            EvaluationError: If ``where`` is not a boolean expression.
            UnsupportedFeatureError: For function calls, or subqueries
                without a resolver.
        """
        if where is None:
            return True
        return self._truth(where, self._frame(row))

    def evaluate(self, row: Row | Mapping[str, Any], expression: Any) -> Any:
        """Return the scalar value of ``expression`` for ``row``."""
        return self._value(expression, self._frame(row))

    @staticmethod
    def _frame(row: Row | Mapping[str, Any]) -> _Frame:
        return _Frame(row.columns if isinstance(row, Row) else row)

    # Boolean context

    def _truth(self, node: Any, frame: _Frame) -> bool:
        if isinstance(node, BinaryOp):
            if node.op is BinaryOperator.AND:
                return self._truth(node.left, frame) and self._truth(node.right, frame)
            if node.op is BinaryOperator.OR:
                return self._truth(node.left, frame) or self._truth(node.right, frame)
            if node.op.is_comparison:
                return self._compare(node.op, node.left, node.right, frame)
            raise EvaluationError(f"Cannot evaluate arithmetic '{node.op.value}' as boolean")
        elif isinstance(node, UnaryOp):
            if node.op is UnaryOperator.NOT:
                return not self._truth(node.operand, frame)
            raise EvaluationError("Cannot evaluate unary minus as boolean")
        elif isinstance(node, InOp):
            return self._in(node, frame)
        elif isinstance(node, IsNullOp):
            is_null = self._value(node.operand, frame) is None
            return not is_null if node.negated else is_null
        elif isinstance(node, LikeOp):
            value = self._value(node.left, frame)
            pattern = self._value(node.pattern, frame)
            if value is None or pattern is None:
                return False
            matched = like(value, pattern)
            return not matched if node.negated else matched
        elif isinstance(node, Literal) and isinstance(node.value, bool):
            return node.value
        elif isinstance(node, FunctionCall):
            raise self._unsupported_function(node)
        raise EvaluationError(f"Cannot evaluate {type(node).__name__} as boolean")

    def _compare(self, op: BinaryOperator, left: Any, right: Any, frame: _Frame) -> bool:
        a = self._value(left, frame)
        b = self._value(right, frame)
        if op is BinaryOperator.EQ:
            return self._collator.equals(a, b)
        if op is BinaryOperator.NE:
            return not self._collator.equals(a, b)

        result = self._collator.compare(a, b)
        if op is BinaryOperator.GT:
            return result > 0
        if op is BinaryOperator.LT:
            return result < 0
        if op is BinaryOperator.GE:
            return result >= 0
        return result <= 0

    def _in(self, node: InOp, frame: _Frame) -> bool:
        left = self._value(node.left, frame)
        if left is None:
            return False
        if node.subquery is not None:
            values = self._resolve(node.subquery)
        else:
            values = ValueList(self._value(v, frame) for v in node.values)
        found = values.contains(left)
        return not found if node.negated else found

    # Scalar context

    def _value(self, node: Any, frame: _Frame) -> Any:
        if isinstance(node, Literal):
            return node.value
        elif isinstance(node, Identifier):
            return frame.columns.get(node.column)
        elif isinstance(node, Placeholder):
            position = None
            if node.is_positional and node.index is None:
                position = frame.cursor
                frame.cursor += 1
            return lookup_parameter(self._params, node, position)
        elif isinstance(node, UnaryOp):
            if node.op is UnaryOperator.NOT:
                return not self._truth(node.operand, frame)
            number = parse_number(self._value(node.operand, frame))
            return None if number is None else -number
        elif isinstance(node, BinaryOp):
            if node.op.is_arithmetic:
                return self._arithmetic(
                    node.op, self._value(node.left, frame), self._value(node.right, frame)
                )
            return self._truth(node, frame)
        elif isinstance(node, (InOp, IsNullOp, LikeOp)):
            return self._truth(node, frame)
        elif isinstance(node, Subquery):
            return self._resolve(node).get_value()
        elif isinstance(node, FunctionCall):
            raise self._unsupported_function(node)
        raise EvaluationError(f"Cannot get value from {type(node).__name__}")

    @staticmethod
    def _arithmetic(op: BinaryOperator, left: Any, right: Any) -> Any:
        if left is None or right is None:
            return None
        if op is BinaryOperator.CONCAT:
            return _text(left) + _text(right)

        a = parse_number(left)
        b = parse_number(right)
        if a is None or b is None:
            return None

        if op is BinaryOperator.ADD:
            return a + b
        elif op is BinaryOperator.SUB:
            return a - b
        elif op is BinaryOperator.MUL:
            return a * b
        elif op is BinaryOperator.DIV:
            if b == 0:
                return None
            if isinstance(a, int) and isinstance(b, int) and a % b == 0:
                return a // b
            return a / b
        elif op is BinaryOperator.MOD:
            if b == 0:
                return None
            result = math.fmod(a, b)
            return int(result) if isinstance(a, int) and isinstance(b, int) else result
        raise EvaluationError(f"Unsupported operator: {op.value}")

    def _resolve(self, node: Subquery) -> ValueInterface:
        if self._resolver is None:
            raise UnsupportedFeatureError("Subqueries are not supported without a subquery resolver")
        return self._resolver(node)

    @staticmethod
    def _unsupported_function(node: FunctionCall) -> UnsupportedFeatureError:
        return UnsupportedFeatureError(f"Function calls in WHERE not yet supported: {node.name}")
