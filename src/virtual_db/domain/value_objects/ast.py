"""SQL syntax tree understood by the virtual database.

The SQL front end converts sqlglot parse trees into these nodes. The set
of expression kinds is closed: the evaluator dispatches on exactly the
classes listed in ``Expression`` and rejects anything else.

Nodes are immutable. Parameters are bound by producing a new tree with
``bind_parameters`` rather than by mutating placeholders in place, so one
parsed statement can be executed any number of times with different
parameters.

References:
    - SQLite expression syntax: https://www.sqlite.org/lang_expr.html
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

# Positional parameters as a sequence, named (or int-keyed) ones as a mapping.
Parameters = Union[Sequence[Any], Mapping[Any, Any]]


class BinaryOperator(Enum):
    """Binary operators."""

    AND = "AND"
    OR = "OR"
    EQ = "="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    CONCAT = "||"

    @property
    def is_logical(self) -> bool:
        return self in (BinaryOperator.AND, BinaryOperator.OR)

    @property
    def is_comparison(self) -> bool:
        return self in _COMPARISON_OPS

    @property
    def is_arithmetic(self) -> bool:
        return not (self.is_logical or self.is_comparison)


_COMPARISON_OPS = frozenset(
    {
        BinaryOperator.EQ,
        BinaryOperator.NE,
        BinaryOperator.LT,
        BinaryOperator.LE,
        BinaryOperator.GT,
        BinaryOperator.GE,
    }
)


class UnaryOperator(Enum):
    """Unary operators."""

    NOT = "NOT"
    NEG = "-"


# Expressions


@dataclass(frozen=True)
class Literal:
    """A constant: number, string, boolean or NULL (``None``)."""

    value: Any

    def __str__(self) -> str:
        if self.value is None:
            return "NULL"
        if isinstance(self.value, str):
            return "'" + self.value.replace("'", "''") + "'"
        return str(self.value)


@dataclass(frozen=True)
class Identifier:
    """A column reference, possibly qualified (``users.name``)."""

    name: str

    @property
    def column(self) -> str:
        """The column name without any table qualifier."""
        return self.name.rsplit(".", 1)[-1]

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Placeholder:
    """A ``?`` or ``:name`` parameter marker.

    Positional markers produced by the parser carry their zero-based
    ordinal in ``index``. A positional marker without an ordinal takes
    the next value from the evaluator's cursor.
    """

    name: str | None = None
    index: int | None = None

    @property
    def is_positional(self) -> bool:
        return self.name is None

    def __str__(self) -> str:
        return "?" if self.name is None else f":{self.name}"


@dataclass(frozen=True)
class BinaryOp:
    """``left <op> right``."""

    op: BinaryOperator
    left: Expression
    right: Expression

    def __str__(self) -> str:
        return f"({self.left} {self.op.value} {self.right})"


@dataclass(frozen=True)
class UnaryOp:
    """``NOT operand`` or ``-operand``."""

    op: UnaryOperator
    operand: Expression

    def __str__(self) -> str:
        if self.op is UnaryOperator.NOT:
            return f"NOT ({self.operand})"
        return f"-{self.operand}"


@dataclass(frozen=True)
class InOp:
    """``left [NOT] IN (values...)`` or ``left [NOT] IN (SELECT ...)``."""

    left: Expression
    values: tuple[Expression, ...] = ()
    subquery: Subquery | None = None
    negated: bool = False

    def __str__(self) -> str:
        target = str(self.subquery) if self.subquery else ", ".join(map(str, self.values))
        keyword = "NOT IN" if self.negated else "IN"
        return f"{self.left} {keyword} ({target})"


@dataclass(frozen=True)
class IsNullOp:
    """``operand IS [NOT] NULL``."""

    operand: Expression
    negated: bool = False

    def __str__(self) -> str:
        return f"{self.operand} IS {'NOT ' if self.negated else ''}NULL"


@dataclass(frozen=True)
class LikeOp:
    """``left [NOT] LIKE pattern``."""

    left: Expression
    pattern: Expression
    negated: bool = False

    def __str__(self) -> str:
        return f"{self.left} {'NOT ' if self.negated else ''}LIKE {self.pattern}"


@dataclass(frozen=True)
class FunctionCall:
    """A function call. Parsed so it can be reported, never evaluated."""

    name: str
    args: tuple[Expression, ...] = ()

    def __str__(self) -> str:
        return f"{self.name}({', '.join(map(str, self.args))})"


@dataclass(frozen=True)
class Subquery:
    """A parenthesised SELECT used as a value or a value set."""

    statement: SelectStatement

    def __str__(self) -> str:
        return f"SELECT ... FROM {self.statement.table}"


Expression = Union[
    BinaryOp,
    UnaryOp,
    InOp,
    IsNullOp,
    LikeOp,
    Literal,
    Identifier,
    Placeholder,
    FunctionCall,
    Subquery,
]


# Statements


@dataclass(frozen=True)
class Star:
    """``*`` in a SELECT list."""

    def __str__(self) -> str:
        return "*"


@dataclass(frozen=True)
class ResultColumn:
    """An item in a SELECT list.

    Attributes:
        expression: The projected expression, or Star for ``*``.
        alias: Explicit ``AS`` alias, if any.
        label: Column name in result rows (alias, column name or SQL text).
    """

    expression: Expression | Star
    alias: str | None = None
    label: str = "*"

    @property
    def is_star(self) -> bool:
        return isinstance(self.expression, Star)


@dataclass(frozen=True)
class OrderTerm:
    """An item in an ORDER BY clause."""

    expression: Expression
    desc: bool = False

    def __str__(self) -> str:
        return f"{self.expression} {'DESC' if self.desc else 'ASC'}"


@dataclass(frozen=True)
class SelectStatement:
    """``SELECT columns FROM table [WHERE] [ORDER BY] [LIMIT] [OFFSET]``."""

    table: str
    columns: tuple[ResultColumn, ...] = (ResultColumn(Star()),)
    where: Expression | None = None
    order_by: tuple[OrderTerm, ...] = ()
    limit: Expression | None = None
    offset: Expression | None = None


@dataclass(frozen=True)
class InsertStatement:
    """``INSERT INTO table [(columns)] VALUES (...), ...``."""

    table: str
    columns: tuple[str, ...] = ()
    rows: tuple[tuple[Expression, ...], ...] = ()


@dataclass(frozen=True)
class UpdateStatement:
    """``UPDATE table SET column = expr, ... [WHERE]``."""

    table: str
    assignments: tuple[tuple[str, Expression], ...] = ()
    where: Expression | None = None


@dataclass(frozen=True)
class DeleteStatement:
    """``DELETE FROM table [WHERE]``."""

    table: str
    where: Expression | None = None


Statement = Union[SelectStatement, InsertStatement, UpdateStatement, DeleteStatement]


# Parameters


_MISSING = object()


def lookup_parameter(params: Parameters, placeholder: Placeholder, position: int | None = None) -> Any:
    """Resolve a placeholder against bound parameters.

    Args:
        params: Sequence for positional markers or mapping for named ones.
            A mapping may also serve positional markers through int keys.
        placeholder: The marker to resolve.
        position: Ordinal to use when the marker carries none.

    Returns:
        The bound value, or None when no value is bound.
    """
    if placeholder.name is not None:
        if isinstance(params, Mapping):
            value = params.get(placeholder.name, _MISSING)
            if value is _MISSING:
                value = params.get(":" + placeholder.name)
            return value
        return None

    index = placeholder.index if placeholder.index is not None else position
    if index is None:
        return None
    if isinstance(params, Mapping):
        return params.get(index)
    if 0 <= index < len(params):
        return params[index]
    return None


def bind_parameters(node: Any, params: Parameters) -> Any:
    """Return a copy of ``node`` with every placeholder replaced by a Literal.

    Placeholders inside subqueries are bound as well. Positional markers
    without an ordinal are numbered in tree order.
    """
    counter = [0]

    def bind(value: Any) -> Any:
        if isinstance(value, Placeholder):
            position = None
            if value.is_positional and value.index is None:
                position = counter[0]
                counter[0] += 1
            return Literal(lookup_parameter(params, value, position))
        if isinstance(value, tuple):
            return tuple(bind(item) for item in value)
        if dataclasses.is_dataclass(value) and not isinstance(value, (Literal, Identifier, Star)):
            changes = {f.name: bind(getattr(value, f.name)) for f in dataclasses.fields(value)}
            return dataclasses.replace(value, **changes)
        return value

    return bind(node)


def iter_nodes(node: Any, subqueries: bool = True) -> Iterator[Any]:
    """Yield ``node`` and every node below it, depth first.

    Subquery nodes are always yielded; their statements are only
    descended into when ``subqueries`` is true.
    """
    if isinstance(node, tuple):
        for item in node:
            yield from iter_nodes(item, subqueries)
        return
    if not dataclasses.is_dataclass(node):
        return
    yield node
    if isinstance(node, (Literal, Identifier, Placeholder, Star)):
        return
    if isinstance(node, Subquery) and not subqueries:
        return
    for f in dataclasses.fields(node):
        yield from iter_nodes(getattr(node, f.name), subqueries)


def has_placeholders(node: Any) -> bool:
    """Return True when ``node`` contains any placeholder."""
    return any(isinstance(n, Placeholder) for n in iter_nodes(node))
