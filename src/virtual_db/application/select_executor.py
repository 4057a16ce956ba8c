"""SELECT execution over a virtual table.

Executes one SELECT against one table, choosing between two strategies
from what the table yields first:

STREAM
    Used when the query has no ORDER BY, or when the table's OrderInfo
    claims exactly the requested order (same column, direction and
    collation). Rows are filtered, offset and limited as they are pulled;
    once LIMIT rows are emitted the source is closed without being
    drained, so tables may be unbounded.

MATERIALIZE
    Used otherwise. All rows are pulled and filtered, sorted with the
    query's collator, then sliced by OFFSET and LIMIT.

OrderInfo.skipped couples two claims. ``None`` means the engine applies
WHERE and the whole OFFSET. An integer means the table already applied
WHERE and skipped that many matching rows, so the engine does not
re-filter and skips only the remaining ``offset - skipped`` rows.

Every item the table yields is checked: an OrderInfo is only allowed
first, everything else must be a Row, and row IDs must be unique.

References:
    - Graefe, G. "Volcano - An Extensible and Parallel Query Evaluation System" (1994)
"""

from __future__ import annotations

import functools
import itertools
import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from virtual_db.domain.entities import OrderInfo, Row, RowId
from virtual_db.domain.errors import EvaluationError, VirtualTableException
from virtual_db.domain.services.collation import Collator, collations_match
from virtual_db.domain.services.where_evaluator import WhereEvaluator
from virtual_db.domain.value_objects.ast import (
    Expression,
    Identifier,
    Literal,
    OrderTerm,
    ResultColumn,
    SelectStatement,
    Star,
)
from virtual_db.domain.value_objects.values import parse_number
from virtual_db.infrastructure.metrics import MetricsRegistry
from virtual_db.ports.outbound.virtual_table import TableInterface

logger = logging.getLogger(__name__)

_END = object()


class Strategy(Enum):
    """SELECT execution strategies."""

    STREAM = "stream"
    MATERIALIZE = "materialize"


@dataclass(frozen=True)
class SelectPlan:
    """Decision taken after peeking at the table's first item.

    Attributes:
        strategy: STREAM or MATERIALIZE.
        reason: Why the strategy was chosen (for logging).
        order_info: The table's ordering claim, if any.
        where_trusted: True when the table applied WHERE itself.
        offset: Rows the engine still has to skip.
        limit: Maximum rows to emit, or None.
    """

    strategy: Strategy
    reason: str
    order_info: OrderInfo | None
    where_trusted: bool
    offset: int
    limit: int | None


class SelectExecutor:
    """Runs SELECT statements against a single table.

    Args:
        table_name: Registered table name, used in diagnostics.
        table: The virtual table.
        collator: Active collation for WHERE and ORDER BY.
        evaluator: Evaluator for WHERE, ORDER BY and projection.
        metrics: Optional metrics registry.
    """

    def __init__(
        self,
        table_name: str,
        table: TableInterface,
        collator: Collator,
        evaluator: WhereEvaluator,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._table_name = table_name
        self._table = table
        self._collator = collator
        self._evaluator = evaluator
        self._metrics = metrics
        self.last_plan: SelectPlan | None = None

    def execute(self, statement: SelectStatement) -> Iterator[dict[str, Any]]:
        """Yield projected result rows for a bound SELECT statement."""
        for row in self.rows(statement):
            yield self.project(row, statement.columns)

    def rows(self, statement: SelectStatement) -> Iterator[Row]:
        """Yield the matching rows, ordered, offset and limited."""
        limit = self._int_clause(statement.limit, "LIMIT")
        if limit is not None and limit < 0:
            limit = None
        offset = max(self._int_clause(statement.offset, "OFFSET") or 0, 0)
        order_by = tuple(self._resolve_order_term(t, statement.columns) for t in statement.order_by)

        source = iter(self._table.select(statement, self._collator))
        try:
            first = next(source, _END)
            order_info = None
            if isinstance(first, OrderInfo):
                order_info = first
                first = _END
            items: Iterable[Any] = source if first is _END else itertools.chain([first], source)

            plan = self._plan(order_by, order_info, offset, limit)
            self.last_plan = plan
            logger.debug(
                f"SELECT on {self._table_name}: {plan.strategy.value} ({plan.reason})"
            )
            if self._metrics is not None:
                self._metrics.select_strategy_total.labels(strategy=plan.strategy.value).inc()

            validated = self.validate(items)
            if plan.strategy is Strategy.STREAM:
                yield from self._stream(validated, statement.where, plan)
            else:
                yield from self._materialize(validated, statement.where, order_by, plan)
        finally:
            close = getattr(source, "close", None)
            if close is not None:
                close()

    def matching_ids(self, statement: SelectStatement) -> list[RowId]:
        """Return the ID of every row matching WHERE.

        Always a full pass: the table's ordering and ``skipped`` claims are
        validated but never trusted, and WHERE is evaluated on every row.
        """
        source = iter(self._table.select(statement, self._collator))
        try:
            first = next(source, _END)
            if isinstance(first, OrderInfo):
                error = first.validation_error()
                if error:
                    self._violation()
                    raise VirtualTableException.invalid_order_info(self._table_name, error)
                first = _END
            items: Iterable[Any] = source if first is _END else itertools.chain([first], source)
            return [
                row.id for row in self.validate(items)
                if self._evaluator.matches(row, statement.where)
            ]
        finally:
            close = getattr(source, "close", None)
            if close is not None:
                close()

    def validate(self, items: Iterable[Any]) -> Iterator[Row]:
        """Yield Rows, enforcing the Row type and row ID uniqueness."""
        seen: set[RowId] = set()
        for row_number, item in enumerate(items):
            if not isinstance(item, Row):
                self._violation()
                if isinstance(item, OrderInfo):
                    raise VirtualTableException.invalid_order_info(
                        self._table_name,
                        f"OrderInfo must be the first item, got one at row #{row_number}",
                    )
                raise VirtualTableException.not_row_instance(self._table_name, row_number, item)
            if item.id in seen:
                self._violation()
                raise VirtualTableException.duplicate_row_id(self._table_name, row_number, item.id)
            seen.add(item.id)
            if self._metrics is not None:
                self._metrics.rows_scanned_total.labels(table=self._table_name).inc()
            yield item

    def project(self, row: Row, columns: tuple[ResultColumn, ...]) -> dict[str, Any]:
        """Build the result mapping for one row."""
        result: dict[str, Any] = {}
        for column in columns:
            if column.is_star:
                result.update(row.columns)
            else:
                result[column.label] = self._evaluator.evaluate(row, column.expression)
        return result

    # Planning

    def _plan(
        self,
        order_by: tuple[OrderTerm, ...],
        order_info: OrderInfo | None,
        offset: int,
        limit: int | None,
    ) -> SelectPlan:
        where_trusted = False
        remaining = offset
        if order_info is not None:
            error = order_info.validation_error()
            if error:
                self._violation()
                raise VirtualTableException.invalid_order_info(self._table_name, error)
            if order_info.skipped is not None:
                if order_info.skipped > offset:
                    self._violation()
                    raise VirtualTableException.invalid_order_info(
                        self._table_name,
                        f"table skipped {order_info.skipped} rows but only {offset} were requested",
                    )
                where_trusted = True
                remaining = offset - order_info.skipped

        if not order_by:
            strategy, reason = Strategy.STREAM, "no ORDER BY"
        elif order_info is None:
            strategy, reason = Strategy.MATERIALIZE, "table declared no order"
        else:
            mismatch = self._order_mismatch(order_by, order_info)
            if mismatch is None:
                strategy, reason = Strategy.STREAM, "table order matches ORDER BY"
            else:
                strategy, reason = Strategy.MATERIALIZE, mismatch

        return SelectPlan(
            strategy=strategy,
            reason=reason,
            order_info=order_info,
            where_trusted=where_trusted,
            offset=remaining,
            limit=limit,
        )

    def _order_mismatch(self, order_by: tuple[OrderTerm, ...], info: OrderInfo) -> str | None:
        """Return why ``info`` does not satisfy ``order_by``, or None if it does."""
        if len(order_by) != 1:
            return "ORDER BY has more than one term"
        term = order_by[0]
        if not isinstance(term.expression, Identifier):
            return "ORDER BY term is not a column"
        if term.expression.column != info.column:
            return f"table is ordered by {info.column}, not {term.expression.column}"
        if term.desc != info.desc:
            return "sort direction differs"
        claimed = info.collation or self._collator.name
        if not collations_match(claimed, self._collator):
            return f"table collation {claimed} differs from {self._collator.name}"
        return None

    # Strategies

    def _stream(self, rows: Iterator[Row], where: Expression | None, plan: SelectPlan) -> Iterator[Row]:
        if plan.limit == 0:
            return
        skipped = 0
        emitted = 0
        for row in rows:
            if not plan.where_trusted and not self._evaluator.matches(row, where):
                continue
            if skipped < plan.offset:
                skipped += 1
                continue
            yield row
            emitted += 1
            if plan.limit is not None and emitted >= plan.limit:
                return

    def _materialize(
        self,
        rows: Iterator[Row],
        where: Expression | None,
        order_by: tuple[OrderTerm, ...],
        plan: SelectPlan,
    ) -> Iterator[Row]:
        if plan.where_trusted:
            buffer = list(rows)
        else:
            buffer = [row for row in rows if self._evaluator.matches(row, where)]

        if order_by:
            buffer = self._sort(buffer, order_by)

        end = None if plan.limit is None else plan.offset + plan.limit
        yield from buffer[plan.offset:end]

    def _sort(self, rows: list[Row], order_by: tuple[OrderTerm, ...]) -> list[Row]:
        keyed = [
            ([self._evaluator.evaluate(row, term.expression) for term in order_by], row)
            for row in rows
        ]
        compare = self._collator.compare

        def cmp(a: tuple[list[Any], Row], b: tuple[list[Any], Row]) -> int:
            for term, left, right in zip(order_by, a[0], b[0]):
                result = compare(left, right)
                if result:
                    return -result if term.desc else result
            return 0

        keyed.sort(key=functools.cmp_to_key(cmp))
        return [row for _, row in keyed]

    # Helpers

    def _resolve_order_term(self, term: OrderTerm, columns: tuple[ResultColumn, ...]) -> OrderTerm:
        """Map ORDER BY aliases and positions onto the SELECT list expressions."""
        expression = term.expression
        if isinstance(expression, Literal) and isinstance(expression.value, int) \
                and not isinstance(expression.value, bool):
            position = expression.value
            if not 1 <= position <= len(columns) or columns[position - 1].is_star:
                raise EvaluationError(f"ORDER BY position {position} is not a result column")
            return OrderTerm(columns[position - 1].expression, term.desc)
        if isinstance(expression, Identifier) and "." not in expression.name:
            for column in columns:
                if column.alias == expression.name and not isinstance(column.expression, Star):
                    return OrderTerm(column.expression, term.desc)
        return term

    def _int_clause(self, expression: Expression | None, clause: str) -> int | None:
        if expression is None:
            return None
        value = self._evaluator.evaluate({}, expression)
        if value is None:
            return None
        number = parse_number(value)
        if number is None or not math.isfinite(number) or number != int(number):
            raise EvaluationError(f"{clause} must be an integer, got {value!r}")
        return int(number)

    def _violation(self) -> None:
        logger.warning(f"Virtual table {self._table_name} violated its contract")
        if self._metrics is not None:
            self._metrics.contract_violations_total.labels(table=self._table_name).inc()
