"""Virtual Database - SQL entry point over registered virtual tables.

Usage:
    from virtual_db.application import VirtualDatabase
    from virtual_db.adapters.outbound import InMemoryTable

    db = VirtualDatabase(default_collation="NOCASE")
    db.register_table("users", InMemoryTable({1: {"name": "Bob", "age": 25}}))

    for row in db.query("SELECT * FROM users WHERE age > ? ORDER BY name", [20]):
        print(row)

    db.execute("UPDATE users SET age = ? WHERE name = ?", [26, "Bob"])

SELECT results are lazy: nothing is read from a table until the caller
iterates. UPDATE and DELETE first collect the IDs of every matching row,
then hand them to the table's ``update`` / ``delete``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

from virtual_db.adapters.inbound.sql_parser import SQLParser
from virtual_db.application.select_executor import SelectExecutor
from virtual_db.domain.entities import RowId
from virtual_db.domain.errors import (
    EvaluationError,
    UnknownTableError,
    UnsafeDMLError,
    UnsupportedFeatureError,
)
from virtual_db.domain.services.collation import BINARY, Collator, from_name
from virtual_db.domain.services.where_evaluator import SubqueryResolver, WhereEvaluator
from virtual_db.domain.value_objects.ast import (
    DeleteStatement,
    Identifier,
    InsertStatement,
    Parameters,
    SelectStatement,
    Statement,
    Subquery,
    UpdateStatement,
    bind_parameters,
    iter_nodes,
)
from virtual_db.domain.value_objects.values import LazySubquery
from virtual_db.infrastructure.metrics import MetricsRegistry
from virtual_db.infrastructure.tracing import trace_rows, trace_span
from virtual_db.ports.outbound.virtual_table import TableInterface

if TYPE_CHECKING:
    from virtual_db.infrastructure.config import Config

logger = logging.getLogger(__name__)


class VirtualDatabase:
    """SQL over virtual tables.

    Tables are registered under a name and queried with SQL. Each query
    execution gets its own collator, evaluator and subquery cache; the
    database itself only holds the table registry.

    Args:
        default_collation: Collation for tables without their own, as a
            name (BINARY, NOCASE, RTRIM or a locale) or a Collator.
        require_where_for_dml: Reject UPDATE and DELETE without WHERE.
        parser: SQL parser (default: sqlite dialect).
        metrics: Metrics registry, or None to record nothing.
    """

    def __init__(
        self,
        default_collation: str | Collator | None = None,
        require_where_for_dml: bool = True,
        parser: SQLParser | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        if isinstance(default_collation, str):
            default_collation = from_name(default_collation)
        self._collator = default_collation or BINARY
        self._require_where = require_where_for_dml
        self._parser = parser or SQLParser()
        self._metrics = metrics
        self._tables: dict[str, TableInterface] = {}
        self._last_insert_id: RowId | None = None

    @classmethod
    def from_config(cls, config: Config, metrics: MetricsRegistry | None = None) -> VirtualDatabase:
        """Create a database from the engine section of the configuration."""
        return cls(
            default_collation=config.engine.default_collation,
            require_where_for_dml=config.engine.require_where_for_dml,
            parser=SQLParser(dialect=config.engine.sql_dialect),
            metrics=metrics,
        )

    @property
    def default_collator(self) -> Collator:
        return self._collator

    @property
    def last_insert_id(self) -> RowId | None:
        """Row ID returned by the table for the most recent inserted row."""
        return self._last_insert_id

    # Table registry

    def register_table(self, name: str, table: TableInterface) -> None:
        """Register ``table`` under ``name``, replacing any previous table."""
        if not name:
            raise ValueError("Table name must not be empty")
        table.name = name
        self._tables[name] = table
        logger.debug(f"Registered table {name} ({type(table).__name__})")

    def unregister_table(self, name: str) -> None:
        """Remove a table.

        Raises:
            UnknownTableError: If no table is registered under ``name``.
        """
        if name not in self._tables:
            raise UnknownTableError(name)
        del self._tables[name]

    def table_exists(self, name: str) -> bool:
        return name in self._tables

    def table_names(self) -> list[str]:
        return sorted(self._tables)

    def get_table(self, name: str) -> TableInterface:
        try:
            return self._tables[name]
        except KeyError:
            raise UnknownTableError(name) from None

    # Queries

    def parse(self, sql: str) -> Statement:
        with trace_span("vdb.parse", {"vdb.dialect": self._parser.dialect}):
            return self._parser.parse(sql)

    def query(self, sql: str, params: Parameters = ()) -> Iterator[dict[str, Any]]:
        """Run a SELECT and return a lazy iterator of result rows.

        The SQL is parsed and the table looked up immediately; rows are
        produced only as the iterator is consumed.

        Raises:
            ParseError: If the SQL is invalid.
            UnsupportedFeatureError: If the statement is not a SELECT.
            UnknownTableError: If the table is not registered.
        """
        statement = self.parse(sql)
        if not isinstance(statement, SelectStatement):
            raise UnsupportedFeatureError(
                f"query() runs SELECT statements only, got {_statement_kind(statement).upper()}; "
                "use execute()"
            )
        return self.select(statement, params)

    def select(self, statement: SelectStatement | str, params: Parameters = ()) -> Iterator[dict[str, Any]]:
        """Run a parsed SELECT (or SQL text) and return a lazy iterator of rows."""
        if isinstance(statement, str):
            return self.query(statement, params)
        self.get_table(statement.table)
        bound = bind_parameters(statement, params)
        return self._timed_select(bound)

    def query_one(self, sql: str, params: Parameters = ()) -> dict[str, Any] | None:
        """Return the first result row, or None."""
        rows = self.query(sql, params)
        try:
            return next(rows, None)
        finally:
            rows.close()

    def query_field(self, sql: str, params: Parameters = ()) -> Any:
        """Return the first column of the first result row, or None."""
        row = self.query_one(sql, params)
        if not row:
            return None
        return next(iter(row.values()))

    def query_column(self, sql: str, params: Parameters = ()) -> list[Any]:
        """Return the first column of every result row."""
        return [next(iter(row.values()), None) for row in self.query(sql, params)]

    def _timed_select(self, bound: SelectStatement) -> Iterator[dict[str, Any]]:
        start = time.perf_counter()
        status = "error"
        try:
            yield from trace_rows("vdb.select", self._run_select(bound), {"vdb.table": bound.table})
            status = "ok"
        except GeneratorExit:
            status = "ok"
            raise
        finally:
            self._record("select", status, start)

    def _run_select(self, bound: SelectStatement) -> Iterator[dict[str, Any]]:
        """Execute an already-bound SELECT (outer query or subquery)."""
        table = self.get_table(bound.table)
        yield from self._executor(bound.table, table).execute(bound)

    def _executor(self, name: str, table: TableInterface) -> SelectExecutor:
        collator = table.collator or self._collator
        evaluator = WhereEvaluator(
            subquery_resolver=self._subquery_resolver(),
            collator=collator,
        )
        return SelectExecutor(name, table, collator, evaluator, self._metrics)

    def _subquery_resolver(self) -> SubqueryResolver:
        """Build a resolver that runs each subquery at most once per query."""
        cache: dict[int, tuple[Subquery, LazySubquery]] = {}

        def resolve(node: Subquery) -> LazySubquery:
            entry = cache.get(id(node))
            if entry is None or entry[0] is not node:
                lazy = LazySubquery(node.statement, self._run_select, _subquery_column(node.statement))
                entry = (node, lazy)
                cache[id(node)] = entry
            return entry[1]

        return resolve

    # Statements

    def execute(self, sql: str | Statement, params: Parameters = ()) -> int:
        """Run an INSERT, UPDATE or DELETE and return the affected row count.

        Raises:
            ParseError: If the SQL is invalid.
            UnsupportedFeatureError: For SELECT statements.
            UnknownTableError: If the table is not registered.
            UnsafeDMLError: For UPDATE or DELETE without WHERE when required.
            NotSupportedError: If the table lacks the capability.
        """
        statement = self.parse(sql) if isinstance(sql, str) else sql
        kind = _statement_kind(statement)
        if isinstance(statement, SelectStatement):
            raise UnsupportedFeatureError("execute() does not run SELECT statements; use query()")

        start = time.perf_counter()
        status = "error"
        with trace_span("vdb.execute", {"vdb.statement": kind, "vdb.table": statement.table}) as span:
            try:
                table = self.get_table(statement.table)
                bound = bind_parameters(statement, params)
                if isinstance(bound, InsertStatement):
                    affected = self._insert(table, bound)
                elif isinstance(bound, UpdateStatement):
                    affected = self._update(table, bound)
                elif isinstance(bound, DeleteStatement):
                    affected = self._delete(table, bound)
                else:
                    raise UnsupportedFeatureError(f"Unsupported statement type: {type(bound).__name__}")
                span.set_attribute("vdb.affected_rows", affected)
                status = "ok"
            finally:
                self._record(kind, status, start)

        if self._metrics is not None:
            self._metrics.dml_rows_affected_total.labels(statement=kind).inc(affected)
        return affected

    def insert(self, table: str, data: dict[str, Any]) -> RowId | None:
        """Insert one row given as a column mapping; returns the new row ID."""
        if not data:
            raise ValueError("insert() requires at least one column")
        columns = ", ".join(self.quote_identifier(column) for column in data)
        placeholders = ", ".join("?" for _ in data)
        sql = f"INSERT INTO {self.quote_identifier(table)} ({columns}) VALUES ({placeholders})"
        self.execute(sql, list(data.values()))
        return self._last_insert_id

    def _insert(self, table: TableInterface, statement: InsertStatement) -> int:
        evaluator = WhereEvaluator(
            subquery_resolver=self._subquery_resolver(),
            collator=table.collator or self._collator,
        )
        count = 0
        for values in statement.rows:
            evaluated = [evaluator.evaluate({}, expr) for expr in values]
            if statement.columns:
                row: dict[Any, Any] = dict(zip(statement.columns, evaluated))
            else:
                row = dict(enumerate(evaluated))
            self._last_insert_id = table.insert(row)
            count += 1
        logger.debug(f"Inserted {count} rows into {statement.table}")
        return count

    def _update(self, table: TableInterface, statement: UpdateStatement) -> int:
        self._check_where(statement)
        for column, expr in statement.assignments:
            if any(isinstance(node, Identifier) for node in iter_nodes(expr, subqueries=False)):
                raise UnsupportedFeatureError(
                    f"SET {column} references a column; only constant expressions are supported"
                )
        evaluator = WhereEvaluator(
            subquery_resolver=self._subquery_resolver(),
            collator=table.collator or self._collator,
        )
        changes = {column: evaluator.evaluate({}, expr) for column, expr in statement.assignments}

        ids = self._matching_ids(table, statement.table, statement.where)
        if not ids:
            return 0
        return table.update(ids, changes)

    def _delete(self, table: TableInterface, statement: DeleteStatement) -> int:
        self._check_where(statement)
        ids = self._matching_ids(table, statement.table, statement.where)
        if not ids:
            return 0
        return table.delete(ids)

    def _matching_ids(self, table: TableInterface, name: str, where: Any) -> list[RowId]:
        scan = SelectStatement(table=name, where=where)
        ids = self._executor(name, table).matching_ids(scan)
        logger.debug(f"Matched {len(ids)} rows in {name}")
        return ids

    def _check_where(self, statement: UpdateStatement | DeleteStatement) -> None:
        if self._require_where and statement.where is None:
            kind = _statement_kind(statement).upper()
            raise UnsafeDMLError(
                f"{kind} without WHERE clause is not allowed; "
                f"use an explicit condition such as 'WHERE 1 = 1' to affect every row"
            )

    def _record(self, kind: str, status: str, start: float) -> None:
        if self._metrics is None:
            return
        self._metrics.queries_total.labels(statement=kind, status=status).inc()
        self._metrics.query_latency_seconds.labels(statement=kind).observe(time.perf_counter() - start)

    # Quoting

    def quote(self, value: Any) -> str:
        """Render ``value`` as a SQL literal."""
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "1" if value else "0"
        if isinstance(value, (int, float)):
            return repr(value)
        if isinstance(value, bytes):
            value = value.decode(errors="replace")
        return "'" + str(value).replace("'", "''") + "'"

    def quote_identifier(self, identifier: str) -> str:
        """Quote an identifier; dotted names are quoted per segment."""
        return ".".join('"' + part.replace('"', '""') + '"' for part in identifier.split("."))


def _statement_kind(statement: Statement) -> str:
    if isinstance(statement, SelectStatement):
        return "select"
    elif isinstance(statement, InsertStatement):
        return "insert"
    elif isinstance(statement, UpdateStatement):
        return "update"
    elif isinstance(statement, DeleteStatement):
        return "delete"
    raise EvaluationError(f"Not a statement: {type(statement).__name__}")


def _subquery_column(statement: SelectStatement) -> str:
    """Column a subquery contributes: its first selected identifier, else the first column."""
    if statement.columns:
        expression = statement.columns[0].expression
        if isinstance(expression, Identifier):
            return expression.column
    return "*"
