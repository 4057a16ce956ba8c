"""Read-only tables over CSV files and in-memory row collections.

CSV files are streamed: each query opens the file, yields one Row per
record and closes the file when iteration stops, including when the
engine stops early because LIMIT was reached. The row ID is the 0-based
record number (not counting the header).

Without a header, columns are named ``c0``, ``c1``, ...
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from virtual_db.domain.entities import Row, RowId
from virtual_db.domain.services.collation import Collator
from virtual_db.domain.value_objects.ast import SelectStatement
from virtual_db.ports.outbound.virtual_table import SelectResult, TableInterface

logger = logging.getLogger(__name__)


class CsvTable(TableInterface):
    """A read-only table backed by a CSV file or by a row collection.

    Use the ``from_file`` and ``from_rows`` constructors.
    """

    def __init__(
        self,
        path: Path | None = None,
        rows: Mapping[RowId, Mapping[str, Any]] | Iterable[Mapping[str, Any]] | None = None,
        has_header: bool = True,
        delimiter: str = ",",
        quotechar: str = '"',
        encoding: str = "utf-8",
        collator: Collator | None = None,
    ) -> None:
        if (path is None) == (rows is None):
            raise ValueError("CsvTable needs exactly one of path or rows")
        self._path = path
        self._rows = rows
        self._has_header = has_header
        self._delimiter = delimiter
        self._quotechar = quotechar
        self._encoding = encoding
        self.collator = collator

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        has_header: bool = True,
        delimiter: str = ",",
        quotechar: str = '"',
        encoding: str = "utf-8",
        collator: Collator | None = None,
    ) -> CsvTable:
        """Create a table that streams a CSV file.

        Args:
            path: Path to the CSV file. It is opened on every query.
            has_header: Whether the first record holds the column names.
            delimiter: Field delimiter.
            quotechar: Quote character.
            encoding: File encoding.
            collator: Collation override for queries on this table.
        """
        return cls(
            path=Path(path),
            has_header=has_header,
            delimiter=delimiter,
            quotechar=quotechar,
            encoding=encoding,
            collator=collator,
        )

    @classmethod
    def from_rows(
        cls,
        rows: Mapping[RowId, Mapping[str, Any]] | Iterable[Mapping[str, Any]],
        collator: Collator | None = None,
    ) -> CsvTable:
        """Create a table over a collection of rows.

        A mapping keeps its keys as row IDs; any other iterable gets IDs
        0, 1, 2, ...
        """
        return cls(rows=rows, collator=collator)

    def select(self, statement: SelectStatement, collator: Collator) -> SelectResult:
        if self._path is not None:
            return self._read_file(self._path)
        return self._read_rows()

    def _read_rows(self) -> Iterator[Row]:
        if isinstance(self._rows, Mapping):
            for row_id, columns in self._rows.items():
                yield Row(row_id, dict(columns))
        else:
            for row_id, columns in enumerate(self._rows):
                yield Row(row_id, dict(columns))

    def _read_file(self, path: Path) -> Iterator[Row]:
        with open(path, newline="", encoding=self._encoding) as f:
            reader = csv.reader(f, delimiter=self._delimiter, quotechar=self._quotechar)
            headers: list[str] | None = None
            if self._has_header:
                headers = next(reader, None)
                if headers is None:
                    return

            row_id = 0
            for record in reader:
                if not record:
                    continue
                if headers is None:
                    columns = {f"c{i}": value for i, value in enumerate(record)}
                else:
                    if len(record) != len(headers):
                        logger.warning(
                            f"{path}: record {row_id} has {len(record)} fields, "
                            f"expected {len(headers)}"
                        )
                    columns = {
                        name: record[i] if i < len(record) else None
                        for i, name in enumerate(headers)
                    }
                yield Row(row_id, columns)
                row_id += 1
