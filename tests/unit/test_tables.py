"""Unit tests for the bundled virtual table implementations."""

from __future__ import annotations

from pathlib import Path

import pytest

from virtual_db.adapters.outbound import CsvTable, InMemoryTable, VirtualTable
from virtual_db.domain.entities import OrderInfo, Row
from virtual_db.domain.errors import NotSupportedError
from virtual_db.domain.services import BINARY, NOCASE
from virtual_db.domain.value_objects import SelectStatement
from virtual_db.ports.outbound import TableInterface

STATEMENT = SelectStatement(table="t")


@pytest.mark.unit
class TestInMemoryTable:
    """Tests for InMemoryTable."""

    def test_list_rows_get_sequential_ids(self) -> None:
        table = InMemoryTable([{"name": "a"}, {"name": "b"}])

        rows = list(table.select(STATEMENT, BINARY))

        assert rows == [Row(0, {"name": "a"}), Row(1, {"name": "b"})]
        assert len(table) == 2

    def test_mapping_keeps_ids(self) -> None:
        table = InMemoryTable({"x": {"v": 1}, "y": {"v": 2}})

        assert [row.id for row in table.select(STATEMENT, BINARY)] == ["x", "y"]

    def test_sorted_by_announces_order(self) -> None:
        """A sorted table yields an OrderInfo first, sorted with the given collator."""
        table = InMemoryTable([{"name": "Bob"}, {"name": "alice"}, {"name": "Carol"}], sorted_by="name")

        items = list(table.select(STATEMENT, NOCASE))

        assert items[0] == OrderInfo(column="name", desc=False, collation="NOCASE")
        assert [item.get("name") for item in items[1:]] == ["alice", "Bob", "Carol"]

    def test_sorted_descending(self) -> None:
        table = InMemoryTable([{"n": 1}, {"n": 3}, {"n": 2}], sorted_by="n", desc=True)

        items = list(table.select(STATEMENT, BINARY))

        assert items[0].desc
        assert [item.get("n") for item in items[1:]] == [3, 2, 1]

    def test_insert_assigns_next_id(self) -> None:
        table = InMemoryTable({5: {"v": 1}})

        assert table.insert({"v": 2}) == 6
        assert table.insert({"v": 3}) == 7
        assert table.rows()[6] == {"v": 2}

    def test_insert_into_empty_table(self) -> None:
        assert InMemoryTable().insert({"v": 1}) == 0

    def test_update_and_delete_count_existing_rows(self) -> None:
        table = InMemoryTable([{"v": 1}, {"v": 2}, {"v": 3}])

        assert table.update([0, 2, 99], {"v": 0}) == 2
        assert table.rows() == {0: {"v": 0}, 1: {"v": 2}, 2: {"v": 0}}
        assert table.delete([1, 99]) == 1
        assert list(table.rows()) == [0, 2]

    def test_rows_returns_copies(self) -> None:
        table = InMemoryTable([{"v": 1}])

        table.rows()[0]["v"] = 99

        assert table.rows()[0]["v"] == 1


@pytest.mark.unit
class TestCsvTable:
    """Tests for CsvTable."""

    @pytest.fixture
    def people_csv(self, temp_dir: Path) -> Path:
        path = temp_dir / "people.csv"
        path.write_text("name,age\nBob,25\nalice,30\n\nCarol\n", encoding="utf-8")
        return path

    def test_reads_file_with_header(self, people_csv: Path) -> None:
        """Blank lines are skipped and short records are padded with None."""
        table = CsvTable.from_file(people_csv)

        rows = list(table.select(STATEMENT, BINARY))

        assert rows == [
            Row(0, {"name": "Bob", "age": "25"}),
            Row(1, {"name": "alice", "age": "30"}),
            Row(2, {"name": "Carol", "age": None}),
        ]

    def test_headerless_columns(self, temp_dir: Path) -> None:
        path = temp_dir / "data.csv"
        path.write_text("a;1\nb;2\n", encoding="utf-8")

        rows = list(CsvTable.from_file(path, has_header=False, delimiter=";").select(STATEMENT, BINARY))

        assert rows == [Row(0, {"c0": "a", "c1": "1"}), Row(1, {"c0": "b", "c1": "2"})]

    def test_empty_file(self, temp_dir: Path) -> None:
        path = temp_dir / "empty.csv"
        path.write_text("", encoding="utf-8")

        assert list(CsvTable.from_file(path).select(STATEMENT, BINARY)) == []

    def test_file_closed_on_early_stop(self, people_csv: Path) -> None:
        """Closing the iterator releases the file."""
        source = CsvTable.from_file(people_csv).select(STATEMENT, BINARY)

        assert next(source).id == 0
        source.close()

        with pytest.raises(StopIteration):
            next(source)

    def test_from_rows(self) -> None:
        table = CsvTable.from_rows([{"a": 1}, {"a": 2}])

        assert [row.id for row in table.select(STATEMENT, BINARY)] == [0, 1]
        assert [row.id for row in CsvTable.from_rows({"k": {"a": 1}}).select(STATEMENT, BINARY)] == ["k"]

    def test_read_only(self, people_csv: Path) -> None:
        table = CsvTable.from_file(people_csv)

        with pytest.raises(NotSupportedError, match="INSERT not supported"):
            table.insert({"name": "Dave"})
        with pytest.raises(NotSupportedError):
            table.update([0], {"age": 1})
        with pytest.raises(NotSupportedError):
            table.delete([0])

    def test_needs_exactly_one_source(self) -> None:
        with pytest.raises(ValueError):
            CsvTable()


@pytest.mark.unit
class TestVirtualTable:
    """Tests for the callable-backed table."""

    def test_delegates_to_callables(self) -> None:
        calls = []
        table = VirtualTable(
            select=lambda statement, collator: [Row(1, {"collation": collator.name})],
            insert=lambda row: calls.append(("insert", row)) or 42,
            update=lambda ids, changes: calls.append(("update", ids, changes)) or len(ids),
            delete=lambda ids: calls.append(("delete", ids)) or len(ids),
        )

        assert list(table.select(STATEMENT, NOCASE)) == [Row(1, {"collation": "NOCASE"})]
        assert table.insert({"a": 1}) == 42
        assert table.update([1, 2], {"a": 2}) == 2
        assert table.delete([1]) == 1
        assert calls == [("insert", {"a": 1}), ("update", [1, 2], {"a": 2}), ("delete", [1])]

    @pytest.mark.parametrize(
        "operation, call",
        [
            ("select", lambda t: t.select(STATEMENT, BINARY)),
            ("insert", lambda t: t.insert({})),
            ("update", lambda t: t.update([1], {})),
            ("delete", lambda t: t.delete([1])),
        ],
    )
    def test_missing_callable(self, operation, call) -> None:
        """Missing operations raise NotSupportedError naming the operation."""
        table = VirtualTable()

        with pytest.raises(NotSupportedError, match=f"{operation.upper()} not supported"):
            call(table)
        assert not table.supports(operation)

    def test_supports(self) -> None:
        table = VirtualTable(select=lambda s, c: [])

        assert table.supports("select")
        assert table.supports("SELECT")
        assert not table.supports("delete")

    def test_is_a_table(self) -> None:
        assert isinstance(VirtualTable(), TableInterface)
        assert VirtualTable(collator=NOCASE).collator is NOCASE
