"""Unit tests for ballista.plan: node immutability, output schemas, rendering."""

from __future__ import annotations

import pyarrow as pa
import pytest

from ballista import (
    Aggregate,
    Column,
    EmptyRelation,
    FileScan,
    Limit,
    MemoryScan,
    Projection,
    Selection,
    format_plan,
    lit,
    output_schema,
)
from ballista import sum as sum_
from ballista.plan import inputs

SCHEMA = pa.schema([pa.field("a", pa.int64()), pa.field("b", pa.string())])
PROJECTED = pa.schema([pa.field("b", pa.string())])


def _file_scan(projection: tuple[int, ...] | None = (1,)) -> FileScan:
    return FileScan(
        path="/data/t.csv",
        file_type="csv",
        schema=SCHEMA,
        projected_schema=PROJECTED if projection else SCHEMA,
        projection=projection,
    )


class TestImmutability:
    def test_plan_nodes_are_frozen(self) -> None:
        plan = EmptyRelation(SCHEMA)
        with pytest.raises(AttributeError):
            plan.schema = PROJECTED  # type: ignore[misc]

    def test_structural_equality(self) -> None:
        assert Selection(Column(0) > 1, EmptyRelation(SCHEMA)) == Selection(
            Column(0) > 1, EmptyRelation(SCHEMA)
        )


class TestOutputSchema:
    def test_file_scan_reports_projected_schema(self) -> None:
        assert output_schema(_file_scan()) == PROJECTED

    def test_selection_inherits_input_schema(self) -> None:
        plan = Selection(Column(0).is_null(), _file_scan())
        assert plan.schema == PROJECTED
        assert output_schema(plan) == PROJECTED

    def test_stored_schema(self) -> None:
        plan = Limit(lit(3, pa.uint64()), EmptyRelation(SCHEMA), SCHEMA)
        assert output_schema(plan) == SCHEMA


class TestInputs:
    def test_leaves_have_no_inputs(self) -> None:
        assert inputs(EmptyRelation(SCHEMA)) == ()
        assert inputs(MemoryScan((), SCHEMA)) == ()

    def test_operators_have_one_input(self) -> None:
        source = EmptyRelation(SCHEMA)
        assert inputs(Projection((Column(0),), source, SCHEMA)) == (source,)


class TestFormatPlan:
    def test_file_scan_line(self) -> None:
        assert format_plan(_file_scan()) == (
            "FileScan: path=/data/t.csv, file_type=csv, projection=[1]"
        )

    def test_file_scan_without_projection(self) -> None:
        assert format_plan(_file_scan(None)).endswith("projection=None")

    def test_nested_indentation(self) -> None:
        source = EmptyRelation(SCHEMA)
        aggregate = Aggregate(
            source,
            (Column(1),),
            (sum_(Column(0)),),
            pa.schema([pa.field("b", pa.string()), pa.field("SUM", pa.float64())]),
        )
        assert format_plan(aggregate) == (
            "Aggregate: groupBy=[#1], aggr=[SUM(#0)]\n  EmptyRelation"
        )

    def test_memory_scan_repr(self) -> None:
        batch = pa.RecordBatch.from_pydict({"a": [1, 2]})
        assert repr(MemoryScan((batch, batch), batch.schema)) == "MemoryScan(2 batches, 4 rows)"
