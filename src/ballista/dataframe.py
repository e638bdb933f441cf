"""DataFrame — lazy logical-plan builder bound to a backend state.

A DataFrame pairs an immutable ``LogicalPlan`` with the ``ContextState`` of
the context that created it. Every construction method returns a new
DataFrame wrapping a new plan node whose schema is derived on the spot;
invalid column references raise ``SchemaError`` from that call. Nothing runs
until ``collect()``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import pyarrow as pa

from ballista.datasource import CsvTable, ParquetTable, project_schema
from ballista.errors import FeatureNotImplementedError, SchemaError
from ballista.expr import Column, Expr, Wildcard, expr_to_field, exprlist_to_fields, lit
from ballista.plan import (
    Aggregate,
    EmptyRelation,
    FileScan,
    Limit,
    LogicalPlan,
    MemoryScan,
    Projection,
    Selection,
    format_plan,
    output_schema,
)

if TYPE_CHECKING:
    from ballista.state import ContextState


def _check_projection(
    schema: pa.Schema, projection: Sequence[int] | None
) -> tuple[int, ...] | None:
    if projection is None:
        return None
    indices = tuple(projection)
    n = len(schema)
    invalid = [i for i in indices if i < 0 or i >= n]
    if invalid:
        raise SchemaError(invalid_indices=invalid, field_count=n)
    return indices


def expand_wildcards(exprs: Sequence[Expr], schema: pa.Schema) -> tuple[Expr, ...]:
    """Replace each ``Wildcard`` with one ``Column`` per field of *schema*.

    Other expressions keep their position relative to the expanded columns.
    """
    if Wildcard() not in exprs:
        return tuple(exprs)
    expanded: list[Expr] = []
    for e in exprs:
        if e == Wildcard():
            expanded.extend(Column(i) for i in range(len(schema)))
        else:
            expanded.append(e)
    return tuple(expanded)


class DataFrame:
    """A lazily built relational query."""

    __slots__ = ("_plan", "_state")

    def __init__(self, *, _plan: LogicalPlan, _state: ContextState) -> None:
        self._plan = _plan
        self._state = _state

    def __repr__(self) -> str:
        fields = ", ".join(f"{f.name}: {f.type}" for f in self.schema)
        return f"DataFrame[{fields}]"

    def _derive(self, plan: LogicalPlan) -> DataFrame:
        return DataFrame(_plan=plan, _state=self._state)

    # --- Sources ---

    @classmethod
    def empty(cls, state: ContextState, schema: pa.Schema | None = None) -> DataFrame:
        """Create a zero-row relation (empty schema by default)."""
        if schema is None:
            schema = pa.schema([])
        return cls(_plan=EmptyRelation(schema), _state=state)

    @classmethod
    def from_batches(cls, state: ContextState, batches: Sequence[pa.RecordBatch]) -> DataFrame:
        """Wrap already-materialized record batches sharing the schema of the first."""
        batches = tuple(batches)
        schema = batches[0].schema if batches else pa.schema([])
        mismatched = [i for i, b in enumerate(batches) if not b.schema.equals(schema)]
        if mismatched:
            raise SchemaError(mismatched_batches=mismatched)
        return cls(_plan=MemoryScan(batches, schema), _state=state)

    @classmethod
    def scan_csv(
        cls,
        state: ContextState,
        path: str,
        schema: pa.Schema | None = None,
        projection: Sequence[int] | None = None,
        has_header: bool = True,
        delimiter: str = ",",
    ) -> DataFrame:
        """Scan a CSV file, inferring its schema when none is given."""
        file_schema = CsvTable(path, schema, has_header=has_header, delimiter=delimiter).schema()
        return cls._file_scan(state, path, "csv", file_schema, projection, has_header, delimiter)

    @classmethod
    def scan_parquet(
        cls,
        state: ContextState,
        path: str,
        projection: Sequence[int] | None = None,
    ) -> DataFrame:
        """Scan a Parquet file using the schema from its footer."""
        file_schema = ParquetTable(path).schema()
        return cls._file_scan(state, path, "parquet", file_schema, projection)

    @classmethod
    def _file_scan(
        cls,
        state: ContextState,
        path: str,
        file_type: str,
        schema: pa.Schema,
        projection: Sequence[int] | None,
        has_header: bool = True,
        delimiter: str = ",",
    ) -> DataFrame:
        indices = _check_projection(schema, projection)
        plan = FileScan(
            path=path,
            file_type=file_type,
            schema=schema,
            projected_schema=project_schema(schema, indices),
            projection=indices,
            has_header=has_header,
            delimiter=delimiter,
        )
        return cls(_plan=plan, _state=state)

    # --- Introspection ---

    @property
    def plan(self) -> LogicalPlan:
        """The logical plan accumulated so far."""
        return self._plan

    @property
    def state(self) -> ContextState:
        return self._state

    @property
    def schema(self) -> pa.Schema:
        """The output schema of the current plan node."""
        return output_schema(self._plan)

    def col(self, name: str) -> Column:
        """Return a positional reference to the output field called *name*."""
        index = self.schema.get_field_index(name)
        if index < 0:
            raise SchemaError(unknown_names=[name])
        return Column(index)

    def explain(self) -> None:
        """Print the accumulated plan tree."""
        print(format_plan(self._plan))

    # --- Plan construction ---

    def project(self, *exprs: Expr) -> DataFrame:
        """Apply a projection, expanding any ``Wildcard`` into the input columns."""
        input_schema = self.schema
        projected = expand_wildcards(exprs, input_schema)
        schema = pa.schema(exprlist_to_fields(projected, input_schema))
        return self._derive(Projection(projected, self._plan, schema))

    def filter(self, predicate: Expr) -> DataFrame:
        """Keep rows for which *predicate* is true. The schema is unchanged."""
        field = expr_to_field(predicate, self.schema)
        if not pa.types.is_boolean(field.type) and not pa.types.is_null(field.type):
            raise SchemaError(non_boolean_predicate=str(field.type))
        return self._derive(Selection(predicate, self._plan))

    def limit(self, n: int) -> DataFrame:
        """Keep at most *n* rows. The schema is unchanged."""
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            msg = f"limit() expects a non-negative int, got {n!r}"
            raise ValueError(msg)
        return self._derive(Limit(lit(n, pa.uint64()), self._plan, self.schema))

    def aggregate(self, group_expr: Sequence[Expr], aggr_expr: Sequence[Expr]) -> DataFrame:
        """Group by *group_expr* and compute *aggr_expr* per group.

        The output schema lists the group fields first, then the aggregates.
        """
        group = tuple(group_expr)
        aggr = tuple(aggr_expr)
        schema = pa.schema(exprlist_to_fields(group + aggr, self.schema))
        return self._derive(Aggregate(self._plan, group, aggr, schema))

    # --- Execution ---

    def collect(self) -> list[pa.RecordBatch]:
        """Execute the plan on the bound backend and return the result batches."""
        from ballista.context import Context

        return Context.from_state(self._state).collect(self._plan)

    async def collect_async(self) -> list[pa.RecordBatch]:
        """Awaitable ``collect()`` for callers already running an event loop."""
        from ballista.context import Context

        return await Context.from_state(self._state).collect_async(self._plan)

    def write_csv(self, path: str) -> None:
        msg = f"write_csv() is not implemented for {self._state!r} yet"
        raise FeatureNotImplementedError(msg)

    def write_parquet(self, path: str) -> None:
        msg = f"write_parquet() is not implemented for {self._state!r} yet"
        raise FeatureNotImplementedError(msg)
