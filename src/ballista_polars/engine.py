"""PolarsEngine — executes logical plans in-process with Polars.

The plan is translated into a ``pl.LazyFrame``; Polars' own query optimizer
runs when the frame is collected. Results are exported to Arrow, cast to the
schema the logical plan declared, and sliced into batches of the resolved
batch size.
"""

from __future__ import annotations

import logging
from typing import Any

import polars as pl
import pyarrow as pa

from ballista.expr import (
    AggregateFunction,
    Alias,
    BinaryExpr,
    Cast,
    Column,
    Expr,
    IsNotNull,
    IsNull,
    Literal,
    Not,
)
from ballista.plan import (
    Aggregate,
    EmptyRelation,
    FileScan,
    Limit,
    LogicalPlan,
    MemoryScan,
    Projection,
    Selection,
    output_schema,
)
from ballista_polars.conversion import map_arrow_dtype, map_arrow_schema

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Operator / aggregate dispatch
# ---------------------------------------------------------------------------

_BINOP_MAP: dict[str, str] = {
    "+": "__add__",
    "-": "__sub__",
    "*": "__mul__",
    "/": "__truediv__",
    "%": "__mod__",
    ">": "__gt__",
    "<": "__lt__",
    ">=": "__ge__",
    "<=": "__le__",
    "==": "__eq__",
    "!=": "__ne__",
    "&": "__and__",
    "|": "__or__",
}

_AGGREGATE_MAP: dict[str, str] = {
    "MIN": "min",
    "MAX": "max",
    "SUM": "sum",
    "COUNT": "count",
    "AVG": "mean",
}


def _positional_name(index: int) -> str:
    return f"_{index}"


def _positional_layout(schema: pa.Schema) -> pa.Schema:
    """*schema* with every field renamed to its positional column name."""
    return pa.schema([f.with_name(_positional_name(i)) for i, f in enumerate(schema)])

# ---------------------------------------------------------------------------
# Plan wrappers
# ---------------------------------------------------------------------------


class PolarsPlan:
    """A translated plan: the lazy frame plus the schema it must produce."""

    __slots__ = ("frame", "schema")

    def __init__(self, frame: pl.LazyFrame, schema: pa.Schema) -> None:
        self.frame = frame
        self.schema = schema

    def __repr__(self) -> str:
        return f"PolarsPlan({len(self.schema)} columns)"


class PolarsExecutable:
    """A compiled plan, ready to run."""

    __slots__ = ("frame", "schema", "batch_size")

    def __init__(self, frame: pl.LazyFrame, schema: pa.Schema, batch_size: int) -> None:
        self.frame = frame
        self.schema = schema
        self.batch_size = batch_size

    def __repr__(self) -> str:
        return f"PolarsExecutable(batch_size={self.batch_size})"


# ---------------------------------------------------------------------------
# PolarsEngine
# ---------------------------------------------------------------------------


class PolarsEngine:
    """``LocalEngine`` backed by Polars lazy frames."""

    # --- Expression translation ---

    def translate_expr(self, expr: Expr, schema: pa.Schema) -> pl.Expr:
        """Recursively translate an expression evaluated against *schema*."""
        if isinstance(expr, Column):
            return pl.col(schema.field(expr.index).name)

        if isinstance(expr, Literal):
            return pl.lit(expr.value, dtype=map_arrow_dtype(expr.dtype))

        if isinstance(expr, AggregateFunction):
            method = _AGGREGATE_MAP.get(expr.name.upper())
            if method is None:
                msg = f"Unsupported aggregate function: {expr.name}"
                raise ValueError(msg)
            source = self.translate_expr(expr.args[0], schema)
            return getattr(source, method)().cast(map_arrow_dtype(expr.return_type))

        if isinstance(expr, BinaryExpr):
            left = self.translate_expr(expr.left, schema)
            right = self.translate_expr(expr.right, schema)
            method = _BINOP_MAP.get(expr.op)
            if method is None:
                msg = f"Unsupported binary operator: {expr.op}"
                raise ValueError(msg)
            return getattr(left, method)(right)

        if isinstance(expr, Not):
            return ~self.translate_expr(expr.expr, schema)

        if isinstance(expr, IsNull):
            return self.translate_expr(expr.expr, schema).is_null()

        if isinstance(expr, IsNotNull):
            return self.translate_expr(expr.expr, schema).is_not_null()

        if isinstance(expr, Cast):
            return self.translate_expr(expr.expr, schema).cast(map_arrow_dtype(expr.dtype))

        if isinstance(expr, Alias):
            return self.translate_expr(expr.expr, schema).alias(expr.name)

        msg = f"Unsupported expression type: {type(expr).__name__}"
        raise TypeError(msg)

    def _named(self, exprs: tuple[Expr, ...], layout: pa.Schema, start: int = 0) -> list[pl.Expr]:
        """Translate *exprs* and give each result a positional column name.

        Derived fields may share a name (two ``SUM`` aggregates, a repeated
        column), so frames carry ``_0``, ``_1``, ... and the declared names are
        restored by position in :func:`to_batches`.
        """
        return [
            self.translate_expr(e, layout).alias(_positional_name(start + i))
            for i, e in enumerate(exprs)
        ]

    # --- Plan translation ---

    def translate(self, plan: LogicalPlan) -> PolarsPlan:
        """Translate a logical plan into a Polars lazy frame."""
        frame, _ = self._translate(plan)
        return PolarsPlan(frame, output_schema(plan))

    def _translate(self, plan: LogicalPlan) -> tuple[pl.LazyFrame, pa.Schema]:
        """Return the lazy frame for *plan* and the column layout it actually has."""
        if isinstance(plan, EmptyRelation):
            return pl.LazyFrame(schema=map_arrow_schema(plan.schema)), plan.schema

        if isinstance(plan, MemoryScan):
            if not plan.batches:
                return pl.LazyFrame(schema=map_arrow_schema(plan.schema)), plan.schema
            table = pa.Table.from_batches(list(plan.batches), schema=plan.schema)
            return pl.from_arrow(table).lazy(), plan.schema

        if isinstance(plan, FileScan):
            return self._translate_file_scan(plan), plan.projected_schema

        if isinstance(plan, Projection):
            frame, layout = self._translate(plan.input)
            exprs = self._named(plan.expr, layout)
            return frame.select(exprs), _positional_layout(plan.schema)

        if isinstance(plan, Selection):
            frame, layout = self._translate(plan.input)
            return frame.filter(self.translate_expr(plan.expr, layout)), layout

        if isinstance(plan, Limit):
            frame, layout = self._translate(plan.input)
            return frame.limit(int(plan.expr.value)), layout

        if isinstance(plan, Aggregate):
            return self._translate_aggregate(plan), _positional_layout(plan.schema)

        msg = f"Unsupported plan node: {type(plan).__name__}"
        raise TypeError(msg)

    def _translate_file_scan(self, plan: FileScan) -> pl.LazyFrame:
        if plan.file_type == "csv":
            frame = pl.scan_csv(
                plan.path,
                schema=map_arrow_schema(plan.schema),
                has_header=plan.has_header,
                separator=plan.delimiter,
            )
        elif plan.file_type == "parquet":
            frame = pl.scan_parquet(plan.path)
        else:
            msg = f"Unsupported file type: {plan.file_type}"
            raise ValueError(msg)
        if plan.projection is not None:
            frame = frame.select([field.name for field in plan.projected_schema])
        return frame

    def _translate_aggregate(self, plan: Aggregate) -> pl.LazyFrame:
        frame, layout = self._translate(plan.input)
        n_group = len(plan.group_expr)
        keys = self._named(plan.group_expr, layout)
        aggs = self._named(plan.aggr_expr, layout, start=n_group)
        if not keys:
            return frame.select(aggs)
        return frame.group_by(keys, maintain_order=True).agg(aggs)

    # --- Optimization / compilation / execution ---

    def optimize(self, plan: PolarsPlan) -> PolarsPlan:
        """Polars optimizes lazily at collect time; log the optimized plan."""
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Optimized plan:\n%s", plan.frame.explain(optimized=True))
        return plan

    def create_physical_plan(self, plan: PolarsPlan, batch_size: int) -> PolarsExecutable:
        return PolarsExecutable(plan.frame, plan.schema, batch_size)

    def collect(self, executable: PolarsExecutable) -> list[pa.RecordBatch]:
        """Run the plan and return Arrow batches of at most ``batch_size`` rows."""
        table = executable.frame.collect().to_arrow()
        return to_batches(table, executable.schema, executable.batch_size)


def to_batches(table: pa.Table, schema: pa.Schema, batch_size: int) -> list[pa.RecordBatch]:
    """Cast *table* column-wise to *schema* and slice it into record batches."""
    columns: list[Any] = [table.column(i).cast(field.type) for i, field in enumerate(schema)]
    result = pa.Table.from_arrays(columns, schema=schema)
    return result.to_batches(max_chunksize=batch_size)
