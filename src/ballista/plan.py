"""Logical plan tree — immutable relational operators.

Each non-leaf node stores the schema derived when it was built; nothing
recomputes or mutates it afterwards. ``Selection`` has no schema of its own
and reports its input's. Nodes are frozen tagged ``msgspec.Struct`` values, so
deriving a new plan shares (never aliases mutably) the subtree it wraps.
"""

from __future__ import annotations

from typing import Union

import msgspec
import pyarrow as pa

from ballista.expr import ExprType, Literal, format_expr

# ---------------------------------------------------------------------------
# Base plan node
# ---------------------------------------------------------------------------


class LogicalPlan(msgspec.Struct, frozen=True, tag_field="node", tag=True):
    """Base class for all logical plan nodes."""


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class EmptyRelation(LogicalPlan, frozen=True):
    """Zero-row source with a fixed schema."""

    schema: pa.Schema


class MemoryScan(LogicalPlan, frozen=True):
    """Source over already-materialized record batches."""

    batches: tuple[pa.RecordBatch, ...]
    schema: pa.Schema

    def __repr__(self) -> str:
        rows = 0
        for b in self.batches:
            rows += b.num_rows
        return f"MemoryScan({len(self.batches)} batches, {rows} rows)"


class FileScan(LogicalPlan, frozen=True):
    """Source describing an external file.

    ``schema`` is the file's full schema; ``projected_schema`` keeps only the
    fields named by ``projection`` (or all of them when it is ``None``).
    """

    path: str
    file_type: str
    schema: pa.Schema
    projected_schema: pa.Schema
    projection: tuple[int, ...] | None = None
    has_header: bool = True
    delimiter: str = ","


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class Projection(LogicalPlan, frozen=True):
    expr: tuple[ExprType, ...]
    input: LogicalPlanType
    schema: pa.Schema


class Selection(LogicalPlan, frozen=True):
    expr: ExprType
    input: LogicalPlanType

    @property
    def schema(self) -> pa.Schema:
        return output_schema(self.input)


class Limit(LogicalPlan, frozen=True):
    expr: Literal
    input: LogicalPlanType
    schema: pa.Schema


class Aggregate(LogicalPlan, frozen=True):
    """Group-by plus aggregate expressions; schema is group fields then aggregates."""

    input: LogicalPlanType
    group_expr: tuple[ExprType, ...]
    aggr_expr: tuple[ExprType, ...]
    schema: pa.Schema


LogicalPlanType = Union[
    EmptyRelation,
    MemoryScan,
    FileScan,
    Projection,
    Selection,
    Limit,
    Aggregate,
]

# ---------------------------------------------------------------------------
# Traversal / display
# ---------------------------------------------------------------------------


def inputs(plan: LogicalPlan) -> tuple[LogicalPlan, ...]:
    """Return the direct children of *plan*."""
    if isinstance(plan, (Projection, Selection, Limit, Aggregate)):
        return (plan.input,)
    return ()


def output_schema(plan: LogicalPlan) -> pa.Schema:
    """Return the schema of the rows *plan* produces.

    A ``FileScan`` produces its projected schema; every other node its
    stored (or, for ``Selection``, inherited) schema.
    """
    if isinstance(plan, FileScan):
        return plan.projected_schema
    return plan.schema


def _describe(plan: LogicalPlan) -> str:
    if isinstance(plan, EmptyRelation):
        return "EmptyRelation"
    if isinstance(plan, MemoryScan):
        return f"MemoryScan: batches={len(plan.batches)}"
    if isinstance(plan, FileScan):
        projection = "None" if plan.projection is None else list(plan.projection)
        return (
            f"FileScan: path={plan.path}, file_type={plan.file_type}, "
            f"projection={projection}"
        )
    if isinstance(plan, Projection):
        return f"Projection: {', '.join(format_expr(e) for e in plan.expr)}"
    if isinstance(plan, Selection):
        return f"Selection: {format_expr(plan.expr)}"
    if isinstance(plan, Limit):
        return f"Limit: {plan.expr.value}"
    if isinstance(plan, Aggregate):
        group = ", ".join(format_expr(e) for e in plan.group_expr)
        aggr = ", ".join(format_expr(e) for e in plan.aggr_expr)
        return f"Aggregate: groupBy=[{group}], aggr=[{aggr}]"
    msg = f"Unsupported plan node: {type(plan).__name__}"
    raise TypeError(msg)


def format_plan(plan: LogicalPlan, indent: int = 0) -> str:
    """Render *plan* as an indented tree, one node per line."""
    lines = [f"{'  ' * indent}{_describe(plan)}"]
    for child in inputs(plan):
        lines.append(format_plan(child, indent + 1))
    return "\n".join(lines)
