"""Aggregate function constructors.

Every aggregate declares a Float64 return type regardless of its argument's
type; engines cast their result to match.
"""

from __future__ import annotations

import pyarrow as pa

from ballista.expr import AggregateFunction, Expr

AGGREGATE_RETURN_TYPE = pa.float64()


def aggregate_expr(name: str, expr: Expr) -> AggregateFunction:
    """Create an expression representing a named aggregate function."""
    return AggregateFunction(name, (expr,), AGGREGATE_RETURN_TYPE)


def min(expr: Expr) -> AggregateFunction:  # noqa: A001
    return aggregate_expr("MIN", expr)


def max(expr: Expr) -> AggregateFunction:  # noqa: A001
    return aggregate_expr("MAX", expr)


def sum(expr: Expr) -> AggregateFunction:  # noqa: A001
    return aggregate_expr("SUM", expr)


def count(expr: Expr) -> AggregateFunction:
    return aggregate_expr("COUNT", expr)


def avg(expr: Expr) -> AggregateFunction:
    return aggregate_expr("AVG", expr)
