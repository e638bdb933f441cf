"""Expression tree — AST nodes referenced inside logical plan nodes.

Expressions are immutable values with structural equality. ``==`` compares
trees (it is how a ``Wildcard`` is found in a projection list), so equality
predicates are built with ``.eq()`` / ``.not_eq()`` instead. The other
comparison, arithmetic, and logical operators build ``BinaryExpr`` / ``Not``
nodes.

Every node is a tagged ``msgspec.Struct`` so a fully expanded plan can cross
the wire unchanged (see ``ballista.serde``).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Union

import msgspec
import pyarrow as pa

from ballista.errors import SchemaError

COMPARISON_OPS = frozenset({"==", "!=", "<", "<=", ">", ">="})
LOGICAL_OPS = frozenset({"&", "|"})
ARITHMETIC_OPS = frozenset({"+", "-", "*", "/", "%"})

# ---------------------------------------------------------------------------
# Base expression
# ---------------------------------------------------------------------------


class Expr(msgspec.Struct, frozen=True, tag_field="kind", tag=True):
    """Base class for all expression tree nodes."""

    # --- Comparison operators ---

    def __gt__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, ">", _wrap(other))

    def __lt__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, "<", _wrap(other))

    def __ge__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, ">=", _wrap(other))

    def __le__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, "<=", _wrap(other))

    def eq(self, other: Any) -> BinaryExpr:
        """Equality predicate (``==`` is structural equality)."""
        return BinaryExpr(self, "==", _wrap(other))

    def not_eq(self, other: Any) -> BinaryExpr:
        """Inequality predicate."""
        return BinaryExpr(self, "!=", _wrap(other))

    # --- Logical operators ---

    def __and__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, "&", _wrap(other))

    def __or__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, "|", _wrap(other))

    def __invert__(self) -> Not:
        return Not(self)

    # --- Arithmetic operators ---

    def __add__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, "+", _wrap(other))

    def __radd__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(_wrap(other), "+", self)

    def __sub__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, "-", _wrap(other))

    def __rsub__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(_wrap(other), "-", self)

    def __mul__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, "*", _wrap(other))

    def __rmul__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(_wrap(other), "*", self)

    def __truediv__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, "/", _wrap(other))

    def __rtruediv__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(_wrap(other), "/", self)

    def __mod__(self, other: Any) -> BinaryExpr:
        return BinaryExpr(self, "%", _wrap(other))

    # --- Null checks, casting, naming ---

    def is_null(self) -> IsNull:
        return IsNull(self)

    def is_not_null(self) -> IsNotNull:
        return IsNotNull(self)

    def cast(self, dtype: pa.DataType) -> Cast:
        return Cast(self, dtype)

    def alias(self, name: str) -> Alias:
        """Name the output field produced by this expression."""
        return Alias(self, name)


# ---------------------------------------------------------------------------
# Concrete AST nodes
# ---------------------------------------------------------------------------


class Column(Expr, frozen=True):
    """Positional reference into the input schema."""

    index: int

    def __repr__(self) -> str:
        return f"Column(#{self.index})"


class Literal(Expr, frozen=True):
    """A scalar constant tagged with its Arrow type."""

    value: Any
    dtype: pa.DataType

    def __repr__(self) -> str:
        return f"Literal({self.value!r}: {self.dtype})"


class Wildcard(Expr, frozen=True):
    """Stands for every input column. Only valid inside a projection list."""

    def __repr__(self) -> str:
        return "Wildcard"


class AggregateFunction(Expr, frozen=True):
    """Named aggregate call with a statically declared return type."""

    name: str
    args: tuple[ExprType, ...]
    return_type: pa.DataType

    def __repr__(self) -> str:
        return f"AggregateFunction({self.name}, args={list(self.args)!r})"


class BinaryExpr(Expr, frozen=True):
    """Binary operation (comparison, logical, arithmetic)."""

    left: ExprType
    op: str
    right: ExprType

    def __repr__(self) -> str:
        return f"BinaryExpr({self.left!r} {self.op} {self.right!r})"


class Not(Expr, frozen=True):
    expr: ExprType


class IsNull(Expr, frozen=True):
    expr: ExprType


class IsNotNull(Expr, frozen=True):
    expr: ExprType


class Cast(Expr, frozen=True):
    expr: ExprType
    dtype: pa.DataType


class Alias(Expr, frozen=True):
    expr: ExprType
    name: str


ExprType = Union[
    Column,
    Literal,
    Wildcard,
    AggregateFunction,
    BinaryExpr,
    Not,
    IsNull,
    IsNotNull,
    Cast,
    Alias,
]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _wrap(value: Any) -> Expr:
    """Wrap a raw Python value as a Literal unless it already is an Expr."""
    if isinstance(value, Expr):
        return value
    return lit(value)


def lit(value: Any, dtype: pa.DataType | None = None) -> Literal:
    """Create a literal expression, inferring the Arrow type when not given."""
    if dtype is None:
        dtype = pa.scalar(value).type
    return Literal(value, dtype)


def children(expr: Expr) -> tuple[Expr, ...]:
    """Return the direct sub-expressions of *expr*."""
    if isinstance(expr, BinaryExpr):
        return (expr.left, expr.right)
    if isinstance(expr, AggregateFunction):
        return expr.args
    if isinstance(expr, (Not, IsNull, IsNotNull, Cast, Alias)):
        return (expr.expr,)
    return ()


def collect_column_indices(expr: Expr) -> list[int]:
    """Return every column index referenced by *expr*, in traversal order."""
    if isinstance(expr, Column):
        return [expr.index]
    indices: list[int] = []
    for child in children(expr):
        indices.extend(collect_column_indices(child))
    return indices


def contains_wildcard(expr: Expr) -> bool:
    if isinstance(expr, Wildcard):
        return True
    return any(contains_wildcard(child) for child in children(expr))


# ---------------------------------------------------------------------------
# Schema derivation
# ---------------------------------------------------------------------------


def expr_to_field(expr: Expr, schema: pa.Schema) -> pa.Field:
    """Derive the output field of *expr* evaluated against *schema*."""
    _check_references([expr], schema)
    return _to_field(expr, schema)


def exprlist_to_fields(exprs: Sequence[Expr], schema: pa.Schema) -> list[pa.Field]:
    """Derive output fields for an expression list, in list order.

    Raises :class:`SchemaError` listing every out-of-range column index, or
    when a ``Wildcard`` survives into the list.
    """
    _check_references(exprs, schema)
    return [_to_field(e, schema) for e in exprs]


def _check_references(exprs: Sequence[Expr], schema: pa.Schema) -> None:
    n = len(schema)
    invalid: list[int] = []
    for e in exprs:
        for i in collect_column_indices(e):
            if (i < 0 or i >= n) and i not in invalid:
                invalid.append(i)
    if invalid:
        raise SchemaError(invalid_indices=invalid, field_count=n)
    if any(contains_wildcard(e) for e in exprs):
        raise SchemaError(misplaced_wildcard=True)


def _to_field(expr: Expr, schema: pa.Schema) -> pa.Field:
    if isinstance(expr, Column):
        return schema.field(expr.index)

    if isinstance(expr, Literal):
        return pa.field(str(expr.value), expr.dtype)

    if isinstance(expr, AggregateFunction):
        for arg in expr.args:
            _to_field(arg, schema)
        return pa.field(expr.name, expr.return_type)

    if isinstance(expr, BinaryExpr):
        left = _to_field(expr.left, schema)
        right = _to_field(expr.right, schema)
        name = f"{left.name} {expr.op} {right.name}"
        if expr.op in COMPARISON_OPS or expr.op in LOGICAL_OPS:
            return pa.field(name, pa.bool_())
        if expr.op not in ARITHMETIC_OPS:
            msg = f"Unsupported binary operator: {expr.op}"
            raise ValueError(msg)
        if (
            expr.op == "/"
            or pa.types.is_floating(left.type)
            or pa.types.is_floating(right.type)
        ):
            return pa.field(name, pa.float64())
        return pa.field(name, left.type)

    if isinstance(expr, Not):
        inner = _to_field(expr.expr, schema)
        return pa.field(f"NOT {inner.name}", pa.bool_())

    if isinstance(expr, IsNull):
        inner = _to_field(expr.expr, schema)
        return pa.field(f"{inner.name} IS NULL", pa.bool_(), nullable=False)

    if isinstance(expr, IsNotNull):
        inner = _to_field(expr.expr, schema)
        return pa.field(f"{inner.name} IS NOT NULL", pa.bool_(), nullable=False)

    if isinstance(expr, Cast):
        inner = _to_field(expr.expr, schema)
        return inner.with_type(expr.dtype)

    if isinstance(expr, Alias):
        return _to_field(expr.expr, schema).with_name(expr.name)

    if isinstance(expr, Wildcard):
        raise SchemaError(misplaced_wildcard=True)

    msg = f"Unsupported expression type: {type(expr).__name__}"
    raise TypeError(msg)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def format_expr(expr: Expr) -> str:
    """Render *expr* the way ``explain()`` prints it."""
    if isinstance(expr, Column):
        return f"#{expr.index}"
    if isinstance(expr, Literal):
        return f"{expr.dtype}({expr.value!r})"
    if isinstance(expr, Wildcard):
        return "*"
    if isinstance(expr, AggregateFunction):
        return f"{expr.name}({', '.join(format_expr(a) for a in expr.args)})"
    if isinstance(expr, BinaryExpr):
        return f"{format_expr(expr.left)} {expr.op} {format_expr(expr.right)}"
    if isinstance(expr, Not):
        return f"NOT {format_expr(expr.expr)}"
    if isinstance(expr, IsNull):
        return f"{format_expr(expr.expr)} IS NULL"
    if isinstance(expr, IsNotNull):
        return f"{format_expr(expr.expr)} IS NOT NULL"
    if isinstance(expr, Cast):
        return f"CAST({format_expr(expr.expr)} AS {expr.dtype})"
    if isinstance(expr, Alias):
        return f"{format_expr(expr.expr)} AS {expr.name}"
    msg = f"Unsupported expression type: {type(expr).__name__}"
    raise TypeError(msg)
