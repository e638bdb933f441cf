"""Dtype mapping from Arrow types to Polars types."""

from __future__ import annotations

import polars as pl
import pyarrow as pa

# ---------------------------------------------------------------------------
# Arrow → Polars mapping (non-parametric types)
# ---------------------------------------------------------------------------

ARROW_TO_POLARS: dict[pa.DataType, pl.DataType] = {
    pa.null(): pl.Null(),
    pa.bool_(): pl.Boolean(),
    pa.uint8(): pl.UInt8(),
    pa.uint16(): pl.UInt16(),
    pa.uint32(): pl.UInt32(),
    pa.uint64(): pl.UInt64(),
    pa.int8(): pl.Int8(),
    pa.int16(): pl.Int16(),
    pa.int32(): pl.Int32(),
    pa.int64(): pl.Int64(),
    pa.float32(): pl.Float32(),
    pa.float64(): pl.Float64(),
    pa.string(): pl.String(),
    pa.large_string(): pl.String(),
    pa.binary(): pl.Binary(),
    pa.large_binary(): pl.Binary(),
    pa.date32(): pl.Date(),
    pa.date64(): pl.Date(),
}

_POLARS_TIME_UNITS = ("ms", "us", "ns")


def _time_unit(unit: str) -> str:
    # Polars has no second resolution; widen to milliseconds.
    return unit if unit in _POLARS_TIME_UNITS else "ms"


def map_arrow_dtype(dtype: pa.DataType) -> pl.DataType:
    """Map an Arrow DataType to a Polars DataType.

    Handles:
    - Concrete types (int64 → pl.Int64, string/large_string → pl.String)
    - Timestamps and durations, keeping unit and time zone
    - Time of day
    - List and struct types, recursively
    """
    if dtype in ARROW_TO_POLARS:
        return ARROW_TO_POLARS[dtype]

    if pa.types.is_timestamp(dtype):
        return pl.Datetime(time_unit=_time_unit(dtype.unit), time_zone=dtype.tz)

    if pa.types.is_duration(dtype):
        return pl.Duration(time_unit=_time_unit(dtype.unit))

    if pa.types.is_time(dtype):
        return pl.Time()

    if pa.types.is_list(dtype) or pa.types.is_large_list(dtype):
        return pl.List(map_arrow_dtype(dtype.value_type))

    if pa.types.is_struct(dtype):
        fields = [pl.Field(f.name, map_arrow_dtype(f.type)) for f in dtype]
        return pl.Struct(fields)

    msg = f"Unsupported Arrow dtype: {dtype}"
    raise TypeError(msg)


def map_arrow_schema(schema: pa.Schema) -> dict[str, pl.DataType]:
    """Build a Polars schema dict from an Arrow schema."""
    return {field.name: map_arrow_dtype(field.type) for field in schema}
