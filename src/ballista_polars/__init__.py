"""Polars-backed local execution engine for Ballista."""

from ballista_polars.conversion import map_arrow_dtype, map_arrow_schema
from ballista_polars.engine import PolarsEngine, PolarsExecutable, PolarsPlan, to_batches

__all__ = [
    "PolarsEngine",
    "PolarsPlan",
    "PolarsExecutable",
    "map_arrow_dtype",
    "map_arrow_schema",
    "to_batches",
]
