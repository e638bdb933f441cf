"""Ballista: a lazy query builder with local, remote, and Spark execution backends."""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _version

try:
    __version__: str = _version("ballista")
except PackageNotFoundError:
    __version__ = "0.0.0"

from ballista._protocols import ExecutionClient, LocalEngine, TableProvider
from ballista.config import CONFIG_SETTINGS, CSV_BATCH_SIZE, ConfigSetting, Configs
from ballista.context import Context
from ballista.dataframe import DataFrame
from ballista.datasource import CsvTable, ParquetTable
from ballista.errors import (
    BallistaError,
    ConfigurationError,
    EngineError,
    FeatureNotImplementedError,
    SchemaError,
    TransportError,
)
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
    Wildcard,
    lit,
)
from ballista.functions import aggregate_expr, avg, count, max, min, sum
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
from ballista.serde import Action, Collect, decode_action, encode_action
from ballista.state import ContextState, Local, Remote, Spark

__all__ = [
    # Context / DataFrame
    "Context",
    "DataFrame",
    # Backend state
    "ContextState",
    "Local",
    "Remote",
    "Spark",
    # Collaborators
    "LocalEngine",
    "ExecutionClient",
    "TableProvider",
    "CsvTable",
    "ParquetTable",
    # Configuration
    "Configs",
    "ConfigSetting",
    "CONFIG_SETTINGS",
    "CSV_BATCH_SIZE",
    # Expressions
    "Expr",
    "Column",
    "Literal",
    "Wildcard",
    "AggregateFunction",
    "BinaryExpr",
    "Not",
    "IsNull",
    "IsNotNull",
    "Cast",
    "Alias",
    "lit",
    # Aggregates
    "aggregate_expr",
    "min",
    "max",
    "sum",
    "count",
    "avg",
    # Logical plan
    "LogicalPlan",
    "EmptyRelation",
    "MemoryScan",
    "FileScan",
    "Projection",
    "Selection",
    "Limit",
    "Aggregate",
    "format_plan",
    "output_schema",
    # Wire
    "Action",
    "Collect",
    "encode_action",
    "decode_action",
    # Errors
    "BallistaError",
    "SchemaError",
    "FeatureNotImplementedError",
    "ConfigurationError",
    "EngineError",
    "TransportError",
]
