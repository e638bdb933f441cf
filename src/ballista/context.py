"""DataFrame factory and ``collect()`` dispatcher.

A context is bound to exactly one ``ContextState`` for its lifetime:

- ``Local``: resolve the batch size, then translate, optimize, compile, and
  execute the plan with the in-process engine on the calling thread.
- ``Remote``: send ``Collect(plan)`` to the configured ``host:port``.
- ``Spark``: same request, with the executor address read from the
  ``spark.ballista.host`` / ``spark.ballista.port`` settings.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from ballista.config import Configs
from ballista.dataframe import DataFrame
from ballista.errors import BallistaError, ConfigurationError, EngineError, TransportError
from ballista.serde import Collect
from ballista.state import SPARK_HOST, SPARK_PORT, ContextState, Local, Remote, Spark

if TYPE_CHECKING:
    import pyarrow as pa

    from ballista._protocols import ExecutionClient, LocalEngine
    from ballista.plan import LogicalPlan
    from ballista.serde import Action

logger = logging.getLogger(__name__)

_MAX_PORT = 65535


def _default_engine() -> LocalEngine:
    try:
        from ballista_polars import PolarsEngine
    except ImportError as exc:
        msg = "No local engine available: install polars or pass engine=... to Context.local()"
        raise ConfigurationError(msg) from exc
    return PolarsEngine()


def _default_client() -> ExecutionClient:
    from ballista.client import FlightClient

    return FlightClient()


def _parse_port(value: object, source: str) -> int:
    text = str(value).strip()
    if not text.isdecimal() or int(text) > _MAX_PORT:
        msg = f"{source} must be an unsigned integer port, got {value!r}"
        raise ConfigurationError(msg)
    return int(text)


def spark_address(state: Spark) -> tuple[str, int]:
    """Return the executor ``(host, port)`` configured for a Spark state."""
    settings = state.spark_settings
    missing = [key for key in (SPARK_HOST, SPARK_PORT) if key not in settings]
    if missing:
        msg = f"Missing Spark settings: {', '.join(missing)}"
        raise ConfigurationError(msg)
    return settings[SPARK_HOST], _parse_port(settings[SPARK_PORT], SPARK_PORT)


class Context:
    """Entry point for building DataFrames against one execution backend."""

    __slots__ = ("_state",)

    def __init__(self, state: ContextState) -> None:
        self._state = state

    def __repr__(self) -> str:
        return f"Context({self._state!r})"

    # --- Construction ---

    @classmethod
    def local(
        cls,
        settings: Mapping[str, str] | None = None,
        *,
        engine: LocalEngine | None = None,
    ) -> Context:
        """Create a context that executes in-process."""
        return cls(Local(settings=settings, engine=engine))

    @classmethod
    def remote(
        cls,
        host: str,
        port: int,
        settings: Mapping[str, str] | None = None,
        *,
        client: ExecutionClient | None = None,
    ) -> Context:
        """Create a context that executes on a remote executor."""
        if isinstance(port, bool) or not isinstance(port, int):
            msg = f"port must be an int, got {type(port).__name__}"
            raise TypeError(msg)
        port = _parse_port(port, "port")
        return cls(Remote(host=host, port=port, settings=settings, client=client))

    @classmethod
    def spark(
        cls,
        master: str,
        settings: Mapping[str, str] | None = None,
        *,
        client: ExecutionClient | None = None,
    ) -> Context:
        """Create a context that executes through a Spark cluster manager."""
        return cls(Spark(master=master, spark_settings=settings, client=client))

    @classmethod
    def from_state(cls, state: ContextState) -> Context:
        return cls(state)

    @property
    def state(self) -> ContextState:
        return self._state

    # --- DataFrame factories ---

    def empty(self, schema: pa.Schema | None = None) -> DataFrame:
        return DataFrame.empty(self._state, schema)

    def create_dataframe(self, batches: Sequence[pa.RecordBatch]) -> DataFrame:
        """Create a DataFrame from existing record batches."""
        return DataFrame.from_batches(self._state, batches)

    def read_csv(
        self,
        path: str,
        schema: pa.Schema | None = None,
        projection: Sequence[int] | None = None,
        has_header: bool = True,
        delimiter: str = ",",
    ) -> DataFrame:
        """Create a DataFrame scanning a CSV file."""
        return DataFrame.scan_csv(
            self._state, path, schema, projection, has_header=has_header, delimiter=delimiter
        )

    def read_parquet(self, path: str, projection: Sequence[int] | None = None) -> DataFrame:
        """Create a DataFrame scanning a Parquet file."""
        return DataFrame.scan_parquet(self._state, path, projection)

    # --- Execution ---

    async def execute_action(self, host: str, port: int, action: Action) -> list[pa.RecordBatch]:
        """Send *action* to an executor with this context's network client."""
        state = self._state
        client = getattr(state, "client", None) or _default_client()
        try:
            return await client.execute_action(host, port, action)
        except BallistaError:
            raise
        except Exception as exc:
            raise TransportError(exc) from exc

    def collect(self, plan: LogicalPlan) -> list[pa.RecordBatch]:
        """Execute *plan* on the bound backend.

        Local plans run on the calling thread. Remote and Spark plans run one
        network round trip on a fresh event loop; use ``collect_async()``
        from inside a running loop.
        """
        if isinstance(self._state, Local):
            return self._collect_local(self._state, plan)
        return asyncio.run(self.collect_async(plan))

    async def collect_async(self, plan: LogicalPlan) -> list[pa.RecordBatch]:
        state = self._state
        if isinstance(state, Local):
            return self._collect_local(state, plan)
        if isinstance(state, Remote):
            host, port = state.host, state.port
        elif isinstance(state, Spark):
            host, port = spark_address(state)
            logger.debug("Spark master %s resolved executor %s:%d", state.master, host, port)
        else:
            msg = f"Unsupported context state: {type(state).__name__}"
            raise TypeError(msg)
        logger.info("Dispatching Collect to %s executor at %s:%d", type(state).__name__, host, port)
        return await self.execute_action(host, port, Collect(plan))

    def _collect_local(self, state: Local, plan: LogicalPlan) -> list[pa.RecordBatch]:
        batch_size = Configs(state.settings).batch_size()
        logger.debug("batch_size=%d", batch_size)
        engine = state.engine or _default_engine()
        logger.info("Executing plan locally with %s", type(engine).__name__)
        try:
            native = engine.translate(plan)
            optimized = engine.optimize(native)
            executable = engine.create_physical_plan(optimized, batch_size)
            return engine.collect(executable)
        except BallistaError:
            raise
        except Exception as exc:
            raise EngineError(exc) from exc
