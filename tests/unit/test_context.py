"""Unit tests for Context construction and collect() dispatch.

The local engine and network client are replaced by recording fakes so the
dispatch rules can be checked without Polars or a live executor.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pyarrow as pa
import pytest

from ballista import (
    CSV_BATCH_SIZE,
    Collect,
    Column,
    ConfigurationError,
    Context,
    EngineError,
    Local,
    Remote,
    SchemaError,
    Spark,
    TransportError,
)
from ballista.context import spark_address
from ballista.state import SPARK_HOST, SPARK_PORT

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


def _batch() -> pa.RecordBatch:
    return pa.RecordBatch.from_pydict({"x": [1, 2, 3], "y": ["a", "b", "c"]})


class RecordingEngine:
    """LocalEngine that records every stage and returns canned batches."""

    def __init__(self, result: list[pa.RecordBatch] | None = None, fail: Exception | None = None):
        self.result = result if result is not None else [_batch()]
        self.fail = fail
        self.stages: list[str] = []
        self.batch_size: int | None = None

    def translate(self, plan: Any) -> Any:
        self.stages.append("translate")
        return plan

    def optimize(self, plan: Any) -> Any:
        self.stages.append("optimize")
        return plan

    def create_physical_plan(self, plan: Any, batch_size: int) -> Any:
        self.stages.append("create_physical_plan")
        self.batch_size = batch_size
        return plan

    def collect(self, executable: Any) -> list[pa.RecordBatch]:
        self.stages.append("collect")
        if self.fail is not None:
            raise self.fail
        return self.result


class RecordingClient:
    """ExecutionClient that records calls instead of opening a connection."""

    def __init__(self, result: list[pa.RecordBatch] | None = None, fail: Exception | None = None):
        self.result = result if result is not None else [_batch()]
        self.fail = fail
        self.calls: list[tuple[str, int, Any]] = []

    async def execute_action(self, host: str, port: int, action: Any) -> list[pa.RecordBatch]:
        self.calls.append((host, port, action))
        if self.fail is not None:
            raise self.fail
        return self.result


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_local_state(self) -> None:
        ctx = Context.local({CSV_BATCH_SIZE: "10"})
        assert isinstance(ctx.state, Local)
        assert dict(ctx.state.settings) == {CSV_BATCH_SIZE: "10"}

    def test_remote_state(self) -> None:
        ctx = Context.remote("executor", 50051)
        assert ctx.state == Remote(host="executor", port=50051)

    def test_spark_state(self) -> None:
        ctx = Context.spark("spark://master:7077", {SPARK_HOST: "h"})
        assert isinstance(ctx.state, Spark)
        assert ctx.state.master == "spark://master:7077"

    def test_settings_are_copied_and_read_only(self) -> None:
        settings = {CSV_BATCH_SIZE: "10"}
        ctx = Context.local(settings)
        settings[CSV_BATCH_SIZE] = "20"
        assert ctx.state.settings[CSV_BATCH_SIZE] == "10"
        with pytest.raises(TypeError):
            ctx.state.settings[CSV_BATCH_SIZE] = "30"  # type: ignore[index]

    def test_state_is_frozen(self) -> None:
        ctx = Context.remote("executor", 50051)
        with pytest.raises(AttributeError):
            ctx.state.port = 1  # type: ignore[misc]

    def test_remote_port_must_be_int(self) -> None:
        with pytest.raises(TypeError):
            Context.remote("executor", "50051")  # type: ignore[arg-type]

    @pytest.mark.parametrize("port", [-1, 65536])
    def test_remote_port_range(self, port: int) -> None:
        with pytest.raises(ConfigurationError):
            Context.remote("executor", port)

    def test_state_repr(self) -> None:
        assert repr(Context.local({"k": "v"}).state) == "Local { settings: {'k': 'v'} }"

    def test_from_state_shares_state(self) -> None:
        state = Local()
        assert Context.from_state(state).state is state


# ---------------------------------------------------------------------------
# Local dispatch
# ---------------------------------------------------------------------------


class TestLocalCollect:
    def test_runs_engine_pipeline_in_order(self) -> None:
        engine = RecordingEngine()
        batches = Context.local(engine=engine).create_dataframe([_batch()]).collect()
        assert batches == engine.result
        assert engine.stages == ["translate", "optimize", "create_physical_plan", "collect"]

    def test_default_batch_size(self) -> None:
        engine = RecordingEngine()
        Context.local(engine=engine).empty().collect()
        assert engine.batch_size == 1024

    def test_batch_size_override(self) -> None:
        engine = RecordingEngine()
        Context.local({CSV_BATCH_SIZE: "2048"}, engine=engine).empty().collect()
        assert engine.batch_size == 2048

    def test_invalid_batch_size_fails_before_engine(self) -> None:
        engine = RecordingEngine()
        ctx = Context.local({CSV_BATCH_SIZE: "abc"}, engine=engine)
        with pytest.raises(ConfigurationError):
            ctx.empty().collect()
        assert engine.stages == []

    def test_engine_failure_wrapped(self) -> None:
        cause = RuntimeError("engine exploded")
        engine = RecordingEngine(fail=cause)
        with pytest.raises(EngineError, match="engine exploded") as exc_info:
            Context.local(engine=engine).empty().collect()
        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause

    def test_ballista_errors_pass_through(self) -> None:
        engine = RecordingEngine(fail=SchemaError(unknown_names=["z"]))
        with pytest.raises(SchemaError):
            Context.local(engine=engine).empty().collect()

    def test_collect_async_local(self) -> None:
        engine = RecordingEngine()
        df = Context.local(engine=engine).empty()
        assert asyncio.run(df.collect_async()) == engine.result


# ---------------------------------------------------------------------------
# Remote / Spark dispatch
# ---------------------------------------------------------------------------


class TestRemoteCollect:
    def test_sends_collect_to_configured_address(self) -> None:
        client = RecordingClient()
        df = Context.remote("executor", 50051, client=client).create_dataframe([_batch()])
        df = df.filter(Column(0) > 1)
        assert df.collect() == client.result
        assert client.calls == [("executor", 50051, Collect(df.plan))]

    def test_transport_failure_wrapped(self) -> None:
        cause = ConnectionError("connection refused")
        client = RecordingClient(fail=cause)
        with pytest.raises(TransportError, match="connection refused") as exc_info:
            Context.remote("executor", 50051, client=client).empty().collect()
        assert exc_info.value.__cause__ is cause

    def test_collect_async(self) -> None:
        client = RecordingClient()
        df = Context.remote("executor", 1, client=client).empty()
        assert asyncio.run(df.collect_async()) == client.result
        assert client.calls[0][:2] == ("executor", 1)


class TestSparkCollect:
    def test_address_from_settings(self) -> None:
        client = RecordingClient()
        settings = {SPARK_HOST: "10.0.0.5", SPARK_PORT: "50051"}
        df = Context.spark("spark://m:7077", settings, client=client).empty()
        df.collect()
        assert client.calls == [("10.0.0.5", 50051, Collect(df.plan))]

    def test_missing_port_never_contacts_client(self) -> None:
        client = RecordingClient()
        ctx = Context.spark("spark://m:7077", {SPARK_HOST: "h"}, client=client)
        with pytest.raises(ConfigurationError, match=SPARK_PORT):
            ctx.empty().collect()
        assert client.calls == []

    def test_missing_both_keys_listed(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            spark_address(Spark(master="spark://m:7077"))
        assert SPARK_HOST in str(exc_info.value)
        assert SPARK_PORT in str(exc_info.value)

    @pytest.mark.parametrize("port", ["abc", "-1", "70000", ""])
    def test_invalid_port_rejected(self, port: str) -> None:
        client = RecordingClient()
        ctx = Context.spark("spark://m:7077", {SPARK_HOST: "h", SPARK_PORT: port}, client=client)
        with pytest.raises(ConfigurationError):
            ctx.empty().collect()
        assert client.calls == []
