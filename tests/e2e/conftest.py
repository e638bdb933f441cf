"""Shared fixtures for end-to-end tests.

Runs an in-process Arrow Flight executor that decodes ``Collect`` tickets and
executes them with the Polars engine, so Remote and Spark contexts can be
driven over a real socket.
"""

from __future__ import annotations

import socket
from collections.abc import Iterator

import pyarrow as pa
import pytest

from ballista import Collect, Context, decode_action, output_schema

flight = pytest.importorskip("pyarrow.flight")

# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class ExecutorServer(flight.FlightServerBase):
    """Minimal executor: every ticket is an encoded action."""

    def __init__(self, location: str = "grpc://127.0.0.1:0") -> None:
        super().__init__(location)
        self.received: list[Collect] = []

    def do_get(self, context, ticket):
        action = decode_action(ticket.ticket)
        self.received.append(action)
        batches = Context.local().collect(action.plan)
        table = pa.Table.from_batches(batches, schema=output_schema(action.plan))
        return flight.RecordBatchStream(table)


@pytest.fixture()
def executor() -> Iterator[ExecutorServer]:
    server = ExecutorServer()
    try:
        yield server
    finally:
        server.shutdown()


@pytest.fixture()
def closed_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

ORDERS = pa.schema(
    [
        pa.field("customer", pa.string()),
        pa.field("amount", pa.float64()),
        pa.field("qty", pa.int64()),
    ]
)


@pytest.fixture()
def orders() -> list[pa.RecordBatch]:
    return [
        pa.RecordBatch.from_pydict(
            {
                "customer": ["ann", "bob", "ann", "cy"],
                "amount": [10.0, 25.5, 4.5, 60.0],
                "qty": [1, 3, 1, 6],
            },
            schema=ORDERS,
        )
    ]
