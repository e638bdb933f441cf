"""Collaborator protocols (what engines, clients, and table providers implement)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    import pyarrow as pa

    from ballista.plan import LogicalPlan
    from ballista.serde import Action


class LocalEngine(Protocol):
    """In-process execution engine used by ``Local`` contexts.

    ``collect()`` calls the four methods in order: ``translate`` the logical
    plan into the engine's native form, ``optimize`` it, compile it with the
    resolved batch size, then execute it eagerly. Anything raised is wrapped
    in ``EngineError``.
    """

    def translate(self, plan: LogicalPlan) -> Any:
        """Translate a logical plan into the engine-native representation."""
        ...

    def optimize(self, plan: Any) -> Any: ...

    def create_physical_plan(self, plan: Any, batch_size: int) -> Any: ...

    def collect(self, executable: Any) -> list[pa.RecordBatch]: ...


class ExecutionClient(Protocol):
    """Network client used by ``Remote`` and ``Spark`` contexts."""

    async def execute_action(self, host: str, port: int, action: Action) -> list[pa.RecordBatch]:
        """Send *action* to ``host:port`` and return the result batches in order."""
        ...


class TableProvider(Protocol):
    """A file-backed table whose declared schema can be read without scanning it."""

    def schema(self) -> pa.Schema: ...
