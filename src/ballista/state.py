"""The execution target a context is bound to.

A closed choice of ``Local``, ``Remote`` or ``Spark``, made once when the
context is created. States are frozen and their settings are read-only
views, so one state can be shared by every DataFrame derived from a context.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from ballista._protocols import ExecutionClient, LocalEngine

SPARK_HOST = "spark.ballista.host"
SPARK_PORT = "spark.ballista.port"


def freeze_settings(settings: Mapping[str, str] | None = None) -> Mapping[str, str]:
    """Copy *settings* into a read-only mapping."""
    return MappingProxyType(dict(settings or {}))


@dataclasses.dataclass(frozen=True, slots=True)
class Local:
    """Execute in-process with a local engine."""

    settings: Mapping[str, str] = dataclasses.field(default_factory=freeze_settings)
    engine: LocalEngine | None = dataclasses.field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "settings", freeze_settings(self.settings))

    def __repr__(self) -> str:
        return f"Local {{ settings: {dict(self.settings)!r} }}"


@dataclasses.dataclass(frozen=True, slots=True)
class Remote:
    """Execute on a remote executor at ``host:port``."""

    host: str
    port: int
    settings: Mapping[str, str] = dataclasses.field(default_factory=freeze_settings)
    client: ExecutionClient | None = dataclasses.field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "settings", freeze_settings(self.settings))

    def __repr__(self) -> str:
        return (
            f"Remote {{ host: {self.host!r}, port: {self.port}, "
            f"settings: {dict(self.settings)!r} }}"
        )


@dataclasses.dataclass(frozen=True, slots=True)
class Spark:
    """Execute through a Spark cluster manager.

    The executor address is read from ``spark_settings`` under
    ``spark.ballista.host`` / ``spark.ballista.port`` at collect time.
    """

    master: str
    spark_settings: Mapping[str, str] = dataclasses.field(default_factory=freeze_settings)
    client: ExecutionClient | None = dataclasses.field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "spark_settings", freeze_settings(self.spark_settings))

    def __repr__(self) -> str:
        return (
            f"Spark {{ master: {self.master!r}, "
            f"spark_settings: {dict(self.spark_settings)!r} }}"
        )


ContextState = Union[Local, Remote, Spark]
