"""Two-tier settings resolver: per-context overrides over a static catalog.

``get_setting(key)`` returns the override when present, else the catalog
default, else ``None``. Adding a setting is a matter of adding a
``ConfigSetting`` to ``CONFIG_SETTINGS``; no lookup code changes.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from types import MappingProxyType

from ballista.errors import ConfigurationError

CSV_BATCH_SIZE = "ballista.csv.batchSize"

# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@dataclasses.dataclass(frozen=True, slots=True)
class ConfigSetting:
    """A known setting with its description and optional default."""

    key: str
    description: str
    default_value: str | None = None


CONFIG_SETTINGS: tuple[ConfigSetting, ...] = (
    ConfigSetting(CSV_BATCH_SIZE, "Number of rows to read per batch", "1024"),
)


def _catalog(settings: tuple[ConfigSetting, ...]) -> Mapping[str, ConfigSetting]:
    return MappingProxyType({s.key: s for s in settings})


DEFAULT_CATALOG: Mapping[str, ConfigSetting] = _catalog(CONFIG_SETTINGS)

# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class Configs:
    """Resolve settings against user overrides, then catalog defaults."""

    __slots__ = ("_catalog", "_overrides")

    def __init__(
        self,
        overrides: Mapping[str, str] | None = None,
        catalog: Mapping[str, ConfigSetting] | None = None,
    ) -> None:
        self._overrides: Mapping[str, str] = MappingProxyType(dict(overrides or {}))
        self._catalog = DEFAULT_CATALOG if catalog is None else MappingProxyType(dict(catalog))

    def __repr__(self) -> str:
        return f"Configs(overrides={dict(self._overrides)!r})"

    @property
    def catalog(self) -> Mapping[str, ConfigSetting]:
        return self._catalog

    @property
    def overrides(self) -> Mapping[str, str]:
        return self._overrides

    def get_setting(self, key: str) -> str | None:
        """Return the effective value for *key*, or ``None`` if it is unknown."""
        if key in self._overrides:
            return self._overrides[key]
        setting = self._catalog.get(key)
        if setting is None:
            return None
        return setting.default_value

    def csv_batch_size(self) -> str | None:
        return self.get_setting(CSV_BATCH_SIZE)

    def get_int(self, key: str) -> int | None:
        """Parse *key* as a non-negative integer.

        Returns ``None`` when the key resolves to nothing. An unparseable
        value raises :class:`ConfigurationError`; it is never defaulted.
        """
        value = self.get_setting(key)
        if value is None:
            return None
        text = value.strip()
        if not text.isdecimal():
            msg = f"Setting {key!r} must be a non-negative integer, got {value!r}"
            raise ConfigurationError(msg)
        return int(text)

    def batch_size(self) -> int:
        """Return the effective read batch size as a positive integer."""
        size = self.get_int(CSV_BATCH_SIZE)
        if size is None or size == 0:
            msg = f"Setting {CSV_BATCH_SIZE!r} must be a positive integer, got {size!r}"
            raise ConfigurationError(msg)
        return size

    def describe_settings(self) -> list[tuple[str, str | None, str]]:
        """Return ``(key, effective value, description)`` for every catalog entry."""
        return [
            (key, self.get_setting(key), setting.description)
            for key, setting in sorted(self._catalog.items())
        ]
