"""Exception hierarchy for plan construction, configuration, and execution.

Construction-time errors (``SchemaError``) surface from the builder call that
caused them. Execution-time errors (``ConfigurationError``, ``EngineError``,
``TransportError``) surface only from ``collect()``. Nothing is retried.
"""

from __future__ import annotations


class BallistaError(Exception):
    """Base class for all errors raised by this package."""


# ---------------------------------------------------------------------------
# SchemaError
# ---------------------------------------------------------------------------


class SchemaError(BallistaError):
    """Raised when an expression cannot be resolved against an input schema."""

    def __init__(
        self,
        *,
        invalid_indices: list[int] | None = None,
        field_count: int | None = None,
        unknown_names: list[str] | None = None,
        misplaced_wildcard: bool = False,
        non_boolean_predicate: str | None = None,
        mismatched_batches: list[int] | None = None,
    ) -> None:
        self.invalid_indices = invalid_indices or []
        self.field_count = field_count
        self.unknown_names = unknown_names or []
        self.misplaced_wildcard = misplaced_wildcard
        self.non_boolean_predicate = non_boolean_predicate
        self.mismatched_batches = mismatched_batches or []
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        parts: list[str] = []
        if self.invalid_indices:
            indices = ", ".join(f"#{i}" for i in self.invalid_indices)
            parts.append(
                f"Invalid column references: {indices} (input has {self.field_count} fields)"
            )
        if self.unknown_names:
            parts.append(f"Unknown columns: {', '.join(self.unknown_names)}")
        if self.misplaced_wildcard:
            parts.append("Wildcard is only valid inside a projection list")
        if self.non_boolean_predicate:
            parts.append(f"Filter predicate must be boolean, got {self.non_boolean_predicate}")
        if self.mismatched_batches:
            positions = ", ".join(str(i) for i in self.mismatched_batches)
            parts.append(f"Record batches {positions} do not match the schema of batch 0")
        return " | ".join(parts) if parts else "Schema derivation failed"


# ---------------------------------------------------------------------------
# Dispatch errors
# ---------------------------------------------------------------------------


class FeatureNotImplementedError(BallistaError, NotImplementedError):
    """Raised by operations that no backend supports yet."""


class ConfigurationError(BallistaError):
    """Raised for missing or unparseable settings."""


class _DelegatedError(BallistaError):
    """Wraps a collaborator failure, keeping its message and chaining it."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(str(cause))


class EngineError(_DelegatedError):
    """Failure reported by the local execution engine."""


class TransportError(_DelegatedError):
    """Failure reported by the network execution client."""
