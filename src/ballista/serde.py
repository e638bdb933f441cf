"""Wire encoding for actions sent to remote executors.

``Collect(plan)`` is the only action. It is encoded as MessagePack through
msgspec; Arrow values inside the plan travel as msgpack extension types:

- schemas and data types as Arrow IPC schema messages
- record batches as single-batch Arrow IPC streams
"""

from __future__ import annotations

from typing import Any, Union

import msgspec
import pyarrow as pa

from ballista.plan import LogicalPlanType

SCHEMA_EXT_CODE = 1
DATATYPE_EXT_CODE = 2
RECORD_BATCH_EXT_CODE = 3

_DATATYPE_FIELD = "item"

# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class Action(msgspec.Struct, frozen=True, tag_field="action", tag=True):
    """Base class for requests sent to an executor."""


class Collect(Action, frozen=True):
    """Execute ``plan`` and stream every result batch back."""

    plan: LogicalPlanType


ActionType = Union[Collect]

# ---------------------------------------------------------------------------
# Arrow <-> bytes
# ---------------------------------------------------------------------------


def _schema_to_bytes(schema: pa.Schema) -> bytes:
    return schema.serialize().to_pybytes()


def _schema_from_bytes(data: bytes) -> pa.Schema:
    return pa.ipc.read_schema(pa.py_buffer(data))


def _batch_to_bytes(batch: pa.RecordBatch) -> bytes:
    sink = pa.BufferOutputStream()
    with pa.ipc.new_stream(sink, batch.schema) as writer:
        writer.write_batch(batch)
    return sink.getvalue().to_pybytes()


def _batch_from_bytes(data: bytes) -> pa.RecordBatch:
    reader = pa.ipc.open_stream(pa.py_buffer(data))
    return reader.read_next_batch()


# ---------------------------------------------------------------------------
# msgspec hooks
# ---------------------------------------------------------------------------


def _enc_hook(obj: object) -> object:
    if isinstance(obj, pa.Schema):
        return msgspec.msgpack.Ext(SCHEMA_EXT_CODE, _schema_to_bytes(obj))
    if isinstance(obj, pa.DataType):
        schema = pa.schema([pa.field(_DATATYPE_FIELD, obj)])
        return msgspec.msgpack.Ext(DATATYPE_EXT_CODE, _schema_to_bytes(schema))
    if isinstance(obj, pa.RecordBatch):
        return msgspec.msgpack.Ext(RECORD_BATCH_EXT_CODE, _batch_to_bytes(obj))
    msg = f"Cannot encode object of type {type(obj).__name__}"
    raise NotImplementedError(msg)


def _ext_hook(code: int, data: memoryview) -> object:
    if code == SCHEMA_EXT_CODE:
        return _schema_from_bytes(bytes(data))
    if code == DATATYPE_EXT_CODE:
        return _schema_from_bytes(bytes(data)).field(_DATATYPE_FIELD).type
    if code == RECORD_BATCH_EXT_CODE:
        return _batch_from_bytes(bytes(data))
    msg = f"Unknown msgpack extension code: {code}"
    raise NotImplementedError(msg)


def _dec_hook(type_hint: Any, obj: object) -> object:
    if isinstance(type_hint, type) and isinstance(obj, type_hint):
        return obj
    msg = f"Expected {type_hint!r}, got {type(obj).__name__}"
    raise NotImplementedError(msg)


_encoder = msgspec.msgpack.Encoder(enc_hook=_enc_hook)
_decoder = msgspec.msgpack.Decoder(ActionType, dec_hook=_dec_hook, ext_hook=_ext_hook)


def encode_action(action: Action) -> bytes:
    """Serialize *action* for transport."""
    return _encoder.encode(action)


def decode_action(data: bytes) -> Action:
    """Inverse of :func:`encode_action`."""
    return _decoder.decode(data)
