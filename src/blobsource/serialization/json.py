"""
JSON record codec for event envelopes.

Each envelope is persisted as one JSON object holding the envelope metadata,
the event's short code and the event-specific payload fields::

    {"id": "b1", "sequence": 1, "eventType": "CE", "blobType": "text/plain", "data": "aGk="}

Payload fields per code:

====  ======================  ===========================
Code  Event                   Payload fields
====  ======================  ===========================
CE    BlobCreated             ``blobType``, ``data``
DUE   BlobDataUpdated         ``data`` (``null`` = cleared)
TAE   BlobTagsAdded           ``tags``
TUE   BlobTagsUpdated         ``tags``
TDE   BlobTagsDeleted         ``keys``
DE    BlobDeleted             (none)
RE    BlobRestored            (none)
====  ======================  ===========================

Binary data is written as base64 text. Decoding never guesses: an unknown
code or a malformed record raises SerializationError.

Example:
    >>> raw = encode_envelope(envelope)
    >>> assert decode_envelope(raw) == envelope
"""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from blobsource.events.base import (
    BlobCreated,
    BlobDataUpdated,
    BlobDeleted,
    BlobEvent,
    BlobRestored,
    BlobTagsAdded,
    BlobTagsDeleted,
    BlobTagsUpdated,
    EventEnvelope,
)
from blobsource.events.registry import (
    EventCodeNotFoundError,
    EventCodeRegistry,
    default_registry,
)
from blobsource.exceptions import SerializationError

# Envelope metadata keys; every other key in a record belongs to the payload
RECORD_ID = "id"
RECORD_SEQUENCE = "sequence"
RECORD_EVENT_TYPE = "eventType"


class BlobSourceJSONEncoder(json.JSONEncoder):
    """
    JSON encoder that writes bytes as base64 text.

    Example:
        >>> json.dumps({"data": b"hi"}, cls=BlobSourceJSONEncoder)
        '{"data": "aGk="}'
    """

    def default(self, obj: Any) -> Any:
        """
        Convert non-serializable objects to JSON-serializable formats.

        Raises:
            TypeError: If object type is not supported
        """
        if isinstance(obj, bytes | bytearray | memoryview):
            return base64.b64encode(bytes(obj)).decode("ascii")
        if isinstance(obj, tuple | frozenset):
            return list(obj)
        return super().default(obj)


def json_dumps(obj: Any) -> str:
    """Serialize object to a JSON string, writing bytes as base64."""
    return json.dumps(obj, cls=BlobSourceJSONEncoder)


def json_loads(s: str | bytes) -> Any:
    """
    Deserialize a JSON string.

    Note: base64 strings are NOT converted back to bytes here; the record
    decoders know which fields hold binary data.
    """
    return json.loads(s)


class _RecordHeader(BaseModel):
    """Envelope metadata shared by every record."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    aggregate_id: str = Field(alias=RECORD_ID)
    sequence: int = Field(alias=RECORD_SEQUENCE, ge=0)
    event_type: str = Field(alias=RECORD_EVENT_TYPE)


def _decode_bytes(value: Any) -> bytes | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"expected base64 string, got {type(value).__name__}")
    return base64.b64decode(value.encode("ascii"), validate=True)


# Per-variant payload writers and readers
_PAYLOAD_WRITERS: dict[type[BlobEvent], Callable[[Any], dict[str, Any]]] = {
    BlobCreated: lambda e: {"blobType": e.blob_type, "data": e.data},
    BlobDataUpdated: lambda e: {"data": e.data},
    BlobTagsAdded: lambda e: {"tags": dict(e.tags)},
    BlobTagsUpdated: lambda e: {"tags": dict(e.tags)},
    BlobTagsDeleted: lambda e: {"keys": list(e.keys)},
    BlobDeleted: lambda e: {},
    BlobRestored: lambda e: {},
}

_PAYLOAD_READERS: dict[type[BlobEvent], Callable[[dict[str, Any]], dict[str, Any]]] = {
    BlobCreated: lambda p: {"blob_type": p["blobType"], "data": _decode_bytes(p.get("data")) or b""},
    BlobDataUpdated: lambda p: {"data": _decode_bytes(p.get("data"))},
    BlobTagsAdded: lambda p: {"tags": p["tags"]},
    BlobTagsUpdated: lambda p: {"tags": p["tags"]},
    BlobTagsDeleted: lambda p: {"keys": p["keys"]},
    BlobDeleted: lambda p: {},
    BlobRestored: lambda p: {},
}


def envelope_to_record(
    envelope: EventEnvelope,
    registry: EventCodeRegistry | None = None,
) -> dict[str, Any]:
    """
    Convert an envelope into its persisted record.

    Binary fields stay as bytes; json_dumps writes them as base64.

    Raises:
        SerializationError: If the event variant has no registered code
    """
    if registry is None:
        registry = default_registry
    event = envelope.event
    writer = _PAYLOAD_WRITERS.get(type(event))
    try:
        code = registry.code_for(type(event))
    except EventCodeNotFoundError as e:
        raise SerializationError(event.event_type, "no event code registered") from e
    if writer is None:
        raise SerializationError(event.event_type, "no payload writer for this event")

    record: dict[str, Any] = {
        RECORD_ID: envelope.aggregate_id,
        RECORD_SEQUENCE: envelope.sequence,
        RECORD_EVENT_TYPE: code,
    }
    record.update(writer(event))
    return record


def record_to_envelope(
    record: dict[str, Any],
    registry: EventCodeRegistry | None = None,
) -> EventEnvelope:
    """
    Rebuild an envelope from a persisted record.

    Raises:
        SerializationError: If the code is unknown or the record is malformed
    """
    if registry is None:
        registry = default_registry
    if not isinstance(record, dict):
        raise SerializationError("record", f"expected JSON object, got {type(record).__name__}")

    try:
        header = _RecordHeader.model_validate(record)
    except PydanticValidationError as e:
        raise SerializationError(str(record.get(RECORD_EVENT_TYPE, "record")), str(e)) from e

    event_class = registry.get_or_none(header.event_type)
    reader = _PAYLOAD_READERS.get(event_class) if event_class is not None else None
    if event_class is None or reader is None:
        raise SerializationError(header.event_type, "unknown event code")

    payload = header.model_extra or {}
    try:
        event = event_class.model_validate(reader(payload))
        return EventEnvelope(
            aggregate_id=header.aggregate_id,
            sequence=header.sequence,
            event=event,
        )
    except KeyError as e:
        raise SerializationError(header.event_type, f"missing field {e}") from e
    except (TypeError, ValueError) as e:
        # pydantic's ValidationError is a ValueError
        raise SerializationError(header.event_type, str(e)) from e


def encode_envelope(envelope: EventEnvelope, registry: EventCodeRegistry | None = None) -> bytes:
    """Serialize an envelope to UTF-8 JSON bytes."""
    return json_dumps(envelope_to_record(envelope, registry)).encode("utf-8")


def decode_envelope(data: str | bytes, registry: EventCodeRegistry | None = None) -> EventEnvelope:
    """
    Deserialize an envelope from JSON text or bytes.

    Raises:
        SerializationError: If the data is not valid JSON or not a valid record
    """
    try:
        record = json_loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SerializationError("record", f"invalid JSON: {e}") from e
    return record_to_envelope(record, registry)


__all__ = [
    "BlobSourceJSONEncoder",
    "json_dumps",
    "json_loads",
    "envelope_to_record",
    "record_to_envelope",
    "encode_envelope",
    "decode_envelope",
]
