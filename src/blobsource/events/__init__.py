"""Blob events, envelopes and the event code registry."""

from blobsource.events.base import (
    MAX_SEQUENCE,
    BlobCreated,
    BlobDataUpdated,
    BlobDeleted,
    BlobEvent,
    BlobRestored,
    BlobTagsAdded,
    BlobTagsDeleted,
    BlobTagsUpdated,
    EventEnvelope,
    apply_event,
    wrap,
)
from blobsource.events.registry import (
    DuplicateEventCodeError,
    EventCodeNotFoundError,
    EventCodeRegistry,
    default_registry,
    register_event,
)

__all__ = [
    "BlobEvent",
    "BlobCreated",
    "BlobDataUpdated",
    "BlobTagsAdded",
    "BlobTagsUpdated",
    "BlobTagsDeleted",
    "BlobDeleted",
    "BlobRestored",
    "EventEnvelope",
    "MAX_SEQUENCE",
    "apply_event",
    "wrap",
    "EventCodeRegistry",
    "EventCodeNotFoundError",
    "DuplicateEventCodeError",
    "default_registry",
    "register_event",
]
