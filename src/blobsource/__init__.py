"""
blobsource - Event-sourced persistence for binary blobs.

This library provides:
- Blob events, envelopes and the fold that rebuilds blob state
- Commands with validation and event generation rules
- A repository that processes commands against an event store
- Event Store with In-Memory, Filesystem and SQLite backends
- JSON record serialization and content chunking
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("blobsource-py")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from blobsource.aggregates.blob import Blob, fold
from blobsource.aggregates.repository import BlobRepository
from blobsource.cancellation import CancellationToken
from blobsource.chunks import Chunk, Chunks, split_into_chunks
from blobsource.commands import (
    BlobCommand,
    CreateBlob,
    DeleteBlob,
    RestoreBlob,
    UpdateBlob,
    UpdateBlobTags,
    generate_events,
    handle_command,
    validate_command,
)
from blobsource.config import StoreConfig, create_event_store
from blobsource.events import (
    BlobCreated,
    BlobDataUpdated,
    BlobDeleted,
    BlobEvent,
    BlobRestored,
    BlobTagsAdded,
    BlobTagsDeleted,
    BlobTagsUpdated,
    EventCodeRegistry,
    EventEnvelope,
    apply_event,
    default_registry,
    register_event,
    wrap,
)
from blobsource.exceptions import (
    AggregateMismatchError,
    BlobSourceError,
    CommandError,
    CommandValidationError,
    ConcurrencyConflictError,
    EventStoreError,
    MissingAggregateError,
    OperationCancelledError,
    SerializationError,
    StorageError,
    UnhandledEventError,
)
from blobsource.serialization import decode_envelope, encode_envelope
from blobsource.stores import (
    EventStore,
    FileSystemEventStore,
    InMemoryEventStore,
    SQLiteEventStore,
)

__all__ = [
    "__version__",
    # Aggregates
    "Blob",
    "fold",
    "BlobRepository",
    # Commands
    "BlobCommand",
    "CreateBlob",
    "UpdateBlob",
    "UpdateBlobTags",
    "DeleteBlob",
    "RestoreBlob",
    "validate_command",
    "generate_events",
    "handle_command",
    # Events
    "BlobEvent",
    "BlobCreated",
    "BlobDataUpdated",
    "BlobTagsAdded",
    "BlobTagsUpdated",
    "BlobTagsDeleted",
    "BlobDeleted",
    "BlobRestored",
    "EventEnvelope",
    "apply_event",
    "wrap",
    "EventCodeRegistry",
    "default_registry",
    "register_event",
    # Stores
    "EventStore",
    "InMemoryEventStore",
    "FileSystemEventStore",
    "SQLiteEventStore",
    "StoreConfig",
    "create_event_store",
    # Serialization
    "encode_envelope",
    "decode_envelope",
    # Chunks
    "Chunk",
    "Chunks",
    "split_into_chunks",
    # Cancellation
    "CancellationToken",
    # Exceptions
    "BlobSourceError",
    "CommandError",
    "CommandValidationError",
    "EventStoreError",
    "MissingAggregateError",
    "ConcurrencyConflictError",
    "AggregateMismatchError",
    "StorageError",
    "SerializationError",
    "UnhandledEventError",
    "OperationCancelledError",
]
