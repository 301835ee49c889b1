"""Library exceptions for the blobsource package."""

from collections.abc import Iterable


class BlobSourceError(Exception):
    """Base exception for blobsource library."""

    pass


class CommandError(BlobSourceError):
    """Raised when a command cannot be processed against a blob."""

    def __init__(self, command_type: str, aggregate_id: str, message: str) -> None:
        self.command_type = command_type
        self.aggregate_id = aggregate_id
        self.message = message
        super().__init__(
            f"Cannot process {command_type} command for blob '{aggregate_id}': {message}"
        )


class CommandValidationError(CommandError):
    """
    Raised when a command is illegal against the current state of a blob.

    Covers empty identifiers, lifecycle violations (e.g. updating a deleted
    blob) and conflicting command fields. Validation errors are raised before
    any event is persisted and are never retried.
    """

    pass


class EventStoreError(BlobSourceError):
    """Raised when there's an error in the event store."""

    pass


class MissingAggregateError(EventStoreError):
    """Raised when the event store holds no events for an aggregate."""

    def __init__(self, aggregate_id: str) -> None:
        self.aggregate_id = aggregate_id
        super().__init__(f"No events found for aggregate '{aggregate_id}'")


class ConcurrencyConflictError(EventStoreError):
    """
    Raised when a persisted batch collides with sequences already stored.

    The whole batch is rejected. This indicates a race or a stale read; the
    caller must reload the aggregate and retry the command.

    Attributes:
        aggregate_id: ID of the aggregate being written
        sequences: The conflicting sequence numbers
    """

    def __init__(self, aggregate_id: str, sequences: Iterable[int]) -> None:
        self.aggregate_id = aggregate_id
        self.sequences = sorted(set(sequences))
        conflicting = ", ".join(str(s) for s in self.sequences)
        super().__init__(
            f"Concurrency conflict for aggregate '{aggregate_id}': "
            f"sequence(s) {conflicting} already exist"
        )


class AggregateMismatchError(EventStoreError):
    """Raised when an envelope does not belong to the aggregate it is persisted under."""

    def __init__(self, aggregate_id: str, envelope_aggregate_id: str, sequence: int) -> None:
        self.aggregate_id = aggregate_id
        self.envelope_aggregate_id = envelope_aggregate_id
        self.sequence = sequence
        super().__init__(
            f"Cannot persist event {sequence} of aggregate '{envelope_aggregate_id}' "
            f"under aggregate '{aggregate_id}'"
        )


class StorageError(EventStoreError):
    """
    Raised when the underlying storage fails.

    Wraps the original error (available as ``__cause__``) with the aggregate
    and operation being performed. The repository attaches the command type
    when the failure happens while processing a command.
    """

    def __init__(
        self,
        aggregate_id: str,
        operation: str,
        reason: str,
        command_type: str | None = None,
    ) -> None:
        self.aggregate_id = aggregate_id
        self.operation = operation
        self.reason = reason
        self.command_type = command_type
        command_info = f" while processing {command_type}" if command_type else ""
        super().__init__(
            f"Storage failure during {operation} of aggregate '{aggregate_id}'"
            f"{command_info}: {reason}"
        )


class SerializationError(BlobSourceError):
    """Raised when event serialization or deserialization fails."""

    def __init__(self, event_type: str, message: str) -> None:
        self.event_type = event_type
        super().__init__(f"Serialization error for {event_type}: {message}")


class UnhandledEventError(BlobSourceError):
    """Raised when an object outside the blob event set is applied to a blob."""

    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        super().__init__(f"No apply rule for event type '{event_type}'")


class OperationCancelledError(BlobSourceError):
    """Raised when a store operation is cancelled or its deadline has passed."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Operation {operation} was cancelled")
