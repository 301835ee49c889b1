"""
Repository that loads blobs and processes commands against them.

Processing a command is a fixed pipeline::

    find -> fold -> validate -> generate -> persist -> fold new envelopes

The returned state is the pre-command state with the new envelopes folded on
top; the store is not read again after a successful persist.
"""

import logging

from blobsource.aggregates.blob import Blob, fold
from blobsource.cancellation import CancellationToken
from blobsource.commands.base import BlobCommand
from blobsource.commands.handlers import generate_events, validate_command
from blobsource.exceptions import (
    CommandValidationError,
    ConcurrencyConflictError,
    MissingAggregateError,
    StorageError,
)
from blobsource.observability import Tracer, create_tracer
from blobsource.observability.attributes import (
    ATTR_AGGREGATE_ID,
    ATTR_COMMAND_TYPE,
    ATTR_EVENT_COUNT,
    ATTR_SEQUENCE,
)
from blobsource.stores.interface import EventStore

logger = logging.getLogger(__name__)


class BlobRepository:
    """
    Repository for blob aggregates.

    Holds only a reference to its event store; every call reads fresh state,
    so one repository can be shared between threads as long as the store can.

    Example:
        >>> repo = BlobRepository(InMemoryEventStore())
        >>> repo.process(CreateBlob("b1", blob_type="text/plain", data=b"hi"))
        >>> repo.process(UpdateBlobTags("b1", add_or_update={"env": "prod"}))
        >>> repo.find("b1").tags
        {'env': 'prod'}
    """

    def __init__(
        self,
        event_store: EventStore,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the repository.

        Args:
            event_store: Store holding the blobs' envelopes
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: If True and OpenTelemetry is available, emit traces.
        """
        self._event_store = event_store
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled

    @property
    def event_store(self) -> EventStore:
        """Get the event store used by this repository."""
        return self._event_store

    def find(self, aggregate_id: str, *, cancel: CancellationToken | None = None) -> Blob:
        """
        Load a blob by folding its envelopes.

        Args:
            aggregate_id: ID of the blob
            cancel: Optional cancellation token passed to the store

        Returns:
            The current state of the blob

        Raises:
            MissingAggregateError: If the store holds no envelopes for the blob
        """
        with self._tracer.span(
            "blobsource.repository.find",
            {ATTR_AGGREGATE_ID: aggregate_id},
        ) as span:
            envelopes = self._event_store.find(aggregate_id, cancel=cancel)
            blob = fold(envelopes)
            if span:
                span.set_attribute(ATTR_SEQUENCE, blob.sequence)
            logger.debug(
                "Loaded blob %s at sequence %d (%d events)",
                aggregate_id,
                blob.sequence,
                len(envelopes),
            )
            return blob

    def process(self, command: BlobCommand, *, cancel: CancellationToken | None = None) -> Blob:
        """
        Validate a command, persist the events it produces and return the new state.

        A blob with no history is treated as the empty Blob, so validation
        decides whether the command may act on it. Commands that produce no
        events return the current state without writing anything.

        Args:
            command: The command to process
            cancel: Optional cancellation token passed to the store

        Returns:
            The blob state after the command

        Raises:
            CommandValidationError: If the command is illegal; nothing is written
            ConcurrencyConflictError: If another writer got there first; reload and retry
            StorageError: If the store fails; ``command_type`` names the command
        """
        with self._tracer.span(
            "blobsource.repository.process",
            {
                ATTR_AGGREGATE_ID: command.aggregate_id,
                ATTR_COMMAND_TYPE: command.command_type,
            },
        ) as span:
            try:
                current = self._load_or_empty(command.aggregate_id, cancel)

                try:
                    validate_command(command, current)
                except CommandValidationError as e:
                    logger.warning(
                        "Rejected %s: %s",
                        command,
                        e.message,
                        extra={
                            "command_type": command.command_type,
                            "aggregate_id": command.aggregate_id,
                        },
                    )
                    raise

                envelopes = generate_events(command, current)
                if not envelopes:
                    logger.debug("%s produced no events", command)
                    return current

                try:
                    self._event_store.persist(command.aggregate_id, envelopes, cancel=cancel)
                except ConcurrencyConflictError:
                    logger.warning(
                        "Conflict while processing %s at sequence %d",
                        command,
                        current.sequence,
                        extra={
                            "command_type": command.command_type,
                            "aggregate_id": command.aggregate_id,
                        },
                    )
                    raise
            except StorageError as e:
                if e.command_type is not None:
                    raise
                raise StorageError(
                    e.aggregate_id,
                    e.operation,
                    e.reason,
                    command_type=command.command_type,
                ) from e

            blob = fold(envelopes, current)
            if span:
                span.set_attribute(ATTR_EVENT_COUNT, len(envelopes))
                span.set_attribute(ATTR_SEQUENCE, blob.sequence)
            logger.debug(
                "Processed %s: %d event(s), now at sequence %d",
                command,
                len(envelopes),
                blob.sequence,
                extra={
                    "command_type": command.command_type,
                    "aggregate_id": command.aggregate_id,
                    "event_count": len(envelopes),
                },
            )
            return blob

    def _load_or_empty(self, aggregate_id: str, cancel: CancellationToken | None) -> Blob:
        try:
            return fold(self._event_store.find(aggregate_id, cancel=cancel))
        except MissingAggregateError:
            return Blob()

    def exists(self, aggregate_id: str, *, cancel: CancellationToken | None = None) -> bool:
        """
        Check if a blob has any history.

        Deleted blobs still exist; use ``find(...).is_active`` to tell them apart.
        """
        try:
            self._event_store.find(aggregate_id, cancel=cancel)
        except MissingAggregateError:
            return False
        return True

    def get_sequence(self, aggregate_id: str, *, cancel: CancellationToken | None = None) -> int:
        """
        Get the current sequence of a blob.

        Returns:
            Highest stored sequence (0 if the blob doesn't exist)
        """
        try:
            return self._event_store.get_sequence(aggregate_id, cancel=cancel)
        except MissingAggregateError:
            return 0


__all__ = ["BlobRepository"]
