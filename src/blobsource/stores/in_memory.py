"""
In-memory event store implementation.

Useful for testing and development. Not suitable for production
as all events are lost when the process terminates.
"""

import logging
import threading

from blobsource.cancellation import CancellationToken, check_cancelled
from blobsource.events.base import EventEnvelope
from blobsource.exceptions import ConcurrencyConflictError, MissingAggregateError
from blobsource.observability import (
    ATTR_AGGREGATE_ID,
    ATTR_EVENT_COUNT,
    ATTR_FIRST_SEQUENCE,
    ATTR_STORE_BACKEND,
    Tracer,
    create_tracer,
)
from blobsource.stores.interface import EventStore, check_batch

logger = logging.getLogger(__name__)


class InMemoryEventStore(EventStore):
    """
    In-memory implementation of the event store.

    Thread-safety:
        A single lock guards every aggregate. Envelopes are deep-copied on the
        way in and on the way out, so callers never share the stored objects.

    Example:
        >>> store = InMemoryEventStore()
        >>> store.persist("b1", envelopes)
        >>> assert store.find("b1") == envelopes
    """

    backend_name = "memory"

    def __init__(
        self,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize an empty in-memory event store.

        Args:
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: If True and OpenTelemetry is available, emit traces.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled

        # Envelopes by aggregate_id, kept in ascending sequence order
        self._events: dict[str, list[EventEnvelope]] = {}
        self._lock = threading.Lock()

    def find(
        self,
        aggregate_id: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[EventEnvelope]:
        with self._tracer.span(
            "blobsource.event_store.find",
            {ATTR_AGGREGATE_ID: aggregate_id, ATTR_STORE_BACKEND: self.backend_name},
        ):
            check_cancelled(cancel, "find")
            with self._lock:
                envelopes = self._events.get(aggregate_id)
                if not envelopes:
                    raise MissingAggregateError(aggregate_id)
                return [envelope.model_copy(deep=True) for envelope in envelopes]

    def persist(
        self,
        aggregate_id: str,
        envelopes: list[EventEnvelope],
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        batch = check_batch(aggregate_id, envelopes)
        if not batch:
            return

        with self._tracer.span(
            "blobsource.event_store.persist",
            {
                ATTR_AGGREGATE_ID: aggregate_id,
                ATTR_EVENT_COUNT: len(batch),
                ATTR_FIRST_SEQUENCE: batch[0].sequence,
                ATTR_STORE_BACKEND: self.backend_name,
            },
        ):
            check_cancelled(cancel, "persist")
            with self._lock:
                stored = self._events.get(aggregate_id, [])
                existing = {envelope.sequence for envelope in stored}
                conflicts = [e.sequence for e in batch if e.sequence in existing]
                if conflicts:
                    logger.warning(
                        "Concurrency conflict persisting %s: sequences %s exist",
                        aggregate_id,
                        conflicts,
                        extra={"aggregate_id": aggregate_id, "sequences": conflicts},
                    )
                    raise ConcurrencyConflictError(aggregate_id, conflicts)

                check_cancelled(cancel, "persist")
                merged = stored + [envelope.model_copy(deep=True) for envelope in batch]
                merged.sort(key=lambda e: e.sequence)
                self._events[aggregate_id] = merged

        logger.debug(
            "Persisted %d event(s) for %s",
            len(batch),
            aggregate_id,
            extra={"aggregate_id": aggregate_id, "event_count": len(batch)},
        )

    def aggregate_ids(self) -> list[str]:
        with self._lock:
            return sorted(aggregate_id for aggregate_id, events in self._events.items() if events)

    def get_sequence(
        self,
        aggregate_id: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> int:
        check_cancelled(cancel, "get_sequence")
        with self._lock:
            envelopes = self._events.get(aggregate_id)
            if not envelopes:
                raise MissingAggregateError(aggregate_id)
            return envelopes[-1].sequence

    def clear(self) -> None:
        """Remove every stored envelope."""
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        """Total number of stored envelopes across all aggregates."""
        with self._lock:
            return sum(len(events) for events in self._events.values())


__all__ = ["InMemoryEventStore"]
