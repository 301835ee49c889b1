"""
Event store interface.

The event store is the source of truth for every blob: it persists envelopes
per aggregate and returns them in ascending sequence order for folding.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from types import TracebackType
from typing import ClassVar

from blobsource.cancellation import CancellationToken
from blobsource.events.base import EventEnvelope
from blobsource.exceptions import AggregateMismatchError, ConcurrencyConflictError


class EventStore(ABC):
    """
    Abstract base class for event stores.

    Implementations must guarantee:
    - ``find`` returns envelopes in ascending sequence order, or raises
      MissingAggregateError when the aggregate has none
    - ``persist`` is all-or-nothing: a batch that touches an existing
      sequence, repeats a sequence, or names another aggregate is rejected
      as a whole and leaves the store unchanged
    - an empty batch is a no-op

    Concrete implementations:
    - InMemoryEventStore: For testing and development
    - FileSystemEventStore: One file per envelope under a base directory
    - SQLiteEventStore: Embedded SQLite database through SQLAlchemy

    Example:
        >>> with InMemoryEventStore() as store:
        ...     store.persist("b1", envelopes)
        ...     history = store.find("b1")
    """

    backend_name: ClassVar[str] = ""

    @abstractmethod
    def find(
        self,
        aggregate_id: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[EventEnvelope]:
        """
        Load all envelopes of an aggregate.

        Args:
            aggregate_id: ID of the aggregate
            cancel: Optional cancellation token

        Returns:
            Envelopes in ascending sequence order

        Raises:
            MissingAggregateError: If the aggregate has no envelopes
            StorageError: If the backend fails
            OperationCancelledError: If the token is cancelled
        """
        pass

    @abstractmethod
    def persist(
        self,
        aggregate_id: str,
        envelopes: list[EventEnvelope],
        *,
        cancel: CancellationToken | None = None,
    ) -> None:
        """
        Atomically append a batch of envelopes to an aggregate.

        Args:
            aggregate_id: ID of the aggregate
            envelopes: Envelopes to store
            cancel: Optional cancellation token

        Raises:
            ConcurrencyConflictError: If any sequence already exists
            AggregateMismatchError: If an envelope belongs to another aggregate
            StorageError: If the backend fails
            OperationCancelledError: If the token is cancelled
        """
        pass

    @abstractmethod
    def aggregate_ids(self) -> list[str]:
        """List the IDs of all aggregates with at least one envelope, sorted."""
        pass

    def get_sequence(
        self,
        aggregate_id: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> int:
        """
        Get the highest stored sequence of an aggregate.

        Default implementation loads the envelopes. Implementations may
        override for efficiency.

        Raises:
            MissingAggregateError: If the aggregate has no envelopes
        """
        return self.find(aggregate_id, cancel=cancel)[-1].sequence

    def close(self) -> None:
        """Release any resources held by the store."""
        pass

    def __enter__(self) -> EventStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def check_batch(aggregate_id: str, envelopes: Iterable[EventEnvelope]) -> list[EventEnvelope]:
    """
    Check a batch before it is written.

    Returns the batch as a list.

    Raises:
        AggregateMismatchError: If an envelope names another aggregate
        ConcurrencyConflictError: If a sequence appears twice in the batch
    """
    batch = list(envelopes)
    seen: set[int] = set()
    repeated: set[int] = set()
    for envelope in batch:
        if envelope.aggregate_id != aggregate_id:
            raise AggregateMismatchError(aggregate_id, envelope.aggregate_id, envelope.sequence)
        if envelope.sequence in seen:
            repeated.add(envelope.sequence)
        seen.add(envelope.sequence)
    if repeated:
        raise ConcurrencyConflictError(aggregate_id, repeated)
    return batch


__all__ = [
    "EventStore",
    "check_batch",
]
