"""
Conformance test suite for EventStore implementations.

Backends subclass the suite with a pytest-collectable name and supply
``create_store``; every ``test_*`` method then runs against that backend.

Example:
    >>> class TestMyStoreConformance(EventStoreConformanceSuite):
    ...     def create_store(self) -> EventStore:
    ...         return MyEventStore()
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable

import pytest

from blobsource.aggregates.blob import fold
from blobsource.cancellation import CancellationToken
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
    wrap,
)
from blobsource.exceptions import (
    AggregateMismatchError,
    ConcurrencyConflictError,
    MissingAggregateError,
    OperationCancelledError,
)
from blobsource.stores.interface import EventStore


def sample_history(aggregate_id: str) -> list[EventEnvelope]:
    """One envelope of every event variant, numbered from 1."""
    events: list[BlobEvent] = [
        BlobCreated(blob_type="text/plain", data=b"\x00hello\xff"),
        BlobDataUpdated(data=b"world"),
        BlobTagsAdded(tags={"env": "prod", "team": "core"}),
        BlobTagsUpdated(tags={"env": "staging"}),
        BlobTagsDeleted(keys=("team",)),
        BlobDeleted(),
        BlobRestored(),
        BlobDataUpdated(data=None),
    ]
    return wrap(aggregate_id, 1, events)


class EventStoreConformanceSuite(ABC):
    """
    Base test suite for EventStore implementations.

    Test Coverage:
        - persist and find roundtrip for every event variant
        - ascending order across several batches
        - aggregate isolation
        - missing aggregates
        - whole-batch rejection on conflicts, in-batch duplicates and
          mismatched aggregate ids
        - empty batches
        - cancellation before reading and before committing
        - aggregate listing and sequence lookup
        - callers cannot change stored history through returned or
          persisted envelopes
        - racing writers of one sequence: exactly one wins
    """

    @abstractmethod
    def create_store(self) -> EventStore:
        """
        Create a fresh, empty EventStore instance for testing.

        Called at the start of each test method.
        """
        pass

    def test_persist_and_find_roundtrip(self) -> None:
        """Every event variant comes back equal to what was persisted."""
        store = self.create_store()
        history = sample_history("blob-1")

        store.persist("blob-1", history)

        assert store.find("blob-1") == history

    def test_find_returns_ascending_order_across_batches(self) -> None:
        store = self.create_store()
        history = sample_history("blob-1")

        store.persist("blob-1", history[:3])
        store.persist("blob-1", history[3:])

        found = store.find("blob-1")
        assert [e.sequence for e in found] == list(range(1, len(history) + 1))
        assert found == history

    def test_folding_found_history_rebuilds_state(self) -> None:
        store = self.create_store()
        store.persist("blob-1", sample_history("blob-1"))

        blob = fold(store.find("blob-1"))

        assert blob.id == "blob-1"
        assert blob.blob_type == "text/plain"
        assert blob.data == b""
        assert blob.tags == {"env": "staging"}
        assert blob.deleted is False
        assert blob.sequence == 8

    def test_missing_aggregate_raises(self) -> None:
        store = self.create_store()

        with pytest.raises(MissingAggregateError) as exc_info:
            store.find("nope")

        assert exc_info.value.aggregate_id == "nope"

    def test_aggregate_isolation(self) -> None:
        store = self.create_store()
        history_a = sample_history("blob-a")
        history_b = sample_history("blob-b")[:2]

        store.persist("blob-a", history_a)
        store.persist("blob-b", history_b)

        assert store.find("blob-a") == history_a
        assert store.find("blob-b") == history_b

    def test_existing_sequence_rejects_whole_batch(self) -> None:
        store = self.create_store()
        history = sample_history("blob-1")
        store.persist("blob-1", history[:2])

        # Sequence 2 collides, sequence 3 is new; neither may be written
        with pytest.raises(ConcurrencyConflictError) as exc_info:
            store.persist("blob-1", history[1:3])

        assert exc_info.value.sequences == [2]
        assert store.find("blob-1") == history[:2]

    def test_duplicate_sequence_within_batch_rejected(self) -> None:
        store = self.create_store()
        first = wrap("blob-1", 1, [BlobCreated(blob_type="a")])[0]
        duplicate = wrap("blob-1", 1, [BlobDeleted()])[0]

        with pytest.raises(ConcurrencyConflictError):
            store.persist("blob-1", [first, duplicate])

        with pytest.raises(MissingAggregateError):
            store.find("blob-1")

    def test_mismatched_aggregate_rejects_whole_batch(self) -> None:
        store = self.create_store()
        batch = wrap("blob-1", 1, [BlobCreated(blob_type="a")])
        batch += wrap("blob-2", 2, [BlobDeleted()])

        with pytest.raises(AggregateMismatchError) as exc_info:
            store.persist("blob-1", batch)

        assert exc_info.value.envelope_aggregate_id == "blob-2"
        with pytest.raises(MissingAggregateError):
            store.find("blob-1")

    def test_empty_batch_is_noop(self) -> None:
        store = self.create_store()

        store.persist("blob-1", [])

        with pytest.raises(MissingAggregateError):
            store.find("blob-1")
        assert store.aggregate_ids() == []

    def test_cancelled_persist_leaves_store_unchanged(self) -> None:
        store = self.create_store()
        history = sample_history("blob-1")
        store.persist("blob-1", history[:1])
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            store.persist("blob-1", history[1:], cancel=token)

        assert store.find("blob-1") == history[:1]

    def test_cancelled_find_raises(self) -> None:
        store = self.create_store()
        store.persist("blob-1", sample_history("blob-1"))

        with pytest.raises(OperationCancelledError):
            store.find("blob-1", cancel=CancellationToken(timeout=0))

    def test_aggregate_ids_lists_persisted_aggregates(self) -> None:
        store = self.create_store()
        store.persist("blob-b", sample_history("blob-b")[:1])
        store.persist("blob-a", sample_history("blob-a")[:1])

        assert store.aggregate_ids() == ["blob-a", "blob-b"]

    def test_get_sequence(self) -> None:
        store = self.create_store()
        store.persist("blob-1", sample_history("blob-1")[:3])

        assert store.get_sequence("blob-1") == 3
        with pytest.raises(MissingAggregateError):
            store.get_sequence("other")

    def test_context_manager_returns_store(self) -> None:
        store = self.create_store()

        with store as entered:
            assert entered is store
            entered.persist("blob-1", sample_history("blob-1")[:1])

    def test_mutating_found_envelopes_does_not_change_history(self) -> None:
        store = self.create_store()
        store.persist("blob-1", sample_history("blob-1"))

        found = store.find("blob-1")
        found[2].event.tags["injected"] = "x"
        found.clear()

        assert store.find("blob-1") == sample_history("blob-1")

    def test_mutating_persisted_batch_does_not_change_history(self) -> None:
        store = self.create_store()
        batch = sample_history("blob-1")
        store.persist("blob-1", batch)

        batch[2].event.tags["env"] = "changed"
        batch.pop()

        assert store.find("blob-1") == sample_history("blob-1")

    def test_concurrent_writers_of_one_sequence(self) -> None:
        """Only one of several racing writers of the next sequence succeeds."""
        store = self.create_store()
        store.persist("blob-1", sample_history("blob-1")[:1])
        next_sequence = wrap("blob-1", 2, [BlobDeleted()])

        outcomes = _run_concurrently(8, lambda: store.persist("blob-1", next_sequence))

        assert outcomes.count("ok") == 1
        assert outcomes.count("conflict") == 7
        assert store.find("blob-1") == sample_history("blob-1")[:1] + next_sequence

    def test_concurrent_writers_of_separate_aggregates(self) -> None:
        """Each writer creates its own aggregate, then collides with itself."""
        store = self.create_store()
        conflicted: list[str] = []
        lock = threading.Lock()
        counter = iter(range(16))

        def write() -> None:
            with lock:
                aggregate_id = f"blob-{next(counter)}"
            history = wrap(aggregate_id, 1, [BlobCreated(blob_type="a")])
            store.persist(aggregate_id, history)
            try:
                store.persist(aggregate_id, history)
            except ConcurrencyConflictError:
                with lock:
                    conflicted.append(aggregate_id)

        outcomes = _run_concurrently(16, write)

        assert outcomes == ["ok"] * 16
        assert len(conflicted) == 16
        assert len(store.aggregate_ids()) == 16
        for aggregate_id in conflicted:
            assert store.get_sequence(aggregate_id) == 1


def _run_concurrently(count: int, action: Callable[[], object]) -> list[str]:
    """Start ``count`` threads together; report each as ok, conflict or the error."""
    barrier = threading.Barrier(count)
    outcomes: list[str] = []
    lock = threading.Lock()

    def run() -> None:
        barrier.wait()
        try:
            action()
            outcome = "ok"
        except ConcurrencyConflictError:
            outcome = "conflict"
        except Exception as e:
            outcome = repr(e)
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=run) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return outcomes


__all__ = ["EventStoreConformanceSuite", "sample_history"]
