"""
Shared pytest fixtures for the blobsource tests.

This module provides:
- Store fixtures (memory_store, filesystem_store, sqlite_store, any_store)
- Repository fixtures (repository, tracer)
- Sample data fixtures (aggregate_id, created_blob)
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest

from blobsource.aggregates.blob import Blob
from blobsource.aggregates.repository import BlobRepository
from blobsource.events.base import BlobCreated, BlobTagsAdded
from blobsource.observability import MockTracer
from blobsource.stores.filesystem import FileSystemEventStore
from blobsource.stores.in_memory import InMemoryEventStore
from blobsource.stores.interface import EventStore
from blobsource.stores.sqlite import SQLiteEventStore
from blobsource.testing import given_events

# ============================================================================
# Sample Data
# ============================================================================


@pytest.fixture
def aggregate_id() -> str:
    return "blob-1"


@pytest.fixture
def created_blob(aggregate_id: str) -> Blob:
    """An active blob at sequence 2 with data b'hello' and tag env=prod."""
    return given_events(
        aggregate_id,
        [
            BlobCreated(blob_type="text/plain", data=b"hello"),
            BlobTagsAdded(tags={"env": "prod"}),
        ],
    )


# ============================================================================
# Event Stores
# ============================================================================


@pytest.fixture
def memory_store() -> InMemoryEventStore:
    return InMemoryEventStore(enable_tracing=False)


@pytest.fixture
def filesystem_store(tmp_path: Path) -> FileSystemEventStore:
    return FileSystemEventStore(tmp_path / "blobs", enable_tracing=False)


@pytest.fixture
def sqlite_store() -> Generator[SQLiteEventStore, None, None]:
    store = SQLiteEventStore(enable_tracing=False)
    store.initialize()
    yield store
    store.close()


@pytest.fixture(params=["memory", "filesystem", "sqlite"])
def any_store(
    request: pytest.FixtureRequest,
    tmp_path: Path,
) -> Generator[EventStore, None, None]:
    """Each test using this fixture runs once per backend."""
    store: EventStore
    if request.param == "memory":
        store = InMemoryEventStore(enable_tracing=False)
    elif request.param == "filesystem":
        store = FileSystemEventStore(tmp_path / "blobs", enable_tracing=False)
    else:
        sqlite = SQLiteEventStore(enable_tracing=False)
        sqlite.initialize()
        store = sqlite
    yield store
    store.close()


# ============================================================================
# Repository
# ============================================================================


@pytest.fixture
def tracer() -> MockTracer:
    return MockTracer()


@pytest.fixture
def repository(memory_store: InMemoryEventStore) -> BlobRepository:
    return BlobRepository(memory_store, enable_tracing=False)
