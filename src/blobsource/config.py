"""
Store configuration.

This module provides:
- StoreConfig: Which backend to use and how to open it
- StoreBackend: Type alias for the backend names
- create_event_store: Build a ready-to-use store from a StoreConfig
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, get_args

from blobsource.stores.filesystem import FileSystemEventStore
from blobsource.stores.in_memory import InMemoryEventStore
from blobsource.stores.interface import EventStore
from blobsource.stores.sqlite import MEMORY_DATABASE, SQLiteEventStore

logger = logging.getLogger(__name__)

StoreBackend = Literal["memory", "filesystem", "sqlite"]


@dataclass(frozen=True)
class StoreConfig:
    """
    Configuration for an event store.

    Attributes:
        backend: Which store to build
            - "memory": InMemoryEventStore (``path`` must be None)
            - "filesystem": FileSystemEventStore rooted at ``path``
            - "sqlite": SQLiteEventStore on the database file ``path``
              (None for an in-memory database)
        path: Base directory or database file
        enable_tracing: Emit OpenTelemetry spans when it is installed
        sqlite_busy_timeout: Milliseconds to wait on a locked SQLite database
        sqlite_wal_mode: Use WAL journaling for SQLite database files

    Example:
        >>> config = StoreConfig(backend="sqlite", path="/var/lib/blobs/events.db")
        >>> store = create_event_store(config)
    """

    backend: StoreBackend = "memory"
    path: str | None = None
    enable_tracing: bool = True
    sqlite_busy_timeout: int = 5000
    sqlite_wal_mode: bool = True

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.backend not in get_args(StoreBackend):
            raise ValueError(
                f"backend must be one of {', '.join(get_args(StoreBackend))}, "
                f"got {self.backend!r}."
            )

        if self.backend == "filesystem" and not self.path:
            raise ValueError("path is required for the filesystem backend.")

        if self.backend == "memory" and self.path is not None:
            raise ValueError(
                f"path is not used by the memory backend, got {self.path!r}. "
                "Use the filesystem or sqlite backend for durable storage."
            )

        if self.sqlite_busy_timeout < 0:
            raise ValueError(
                f"sqlite_busy_timeout must be >= 0, got {self.sqlite_busy_timeout}. "
                "Use a value like 5000 (default) milliseconds."
            )


def create_event_store(config: StoreConfig) -> EventStore:
    """
    Build the store described by ``config``.

    SQLite stores are returned with their schema initialized.

    Raises:
        StorageError: If the backend cannot be opened
    """
    store: EventStore
    if config.backend == "memory":
        store = InMemoryEventStore(enable_tracing=config.enable_tracing)
    elif config.backend == "filesystem":
        if config.path is None:
            raise ValueError("path is required for the filesystem backend.")
        store = FileSystemEventStore(config.path, enable_tracing=config.enable_tracing)
    else:
        sqlite_store = SQLiteEventStore(
            config.path or MEMORY_DATABASE,
            wal_mode=config.sqlite_wal_mode,
            busy_timeout=config.sqlite_busy_timeout,
            enable_tracing=config.enable_tracing,
        )
        sqlite_store.initialize()
        store = sqlite_store

    logger.debug("Created %s event store (path=%s)", config.backend, config.path)
    return store


__all__ = [
    "StoreBackend",
    "StoreConfig",
    "create_event_store",
]
