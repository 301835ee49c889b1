"""
Event store implementations for blobsource.

- InMemoryEventStore: For testing and development
- FileSystemEventStore: One JSON file per envelope
- SQLiteEventStore: Embedded SQLite database through SQLAlchemy
"""

from blobsource.stores.filesystem import FileSystemEventStore
from blobsource.stores.in_memory import InMemoryEventStore
from blobsource.stores.interface import EventStore, check_batch
from blobsource.stores.sqlite import SQLiteEventStore

__all__ = [
    "EventStore",
    "check_batch",
    "InMemoryEventStore",
    "FileSystemEventStore",
    "SQLiteEventStore",
]
