"""
Filesystem event store implementation.

Each envelope is one JSON file named after its sequence number inside a
directory named after its aggregate::

    <base_directory>/<aggregate_id>/1
    <base_directory>/<aggregate_id>/2

A batch is first written to hidden staging files in the aggregate directory
and then hard-linked into place. ``os.link`` refuses to replace an existing
file, so a sequence that was written by someone else surfaces as a
ConcurrencyConflictError and never overwrites stored history. If any link
fails, the links already made for the batch are removed again.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
import threading
from pathlib import Path

from blobsource.cancellation import CancellationToken, check_cancelled
from blobsource.events.base import EventEnvelope
from blobsource.exceptions import (
    ConcurrencyConflictError,
    MissingAggregateError,
    StorageError,
)
from blobsource.observability import (
    ATTR_AGGREGATE_ID,
    ATTR_EVENT_COUNT,
    ATTR_FIRST_SEQUENCE,
    ATTR_STORE_BACKEND,
    Tracer,
    create_tracer,
)
from blobsource.serialization import decode_envelope, encode_envelope
from blobsource.stores.interface import EventStore, check_batch

logger = logging.getLogger(__name__)

STAGING_PREFIX = ".staged-"


def _is_sequence_name(name: str) -> bool:
    # Only the canonical spelling counts; "01" or "0" never names a sequence
    return name.isascii() and name.isdigit() and not name.startswith("0")


class FileSystemEventStore(EventStore):
    """
    Event store that keeps one file per envelope under a base directory.

    Entries in an aggregate directory whose names are not decimal numbers
    without leading zeros are ignored, such as staging files or editor backups.

    Thread-safety:
        A single lock serializes access from threads of this process. The
        hard-link commit also keeps separate processes from overwriting each
        other's sequences.

    Example:
        >>> store = FileSystemEventStore("/var/lib/blobs")
        >>> store.persist("b1", envelopes)
        >>> store.find("b1")
    """

    backend_name = "filesystem"

    def __init__(
        self,
        base_directory: str | os.PathLike[str],
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the store, creating ``base_directory`` if needed.

        Raises:
            StorageError: If the base directory cannot be created
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._base = Path(base_directory)
        self._lock = threading.Lock()
        try:
            self._base.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError("", "open", str(e)) from e

    @property
    def base_directory(self) -> Path:
        """Directory holding one subdirectory per aggregate."""
        return self._base

    def _aggregate_dir(self, aggregate_id: str) -> Path | None:
        """Directory of an aggregate, or None if the id cannot name a directory."""
        if (
            not aggregate_id
            or aggregate_id in (".", "..")
            or "/" in aggregate_id
            or "\0" in aggregate_id
            or (os.sep != "/" and os.sep in aggregate_id)
            or (os.altsep is not None and os.altsep in aggregate_id)
        ):
            return None
        return self._base / aggregate_id

    def _sequence_files(self, directory: Path) -> dict[int, Path]:
        return {
            int(entry.name): entry
            for entry in directory.iterdir()
            if _is_sequence_name(entry.name) and entry.is_file()
        }

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
            directory = self._aggregate_dir(aggregate_id)
            if directory is None:
                raise MissingAggregateError(aggregate_id)
            with self._lock:
                try:
                    if not directory.is_dir():
                        raise MissingAggregateError(aggregate_id)
                    files = self._sequence_files(directory)
                    raw = [files[sequence].read_bytes() for sequence in sorted(files)]
                except OSError as e:
                    raise StorageError(aggregate_id, "find", str(e)) from e

            if not raw:
                raise MissingAggregateError(aggregate_id)
            envelopes = [decode_envelope(data) for data in raw]
            logger.debug(
                "Loaded %d event(s) for %s from %s",
                len(envelopes),
                aggregate_id,
                directory,
                extra={"aggregate_id": aggregate_id, "event_count": len(envelopes)},
            )
            return envelopes

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
            directory = self._aggregate_dir(aggregate_id)
            if directory is None:
                raise StorageError(
                    aggregate_id, "persist", "aggregate id is not a valid directory name"
                )
            encoded = [(envelope.sequence, encode_envelope(envelope)) for envelope in batch]
            with self._lock:
                try:
                    self._persist_locked(aggregate_id, directory, encoded, cancel)
                except OSError as e:
                    raise StorageError(aggregate_id, "persist", str(e)) from e

        logger.debug(
            "Persisted %d event(s) for %s",
            len(batch),
            aggregate_id,
            extra={"aggregate_id": aggregate_id, "event_count": len(batch)},
        )

    def _persist_locked(
        self,
        aggregate_id: str,
        directory: Path,
        encoded: list[tuple[int, bytes]],
        cancel: CancellationToken | None,
    ) -> None:
        directory.mkdir(exist_ok=True)

        existing = self._sequence_files(directory)
        conflicts = [sequence for sequence, _ in encoded if sequence in existing]
        if conflicts:
            self._conflict(aggregate_id, conflicts)

        staged: list[tuple[int, Path]] = []
        linked: list[Path] = []
        try:
            for sequence, data in encoded:
                fd, name = tempfile.mkstemp(prefix=STAGING_PREFIX, dir=directory)
                staged.append((sequence, Path(name)))
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())

            check_cancelled(cancel, "persist")

            for sequence, staging_path in staged:
                target = directory / str(sequence)
                try:
                    os.link(staging_path, target)
                except FileExistsError:
                    self._conflict(aggregate_id, [sequence])
                linked.append(target)
            linked.clear()
        finally:
            # Roll back a partially linked batch, then drop the staging files
            for target in linked:
                with contextlib.suppress(FileNotFoundError):
                    target.unlink()
            for _, staging_path in staged:
                with contextlib.suppress(FileNotFoundError):
                    staging_path.unlink()

    def _conflict(self, aggregate_id: str, sequences: list[int]) -> None:
        logger.warning(
            "Concurrency conflict persisting %s: sequences %s exist",
            aggregate_id,
            sequences,
            extra={"aggregate_id": aggregate_id, "sequences": sequences},
        )
        raise ConcurrencyConflictError(aggregate_id, sequences)

    def aggregate_ids(self) -> list[str]:
        with self._lock:
            try:
                return sorted(
                    entry.name
                    for entry in self._base.iterdir()
                    if entry.is_dir() and self._sequence_files(entry)
                )
            except OSError as e:
                raise StorageError("", "aggregate_ids", str(e)) from e


__all__ = ["FileSystemEventStore", "STAGING_PREFIX"]
