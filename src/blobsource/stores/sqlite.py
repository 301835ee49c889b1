"""
SQLite event store implementation.

Envelopes are kept in a single table keyed by ``(aggregate_id, sequence)``::

    CREATE TABLE blob_events (
        aggregate_id TEXT NOT NULL,
        sequence     INTEGER NOT NULL,
        record       TEXT NOT NULL,
        PRIMARY KEY (aggregate_id, sequence)
    )

``record`` holds the JSON record written by ``blobsource.serialization``.
Each batch is inserted in one transaction, so the primary key both orders the
history and rejects a concurrent writer that reuses a sequence.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from blobsource.cancellation import CancellationToken, check_cancelled
from blobsource.events.base import EventEnvelope
from blobsource.exceptions import (
    ConcurrencyConflictError,
    MissingAggregateError,
    StorageError,
)
from blobsource.observability import (
    ATTR_AGGREGATE_ID,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_EVENT_COUNT,
    ATTR_FIRST_SEQUENCE,
    ATTR_STORE_BACKEND,
    Tracer,
    create_tracer,
)
from blobsource.serialization import decode_envelope, envelope_to_record, json_dumps
from blobsource.stores.interface import EventStore, check_batch

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"

SCHEMA = """
CREATE TABLE IF NOT EXISTS blob_events (
    aggregate_id TEXT NOT NULL,
    sequence INTEGER NOT NULL,
    record TEXT NOT NULL,
    PRIMARY KEY (aggregate_id, sequence)
)
"""


class SQLiteEventStore(EventStore):
    """
    SQLite implementation of the event store, built on a SQLAlchemy engine.

    The store either opens its own engine from a database path (and disposes
    of it on ``close()``) or uses an engine supplied by the caller (which the
    caller keeps ownership of).

    Call ``initialize()`` once before use to create the schema; it is safe to
    call again on an existing database.

    Thread-safety:
        A single lock serializes every statement issued by this store. An
        in-memory database lives on one shared connection, so transactions
        from different threads must never interleave on it. Separate
        processes sharing a database file rely on SQLite's own locking.

    Attributes:
        _engine: The SQLAlchemy engine
        _owns_engine: Whether ``close()`` disposes of the engine
        _busy_timeout: Timeout in ms for a locked database
        _lock: Serializes access from threads of this process

    Example:
        >>> with SQLiteEventStore("/var/lib/blobs/events.db") as store:
        ...     store.initialize()
        ...     store.persist("b1", envelopes)
    """

    backend_name = "sqlite"

    def __init__(
        self,
        database: str | Engine = MEMORY_DATABASE,
        *,
        wal_mode: bool = True,
        busy_timeout: int = 5000,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the SQLite event store.

        Args:
            database: Path to the database file, ':memory:' for a private
                in-memory database, or an existing SQLAlchemy Engine
            wal_mode: Enable WAL journaling for file databases (default: True)
            busy_timeout: Milliseconds to wait when the database is locked
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: If True and OpenTelemetry is available, emit traces.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._busy_timeout = busy_timeout
        self._lock = threading.Lock()

        if isinstance(database, Engine):
            self._engine = database
            self._owns_engine = False
            self._database = str(database.url.database or MEMORY_DATABASE)
            self._wal_mode = False
        else:
            self._database = database
            self._wal_mode = wal_mode and database != MEMORY_DATABASE
            self._engine = self._create_engine(database)
            self._owns_engine = True

    def _create_engine(self, database: str) -> Engine:
        if database == MEMORY_DATABASE:
            # One shared connection, otherwise every checkout sees a new empty database
            engine = create_engine(
                "sqlite://",
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_engine(f"sqlite:///{database}")

        busy_timeout = self._busy_timeout
        wal_mode = self._wal_mode

        @event.listens_for(engine, "connect")
        def _configure(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute(f"PRAGMA busy_timeout = {int(busy_timeout)}")
            if wal_mode:
                cursor.execute("PRAGMA journal_mode = WAL")
            cursor.close()

        logger.debug(
            "Created SQLite engine: %s (wal_mode=%s, busy_timeout=%d)",
            database,
            wal_mode,
            busy_timeout,
        )
        return engine

    @property
    def engine(self) -> Engine:
        """The SQLAlchemy engine used by this store."""
        return self._engine

    @property
    def database(self) -> str:
        """Database path, or ':memory:'."""
        return self._database

    @property
    def busy_timeout(self) -> int:
        return self._busy_timeout

    def initialize(self) -> None:
        """
        Create the schema if it does not exist.

        Raises:
            StorageError: If the schema cannot be created
        """
        try:
            with self._lock, self._engine.begin() as conn:
                conn.execute(text(SCHEMA))
        except SQLAlchemyError as e:
            raise StorageError("", "initialize", str(e)) from e
        logger.info("Initialized SQLite event store schema: %s", self._database)

    def close(self) -> None:
        """Dispose of the engine if this store created it. Safe to call twice."""
        if self._owns_engine:
            self._engine.dispose()
            logger.debug("Closed SQLite database: %s", self._database)

    def find(
        self,
        aggregate_id: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[EventEnvelope]:
        with self._tracer.span(
            "blobsource.event_store.find",
            {
                ATTR_AGGREGATE_ID: aggregate_id,
                ATTR_STORE_BACKEND: self.backend_name,
                ATTR_DB_SYSTEM: "sqlite",
                ATTR_DB_OPERATION: "SELECT",
            },
        ):
            check_cancelled(cancel, "find")
            try:
                with self._lock, self._engine.connect() as conn:
                    rows = conn.execute(
                        text(
                            """
                            SELECT record
                            FROM blob_events
                            WHERE aggregate_id = :aggregate_id
                            ORDER BY sequence ASC
                            """
                        ),
                        {"aggregate_id": aggregate_id},
                    ).all()
            except SQLAlchemyError as e:
                raise StorageError(aggregate_id, "find", str(e)) from e

            if not rows:
                raise MissingAggregateError(aggregate_id)
            envelopes = [decode_envelope(row.record) for row in rows]
            logger.debug(
                "Loaded %d event(s) for %s",
                len(envelopes),
                aggregate_id,
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

        params = [
            {
                "aggregate_id": aggregate_id,
                "sequence": envelope.sequence,
                "record": json_dumps(envelope_to_record(envelope)),
            }
            for envelope in batch
        ]

        with self._tracer.span(
            "blobsource.event_store.persist",
            {
                ATTR_AGGREGATE_ID: aggregate_id,
                ATTR_EVENT_COUNT: len(batch),
                ATTR_FIRST_SEQUENCE: batch[0].sequence,
                ATTR_STORE_BACKEND: self.backend_name,
                ATTR_DB_SYSTEM: "sqlite",
                ATTR_DB_OPERATION: "INSERT",
            },
        ):
            check_cancelled(cancel, "persist")
            try:
                with self._lock, self._engine.begin() as conn:
                    existing = conn.execute(
                        text(
                            """
                            SELECT sequence
                            FROM blob_events
                            WHERE aggregate_id = :aggregate_id
                            """
                        ),
                        {"aggregate_id": aggregate_id},
                    ).scalars()
                    stored = set(existing)
                    conflicts = [e.sequence for e in batch if e.sequence in stored]
                    if conflicts:
                        raise ConcurrencyConflictError(aggregate_id, conflicts)

                    conn.execute(
                        text(
                            """
                            INSERT INTO blob_events (aggregate_id, sequence, record)
                            VALUES (:aggregate_id, :sequence, :record)
                            """
                        ),
                        params,
                    )
                    # Leaving the block commits; a cancellation here rolls back
                    check_cancelled(cancel, "persist")
            except ConcurrencyConflictError as e:
                self._log_conflict(aggregate_id, e.sequences)
                raise
            except IntegrityError as e:
                # Another writer inserted the same key after our check
                sequences = [envelope.sequence for envelope in batch]
                self._log_conflict(aggregate_id, sequences)
                raise ConcurrencyConflictError(aggregate_id, sequences) from e
            except SQLAlchemyError as e:
                raise StorageError(aggregate_id, "persist", str(e)) from e

        logger.debug(
            "Persisted %d event(s) for %s",
            len(batch),
            aggregate_id,
            extra={"aggregate_id": aggregate_id, "event_count": len(batch)},
        )

    def _log_conflict(self, aggregate_id: str, sequences: list[int]) -> None:
        logger.warning(
            "Concurrency conflict persisting %s: sequences %s exist",
            aggregate_id,
            sequences,
            extra={"aggregate_id": aggregate_id, "sequences": sequences},
        )

    def aggregate_ids(self) -> list[str]:
        try:
            with self._lock, self._engine.connect() as conn:
                result = conn.execute(
                    text("SELECT DISTINCT aggregate_id FROM blob_events ORDER BY aggregate_id")
                )
                return list(result.scalars())
        except SQLAlchemyError as e:
            raise StorageError("", "aggregate_ids", str(e)) from e

    def get_sequence(
        self,
        aggregate_id: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> int:
        check_cancelled(cancel, "get_sequence")
        try:
            with self._lock, self._engine.connect() as conn:
                sequence = conn.execute(
                    text(
                        "SELECT MAX(sequence) FROM blob_events WHERE aggregate_id = :aggregate_id"
                    ),
                    {"aggregate_id": aggregate_id},
                ).scalar()
        except SQLAlchemyError as e:
            raise StorageError(aggregate_id, "get_sequence", str(e)) from e
        if sequence is None:
            raise MissingAggregateError(aggregate_id)
        return int(sequence)


__all__ = ["SQLiteEventStore", "SCHEMA"]
