"""
Span attribute names used across blobsource.

Example:
    >>> with tracer.span(
    ...     "blobsource.event_store.persist",
    ...     {ATTR_AGGREGATE_ID: aggregate_id, ATTR_EVENT_COUNT: len(envelopes)},
    ... ):
    ...     pass
"""

# =============================================================================
# Aggregate Attributes
# =============================================================================

ATTR_AGGREGATE_ID = "blobsource.aggregate.id"
"""Identifier of the blob (string)."""

ATTR_SEQUENCE = "blobsource.aggregate.sequence"
"""Sequence of the blob state after an operation (integer)."""

# =============================================================================
# Event Attributes
# =============================================================================

ATTR_EVENT_COUNT = "blobsource.event.count"
"""Number of envelopes read or written (integer)."""

ATTR_FIRST_SEQUENCE = "blobsource.event.first_sequence"
"""Sequence of the first envelope in a batch (integer)."""

# =============================================================================
# Command Attributes
# =============================================================================

ATTR_COMMAND_TYPE = "blobsource.command.type"
"""Command type tag, e.g. 'CREATE' (string)."""

# =============================================================================
# Store Attributes
# =============================================================================

ATTR_STORE_BACKEND = "blobsource.store.backend"
"""Backend name: 'memory', 'filesystem' or 'sqlite' (string)."""

# =============================================================================
# Database Attributes (OpenTelemetry semantic conventions)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system identifier, e.g. 'sqlite' (string)."""

ATTR_DB_OPERATION = "db.operation"
"""Database operation, e.g. 'SELECT' or 'INSERT' (string)."""

__all__ = [
    "ATTR_AGGREGATE_ID",
    "ATTR_SEQUENCE",
    "ATTR_EVENT_COUNT",
    "ATTR_FIRST_SEQUENCE",
    "ATTR_COMMAND_TYPE",
    "ATTR_STORE_BACKEND",
    "ATTR_DB_SYSTEM",
    "ATTR_DB_OPERATION",
]
