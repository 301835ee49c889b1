"""
Test utilities for blobsource.

Components:
    EventStoreConformanceSuite: Contract tests to subclass once per store backend
    sample_history: One envelope of every event variant
    BDD helpers: given_events, when_command, then_event_types, then_no_events,
        then_rejected

Note:
    This module is intended for test code only and imports pytest. It should
    not be imported in production code paths.
"""

from blobsource.testing.bdd import (
    given_events,
    then_event_types,
    then_no_events,
    then_rejected,
    when_command,
)
from blobsource.testing.conformance import EventStoreConformanceSuite, sample_history

__all__ = [
    "EventStoreConformanceSuite",
    "sample_history",
    "given_events",
    "when_command",
    "then_event_types",
    "then_no_events",
    "then_rejected",
]
