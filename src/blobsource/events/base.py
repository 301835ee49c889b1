"""
Blob domain events and the envelope that carries them.

Events are immutable records of things that have happened to a blob. They are
the source of truth: a blob's state is nothing more than its events folded in
sequence order.

Each event carries only the fields it changes. Identity and ordering live on
the EventEnvelope, so the same event payload can be replayed onto any blob.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, ClassVar

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny

from blobsource.events.registry import register_event
from blobsource.exceptions import UnhandledEventError

if TYPE_CHECKING:
    from blobsource.aggregates.blob import Blob


# Largest sequence every backend can store (SQLite INTEGER is a signed 64-bit value)
MAX_SEQUENCE = 2**63 - 1


class BlobEvent(BaseModel):
    """
    Base class for all blob events.

    Subclasses declare a short ``event_code`` used as the discriminant in
    persisted records (see ``blobsource.serialization``).

    Attributes:
        event_code: Stable short code identifying the variant on disk
    """

    model_config = ConfigDict(frozen=True)

    event_code: ClassVar[str] = ""

    @property
    def event_type(self) -> str:
        """Name of the event variant (the class name)."""
        return type(self).__name__


@register_event
class BlobCreated(BlobEvent):
    """A blob was created with a content type and initial data."""

    event_code: ClassVar[str] = "CE"

    blob_type: str
    data: bytes = b""


@register_event
class BlobDataUpdated(BlobEvent):
    """A blob's data was replaced. ``None`` means the data was cleared."""

    event_code: ClassVar[str] = "DUE"

    data: bytes | None = None


@register_event
class BlobTagsAdded(BlobEvent):
    """Tags that were not present on the blob were added."""

    event_code: ClassVar[str] = "TAE"

    tags: dict[str, str] = Field(default_factory=dict)


@register_event
class BlobTagsUpdated(BlobEvent):
    """Existing tags were given new values."""

    event_code: ClassVar[str] = "TUE"

    tags: dict[str, str] = Field(default_factory=dict)


@register_event
class BlobTagsDeleted(BlobEvent):
    """Tags were removed from the blob."""

    event_code: ClassVar[str] = "TDE"

    keys: tuple[str, ...] = ()


@register_event
class BlobDeleted(BlobEvent):
    """The blob was soft-deleted."""

    event_code: ClassVar[str] = "DE"


@register_event
class BlobRestored(BlobEvent):
    """A deleted blob was restored."""

    event_code: ClassVar[str] = "RE"


def apply_event(event: BlobEvent, blob: Blob) -> Blob:
    """
    Fold a single event onto a blob and return the resulting blob.

    This is a pure function: the input blob is never modified. Identity and
    sequence are not touched here; EventEnvelope.apply stamps them.

    Args:
        event: The event to apply
        blob: The state before the event

    Returns:
        The state after the event

    Raises:
        UnhandledEventError: If the event is not one of the blob event variants
    """
    if isinstance(event, BlobCreated):
        # Creation starts from a clean slate, whatever came before
        return type(blob)(blob_type=event.blob_type, data=event.data)
    if isinstance(event, BlobDataUpdated):
        return blob.model_copy(update={"data": event.data or b""})
    if isinstance(event, BlobTagsAdded | BlobTagsUpdated):
        return blob.model_copy(update={"tags": {**blob.tags, **event.tags}})
    if isinstance(event, BlobTagsDeleted):
        removed = set(event.keys)
        tags = {key: value for key, value in blob.tags.items() if key not in removed}
        return blob.model_copy(update={"tags": tags})
    if isinstance(event, BlobDeleted):
        return blob.model_copy(update={"deleted": True})
    if isinstance(event, BlobRestored):
        return blob.model_copy(update={"deleted": False})
    raise UnhandledEventError(type(event).__name__)


class EventEnvelope(BaseModel):
    """
    An event together with the identity and ordering needed to persist and replay it.

    Attributes:
        aggregate_id: ID of the blob the event belongs to
        sequence: Position of the event in the blob's stream (1 to MAX_SEQUENCE)
        event: The event payload

    Example:
        >>> envelope = EventEnvelope(
        ...     aggregate_id="b1",
        ...     sequence=1,
        ...     event=BlobCreated(blob_type="text/plain", data=b"hi"),
        ... )
        >>> blob = envelope.apply(Blob())
        >>> assert blob.sequence == 1
    """

    model_config = ConfigDict(frozen=True)

    aggregate_id: str = Field(..., min_length=1)
    sequence: int = Field(..., ge=1, le=MAX_SEQUENCE)
    event: SerializeAsAny[BlobEvent]

    @property
    def event_type(self) -> str:
        """Name of the wrapped event variant."""
        return self.event.event_type

    def apply(self, blob: Blob) -> Blob:
        """Apply the wrapped event and stamp the envelope's id and sequence."""
        applied = apply_event(self.event, blob)
        return applied.model_copy(update={"id": self.aggregate_id, "sequence": self.sequence})

    def __str__(self) -> str:
        return f"{self.event_type}(aggregate_id={self.aggregate_id}, sequence={self.sequence})"


def wrap(
    aggregate_id: str,
    first_sequence: int,
    events: Iterable[BlobEvent],
) -> list[EventEnvelope]:
    """
    Wrap events in envelopes with consecutive sequence numbers.

    Args:
        aggregate_id: ID of the blob the events belong to
        first_sequence: Sequence assigned to the first event
        events: Events in the order they happened

    Returns:
        Envelopes numbered first_sequence, first_sequence + 1, ...
    """
    return [
        EventEnvelope(aggregate_id=aggregate_id, sequence=first_sequence + offset, event=event)
        for offset, event in enumerate(events)
    ]


__all__ = [
    "BlobEvent",
    "BlobCreated",
    "BlobDataUpdated",
    "BlobTagsAdded",
    "BlobTagsUpdated",
    "BlobTagsDeleted",
    "BlobDeleted",
    "BlobRestored",
    "EventEnvelope",
    "MAX_SEQUENCE",
    "apply_event",
    "wrap",
]
