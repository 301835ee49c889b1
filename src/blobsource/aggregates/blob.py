"""
Blob aggregate state and the fold that derives it from events.

A Blob is never mutated directly. Its state is computed by folding the blob's
envelopes in ascending sequence order, starting from the empty Blob.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from blobsource.types import AggregateId, BlobType, Sequence, Tags

if TYPE_CHECKING:
    from blobsource.events.base import EventEnvelope


class Blob(BaseModel):
    """
    Current state of a blob, derived from its events.

    The default instance (empty id, sequence 0) represents a blob that does not
    exist yet.

    Attributes:
        id: Aggregate identifier
        blob_type: Content type tag (e.g. 'text/plain')
        data: Binary content
        deleted: Whether the blob is soft-deleted
        sequence: Highest event sequence folded into this state
        tags: Key/value tags
    """

    model_config = ConfigDict(frozen=True)

    id: AggregateId = ""
    blob_type: BlobType = ""
    data: bytes = b""
    deleted: bool = False
    sequence: Sequence = Field(default=0, ge=0)
    tags: Tags = Field(default_factory=dict)

    @property
    def exists(self) -> bool:
        """True once at least one event has been folded into the blob."""
        return self.sequence != 0 or self.id != ""

    @property
    def is_active(self) -> bool:
        """True for an existing blob that is not deleted."""
        return self.exists and not self.deleted

    def has_tag(self, key: str) -> bool:
        """Check whether the blob carries a tag."""
        return key in self.tags

    def __repr__(self) -> str:
        return (
            f"Blob(id={self.id!r}, blob_type={self.blob_type!r}, "
            f"data=<{len(self.data)} bytes>, deleted={self.deleted}, "
            f"sequence={self.sequence}, tags={self.tags!r})"
        )


def fold(envelopes: Iterable[EventEnvelope], blob: Blob | None = None) -> Blob:
    """
    Fold envelopes onto a blob in the order given.

    Callers pass envelopes in ascending sequence order; stores guarantee that
    order for everything they return.

    Args:
        envelopes: Envelopes to apply
        blob: Starting state (defaults to the empty Blob)

    Returns:
        The resulting state

    Example:
        >>> blob = fold(store.find("b1"))
        >>> blob = fold(new_envelopes, blob)
    """
    state = blob if blob is not None else Blob()
    for envelope in envelopes:
        state = envelope.apply(state)
    return state


__all__ = ["Blob", "fold"]
