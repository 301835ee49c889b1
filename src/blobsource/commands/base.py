"""
Commands that express an intent to change a blob.

Commands are plain, immutable values. They hold no store reference and no
behaviour of their own: validation and event generation live in
``blobsource.commands.handlers`` and are selected by ``command_type``.

Example:
    >>> command = UpdateBlobTags("b1", add_or_update={"env": "prod"})
    >>> blob = repository.process(command)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import ClassVar


@dataclass(frozen=True)
class BlobCommand:
    """
    Base class for blob commands.

    Attributes:
        aggregate_id: ID of the blob the command targets
        command_type: Stable tag identifying the command kind
    """

    command_type: ClassVar[str] = ""

    aggregate_id: str

    def __str__(self) -> str:
        return f"{self.command_type}({self.aggregate_id})"


@dataclass(frozen=True)
class CreateBlob(BlobCommand):
    """Create a new blob with a content type and initial data."""

    command_type: ClassVar[str] = "CREATE"

    blob_type: str = ""
    data: bytes = b""


@dataclass(frozen=True)
class UpdateBlob(BlobCommand):
    """
    Replace or clear a blob's data.

    Attributes:
        data: New content; empty data leaves the content untouched
        clear: Clear the content (cannot be combined with data)
    """

    command_type: ClassVar[str] = "UPDATE"

    data: bytes = b""
    clear: bool = False


@dataclass(frozen=True)
class UpdateBlobTags(BlobCommand):
    """
    Add, update and delete tags in one command.

    Attributes:
        add_or_update: Tags to set; keys absent from the blob are added,
            keys present with a different value are updated
        delete_keys: Tag keys to remove
    """

    command_type: ClassVar[str] = "UPDATE_TAGS"

    add_or_update: Mapping[str, str] = field(default_factory=dict)
    delete_keys: Sequence[str] = ()

    def __post_init__(self) -> None:
        """Take private copies so later changes by the caller cannot leak in."""
        object.__setattr__(self, "add_or_update", dict(self.add_or_update))
        object.__setattr__(self, "delete_keys", tuple(self.delete_keys))


@dataclass(frozen=True)
class DeleteBlob(BlobCommand):
    """Soft-delete an active blob."""

    command_type: ClassVar[str] = "DELETE"


@dataclass(frozen=True)
class RestoreBlob(BlobCommand):
    """Restore a deleted blob."""

    command_type: ClassVar[str] = "RESTORE"


__all__ = [
    "BlobCommand",
    "CreateBlob",
    "UpdateBlob",
    "UpdateBlobTags",
    "DeleteBlob",
    "RestoreBlob",
]
