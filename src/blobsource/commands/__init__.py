"""Blob commands and their validation and event generation rules."""

from blobsource.commands.base import (
    BlobCommand,
    CreateBlob,
    DeleteBlob,
    RestoreBlob,
    UpdateBlob,
    UpdateBlobTags,
)
from blobsource.commands.handlers import (
    generate_events,
    handle_command,
    validate_command,
)

__all__ = [
    "BlobCommand",
    "CreateBlob",
    "UpdateBlob",
    "UpdateBlobTags",
    "DeleteBlob",
    "RestoreBlob",
    "validate_command",
    "generate_events",
    "handle_command",
]
