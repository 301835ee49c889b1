"""
Validation and event generation for blob commands.

Each command kind has one validator and one generator, both pure functions of
the command and the blob's current state. They are selected by the command's
``command_type`` tag, so the rules for every command can be read and tested
on their own.

Validators raise CommandValidationError; the first failing rule wins.
Generators return envelopes numbered from ``blob.sequence + 1`` and may return
an empty list when the command changes nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from blobsource.aggregates.blob import Blob
from blobsource.commands.base import (
    BlobCommand,
    CreateBlob,
    DeleteBlob,
    RestoreBlob,
    UpdateBlob,
    UpdateBlobTags,
)
from blobsource.events.base import (
    BlobCreated,
    BlobDataUpdated,
    BlobDeleted,
    BlobEvent,
    BlobRestored,
    BlobTagsAdded,
    BlobTagsDeleted,
    BlobTagsUpdated,
    EventEnvelope,
    wrap,
)
from blobsource.exceptions import CommandValidationError

logger = logging.getLogger(__name__)

Validator = Callable[[Any, Blob], None]
Generator = Callable[[Any, Blob], list[EventEnvelope]]


def _reject(command: BlobCommand, message: str) -> CommandValidationError:
    return CommandValidationError(command.command_type, command.aggregate_id, message)


def _require_target(command: BlobCommand, blob: Blob) -> None:
    """Common checks for commands that act on an existing blob."""
    if not command.aggregate_id:
        raise _reject(command, "aggregate id should not be empty")
    if blob.id != command.aggregate_id:
        if not blob.exists:
            raise _reject(command, f"blob '{command.aggregate_id}' does not exist")
        raise _reject(
            command,
            f"id '{blob.id}' in blob does not match '{command.aggregate_id}' in command",
        )


def _next(blob: Blob, command: BlobCommand, events: list[BlobEvent]) -> list[EventEnvelope]:
    return wrap(command.aggregate_id, blob.sequence + 1, events)


# =============================================================================
# Create
# =============================================================================


def _validate_create(command: CreateBlob, blob: Blob) -> None:
    if blob.deleted:
        raise _reject(command, "cannot create a deleted blob")
    if blob.sequence != 0 or blob.blob_type != "" or blob.id != "":
        raise _reject(command, "cannot create an existing blob")
    if not command.aggregate_id:
        raise _reject(command, "aggregate id should not be empty")
    if not command.blob_type:
        raise _reject(command, "blob type should not be empty")


def _generate_create(command: CreateBlob, blob: Blob) -> list[EventEnvelope]:
    return wrap(
        command.aggregate_id,
        1,
        [BlobCreated(blob_type=command.blob_type, data=command.data)],
    )


# =============================================================================
# Update
# =============================================================================


def _validate_update(command: UpdateBlob, blob: Blob) -> None:
    _require_target(command, blob)
    if command.data and command.clear:
        raise _reject(command, "cannot update and clear data at the same time")
    if blob.deleted:
        raise _reject(command, "cannot update a deleted blob")


def _generate_update(command: UpdateBlob, blob: Blob) -> list[EventEnvelope]:
    events: list[BlobEvent] = []
    if command.clear:
        events.append(BlobDataUpdated(data=None))
    elif command.data:
        events.append(BlobDataUpdated(data=command.data))
    return _next(blob, command, events)


# =============================================================================
# Update tags
# =============================================================================


def _validate_update_tags(command: UpdateBlobTags, blob: Blob) -> None:
    _require_target(command, blob)
    if blob.deleted:
        raise _reject(command, "cannot update tags of a deleted blob")
    for key in command.delete_keys:
        if key in command.add_or_update:
            raise _reject(
                command,
                f"cannot delete tag '{key}' as it is being updated at the same time",
            )


def _generate_update_tags(command: UpdateBlobTags, blob: Blob) -> list[EventEnvelope]:
    # dict.fromkeys keeps request order and drops repeats
    to_delete = [key for key in dict.fromkeys(command.delete_keys) if blob.has_tag(key)]
    to_update = {
        key: value
        for key, value in command.add_or_update.items()
        if key in blob.tags and blob.tags[key] != value
    }
    to_add = {key: value for key, value in command.add_or_update.items() if key not in blob.tags}

    events: list[BlobEvent] = []
    if to_delete:
        events.append(BlobTagsDeleted(keys=tuple(to_delete)))
    if to_update:
        events.append(BlobTagsUpdated(tags=to_update))
    if to_add:
        events.append(BlobTagsAdded(tags=to_add))
    return _next(blob, command, events)


# =============================================================================
# Delete / Restore
# =============================================================================


def _validate_delete(command: DeleteBlob, blob: Blob) -> None:
    _require_target(command, blob)
    if blob.deleted:
        raise _reject(command, f"blob '{blob.id}' is already deleted")


def _generate_delete(command: DeleteBlob, blob: Blob) -> list[EventEnvelope]:
    if blob.deleted:
        return []
    return _next(blob, command, [BlobDeleted()])


def _validate_restore(command: RestoreBlob, blob: Blob) -> None:
    _require_target(command, blob)
    if not blob.deleted:
        raise _reject(command, f"blob '{blob.id}' is not deleted; only deleted blobs can be restored")


def _generate_restore(command: RestoreBlob, blob: Blob) -> list[EventEnvelope]:
    return _next(blob, command, [BlobRestored()])


_HANDLERS: dict[str, tuple[Validator, Generator]] = {
    CreateBlob.command_type: (_validate_create, _generate_create),
    UpdateBlob.command_type: (_validate_update, _generate_update),
    UpdateBlobTags.command_type: (_validate_update_tags, _generate_update_tags),
    DeleteBlob.command_type: (_validate_delete, _generate_delete),
    RestoreBlob.command_type: (_validate_restore, _generate_restore),
}


def _handlers_for(command: BlobCommand) -> tuple[Validator, Generator]:
    if not isinstance(command, BlobCommand):
        raise TypeError(f"Expected a BlobCommand, got {type(command).__name__}")
    try:
        return _HANDLERS[command.command_type]
    except KeyError:
        raise TypeError(f"Unknown command type '{command.command_type}'") from None


def validate_command(command: BlobCommand, blob: Blob) -> None:
    """
    Check that a command is legal against the current blob state.

    Args:
        command: The command to check
        blob: Current state of the targeted blob (the empty Blob if it does not exist)

    Raises:
        CommandValidationError: If the command is illegal
        TypeError: If the object is not a known blob command
    """
    validator, _ = _handlers_for(command)
    validator(command, blob)


def generate_events(command: BlobCommand, blob: Blob) -> list[EventEnvelope]:
    """
    Compute the envelopes representing a command against the current state.

    Does not validate; call validate_command first (or use handle_command).

    Returns:
        New envelopes numbered from ``blob.sequence + 1``; possibly empty
    """
    _, generator = _handlers_for(command)
    envelopes = generator(command, blob)
    logger.debug(
        "Generated %d event(s) for %s",
        len(envelopes),
        command,
        extra={
            "command_type": command.command_type,
            "aggregate_id": command.aggregate_id,
            "event_count": len(envelopes),
        },
    )
    return envelopes


def handle_command(command: BlobCommand, blob: Blob) -> list[EventEnvelope]:
    """
    Validate a command and generate its envelopes.

    Raises:
        CommandValidationError: If the command is illegal against ``blob``
    """
    validate_command(command, blob)
    return generate_events(command, blob)


__all__ = [
    "validate_command",
    "generate_events",
    "handle_command",
]
