"""
Event code registry for serialization and deserialization.

Every blob event variant declares a short, stable code (``CE``, ``DUE``, ...)
that is written next to the payload in persisted records. The registry maps
codes to event classes and back, so decoding can pick the right variant.

The registry is thread-safe and supports multiple registration patterns:
- Decorator-based registration using the class's ``event_code``
- Explicit programmatic registration with a code override
- Independent registries for testing isolation

Usage:
    @register_event
    class BlobCreated(BlobEvent):
        event_code: ClassVar[str] = "CE"
        ...

    registry = EventCodeRegistry()
    registry.register(BlobCreated)

    event_class = registry.get("CE")
    code = registry.code_for(BlobCreated)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from blobsource.events.base import BlobEvent

logger = logging.getLogger(__name__)

TEvent = TypeVar("TEvent", bound="BlobEvent")


class EventCodeNotFoundError(KeyError):
    """
    Raised when an event code or class is not found in the registry.

    Provides helpful error messages including a list of available codes.
    """

    def __init__(self, event_code: str, available_codes: list[str]) -> None:
        self.event_code = event_code
        self.available_codes = available_codes
        available = ", ".join(sorted(available_codes)) if available_codes else "none"
        super().__init__(f"Unknown event code: '{event_code}'. Available codes: {available}.")


class DuplicateEventCodeError(ValueError):
    """Raised when a code is already registered to a different event class."""

    def __init__(
        self,
        event_code: str,
        existing_class: type[BlobEvent],
        new_class: type[BlobEvent],
    ) -> None:
        self.event_code = event_code
        self.existing_class = existing_class
        self.new_class = new_class
        super().__init__(
            f"Event code '{event_code}' is already registered to {existing_class.__name__}. "
            f"Cannot register {new_class.__name__} with the same code."
        )


class EventCodeRegistry:
    """
    Registry for mapping short event codes to blob event classes.

    Thread-Safety:
        All operations are thread-safe and use internal locking.

    Example:
        >>> registry = EventCodeRegistry()
        >>> registry.register(BlobCreated)
        >>> registry.get("CE") is BlobCreated
        True
        >>> registry.code_for(BlobCreated)
        'CE'
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._by_code: dict[str, type[BlobEvent]] = {}
        self._by_class: dict[type[BlobEvent], str] = {}
        self._lock = threading.RLock()

    def register(
        self,
        event_class: type[TEvent],
        event_code: str | None = None,
    ) -> type[TEvent]:
        """
        Register an event class in the registry.

        Args:
            event_class: The event class to register
            event_code: Optional code override. Defaults to the class's
                ``event_code`` attribute.

        Returns:
            The registered event class (enables use as decorator)

        Raises:
            ValueError: If no code can be resolved for the class
            DuplicateEventCodeError: If the code belongs to a different class
        """
        code = event_code if event_code is not None else getattr(event_class, "event_code", "")
        if not code:
            raise ValueError(f"{event_class.__name__} does not declare an event_code")

        with self._lock:
            existing = self._by_code.get(code)
            if existing is not None:
                if existing is not event_class:
                    raise DuplicateEventCodeError(code, existing, event_class)
                return event_class

            self._by_code[code] = event_class
            self._by_class[event_class] = code
            logger.debug(
                "Registered event code '%s' -> %s",
                code,
                event_class.__name__,
                extra={"event_code": code, "event_class": event_class.__name__},
            )
            return event_class

    def get(self, event_code: str) -> type[BlobEvent]:
        """
        Get event class by code.

        Raises:
            EventCodeNotFoundError: If the code is not registered
        """
        with self._lock:
            event_class = self._by_code.get(event_code)
            if event_class is None:
                raise EventCodeNotFoundError(event_code, list(self._by_code))
            return event_class

    def get_or_none(self, event_code: str) -> type[BlobEvent] | None:
        """Get event class by code, or None if the code is not registered."""
        with self._lock:
            return self._by_code.get(event_code)

    def code_for(self, event_class: type[BlobEvent]) -> str:
        """
        Get the code an event class is registered under.

        Raises:
            EventCodeNotFoundError: If the class is not registered
        """
        with self._lock:
            code = self._by_class.get(event_class)
            if code is None:
                raise EventCodeNotFoundError(event_class.__name__, list(self._by_code))
            return code

    def contains(self, event_code: str) -> bool:
        """Check whether a code is registered."""
        with self._lock:
            return event_code in self._by_code

    def list_codes(self) -> list[str]:
        """Get all registered codes, sorted."""
        with self._lock:
            return sorted(self._by_code)

    def clear(self) -> None:
        """Remove all registrations. Primarily useful for test isolation."""
        with self._lock:
            self._by_code.clear()
            self._by_class.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_code)

    def __contains__(self, event_code: object) -> bool:
        with self._lock:
            return event_code in self._by_code

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._by_code))


# Module-level registry holding the blob event variants
default_registry = EventCodeRegistry()


def register_event(event_class: type[TEvent]) -> type[TEvent]:
    """
    Register an event class with the default registry using its ``event_code``.

    Example:
        >>> @register_event
        ... class BlobDeleted(BlobEvent):
        ...     event_code: ClassVar[str] = "DE"
    """
    return default_registry.register(event_class)


__all__ = [
    "EventCodeRegistry",
    "EventCodeNotFoundError",
    "DuplicateEventCodeError",
    "default_registry",
    "register_event",
]
