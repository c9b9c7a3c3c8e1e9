"""Ordered registry of topic handlers."""

from typing import Iterator

from mediamind.agents.types import Handler, HandlerDescriptor, HandlerId


class HandlerRegistry:
    """
    Registry of handlers in registration order.
    Order is significant: routing ties go to the earlier handler.
    """

    def __init__(self) -> None:
        """
        Initialize an empty handler registry.
        """
        self._handlers: dict[HandlerId, Handler] = {}

    def register(self, handler: Handler) -> None:
        """
        Register a handler after the ones already present.

        Args:
            handler (Handler): The handler to register.

        Raises:
            ValueError: If the descriptor is malformed or the id is already registered.
        """
        descriptor = getattr(handler, "descriptor", None)
        if not isinstance(descriptor, HandlerDescriptor) or not isinstance(
            descriptor.id, HandlerId
        ):
            raise ValueError(f"Handler {handler!r} has no valid descriptor")
        if not descriptor.display_name:
            raise ValueError(f"Handler '{descriptor.id.value}' has no display name")
        if descriptor.id in self._handlers:
            raise ValueError(f"Handler '{descriptor.id.value}' is already registered")
        self._handlers[descriptor.id] = handler

    def get(self, handler_id: HandlerId) -> Handler | None:
        """
        Retrieve a handler by id.

        Args:
            handler_id (HandlerId): The handler identifier.
        """
        return self._handlers.get(handler_id)

    def ids(self) -> list[HandlerId]:
        """
        Return handler ids in registration order.

        Returns:
            list[HandlerId]: Registered ids.
        """
        return list(self._handlers)

    def descriptors(self) -> list[HandlerDescriptor]:
        """Descriptors in registration order."""
        return [h.descriptor for h in self._handlers.values()]

    def __iter__(self) -> Iterator[Handler]:
        return iter(list(self._handlers.values()))

    def __len__(self) -> int:
        return len(self._handlers)
