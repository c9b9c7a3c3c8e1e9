"""Conversation context helpers."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class SessionContext:
    """
    Carries the caller's session context for a single request.
    The orchestrator never persists it.
    """

    user_id: str = "default"
    organization_id: str | None = None
    current_page: str | None = None
    active_filters: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> dict[str, Any]:
        """
        Return a prompt-safe summary of the context.

        Returns:
            dict[str, Any]: The context fields relevant to answering a query.
        """
        return {
            "organization_id": self.organization_id or "unknown",
            "current_page": self.current_page or "unknown",
            "active_filters": self.active_filters,
        }
