"""Shared types for agent orchestration."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Protocol, Sequence, TypedDict

from pydantic import BaseModel, Field, field_validator

from mediamind.agents.context import SessionContext

Role = Literal["user", "assistant", "system"]


class Message(TypedDict):
    """A role-tagged message sent to the completion service."""

    role: str
    content: str


class HandlerId(str, Enum):
    """Closed set of handler identifiers. Registration order lives in the registry."""

    ANALYTICS = "analytics"
    CAMPAIGN = "campaign"
    AUDIENCE = "audience"
    YOUTUBE_CURATION = "youtube-curation"
    TV_INTELLIGENCE = "tv-intelligence"
    INCREMENTAL_REACH = "incremental-reach"
    GENERAL_HELP = "general-help"


@dataclass(frozen=True)
class Turn:
    """One message in a conversation. Immutable once created."""

    role: Role
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    handler_id: str | None = None
    handler_name: str | None = None


@dataclass(frozen=True)
class Capability:
    """A named capability advertised by a handler."""

    name: str
    description: str
    examples: tuple[str, ...] = ()


@dataclass(frozen=True)
class HandlerDescriptor:
    """Static description of a handler, built once at startup."""

    id: HandlerId
    display_name: str
    description: str
    capabilities: tuple[Capability, ...] = ()


@dataclass(frozen=True)
class DispatchScore:
    """Routing score of a single handler for a single request."""

    handler_id: HandlerId
    confidence: float


class ValidationVerdict(BaseModel):
    """Critic assessment of a candidate answer."""

    score: int = Field(ge=1, le=10)
    issues: list[str] = Field(default_factory=list)
    is_satisfactory: bool = False

    @field_validator("score", mode="before")
    @classmethod
    def _round_score(cls, value: Any) -> Any:
        if isinstance(value, float):
            return int(round(value))
        return value

    @field_validator("issues", mode="before")
    @classmethod
    def _coerce_issues(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return [str(item) for item in value if str(item).strip()]


@dataclass(frozen=True)
class CompletionOptions:
    """Per-call overrides for the completion service. Unset fields use configuration."""

    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None


@dataclass
class HandlerResponse:
    """Output of a handler's ``process`` call."""

    content: str
    confidence: float
    handler_id: HandlerId
    handler_name: str
    suggestions: list[str] = field(default_factory=list)
    next_actions: list[str] = field(default_factory=list)
    approaches: list[str] = field(default_factory=list)


@dataclass
class AgentResponse:
    """Top-level result returned to the presentation layer."""

    content: str
    confidence: float
    handler_id: str | None = None
    handler_name: str | None = None
    suggestions: list[str] = field(default_factory=list)
    next_actions: list[str] = field(default_factory=list)


class CompletionClient(Protocol):
    """Interface to the external text-completion service."""

    def complete(
        self, messages: Sequence[Message], options: CompletionOptions | None = None
    ) -> str:  # pragma: no cover - interface
        """Return the completion text or raise an ``UpstreamError`` subclass."""
        ...


class DataStore(Protocol):
    """Interface to the external record store."""

    def fetch(
        self, view: str, filters: dict[str, Any], *, limit: int | None = None
    ) -> list[dict[str, Any]]:  # pragma: no cover - interface
        """Return matching records, or raise ``LookupFailed``."""
        ...


class Handler(Protocol):
    """Interface every topic handler implements."""

    descriptor: HandlerDescriptor

    def can_handle(
        self, query: str, context: SessionContext
    ) -> bool:  # pragma: no cover - interface
        """Cheap, pure keyword predicate."""
        ...

    def process(
        self, query: str, context: SessionContext, history: Sequence[Turn]
    ) -> HandlerResponse:  # pragma: no cover - interface
        """Answer the query. Must not raise."""
        ...
