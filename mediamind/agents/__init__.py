"""Agent orchestration package.

Provides the dispatcher, topic handlers, conversational memory, routing policy and
the self-validation loop used to answer dashboard questions.
"""

from mediamind.agents.types import (
    AgentResponse,
    Capability,
    CompletionOptions,
    DispatchScore,
    HandlerDescriptor,
    HandlerId,
    HandlerResponse,
    Turn,
    ValidationVerdict,
)
from mediamind.agents.errors import (
    LookupFailed,
    MediamindError,
    NoHandlerMatched,
    UpstreamError,
    UpstreamRejected,
    UpstreamThrottled,
    UpstreamUnavailable,
    ValidationRejected,
)
from mediamind.agents.policies import RoutingPolicy
from mediamind.agents.orchestrator import (
    AgentOrchestrator,
    DispatchTrace,
    build_orchestrator,
)
from mediamind.agents.clarify import SimpleClarifier
from mediamind.agents.generation import ResponseFormatter
from mediamind.agents.context import SessionContext
from mediamind.agents.memory import ConversationMemory, MemoryStore
from mediamind.agents.refinement import SelfValidationLoop
from mediamind.agents.registry import HandlerRegistry

__all__ = [
    "AgentOrchestrator",
    "AgentResponse",
    "Capability",
    "CompletionOptions",
    "ConversationMemory",
    "DispatchScore",
    "DispatchTrace",
    "HandlerDescriptor",
    "HandlerId",
    "HandlerRegistry",
    "HandlerResponse",
    "LookupFailed",
    "MediamindError",
    "MemoryStore",
    "NoHandlerMatched",
    "ResponseFormatter",
    "RoutingPolicy",
    "SelfValidationLoop",
    "SessionContext",
    "SimpleClarifier",
    "Turn",
    "UpstreamError",
    "UpstreamRejected",
    "UpstreamThrottled",
    "UpstreamUnavailable",
    "ValidationRejected",
    "ValidationVerdict",
    "build_orchestrator",
]
