"""Agent orchestrator that routes a query to one topic handler."""

from dataclasses import dataclass, field
from typing import Sequence

from loguru import logger

from mediamind.agents.clarify import SimpleClarifier
from mediamind.agents.context import SessionContext
from mediamind.agents.errors import NoHandlerMatched, ValidationRejected
from mediamind.agents.generation import ResponseFormatter
from mediamind.agents.handlers import HANDLER_CLASSES
from mediamind.agents.memory import ConversationMemory, MemoryStore
from mediamind.agents.policies import RoutingPolicy
from mediamind.agents.registry import HandlerRegistry
from mediamind.agents.types import (
    AgentResponse,
    CompletionClient,
    DataStore,
    DispatchScore,
    HandlerId,
    HandlerResponse,
    Turn,
)
from mediamind.agents.understanding import (
    extract_intent,
    is_meta_query,
    validate_query,
)
from mediamind.utils.env_cfg import (
    load_memory_env,
    load_refinement_env,
    load_routing_env,
)


@dataclass
class DispatchTrace:
    """
    A response together with how it was routed.
    ``route`` is one of meta, rejected, clarify, override, scored or error.
    """

    response: AgentResponse
    route: str
    scores: list[DispatchScore] = field(default_factory=list)
    selected: HandlerId | None = None


class AgentOrchestrator:
    """
    Single entry point for conversational queries.
    Handles meta questions, validation, routing, clarification and memory in sequence.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        memory: MemoryStore | None = None,
        policy: RoutingPolicy | None = None,
        clarifier: SimpleClarifier | None = None,
        formatter: ResponseFormatter | None = None,
    ) -> None:
        """
        Initialize the AgentOrchestrator.

        Args:
            registry (HandlerRegistry): Handlers in registration order.
            memory (MemoryStore | None, optional): Conversation memory. Defaults to a new MemoryStore.
            policy (RoutingPolicy | None, optional): Scoring and selection rules. Defaults to RoutingPolicy().
            clarifier (SimpleClarifier | None, optional): Builds clarifying questions. Defaults to SimpleClarifier().
            formatter (ResponseFormatter | None, optional): Builds static responses. Defaults to one seeded from the policy config.

        Raises:
            ValueError: If the policy names a handler that is not registered.
        """
        self.registry = registry
        self.memory = memory if memory is not None else MemoryStore()
        self.policy = policy or RoutingPolicy()
        self.clarifier = clarifier or SimpleClarifier()
        self.formatter = formatter or ResponseFormatter(
            seed=self.policy.config.response_seed
        )
        self.policy.validate(self.registry.ids())

    def respond(
        self,
        query: str,
        context: SessionContext | None = None,
        history: Sequence[Turn] | None = None,
    ) -> AgentResponse:
        """
        Answer a query. Never raises for ``Exception``.

        Args:
            query (str): The user query.
            context (SessionContext | None, optional): The caller's session context. Defaults to an anonymous context.
            history (Sequence[Turn] | None, optional): Prior turns. Defaults to the most recent turns held in memory.

        Returns:
            AgentResponse: The answer, a clarifying question or a degraded fallback.
        """
        return self.respond_with_trace(query, context, history).response

    def respond_with_trace(
        self,
        query: str,
        context: SessionContext | None = None,
        history: Sequence[Turn] | None = None,
    ) -> DispatchTrace:
        """
        Answer a query and report the routing decision.

        Args:
            query (str): The user query.
            context (SessionContext | None, optional): The caller's session context.
            history (Sequence[Turn] | None, optional): Prior turns.

        Returns:
            DispatchTrace: The response with route, scores and selected handler.
        """
        ctx = context or SessionContext()
        try:
            return self._dispatch(query or "", ctx, history)
        except Exception:
            logger.exception("Dispatcher failed for user '{}'", ctx.user_id)
            return DispatchTrace(response=self.formatter.error_response(), route="error")

    def _commit(
        self,
        memory: ConversationMemory,
        query: str,
        context: SessionContext,
        response: AgentResponse | HandlerResponse,
        approaches: list[str] | None = None,
    ) -> None:
        self.memory.record_user_turn(memory, query, context)
        self.memory.record_assistant_turn(memory, response, approaches)

    def _dispatch(
        self, query: str, context: SessionContext, history: Sequence[Turn] | None
    ) -> DispatchTrace:
        cfg = self.policy.config
        if is_meta_query(query):
            logger.info("Answering meta query from template")
            response = self.formatter.meta_response(self.registry.descriptors())
            # Meta queries skip validation, so bound what reaches shared memory.
            stored = query.strip()[: cfg.max_query_length]
            self._commit(self.memory.get(context.user_id), stored, context, response)
            return DispatchTrace(response=response, route="meta")

        try:
            query = validate_query(query, cfg.min_query_length, cfg.max_query_length)
        except ValidationRejected as e:
            logger.warning("Rejected query: {}", e)
            return DispatchTrace(
                response=self.formatter.rejected_response(e.issues), route="rejected"
            )

        memory = self.memory.get(context.user_id)
        continuity = self.memory.relevant_context(memory, query)
        turns = (
            list(history)
            if history is not None
            else list(memory.recent_turns(self.memory.config.context_turns))
        )

        handlers = list(self.registry)
        scores = self.policy.score(handlers, query, context)
        logger.debug(
            "Dispatch scores: {}",
            ", ".join(f"{s.handler_id.value}={s.confidence:.2f}" for s in scores),
        )

        forced = self.policy.priority_override(query)
        route = "override"
        if forced is not None and self.registry.get(forced) is not None:
            selected = forced
        else:
            route = "scored"
            try:
                best = self.policy.select(scores)
                if best is None:
                    raise NoHandlerMatched(
                        "No handler above the dispatch threshold",
                        intent=extract_intent(query),
                        best_score=self.policy.best(scores),
                    )
            except NoHandlerMatched as e:
                logger.info("No handler matched (best score {:.2f}); asking back", e.best_score)
                response = self.clarifier.build(query, confidence=e.best_score)
                self._commit(memory, query, context, response)
                return DispatchTrace(response=response, route="clarify", scores=scores)
            selected = best.handler_id

        handler = self.registry.get(selected)
        logger.info("Routing query to '{}' ({})", selected.value, route)
        result = handler.process(query, context, turns)
        response = AgentResponse(
            content=self.formatter.with_continuity(result.content, continuity),
            confidence=result.confidence,
            handler_id=getattr(result.handler_id, "value", result.handler_id),
            handler_name=result.handler_name,
            suggestions=list(result.suggestions),
            next_actions=list(result.next_actions),
        )
        self._commit(memory, query, context, response, result.approaches)
        return DispatchTrace(
            response=response, route=route, scores=scores, selected=selected
        )


def build_orchestrator(
    client: CompletionClient | None = None,
    datastore: DataStore | None = None,
    memory: MemoryStore | None = None,
) -> AgentOrchestrator:
    """
    Create an orchestrator with every handler registered in the standard order.

    Args:
        client (CompletionClient | None, optional): Completion service. Defaults to the configured backend.
        datastore (DataStore | None, optional): Data store. Defaults to the configured backend.
        memory (MemoryStore | None, optional): Conversation memory. Defaults to one built from the environment.

    Returns:
        AgentOrchestrator: The ready orchestrator.
    """
    if client is None:
        from mediamind.core.completion import build_completion_client

        client = build_completion_client()
    if datastore is None:
        from mediamind.core.datastore import build_datastore

        datastore = build_datastore()

    routing = load_routing_env()
    refinement = load_refinement_env()
    memory = memory if memory is not None else MemoryStore(load_memory_env())
    formatter = ResponseFormatter(seed=routing.response_seed)

    registry = HandlerRegistry()
    for handler_cls in HANDLER_CLASSES:
        registry.register(
            handler_cls(
                client,
                datastore,
                memory=memory,
                refinement=refinement,
                formatter=formatter,
            )
        )
    return AgentOrchestrator(
        registry,
        memory=memory,
        policy=RoutingPolicy(config=routing),
        formatter=formatter,
    )
