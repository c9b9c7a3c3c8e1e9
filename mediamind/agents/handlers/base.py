"""Base handler: analysis, data gathering, prompting and the refinement loop."""

import json
from typing import Any, Sequence

from loguru import logger

from mediamind.agents.clarify import clarification_question
from mediamind.agents.context import SessionContext
from mediamind.agents.errors import LookupFailed
from mediamind.agents.generation import ERROR_CONFIDENCE, ResponseFormatter, summarize_records
from mediamind.agents.memory import MemoryStore, Preferences
from mediamind.agents.refinement import RefinementOutcome, SelfValidationLoop
from mediamind.agents.types import (
    CompletionClient,
    CompletionOptions,
    DataStore,
    HandlerDescriptor,
    HandlerId,
    HandlerResponse,
    Turn,
)
from mediamind.agents.understanding import RequestAnalysis, RequestAnalyzer, page_name
from mediamind.utils.env_cfg import RefinementConfig, RoutingConfig
from mediamind.utils.prompt_cfg import render_prompt

DEGRADED_CONFIDENCE = 0.3
FALLBACK_CONFIDENCE = 0.2
FORCED_CONFIDENCE = 0.6

# Summary shape used for each known view.
VIEW_TOPICS: dict[str, str] = {
    "campaigns": "campaigns",
    "campaign_summary_metrics": "performance",
    "daily_overall_metrics": "performance",
    "experian_segments": "audience",
}


class BaseHandler:
    """
    Shared behaviour for topic handlers.

    Subclasses set ``descriptor`` and ``vocabulary`` and usually ``data_views``.
    ``process`` never raises: lookup failures, upstream failures and defects all
    end in a low-confidence answer.
    """

    descriptor: HandlerDescriptor
    vocabulary: tuple[str, ...] = ()
    data_views: tuple[str, ...] = ()
    filter_columns: tuple[str, ...] = ("campaign_id",)
    requires_data: bool = True
    specific_keywords: tuple[str, ...] | None = None
    data_requirements: dict[str, tuple[str, ...]] | None = None
    suggestions: tuple[str, ...] = ()
    next_actions: tuple[str, ...] = ()
    error_message: str = (
        "I ran into a problem while working on that. "
        "Please try rephrasing your question or check the dashboard directly."
    )

    def __init__(
        self,
        client: CompletionClient,
        datastore: DataStore,
        memory: MemoryStore | None = None,
        refinement: RefinementConfig | None = None,
        formatter: ResponseFormatter | None = None,
        options: CompletionOptions | None = None,
    ) -> None:
        """
        Initialize the handler.

        Args:
            client (CompletionClient): The completion service.
            datastore (DataStore): Source of topic data.
            memory (MemoryStore | None, optional): Store used to read user preferences. Defaults to None.
            refinement (RefinementConfig | None, optional): Loop bounds. Defaults to RefinementConfig().
            formatter (ResponseFormatter | None, optional): Shared formatter. Defaults to one seeded from RoutingConfig.
            options (CompletionOptions | None, optional): Options for drafting calls. Defaults to None.
        """
        self.client = client
        self.datastore = datastore
        self.memory = memory
        self.formatter = formatter or ResponseFormatter(seed=RoutingConfig().response_seed)
        self.loop = SelfValidationLoop(client, refinement, options)
        self.analyzer = RequestAnalyzer(self.specific_keywords, self.data_requirements)

    @property
    def id(self) -> HandlerId:
        return self.descriptor.id

    @property
    def name(self) -> str:
        return self.descriptor.display_name

    def can_handle(self, query: str, context: SessionContext) -> bool:
        """
        Whether the query mentions any of the handler's vocabulary.

        Args:
            query (str): The user query.
            context (SessionContext): The caller's session context. Unused by default.

        Returns:
            bool: True when at least one vocabulary term appears in the query.
        """
        lowered = query.lower()
        return any(term in lowered for term in self.vocabulary)

    def views_for(self, query: str) -> tuple[str, ...]:
        """Views to read for a query."""
        return self.data_views

    def filters_for(self, view: str, context: SessionContext) -> dict[str, Any]:
        """
        Lookup filters for a view, always scoped to the caller's organization.

        Args:
            view (str): The view to read.
            context (SessionContext): The caller's session context.

        Returns:
            dict[str, Any]: The filters, including ``organization_id``.
        """
        filters: dict[str, Any] = {"organization_id": context.organization_id}
        for column in self.filter_columns:
            if column in context.active_filters:
                filters[column] = context.active_filters[column]
        return filters

    def gather_data(
        self, query: str, context: SessionContext
    ) -> dict[str, list[dict[str, Any]]]:
        """
        Read every relevant view for the caller's organization.

        Args:
            query (str): The user query.
            context (SessionContext): The caller's session context.

        Returns:
            dict[str, list[dict[str, Any]]]: Rows per view. Empty when no organization is known.

        Raises:
            LookupFailed: If any lookup fails.
        """
        if not context.organization_id:
            logger.warning("No organization in context; {} skips data lookup", self.name)
            return {}
        return {
            view: self.datastore.fetch(view, self.filters_for(view, context))
            for view in self.views_for(query)
        }

    def summarize_view(self, view: str, rows: list[dict[str, Any]]) -> str:
        """One-line summary of a view's rows for the prompt."""
        return summarize_records(rows, VIEW_TOPICS.get(view, ""))

    def describe_data(self, query: str, context: SessionContext) -> str:
        """
        Data context placed in the system prompt.

        Args:
            query (str): The user query.
            context (SessionContext): The caller's session context.

        Returns:
            str: A summary of the data found, or a plain "no data" note.

        Raises:
            LookupFailed: If any lookup fails.
        """
        data = self.gather_data(query, context)
        if not any(data.values()):
            return "No data is available for this organization yet."
        return "\n".join(
            f"- {view}: {self.summarize_view(view, rows)}" for view, rows in data.items()
        )

    def build_system_prompt(
        self, context: SessionContext, preferences: Preferences, data_context: str
    ) -> str:
        """
        Render the system prompt from the descriptor, context and preferences.

        Args:
            context (SessionContext): The caller's session context.
            preferences (Preferences): The user's presentation preferences.
            data_context (str): Summary of the data the answer may use.

        Returns:
            str: The rendered system prompt.
        """
        capabilities = "\n".join(
            f"- {c.name}: {c.description}" for c in self.descriptor.capabilities
        )
        return render_prompt(
            "system",
            display_name=self.name,
            description=self.descriptor.description,
            capabilities=capabilities or "- General questions in this area",
            user_id=context.user_id,
            organization_id=context.organization_id or "unknown",
            current_page=page_name(context.current_page),
            filters=json.dumps(context.active_filters, default=str),
            detail_level=preferences.detail_level,
            technical_level=preferences.technical_level,
            preferred_format=preferences.preferred_format,
            data_context=data_context,
        )

    def fallback_text(self, query: str, analysis: RequestAnalysis) -> str:
        """Deterministic answer used when no candidate could be produced."""
        return self.formatter.fallback(analysis.intent)

    def confidence_for(self, outcome: RefinementOutcome) -> float:
        """
        Answer confidence from how the loop ended.

        Args:
            outcome (RefinementOutcome): The loop result.

        Returns:
            float: The confidence reported with the answer.
        """
        if outcome.degraded:
            return FALLBACK_CONFIDENCE if outcome.score is None else DEGRADED_CONFIDENCE
        if outcome.forced:
            return FORCED_CONFIDENCE
        return min(0.5 + (outcome.score or 0) / 20, 0.95)

    def _preferences(self, context: SessionContext) -> Preferences:
        if self.memory is None:
            return Preferences()
        return self.memory.get(context.user_id).preferences

    def _response(
        self,
        content: str,
        confidence: float,
        approaches: list[str] | None = None,
        suggestions: Sequence[str] | None = None,
    ) -> HandlerResponse:
        return HandlerResponse(
            content=content,
            confidence=confidence,
            handler_id=self.id,
            handler_name=self.name,
            suggestions=list(self.suggestions if suggestions is None else suggestions),
            next_actions=list(self.next_actions),
            approaches=approaches or [],
        )

    def _clarify(self, analysis: RequestAnalysis) -> HandlerResponse:
        examples = [e for c in self.descriptor.capabilities for e in c.examples][:3]
        return self._response(
            clarification_question(analysis.intent),
            analysis.confidence,
            approaches=["asked for clarification"],
            suggestions=examples or self.suggestions,
        )

    def answer(
        self, query: str, context: SessionContext, history: Sequence[Turn]
    ) -> HandlerResponse:
        """
        Produce the answer. Errors raised here are turned into a fallback by ``process``.

        Args:
            query (str): The user query.
            context (SessionContext): The caller's session context.
            history (Sequence[Turn]): Prior turns.

        Returns:
            HandlerResponse: The handler's answer.
        """
        analysis = self.analyzer.analyze(query)
        if self.requires_data and analysis.requires_clarification:
            logger.info("{} asks for clarification (confidence {:.2f})", self.name, analysis.confidence)
            return self._clarify(analysis)

        fallback = self.fallback_text(query, analysis)
        try:
            data_context = self.describe_data(query, context)
        except LookupFailed as e:
            logger.warning("{} lookup failed on '{}': {}", self.name, e.view, e)
            return self._response(
                fallback, DEGRADED_CONFIDENCE, approaches=["data lookup failed"]
            )

        system_prompt = self.build_system_prompt(
            context, self._preferences(context), data_context
        )
        outcome = self.loop.run(
            query,
            system_prompt,
            fallback=fallback,
            display_name=self.name,
            context_summary=json.dumps(context.describe(), default=str),
            history=history,
        )
        content = outcome.content if outcome.degraded else self.formatter.polite(outcome.content)
        return self._response(content, self.confidence_for(outcome), approaches=outcome.approaches)

    def process(
        self, query: str, context: SessionContext, history: Sequence[Turn]
    ) -> HandlerResponse:
        """
        Answer the query without ever raising an ``Exception``.

        Args:
            query (str): The user query.
            context (SessionContext): The caller's session context.
            history (Sequence[Turn]): Prior turns.

        Returns:
            HandlerResponse: The answer, or a low-confidence fallback on internal error.
        """
        try:
            return self.answer(query, context, history)
        except Exception:
            logger.exception("{} failed to process query", self.name)
            return self._response(
                self.error_message, ERROR_CONFIDENCE, approaches=["internal error"]
            )
