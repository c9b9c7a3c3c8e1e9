"""Routing policy: keyword scoring, boosts, priority overrides and selection."""

import re
from dataclasses import dataclass, field
from typing import Sequence

from mediamind.agents.context import SessionContext
from mediamind.agents.types import DispatchScore, Handler, HandlerId
from mediamind.utils.env_cfg import RoutingConfig


@dataclass(frozen=True)
class KeywordRule:
    """
    Scoring vocabulary of one handler.
    ``normaliser`` is the match count at which a query scores 1.0.
    """

    keywords: tuple[str, ...]
    normaliser: float


@dataclass(frozen=True)
class Boost:
    """
    Additive boost applied when every term in ``all_of`` and any term in ``any_of`` appear.
    """

    handler_id: HandlerId
    amount: float
    any_of: tuple[str, ...] = ()
    all_of: tuple[str, ...] = ()

    def applies(self, lowered: str) -> bool:
        if self.all_of and not all(term in lowered for term in self.all_of):
            return False
        if self.any_of and not any(term in lowered for term in self.any_of):
            return False
        return bool(self.all_of or self.any_of)


@dataclass(frozen=True)
class PriorityOverride:
    """
    High-precision phrasing that forces dispatch to one handler.
    """

    handler_id: HandlerId
    pattern: re.Pattern[str]


def _override(handler_id: HandlerId, pattern: str) -> PriorityOverride:
    return PriorityOverride(handler_id, re.compile(pattern, flags=re.IGNORECASE))


DEFAULT_RULES: dict[HandlerId, KeywordRule] = {
    HandlerId.ANALYTICS: KeywordRule(
        keywords=(
            "analytics", "dashboard", "report", "data", "trends", "analysis",
            "insights", "metrics", "performance", "kpi",
        ),
        normaliser=3,
    ),
    HandlerId.CAMPAIGN: KeywordRule(
        keywords=(
            "campaign", "performance", "metrics", "analytics", "impressions",
            "spend", "revenue", "kpi", "cpm", "ctr", "roi", "optimize",
            "strategy", "budget", "data", "insights", "how many", "what are",
            "show me",
        ),
        normaliser=5,
    ),
    HandlerId.AUDIENCE: KeywordRule(
        keywords=(
            "audience", "demographics", "viewers", "people", "location", "geo",
            "geographic", "region", "postcode", "segment", "target", "reach",
        ),
        normaliser=4,
    ),
    HandlerId.YOUTUBE_CURATION: KeywordRule(
        keywords=(
            "youtube", "channel", "video", "creator", "influencer", "content",
            "find", "search", "discover", "curate", "uk", "london", "british",
            "gaming", "lifestyle", "tech", "subscribers", "views", "engagement",
        ),
        normaliser=4,
    ),
    HandlerId.TV_INTELLIGENCE: KeywordRule(
        keywords=(
            "tv", "television", "show", "programme", "channel", "viewing",
            "watch", "brand", "visibility", "exposure", "acr", "audience",
            "viewership", "rating", "overlap", "performance", "broadcast", "air",
        ),
        normaliser=4,
    ),
    HandlerId.INCREMENTAL_REACH: KeywordRule(
        keywords=(
            "incremental", "reach", "unique", "additional", "extra", "beyond",
            "ctv", "linear", "tv", "campaign", "delivery", "acr", "postcode",
            "missed", "unique audience", "geographic", "area", "region",
        ),
        normaliser=4,
    ),
    HandlerId.GENERAL_HELP: KeywordRule(
        keywords=(
            "help", "how", "what", "where", "when", "why", "guide", "tutorial",
            "support", "assist", "explain", "show me", "tell me", "navigate",
            "feature", "function", "button", "menu", "page", "section",
        ),
        normaliser=4,
    ),
}

DEFAULT_BOOSTS: tuple[Boost, ...] = (
    Boost(HandlerId.TV_INTELLIGENCE, 0.2, any_of=("tesco", "brand")),
    Boost(HandlerId.AUDIENCE, 0.2, any_of=("sports", "audience")),
    Boost(HandlerId.CAMPAIGN, 0.2, all_of=("campaign", "performance")),
)

DEFAULT_OVERRIDES: tuple[PriorityOverride, ...] = (
    _override(HandlerId.YOUTUBE_CURATION, r"\b(find|search|discover)\b.*\byoutube\b"),
    _override(HandlerId.YOUTUBE_CURATION, r"\byoutube\s+(channels?|creators?)\b"),
    _override(HandlerId.INCREMENTAL_REACH, r"\bincremental\s+reach\b"),
    _override(HandlerId.TV_INTELLIGENCE, r"\b(tv|television)\s+(schedule|programmes?|shows?)\b"),
    _override(
        HandlerId.GENERAL_HELP,
        r"^\s*(help(\s+(with|me\s+with)\s+(exports?|navigation|settings|my\s+account))?\s*[?!.]*$"
        r"|how\s+do\s+i\s+(navigate|export|contact|use\s+the|get\s+started)\b)",
    ),
)


@dataclass
class RoutingPolicy:
    """
    Explicit scoring function over a fixed handler registry.
    Scores depend only on the query text and the registered handlers.
    """

    config: RoutingConfig = field(default_factory=RoutingConfig)
    rules: dict[HandlerId, KeywordRule] = field(
        default_factory=lambda: dict(DEFAULT_RULES)
    )
    boosts: tuple[Boost, ...] = DEFAULT_BOOSTS
    overrides: tuple[PriorityOverride, ...] = DEFAULT_OVERRIDES

    def validate(self, handler_ids: Sequence[HandlerId]) -> None:
        """
        Check that every rule, boost and override names a registered handler.

        Args:
            handler_ids (Sequence[HandlerId]): Identifiers of the registered handlers.

        Raises:
            ValueError: If a rule names an unknown handler or a normaliser is not positive.
        """
        known = set(handler_ids)
        named = (
            set(self.rules)
            | {b.handler_id for b in self.boosts}
            | {o.handler_id for o in self.overrides}
        )
        unknown = {HandlerId(h) for h in named} - known
        if unknown:
            names = ", ".join(sorted(h.value for h in unknown))
            raise ValueError(f"Routing rules reference unregistered handlers: {names}")
        for handler_id, rule in self.rules.items():
            if rule.normaliser <= 0:
                raise ValueError(f"Normaliser for '{handler_id.value}' must be positive")

    def priority_override(self, query: str) -> HandlerId | None:
        """
        Return the handler forced by a high-precision phrasing, if any.

        Args:
            query (str): The user query.

        Returns:
            HandlerId | None: The forced handler, or None.
        """
        for override in self.overrides:
            if override.pattern.search(query):
                return override.handler_id
        return None

    def score_handler(self, handler_id: HandlerId, query: str) -> float:
        """
        Keyword score of one handler, with boosts, clamped to [0, 1].

        Args:
            handler_id (HandlerId): The handler to score.
            query (str): The user query.

        Returns:
            float: The routing confidence.
        """
        lowered = query.lower()
        rule = self.rules.get(handler_id)
        base = 0.0
        if rule is not None:
            matches = sum(1 for kw in rule.keywords if kw in lowered)
            base = min(matches / rule.normaliser, 1.0)
        for boost in self.boosts:
            if boost.handler_id == handler_id and boost.applies(lowered):
                base += boost.amount
        return min(max(base, 0.0), 1.0)

    def score(
        self, handlers: Sequence[Handler], query: str, context: SessionContext
    ) -> list[DispatchScore]:
        """
        Score every handler in registration order.
        Handlers whose ``can_handle`` is false score 0.

        Args:
            handlers (Sequence[Handler]): Registered handlers, in order.
            query (str): The user query.
            context (SessionContext): The caller's session context.

        Returns:
            list[DispatchScore]: One score per handler, in registration order.
        """
        scores = []
        for handler in handlers:
            handler_id = handler.descriptor.id
            confidence = (
                self.score_handler(handler_id, query)
                if handler.can_handle(query, context)
                else 0.0
            )
            scores.append(DispatchScore(handler_id=handler_id, confidence=confidence))
        return scores

    def select(self, scores: Sequence[DispatchScore]) -> DispatchScore | None:
        """
        Pick the strictly highest score; the earliest registered handler wins ties.

        Args:
            scores (Sequence[DispatchScore]): Scores in registration order.

        Returns:
            DispatchScore | None: The winner, or None when it is under the dispatch threshold.
        """
        best: DispatchScore | None = None
        for candidate in scores:
            if best is None or candidate.confidence > best.confidence:
                best = candidate
        if best is None or best.confidence < self.config.dispatch_threshold:
            return None
        return best

    def best(self, scores: Sequence[DispatchScore]) -> float:
        """Highest confidence among the scores, or 0."""
        return max((s.confidence for s in scores), default=0.0)
