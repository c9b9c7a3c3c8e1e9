"""Keyword-based query understanding shared by routing, memory and handlers."""

import re
from dataclasses import dataclass, field
from typing import Iterable

from mediamind.agents.errors import ValidationRejected

GENERIC_INTENT = "general"

# Checked in order; the first label whose keywords appear wins.
INTENT_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("campaigns", ("campaign",)),
    ("performance", ("performance", "metrics")),
    ("audience", ("audience", "demographics")),
    ("analytics", ("analytics", "insights")),
    ("performance", ("impressions", "views")),
)

UNSAFE_PATTERNS: tuple[str, ...] = (
    ";",
    "--",
    "/*",
    "*/",
    "union",
    "select",
    "drop",
    "delete",
)

META_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, flags=re.IGNORECASE)
    for p in (
        r"\b(what|which)\s+(ai\s+|language\s+)?(model|llm)\b",
        r"\b(what|which)\s+system\b",
        r"\b(what|which)\s+agents?\b",
        r"\bwho\s+are\s+you\b",
        r"\bwhat\s+are\s+you\b",
        r"\bare\s+you\s+(an?\s+)?(ai|bot|chatgpt|gpt)\b",
    )
)

PAGE_NAMES: dict[str, str] = {
    "/campaigns": "Campaigns",
    "/analytics": "Analytics",
    "/audience": "Audience",
    "/tv-intelligence": "TV Intelligence",
}

SPECIFIC_KEYWORDS: tuple[str, ...] = (
    "campaign",
    "performance",
    "audience",
    "impressions",
    "metrics",
)

DATA_REQUIREMENTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("campaigns", ("campaign",)),
    ("performance", ("performance", "metrics")),
    ("audience", ("audience",)),
    ("impressions", ("impressions",)),
)


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(kw in text for kw in keywords)


def extract_intent(query: str) -> str:
    """
    Map a query onto a coarse topic label.

    Args:
        query (str): The user query.

    Returns:
        str: One of ``campaigns``, ``performance``, ``audience``, ``analytics`` or ``general``.
    """
    lowered = (query or "").lower()
    for label, keywords in INTENT_KEYWORDS:
        if _contains_any(lowered, keywords):
            return label
    return GENERIC_INTENT


def is_meta_query(query: str) -> bool:
    """
    Whether the query asks about the assistant itself rather than the data.

    Args:
        query (str): The user query.

    Returns:
        bool: True for self-referential questions such as "what model are you".
    """
    return any(pattern.search(query or "") for pattern in META_PATTERNS)


def validate_query(query: str, min_length: int = 2, max_length: int = 500) -> str:
    """
    Check a query before it reaches any handler.

    Args:
        query (str): The raw user query.
        min_length (int, optional): Shortest accepted query after stripping. Defaults to 2.
        max_length (int, optional): Longest accepted query. Defaults to 500.

    Returns:
        str: The stripped query.

    Raises:
        ValidationRejected: If the query is too short, too long or contains unsafe patterns.
    """
    sanitized = (query or "").strip()
    issues: list[str] = []
    if len(sanitized) < min_length:
        issues.append("Query too short")
    if len(sanitized) > max_length:
        issues.append("Query too long")
    lowered = sanitized.lower()
    if _contains_any(lowered, UNSAFE_PATTERNS):
        issues.append("Query contains potentially unsafe patterns")
    if issues:
        raise ValidationRejected("; ".join(issues), issues=issues)
    return sanitized


def page_name(path: str | None) -> str:
    """Human-readable name of a dashboard route, or the route itself when unknown."""
    if not path:
        return "unknown"
    return PAGE_NAMES.get(path, path)


def preference_hints(query: str) -> dict[str, str]:
    """
    Detect explicit presentation preferences in the query.

    Args:
        query (str): The user query.

    Returns:
        dict[str, str]: Preference fields to update. Empty when nothing is stated.
    """
    lowered = (query or "").lower()
    hints: dict[str, str] = {}
    if re.search(r"\b(brief|briefly|short|shorter|tl;?dr|summary only)\b", lowered):
        hints["detail_level"] = "brief"
    elif re.search(r"\b(in detail|detailed|in depth|elaborate)\b", lowered):
        hints["detail_level"] = "detailed"
    if re.search(r"\b(technical|advanced|in technical terms)\b", lowered):
        hints["technical_level"] = "advanced"
    elif re.search(r"\b(simple terms|plain english|non-technical|eli5)\b", lowered):
        hints["technical_level"] = "basic"
    if re.search(r"\b(bullets?|bullet points|as a list|list them)\b", lowered):
        hints["preferred_format"] = "bullet"
    elif re.search(r"\b(chart|graph|visuali[sz]e)\b", lowered):
        hints["preferred_format"] = "visual"
    return hints


@dataclass
class RequestAnalysis:
    """
    Result of analysing a request before a handler answers it.
    """

    intent: str
    data_needed: list[str] = field(default_factory=list)
    confidence: float = 0.5
    requires_clarification: bool = False


class RequestAnalyzer:
    """
    Decides whether a handler has enough to go on or should ask back first.
    """

    def __init__(
        self,
        specific_keywords: Iterable[str] | None = None,
        data_requirements: dict[str, Iterable[str]] | None = None,
        base_confidence: float = 0.5,
        keyword_bonus: float = 0.1,
        missing_data_penalty: float = 0.3,
        clarify_below: float = 0.5,
    ) -> None:
        """
        Initialize the RequestAnalyzer.

        Args:
            specific_keywords (Iterable[str] | None, optional): Terms that make a request concrete. Defaults to SPECIFIC_KEYWORDS.
            data_requirements (dict[str, Iterable[str]] | None, optional): Data kind to trigger terms. Defaults to DATA_REQUIREMENTS.
            base_confidence (float, optional): Starting confidence. Defaults to 0.5.
            keyword_bonus (float, optional): Added per specific keyword found. Defaults to 0.1.
            missing_data_penalty (float, optional): Subtracted when no data need is identified. Defaults to 0.3.
            clarify_below (float, optional): Confidence under which clarification is requested. Defaults to 0.5.
        """
        self.specific_keywords = tuple(specific_keywords or SPECIFIC_KEYWORDS)
        self.data_requirements = (
            tuple((label, tuple(kws)) for label, kws in data_requirements.items())
            if data_requirements
            else DATA_REQUIREMENTS
        )
        self.base_confidence = base_confidence
        self.keyword_bonus = keyword_bonus
        self.missing_data_penalty = missing_data_penalty
        self.clarify_below = clarify_below

    def _data_requirements(self, lowered: str) -> list[str]:
        return [
            label
            for label, keywords in self.data_requirements
            if _contains_any(lowered, keywords)
        ]

    def _confidence(self, lowered: str, data_needed: list[str]) -> float:
        found = sum(1 for kw in self.specific_keywords if kw in lowered)
        confidence = self.base_confidence + found * self.keyword_bonus
        if not data_needed:
            confidence -= self.missing_data_penalty
        return min(max(confidence, 0.0), 1.0)

    def analyze(self, query: str) -> RequestAnalysis:
        """
        Return intent, data needs, confidence and the clarification decision.

        Args:
            query (str): The user query.

        Returns:
            RequestAnalysis: The result of the analysis.
        """
        lowered = (query or "").lower()
        data_needed = self._data_requirements(lowered)
        confidence = self._confidence(lowered, data_needed)
        return RequestAnalysis(
            intent=extract_intent(query),
            data_needed=data_needed,
            confidence=confidence,
            requires_clarification=confidence < self.clarify_below,
        )
