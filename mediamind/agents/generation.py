"""Response formatting: politeness, continuity, fallbacks and data summaries."""

import random
from typing import Any, Iterable, Sequence

from mediamind.agents.types import AgentResponse, HandlerDescriptor

POLITENESS_PREFIXES: tuple[str, ...] = (
    "Sure,",
    "Here you go,",
    "No problem,",
    "Got it,",
    "Here's what I found:",
)

FALLBACK_SUGGESTIONS: dict[str, str] = {
    "campaigns": "you can check your campaigns directly in the Campaigns section, or I can help you create a new one.",
    "performance": "I can help you set up campaign tracking or check your dashboard for current metrics.",
    "audience": "I can help you explore audience segments or check your targeting settings.",
    "analytics": "you can view your analytics dashboard or I can help you set up tracking.",
    "default": "you can check your dashboard directly or contact support for assistance.",
}

GENERIC_NEXT_STEPS: tuple[str, ...] = (
    "Try rephrasing your question",
    "Check the dashboard directly",
    "Ask about a specific campaign or metric",
)

META_CONFIDENCE = 0.9
REJECTED_CONFIDENCE = 0.1
ERROR_CONFIDENCE = 0.1


class ResponseFormatter:
    """
    Formats answers for display.
    Phrasing choices come from an injected random source so output is reproducible.
    """

    def __init__(self, rng: random.Random | None = None, seed: int | None = None) -> None:
        """
        Initialize the ResponseFormatter.

        Args:
            rng (random.Random | None, optional): Random source for phrasing. Defaults to one seeded with ``seed``.
            seed (int | None, optional): Seed used when ``rng`` is not given. Defaults to None.
        """
        self.rng = rng or random.Random(seed)

    def polite(self, content: str) -> str:
        """
        Prefix a successful answer with a short politeness phrase.

        Args:
            content (str): The answer text.

        Returns:
            str: The answer with a prefix.
        """
        return f"{self.rng.choice(POLITENESS_PREFIXES)} {content}"

    @staticmethod
    def with_continuity(content: str, phrase: str) -> str:
        """Prepend a continuity phrase when there is one."""
        return f"{phrase} {content}" if phrase else content

    @staticmethod
    def fallback(data_type: str) -> str:
        """
        Polite "no data" answer with a next step.

        Args:
            data_type (str): Intent label of the missing data.

        Returns:
            str: The fallback text.
        """
        suggestion = FALLBACK_SUGGESTIONS.get(data_type, FALLBACK_SUGGESTIONS["default"])
        return f"I couldn't find {data_type} data for that request, but {suggestion}"

    @staticmethod
    def meta_response(descriptors: Sequence[HandlerDescriptor]) -> AgentResponse:
        """
        Static answer to questions about the assistant itself.

        Args:
            descriptors (Sequence[HandlerDescriptor]): Registered handlers, in order.

        Returns:
            AgentResponse: The answer listing the available handlers.
        """
        lines = [f"- {d.display_name}: {d.description}" for d in descriptors]
        content = (
            "I'm the dashboard assistant. I route each question to one of these "
            "specialist agents and check their answers before replying:\n"
            + "\n".join(lines)
        )
        return AgentResponse(
            content=content,
            confidence=META_CONFIDENCE,
            suggestions=[d.display_name for d in descriptors],
            next_actions=["Ask a question about your campaigns, audiences or TV data"],
        )

    @staticmethod
    def rejected_response(issues: Iterable[str]) -> AgentResponse:
        """
        Answer for a query that failed validation.

        Args:
            issues (Iterable[str]): Validation issues found.

        Returns:
            AgentResponse: A low-confidence response asking for a rephrase.
        """
        detail = ", ".join(i.lower() for i in issues) or "the query could not be used"
        return AgentResponse(
            content=(
                "I couldn't process that question "
                f"({detail}). Could you rephrase it in plain words?"
            ),
            confidence=REJECTED_CONFIDENCE,
            suggestions=["Keep questions between a couple of words and a short paragraph"],
            next_actions=list(GENERIC_NEXT_STEPS),
        )

    @staticmethod
    def error_response() -> AgentResponse:
        """Generic degraded answer used when something unexpected goes wrong."""
        return AgentResponse(
            content=(
                "I couldn't find that information right now, "
                "but here's what you can try next."
            ),
            confidence=ERROR_CONFIDENCE,
            suggestions=list(GENERIC_NEXT_STEPS),
            next_actions=list(GENERIC_NEXT_STEPS),
        )


def _fmt_number(value: Any) -> str:
    if isinstance(value, (int, float)):
        return f"{value:,}"
    return str(value)


def summarize_records(records: Sequence[dict[str, Any]], topic: str) -> str:
    """
    Summarise lookup results instead of dumping raw rows.

    Args:
        records (Sequence[dict[str, Any]]): Rows returned by the data store.
        topic (str): Intent label or view kind guiding the summary shape.

    Returns:
        str: A one-paragraph summary.
    """
    if not records:
        return "No data found for that query."

    if topic == "campaigns":
        names = [f"{r.get('name', 'unnamed')} ({r.get('status') or 'draft'})" for r in records]
        return f"Found {len(records)} campaign(s): {', '.join(names)}."

    if topic == "performance":
        rows = []
        for r in records:
            parts = []
            label = r.get("campaign_name")
            if r.get("total_impressions"):
                parts.append(f"{_fmt_number(r['total_impressions'])} impressions")
            if r.get("total_completed_views"):
                parts.append(f"{_fmt_number(r['total_completed_views'])} completed views")
            if r.get("completion_rate"):
                parts.append(f"{r['completion_rate']}% completion rate")
            if parts:
                rows.append(f"{label}: {', '.join(parts)}" if label else ", ".join(parts))
        return f"Performance: {'; '.join(rows)}." if rows else f"Found {len(records)} records."

    if topic == "audience":
        segments = [r.get("segment_name") or r.get("category") for r in records]
        segments = [s for s in segments if s]
        return f"Found {len(records)} audience segment(s): {', '.join(segments)}."

    if len(records) == 1:
        return ", ".join(
            f"{key}: {value}"
            for key, value in records[0].items()
            if value is not None and key != "id"
        )
    return f"Found {len(records)} records."
