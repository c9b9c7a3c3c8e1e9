"""Clarification agents."""

from mediamind.agents.types import AgentResponse
from mediamind.agents.understanding import GENERIC_INTENT, extract_intent

CLARIFICATION_QUESTIONS: dict[str, str] = {
    "campaigns": "Which campaign are you asking about?",
    "performance": "What specific metrics are you looking for?",
    "audience": "What audience segment are you interested in?",
    "analytics": "What type of analysis do you need?",
    GENERIC_INTENT: "Could you be more specific about what you're looking for?",
}

DEFAULT_SUGGESTIONS: tuple[str, ...] = (
    "Try asking about specific campaigns or metrics",
    "Ask about performance data or audience insights",
    "Request help with analytics or optimization",
)


def clarification_question(intent: str) -> str:
    """
    Return the follow-up question for an intent label.

    Args:
        intent (str): Label produced by ``extract_intent``.

    Returns:
        str: The question, falling back to the generic one for unknown labels.
    """
    return CLARIFICATION_QUESTIONS.get(intent, CLARIFICATION_QUESTIONS[GENERIC_INTENT])


class SimpleClarifier:
    """
    Builds a clarifying question when no handler is confident enough.
    The question is derived from the query's intent label.
    """

    def __init__(self, suggestions: list[str] | None = None) -> None:
        """
        Initialize the SimpleClarifier.

        Args:
            suggestions (list[str] | None, optional): Rephrasing suggestions offered with the question. Defaults to None.
        """
        self.suggestions = suggestions or list(DEFAULT_SUGGESTIONS)

    def build(self, query: str, confidence: float = 0.0) -> AgentResponse:
        """
        Return a clarifying response that is not attributed to any handler.

        Args:
            query (str): The user query that could not be routed.
            confidence (float, optional): Best routing score seen. Defaults to 0.0.

        Returns:
            AgentResponse: The clarifying question with rephrasing suggestions.
        """
        intent = extract_intent(query)
        message = (
            f"I think you're asking about {intent}, but I need a bit more detail. "
            f"{clarification_question(intent)}"
        )
        return AgentResponse(
            content=message,
            confidence=confidence,
            handler_id=None,
            handler_name=None,
            suggestions=list(self.suggestions),
            next_actions=["Rephrase your question", "Name a campaign, metric or audience"],
        )
