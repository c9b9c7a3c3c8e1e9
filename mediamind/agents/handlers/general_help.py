from dataclasses import dataclass

from mediamind.agents.context import SessionContext
from mediamind.agents.handlers.base import BaseHandler
from mediamind.agents.types import Capability, HandlerDescriptor, HandlerId
from mediamind.agents.understanding import RequestAnalysis


@dataclass(frozen=True)
class HelpTopic:
    """
    One entry of the local help catalogue.
    """

    id: str
    title: str
    content: str
    keywords: tuple[str, ...]
    related: tuple[str, ...] = ()

    def relevance(self, lowered: str) -> float:
        """Share of the topic's keywords present in the lowercased query."""
        if not self.keywords:
            return 0.0
        return sum(1 for kw in self.keywords if kw in lowered) / len(self.keywords)


HELP_TOPICS: tuple[HelpTopic, ...] = (
    HelpTopic(
        id="campaign-creation",
        title="Creating Campaigns",
        content=(
            "To create a campaign, open Campaigns in the main navigation and click "
            "New Campaign. Fill in the name, dates, budget and target segments, "
            "then choose geographic targeting and inventory. Review the settings "
            "and click Launch Campaign."
        ),
        keywords=("create", "campaign", "new", "launch", "start", "setup"),
        related=("audience-builder", "optimization"),
    ),
    HelpTopic(
        id="audience-builder",
        title="Audience Builder",
        content=(
            "The Audience Builder turns a plain description of your target into "
            "matching segments. Open Audience, describe who you want to reach and "
            "pick from the recommended segments."
        ),
        keywords=("audience", "builder", "ai", "segment", "target", "demographic"),
        related=("geographic-targeting",),
    ),
    HelpTopic(
        id="analytics-dashboard",
        title="Analytics Dashboard",
        content=(
            "The Analytics dashboard shows impressions, completed views and "
            "completion rate per campaign and per day. Use the filters at the top "
            "to narrow the date range or campaign, and export any table as CSV."
        ),
        keywords=("analytics", "dashboard", "metrics", "performance", "report", "data"),
        related=("optimization",),
    ),
    HelpTopic(
        id="geographic-targeting",
        title="Geographic Targeting",
        content=(
            "The map view shows delivery by postcode sector. Click an area to see "
            "its reach, or draw a region to target it in a campaign."
        ),
        keywords=("geographic", "map", "location", "postcode", "area", "region", "targeting"),
        related=("audience-builder",),
    ),
    HelpTopic(
        id="optimization",
        title="Campaign Optimization",
        content=(
            "Check completion rate and CPM per publisher in the Analytics "
            "dashboard, then shift budget towards the best performers from the "
            "campaign settings page."
        ),
        keywords=("optimize", "optimization", "performance", "improve", "better", "efficient"),
        related=("analytics-dashboard",),
    ),
    HelpTopic(
        id="support-contact",
        title="Getting Support",
        content=(
            "Use the Help button in the bottom corner to open a support ticket, or "
            "email the support team. Include the page and what you were trying to do."
        ),
        keywords=("support", "help", "contact", "assist", "issue", "problem", "error"),
    ),
)

GENERAL_HELP_TEXT = (
    "I can help you find your way around the dashboard: creating campaigns, "
    "building audiences, reading analytics, geographic targeting, optimization "
    "and contacting support. What would you like to know?"
)


def find_topics(
    query: str, topics: tuple[HelpTopic, ...] = HELP_TOPICS, limit: int = 3
) -> list[HelpTopic]:
    """
    Rank help topics by keyword relevance.

    Args:
        query (str): The user query.
        topics (tuple[HelpTopic, ...], optional): The catalogue. Defaults to HELP_TOPICS.
        limit (int, optional): Maximum topics returned. Defaults to 3.

    Returns:
        list[HelpTopic]: Matching topics, most relevant first; catalogue order breaks ties.
    """
    lowered = query.lower()
    scored = [(topic.relevance(lowered), i, topic) for i, topic in enumerate(topics)]
    ranked = sorted((s for s in scored if s[0] > 0), key=lambda s: (-s[0], s[1]))
    return [topic for _, _, topic in ranked[:limit]]


class GeneralHelpHandler(BaseHandler):
    """
    Platform navigation and feature help from a local topic catalogue.
    Never reads the data store.
    """

    descriptor = HandlerDescriptor(
        id=HandlerId.GENERAL_HELP,
        display_name="General Help Agent",
        description=(
            "Provides assistance with platform navigation, UI help and general "
            "questions about the dashboard"
        ),
        capabilities=(
            Capability(
                "Platform Navigation",
                "Help users navigate the platform and understand its features",
                ("How do I create a new campaign?", "Where can I find my analytics?"),
            ),
            Capability(
                "Feature Help",
                "Explain platform features and how to use them",
                ("How does the map view work?",),
            ),
            Capability(
                "General Support",
                "Answer common questions and point to support",
                ("How do I contact support?", "How do I export my data?"),
            ),
        ),
    )
    vocabulary = (
        "help", "how", "what", "where", "when", "why", "guide", "tutorial",
        "support", "assist", "explain", "show me", "tell me", "navigate",
        "feature", "function", "button", "menu", "page", "section", "create",
        "find", "access", "use", "work", "understand",
    )
    requires_data = False
    suggestions = (
        "Ask about specific platform features",
        "Request help with navigation",
        "Ask about analytics or campaigns",
    )
    next_actions = ("Explore the platform features", "Contact support for specific issues")

    def describe_data(self, query: str, context: SessionContext) -> str:
        topics = find_topics(query)
        if not topics:
            return "No help topic matches this question. Offer the list of help areas."
        return "\n".join(f"- {t.title}: {t.content}" for t in topics)

    def fallback_text(self, query: str, analysis: RequestAnalysis) -> str:
        topics = find_topics(query)
        if not topics:
            return GENERAL_HELP_TEXT
        if len(topics) == 1:
            return f"{topics[0].title}: {topics[0].content}"
        titles = ", ".join(t.title for t in topics)
        return f"{topics[0].content} Related topics: {titles}."
