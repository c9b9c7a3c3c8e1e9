from typing import Any

from mediamind.agents.handlers.base import BaseHandler
from mediamind.agents.types import Capability, HandlerDescriptor, HandlerId


class CampaignHandler(BaseHandler):
    """
    Campaign performance and strategy questions.
    """

    descriptor = HandlerDescriptor(
        id=HandlerId.CAMPAIGN,
        display_name="Campaign Agent",
        description=(
            "Specialized in campaign analytics, performance insights and strategic "
            "recommendations"
        ),
        capabilities=(
            Capability(
                "Campaign Analytics",
                "Analyze campaign performance metrics and data insights",
                ("How many impressions did my campaigns deliver?",),
            ),
            Capability(
                "Performance Insights",
                "Provide insights from campaign data and identify patterns",
                ("Which campaign has the best completion rate?",),
            ),
            Capability(
                "Strategic Recommendations",
                "Provide campaign optimization and strategy recommendations",
                ("How can I optimize my campaign budget?",),
            ),
        ),
    )
    vocabulary = (
        "campaign", "performance", "metrics", "analytics", "impressions", "spend",
        "revenue", "optimize", "strategy", "budget", "data", "insights", "kpi", "cpm",
        "ctr", "roi", "completion", "audience", "geographic", "inventory",
        "publisher", "how many", "what are", "show me", "tell me", "analyze",
        "compare",
    )
    data_views = ("campaigns", "campaign_summary_metrics", "daily_overall_metrics")
    suggestions = (
        "Show campaign performance by publisher",
        "Compare campaigns by completion rate",
        "Suggest budget optimizations",
    )
    next_actions = ("Open the Campaigns section", "Review campaign pacing")

    def views_for(self, query: str) -> tuple[str, ...]:
        lowered = query.lower()
        views = self.data_views
        if any(term in lowered for term in ("publisher", "inventory")):
            views = views + ("campaign_events",)
        return views

    def summarize_view(self, view: str, rows: list[dict[str, Any]]) -> str:
        if view != "campaign_events" or not rows:
            return super().summarize_view(view, rows)
        totals: dict[str, int] = {}
        for row in rows:
            publisher = row.get("pub_name") or "unknown"
            totals[publisher] = totals.get(publisher, 0) + int(row.get("impressions") or 0)
        ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        return f"Found {len(ranked)} publisher(s): " + ", ".join(
            f"{name} ({count:,} impressions)" for name, count in ranked
        ) + "."
