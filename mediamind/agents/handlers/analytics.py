from mediamind.agents.handlers.base import BaseHandler
from mediamind.agents.types import Capability, HandlerDescriptor, HandlerId


class AnalyticsHandler(BaseHandler):
    """
    Dashboard-wide performance analysis: KPIs, trends and comparisons.
    """

    descriptor = HandlerDescriptor(
        id=HandlerId.ANALYTICS,
        display_name="Analytics Agent",
        description=(
            "Specialized in analytics, performance insights and trend analysis "
            "across the dashboard's campaign data"
        ),
        capabilities=(
            Capability(
                "Performance Analysis",
                "Analyze campaign performance metrics, trends and KPIs",
                ("What are my top performing campaigns?", "Show me impression trends"),
            ),
            Capability(
                "Data Insights",
                "Provide insights from campaign data and identify patterns",
                ("What insights can you find in my data?",),
            ),
            Capability(
                "Metric Comparison",
                "Compare metrics across campaigns, time periods or segments",
                ("Compare completion rates across campaigns",),
            ),
        ),
    )
    vocabulary = (
        "performance", "metrics", "kpi", "analytics", "data", "insights", "trends",
        "campaign", "impressions", "clicks", "conversions", "roi", "cpm", "ctr",
        "compare", "analysis", "report", "dashboard", "statistics", "spend",
        "revenue", "completion", "audience", "geographic", "inventory", "publisher",
    )
    data_views = ("campaign_summary_metrics", "daily_overall_metrics")
    specific_keywords = (
        "campaign", "performance", "audience", "impressions", "metrics",
        "analytics", "trends", "report", "kpi", "insights",
    )
    data_requirements = {
        "performance": ("performance", "metrics", "kpi", "impressions", "trends"),
        "analytics": ("analytics", "insights", "report", "dashboard", "analysis"),
        "campaigns": ("campaign",),
    }
    suggestions = (
        "Compare this period with the previous one",
        "Break results down by campaign",
        "Look at completion rate trends",
    )
    next_actions = ("Open the Analytics dashboard", "Export a performance report")
