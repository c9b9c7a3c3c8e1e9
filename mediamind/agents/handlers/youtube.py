from mediamind.agents.handlers.base import BaseHandler
from mediamind.agents.types import Capability, HandlerDescriptor, HandlerId


class YouTubeCurationHandler(BaseHandler):
    """
    Finds and curates YouTube channels and videos for an advertiser brief.
    """

    descriptor = HandlerDescriptor(
        id=HandlerId.YOUTUBE_CURATION,
        display_name="YouTube Curation Agent",
        description=(
            "Specialized in finding and curating YouTube channels and videos based "
            "on advertiser needs and targeting criteria"
        ),
        capabilities=(
            Capability(
                "Channel Discovery",
                "Find channels that match topic, audience, location and engagement criteria",
                (
                    "Find UK channels about electric vehicles",
                    "Show me gaming channels with 100k+ subscribers",
                ),
            ),
            Capability(
                "Content Curation",
                "Curate videos suitable for a campaign",
                ("Find lifestyle videos for young professionals",),
            ),
        ),
    )
    vocabulary = (
        "youtube", "channel", "video", "creator", "influencer", "content", "find",
        "search", "discover", "curate", "uk", "london", "british", "gaming",
        "lifestyle", "tech", "fashion", "beauty", "fitness", "education",
        "entertainment", "news", "sports", "music", "subscribers", "views",
        "engagement", "audience", "demographics",
    )
    data_views = ("youtube_channels",)
    specific_keywords = ("youtube", "channel", "video", "creator", "influencer")
    data_requirements = {"channels": ("youtube", "channel", "creator", "influencer", "video")}
    suggestions = (
        "Filter channels by subscriber count",
        "Limit results to UK creators",
        "Show engagement rates for these channels",
    )
    next_actions = ("Save the shortlist", "Add channels to a campaign")

    def summarize_view(self, view, rows):
        if not rows:
            return super().summarize_view(view, rows)
        channels = [
            f"{row.get('title') or row.get('name', 'unnamed')} "
            f"({int(row.get('subscribers') or 0):,} subscribers)"
            for row in rows
        ]
        return f"Found {len(rows)} channel(s): {', '.join(channels)}."
