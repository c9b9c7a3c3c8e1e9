from mediamind.agents.handlers.base import BaseHandler
from mediamind.agents.types import Capability, HandlerDescriptor, HandlerId


class TVIntelligenceHandler(BaseHandler):
    """
    TV viewing patterns, brand visibility and programme performance.
    """

    descriptor = HandlerDescriptor(
        id=HandlerId.TV_INTELLIGENCE,
        display_name="TV Intelligence Agent",
        description=(
            "Specialized in analyzing TV viewing patterns, brand visibility and "
            "show/channel performance using ACR and TV data"
        ),
        capabilities=(
            Capability(
                "Viewing Analysis",
                "Analyze who watched what, viewing patterns and audience behavior",
                (
                    "Which shows had the highest viewership last month?",
                    "Show me viewing patterns by demographic",
                ),
            ),
            Capability(
                "Brand Visibility",
                "Measure brand exposure across programmes and channels",
                ("How visible was our brand during live sports?",),
            ),
        ),
    )
    vocabulary = (
        "tv", "television", "show", "programme", "channel", "viewing", "watch",
        "brand", "visibility", "exposure", "acr", "audience", "viewership",
        "rating", "overlap", "performance", "broadcast", "air", "schedule",
        "what watched", "who watched", "viewing patterns", "brand exposure",
    )
    data_views = ("tv_brand_exposure",)
    specific_keywords = (
        "tv", "television", "programme", "viewing", "viewership", "brand", "acr",
    )
    data_requirements = {
        "viewing": ("tv", "television", "programme", "viewing", "viewership", "watch"),
        "brand": ("brand", "exposure", "visibility"),
    }
    suggestions = (
        "Compare brand exposure across channels",
        "Show the top programmes by viewership",
        "Check audience overlap with your campaign",
    )
    next_actions = ("Open TV Intelligence", "Review the TV schedule")

    def summarize_view(self, view, rows):
        if not rows:
            return super().summarize_view(view, rows)
        ranked = sorted(rows, key=lambda r: r.get("viewers") or 0, reverse=True)
        top = [
            f"{r.get('programme', 'unknown')} on {r.get('channel', 'unknown')} "
            f"({int(r.get('viewers') or 0):,} viewers)"
            for r in ranked[:5]
        ]
        return f"Top {len(top)} of {len(rows)} airing(s): {', '.join(top)}."
