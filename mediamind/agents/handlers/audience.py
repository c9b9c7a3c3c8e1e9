from mediamind.agents.handlers.base import BaseHandler
from mediamind.agents.types import Capability, HandlerDescriptor, HandlerId


class AudienceHandler(BaseHandler):
    """
    Audience segments, demographics and geographic distribution.
    """

    descriptor = HandlerDescriptor(
        id=HandlerId.AUDIENCE,
        display_name="Audience Agent",
        description=(
            "Specialized in audience analysis, demographics and geographic "
            "distribution insights"
        ),
        capabilities=(
            Capability(
                "Audience Recommendations",
                "Recommend audience segments based on a description of the target",
                ("Recommend segments for young sports fans",),
            ),
            Capability(
                "Segment Analysis",
                "Analyze and explain audience segments",
                ("What does this audience segment contain?",),
            ),
        ),
    )
    vocabulary = (
        "audience", "segment", "demographic", "targeting", "recommend", "suggest",
        "find audience", "audience builder", "segment match", "audience match",
    )
    data_views = ("experian_segments",)
    specific_keywords = (
        "audience", "segment", "demographic", "target", "region", "postcode",
    )
    data_requirements = {
        "audience": ("audience", "segment", "demographic", "target"),
        "geography": ("region", "postcode", "location", "geographic"),
    }
    suggestions = (
        "Refine the segment by region",
        "Compare two audience segments",
        "Build an audience from a description",
    )
    next_actions = ("Open the Audience builder",)
