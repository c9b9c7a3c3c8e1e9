from typing import Any

from mediamind.agents.handlers.base import BaseHandler
from mediamind.agents.types import Capability, HandlerDescriptor, HandlerId


def incremental_reach(row: dict[str, Any]) -> tuple[int, float]:
    """
    Reach the campaign added beyond other media in one area.

    Args:
        row (dict[str, Any]): Row with ``campaign_reach`` and ``other_reach``.

    Returns:
        tuple[int, float]: Incremental reach and its share of campaign reach in percent.
    """
    campaign = int(row.get("campaign_reach") or 0)
    other = int(row.get("other_reach") or 0)
    extra = max(campaign - other, 0)
    share = round(extra / campaign * 100, 1) if campaign else 0.0
    return extra, share


class IncrementalReachHandler(BaseHandler):
    """
    Unique reach a campaign delivered beyond other media, by area.
    """

    descriptor = HandlerDescriptor(
        id=HandlerId.INCREMENTAL_REACH,
        display_name="Incremental Reach Agent",
        description=(
            "Specialized in calculating incremental reach by comparing campaign "
            "delivery with ACR data to identify unique audience reach"
        ),
        capabilities=(
            Capability(
                "Incremental Analysis",
                "Calculate incremental reach by comparing campaign delivery with other media",
                (
                    "Where did our CTV campaign reach people that linear missed?",
                    "Show me postcodes with unique reach",
                ),
            ),
        ),
    )
    vocabulary = (
        "incremental", "reach", "unique", "additional", "extra", "beyond", "ctv",
        "linear", "tv", "campaign", "delivery", "acr", "postcode", "missed",
        "unique audience", "incremental reach", "geographic", "area", "region",
        "location", "coverage", "overlap",
    )
    data_views = ("postcode_reach",)
    specific_keywords = (
        "incremental", "reach", "unique", "ctv", "linear", "postcode", "missed",
    )
    data_requirements = {
        "reach": ("incremental", "reach", "unique", "missed"),
        "geography": ("postcode", "area", "region", "geographic"),
    }
    suggestions = (
        "Get detailed postcode-level analysis",
        "Compare with other campaigns",
        "Analyze geographic patterns",
    )
    next_actions = ("Export the incremental reach report",)

    def summarize_view(self, view, rows):
        if not rows:
            return super().summarize_view(view, rows)
        scored = [(row, *incremental_reach(row)) for row in rows]
        scored.sort(key=lambda item: item[1], reverse=True)
        total = sum(extra for _, extra, _ in scored)
        top = [
            f"{row.get('postcode_sector', 'unknown')} +{extra:,} ({share}%)"
            for row, extra, share in scored[:5]
        ]
        return (
            f"{total:,} incremental reach across {len(rows)} area(s); "
            f"top areas: {', '.join(top)}."
        )
