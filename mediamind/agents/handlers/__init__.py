"""Topic handlers, listed in registration order."""

from mediamind.agents.handlers.base import BaseHandler
from mediamind.agents.handlers.analytics import AnalyticsHandler
from mediamind.agents.handlers.campaign import CampaignHandler
from mediamind.agents.handlers.audience import AudienceHandler
from mediamind.agents.handlers.youtube import YouTubeCurationHandler
from mediamind.agents.handlers.tv import TVIntelligenceHandler
from mediamind.agents.handlers.incremental import IncrementalReachHandler
from mediamind.agents.handlers.general_help import GeneralHelpHandler

HANDLER_CLASSES: tuple[type[BaseHandler], ...] = (
    AnalyticsHandler,
    CampaignHandler,
    AudienceHandler,
    YouTubeCurationHandler,
    TVIntelligenceHandler,
    IncrementalReachHandler,
    GeneralHelpHandler,
)

__all__ = [
    "AnalyticsHandler",
    "AudienceHandler",
    "BaseHandler",
    "CampaignHandler",
    "GeneralHelpHandler",
    "HANDLER_CLASSES",
    "IncrementalReachHandler",
    "TVIntelligenceHandler",
    "YouTubeCurationHandler",
]
