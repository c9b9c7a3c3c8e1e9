import pytest

from conftest import ORG_ID, ScriptedCompletionClient, accepting_script
from mediamind.agents.context import SessionContext
from mediamind.agents.errors import UpstreamUnavailable
from mediamind.agents.handlers import (
    AudienceHandler,
    CampaignHandler,
    GeneralHelpHandler,
    IncrementalReachHandler,
    TVIntelligenceHandler,
    YouTubeCurationHandler,
)
from mediamind.agents.handlers.general_help import HELP_TOPICS, find_topics
from mediamind.agents.handlers.incremental import incremental_reach
from mediamind.agents.refinement import RefinementOutcome
from mediamind.agents.registry import HandlerRegistry
from mediamind.agents.types import HandlerDescriptor, HandlerId
from mediamind.core.datastore import InMemoryDataStore


class _BrokenStore:
    def __init__(self):
        self.calls = 0

    def fetch(self, view, filters, *, limit=None):
        self.calls += 1
        raise RuntimeError("driver crashed")


def _system_message(client: ScriptedCompletionClient, call: int = 1) -> str:
    messages, _ = client.calls[call]
    return messages[0]["content"]


def test_every_lookup_is_scoped_to_the_organization(
    context: SessionContext, datastore: InMemoryDataStore
) -> None:
    client = ScriptedCompletionClient(accepting_script("Spring Launch is live."))
    handler = CampaignHandler(client, datastore)

    response = handler.process("show campaign performance by publisher", context, [])

    assert [view for view, _ in datastore.calls] == [
        "campaigns",
        "campaign_summary_metrics",
        "daily_overall_metrics",
        "campaign_events",
    ]
    assert all(filters["organization_id"] == ORG_ID for _, filters in datastore.calls)
    system = _system_message(client)
    assert "Spring Launch (live)" in system
    assert "Other Org" not in system
    assert "120,000 impressions" in system
    assert response.handler_id == HandlerId.CAMPAIGN
    assert response.confidence > 0.5


def test_active_filters_narrow_lookups(datastore: InMemoryDataStore) -> None:
    ctx = SessionContext(
        user_id="user-1",
        organization_id=ORG_ID,
        active_filters={"campaign_id": 1, "date_range": "7d"},
    )
    handler = CampaignHandler(ScriptedCompletionClient(), datastore)

    assert handler.filters_for("campaigns", ctx) == {"organization_id": ORG_ID, "campaign_id": 1}


def test_empty_result_tells_the_model_there_is_no_data(
    context: SessionContext, datastore: InMemoryDataStore
) -> None:
    client = ScriptedCompletionClient(accepting_script("No channels are stored yet."))
    handler = YouTubeCurationHandler(client, datastore)

    handler.process("find youtube gaming channels", context, [])

    assert datastore.calls == [("youtube_channels", {"organization_id": ORG_ID})]
    assert "No data is available for this organization yet." in _system_message(client)


def test_missing_organization_skips_lookups(datastore: InMemoryDataStore) -> None:
    client = ScriptedCompletionClient(accepting_script("Please pick an organization."))
    handler = YouTubeCurationHandler(client, datastore)

    handler.process("find youtube gaming channels", SessionContext(user_id="u"), [])

    assert datastore.calls == []
    assert "No data is available for this organization yet." in _system_message(client)


def test_lookup_failure_returns_fallback_without_completion(context: SessionContext) -> None:
    client = ScriptedCompletionClient()
    handler = AudienceHandler(client, InMemoryDataStore(views={}))

    response = handler.process("recommend an audience segment for sports fans", context, [])

    assert response.confidence == pytest.approx(0.3)
    assert response.content.startswith("I couldn't find audience data")
    assert response.approaches == ["data lookup failed"]
    assert client.calls == []


def test_unexpected_store_error_becomes_low_confidence_answer(context: SessionContext) -> None:
    store = _BrokenStore()
    handler = AudienceHandler(ScriptedCompletionClient(), store)

    response = handler.process("recommend an audience segment for sports fans", context, [])

    assert store.calls == 1
    assert response.confidence == pytest.approx(0.1)
    assert response.approaches == ["internal error"]
    assert response.handler_name == "Audience Agent"


def test_vague_query_gets_a_clarifying_question(
    context: SessionContext, datastore: InMemoryDataStore
) -> None:
    client = ScriptedCompletionClient()
    handler = TVIntelligenceHandler(client, datastore)

    response = handler.process("which show aired most", context, [])

    assert response.content == "Could you be more specific about what you're looking for?"
    assert response.confidence == pytest.approx(0.2)
    assert response.suggestions
    assert client.calls == []
    assert datastore.calls == []


def test_general_help_uses_catalogue_when_service_is_down(
    context: SessionContext, datastore: InMemoryDataStore
) -> None:
    client = ScriptedCompletionClient(default=UpstreamUnavailable("down"))
    handler = GeneralHelpHandler(client, datastore)

    response = handler.process("How do I create a new campaign?", context, [])

    assert response.content.startswith("To create a campaign")
    assert "Related topics: Creating Campaigns, Audience Builder." in response.content
    assert response.confidence <= 0.3
    assert datastore.calls == []


def test_general_help_puts_topics_in_prompt(
    context: SessionContext, datastore: InMemoryDataStore
) -> None:
    client = ScriptedCompletionClient(accepting_script("Open Campaigns and click New Campaign."))
    handler = GeneralHelpHandler(client, datastore)

    response = handler.process("How do I create a new campaign?", context, [])

    assert "Creating Campaigns:" in _system_message(client)
    assert response.content.endswith("Open Campaigns and click New Campaign.")
    assert datastore.calls == []


def test_find_topics_ranks_by_relevance() -> None:
    topics = find_topics("Where is the analytics dashboard report?")
    assert topics[0].id == "analytics-dashboard"
    assert find_topics("zzz") == []
    assert len(find_topics("help campaign performance support", HELP_TOPICS, limit=2)) == 2


def test_incremental_reach_per_area(context: SessionContext, datastore: InMemoryDataStore) -> None:
    assert incremental_reach({"campaign_reach": 9200, "other_reach": 6800}) == (2400, 26.1)
    assert incremental_reach({"campaign_reach": 100, "other_reach": 300}) == (0, 0.0)
    assert incremental_reach({}) == (0, 0.0)

    client = ScriptedCompletionClient(accepting_script("M1 added 2,400 people."))
    IncrementalReachHandler(client, datastore).process(
        "which postcode had unique reach", context, []
    )
    assert "M1 +2,400 (26.1%)" in _system_message(client)


def test_confidence_reflects_how_the_loop_ended(datastore: InMemoryDataStore) -> None:
    handler = CampaignHandler(ScriptedCompletionClient(), datastore)

    def outcome(**kwargs) -> RefinementOutcome:
        return RefinementOutcome(**{"content": "x", "score": 8, "rounds": 1, "accepted": True, **kwargs})

    assert handler.confidence_for(outcome()) == pytest.approx(0.9)
    assert handler.confidence_for(outcome(score=10)) == pytest.approx(0.95)
    assert handler.confidence_for(outcome(forced=True)) == pytest.approx(0.6)
    assert handler.confidence_for(outcome(degraded=True)) == pytest.approx(0.3)
    assert handler.confidence_for(outcome(degraded=True, score=None)) == pytest.approx(0.2)


def test_registry_keeps_order_and_rejects_bad_handlers(datastore: InMemoryDataStore) -> None:
    client = ScriptedCompletionClient()
    registry = HandlerRegistry()
    registry.register(TVIntelligenceHandler(client, datastore))
    registry.register(CampaignHandler(client, datastore))

    assert registry.ids() == [HandlerId.TV_INTELLIGENCE, HandlerId.CAMPAIGN]
    assert registry.get(HandlerId.AUDIENCE) is None

    with pytest.raises(ValueError, match="already registered"):
        registry.register(CampaignHandler(client, datastore))

    class _Nameless:
        descriptor = HandlerDescriptor(id=HandlerId.AUDIENCE, display_name="", description="")

    with pytest.raises(ValueError, match="display name"):
        registry.register(_Nameless())

    with pytest.raises(ValueError, match="valid descriptor"):
        registry.register(object())
    assert len(registry) == 2
