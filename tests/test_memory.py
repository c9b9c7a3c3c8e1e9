import threading

from conftest import FakeClock
from mediamind.agents.context import SessionContext
from mediamind.agents.memory import ConversationMemory, MemoryStore
from mediamind.agents.types import AgentResponse, Turn
from mediamind.utils.env_cfg import MemoryConfig


def test_get_creates_defaults_and_reuses_record(memory_store: MemoryStore) -> None:
    """
    get() lazily creates a record with default preferences and returns it again later.

    Args:
        memory_store (MemoryStore): The memory store fixture.
    """
    memory = memory_store.get("user-1")
    assert memory.preferences.detail_level == "detailed"
    assert memory.preferences.technical_level == "basic"
    assert memory.preferences.preferred_format == "text"
    assert memory_store.get("user-1") is memory
    assert "user-1" in memory_store


def test_append_then_read_grows_by_exactly_one() -> None:
    """
    Appending a turn increases the snapshot by one and ends with that turn.
    """
    memory = ConversationMemory()
    memory.append_turn(Turn(role="user", content="first"))
    before = memory.read_turns()

    turn = Turn(role="assistant", content="second")
    memory.append_turn(turn)
    after = memory.read_turns()

    assert len(after) == len(before) + 1
    assert after[-1] == turn
    assert after[:-1] == before


def test_concurrent_appends_are_not_lost() -> None:
    """
    Appends from many threads are all retained.
    """
    memory = ConversationMemory()

    def worker(n: int) -> None:
        for i in range(200):
            memory.append_turn(Turn(role="user", content=f"{n}-{i}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    turns = memory.read_turns()
    assert len(turns) == 1600
    assert len({t.content for t in turns}) == 1600


def test_lru_evicts_least_recently_used() -> None:
    """
    The least recently touched user is evicted when the bound is exceeded.
    """
    store = MemoryStore(MemoryConfig(max_sessions=2))
    a = store.get("a")
    store.get("b")
    store.get("a")
    store.get("c")

    assert len(store) == 2
    assert "b" not in store
    assert store.get("a") is a


def test_ttl_expires_idle_memory() -> None:
    """
    A record idle for longer than the TTL is replaced by a fresh one.
    """
    clock = FakeClock()
    store = MemoryStore(MemoryConfig(ttl_seconds=10), clock=clock)
    first = store.get("a")
    first.append_turn(Turn(role="user", content="hello"))

    clock.advance(5)
    assert store.get("a") is first

    clock.advance(11)
    assert "a" not in store
    fresh = store.get("a")
    assert fresh is not first
    assert len(fresh) == 0


def test_record_user_turn_updates_derived_fields(memory_store: MemoryStore) -> None:
    """
    Recording a user turn sets the last query, page, intent and preference hints.

    Args:
        memory_store (MemoryStore): The memory store fixture.
    """
    memory = memory_store.get("user-1")
    ctx = SessionContext(user_id="user-1", current_page="/analytics")
    query = "Give me a brief rundown of campaign metrics in bullet points"
    turn = memory_store.record_user_turn(memory, query, ctx)

    assert memory.read_turns() == (turn,)
    assert memory.derived.last_query == query
    assert memory.derived.current_page == "/analytics"
    assert memory.derived.last_intent == "campaigns"
    assert memory.preferences.detail_level == "brief"
    assert memory.preferences.preferred_format == "bullet"


def test_record_assistant_turn_keeps_follow_ups(memory_store: MemoryStore) -> None:
    """
    Recording an assistant turn stores suggestions and attempted approaches.

    Args:
        memory_store (MemoryStore): The memory store fixture.
    """
    memory = memory_store.get("user-1")
    response = AgentResponse(
        content="Here you go.",
        confidence=0.9,
        handler_id="campaign",
        handler_name="Campaign Agent",
        suggestions=["Compare campaigns"],
    )
    turn = memory_store.record_assistant_turn(memory, response, ["plan and answer"])

    assert turn.role == "assistant"
    assert turn.handler_id == "campaign"
    assert memory.derived.follow_up_suggestions == ["Compare campaigns"]
    assert memory.derived.attempted_approaches == ["plan and answer"]


def test_relevant_context_only_for_matching_consecutive_intents(memory_store: MemoryStore) -> None:
    """
    The continuity phrase appears only when the new intent repeats the previous one.

    Args:
        memory_store (MemoryStore): The memory store fixture.
    """
    memory = memory_store.get("user-1")
    ctx = SessionContext(user_id="user-1")

    assert memory_store.relevant_context(memory, "show campaign results") == ""

    memory_store.record_user_turn(memory, "show campaign results", ctx)
    assert memory_store.relevant_context(memory, "which campaign spent most?") == (
        "Continuing our discussion about campaigns."
    )
    assert memory_store.relevant_context(memory, "audience demographics please") == ""

    memory_store.record_user_turn(memory, "hello there", ctx)
    assert memory_store.relevant_context(memory, "good morning") == ""
