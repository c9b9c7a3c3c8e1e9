from typing import Any, Callable, Sequence

import pytest

from mediamind.agents.context import SessionContext
from mediamind.agents.memory import MemoryStore
from mediamind.agents.types import CompletionOptions, Message
from mediamind.core.datastore import InMemoryDataStore
from mediamind.utils.env_cfg import MemoryConfig

ORG_ID = "org-1"


class ScriptedCompletionClient:
    """
    Completion client that replays scripted replies in order.
    A reply may be a string, an exception instance to raise, or a callable
    taking the messages and returning either.
    """

    def __init__(self, replies: Sequence[Any] = (), default: Any = None) -> None:
        """
        Initialize the ScriptedCompletionClient.

        Args:
            replies (Sequence[Any], optional): Replies consumed one per call. Defaults to ().
            default (Any, optional): Reply once the script is exhausted. Defaults to an AssertionError.
        """
        self.replies = list(replies)
        self.default = default
        self.calls: list[tuple[list[Message], CompletionOptions | None]] = []

    def complete(
        self, messages: Sequence[Message], options: CompletionOptions | None = None
    ) -> str:
        self.calls.append((list(messages), options))
        if self.replies:
            reply = self.replies.pop(0)
        elif self.default is not None:
            reply = self.default
        else:
            raise AssertionError("Unexpected completion call")
        if callable(reply) and not isinstance(reply, BaseException):
            reply = reply(messages)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeClock:
    """
    Manually advanced monotonic clock.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def accepting_script(answer: str, score: int = 9) -> list[Any]:
    """
    Replies for one accepted round: plan, answer and critique.

    Args:
        answer (str): The drafted answer.
        score (int, optional): Critic score. Defaults to 9.

    Returns:
        list[Any]: The scripted replies.
    """
    return ["The user wants campaign figures.", answer, f'{{"score": {score}, "issues": []}}']


@pytest.fixture
def context() -> SessionContext:
    return SessionContext(user_id="user-1", organization_id=ORG_ID, current_page="/campaigns")


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore(MemoryConfig(max_sessions=10))


@pytest.fixture
def datastore() -> InMemoryDataStore:
    return InMemoryDataStore(
        views={
            "campaigns": [
                {"id": 1, "organization_id": ORG_ID, "name": "Spring Launch", "status": "live"},
                {"id": 2, "organization_id": "org-2", "name": "Other Org", "status": "live"},
            ],
            "campaign_summary_metrics": [
                {
                    "organization_id": ORG_ID,
                    "campaign_name": "Spring Launch",
                    "total_impressions": 120000,
                    "total_completed_views": 90000,
                    "completion_rate": 75,
                }
            ],
            "daily_overall_metrics": [],
            "campaign_events": [],
            "experian_segments": [
                {"organization_id": ORG_ID, "segment_name": "Young Urban Sports Fans"}
            ],
            "youtube_channels": [],
            "tv_brand_exposure": [],
            "postcode_reach": [
                {
                    "organization_id": ORG_ID,
                    "postcode_sector": "M1",
                    "campaign_reach": 9200,
                    "other_reach": 6800,
                }
            ],
        }
    )


@pytest.fixture
def scripted() -> Callable[..., ScriptedCompletionClient]:
    return ScriptedCompletionClient
