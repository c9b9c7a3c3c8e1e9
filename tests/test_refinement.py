import pytest

from conftest import FakeClock, ScriptedCompletionClient, accepting_script
from mediamind.agents.errors import UpstreamThrottled, UpstreamUnavailable
from mediamind.agents.refinement import (
    SelfValidationLoop,
    heuristic_critique,
    parse_verdict,
)
from mediamind.utils.env_cfg import RefinementConfig

SYSTEM = "You are a test assistant."
FALLBACK = "Fallback answer."


def _run(loop: SelfValidationLoop, query: str = "How are my campaigns doing?"):
    return loop.run(query, SYSTEM, fallback=FALLBACK, display_name="Test Agent")


def test_accepts_first_round_when_critic_is_satisfied() -> None:
    """
    A first draft scoring at or above the acceptance score ends the loop.
    """
    client = ScriptedCompletionClient(accepting_script("Spring Launch delivered 120,000 impressions.", 7))
    outcome = _run(SelfValidationLoop(client))

    assert outcome.accepted is True
    assert outcome.forced is False
    assert outcome.rounds == 1
    assert outcome.score == 7
    assert outcome.content == "Spring Launch delivered 120,000 impressions."
    assert len(client.calls) == 3


def test_answer_call_uses_plan_as_context() -> None:
    """
    The answer call carries the plan from the first call in its system message.
    """
    client = ScriptedCompletionClient(
        ["PLAN: needs impressions per campaign", "Answer.", '{"score": 9, "issues": []}']
    )
    _run(SelfValidationLoop(client))

    answer_messages, _ = client.calls[1]
    assert answer_messages[0]["role"] == "system"
    assert "PLAN: needs impressions per campaign" in answer_messages[0]["content"]
    assert answer_messages[-1] == {"role": "user", "content": "How are my campaigns doing?"}


def test_second_round_replaces_rejected_candidate() -> None:
    """
    Round 1 scores 4 with "too vague"; round 2 scores 8 and its candidate is returned.
    """
    client = ScriptedCompletionClient(
        [
            "plan",
            "Campaigns are fine.",
            '{"score": 4, "issues": ["too vague"]}',
            "Spring Launch reached 75% completion.",
            '{"score": 8, "issues": []}',
        ]
    )
    outcome = _run(SelfValidationLoop(client))

    assert outcome.rounds == 2
    assert outcome.accepted is True
    assert outcome.content == "Spring Launch reached 75% completion."
    assert [v.score for v in outcome.verdicts] == [4, 8]
    revise_messages, _ = client.calls[3]
    assert "too vague" in revise_messages[0]["content"]
    assert "Campaigns are fine." in revise_messages[0]["content"]


def test_terminates_with_forced_answer_when_every_critique_fails() -> None:
    """
    Failing critique calls fall back to the heuristic critique and the loop still ends.
    """
    down = UpstreamUnavailable("critic down", 503)
    client = ScriptedCompletionClient(
        [
            "plan",
            "Sorry, I cannot find that.",
            down,
            "Sorry, an error occurred.",
            down,
            "Unfortunately nothing.",
            down,
            "Spring Launch delivered 120,000 impressions.",
        ]
    )
    outcome = _run(SelfValidationLoop(client, RefinementConfig(max_rounds=3)))

    assert outcome.rounds == 3
    assert outcome.forced is True
    assert outcome.accepted is True
    assert outcome.content == "Spring Launch delivered 120,000 impressions."
    assert all(not v.is_satisfactory for v in outcome.verdicts)
    assert len(client.calls) == 8


def test_final_rewrite_lists_accumulated_issues() -> None:
    """
    The forced final call receives every issue raised across rounds.
    """
    client = ScriptedCompletionClient(
        [
            "plan",
            "draft one",
            '{"score": 3, "issues": ["too vague"]}',
            "draft two",
            '{"score": 5, "issues": ["missing numbers"]}',
            "final",
        ]
    )
    outcome = _run(SelfValidationLoop(client, RefinementConfig(max_rounds=2)))

    final_messages, _ = client.calls[-1]
    assert "too vague" in final_messages[0]["content"]
    assert "missing numbers" in final_messages[0]["content"]
    assert outcome.content == "final"
    assert outcome.forced is True


def test_unparseable_critique_uses_heuristic() -> None:
    """
    A critic reply that is not JSON is scored locally instead of failing.
    """
    client = ScriptedCompletionClient(["plan", "Spring Launch delivered 120,000 impressions.", "looks great!"])
    outcome = _run(SelfValidationLoop(client))

    assert outcome.accepted is True
    assert outcome.score == 10


def test_draft_failure_returns_best_candidate() -> None:
    """
    A transport failure while revising stops the loop and keeps the earlier candidate.
    """
    client = ScriptedCompletionClient(
        ["plan", "first draft", '{"score": 5, "issues": ["thin"]}', UpstreamThrottled("slow down", 429)]
    )
    outcome = _run(SelfValidationLoop(client))

    assert outcome.degraded is True
    assert outcome.content == "first draft"
    assert outcome.score == 5
    assert len(client.calls) == 4


def test_plan_failure_returns_fallback() -> None:
    """
    Without any candidate the caller's fallback text is returned.
    """
    client = ScriptedCompletionClient(default=UpstreamUnavailable("down"))
    outcome = _run(SelfValidationLoop(client))

    assert outcome.content == FALLBACK
    assert outcome.degraded is True
    assert outcome.score is None
    assert len(client.calls) == 1


def test_expired_deadline_skips_all_calls() -> None:
    """
    A zero deadline returns the fallback without calling the service.
    """
    client = ScriptedCompletionClient()
    outcome = _run(SelfValidationLoop(client, RefinementConfig(deadline_seconds=0)))

    assert outcome.content == FALLBACK
    assert outcome.degraded is True
    assert client.calls == []


def test_deadline_mid_loop_returns_latest_candidate() -> None:
    """
    The deadline is checked before each call and the candidate so far is returned.
    """
    clock = FakeClock()

    def tick(reply: str):
        def _reply(messages):
            clock.advance(10)
            return reply

        return _reply

    client = ScriptedCompletionClient([tick("plan"), tick("draft answer")])
    loop = SelfValidationLoop(client, RefinementConfig(deadline_seconds=15), clock=clock)
    outcome = _run(loop)

    assert outcome.content == "draft answer"
    assert outcome.degraded is True
    assert len(client.calls) == 2


def test_parse_verdict_accepts_fenced_json() -> None:
    """
    Code fences around the critic JSON are stripped.
    """
    verdict = parse_verdict('```json\n{"score": 8, "issues": ["minor"]}\n```')
    assert verdict.score == 8
    assert verdict.issues == ["minor"]
    assert verdict.is_satisfactory is True


def test_parse_verdict_extracts_json_from_prose() -> None:
    """
    JSON embedded in prose is found and a fractional score is rounded.
    """
    verdict = parse_verdict('Here is my review: {"score": 6.6, "issues": "too long"} thanks', accept_score=7)
    assert verdict.score == 7
    assert verdict.issues == ["too long"]
    assert verdict.is_satisfactory is True


@pytest.mark.parametrize("raw", ["no json here", '{"score": 11}', '{"issues": []}', "[1, 2]"])
def test_parse_verdict_rejects_malformed(raw: str) -> None:
    """
    Malformed or out-of-range critic output raises ValueError.

    Args:
        raw (str): The critic reply.
    """
    with pytest.raises(ValueError):
        parse_verdict(raw)


def test_heuristic_critique_flags_weak_answers() -> None:
    """
    Apologies, capability lists, heavy markup and long answers each cost points.
    """
    assert heuristic_critique("").score == 1
    assert heuristic_critique("Spring Launch delivered 120,000 impressions.").score == 10

    apology = heuristic_critique("Sorry, I can help you with many things.")
    assert apology.score == 3
    assert len(apology.issues) == 2
    assert apology.is_satisfactory is False

    markup = heuristic_critique("# Title\n## Section\nSpring Launch did well.")
    assert markup.score == 8

    rambling = heuristic_critique(" ".join(f"Sentence {i}." for i in range(12)))
    assert rambling.score == 8
