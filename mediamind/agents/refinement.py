"""Bounded draft -> critique -> revise loop around the completion service."""

import json
import re
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from loguru import logger

from mediamind.agents.errors import UpstreamError
from mediamind.agents.types import (
    CompletionClient,
    CompletionOptions,
    Message,
    Turn,
    ValidationVerdict,
)
from mediamind.utils.env_cfg import RefinementConfig, debug_prompts_enabled
from mediamind.utils.prompt_cfg import render_prompt

APOLOGY_RE = re.compile(
    r"\b(sorry|apologi[sz]e|apologies|unfortunately|an error occurred|"
    r"i (?:cannot|can't|am unable to|'m unable to))\b",
    flags=re.IGNORECASE,
)
CAPABILITY_RE = re.compile(
    r"\b(i can help (?:you )?with|my capabilities|i am able to|"
    r"here are some things i can|as an ai)\b",
    flags=re.IGNORECASE,
)
HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s", flags=re.MULTILINE)
BOLD_RE = re.compile(r"\*\*[^*]+\*\*")
SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")

MAX_SENTENCES = 8
NO_ISSUES_NOTE = "The answer did not fully address the question."


class _DeadlineExceeded(Exception):
    pass


def parse_verdict(text: str, accept_score: int = 7) -> ValidationVerdict:
    """
    Parse critic output into a verdict.

    Args:
        text (str): Raw completion text, possibly wrapped in a code fence or prose.
        accept_score (int, optional): Score from which a candidate is satisfactory. Defaults to 7.

    Returns:
        ValidationVerdict: The validated verdict.

    Raises:
        ValueError: If no JSON object can be found or it fails validation.
    """
    raw = (text or "").strip()
    if raw.startswith("```"):
        lines = raw.split("\n")[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        raw = "\n".join(lines).strip()

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        match = re.search(r"\{.*\}", raw, re.DOTALL)
        if not match:
            raise ValueError(f"Failed to parse critic output: {e}") from e
        try:
            data = json.loads(match.group())
        except json.JSONDecodeError as inner:
            raise ValueError(f"Failed to parse critic output: {inner}") from inner

    if not isinstance(data, dict):
        raise ValueError("Critic output is not a JSON object")

    # pydantic's ValidationError is a ValueError
    verdict = ValidationVerdict.model_validate(
        {"score": data.get("score"), "issues": data.get("issues")}
    )
    verdict.is_satisfactory = verdict.score >= accept_score
    return verdict


def heuristic_critique(candidate: str, accept_score: int = 7) -> ValidationVerdict:
    """
    Score a candidate locally by looking for telltale signs of a weak answer.

    Args:
        candidate (str): The candidate answer.
        accept_score (int, optional): Score from which a candidate is satisfactory. Defaults to 7.

    Returns:
        ValidationVerdict: The heuristic verdict.
    """
    text = (candidate or "").strip()
    if not text:
        return ValidationVerdict(score=1, issues=["The answer is empty."])

    score = 10
    issues: list[str] = []
    if APOLOGY_RE.search(text):
        score -= 4
        issues.append("Contains apology or error phrasing instead of an answer.")
    if CAPABILITY_RE.search(text):
        score -= 3
        issues.append("Lists generic capabilities instead of answering.")
    if len(HEADING_RE.findall(text)) >= 2 or len(BOLD_RE.findall(text)) >= 3:
        score -= 2
        issues.append("Uses heavy heading or markup formatting.")
    if len([s for s in SENTENCE_SPLIT_RE.split(text) if s.strip()]) > MAX_SENTENCES:
        score -= 2
        issues.append("Too long; use fewer sentences.")

    score = min(max(score, 1), 10)
    return ValidationVerdict(
        score=score, issues=issues, is_satisfactory=score >= accept_score
    )


@dataclass
class RefinementOutcome:
    """
    Result of one loop run.
    ``degraded`` is set when a transport failure or the deadline cut the loop short.
    """

    content: str
    score: int | None
    rounds: int
    accepted: bool
    forced: bool = False
    degraded: bool = False
    approaches: list[str] = field(default_factory=list)
    verdicts: list[ValidationVerdict] = field(default_factory=list)


@dataclass
class _Candidate:
    content: str
    score: int | None = None


class SelfValidationLoop:
    """
    Draft an answer, have it critiqued, and revise until it is good enough.

    Round 1 plans and answers; later rounds rewrite the previous candidate using the
    critic's issues. After ``max_rounds`` unsatisfactory critiques one final rewrite
    is accepted unconditionally. Transport failures on a draft stop the loop and
    return the best candidate so far; failures on a critique fall back to
    ``heuristic_critique``.
    """

    def __init__(
        self,
        client: CompletionClient,
        config: RefinementConfig | None = None,
        options: CompletionOptions | None = None,
        critic_options: CompletionOptions | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the SelfValidationLoop.

        Args:
            client (CompletionClient): The completion service.
            config (RefinementConfig | None, optional): Loop bounds. Defaults to RefinementConfig().
            options (CompletionOptions | None, optional): Options for drafting calls. Defaults to None.
            critic_options (CompletionOptions | None, optional): Options for critique calls. Defaults to temperature 0.
            clock (Callable[[], float], optional): Monotonic time source. Defaults to time.monotonic.
        """
        self.client = client
        self.config = config or RefinementConfig()
        self.options = options
        self.critic_options = critic_options or CompletionOptions(temperature=0.0)
        self._clock = clock
        self._deadline: float | None = None

    def _call(
        self, label: str, messages: list[Message], options: CompletionOptions | None
    ) -> str:
        if self._deadline is not None and self._clock() >= self._deadline:
            raise _DeadlineExceeded(label)
        if debug_prompts_enabled():
            logger.debug("Prompt for '{}': {}", label, messages)
        return (self.client.complete(messages, options) or "").strip()

    def _history_messages(self, history: Sequence[Turn]) -> list[Message]:
        limit = self.config.history_turns
        turns = list(history)[-limit:] if limit > 0 else []
        return [
            {"role": t.role, "content": t.content}
            for t in turns
            if t.role in ("user", "assistant")
        ]

    def _draft(
        self,
        query: str,
        system_prompt: str,
        display_name: str,
        context_summary: str,
        history: Sequence[Turn],
    ) -> str:
        plan = self._call(
            "plan",
            [
                {
                    "role": "user",
                    "content": render_prompt(
                        "planner",
                        display_name=display_name,
                        query=query,
                        context=context_summary,
                    ),
                }
            ],
            self.options,
        )
        messages: list[Message] = [
            {
                "role": "system",
                "content": render_prompt("answer", system_prompt=system_prompt, plan=plan),
            }
        ]
        messages.extend(self._history_messages(history))
        messages.append({"role": "user", "content": query})
        return self._call("answer", messages, self.options)

    def _rewrite(
        self, kw: str, query: str, system_prompt: str, candidate: str, issues: list[str]
    ) -> str:
        issue_lines = "\n".join(f"- {i}" for i in issues) or f"- {NO_ISSUES_NOTE}"
        prompt = render_prompt(
            kw, system_prompt=system_prompt, candidate=candidate, issues=issue_lines
        )
        return self._call(
            kw,
            [{"role": "system", "content": prompt}, {"role": "user", "content": query}],
            self.options,
        )

    def _critique(self, query: str, candidate: str) -> tuple[ValidationVerdict, str]:
        accept = self.config.accept_score
        if not candidate:
            return heuristic_critique(candidate, accept), "heuristic"
        try:
            prompt = render_prompt("critic", query=query, candidate=candidate)
            raw = self._call(
                "critique", [{"role": "user", "content": prompt}], self.critic_options
            )
        except UpstreamError as e:
            logger.warning("Critique call failed, using heuristic critique: {}", e)
            return heuristic_critique(candidate, accept), "heuristic"
        try:
            return parse_verdict(raw, accept), "critic"
        except ValueError as e:
            logger.warning("Unparseable critique, using heuristic critique: {}", e)
            return heuristic_critique(candidate, accept), "heuristic"

    def run(
        self,
        query: str,
        system_prompt: str,
        *,
        fallback: str,
        display_name: str = "the assistant",
        context_summary: str = "",
        history: Sequence[Turn] = (),
    ) -> RefinementOutcome:
        """
        Produce a validated answer for a query.

        Args:
            query (str): The original user query.
            system_prompt (str): Handler system prompt with data context.
            fallback (str): Text returned when no candidate could be produced.
            display_name (str, optional): Name used in the planning prompt.
            context_summary (str, optional): Session context for the planning prompt.
            history (Sequence[Turn], optional): Prior turns; only the latest few are sent.

        Returns:
            RefinementOutcome: The answer and how it was reached. ``content`` is never empty.
        """
        cfg = self.config
        self._deadline = (
            self._clock() + cfg.deadline_seconds
            if cfg.deadline_seconds is not None
            else None
        )
        approaches: list[str] = []
        verdicts: list[ValidationVerdict] = []
        all_issues: list[str] = []
        best: _Candidate | None = None
        latest: _Candidate | None = None
        rounds = 0

        def finish_early(reason: str) -> RefinementOutcome:
            chosen = best or latest
            if chosen is None or not chosen.content:
                logger.warning("Refinement stopped ({}) without a candidate", reason)
                return RefinementOutcome(
                    content=fallback,
                    score=None,
                    rounds=rounds,
                    accepted=False,
                    degraded=True,
                    approaches=approaches + [f"fallback ({reason})"],
                    verdicts=verdicts,
                )
            logger.warning("Refinement stopped ({}) after {} round(s)", reason, rounds)
            return RefinementOutcome(
                content=chosen.content,
                score=chosen.score,
                rounds=rounds,
                accepted=False,
                degraded=True,
                approaches=approaches,
                verdicts=verdicts,
            )

        try:
            for rounds in range(1, cfg.max_rounds + 1):
                try:
                    if latest is None:
                        content = self._draft(
                            query, system_prompt, display_name, context_summary, history
                        )
                        approaches.append("plan and answer")
                    else:
                        content = self._rewrite(
                            "revise", query, system_prompt, latest.content,
                            verdicts[-1].issues,
                        )
                        approaches.append(f"revision {rounds}")
                except UpstreamError as e:
                    logger.warning("Draft call failed in round {}: {}", rounds, e)
                    return finish_early(type(e).__name__)

                latest = _Candidate(content)
                verdict, source = self._critique(query, content)
                verdicts.append(verdict)
                latest.score = verdict.score
                logger.debug(
                    "Round {} {} score: {} issues: {}",
                    rounds, source, verdict.score, verdict.issues,
                )
                if content and (best is None or verdict.score >= (best.score or 0)):
                    best = latest
                if verdict.is_satisfactory and content:
                    return RefinementOutcome(
                        content=content,
                        score=verdict.score,
                        rounds=rounds,
                        accepted=True,
                        approaches=approaches,
                        verdicts=verdicts,
                    )
                for issue in verdict.issues:
                    if issue not in all_issues:
                        all_issues.append(issue)

            base = best or latest
            try:
                final = self._rewrite(
                    "final", query, system_prompt, base.content if base else "", all_issues
                )
            except UpstreamError as e:
                logger.warning("Final rewrite failed: {}", e)
                return finish_early(type(e).__name__)
            approaches.append("forced final answer")
            if not final:
                return finish_early("empty final answer")
            return RefinementOutcome(
                content=final,
                score=None,
                rounds=rounds,
                accepted=True,
                forced=True,
                approaches=approaches,
                verdicts=verdicts,
            )
        except _DeadlineExceeded as e:
            return finish_early(f"deadline before {e}")
