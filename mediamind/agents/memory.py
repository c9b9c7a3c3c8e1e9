"""Per-user conversational memory with bounded retention."""

import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable

from loguru import logger

from mediamind.agents.context import SessionContext
from mediamind.agents.types import AgentResponse, HandlerResponse, Turn
from mediamind.agents.understanding import (
    GENERIC_INTENT,
    extract_intent,
    preference_hints,
)
from mediamind.utils.env_cfg import MemoryConfig


@dataclass
class Preferences:
    """
    Presentation preferences. Changed only by explicit hints in user queries.
    """

    detail_level: str = "detailed"
    technical_level: str = "basic"
    preferred_format: str = "text"


@dataclass
class DerivedContext:
    """
    Fields recomputed from the latest turns.
    """

    current_page: str = ""
    last_query: str = ""
    last_intent: str = ""
    follow_up_suggestions: list[str] = field(default_factory=list)
    attempted_approaches: list[str] = field(default_factory=list)


class ConversationMemory:
    """
    Turns, preferences and derived fields for one user.
    Turns are append-only; appends are serialised by a lock.
    """

    def __init__(self, session_id: str | None = None) -> None:
        self.session_id = session_id or f"session_{uuid.uuid4().hex}"
        self.preferences = Preferences()
        self.derived = DerivedContext()
        self._turns: list[Turn] = []
        self._lock = threading.Lock()

    def append_turn(self, turn: Turn) -> None:
        """
        Append a turn at the end of the sequence.

        Args:
            turn (Turn): The turn to append.
        """
        with self._lock:
            self._turns.append(turn)

    def read_turns(self) -> tuple[Turn, ...]:
        """
        Return a snapshot of all turns in append order.

        Returns:
            tuple[Turn, ...]: The turns recorded so far.
        """
        with self._lock:
            return tuple(self._turns)

    def recent_turns(self, limit: int) -> tuple[Turn, ...]:
        """Return at most ``limit`` of the latest turns."""
        if limit <= 0:
            return ()
        with self._lock:
            return tuple(self._turns[-limit:])

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)


class MemoryStore:
    """
    Bounded store of conversation memories keyed by user id.
    Least recently used entries are evicted first; idle entries expire after the TTL.
    """

    def __init__(
        self,
        config: MemoryConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the MemoryStore.

        Args:
            config (MemoryConfig | None, optional): Retention limits. Defaults to MemoryConfig().
            clock (Callable[[], float], optional): Monotonic time source. Defaults to time.monotonic.
        """
        self.config = config or MemoryConfig()
        self._clock = clock
        self._entries: OrderedDict[str, tuple[ConversationMemory, float]] = (
            OrderedDict()
        )
        self._lock = threading.RLock()

    def _expired(self, touched_at: float, now: float) -> bool:
        ttl = self.config.ttl_seconds
        return ttl is not None and now - touched_at > ttl

    def _prune(self, now: float) -> None:
        # Oldest entries sit at the front, so stop at the first live one.
        while self._entries:
            user_id, (_, touched_at) = next(iter(self._entries.items()))
            if not self._expired(touched_at, now):
                break
            self._entries.popitem(last=False)
            logger.debug("Expired conversation memory for user '{}'", user_id)

    def get(self, user_id: str) -> ConversationMemory:
        """
        Return the memory for a user, creating it with defaults if needed.

        Args:
            user_id (str): The user identifier.

        Returns:
            ConversationMemory: The live memory record for the user.
        """
        with self._lock:
            now = self._clock()
            self._prune(now)
            entry = self._entries.get(user_id)
            if entry is None:
                memory = ConversationMemory()
                logger.debug("Created conversation memory for user '{}'", user_id)
            else:
                memory = entry[0]
            self._entries[user_id] = (memory, now)
            self._entries.move_to_end(user_id)
            while len(self._entries) > self.config.max_sessions:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted conversation memory for user '{}'", evicted)
            return memory

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            entry = self._entries.get(user_id)  # type: ignore[arg-type]
            return entry is not None and not self._expired(entry[1], self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def record_user_turn(
        self, memory: ConversationMemory, query: str, context: SessionContext
    ) -> Turn:
        """
        Append the user's turn and refresh the derived fields.

        Args:
            memory (ConversationMemory): The memory to update.
            query (str): The user query.
            context (SessionContext): The caller's session context.

        Returns:
            Turn: The appended turn.
        """
        turn = Turn(role="user", content=query)
        memory.append_turn(turn)
        memory.derived.last_query = query
        memory.derived.current_page = context.current_page or ""
        memory.derived.last_intent = extract_intent(query)
        self.apply_preference_hints(memory, query)
        return turn

    def record_assistant_turn(
        self,
        memory: ConversationMemory,
        response: HandlerResponse | AgentResponse,
        approaches: list[str] | None = None,
    ) -> Turn:
        """
        Append the assistant's turn and keep its follow-up suggestions.

        Args:
            memory (ConversationMemory): The memory to update.
            response (HandlerResponse | AgentResponse): The produced answer.
            approaches (list[str] | None, optional): Approaches tried while answering.

        Returns:
            Turn: The appended turn.
        """
        handler_id = response.handler_id
        turn = Turn(
            role="assistant",
            content=response.content,
            handler_id=getattr(handler_id, "value", handler_id),
            handler_name=response.handler_name,
        )
        memory.append_turn(turn)
        memory.derived.follow_up_suggestions = list(response.suggestions)
        if approaches:
            memory.derived.attempted_approaches = list(approaches)
        return turn

    def relevant_context(self, memory: ConversationMemory, new_query: str) -> str:
        """
        Continuity phrase for a follow-up on the same topic.

        Args:
            memory (ConversationMemory): The memory before the new turn is recorded.
            new_query (str): The incoming query.

        Returns:
            str: The phrase, or an empty string when the topic changed or nothing precedes it.
        """
        previous = memory.derived.last_intent
        if not previous:
            return ""
        current = extract_intent(new_query)
        if current != previous or current == GENERIC_INTENT:
            return ""
        return f"Continuing our discussion about {current}."

    def apply_preference_hints(self, memory: ConversationMemory, query: str) -> None:
        """Update preferences from explicit hints in the query."""
        for name, value in preference_hints(query).items():
            if getattr(memory.preferences, name) != value:
                logger.debug("Preference '{}' set to '{}'", name, value)
            setattr(memory.preferences, name, value)
