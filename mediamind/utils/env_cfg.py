import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "on"}


def _as_optional_float(val: str | None) -> float | None:
    if val is None or not val.strip():
        return None
    return float(val)


@dataclass(frozen=True)
class LLMConfig:
    """
    Dataclass for completion service configuration.
    """

    provider: str
    model: str
    max_tokens: int
    temperature: float
    request_timeout: float
    openai_api_key: str | None
    openai_api_base: str | None
    ollama_host: str


@dataclass(frozen=True)
class RoutingConfig:
    """
    Dataclass for dispatcher thresholds and input limits.
    """

    dispatch_threshold: float = 0.3
    min_query_length: int = 2
    max_query_length: int = 500
    response_seed: int = 42


@dataclass(frozen=True)
class RefinementConfig:
    """
    Dataclass for the generate/critique/revise loop.
    """

    max_rounds: int = 3
    accept_score: int = 7
    deadline_seconds: float | None = None
    history_turns: int = 3


@dataclass(frozen=True)
class MemoryConfig:
    """
    Dataclass for the conversational memory store.
    """

    max_sessions: int = 1000
    ttl_seconds: float | None = None
    context_turns: int = 10


@dataclass(frozen=True)
class DataStoreConfig:
    """
    Dataclass for the external record store.
    """

    url: str | None
    api_key: str | None
    timeout: float
    row_limit: int


@dataclass(frozen=True)
class PathConfig:
    """
    Dataclass for path configuration.
    """

    logs: Path
    prompts: Path


@dataclass(frozen=True)
class LogConfig:
    """
    Dataclass for log sink configuration.
    """

    level: str
    rotation: str
    retention: int
    quiet_loggers: tuple[str, ...]


def load_llm_env() -> LLMConfig:
    """
    Loads completion service configuration from environment variables or defaults.

    Returns:
        LLMConfig: Dataclass containing completion configuration.
        - provider (str): Backend to use, "openai" or "ollama".
        - model (str): The generation model identifier.
        - max_tokens (int): Upper bound on generated tokens per call.
        - temperature (float): Sampling temperature.
        - request_timeout (float): Per-call timeout in seconds.
        - openai_api_key (str | None): API key for OpenAI-compatible servers.
        - openai_api_base (str | None): Base URL for OpenAI-compatible servers.
        - ollama_host (str): The Ollama host URL.
    """
    provider = os.getenv("LLM_PROVIDER", "openai").strip().lower()
    default_model = "qwen3:14b" if provider == "ollama" else "gpt-4o-mini"
    return LLMConfig(
        provider=provider,
        model=os.getenv("LLM_MODEL", default_model),
        max_tokens=int(os.getenv("LLM_MAX_TOKENS", "4000")),
        temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
        request_timeout=float(os.getenv("LLM_REQUEST_TIMEOUT", "60")),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        openai_api_base=os.getenv("OPENAI_API_BASE"),
        ollama_host=os.getenv("OLLAMA_HOST", "http://localhost:11434"),
    )


def load_routing_env() -> RoutingConfig:
    """
    Loads routing configuration from environment variables or defaults.

    Returns:
        RoutingConfig: Dataclass containing routing configuration.
        - dispatch_threshold (float): Minimum score required to dispatch to a handler.
        - min_query_length (int): Shortest accepted query, after stripping.
        - max_query_length (int): Longest accepted query.
        - response_seed (int): Seed for phrasing selection.
    """
    return RoutingConfig(
        dispatch_threshold=float(os.getenv("DISPATCH_THRESHOLD", "0.3")),
        min_query_length=int(os.getenv("MIN_QUERY_LENGTH", "2")),
        max_query_length=int(os.getenv("MAX_QUERY_LENGTH", "500")),
        response_seed=int(os.getenv("RESPONSE_SEED", "42")),
    )


def load_refinement_env() -> RefinementConfig:
    """
    Loads self-validation loop configuration from environment variables or defaults.

    Returns:
        RefinementConfig: Dataclass containing loop configuration.
        - max_rounds (int): Maximum critique rounds before the forced final answer.
        - accept_score (int): Minimum critic score (1-10) that accepts a candidate.
        - deadline_seconds (float | None): Wall-clock budget for the whole loop.
        - history_turns (int): Number of prior turns passed to the drafting calls.
    """
    return RefinementConfig(
        max_rounds=int(os.getenv("REFINE_MAX_ROUNDS", "3")),
        accept_score=int(os.getenv("REFINE_ACCEPT_SCORE", "7")),
        deadline_seconds=_as_optional_float(os.getenv("REFINE_DEADLINE_SECONDS")),
        history_turns=int(os.getenv("REFINE_HISTORY_TURNS", "3")),
    )


def load_memory_env() -> MemoryConfig:
    """
    Loads memory store configuration from environment variables or defaults.

    Returns:
        MemoryConfig: Dataclass containing memory configuration.
        - max_sessions (int): LRU bound on retained user memories.
        - ttl_seconds (float | None): Idle time after which a memory expires.
        - context_turns (int): Number of recent turns scanned for context.
    """
    return MemoryConfig(
        max_sessions=int(os.getenv("MEMORY_MAX_SESSIONS", "1000")),
        ttl_seconds=_as_optional_float(os.getenv("MEMORY_TTL_SECONDS")),
        context_turns=int(os.getenv("MEMORY_CONTEXT_TURNS", "10")),
    )


def load_datastore_env() -> DataStoreConfig:
    """
    Loads record store configuration from environment variables or defaults.

    Returns:
        DataStoreConfig: Dataclass containing record store configuration.
        - url (str | None): Base URL of the REST endpoint.
        - api_key (str | None): Service key sent with every request.
        - timeout (float): Lookup timeout in seconds.
        - row_limit (int): Default maximum rows per lookup.
    """
    return DataStoreConfig(
        url=os.getenv("DATASTORE_URL"),
        api_key=os.getenv("DATASTORE_KEY"),
        timeout=float(os.getenv("DATASTORE_TIMEOUT", "10")),
        row_limit=int(os.getenv("DATASTORE_ROW_LIMIT", "1000")),
    )


def load_path_env() -> PathConfig:
    """
    Loads path configuration from environment variables or defaults.

    Returns:
        PathConfig: Dataclass containing path configuration.
        - logs (Path): Path to the log file.
        - prompts (Path): Path to the prompt templates directory.
    """
    project_root: Path = Path(__file__).parents[2].resolve()
    utils_dir: Path = Path(__file__).parent.resolve()
    return PathConfig(
        logs=Path(
            os.getenv("LOG_PATH", project_root / ".logs" / "mediamind.log")
        ).expanduser(),
        prompts=utils_dir / "prompts",
    )


def load_log_env() -> LogConfig:
    """
    Loads log sink configuration from environment variables or defaults.

    Returns:
        LogConfig: Dataclass containing log configuration.
        - level (str): Minimum level for the stderr sink.
        - rotation (str): Size or age at which the log file rotates.
        - retention (int): Number of rotated log files to keep.
        - quiet_loggers (tuple[str, ...]): Standard-library loggers capped at WARNING.
    """
    quiet = os.getenv("LOG_QUIET_LOGGERS", "httpx,httpcore,openai,ollama")
    return LogConfig(
        level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        rotation=os.getenv("LOG_ROTATION", "5 MB"),
        retention=int(os.getenv("LOG_RETENTION", "3")),
        quiet_loggers=tuple(name.strip() for name in quiet.split(",") if name.strip()),
    )


def debug_prompts_enabled() -> bool:
    """
    Whether rendered prompts should be written to the debug log.

    Returns:
        bool: True when MEDIAMIND_DEBUG_PROMPTS is set to a truthy value.
    """
    return _as_bool(os.getenv("MEDIAMIND_DEBUG_PROMPTS"), False)
