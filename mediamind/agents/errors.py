"""Error taxonomy for the orchestrator.

None of these errors is allowed to escape ``AgentOrchestrator.respond``. They
are raised at the boundary where the failure happens and caught at the layer
that can turn them into a degraded answer.
"""


class MediamindError(RuntimeError):
    """Base class for all orchestrator errors."""


class UpstreamError(MediamindError):
    """The completion service could not produce a completion."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamUnavailable(UpstreamError):
    """Network failure, timeout or 5xx from the completion service."""


class UpstreamRejected(UpstreamError):
    """Authentication failure or other 4xx from the completion service."""


class UpstreamThrottled(UpstreamError):
    """The completion service rate-limited the request."""


class LookupFailed(MediamindError):
    """The record store lookup failed. An empty result is not a failure."""

    def __init__(self, message: str, view: str | None = None) -> None:
        super().__init__(message)
        self.view = view


class ValidationRejected(MediamindError):
    """The incoming query is empty, too long or contains unsafe patterns."""

    def __init__(self, message: str, issues: list[str] | None = None) -> None:
        super().__init__(message)
        self.issues = issues or []


class NoHandlerMatched(MediamindError):
    """No handler scored above the dispatch threshold."""

    def __init__(self, message: str, intent: str, best_score: float = 0.0) -> None:
        super().__init__(message)
        self.intent = intent
        self.best_score = best_score
