from dataclasses import dataclass, field
from typing import Any, Sequence

import httpx
import ollama
import openai
from loguru import logger
from openai import OpenAI
from openai.types.chat import ChatCompletionMessageParam

from mediamind.agents.errors import (
    UpstreamError,
    UpstreamRejected,
    UpstreamThrottled,
    UpstreamUnavailable,
)
from mediamind.agents.types import CompletionClient, CompletionOptions, Message
from mediamind.utils.env_cfg import LLMConfig, load_llm_env


def classify_status(status_code: int | None, message: str) -> UpstreamError:
    """
    Map an HTTP status from the completion service onto an upstream error.

    Args:
        status_code (int | None): The HTTP status, if known.
        message (str): Error description.

    Returns:
        UpstreamError: The matching error kind. Unknown statuses count as unavailable.
    """
    if status_code == 429:
        return UpstreamThrottled(message, status_code)
    if status_code is not None and 400 <= status_code < 500:
        return UpstreamRejected(message, status_code)
    return UpstreamUnavailable(message, status_code)


def _resolve(config: LLMConfig, options: CompletionOptions | None) -> tuple[str, int, float]:
    opts = options or CompletionOptions()
    return (
        opts.model or config.model,
        opts.max_tokens if opts.max_tokens is not None else config.max_tokens,
        opts.temperature if opts.temperature is not None else config.temperature,
    )


@dataclass
class OpenAICompletionClient:
    """
    Completion client for OpenAI-compatible chat APIs.
    The SDK's own retries are disabled; callers decide what to do on failure.
    """

    config: LLMConfig = field(default_factory=load_llm_env)
    client: Any = None

    def _client(self) -> OpenAI:
        if self.client is None:
            self.client = OpenAI(
                api_key=self.config.openai_api_key,
                base_url=self.config.openai_api_base,
                timeout=self.config.request_timeout,
                max_retries=0,
            )
        return self.client

    def complete(
        self, messages: Sequence[Message], options: CompletionOptions | None = None
    ) -> str:
        """
        Call OpenAI chat completion.

        Args:
            messages (Sequence[Message]): Role-tagged messages, in order.
            options (CompletionOptions | None, optional): Per-call overrides. Defaults to None.

        Returns:
            str: The response text.

        Raises:
            UpstreamThrottled: If the request was rate-limited.
            UpstreamRejected: If authentication failed or the request was invalid.
            UpstreamUnavailable: On network failures, timeouts and server errors.
        """
        model, max_tokens, temperature = _resolve(self.config, options)
        payload: list[ChatCompletionMessageParam] = [
            {"role": m["role"], "content": m["content"]}  # type: ignore[misc]
            for m in messages
        ]
        try:
            response = self._client().chat.completions.create(
                model=model,
                messages=payload,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.RateLimitError as e:
            logger.warning("Completion service rate-limited the request: {}", e)
            raise UpstreamThrottled(str(e), e.status_code) from e
        except openai.APIStatusError as e:
            logger.warning("Completion service returned {}: {}", e.status_code, e)
            raise classify_status(e.status_code, str(e)) from e
        except openai.APIConnectionError as e:
            logger.warning("Completion service unreachable: {}", e)
            raise UpstreamUnavailable(str(e)) from e
        except openai.OpenAIError as e:
            # Raised by the SDK before any request, e.g. for a missing API key.
            logger.warning("Completion client misconfigured: {}", e)
            raise UpstreamRejected(str(e)) from e
        return response.choices[0].message.content or ""


@dataclass
class OllamaCompletionClient:
    """
    Completion client for an Ollama server.
    """

    config: LLMConfig = field(default_factory=load_llm_env)
    client: Any = None

    def _client(self) -> ollama.Client:
        if self.client is None:
            self.client = ollama.Client(
                host=self.config.ollama_host, timeout=self.config.request_timeout
            )
        return self.client

    def complete(
        self, messages: Sequence[Message], options: CompletionOptions | None = None
    ) -> str:
        """
        Call the Ollama chat endpoint.

        Args:
            messages (Sequence[Message]): Role-tagged messages, in order.
            options (CompletionOptions | None, optional): Per-call overrides. Defaults to None.

        Returns:
            str: The response text.

        Raises:
            UpstreamThrottled: If the server answered 429.
            UpstreamRejected: If the server rejected the request, e.g. an unknown model.
            UpstreamUnavailable: If the server is unreachable, timed out or failed.
        """
        model, max_tokens, temperature = _resolve(self.config, options)
        try:
            response = self._client().chat(
                model=model,
                messages=[{"role": m["role"], "content": m["content"]} for m in messages],
                options={"temperature": temperature, "num_predict": max_tokens},
            )
        except ollama.ResponseError as e:
            logger.warning("Ollama returned {}: {}", e.status_code, e.error)
            raise classify_status(e.status_code, e.error) from e
        except (ConnectionError, httpx.TransportError) as e:
            logger.warning("Ollama server unreachable: {}", e)
            raise UpstreamUnavailable(str(e)) from e
        return (response["message"]["content"] or "").strip()


def build_completion_client(config: LLMConfig | None = None) -> CompletionClient:
    """
    Create the completion client selected by configuration.

    Args:
        config (LLMConfig | None, optional): Completion settings. Defaults to load_llm_env().

    Returns:
        CompletionClient: The OpenAI-compatible or Ollama backend.

    Raises:
        ValueError: If the provider is not supported.
    """
    cfg = config or load_llm_env()
    if cfg.provider == "openai":
        logger.info("Using OpenAI-compatible completion backend with model '{}'", cfg.model)
        return OpenAICompletionClient(config=cfg)
    if cfg.provider == "ollama":
        logger.info("Using Ollama completion backend at '{}' with model '{}'", cfg.ollama_host, cfg.model)
        return OllamaCompletionClient(config=cfg)
    logger.error("ValueError: Unsupported LLM provider '{}'", cfg.provider)
    raise ValueError(f"Unsupported LLM provider '{cfg.provider}'")
