"""OpenAI-compatible chat completion providers."""

from __future__ import annotations

import os
import re
from typing import Any, Optional

import openai
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from code_explorer.libs.llm.base_llm import BaseLLM

TRANSIENT_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
)

# Reasoning models wrap their chain of thought in <think> tags.
_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)


class OpenAILLMError(RuntimeError):
    """Raised when a chat completion call fails."""


def strip_reasoning(text: str) -> str:
    """Remove ``<think>...</think>`` blocks and surrounding whitespace."""

    return _THINK_BLOCK.sub("", text).strip()


class OpenAILLM(BaseLLM):
    """Chat provider for any OpenAI-compatible completions endpoint.

    Per-use overrides let one settings section serve several callers, for
    example JSON-mode annotation with a reasoning model next to plain chat.
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_MODEL = "gpt-4o-mini"
    API_KEY_ENV = "OPENAI_API_KEY"

    def __init__(
        self,
        settings: Any,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        config = settings.llm
        self.model = model or config.get("model") or self.DEFAULT_MODEL
        self.temperature = float(temperature if temperature is not None else config.get("temperature", 0.3))
        self.max_tokens = int(max_tokens if max_tokens is not None else config.get("max_tokens", 1000))
        self.json_mode = json_mode
        self.base_url = base_url or config.get("base_url") or self.DEFAULT_BASE_URL
        self.max_retries = int(config.get("max_retries", 3))
        backoff = float(config.get("retry_backoff_seconds", 1.0))

        self.api_key = (
            api_key
            or config.get("api_key")
            or os.environ.get(self.API_KEY_ENV)
            or os.environ.get("OPENAI_API_KEY")
        )
        if client is None and not self.api_key:
            raise ValueError(
                f"LLM API key not provided. Set {self.API_KEY_ENV} or llm.api_key in settings."
            )

        self._client = client
        self._create_with_retry = retry(
            stop=stop_after_attempt(max(1, self.max_retries)),
            wait=wait_exponential(multiplier=backoff, min=backoff, max=30),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )(self._create)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.api_key, base_url=self.base_url, max_retries=0)
        return self._client

    def _create(self, messages: list[dict[str, str]]) -> Any:
        params: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if self.json_mode:
            params["response_format"] = {"type": "json_object"}
        return self.client.chat.completions.create(**params)

    def chat(self, messages: list[dict[str, str]]) -> str:
        """Return the assistant reply with reasoning blocks removed.

        Raises:
            ValueError: If *messages* is malformed.
            OpenAILLMError: If the call fails or returns no content.
        """
        self.validate_messages(messages)

        try:
            response = self._create_with_retry(messages)
        except Exception as e:
            raise OpenAILLMError(f"Chat completion call failed: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise OpenAILLMError(f"Failed to parse chat completion response: {e}") from e

        if not content:
            raise OpenAILLMError("Chat completion returned empty content")
        return strip_reasoning(content)


class NovitaLLM(OpenAILLM):
    """Chat completions served by Novita AI's OpenAI-compatible gateway."""

    DEFAULT_BASE_URL = "https://api.novita.ai/v3/openai"
    DEFAULT_MODEL = "deepseek/deepseek-v3-0324"
    API_KEY_ENV = "NOVITA_API_KEY"
