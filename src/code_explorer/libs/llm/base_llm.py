"""Base abstraction for chat-capable LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseLLM(ABC):
    """Abstract interface for all LLM providers.

    Implementations should adapt provider-specific request/response formats
    behind a unified `chat` API.
    """

    @abstractmethod
    def chat(self, messages: list[dict[str, str]]) -> str:
        """Generate a chat completion from message history.

        Args:
            messages: Chat message list, e.g. `[{"role": "user", "content": "..."}]`.

        Returns:
            Model response text.
        """

    def validate_messages(self, messages: list[dict[str, str]]) -> None:
        """Reject empty histories and malformed messages.

        Raises:
            ValueError: On the first invalid message.
        """

        if not messages:
            raise ValueError("Messages list cannot be empty")
        for i, message in enumerate(messages):
            if not isinstance(message, dict):
                raise ValueError(f"Message at index {i} is not a dict")
            if message.get("role") not in {"system", "user", "assistant"}:
                raise ValueError(f"Message at index {i} has invalid role: {message.get('role')!r}")
            if not isinstance(message.get("content"), str):
                raise ValueError(f"Message at index {i} is missing string content")
