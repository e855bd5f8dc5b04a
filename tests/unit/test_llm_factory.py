"""Unit tests for LLMFactory routing and the OpenAI-compatible chat provider."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, List

import pytest

from code_explorer.libs.llm import openai_llm
from code_explorer.libs.llm.base_llm import BaseLLM
from code_explorer.libs.llm.llm_factory import LLMFactory
from code_explorer.libs.llm.openai_llm import NovitaLLM, OpenAILLM, OpenAILLMError, strip_reasoning


class _FakeLLM(BaseLLM):
    def __init__(self, settings: Any, **overrides: Any) -> None:
        self.provider = settings.llm["provider"]
        self.overrides = overrides

    def chat(self, messages: list[dict[str, str]]) -> str:
        return f"{self.provider}:{messages[-1]['content']}"


class _FakeCompletions:
    def __init__(self, contents: List[Any]) -> None:
        self.contents = list(contents)
        self.calls: List[dict] = []

    def create(self, **params: Any) -> Any:
        self.calls.append(params)
        content = self.contents.pop(0)
        if isinstance(content, Exception):
            raise content
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _client(completions: _FakeCompletions) -> Any:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


# ── Factory ──────────────────────────────────────────────────────────


def test_create_forwards_overrides(monkeypatch: pytest.MonkeyPatch, make_settings) -> None:
    monkeypatch.setattr(LLMFactory, "_registry", {"fake": _FakeLLM})

    llm = LLMFactory.create(make_settings(), json_mode=True, temperature=0.7)

    assert isinstance(llm, _FakeLLM)
    assert llm.overrides == {"json_mode": True, "temperature": 0.7}
    assert llm.chat([{"role": "user", "content": "hi"}]) == "fake:hi"


def test_create_with_missing_provider_raises(monkeypatch: pytest.MonkeyPatch, make_settings) -> None:
    monkeypatch.setattr(LLMFactory, "_registry", {"fake": _FakeLLM})

    with pytest.raises(ValueError, match=r"llm\.provider"):
        LLMFactory.create(make_settings(llm={"provider": None}))


def test_create_with_unknown_provider_lists_registered(monkeypatch: pytest.MonkeyPatch, make_settings) -> None:
    monkeypatch.setattr(LLMFactory, "_registry", {"fake": _FakeLLM})

    with pytest.raises(ValueError, match="Registered providers: fake"):
        LLMFactory.create(make_settings(llm={"provider": "other"}))


# ── Message validation ───────────────────────────────────────────────


@pytest.mark.parametrize(
    "messages",
    [
        [],
        [{"role": "tool", "content": "x"}],
        [{"role": "user"}],
        ["not a dict"],
    ],
)
def test_validate_messages_rejects_malformed(messages: list, make_settings) -> None:
    with pytest.raises(ValueError):
        _FakeLLM(make_settings()).validate_messages(messages)


# ── OpenAI-compatible provider ───────────────────────────────────────


def test_strip_reasoning_removes_think_blocks() -> None:
    assert strip_reasoning("<think>plan\nmore</think>\n  answer ") == "answer"
    assert strip_reasoning("plain") == "plain"


def test_chat_sends_configured_parameters(make_settings) -> None:
    completions = _FakeCompletions(["<think>x</think>Hello"])
    llm = OpenAILLM(make_settings(llm={"temperature": 0.2, "max_tokens": 50}), client=_client(completions))

    reply = llm.chat([{"role": "user", "content": "hi"}])

    assert reply == "Hello"
    params = completions.calls[0]
    assert params["model"] == "fake-chat"
    assert params["temperature"] == 0.2
    assert params["max_tokens"] == 50
    assert "response_format" not in params


def test_overrides_and_json_mode(make_settings) -> None:
    completions = _FakeCompletions(['{"explanation": "x"}'])
    llm = OpenAILLM(
        make_settings(),
        model="deepseek/deepseek-r1-turbo",
        temperature=0.7,
        max_tokens=500,
        json_mode=True,
        client=_client(completions),
    )

    llm.chat([{"role": "user", "content": "annotate"}])

    params = completions.calls[0]
    assert params["model"] == "deepseek/deepseek-r1-turbo"
    assert params["max_tokens"] == 500
    assert params["response_format"] == {"type": "json_object"}


def test_empty_content_raises(make_settings) -> None:
    llm = OpenAILLM(make_settings(), client=_client(_FakeCompletions([""])))

    with pytest.raises(OpenAILLMError, match="empty"):
        llm.chat([{"role": "user", "content": "hi"}])


def test_transient_errors_are_retried(monkeypatch: pytest.MonkeyPatch, make_settings) -> None:
    monkeypatch.setattr(openai_llm, "TRANSIENT_ERRORS", (TimeoutError,))
    completions = _FakeCompletions([TimeoutError("slow"), "ok"])
    llm = OpenAILLM(
        make_settings(llm={"max_retries": 3, "retry_backoff_seconds": 0}),
        client=_client(completions),
    )

    assert llm.chat([{"role": "user", "content": "hi"}]) == "ok"
    assert len(completions.calls) == 2


def test_provider_failure_is_wrapped(make_settings) -> None:
    llm = OpenAILLM(make_settings(), client=_client(_FakeCompletions([RuntimeError("quota")])))

    with pytest.raises(OpenAILLMError, match="quota"):
        llm.chat([{"role": "user", "content": "hi"}])


def test_novita_reads_its_own_key(monkeypatch: pytest.MonkeyPatch, make_settings) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.setenv("NOVITA_API_KEY", "sk-novita")

    llm = NovitaLLM(make_settings(llm={"provider": "novita", "model": None, "base_url": None}))

    assert llm.api_key == "sk-novita"
    assert llm.model == "deepseek/deepseek-v3-0324"
    assert llm.base_url == "https://api.novita.ai/v3/openai"


def test_missing_key_raises(monkeypatch: pytest.MonkeyPatch, make_settings) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        OpenAILLM(make_settings(llm={"provider": "openai"}))


def test_sdk_client_leaves_retries_to_provider(monkeypatch: pytest.MonkeyPatch, make_settings) -> None:
    built: List[dict] = []
    monkeypatch.setattr(openai_llm.openai, "OpenAI", lambda **kwargs: built.append(kwargs) or object())

    llm = OpenAILLM(make_settings(llm={"api_key": "sk-test", "base_url": "http://localhost:1/v1"}))
    _ = llm.client

    assert built == [{"api_key": "sk-test", "base_url": "http://localhost:1/v1", "max_retries": 0}]
