from types import SimpleNamespace

import openai
import pytest
import requests

from growthlens import llm as llm_mod
from growthlens.errors import ProviderError
from growthlens.llm import AnthropicClient, OpenAICompatClient, create_llm_client


class _Completions:
    def __init__(self, result=None, error=None) -> None:
        self.result = result
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def _fake_sdk(completions: _Completions) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _chat_response(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_factory_routes_providers() -> None:
    gemini = create_llm_client("Gemini", "k", "gemini-2.0-flash")
    assert isinstance(gemini, OpenAICompatClient)
    assert gemini.provider_name == "gemini"
    assert gemini.base_url.startswith("https://generativelanguage.googleapis.com")
    claude = create_llm_client("claude", "k", "claude-sonnet")
    assert isinstance(claude, AnthropicClient)
    assert claude.provider_name == "anthropic"
    assert claude.model_name == "claude-sonnet"
    with pytest.raises(ValueError, match="Unknown provider"):
        create_llm_client("mystery", "k", "m")


def test_local_provider_defaults_and_custom_base_url() -> None:
    assert create_llm_client("ollama", "", "llama3").base_url == "http://localhost:11434/v1"
    custom = create_llm_client("generic", "k", "m", base_url="http://proxy/v1")
    assert custom.base_url == "http://proxy/v1"


def test_openai_generate_returns_message_content() -> None:
    client = OpenAICompatClient("openai", "gpt-4o", "k")
    completions = _Completions(result=_chat_response("hello"))
    client.client = _fake_sdk(completions)

    assert client.generate("prompt") == "hello"
    call = completions.calls[0]
    assert call["model"] == "gpt-4o"
    assert call["messages"] == [{"role": "user", "content": "prompt"}]
    assert call["temperature"] == 0.7


def test_openai_missing_content_is_provider_error() -> None:
    client = OpenAICompatClient("openai", "gpt-4o", "k")
    client.client = _fake_sdk(_Completions(result=_chat_response(None)))
    with pytest.raises(ProviderError, match="No content"):
        client.generate("prompt")


def test_openai_sdk_error_is_provider_error() -> None:
    client = OpenAICompatClient("openai", "gpt-4o", "k")
    client.client = _fake_sdk(_Completions(error=openai.OpenAIError("boom")))
    with pytest.raises(ProviderError, match="boom"):
        client.generate("prompt")


class _Response:
    def __init__(self, status_code: int, body=None, text: str = "") -> None:
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("not json")
        return self._body


def test_anthropic_generate_posts_messages(monkeypatch) -> None:
    captured = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, headers=headers, timeout=timeout)
        return _Response(200, {"content": [{"type": "text", "text": "answer"}]})

    monkeypatch.setattr(llm_mod.requests, "post", fake_post)
    client = AnthropicClient("claude-sonnet", "secret")

    assert client.generate("hi") == "answer"
    assert captured["url"] == "https://api.anthropic.com/v1/messages"
    assert captured["headers"]["x-api-key"] == "secret"
    assert captured["headers"]["anthropic-version"] == "2023-06-01"
    assert captured["json"]["max_tokens"] == 4096
    assert captured["timeout"] == 120.0


def test_anthropic_http_error_carries_upstream_text(monkeypatch) -> None:
    monkeypatch.setattr(llm_mod.requests, "post", lambda *a, **k: _Response(429, text="rate limited"))
    with pytest.raises(ProviderError, match="rate limited") as info:
        AnthropicClient("m", "k").generate("hi")
    assert info.value.status_code == 429


def test_anthropic_transport_and_body_errors(monkeypatch) -> None:
    def boom(*args, **kwargs):
        raise requests.Timeout("timed out")

    monkeypatch.setattr(llm_mod.requests, "post", boom)
    with pytest.raises(ProviderError, match="timed out"):
        AnthropicClient("m", "k").generate("hi")

    monkeypatch.setattr(llm_mod.requests, "post", lambda *a, **k: _Response(200, None))
    with pytest.raises(ProviderError, match="Malformed"):
        AnthropicClient("m", "k").generate("hi")

    monkeypatch.setattr(llm_mod.requests, "post", lambda *a, **k: _Response(200, {"content": []}))
    with pytest.raises(ProviderError, match="No content"):
        AnthropicClient("m", "k").generate("hi")


class _Encoding:
    """Splits on whitespace; records the special-token setting it was given."""

    def __init__(self, name: str = "fake") -> None:
        self.name = name
        self.disallowed = []

    def encode(self, text, disallowed_special="all"):
        self.disallowed.append(disallowed_special)
        return text.split()


def test_estimate_tokens_uses_model_encoding(monkeypatch) -> None:
    seen = []
    encoding = _Encoding()

    def for_model(name):
        seen.append(name)
        return encoding

    def no_fallback(name):
        raise AssertionError("fallback encoding should not be loaded")

    monkeypatch.setattr(llm_mod.tiktoken, "encoding_for_model", for_model)
    monkeypatch.setattr(llm_mod.tiktoken, "get_encoding", no_fallback)
    client = OpenAICompatClient("openai", "gpt-4o", "k")

    assert client.estimate_tokens("one two three") == 3
    assert client.estimate_tokens("") == 0
    assert seen == ["gpt-4o", "gpt-4o"]
    assert encoding.disallowed == [(), ()]


def test_estimate_tokens_unknown_model_uses_cl100k(monkeypatch) -> None:
    loaded = []

    def unknown(name):
        raise KeyError(name)

    def get_encoding(name):
        loaded.append(name)
        return _Encoding(name)

    monkeypatch.setattr(llm_mod.tiktoken, "encoding_for_model", unknown)
    monkeypatch.setattr(llm_mod.tiktoken, "get_encoding", get_encoding)

    assert AnthropicClient("claude-sonnet", "k").estimate_tokens("<|endoftext|> hi") == 2
    assert loaded == ["cl100k_base"]


def test_estimate_tokens_falls_back_to_length_when_encoding_unavailable(monkeypatch, caplog) -> None:
    def unknown(name):
        raise KeyError(name)

    def offline(name):
        raise requests.ConnectionError("cannot fetch cl100k_base")

    monkeypatch.setattr(llm_mod.tiktoken, "encoding_for_model", unknown)
    monkeypatch.setattr(llm_mod.tiktoken, "get_encoding", offline)
    client = create_llm_client("ollama", "", "llama3")

    with caplog.at_level("WARNING", logger="growthlens.llm"):
        assert client.estimate_tokens("abcdefgh") == 2
        assert client.estimate_tokens("") == 0
    assert "Falling back to heuristic" in caplog.text
