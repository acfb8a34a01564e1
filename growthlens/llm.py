"""
Text-generation clients.

The analysis steps only need one capability from a model provider: submit
a prompt string and get a text completion back, or fail.  This module
wraps the concrete services behind ``LLMClient`` so the rest of the package
never imports a provider SDK directly.

OpenAI and the OpenAI-compatible endpoints (Gemini, Ollama, LM Studio and
generic servers) go through the official ``openai`` SDK.  Anthropic's
Messages API is called over plain HTTP with ``requests``.  Every failure,
whether an HTTP error, a transport error, a timeout or a response without
text, surfaces as ``ProviderError`` carrying the upstream message.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import openai
import requests
import tiktoken

from .errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 120.0

OPENAI_COMPAT_BASE_URLS: Dict[str, str] = {
    "openai": "https://api.openai.com/v1",
    "gemini": "https://generativelanguage.googleapis.com/v1beta/openai",
    "ollama": "http://localhost:11434/v1",
    "lmstudio": "http://localhost:1234/v1",
}
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

OPENAI_COMPAT_PROVIDERS = {"openai", "gemini", "ollama", "lmstudio", "generic", "openai-compatible"}
ANTHROPIC_PROVIDERS = {"anthropic", "claude"}
LOCAL_PROVIDERS = {"ollama", "lmstudio"}


class LLMClient(ABC):
    """A model that turns a prompt into text."""

    model: str

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Return the completion text or raise ``ProviderError``."""

    @property
    def model_name(self) -> str:
        return self.model

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    def estimate_tokens(self, text: str) -> int:
        """Estimate the number of tokens used by a text for the configured model.

        Falls back to a length heuristic when no encoding can be loaded, for
        example when tiktoken cannot download its BPE file offline.
        """
        try:
            try:
                encoding = tiktoken.encoding_for_model(self.model)
            except KeyError:
                # Default to cl100k_base if model unknown
                encoding = tiktoken.get_encoding("cl100k_base")
        except Exception as exc:
            logger.warning("Failed to load a token encoding for %s (%s). Falling back to heuristic.", self.model, exc)
            return len(text or "") // 4
        return len(encoding.encode(text or "", disallowed_special=()))


class OpenAICompatClient(LLMClient):
    """Chat-completions client for OpenAI and servers that speak the same API."""

    def __init__(
        self,
        provider: str,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        temperature: float = 0.7,
    ) -> None:
        self.provider = provider
        self.model = model
        self.temperature = temperature
        self.base_url = base_url or OPENAI_COMPAT_BASE_URLS.get(
            provider.lower(), OPENAI_COMPAT_BASE_URLS["openai"]
        )
        # The SDK insists on a key even for local servers that ignore it
        self.client = openai.OpenAI(
            api_key=api_key or "not-needed",
            base_url=self.base_url,
            timeout=timeout,
            max_retries=0,
        )

    @property
    def provider_name(self) -> str:
        return self.provider

    def generate(self, prompt: str) -> str:
        logger.debug(
            "Chat completion: provider=%s model=%s prompt_chars=%d", self.provider, self.model, len(prompt)
        )
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
            )
        except openai.APIStatusError as exc:
            raise ProviderError(f"API request failed: {exc.message}", status_code=exc.status_code) from exc
        except openai.OpenAIError as exc:
            raise ProviderError(f"API request failed: {exc}") from exc
        return self.extract_output_text(resp)

    @staticmethod
    def extract_output_text(response: Any) -> str:
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None
        if not isinstance(content, str):
            raise ProviderError("No content in response")
        return content


class AnthropicClient(LLMClient):
    """Client for Anthropic's Messages API."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        max_tokens: int = 4096,
    ) -> None:
        self.model = model
        self.api_key = api_key
        self.base_url = base_url or ANTHROPIC_URL
        self.timeout = timeout
        self.max_tokens = max_tokens

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def generate(self, prompt: str) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }
        logger.debug("Messages call: model=%s prompt_chars=%d", self.model, len(prompt))
        try:
            r = requests.post(self.base_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError(f"API request failed: {exc}") from exc
        if not r.ok:
            raise ProviderError(f"API request failed: {r.text}", status_code=r.status_code)
        try:
            body = r.json()
        except ValueError as exc:
            raise ProviderError(f"Malformed response body: {exc}") from exc
        return self.extract_output_text(body)

    @staticmethod
    def extract_output_text(body: Any) -> str:
        """Anthropic returns content as a list of blocks; take the first text block."""
        try:
            text = body["content"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not isinstance(text, str):
            raise ProviderError("No content in response")
        return text


def create_llm_client(
    provider: str,
    api_key: str,
    model: str,
    base_url: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> LLMClient:
    name = (provider or "").lower()
    if name in OPENAI_COMPAT_PROVIDERS:
        return OpenAICompatClient(name, model, api_key, base_url=base_url, timeout=timeout)
    if name in ANTHROPIC_PROVIDERS:
        return AnthropicClient(model, api_key, base_url=base_url, timeout=timeout)
    raise ValueError(f"Unknown provider: {provider}")
