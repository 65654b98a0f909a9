"""Text generation backends for task conversations.

Every backend implements :class:`TextGenerator`: given the conversation so
far (the new user message included), produce the assistant's reply text.
"""

from __future__ import annotations

import os
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

import httpx
from loguru import logger

from ..constants import (
    DEFAULT_GENERATOR_API_KEY_ENV,
    DEFAULT_GENERATOR_BASE_URL,
    DEFAULT_GENERATOR_MODEL,
    DEFAULT_GENERATOR_TEMPERATURE,
    DEFAULT_GENERATOR_TIMEOUT,
)
from ..domain.models import Message


class GenerationError(RuntimeError):
    """The text generation backend failed to produce a reply."""


@runtime_checkable
class TextGenerator(Protocol):
    async def generate(self, history: Sequence[Message]) -> str:
        ...


class MockTextGenerator:
    """Canned replies; records every history it was asked about."""

    def __init__(self, model_name: str = "mock", reply: Optional[str] = None) -> None:
        self.model_name = model_name
        self.reply = reply
        self.calls: list[list[Message]] = []

    async def generate(self, history: Sequence[Message]) -> str:
        self.calls.append(list(history))
        if self.reply is not None:
            return self.reply
        last = history[-1].content if history else ""
        return (
            f'I received your message: "{last}". This is a mock response using '
            f"{self.model_name}. In a real implementation, this would connect to an AI service."
        )


class HttpTextGenerator:
    """OpenAI-compatible ``/chat/completions`` client built on httpx."""

    def __init__(
        self,
        base_url: str = DEFAULT_GENERATOR_BASE_URL,
        model: str = DEFAULT_GENERATOR_MODEL,
        *,
        api_key: Optional[str] = None,
        temperature: float = DEFAULT_GENERATOR_TEMPERATURE,
        timeout: float = DEFAULT_GENERATOR_TIMEOUT,
        system_prompt: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.timeout = timeout
        self.system_prompt = system_prompt
        self._transport = transport

    def _payload(self, history: Sequence[Message]) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.extend({"role": m.role.value, "content": m.content} for m in history)
        return {"model": self.model, "messages": messages, "temperature": self.temperature}

    async def generate(self, history: Sequence[Message]) -> str:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=self._payload(history),
                    headers=headers,
                )
                resp.raise_for_status()
                data = resp.json()
            except httpx.HTTPError as exc:
                raise GenerationError(f"Chat completion request failed: {exc}") from exc
            except ValueError as exc:
                raise GenerationError("Chat completion response was not JSON") from exc
        try:
            return str(data["choices"][0]["message"]["content"])
        except (KeyError, IndexError, TypeError) as exc:
            raise GenerationError(f"Unexpected chat completion payload: {data!r:.200}") from exc


def build_generator(config: dict[str, Any]) -> TextGenerator:
    """Create the backend described by the ``generator`` config block."""
    kind = str(config.get("kind") or "mock")
    if kind == "http":
        key_env = str(config.get("api_key_env") or DEFAULT_GENERATOR_API_KEY_ENV)
        return HttpTextGenerator(
            base_url=str(config.get("base_url") or DEFAULT_GENERATOR_BASE_URL),
            model=str(config.get("model") or DEFAULT_GENERATOR_MODEL),
            api_key=os.environ.get(key_env),
            temperature=float(config.get("temperature", DEFAULT_GENERATOR_TEMPERATURE)),
            timeout=float(config.get("timeout", DEFAULT_GENERATOR_TIMEOUT)),
            system_prompt=config.get("system_prompt"),
        )
    if kind != "mock":
        logger.warning("Unknown generator kind {!r}; using the mock generator", kind)
    return MockTextGenerator(model_name=str(config.get("model") or "mock"))
