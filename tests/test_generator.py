"""Tests for text generation backends (chat/generator.py)."""

from __future__ import annotations

import json

import httpx
import pytest

from tasktree.chat.generator import (
    GenerationError,
    HttpTextGenerator,
    MockTextGenerator,
    TextGenerator,
    build_generator,
)
from tasktree.domain.models import Message, MessageRole


def _history() -> list[Message]:
    return [
        Message(role=MessageRole.USER, content="Plan the release"),
        Message(role=MessageRole.ASSISTANT, content="Sure"),
        Message(role=MessageRole.USER, content="Go on"),
    ]


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.mark.anyio
class TestMockTextGenerator:
    async def test_default_reply_quotes_last_message(self) -> None:
        generator = MockTextGenerator(model_name="gpt-test")
        reply = await generator.generate(_history())
        assert reply == (
            'I received your message: "Go on". This is a mock response using gpt-test. '
            "In a real implementation, this would connect to an AI service."
        )
        assert len(generator.calls) == 1

    async def test_fixed_reply(self) -> None:
        generator = MockTextGenerator(reply="canned")
        assert await generator.generate([]) == "canned"
        assert generator.calls == [[]]

    async def test_satisfies_protocol(self) -> None:
        assert isinstance(MockTextGenerator(), TextGenerator)
        assert isinstance(HttpTextGenerator(), TextGenerator)


@pytest.mark.anyio
class TestHttpTextGenerator:
    async def test_posts_chat_completion(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion("Here is the plan"))

        generator = HttpTextGenerator(
            base_url="http://llm.test/v1/",
            model="test-model",
            api_key="secret",
            temperature=0.2,
            system_prompt="Be brief.",
            transport=httpx.MockTransport(handler),
        )
        reply = await generator.generate(_history())

        assert reply == "Here is the plan"
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "http://llm.test/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer secret"
        body = json.loads(request.content)
        assert body["model"] == "test-model"
        assert body["temperature"] == 0.2
        assert body["messages"][0] == {"role": "system", "content": "Be brief."}
        assert [m["role"] for m in body["messages"][1:]] == ["user", "assistant", "user"]
        assert body["messages"][-1]["content"] == "Go on"

    async def test_no_api_key_no_header(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion("ok"))

        generator = HttpTextGenerator(base_url="http://llm.test", transport=httpx.MockTransport(handler))
        assert await generator.generate(_history()) == "ok"
        assert "Authorization" not in seen[0].headers
        assert "system" not in [m["role"] for m in json.loads(seen[0].content)["messages"]]

    async def test_http_error_raises_generation_error(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="busy"))
        generator = HttpTextGenerator(base_url="http://llm.test", transport=transport)
        with pytest.raises(GenerationError):
            await generator.generate(_history())

    async def test_connection_error_raises_generation_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        generator = HttpTextGenerator(base_url="http://llm.test", transport=httpx.MockTransport(handler))
        with pytest.raises(GenerationError, match="request failed"):
            await generator.generate(_history())

    async def test_non_json_raises_generation_error(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        generator = HttpTextGenerator(base_url="http://llm.test", transport=transport)
        with pytest.raises(GenerationError, match="not JSON"):
            await generator.generate(_history())

    async def test_unexpected_payload_raises_generation_error(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"choices": []}))
        generator = HttpTextGenerator(base_url="http://llm.test", transport=transport)
        with pytest.raises(GenerationError, match="Unexpected"):
            await generator.generate(_history())


class TestBuildGenerator:
    def test_default_is_mock(self) -> None:
        assert isinstance(build_generator({}), MockTextGenerator)

    def test_unknown_kind_falls_back_to_mock(self) -> None:
        generator = build_generator({"kind": "carrier-pigeon", "model": "bird"})
        assert isinstance(generator, MockTextGenerator)
        assert generator.model_name == "bird"

    def test_http_reads_key_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TASKTREE_TEST_KEY", "from-env")
        generator = build_generator({
            "kind": "http",
            "base_url": "http://llm.test/v1",
            "model": "m",
            "temperature": 0.1,
            "timeout": 5,
            "api_key_env": "TASKTREE_TEST_KEY",
        })
        assert isinstance(generator, HttpTextGenerator)
        assert generator.api_key == "from-env"
        assert generator.base_url == "http://llm.test/v1"
        assert generator.model == "m"
        assert generator.temperature == 0.1
        assert generator.timeout == 5.0

    def test_http_without_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        generator = build_generator({"kind": "http"})
        assert isinstance(generator, HttpTextGenerator)
        assert generator.api_key is None
