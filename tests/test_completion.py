"""Tests for CompletionInvoker against a fake Anthropic client."""
import asyncio
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from taskdesigner.config import Settings
from taskdesigner.core.models import TaskIdeas
from taskdesigner.exceptions import CompletionServiceError, SchemaMismatchError
from taskdesigner.services.completion import CompletionInvoker, parse_json

IDEAS_JSON = (
    '{"ideas": ['
    '{"id": 1, "title": "Rover Designer", "description": "d", "role": "engineer", '
    '"audience": "NASA", "purpose": "p"},'
    '{"id": 2, "title": "Colony Planner", "description": "d", "role": "architect", '
    '"audience": "settlers", "purpose": "p"}'
    ']}'
)


class _FakeMessages:
    def __init__(self, text="", delay=0.0, error=None):
        self.text = text
        self.delay = delay
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text=self.text)],
            stop_reason="end_turn",
        )


def _invoker(messages: _FakeMessages, **overrides) -> CompletionInvoker:
    config = Settings(anthropic_api_key="test-key", claude_model="test-model", **overrides)
    client = SimpleNamespace(messages=messages)
    return CompletionInvoker(client=client, config=config)


class TestParseJson:
    def test_plain(self):
        assert parse_json('{"a": 1}') == {"a": 1}

    def test_fenced(self):
        assert parse_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_prose_around_object(self):
        assert parse_json('Here you go:\n{"a": [1, 2]}\nHope this helps.') == {"a": [1, 2]}

    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_json("no json here")


class TestInvoke:
    def test_text_reply(self):
        messages = _FakeMessages(text="  ## Title\nMission  ")
        result = asyncio.run(_invoker(messages).invoke("write requirements"))
        assert result == "## Title\nMission"

        call = messages.calls[0]
        assert call["model"] == "test-model"
        assert call["messages"] == [{"role": "user", "content": "write requirements"}]

    def test_structured_reply(self):
        messages = _FakeMessages(text=f"```json\n{IDEAS_JSON}\n```")
        result = asyncio.run(_invoker(messages).invoke("ideas please", TaskIdeas))
        assert isinstance(result, TaskIdeas)
        assert [i.id for i in result.ideas] == [1, 2]

    def test_overrides_passed_through(self):
        messages = _FakeMessages(text="ok")
        asyncio.run(
            _invoker(messages).invoke("p", system="sys", temperature=0.0, max_tokens=64)
        )
        call = messages.calls[0]
        assert call["system"] == "sys"
        assert call["temperature"] == 0.0
        assert call["max_tokens"] == 64

    def test_malformed_json(self):
        messages = _FakeMessages(text='{"ideas": [')
        with pytest.raises(SchemaMismatchError) as exc:
            asyncio.run(_invoker(messages).invoke("p", TaskIdeas))
        assert exc.value.details["shape"] == "TaskIdeas"

    def test_wrong_shape(self):
        messages = _FakeMessages(text='{"topics": []}')
        with pytest.raises(SchemaMismatchError):
            asyncio.run(_invoker(messages).invoke("p", TaskIdeas))

    def test_duplicate_ids_rejected(self):
        dup = IDEAS_JSON.replace('"id": 2', '"id": 1')
        with pytest.raises(SchemaMismatchError):
            asyncio.run(_invoker(_FakeMessages(text=dup)).invoke("p", TaskIdeas))

    def test_empty_reply(self):
        with pytest.raises(CompletionServiceError):
            asyncio.run(_invoker(_FakeMessages(text="   ")).invoke("p"))

    def test_timeout(self):
        messages = _FakeMessages(text="late", delay=1.0)
        invoker = _invoker(messages, completion_timeout_seconds=0.05)
        with pytest.raises(CompletionServiceError) as exc:
            asyncio.run(invoker.invoke("p"))
        assert "timed out" in exc.value.message

    def test_api_error(self):
        error = anthropic.APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
        with pytest.raises(CompletionServiceError) as exc:
            asyncio.run(_invoker(_FakeMessages(error=error)).invoke("p"))
        assert exc.value.original_error is error


class TestUnexpectedErrors:
    def test_non_api_error_is_wrapped(self):
        error = TypeError("Could not resolve authentication method")
        with pytest.raises(CompletionServiceError) as exc:
            asyncio.run(_invoker(_FakeMessages(error=error)).invoke("p"))
        assert exc.value.original_error is error


class _ClosableClient:
    def __init__(self):
        self.messages = _FakeMessages(text="ok")
        self.closed = 0

    async def close(self):
        self.closed += 1


class TestClose:
    def test_aclose_closes_client_once(self):
        client = _ClosableClient()
        invoker = CompletionInvoker(client=client, config=Settings(anthropic_api_key="k"))

        async def scenario():
            await invoker.aclose()
            await invoker.aclose()

        asyncio.run(scenario())
        assert client.closed == 1

    def test_aclose_without_client(self):
        invoker = CompletionInvoker(config=Settings(anthropic_api_key="k"))
        asyncio.run(invoker.aclose())
