from dataclasses import dataclass, field
from unittest.mock import AsyncMock

import pytest

from docsmith.provider import OpenAIProvider, normalize_chunk


# ---------------------------------------------------------------------------
# Fake OpenAI streaming objects
# ---------------------------------------------------------------------------

@dataclass
class FakeFunction:
    name: str | None = None
    arguments: str | None = None


@dataclass
class FakeToolCallDelta:
    index: int
    id: str | None = None
    function: FakeFunction | None = None


@dataclass
class FakeDelta:
    content: str | None = None
    tool_calls: list | None = None


@dataclass
class FakeChoice:
    delta: FakeDelta | None
    finish_reason: str | None = None


@dataclass
class FakeChunk:
    choices: list[FakeChoice] = field(default_factory=list)


class FakeStream:
    """Async-iterable stand-in for ``AsyncStream[ChatCompletionChunk]``."""

    def __init__(self, chunks, error=None):
        self.chunks = list(chunks)
        self.error = error
        self.closed = False

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed = True


def _patch_create(monkeypatch, provider, stream):
    mock_create = AsyncMock(return_value=stream)
    monkeypatch.setattr(provider.client.chat.completions, "create", mock_create)
    return mock_create


# ---------------------------------------------------------------------------
# normalize_chunk
# ---------------------------------------------------------------------------

class TestNormalizeChunk:
    def test_text_delta(self):
        chunk = normalize_chunk(FakeChunk([FakeChoice(FakeDelta(content="hi"))]))
        assert chunk.content_delta == "hi"
        assert chunk.tool_call_fragments is None
        assert chunk.finish_reason is None

    def test_tool_call_fragment(self):
        chunk = normalize_chunk(FakeChunk([FakeChoice(FakeDelta(tool_calls=[
            FakeToolCallDelta(index=1, id="call_a", function=FakeFunction("generateComponent", '{"co')),
        ]))]))

        fragment = chunk.tool_call_fragments[0]
        assert fragment.index == 1
        assert fragment.call_id == "call_a"
        assert fragment.name == "generateComponent"
        assert fragment.arguments_delta == '{"co'

    def test_fragment_without_function(self):
        chunk = normalize_chunk(FakeChunk([FakeChoice(FakeDelta(tool_calls=[
            FakeToolCallDelta(index=0),
        ]))]))
        assert chunk.tool_call_fragments[0].name is None
        assert chunk.tool_call_fragments[0].arguments_delta is None

    def test_finish_reason(self):
        chunk = normalize_chunk(FakeChunk([FakeChoice(FakeDelta(), finish_reason="tool_calls")]))
        assert chunk.finish_reason == "tool_calls"

    def test_no_choices_is_empty(self):
        chunk = normalize_chunk(FakeChunk())
        assert chunk.content_delta is None
        assert chunk.tool_call_fragments is None
        assert chunk.finish_reason is None


# ---------------------------------------------------------------------------
# OpenAIProvider.stream_complete
# ---------------------------------------------------------------------------

def test_base_url_trailing_slash_stripped():
    provider = OpenAIProvider(api_key="test-key", base_url="https://gateway.local/v1/")
    assert provider.base_url == "https://gateway.local/v1"


class TestOpenAIProviderStream:
    @pytest.mark.asyncio
    async def test_forwards_tools_with_tool_choice(self, monkeypatch):
        """stream_complete() passes tools and tool_choice='auto' together."""
        provider = OpenAIProvider(api_key="test-key")
        mock_create = _patch_create(monkeypatch, provider, FakeStream([]))

        messages = [{"role": "user", "content": "hi"}]
        tools = [{"type": "function", "function": {"name": "f"}}]
        _ = [c async for c in provider.stream_complete("gpt-4o", messages, tools=tools)]

        mock_create.assert_called_once_with(
            model="gpt-4o", messages=messages, stream=True,
            tools=tools, tool_choice="auto",
        )

    @pytest.mark.asyncio
    async def test_omits_tools_when_none(self, monkeypatch):
        provider = OpenAIProvider(api_key="test-key")
        mock_create = _patch_create(monkeypatch, provider, FakeStream([]))

        _ = [c async for c in provider.stream_complete("gpt-4o", [], tools=None)]

        _, kwargs = mock_create.call_args
        assert "tools" not in kwargs
        assert "tool_choice" not in kwargs
        assert kwargs["stream"] is True

    @pytest.mark.asyncio
    async def test_yields_normalized_chunks_and_closes(self, monkeypatch):
        provider = OpenAIProvider(api_key="test-key")
        stream = FakeStream([
            FakeChunk([FakeChoice(FakeDelta(content="Hel"))]),
            FakeChunk([FakeChoice(FakeDelta(content="lo"))]),
            FakeChunk([FakeChoice(FakeDelta(), finish_reason="stop")]),
        ])
        _patch_create(monkeypatch, provider, stream)

        chunks = [c async for c in provider.stream_complete("gpt-4o", [])]

        assert [c.content_delta for c in chunks] == ["Hel", "lo", None]
        assert chunks[-1].finish_reason == "stop"
        assert stream.closed

    @pytest.mark.asyncio
    async def test_mid_stream_error_propagates_and_closes(self, monkeypatch):
        provider = OpenAIProvider(api_key="test-key")
        stream = FakeStream(
            [FakeChunk([FakeChoice(FakeDelta(content="partial"))])],
            error=ConnectionError("reset by peer"),
        )
        _patch_create(monkeypatch, provider, stream)

        received = []
        with pytest.raises(ConnectionError):
            async for chunk in provider.stream_complete("gpt-4o", []):
                received.append(chunk)

        assert [c.content_delta for c in received] == ["partial"]
        assert stream.closed


@pytest.mark.asyncio
async def test_aclose_closes_client(monkeypatch):
    provider = OpenAIProvider(api_key="test-key")
    mock_close = AsyncMock()
    monkeypatch.setattr(provider.client, "close", mock_close)

    await provider.aclose()

    mock_close.assert_awaited_once()
