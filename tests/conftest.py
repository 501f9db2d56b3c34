import json

import pytest

from docsmith.provider import ModelProvider
from docsmith.search import ExtractResponse, SearchClient, SearchResponse
from docsmith.streaming import StreamChunk, ToolCallFragment
from docsmith.tools import build_registry


# ---------------------------------------------------------------------------
# Mock provider
# ---------------------------------------------------------------------------

class MockProvider(ModelProvider):
    """Provider that replays pre-queued chunk lists. No network calls.

    Each entry in ``turns`` is the chunk list for one provider call. An
    exception instance in a chunk list is raised at that point of the
    stream.
    """

    def __init__(self, turns=None):
        self.turns: list[list] = list(turns or [])
        self.call_log: list[dict] = []

    async def stream_complete(self, model, messages, tools=None):
        self.call_log.append({"model": model, "messages": messages, "tools": tools})
        for item in self.turns.pop(0):
            if isinstance(item, BaseException):
                raise item
            yield item


# ---------------------------------------------------------------------------
# Chunk builder helpers
# ---------------------------------------------------------------------------

def text_chunks(*parts: str, finish_reason: str = "stop") -> list[StreamChunk]:
    """Text deltas followed by a finishing chunk."""
    return [StreamChunk(content_delta=p) for p in parts] + [
        StreamChunk(finish_reason=finish_reason)
    ]


def tool_call_chunks(
    name: str,
    args: dict | str,
    slot: int = 0,
    call_id: str | None = None,
    pieces: int = 2,
    finish: bool = True,
) -> list[StreamChunk]:
    """A tool call whose arguments arrive split over *pieces* chunks."""
    raw = args if isinstance(args, str) else json.dumps(args)
    step = max(1, len(raw) // pieces)
    splits = [raw[i:i + step] for i in range(0, len(raw), step)]
    chunks = [StreamChunk(tool_call_fragments=[
        ToolCallFragment(index=slot, call_id=call_id, name=name, arguments_delta="")
    ])]
    chunks += [
        StreamChunk(tool_call_fragments=[ToolCallFragment(index=slot, arguments_delta=s)])
        for s in splits
    ]
    if finish:
        chunks.append(StreamChunk(finish_reason="tool_calls"))
    return chunks


# ---------------------------------------------------------------------------
# Fake search backend
# ---------------------------------------------------------------------------

class FakeSearchClient(SearchClient):
    """Search client returning canned responses and recording calls."""

    def __init__(self, search_response=None, extract_response=None, extract_error=None):
        super().__init__(api_key="test-key")
        self.search_response = search_response or SearchResponse()
        self.extract_response = extract_response or ExtractResponse()
        self.extract_error = extract_error
        self.searches: list[dict] = []
        self.extracts: list[list[str]] = []

    async def search(self, query, **kwargs):
        self.searches.append({"query": query, **kwargs})
        return self.search_response

    async def extract(self, urls, **kwargs):
        self.extracts.append(urls)
        if self.extract_error is not None:
            raise self.extract_error
        return self.extract_response


@pytest.fixture
def mock_provider():
    return MockProvider()


@pytest.fixture
def fake_search():
    return FakeSearchClient()


@pytest.fixture
def registry(fake_search):
    return build_registry(fake_search)


@pytest.fixture
def component_args():
    return {
        "componentName": "WeatherCard",
        "apiDescription": "Shows the current weather for a city",
        "props": [
            {"name": "city", "type": "string", "required": True, "description": "City name"},
            {"name": "units", "type": "string", "required": False, "description": "metric or imperial"},
        ],
        "styling": "rounded card",
    }
