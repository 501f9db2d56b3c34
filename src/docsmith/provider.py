from collections.abc import AsyncIterator
import logging

from openai import AsyncOpenAI

from docsmith.streaming import StreamChunk, ToolCallFragment

logger = logging.getLogger(__name__)


class ModelProvider:
    """Streaming chat-completion backend.

    Subclasses yield normalised :class:`StreamChunk` objects from
    ``stream_complete``. Errors may be raised either when the stream is
    created or while it is iterated.
    """

    async def stream_complete(
            self,
            model: str,
            messages: list[dict],
            tools: list[dict] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        raise NotImplementedError
        yield  # pragma: no cover

    async def aclose(self) -> None:
        """Release any connections held by the provider."""


def normalize_chunk(chunk) -> StreamChunk:
    """Convert an OpenAI ``ChatCompletionChunk`` into a :class:`StreamChunk`.

    Usage-only and keep-alive chunks carry no choices and become an
    empty chunk.
    """
    if not chunk.choices:
        return StreamChunk()
    choice = chunk.choices[0]
    delta = choice.delta
    fragments = None
    if delta is not None and delta.tool_calls:
        fragments = [
            ToolCallFragment(
                index=tc.index,
                call_id=tc.id,
                name=tc.function.name if tc.function else None,
                arguments_delta=tc.function.arguments if tc.function else None,
            )
            for tc in delta.tool_calls
        ]
    return StreamChunk(
        content_delta=delta.content if delta is not None else None,
        tool_call_fragments=fragments,
        finish_reason=choice.finish_reason,
    )


class OpenAIProvider(ModelProvider):
    """Any OpenAI-compatible chat-completions endpoint.

    Args:
        api_key: API key for the completion backend.
        base_url: Optional endpoint override for compatible gateways.
    """

    def __init__(self, api_key: str, base_url: str | None = None):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            max_retries=2,
            timeout=60.0,
        )

    async def stream_complete(
            self,
            model: str,
            messages: list[dict],
            tools: list[dict] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        kwargs = dict(model=model, messages=messages, stream=True)
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        logger.debug(f"Streaming completion from {model} with {len(messages)} messages")
        stream = await self.client.chat.completions.create(**kwargs)
        try:
            async for chunk in stream:
                yield normalize_chunk(chunk)
        finally:
            await stream.close()

    async def aclose(self) -> None:
        await self.client.close()
