import logging

import httpx

from docsmith.errors import InvalidRequest, UpstreamStreamError
from docsmith.message import ChatMessage, TextPart
from docsmith.reducer import ChatReducer
from docsmith.sse import DONE, parse_frames

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return response.text


class ChatClient:
    """Talks to a running docsmith service the way the browser does.

    Keeps the session's message list, posts it to ``/api/chat`` and folds
    the streamed frames into it with a :class:`ChatReducer`.

    Args:
        base_url: Root URL of the service.
        http_client: Optional preconfigured ``httpx.AsyncClient``.
    """

    def __init__(self, base_url: str = "http://localhost:8000", http_client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=60.0)
        self.messages: list[ChatMessage] = []

    async def send(self, text: str) -> ChatMessage:
        """Send one user message and return the assistant's reply.

        Raises:
            InvalidRequest: The service rejected the message list.
            UpstreamStreamError: The service reported an error mid-stream.
        """
        self.messages.append(ChatMessage(role="user", parts=[TextPart(text=text)]))
        body = {"messages": [m.to_wire() for m in self.messages]}

        async with self._client.stream("POST", f"{self.base_url}/api/chat", json=body) as response:
            if response.status_code != 200:
                await response.aread()
                detail = _error_detail(response)
                if response.status_code == 400:
                    raise InvalidRequest(detail)
                raise UpstreamStreamError(detail)

            reducer = ChatReducer(self.messages)
            reply = reducer.begin_turn()
            async for line in response.aiter_lines():
                for payload in parse_frames([line]):
                    reducer.apply(payload)
                if line.strip() == f"data: {DONE}":
                    break

        if reducer.error is not None:
            raise UpstreamStreamError(reducer.error)
        if not reducer.finished:
            logger.warning("Stream ended without a finish event")
        return reply

    async def aclose(self) -> None:
        await self._client.aclose()
