import logging
from typing import Any

from docsmith.message import ChatMessage, TextPart, ToolPart, ToolPartState

logger = logging.getLogger(__name__)


class ChatReducer:
    """Folds wire-event payloads into the chat message list.

    Keeps exactly one trailing assistant message per turn. Tool results
    are matched to their part by ``toolCallId``; events without an id fall
    back to the most recent pending part with the same tool name.

    Args:
        messages: The session's messages so far. Mutated in place.
    """

    def __init__(self, messages: list[ChatMessage] | None = None):
        self.messages: list[ChatMessage] = messages if messages is not None else []
        self.error: str | None = None
        self.finished = False
        self._assistant: ChatMessage | None = None

    def begin_turn(self) -> ChatMessage:
        self._assistant = ChatMessage(role="assistant", parts=[TextPart()])
        self.messages.append(self._assistant)
        self.error = None
        self.finished = False
        return self._assistant

    @property
    def assistant(self) -> ChatMessage:
        if self._assistant is None:
            return self.begin_turn()
        return self._assistant

    def apply(self, payload: dict[str, Any]) -> None:
        kind = payload.get("type")
        if self.finished:
            logger.warning(f"Ignoring {kind} event after finish")
            return
        if kind == "text-delta":
            self._append_text(payload.get("textDelta", ""))
        elif kind == "tool-call-start":
            self.assistant.parts.append(ToolPart(
                tool_name=payload["toolName"],
                tool_call_id=payload.get("toolCallId"),
            ))
        elif kind == "tool-result":
            part = self._find_pending(payload)
            if part is not None:
                if payload.get("input") is not None:
                    part.input = payload["input"]
                    part.advance(ToolPartState.INPUT_AVAILABLE)
                part.output = payload.get("output")
                part.advance(ToolPartState.OUTPUT_AVAILABLE)
        elif kind == "tool-error":
            part = self._find_pending(payload)
            if part is not None:
                part.error_text = payload.get("errorText", "")
                part.advance(ToolPartState.OUTPUT_ERROR)
        elif kind == "error":
            self.error = payload.get("errorText") or "Unknown error"
            if self._assistant is not None and self._assistant.is_empty:
                self.messages.remove(self._assistant)
                self._assistant = None
        elif kind == "finish":
            self.finished = True
        else:
            logger.warning(f"Unknown wire event type: {kind}")

    def _append_text(self, delta: str) -> None:
        for part in self.assistant.parts:
            if isinstance(part, TextPart):
                part.text += delta
                return
        self.assistant.parts.append(TextPart(text=delta))

    def _find_pending(self, payload: dict[str, Any]) -> ToolPart | None:
        call_id = payload.get("toolCallId")
        pending = [
            p for p in self.assistant.parts
            if isinstance(p, ToolPart) and not p.is_terminal
        ]
        if call_id:
            for part in pending:
                if part.tool_call_id == call_id:
                    return part
        else:
            for part in reversed(pending):
                if part.tool_name == payload.get("toolName"):
                    return part
        logger.warning(f"No pending tool part for {payload.get('toolName')} ({call_id})")
        return None
