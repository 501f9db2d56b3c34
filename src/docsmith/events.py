"""Wire events streamed to the browser.

Each event serialises to one JSON payload with a ``type`` tag and
camelCase keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass
class WireEvent:
    """Base for all wire events."""

    type: ClassVar[str] = ""

    def payload(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass
class TextDeltaEvent(WireEvent):
    type: ClassVar[str] = "text-delta"

    text_delta: str = ""

    def payload(self) -> dict[str, Any]:
        return {"type": self.type, "textDelta": self.text_delta}


@dataclass
class ToolCallStartEvent(WireEvent):
    type: ClassVar[str] = "tool-call-start"

    tool_call_id: str = ""
    tool_name: str = ""
    slot: int = 0

    def payload(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "toolCallId": self.tool_call_id,
            "toolName": self.tool_name,
            "slot": self.slot,
        }


@dataclass
class ToolResultEvent(WireEvent):
    type: ClassVar[str] = "tool-result"

    tool_call_id: str = ""
    tool_name: str = ""
    slot: int = 0
    input: dict[str, Any] | None = None
    output: Any = None

    def payload(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "toolCallId": self.tool_call_id,
            "toolName": self.tool_name,
            "slot": self.slot,
            "input": self.input,
            "output": self.output,
        }


@dataclass
class ToolErrorEvent(WireEvent):
    type: ClassVar[str] = "tool-error"

    tool_call_id: str = ""
    tool_name: str = ""
    slot: int = 0
    error_kind: str = "ExecutionFailure"
    error_text: str = ""

    def payload(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "toolCallId": self.tool_call_id,
            "toolName": self.tool_name,
            "slot": self.slot,
            "errorKind": self.error_kind,
            "errorText": self.error_text,
        }


@dataclass
class ErrorEvent(WireEvent):
    type: ClassVar[str] = "error"

    error_text: str = ""

    def payload(self) -> dict[str, Any]:
        return {"type": self.type, "errorText": self.error_text}


@dataclass
class FinishEvent(WireEvent):
    """Always the last event before the terminal marker."""

    type: ClassVar[str] = "finish"

    finish_reason: str = "stop"

    def payload(self) -> dict[str, Any]:
        return {"type": self.type, "finishReason": self.finish_reason}
