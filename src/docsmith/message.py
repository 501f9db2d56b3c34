import json
import uuid
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for models exchanged with the browser, which speaks camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MessageRole(Enum):
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"
    TOOL = "tool"


class ToolPartState(str, Enum):
    INPUT_STREAMING = "input-streaming"
    INPUT_AVAILABLE = "input-available"
    OUTPUT_AVAILABLE = "output-available"
    OUTPUT_ERROR = "output-error"


_STATE_ORDER = {
    ToolPartState.INPUT_STREAMING: 0,
    ToolPartState.INPUT_AVAILABLE: 1,
    ToolPartState.OUTPUT_AVAILABLE: 2,
    ToolPartState.OUTPUT_ERROR: 2,
}


class TextPart(CamelModel):
    type: Literal["text"] = "text"
    text: str = ""


class ToolPart(CamelModel):
    type: Literal["tool"] = "tool"
    tool_name: str
    tool_call_id: str | None = None
    state: ToolPartState = ToolPartState.INPUT_STREAMING
    input: dict[str, Any] | None = None
    output: Any = None
    error_text: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (
            ToolPartState.OUTPUT_AVAILABLE, ToolPartState.OUTPUT_ERROR,
        )

    def advance(self, state: ToolPartState) -> None:
        """Move the part forward. Parts never regress or leave a terminal state."""
        if self.is_terminal or _STATE_ORDER[state] < _STATE_ORDER[self.state]:
            raise ValueError(
                f"Tool part cannot move from {self.state.value} to {state.value}"
            )
        self.state = state


MessagePart = Annotated[TextPart | ToolPart, Field(discriminator="type")]


class ChatMessage(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Literal["user", "assistant", "system"]
    parts: list[MessagePart] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def is_empty(self) -> bool:
        return not self.text and not any(
            isinstance(p, ToolPart) for p in self.parts
        )


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(min_length=1)


class Message(BaseModel):
    """A message in the provider (OpenAI chat-completions) transcript."""

    role: MessageRole
    content: str | None = None

    @field_serializer('role')
    def serialize_role(self, role: MessageRole, _info) -> str:
        return role.value


class ToolCallRequestMessage(Message):
    tool_calls: list[dict[str, Any]]


class ToolCallResultMessage(Message):
    tool_call_id: str


def tool_call_entry(call_id: str, name: str, arguments: str) -> dict[str, Any]:
    return {
        "id": call_id,
        "type": "function",
        "function": {"name": name, "arguments": arguments},
    }


def to_model_messages(messages: list[ChatMessage]) -> list[Message]:
    """Convert browser chat messages into a provider transcript.

    Finished tool parts become an assistant tool-call request followed by
    a tool result message. Parts still streaming, or without a call id,
    carry nothing the model can use and are skipped.
    """
    transcript: list[Message] = []
    for msg in messages:
        role = MessageRole(msg.role)
        if role is not MessageRole.ASSISTANT:
            transcript.append(Message(role=role, content=msg.text))
            continue

        text = ""
        for part in msg.parts:
            if isinstance(part, TextPart):
                text += part.text
                continue
            if not part.is_terminal or not part.tool_call_id:
                continue
            if text:
                transcript.append(Message(role=role, content=text))
                text = ""
            transcript.append(ToolCallRequestMessage(
                role=role,
                tool_calls=[tool_call_entry(
                    part.tool_call_id, part.tool_name,
                    json.dumps(part.input or {}),
                )],
            ))
            if part.state is ToolPartState.OUTPUT_AVAILABLE:
                content = json.dumps(part.output)
            else:
                content = f"Error: {part.error_text}"
            transcript.append(ToolCallResultMessage(
                role=MessageRole.TOOL,
                content=content,
                tool_call_id=part.tool_call_id,
            ))
        if text:
            transcript.append(Message(role=role, content=text))
    return transcript
