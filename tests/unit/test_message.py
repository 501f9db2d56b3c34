import pytest
from pydantic import ValidationError

from docsmith.message import (
    ChatMessage,
    ChatRequest,
    Message,
    MessageRole,
    TextPart,
    ToolCallRequestMessage,
    ToolCallResultMessage,
    ToolPart,
    ToolPartState,
    to_model_messages,
)


def test_message_role_serialization():
    msg = Message(role=MessageRole.USER, content="hello")
    dumped = msg.model_dump()
    assert dumped["role"] == "user"
    assert dumped["content"] == "hello"


def test_chat_message_parses_wire_shape():
    msg = ChatMessage.model_validate({
        "id": "m1",
        "role": "assistant",
        "parts": [
            {"type": "text", "text": "hi"},
            {"type": "tool", "toolName": "generateComponent", "toolCallId": "c1", "state": "output-available", "output": {"code": "x"}},
        ],
    })
    assert isinstance(msg.parts[0], TextPart)
    assert isinstance(msg.parts[1], ToolPart)
    assert msg.parts[1].state is ToolPartState.OUTPUT_AVAILABLE


def test_chat_request_rejects_empty_messages():
    with pytest.raises(ValidationError):
        ChatRequest.model_validate({"messages": []})


def test_chat_request_rejects_unknown_role():
    with pytest.raises(ValidationError):
        ChatRequest.model_validate({"messages": [{"role": "robot", "parts": []}]})


class TestToolPartState:
    def test_moves_forward(self):
        part = ToolPart(tool_name="t")
        part.advance(ToolPartState.INPUT_AVAILABLE)
        part.advance(ToolPartState.OUTPUT_AVAILABLE)
        assert part.is_terminal

    def test_never_regresses(self):
        part = ToolPart(tool_name="t", state=ToolPartState.INPUT_AVAILABLE)
        with pytest.raises(ValueError):
            part.advance(ToolPartState.INPUT_STREAMING)

    def test_terminal_is_final(self):
        part = ToolPart(tool_name="t", state=ToolPartState.OUTPUT_ERROR)
        with pytest.raises(ValueError):
            part.advance(ToolPartState.OUTPUT_AVAILABLE)


class TestToModelMessages:
    def test_text_only(self):
        transcript = to_model_messages([
            ChatMessage(role="user", parts=[TextPart(text="a"), TextPart(text="b")]),
        ])
        assert transcript == [Message(role=MessageRole.USER, content="ab")]

    def test_finished_tool_part_becomes_call_and_result(self):
        transcript = to_model_messages([
            ChatMessage(role="user", parts=[TextPart(text="make a card")]),
            ChatMessage(role="assistant", parts=[
                TextPart(text="Sure."),
                ToolPart(
                    tool_name="generateComponent", tool_call_id="c1",
                    state=ToolPartState.OUTPUT_AVAILABLE,
                    input={"componentName": "Card"}, output={"code": "x"},
                ),
            ]),
        ])

        assert [m.role for m in transcript] == [
            MessageRole.USER, MessageRole.ASSISTANT, MessageRole.ASSISTANT, MessageRole.TOOL,
        ]
        request = transcript[2]
        assert isinstance(request, ToolCallRequestMessage)
        assert request.tool_calls[0]["function"]["name"] == "generateComponent"
        result = transcript[3]
        assert isinstance(result, ToolCallResultMessage)
        assert result.tool_call_id == "c1"
        assert result.content == '{"code": "x"}'

    def test_errored_tool_part_reports_error_text(self):
        transcript = to_model_messages([
            ChatMessage(role="assistant", parts=[ToolPart(
                tool_name="browseDocumentation", tool_call_id="c1",
                state=ToolPartState.OUTPUT_ERROR, error_text="timeout",
            )]),
        ])
        assert transcript[-1].content == "Error: timeout"

    def test_pending_tool_part_skipped(self):
        transcript = to_model_messages([
            ChatMessage(role="assistant", parts=[ToolPart(tool_name="t", tool_call_id="c1")]),
        ])
        assert transcript == []
