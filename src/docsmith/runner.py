import json
import logging
from collections.abc import AsyncIterator

from docsmith.dispatcher import Dispatcher, ToolOutcome
from docsmith.events import (
    ErrorEvent,
    FinishEvent,
    TextDeltaEvent,
    ToolCallStartEvent,
    ToolErrorEvent,
    ToolResultEvent,
    WireEvent,
)
from docsmith.message import (
    Message,
    MessageRole,
    ToolCallRequestMessage,
    ToolCallResultMessage,
    tool_call_entry,
)
from docsmith.provider import ModelProvider
from docsmith.streaming import (
    CallFragment,
    StreamError,
    TextDelta,
    ToolCallAssembler,
    TurnFinished,
    consume,
)
from docsmith.tools import ToolRegistry

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an AI assistant that helps developers integrate APIs and generate React components.
When given API documentation URLs, use the browseDocumentation tool to fetch and summarize the content.
When asked to search for documentation, use the browseDocumentation tool with isSearch=true.
When asked to generate components, use the generateComponent tool to create TypeScript React components with TailwindCSS styling.
Always provide clear explanations and usage examples."""


def outcome_event(outcome: ToolOutcome) -> WireEvent:
    call = outcome.call
    if outcome.error is not None:
        return ToolErrorEvent(
            tool_call_id=call.call_id,
            tool_name=call.name,
            slot=call.slot,
            error_kind=outcome.error.kind,
            error_text=outcome.error.message,
        )
    return ToolResultEvent(
        tool_call_id=call.call_id,
        tool_name=call.name,
        slot=call.slot,
        input=outcome.validated_input,
        output=outcome.result.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


class ChatRunner:
    """Runs the model/tool loop for one chat request.

    A runner is constructed per request and owns all state of that
    request's stream; nothing is shared between requests.

    ``iter()`` yields wire events in protocol order: text deltas and
    tool-call starts as they stream in, then at each turn end the
    result or error of every started call in slot order, followed by the
    next turn's text. The final event is a :class:`FinishEvent`.

    Args:
        provider: Streaming completion backend.
        registry: Tools offered to the model.
        model: Model name passed to the provider.
        system_prompt: Injected at call time, never stored in the transcript.
        max_turns: Maximum provider round-trips per request.
        parallel_tool_calls: Execute the tool calls of a turn concurrently.
    """

    def __init__(
        self,
        provider: ModelProvider,
        registry: ToolRegistry,
        model: str,
        system_prompt: str = SYSTEM_PROMPT,
        max_turns: int = 5,
        parallel_tool_calls: bool = True,
    ):
        self.provider = provider
        self.registry = registry
        self.dispatcher = Dispatcher(registry, parallel_tool_calls=parallel_tool_calls)
        self.model = model
        self.system_prompt = system_prompt
        self.max_turns = max_turns

    async def iter(self, transcript: list[Message]) -> AsyncIterator[WireEvent]:
        transcript = list(transcript)
        tool_schemas = self.registry.schemas()

        for turn in range(self.max_turns):
            messages = [
                {"role": "system", "content": self.system_prompt},
                *[m.model_dump(exclude_none=True) for m in transcript],
            ]
            assembler = ToolCallAssembler(turn=turn)
            content = ""
            reason = "incomplete"

            async for event in consume(self.provider.stream_complete(
                model=self.model, messages=messages,
                tools=tool_schemas or None,
            )):
                if isinstance(event, TextDelta):
                    content += event.text
                    yield TextDeltaEvent(text_delta=event.text)
                elif isinstance(event, CallFragment):
                    started = assembler.feed(event)
                    if started is not None:
                        yield ToolCallStartEvent(
                            tool_call_id=assembler.call_id(started),
                            tool_name=started.name,
                            slot=started.slot,
                        )
                elif isinstance(event, TurnFinished):
                    reason = event.reason
                elif isinstance(event, StreamError):
                    for pending in assembler.started():
                        yield ToolErrorEvent(
                            tool_call_id=assembler.call_id(pending),
                            tool_name=pending.name,
                            slot=pending.slot,
                            error_kind="IncompleteCall",
                            error_text="The model stream failed before this call completed",
                        )
                    yield ErrorEvent(error_text=event.message)
                    yield FinishEvent(finish_reason="error")
                    return

            calls = assembler.finalize(reason)
            if not calls:
                if content:
                    transcript.append(Message(role=MessageRole.ASSISTANT, content=content))
                yield FinishEvent(finish_reason=reason)
                return

            logger.info(f"Turn {turn}: dispatching {len(calls)} tool call(s)")
            outcomes = await self.dispatcher.dispatch_all(calls)
            for outcome in outcomes:
                yield outcome_event(outcome)

            # Started calls that never became eligible end the request.
            if reason != "tool_calls":
                yield FinishEvent(finish_reason=reason)
                return

            transcript.append(ToolCallRequestMessage(
                role=MessageRole.ASSISTANT,
                content=content or None,
                tool_calls=[
                    tool_call_entry(o.call.call_id, o.call.name, json.dumps(o.call.arguments or {}))
                    for o in outcomes
                ],
            ))
            for o in outcomes:
                if o.error is not None:
                    output = f"Error: {o.error.message}"
                else:
                    output = json.dumps(o.result.model_dump(mode="json", by_alias=True, exclude_none=True))
                transcript.append(ToolCallResultMessage(
                    role=MessageRole.TOOL, content=output, tool_call_id=o.call.call_id,
                ))

        logger.warning(f"Reached max_turns={self.max_turns}")
        yield FinishEvent(finish_reason="max-turns")
