import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ValidationError

from docsmith.streaming import CompletedCall
from docsmith.tools import ToolRegistry

logger = logging.getLogger(__name__)

ToolErrorKind = Literal[
    "UnknownTool",
    "ArgumentParseError",
    "InvalidArguments",
    "ExecutionFailure",
    "IncompleteCall",
]


@dataclass
class ToolError:
    kind: ToolErrorKind
    message: str


@dataclass
class ToolOutcome:
    """Result of dispatching a single tool call.

    Exactly one of ``result`` / ``error`` is set.
    """

    call: CompletedCall
    result: BaseModel | None = None
    error: ToolError | None = None
    validated_input: dict[str, Any] | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class Dispatcher:
    """Routes completed tool calls to the registry.

    Failures are captured per call and never raised, so one failing
    tool cannot abort its siblings or the surrounding stream.

    Args:
        registry: Tools that may be called.
        parallel_tool_calls: Run the calls of one turn concurrently.
            Outcomes are returned in slot order either way.
    """

    def __init__(self, registry: ToolRegistry, parallel_tool_calls: bool = True):
        self.registry = registry
        self.parallel_tool_calls = parallel_tool_calls

    async def dispatch_all(self, calls: list[CompletedCall]) -> list[ToolOutcome]:
        ordered = sorted(calls, key=lambda c: c.slot)
        if self.parallel_tool_calls and len(ordered) > 1:
            return list(await asyncio.gather(*(self.dispatch(c) for c in ordered)))
        return [await self.dispatch(c) for c in ordered]

    async def dispatch(self, call: CompletedCall) -> ToolOutcome:
        if call.incomplete:
            logger.warning(f"Tool call {call.name} in slot {call.slot} never completed its arguments")
            return ToolOutcome(call, error=ToolError(
                "IncompleteCall",
                f"Tool call {call.name} ended before its arguments were complete",
            ))

        tool = self.registry.get(call.name)
        if tool is None:
            logger.warning(f"Tool not found: {call.name}")
            return ToolOutcome(call, error=ToolError(
                "UnknownTool", f"Unknown tool '{call.name}'",
            ))

        if call.error is not None:
            logger.warning(f"Invalid JSON in arguments for {call.name}: {call.error}")
            return ToolOutcome(call, error=ToolError(
                "ArgumentParseError", str(call.error),
            ))

        try:
            params = tool.parse_input(call.arguments or {})
        except ValidationError as e:
            logger.warning(f"Arguments for {call.name} failed validation: {e}")
            return ToolOutcome(call, error=ToolError(
                "InvalidArguments",
                f"Invalid arguments for {call.name}: {e.error_count()} validation error(s)",
            ))

        validated = params.model_dump(mode="json", by_alias=True)
        logger.info(f"Calling {call.name} with {validated}")
        try:
            result = await tool(params)
        except Exception as e:
            logger.error(f"Tool {call.name} raised: {e}")
            return ToolOutcome(call, validated_input=validated, error=ToolError(
                "ExecutionFailure", f"Error calling {call.name}: {e}",
            ))
        return ToolOutcome(call, result=result, validated_input=validated)
