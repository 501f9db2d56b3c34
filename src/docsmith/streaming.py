"""Streaming primitives for provider responses.

Providers yield :class:`StreamChunk` objects. :func:`consume` classifies
them into stream events, and the :class:`ToolCallAssembler` reassembles
tool calls whose name and arguments arrive in fragments across multiple
chunks.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from docsmith.errors import ArgumentParseError

logger = logging.getLogger(__name__)


@dataclass
class ToolCallFragment:
    """A fragment of a tool call from a streaming chunk."""

    index: int
    call_id: str | None = None
    name: str | None = None
    arguments_delta: str | None = None


@dataclass
class StreamChunk:
    """Normalised streaming chunk from any provider."""

    content_delta: str | None = None
    tool_call_fragments: list[ToolCallFragment] | None = None
    finish_reason: str | None = None


# ---------------------------------------------------------------------------
# Classified stream events
# ---------------------------------------------------------------------------

@dataclass
class TextDelta:
    text: str


@dataclass
class CallFragment:
    slot: int
    call_id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass
class TurnFinished:
    reason: str


@dataclass
class StreamError:
    message: str


StreamEvent = TextDelta | CallFragment | TurnFinished | StreamError


async def consume(
    chunks: AsyncIterator[StreamChunk],
) -> AsyncIterator[StreamEvent]:
    """Classify provider chunks, one at a time, in arrival order.

    Chunks carrying no delta produce nothing. ``TurnFinished`` is yielded
    once, for the first finish reason seen, or with reason
    ``"incomplete"`` if the provider never sent one. A provider failure
    yields a single ``StreamError`` and ends the sequence.
    """
    finished = False
    try:
        async for chunk in chunks:
            if chunk.content_delta:
                yield TextDelta(chunk.content_delta)
            for frag in chunk.tool_call_fragments or []:
                yield CallFragment(
                    slot=frag.index,
                    call_id=frag.call_id,
                    name=frag.name,
                    arguments=frag.arguments_delta,
                )
            if chunk.finish_reason and not finished:
                finished = True
                yield TurnFinished(chunk.finish_reason)
    except Exception as e:
        logger.error(f"Provider stream failed: {e}")
        yield StreamError(str(e) or type(e).__name__)
        return
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()

    if not finished:
        yield TurnFinished("incomplete")


# ---------------------------------------------------------------------------
# Tool-call assembly
# ---------------------------------------------------------------------------

@dataclass
class PendingToolCall:
    """Tool call under construction for one slot of the current turn."""

    slot: int
    name: str = ""
    arguments_buffer: str = ""
    call_id: str | None = None
    complete: bool = False


@dataclass
class CompletedCall:
    """A tool call that reached the end of its turn.

    Exactly one of ``arguments`` / ``error`` is set for eligible calls.
    ``incomplete`` marks calls that were started but never became
    eligible for dispatch; they are reported, never executed.
    """

    slot: int
    call_id: str
    name: str
    raw_arguments: str = ""
    arguments: dict[str, Any] | None = None
    error: ArgumentParseError | None = None
    incomplete: bool = False


class ToolCallAssembler:
    """Assembles complete tool calls from streaming fragments.

    One assembler lives for exactly one model turn.

    Args:
        turn: Turn number, used to derive call ids when the provider
            does not send one.
    """

    def __init__(self, turn: int = 0) -> None:
        self.turn = turn
        self._pending: dict[int, PendingToolCall] = {}

    def feed(self, fragment: CallFragment) -> PendingToolCall | None:
        """Apply one fragment.

        Returns the pending call the first time its name becomes known,
        which is when a ``tool-call-start`` must be emitted, else ``None``.
        """
        pending = self._pending.get(fragment.slot)
        if pending is None:
            pending = PendingToolCall(slot=fragment.slot)
            self._pending[fragment.slot] = pending
        # The id is fixed once the start is reported; later ids are ignored.
        if fragment.call_id and not pending.call_id and not pending.name:
            pending.call_id = fragment.call_id

        started = None
        # Some providers re-send the name on later fragments.
        if fragment.name and not pending.name:
            pending.name = fragment.name
            pending.call_id = self.call_id(pending)
            started = pending
        if fragment.arguments is not None:
            pending.arguments_buffer += fragment.arguments
        return started

    def call_id(self, pending: PendingToolCall) -> str:
        return pending.call_id or f"call_{self.turn}_{pending.slot}"

    def started(self) -> list[PendingToolCall]:
        """Calls whose name is known, in slot order."""
        return [
            self._pending[i] for i in sorted(self._pending)
            if self._pending[i].name
        ]

    def finalize(self, reason: str) -> list[CompletedCall]:
        """Close the turn and return its calls in slot order."""
        calls = []
        for slot in sorted(self._pending):
            pending = self._pending[slot]
            if not pending.name:
                logger.warning(f"Dropping nameless tool-call fragment in slot {slot}")
                continue
            pending.complete = True
            call = CompletedCall(
                slot=slot,
                call_id=self.call_id(pending),
                name=pending.name,
                raw_arguments=pending.arguments_buffer,
            )
            eligible = (
                reason == "tool_calls"
                and pending.arguments_buffer.strip() != ""
            )
            if not eligible:
                call.incomplete = True
            else:
                try:
                    call.arguments = parse_arguments(pending.arguments_buffer)
                except ArgumentParseError as e:
                    call.error = e
            calls.append(call)
        self._pending.clear()
        return calls


def _first_balanced_object(text: str) -> str | None:
    """Return the first balanced top-level ``{...}`` span in *text*."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_arguments(buffer: str) -> dict[str, Any]:
    """Parse an accumulated arguments buffer into a JSON object.

    Falls back to the first balanced top-level object when the buffer as
    a whole is not valid JSON (e.g. trailing garbage or a duplicated
    payload).

    Raises:
        ArgumentParseError: If no JSON object can be recovered.
    """
    try:
        parsed = json.loads(buffer)
    except json.JSONDecodeError as e:
        candidate = _first_balanced_object(buffer)
        if candidate is None:
            raise ArgumentParseError(f"Invalid tool arguments: {e}") from e
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError as inner:
            raise ArgumentParseError(f"Invalid tool arguments: {inner}") from inner
        logger.info("Recovered tool arguments from a malformed buffer")
    if not isinstance(parsed, dict):
        raise ArgumentParseError(
            f"Tool arguments must be a JSON object, got {type(parsed).__name__}"
        )
    return parsed
