"""Accumulate a model's event stream into the in-progress assistant message."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from ..errors import ModelCallError
from ..types.types import Message, ToolCall, ToolCallStatus, Usage
from .events import (
    ReasoningDelta,
    StreamDone,
    StreamError,
    TextDelta,
    ToolCallDelta,
    ToolCallEnd,
    ToolCallEvent,
    ToolCallStart,
)
from .partial_json import IncrementalJSONParser

logger = logging.getLogger(__name__)

THINKING_OPEN = "\n<thinking>\n"
THINKING_CLOSE = "\n</thinking>\n"


def parse_failure_arguments(raw: str) -> dict[str, Any]:
    """Argument passthrough for a call whose argument text is not valid JSON."""
    return {"_parse_error": True, "_raw_arguments": raw}


class StreamAccumulator:
    """
    Applies stream events to one assistant message as they arrive.

    Text deltas are appended to the message content; reasoning deltas are
    wrapped in ``<thinking>`` blocks. Tool calls may arrive as a single
    ``tool_call`` event or as a start/delta/end sequence; both produce the same
    ``ToolCall`` on the message. Arguments that fail to parse are passed
    through raw with ``parse_error`` set instead of raising.
    """

    def __init__(self, message: Message):
        self.message = message
        self.usage = Usage()
        self.done = False
        self._reasoning = False
        self._parsers: dict[str, IncrementalJSONParser] = {}
        self._current_id: str | None = None

    def reset(self) -> None:
        """Clear partial output before a retried model call."""
        self.message.content = ""
        self.message.tool_calls = []
        self.usage = Usage()
        self.done = False
        self._reasoning = False
        self._parsers.clear()
        self._current_id = None

    @property
    def tool_calls(self) -> list[ToolCall]:
        return self.message.tool_calls

    def _append(self, text: str) -> None:
        self.message.content = (self.message.text or "") + text

    def _close_reasoning(self) -> None:
        if self._reasoning:
            self._reasoning = False
            self._append(THINKING_CLOSE)

    def _find(self, call_id: str | None) -> ToolCall | None:
        if call_id is None:
            return None
        return next((call for call in self.message.tool_calls if call.id == call_id), None)

    def apply(self, event: Any) -> None:
        """Apply one event.

        Raises:
            ModelCallError: If the event reports a provider error
        """
        if not isinstance(event, ReasoningDelta):
            self._close_reasoning()

        if isinstance(event, TextDelta):
            self._append(event.content)
        elif isinstance(event, ReasoningDelta):
            if not event.content:
                return
            if not self._reasoning:
                self._reasoning = True
                self._append(THINKING_OPEN)
            self._append(event.content)
        elif isinstance(event, ToolCallStart):
            self._start_call(event.id, event.name)
        elif isinstance(event, ToolCallDelta):
            self._feed_call(event)
        elif isinstance(event, ToolCallEnd):
            self._end_call(event.id or self._current_id)
        elif isinstance(event, ToolCallEvent):
            self._complete_call(event)
        elif isinstance(event, StreamError):
            raise ModelCallError(event.message, status_code=event.status_code)
        elif isinstance(event, StreamDone):
            self.usage.add(event.usage)
            self.done = True
        else:
            logger.debug("Ignoring unknown stream event: %r", event)

    def _start_call(self, call_id: str, name: str) -> ToolCall:
        call_id = call_id or f"call_{uuid.uuid4().hex[:12]}"
        call = self._find(call_id)
        if call is None:
            call = ToolCall(id=call_id, name=name, streaming=True)
            self.message.tool_calls.append(call)
        self._parsers[call_id] = IncrementalJSONParser()
        self._current_id = call_id
        return call

    def _feed_call(self, event: ToolCallDelta) -> None:
        call = self._find(event.id or self._current_id)
        if call is None:
            logger.debug("Argument delta for unknown tool call %s", event.id)
            return
        if event.name:
            call.name = event.name
        if not event.arguments:
            return
        parser = self._parsers.setdefault(call.id, IncrementalJSONParser())
        partial = parser.feed(event.arguments)
        if isinstance(partial.value, dict):
            call.arguments = partial.value

    def _end_call(self, call_id: str | None) -> None:
        call = self._find(call_id)
        if call is None:
            return
        parser = self._parsers.pop(call.id, None)
        self._finalize(call, parser.buffer if parser else "")
        if self._current_id == call.id:
            self._current_id = None

    def _complete_call(self, event: ToolCallEvent) -> None:
        call = self._find(event.id)
        if call is None:
            call = ToolCall(id=event.id, name=event.name)
            self.message.tool_calls.append(call)
        elif not call.streaming:
            # Already delivered by a start/delta/end sequence.
            return
        self._parsers.pop(call.id, None)
        call.name = event.name
        if isinstance(event.arguments, dict):
            call.arguments = dict(event.arguments)
            call.raw_arguments = None
            call.parse_error = False
            call.streaming = False
            call.status = ToolCallStatus.PENDING
        else:
            self._finalize(call, event.arguments)

    def _finalize(self, call: ToolCall, raw: str) -> None:
        call.streaming = False
        call.status = ToolCallStatus.PENDING
        try:
            parsed = json.loads(raw) if raw.strip() else {}
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            call.arguments = parsed
            call.parse_error = False
            call.raw_arguments = None
            return
        logger.warning("Could not parse arguments for tool call %s (%s)", call.id, call.name)
        call.arguments = parse_failure_arguments(raw)
        call.raw_arguments = raw
        call.parse_error = True

    def finish(self) -> Message:
        """Close open blocks and finalize calls the stream never ended."""
        self._close_reasoning()
        for call in self.message.tool_calls:
            if call.streaming:
                parser = self._parsers.pop(call.id, None)
                self._finalize(call, parser.buffer if parser else "")
        self._current_id = None
        return self.message
