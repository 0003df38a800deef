"""Model streaming: typed events, partial argument parsing, and accumulation."""

from .events import (
    ReasoningDelta,
    StreamDone,
    StreamError,
    StreamEvent,
    TextDelta,
    ToolCallDelta,
    ToolCallEnd,
    ToolCallEvent,
    ToolCallStart,
)
from .partial_json import IncrementalJSONParser, PartialParseResult, parse_partial_json
from .providers import ModelProvider, get_provider, register_provider
from .stream import StreamAccumulator

__all__ = [
    "IncrementalJSONParser",
    "ModelProvider",
    "PartialParseResult",
    "ReasoningDelta",
    "StreamAccumulator",
    "StreamDone",
    "StreamError",
    "StreamEvent",
    "TextDelta",
    "ToolCallDelta",
    "ToolCallEnd",
    "ToolCallEvent",
    "ToolCallStart",
    "get_provider",
    "parse_partial_json",
    "register_provider",
]
