"""Typed events emitted by a model provider's stream."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from ..types.types import Usage


class TextDelta(BaseModel):
    type: Literal["text_delta"] = "text_delta"
    content: str


class ReasoningDelta(BaseModel):
    type: Literal["reasoning_delta"] = "reasoning_delta"
    content: str


class ToolCallStart(BaseModel):
    type: Literal["tool_call_start"] = "tool_call_start"
    id: str
    name: str


class ToolCallDelta(BaseModel):
    """A chunk of a streamed call's argument text.

    ``name`` is set when the provider only learns the tool name mid-stream.
    """

    type: Literal["tool_call_delta"] = "tool_call_delta"
    id: str | None = None
    arguments: str = ""
    name: str | None = None


class ToolCallEnd(BaseModel):
    type: Literal["tool_call_end"] = "tool_call_end"
    id: str | None = None


class ToolCallEvent(BaseModel):
    """A complete tool call delivered as one event.

    Equivalent to a start/delta/end sequence carrying the same arguments.
    """

    type: Literal["tool_call"] = "tool_call"
    id: str
    name: str
    arguments: str | dict[str, Any] = Field(default_factory=dict)


class StreamError(BaseModel):
    type: Literal["error"] = "error"
    message: str
    status_code: int | None = None


class StreamDone(BaseModel):
    type: Literal["done"] = "done"
    usage: Usage | None = None
    stop_reason: str | None = None


StreamEvent = Annotated[
    TextDelta
    | ReasoningDelta
    | ToolCallStart
    | ToolCallDelta
    | ToolCallEnd
    | ToolCallEvent
    | StreamError
    | StreamDone,
    Field(discriminator="type"),
]
