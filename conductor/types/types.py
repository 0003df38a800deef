"""Type definitions for conversation messages, tool calls, and loop results."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant", "tool"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ToolCallStatus(str, Enum):
    """Lifecycle of a single tool call."""

    PENDING = "pending"
    AWAITING = "awaiting"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    REJECTED = "rejected"


class ToolCall(BaseModel):
    """A tool call requested by the model.

    ``arguments`` may be a best-effort partial value while the call is still
    streaming. When the final argument text is not valid JSON, ``parse_error``
    is set and ``raw_arguments`` keeps the text the model produced.
    """

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    raw_arguments: str | None = None
    parse_error: bool = False
    streaming: bool = False
    status: ToolCallStatus = ToolCallStatus.PENDING
    result: str | None = None
    error: str | None = None

    @property
    def path(self) -> str | None:
        """File path argument, if the call has one."""
        value = self.arguments.get("path")
        return value if isinstance(value, str) and value else None


class Message(BaseModel):
    """One conversation message."""

    role: Role
    content: str | list[dict[str, Any]] | None = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_call_id: str | None = None
    name: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def text(self) -> str:
        """Content as plain text (empty for structured content)."""
        return self.content if isinstance(self.content, str) else ""


class Usage(BaseModel):
    """Token usage information from model calls."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: Usage | dict[str, Any] | None) -> None:
        if other is None:
            return
        if isinstance(other, dict):
            other = Usage.model_validate(other)
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.total_tokens += other.total_tokens


class ToolExecutionResult(BaseModel):
    """Result returned by a tool executor."""

    success: bool
    output: Any | None = None
    error: str | None = None


LoopStatus = Literal[
    "completed",
    "cancelled",
    "max_iterations",
    "repeated_calls",
    "error",
]


class LoopResult(BaseModel):
    """Final result of one orchestration loop run."""

    status: LoopStatus
    iterations: int = 0
    content: str | None = None
    error: str | None = None
    usage: Usage = Field(default_factory=Usage)
    needs_handoff: bool = False
