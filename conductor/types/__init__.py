"""Conversation, tool-call and loop-result types."""

from .types import (
    LoopResult,
    LoopStatus,
    Message,
    Role,
    ToolCall,
    ToolCallStatus,
    ToolExecutionResult,
    Usage,
)

__all__ = [
    "LoopResult",
    "LoopStatus",
    "Message",
    "Role",
    "ToolCall",
    "ToolCallStatus",
    "ToolExecutionResult",
    "Usage",
]
