"""Tool-result truncation."""

from __future__ import annotations

from ..types.types import Message
from .types import ContextConfig

HEAD_FRACTION = 0.7


def truncation_marker(removed: int) -> str:
    return f"\n...[truncated {removed} chars]...\n"


def truncate_text(content: str, limit: int) -> str:
    """Keep the head and tail of ``content`` within ``limit`` characters.

    The result is never longer than the input: content is only truncated when
    the removed span is larger than the marker that replaces it.
    """
    if limit <= 0 or len(content) <= limit:
        return content
    removed = len(content) - limit
    marker = truncation_marker(removed)
    if len(marker) >= removed:
        return content
    head = int(limit * HEAD_FRACTION)
    tail = limit - head
    return content[:head] + marker + (content[-tail:] if tail > 0 else "")


def tool_result_limit(tool_name: str | None, config: ContextConfig, divisor: int = 1) -> int:
    """Character ceiling for one tool's results, optionally scaled down."""
    limit = config.max_tool_result_chars
    if tool_name and tool_name in config.tool_result_limits:
        limit = config.tool_result_limits[tool_name]
    return max(1, limit // divisor)


def truncate_tool_message(message: Message, config: ContextConfig, divisor: int = 1) -> Message:
    """Copy of a tool-result message with its content truncated to the tool ceiling."""
    if message.role != "tool" or not isinstance(message.content, str):
        return message
    limit = tool_result_limit(message.name, config, divisor)
    truncated = truncate_text(message.content, limit)
    if truncated is message.content:
        return message
    return message.model_copy(update={"content": truncated})


def truncate_tool_results(
    messages: list[Message], config: ContextConfig, divisor: int = 1
) -> list[Message]:
    return [truncate_tool_message(msg, config, divisor) for msg in messages]
