"""Token estimation utilities for context compression.

Uses a simple heuristic: ~4 characters per token.
"""

from __future__ import annotations

import json
import math

from ..types.types import Message


def estimate_tokens(text: str) -> int:
    """Estimate token count for a string using the ~4 chars/token heuristic."""
    return math.ceil(len(text) / 4)


def estimate_message_tokens(message: Message) -> int:
    """Estimate token count for a single conversation message, tool calls included."""
    content = message.content
    if content is None:
        total = 0
    elif isinstance(content, str):
        total = estimate_tokens(content)
    else:
        try:
            total = estimate_tokens(json.dumps(content))
        except (TypeError, ValueError):
            total = 0
    for call in message.tool_calls:
        total += estimate_tokens(call.name)
        try:
            total += estimate_tokens(json.dumps(call.arguments))
        except (TypeError, ValueError):
            total += estimate_tokens(call.raw_arguments or "")
    return total


def estimate_messages_tokens(messages: list[Message]) -> int:
    """Estimate total token count for a list of conversation messages."""
    total = 0
    for msg in messages:
        total += estimate_message_tokens(msg)
    return total
