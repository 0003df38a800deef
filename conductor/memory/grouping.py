"""Turn grouping over a flat conversation history."""

from __future__ import annotations

from ..tools.tool import ToolCatalog
from ..types.types import Message, ToolCall
from .tokens import estimate_message_tokens
from .types import MessageGroup

ERROR_MARKERS = ("Error:", "❌")


def is_error_result(message: Message) -> bool:
    """Whether a tool-result message carries an explicit error marker."""
    return message.role == "tool" and message.text.startswith(ERROR_MARKERS)


def is_mutating_call(call: ToolCall, catalog: ToolCatalog | None) -> bool:
    # Without a catalog every tool is treated as mutating.
    if catalog is None:
        return True
    return not catalog.is_read_only(call.name)


def split_system(messages: list[Message]) -> tuple[Message | None, list[Message]]:
    """Return the first system message and every non-system message."""
    system = next((msg for msg in messages if msg.role == "system"), None)
    return system, [msg for msg in messages if msg.role != "system"]


def group_messages(
    messages: list[Message], catalog: ToolCatalog | None = None
) -> list[MessageGroup]:
    """Split non-system messages into turns.

    A turn starts at each user message; assistant and tool messages attach to
    the current turn. Messages before the first user message form a leading
    turn without a user message. Indices refer to positions in ``messages``.
    """
    groups: list[MessageGroup] = []
    current: MessageGroup | None = None

    for index, msg in enumerate(messages):
        if msg.role == "system":
            continue
        if msg.role == "user" or current is None:
            if current is not None:
                groups.append(current)
            current = MessageGroup(
                turn_index=len(groups),
                user_index=index if msg.role == "user" else None,
            )

        current.message_indices.append(index)
        current.tokens += estimate_message_tokens(msg)

        if msg.role == "assistant":
            for call in msg.tool_calls:
                if not is_mutating_call(call, catalog):
                    continue
                current.has_write_ops = True
                if call.path and call.path not in current.files:
                    current.files.append(call.path)
        elif is_error_result(msg):
            current.has_errors = True

    if current is not None:
        groups.append(current)
    return groups
