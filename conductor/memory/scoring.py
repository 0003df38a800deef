"""Structural importance scoring for messages and turns.

Scores depend only on role, operation type and position, never on what the
content means. The same pass yields decision points and per-file change
records used by the summary generator.
"""

from __future__ import annotations

from ..tools.tool import FileAction, ToolCatalog
from ..types.types import Message, ToolCall
from .grouping import is_error_result, is_mutating_call
from .types import DecisionPoint, FileChangeRecord, MessageGroup, MessageImportance

WEIGHTS = {
    "user": 30,
    "assistant_with_tools": 25,
    "assistant_text": 15,
    "tool": 10,
    "write_op": 35,
    "delete_op": 10,
    "error": 40,
    "recent": 20,
}

GROUP_BONUSES = {
    "write_ops": 20,
    "errors": 30,
    "recent": 15,
}

RECENT_MESSAGE_FRACTION = 0.2
RECENT_TURN_FRACTION = 0.7

_DECISION_TYPES = {
    "create": "file_create",
    "modify": "file_modify",
    "delete": "file_delete",
}
_DECISION_VERBS = {"create": "Created", "modify": "Modified", "delete": "Deleted"}


def resolve_file_action(call: ToolCall, catalog: ToolCatalog | None) -> FileAction | None:
    """File action of a call: its declared tag, else ``modify`` for mutating calls with a path."""
    if not call.path:
        return None
    action = catalog.file_action(call.name) if catalog is not None else None
    if action is None and is_mutating_call(call, catalog):
        return "modify"
    return action


def score_message(
    message: Message,
    index: int,
    total_messages: int,
    catalog: ToolCatalog | None = None,
) -> MessageImportance:
    """Score one message from 0 to 100."""
    score = 0
    reasons: list[str] = []
    compressible = True

    if message.role == "user":
        score += WEIGHTS["user"]
        reasons.append("user")
    elif message.role == "assistant":
        if message.tool_calls:
            score += WEIGHTS["assistant_with_tools"]
            reasons.append("tool calls")
            for call in message.tool_calls:
                if not is_mutating_call(call, catalog):
                    continue
                score += WEIGHTS["write_op"]
                reasons.append("write op")
                if catalog is not None and catalog.file_action(call.name) == "delete":
                    score += WEIGHTS["delete_op"]
                    reasons.append("delete op")
                    compressible = False
        else:
            score += WEIGHTS["assistant_text"]
    elif message.role == "tool":
        score += WEIGHTS["tool"]
        if is_error_result(message):
            score += WEIGHTS["error"]
            reasons.append("error")
            compressible = False

    if total_messages > 0 and (total_messages - index) / total_messages < RECENT_MESSAGE_FRACTION:
        score += WEIGHTS["recent"]
        reasons.append("recent")

    return MessageImportance(
        index=index, score=min(100, score), reasons=reasons, compressible=compressible
    )


def score_group(
    group: MessageGroup,
    messages: list[Message],
    total_groups: int,
    catalog: ToolCatalog | None = None,
) -> float:
    """Score one turn: mean member score plus flat bonuses, clamped to 100."""
    if not group.message_indices:
        return 0
    total = len(messages)
    score = sum(
        score_message(messages[index], index, total, catalog).score
        for index in group.message_indices
    ) / len(group.message_indices)

    if group.has_write_ops:
        score += GROUP_BONUSES["write_ops"]
    if group.has_errors:
        score += GROUP_BONUSES["errors"]
    if total_groups > 0 and group.turn_index / total_groups > RECENT_TURN_FRACTION:
        score += GROUP_BONUSES["recent"]

    return max(0, min(100, score))


def score_groups(
    groups: list[MessageGroup], messages: list[Message], catalog: ToolCatalog | None = None
) -> None:
    """Set ``importance`` on every group in place."""
    for group in groups:
        group.importance = score_group(group, messages, len(groups), catalog)


def _iter_path_calls(messages: list[Message], groups: list[MessageGroup]):
    for group in groups:
        for index in group.message_indices:
            msg = messages[index]
            if msg.role != "assistant":
                continue
            for call in msg.tool_calls:
                if call.path:
                    yield group, index, call


def extract_decision_points(
    messages: list[Message],
    groups: list[MessageGroup],
    catalog: ToolCatalog | None = None,
) -> list[DecisionPoint]:
    """One decision point per file-touching mutating call."""
    decisions: list[DecisionPoint] = []
    for group, index, call in _iter_path_calls(messages, groups):
        action = resolve_file_action(call, catalog)
        if action is None:
            continue
        decisions.append(
            DecisionPoint(
                turn_index=group.turn_index,
                type=_DECISION_TYPES[action],
                description=f"{_DECISION_VERBS[action]}: {call.path}",
                files=[call.path],
                message_index=index,
            )
        )
    return decisions


def extract_file_changes(
    messages: list[Message],
    groups: list[MessageGroup],
    catalog: ToolCatalog | None = None,
) -> list[FileChangeRecord]:
    """
    Build one rolling change record per path.

    Later changes to a path extend its record instead of adding a new one: a
    delete following a create collapses to "Created then deleted", anything
    else appends to the summary with " → ".
    """
    history: dict[str, FileChangeRecord] = {}
    for group, _, call in _iter_path_calls(messages, groups):
        action = resolve_file_action(call, catalog)
        if action is None:
            continue
        if action == "create":
            summary = "Created"
        elif action == "delete":
            summary = "Deleted"
        else:
            description = call.arguments.get("description")
            summary = description if isinstance(description, str) and description else "Modified"

        existing = history.get(call.path)
        if existing is None:
            history[call.path] = FileChangeRecord(
                path=call.path, action=action, summary=summary, turn_index=group.turn_index
            )
        else:
            extend_file_change(existing, action, summary, group.turn_index)

    return list(history.values())


def extend_file_change(
    record: FileChangeRecord, action: FileAction, summary: str, turn_index: int
) -> None:
    """Fold a later change to the same path into its record."""
    if action == "delete" and record.action == "create":
        record.summary = "Created then deleted"
    else:
        record.summary = f"{record.summary} → {summary}"
    if not (record.action == "create" and action == "modify"):
        record.action = action
    record.turn_index = turn_index
