"""Quick structured summaries of compacted turns, merging, and formatting."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from typing import TypeVar

from pydantic import BaseModel

from ..tools.tool import ToolCatalog
from ..types.types import Message
from .grouping import is_mutating_call
from .scoring import extract_decision_points, extract_file_changes, extend_file_change
from .types import ErrorFix, FileChangeRecord, MessageGroup, StructuredSummary

T = TypeVar("T")

MAX_COMPLETED_STEPS = 20
MAX_PENDING_STEPS = 5
MAX_ERRORS = 5
MAX_INSTRUCTIONS = 5

MERGE_LIMITS = {
    "completed_steps": 30,
    "decisions": 15,
    "file_changes": 30,
    "errors_and_fixes": 10,
    "user_instructions": 10,
}

NOT_FIXED = "Not yet fixed"
FIXED = "Fixed in subsequent changes"

_FIRST_SENTENCE = re.compile(r"^[^.!?。！？]+[.!?。！？]?")
_BULLET_ITEM = re.compile(r"(?:^|\n)\s*[-*•]\s*(.+)")
_NUMBERED_ITEM = re.compile(r"(?:^|\n)\s*\d+[.)]\s*(.+)")
_ERROR_CONTENT = re.compile(r"error|failed|exception|denied", re.IGNORECASE)
_ERROR_LINE = re.compile(r"error|failed|exception", re.IGNORECASE)
_INSTRUCTION_PATTERNS = [
    re.compile(r"请|要|必须|不要|别|应该|需要"),
    re.compile(r"please|must|should|don't|always|never", re.IGNORECASE),
    re.compile(r"记住|注意|重要"),
    re.compile(r"remember|note|important", re.IGNORECASE),
]


def extract_objective(content: str) -> str:
    """First sentence of the request when it is substantial, else its first 200 chars."""
    match = _FIRST_SENTENCE.match(content)
    if match and len(match.group(0)) > 20:
        return match.group(0)[:200]
    return content[:200]


def extract_completed_steps(
    messages: list[Message], groups: list[MessageGroup], catalog: ToolCatalog | None = None
) -> list[str]:
    steps: list[str] = []
    for group in groups:
        if not group.has_write_ops:
            continue
        for index in group.message_indices:
            for call in messages[index].tool_calls:
                if call.path and is_mutating_call(call, catalog):
                    steps.append(f"{call.name}: {call.path}")
    return _dedupe(steps)[-MAX_COMPLETED_STEPS:]


def extract_pending_steps(message: Message | None) -> list[str]:
    """List items from an assistant message, length-filtered to skip noise."""
    if message is None:
        return []
    content = message.text
    items = _BULLET_ITEM.findall(content) + _NUMBERED_ITEM.findall(content)
    cleaned = [item.strip() for item in items]
    return [item for item in cleaned if 10 < len(item) < 200][:MAX_PENDING_STEPS]


def has_error_content(content: str) -> bool:
    return bool(_ERROR_CONTENT.search(content[:500]))


def extract_error_summary(content: str) -> str:
    for line in content.split("\n"):
        if _ERROR_LINE.search(line):
            return line[:100]
    return content[:100]


def extract_errors_and_fixes(messages: list[Message], groups: list[MessageGroup]) -> list[ErrorFix]:
    """Pair each error result with whether the following turn wrote anything."""
    results: list[ErrorFix] = []
    for position, group in enumerate(groups):
        if not group.has_errors:
            continue
        next_group = groups[position + 1] if position + 1 < len(groups) else None
        fix = FIXED if next_group is not None and next_group.has_write_ops else NOT_FIXED
        for index in group.message_indices:
            msg = messages[index]
            if msg.role == "tool" and has_error_content(msg.text):
                results.append(ErrorFix(error=extract_error_summary(msg.text), fix=fix))
    return results[-MAX_ERRORS:]


def is_instructional(content: str) -> bool:
    return any(pattern.search(content) for pattern in _INSTRUCTION_PATTERNS)


def extract_user_instructions(messages: list[Message], groups: list[MessageGroup]) -> list[str]:
    instructions: list[str] = []
    for group in groups:
        if group.user_index is None:
            continue
        content = messages[group.user_index].text
        if is_instructional(content):
            instructions.append(content[:150])
    return instructions[-MAX_INSTRUCTIONS:]


def generate_quick_summary(
    messages: list[Message],
    groups: list[MessageGroup],
    turn_range: tuple[int, int],
    catalog: ToolCatalog | None = None,
) -> StructuredSummary:
    """
    Build a summary of ``groups`` without any model call.

    Args:
        messages: The full non-system history the group indices refer to
        groups: The turns being summarized
        turn_range: Inclusive turn range the summary covers
        catalog: Tool capability tags used to classify calls

    Returns:
        StructuredSummary for the given turns. The objective comes from the
        first user message of the whole history.
    """
    first_user = next((msg for msg in messages if msg.role == "user"), None)
    objective = extract_objective(first_user.text) if first_user else "Unknown objective"

    last_assistant = None
    for group in reversed(groups):
        for index in reversed(group.message_indices):
            if messages[index].role == "assistant":
                last_assistant = messages[index]
                break
        if last_assistant is not None:
            break

    return StructuredSummary(
        objective=objective,
        completed_steps=extract_completed_steps(messages, groups, catalog),
        pending_steps=extract_pending_steps(last_assistant),
        decisions=extract_decision_points(messages, groups, catalog),
        file_changes=extract_file_changes(messages, groups, catalog),
        errors_and_fixes=extract_errors_and_fixes(messages, groups),
        user_instructions=extract_user_instructions(messages, groups),
        turn_range=turn_range,
    )


def _dedupe_key(item: object) -> str:
    if isinstance(item, BaseModel):
        return item.model_dump_json()
    return str(item)


def _dedupe(items: Sequence[T]) -> list[T]:
    seen: set[str] = set()
    unique: list[T] = []
    for item in items:
        key = _dedupe_key(item)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def _merge_lists(first: Sequence[T], second: Sequence[T], limit: int) -> list[T]:
    return _dedupe([*first, *second])[-limit:]


def _merge_keyed(
    first: Sequence[T],
    second: Sequence[T],
    key: Callable[[T], str],
    combine: Callable[[T, T], T],
    limit: int,
) -> list[T]:
    """One entry per key; a newer entry is combined into the older one in place."""
    merged: dict[str, T] = {}
    for item in first:
        merged[key(item)] = item
    for item in second:
        k = key(item)
        merged[k] = combine(merged[k], item) if k in merged else item
    return list(merged.values())[-limit:]


def _merge_file_change(old: FileChangeRecord, new: FileChangeRecord) -> FileChangeRecord:
    # A pass over a longer history already carries the earlier changes.
    if new.summary.startswith(old.summary):
        return new
    if old.summary.startswith(new.summary) and new.turn_index <= old.turn_index:
        return old
    merged = old.model_copy()
    extend_file_change(merged, new.action, new.summary, new.turn_index)
    return merged


def merge_summaries(existing: StructuredSummary, new: StructuredSummary) -> StructuredSummary:
    """
    Union and dedupe list fields (most recent kept), prefer the newer scalars.

    File changes are merged per path and errors per error text, so a record
    that evolved between passes is updated rather than duplicated.
    """
    return StructuredSummary(
        objective=new.objective or existing.objective,
        completed_steps=_merge_lists(
            existing.completed_steps, new.completed_steps, MERGE_LIMITS["completed_steps"]
        ),
        pending_steps=list(new.pending_steps or existing.pending_steps),
        decisions=_merge_lists(existing.decisions, new.decisions, MERGE_LIMITS["decisions"]),
        file_changes=_merge_keyed(
            existing.file_changes,
            new.file_changes,
            lambda record: record.path,
            _merge_file_change,
            MERGE_LIMITS["file_changes"],
        ),
        errors_and_fixes=_merge_keyed(
            existing.errors_and_fixes,
            new.errors_and_fixes,
            lambda item: item.error,
            lambda old, newer: newer,
            MERGE_LIMITS["errors_and_fixes"],
        ),
        user_instructions=_merge_lists(
            existing.user_instructions, new.user_instructions, MERGE_LIMITS["user_instructions"]
        ),
        turn_range=(
            min(existing.turn_range[0], new.turn_range[0]),
            max(existing.turn_range[1], new.turn_range[1]),
        ),
    )


def _bullets(items: Sequence[str], prefix: str, empty: str) -> str:
    return "\n".join(f"{prefix}{item}" for item in items) or empty


def format_summary_for_system(summary: StructuredSummary) -> str:
    """Compact summary section appended to the system message at level 2."""
    file_changes = _bullets(
        [f"{change.action}: {change.path}" for change in summary.file_changes[-10:]], "- ", "- None"
    )
    start, end = summary.turn_range
    return (
        f"## Previous Context Summary (Turns {start}-{end})\n\n"
        f"**Objective:** {summary.objective}\n\n"
        f"**Completed:**\n{_bullets(summary.completed_steps[-5:], '- ', '- None recorded')}\n\n"
        f"**File Changes:**\n{file_changes}\n\n"
        f"**User Instructions:**\n{_bullets(summary.user_instructions[-3:], '- ', '- None')}\n\n"
        "---\n"
        "Continue based on the above context."
    )


def format_detailed_summary(summary: StructuredSummary) -> str:
    """Detailed summary section appended to the system message at level 3."""
    decisions = _bullets(
        [f"[{decision.type}] {decision.description}" for decision in summary.decisions[-5:]],
        "- ",
        "None",
    )
    errors = _bullets(
        [f"Error: {item.error[:50]}... → {item.fix}" for item in summary.errors_and_fixes],
        "- ",
        "None",
    )
    file_changes = _bullets(
        [
            f"[{change.action.upper()}] {change.path}: {change.summary}"
            for change in summary.file_changes
        ],
        "- ",
        "None",
    )
    return (
        "## Detailed Context Summary\n\n"
        f"**Objective:** {summary.objective}\n\n"
        f"**Completed Steps:**\n{_bullets(summary.completed_steps, '✓ ', 'None')}\n\n"
        f"**Pending Steps:**\n{_bullets(summary.pending_steps, '○ ', 'None')}\n\n"
        f"**Key Decisions:**\n{decisions}\n\n"
        f"**Errors & Resolutions:**\n{errors}\n\n"
        f"**File Changes:**\n{file_changes}\n\n"
        f"**Important User Instructions:**\n{_bullets(summary.user_instructions, '⚠️ ', 'None')}\n\n"
        "---"
    )
