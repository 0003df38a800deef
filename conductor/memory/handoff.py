"""Session handoff documents and the text used to continue from them.

Everything here is pure formatting: no side effects and no model calls.
"""

from __future__ import annotations

from typing import Literal

from ..types.types import Message
from .summary import NOT_FIXED
from .types import HandoffDocument, KeyFileReference, StructuredSummary

Language = Literal["en", "zh"]

MAX_LAST_REQUEST_CHARS = 500
MAX_KEY_FILES = 5
MAX_SUGGESTED_STEPS = 5
DEFAULT_NEXT_STEPS = [
    "Review the changes made so far",
    "Continue with the next logical step",
]


def suggest_next_steps(summary: StructuredSummary) -> list[str]:
    steps = list(summary.pending_steps[:3])
    unfixed = [item for item in summary.errors_and_fixes if item.fix == NOT_FIXED]
    if unfixed:
        steps.append(f"Fix remaining error: {unfixed[0].error[:50]}")
    if not steps:
        steps.extend(DEFAULT_NEXT_STEPS)
    return steps[:MAX_SUGGESTED_STEPS]


def build_handoff_document(
    session_id: str,
    messages: list[Message],
    summary: StructuredSummary,
    working_directory: str = "",
) -> HandoffDocument:
    """Snapshot the conversation state for a new session."""
    last_user = next((msg for msg in reversed(messages) if msg.role == "user"), None)
    last_request = last_user.text if last_user is not None and last_user.text else "Continue the task"

    key_files = [
        KeyFileReference(path=change.path, reason=change.summary)
        for change in summary.file_changes
        if change.action != "delete"
    ][-MAX_KEY_FILES:]

    return HandoffDocument(
        from_session_id=session_id,
        summary=summary.model_copy(deep=True),
        working_directory=working_directory,
        key_files=key_files,
        last_user_request=last_request[:MAX_LAST_REQUEST_CHARS],
        suggested_next_steps=suggest_next_steps(summary),
    )


def _lines(items: list[str], prefix: str, empty: str) -> str:
    return "\n".join(f"{prefix}{item}" for item in items) or empty


def handoff_to_system_prompt(handoff: HandoffDocument) -> str:
    """Full handoff text injected into the system message at level 4."""
    summary = handoff.summary
    file_changes = _lines(
        [f"[{change.action.upper()}] {change.path}: {change.summary}" for change in summary.file_changes],
        "- ",
        "None",
    )
    decisions = _lines([decision.description for decision in summary.decisions[-10:]], "- ", "None")
    errors = "\n".join(f"- Error: {item.error}\n  Fix: {item.fix}" for item in summary.errors_and_fixes)
    steps = "\n".join(f"{number}. {step}" for number, step in enumerate(handoff.suggested_next_steps, 1))

    return (
        "## Session Handoff Context\n\n"
        "This is a continuation of a previous session. Here's what happened:\n\n"
        f"### Objective\n{summary.objective}\n\n"
        f"### Completed Steps\n{_lines(summary.completed_steps, '✓ ', 'None recorded')}\n\n"
        f"### Pending Steps\n{_lines(summary.pending_steps, '○ ', 'None recorded')}\n\n"
        f"### File Changes Made\n{file_changes}\n\n"
        f"### Key Decisions\n{decisions}\n\n"
        f"### Errors & Fixes\n{errors or 'None'}\n\n"
        f"### User Instructions to Remember\n{_lines(summary.user_instructions[-5:], '- ', 'None')}\n\n"
        f'### Last User Request\n"{handoff.last_user_request}"\n\n'
        f"### Suggested Next Steps\n{steps}\n\n"
        "---\n"
        "Continue from where we left off. The user may provide additional context or corrections."
    )


def build_handoff_context(handoff: HandoffDocument) -> str:
    """Continuation context for a new session's system prompt."""
    summary = handoff.summary
    file_changes = _lines(
        [
            f"[{change.action.upper()}] {change.path}: {change.summary}"
            for change in summary.file_changes[-10:]
        ],
        "- ",
        "- None",
    )
    request = handoff.last_user_request
    if len(request) > MAX_LAST_REQUEST_CHARS:
        request = request[:MAX_LAST_REQUEST_CHARS] + "..."

    return (
        "## Context from Previous Session\n\n"
        f"**Previous Objective**: {summary.objective}\n\n"
        f"**Completed Steps**:\n{_lines(summary.completed_steps[-10:], '✓ ', '- None recorded')}\n\n"
        f"**Pending Steps**:\n{_lines(summary.pending_steps[-5:], '○ ', '- None recorded')}\n\n"
        f"**File Changes**:\n{file_changes}\n\n"
        f"**User Instructions**:\n{_lines(summary.user_instructions[-5:], '⚠️ ', '- None')}\n\n"
        f"**Last Request**: {request}\n\n"
        "---\n"
        "Continue based on the above context. The user may continue where they left off."
    )


def build_welcome_message(summary: StructuredSummary, language: Language = "en") -> str:
    """Short user-facing note shown at the top of a continued session."""
    if language == "zh":
        return (
            "🔄 **会话已继续**\n\n"
            "此会话延续自上一个对话。我已了解您之前的工作内容。\n\n"
            f"**之前的目标**: {summary.objective}\n\n"
            f"**已完成**: {len(summary.completed_steps)} 步\n"
            f"**待完成**: {len(summary.pending_steps)} 步\n\n"
            "您可以继续之前的工作。"
        )
    return (
        "🔄 **Session Continued**\n\n"
        "This session continues from a previous conversation. "
        "I have context about your previous work.\n\n"
        f"**Previous Objective**: {summary.objective}\n\n"
        f"**Completed**: {len(summary.completed_steps)} steps\n"
        f"**Pending**: {len(summary.pending_steps)} steps\n\n"
        "You can continue where you left off."
    )
