"""Model-refined summaries of compacted turns.

Refinement runs in the background: the compressor commits the quick summary
immediately and only swaps in the refined one if it is more complete.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from ..tools.tool import ToolCatalog
from ..types.types import Message
from .summary import generate_quick_summary
from .types import MessageGroup, StructuredSummary

if TYPE_CHECKING:
    from ..llm.providers.base import ModelProvider

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = """You are a conversation summarizer. Your task is to create concise, structured summaries of coding conversations.

Rules:
1. Focus on actions taken, not explanations
2. List concrete file changes and decisions
3. Identify pending work clearly
4. Note any user preferences or corrections
5. Output valid JSON only"""

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def _clip(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def format_quick_summary_for_model(summary: StructuredSummary) -> str:
    parts = [f"Objective: {summary.objective}"]
    if summary.completed_steps:
        parts.append(f"Completed: {', '.join(summary.completed_steps[-5:])}")
    if summary.file_changes:
        files = ", ".join(f"{change.action}:{change.path}" for change in summary.file_changes[-5:])
        parts.append(f"Files: {files}")
    if summary.errors_and_fixes:
        parts.append(f"Errors: {len(summary.errors_and_fixes)} encountered")
    return "\n".join(parts)


def build_summary_request(
    messages: list[Message],
    groups: list[MessageGroup],
    turn_range: tuple[int, int],
    quick: StructuredSummary,
) -> list[Message]:
    """Condensed transcript of the turns followed by the structured-output request."""
    request: list[Message] = []
    for group in groups:
        if not turn_range[0] <= group.turn_index <= turn_range[1]:
            continue
        for index in group.message_indices:
            msg = messages[index]
            if msg.role == "user":
                request.append(Message(role="user", content=_clip(msg.text, 300)))
            elif msg.role == "assistant":
                markers = " ".join(
                    f"[{call.name}{f' ({call.path})' if call.path else ''}]"
                    for call in msg.tool_calls
                )
                content = _clip(msg.text, 200) + (f"\n{markers}" if markers else "")
                request.append(Message(role="assistant", content=content))

    request.append(
        Message(
            role="user",
            content=(
                "Based on the conversation above, generate a structured summary.\n\n"
                "## Quick Analysis (for reference):\n"
                f"{format_quick_summary_for_model(quick)}\n\n"
                "## Output Format (JSON):\n"
                "{\n"
                '  "objective": "Main task/goal in one sentence",\n'
                '  "completedSteps": ["Step 1", "Step 2"],\n'
                '  "pendingSteps": ["Next step 1", "Next step 2"],\n'
                '  "keyDecisions": ["Important decision 1"],\n'
                '  "userInstructions": ["Important user instruction"]\n'
                "}\n\n"
                "Focus on: what was done, what needs to be done, important decisions, "
                "user preferences.\n"
                "Output ONLY valid JSON."
            ),
        )
    )
    return request


def _string_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [str(item) for item in value if isinstance(item, (str, int, float))]


def _union(first: list[str], second: list[str] | None) -> list[str]:
    if not second:
        return list(first)
    return list(dict.fromkeys([*first, *second]))


def parse_summary_response(content: str, fallback: StructuredSummary) -> StructuredSummary:
    """Merge the model's JSON answer onto the quick summary; any problem returns ``fallback``."""
    match = _JSON_BLOCK.search(content)
    if not match:
        return fallback
    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        return fallback
    if not isinstance(parsed, dict):
        return fallback

    objective = parsed.get("objective")
    pending = _string_list(parsed.get("pendingSteps"))
    return fallback.model_copy(
        update={
            "objective": objective if isinstance(objective, str) and objective else fallback.objective,
            "completed_steps": _union(
                fallback.completed_steps, _string_list(parsed.get("completedSteps"))
            ),
            "pending_steps": pending if pending else list(fallback.pending_steps),
            "user_instructions": _union(
                fallback.user_instructions, _string_list(parsed.get("userInstructions"))
            ),
        }
    )


def is_more_complete(candidate: StructuredSummary, current: StructuredSummary | None) -> bool:
    """Whether ``candidate`` should replace ``current``.

    True when it has more completed steps, or has pending steps where the
    current summary has none.
    """
    if current is None:
        return True
    if len(candidate.completed_steps) > len(current.completed_steps):
        return True
    return bool(candidate.pending_steps) and not current.pending_steps


class SummaryRefiner:
    """Produces enhanced summaries through a model call."""

    def __init__(self, provider: ModelProvider, catalog: ToolCatalog | None = None):
        self.provider = provider
        self.catalog = catalog

    async def summarize(
        self,
        messages: list[Message],
        groups: list[MessageGroup],
        turn_range: tuple[int, int],
    ) -> StructuredSummary:
        """
        Generate an enhanced summary, falling back to the quick one on failure.

        Args:
            messages: The full non-system history the group indices refer to
            groups: The turns being summarized
            turn_range: Inclusive turn range the summary covers

        Returns:
            The refined summary, or the quick summary if the model call or
            parsing fails
        """
        quick = generate_quick_summary(messages, groups, turn_range, self.catalog)
        request = build_summary_request(messages, groups, turn_range, quick)
        logger.info("Generating enhanced summary for turns %d-%d", turn_range[0], turn_range[1])
        try:
            content = await self.provider.complete(request, system_prompt=SUMMARY_SYSTEM_PROMPT)
        except Exception as e:
            logger.warning("Enhanced summary failed, keeping quick summary: %s", e)
            return quick
        if not content:
            logger.warning("Enhanced summary returned no content, keeping quick summary")
            return quick
        return parse_summary_response(content, quick)
