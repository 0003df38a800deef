"""Plan-update reminders."""

from __future__ import annotations

import logging

from ..memory.grouping import is_mutating_call
from ..tools.tool import ToolCatalog
from ..types.types import Message

logger = logging.getLogger(__name__)

UPDATE_PLAN_TOOL = "update_plan"
PLAN_REMINDER = (
    "Reminder: You have performed some actions. Please use `update_plan` to update the "
    "plan status (e.g., mark the current step as completed) before finishing your response."
)


class PlanTracker:
    """
    Tracks whether a plan is active and nudges the model to keep it current.

    When a plan is active and the model finishes a run that performed
    mutating calls without calling ``update_plan``, the loop injects one
    reminder and keeps going instead of stopping.
    """

    def __init__(self, active: bool = False, update_tool: str = UPDATE_PLAN_TOOL):
        self.active = active
        self.update_tool = update_tool
        self.reminded = False

    def start_run(self) -> None:
        self.reminded = False

    def should_remind(self, run_messages: list[Message], catalog: ToolCatalog | None = None) -> bool:
        """Whether a reminder is due for the messages produced in this run."""
        if not self.active or self.reminded:
            return False
        calls = [call for msg in run_messages if msg.role == "assistant" for call in msg.tool_calls]
        has_writes = any(
            is_mutating_call(call, catalog) and call.name != self.update_tool for call in calls
        )
        has_update = any(call.name == self.update_tool for call in calls)
        return has_writes and not has_update

    def reminder(self) -> Message:
        self.reminded = True
        logger.info("Plan active: reminding the model to update plan status")
        return Message(role="user", content=PLAN_REMINDER)
