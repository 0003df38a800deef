"""Stop conditions for the orchestration loop."""

from __future__ import annotations

import logging

from ..types.types import ToolCall
from ..utils.serializer import canonical_arguments

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_REPEATS = 3
REPEATED_CALLS_MESSAGE = "⚠️ Detected repeated operations. Stopping to prevent infinite loop."
MAX_ITERATIONS_MESSAGE = "⚠️ Reached maximum tool call limit."


def batch_signature(calls: list[ToolCall]) -> str:
    """Order-independent signature of a batch of tool calls."""
    return "|".join(sorted(f"{call.name}:{canonical_arguments(call.arguments)}" for call in calls))


class RepeatedCallGuard:
    """Detects the same tool-call batch on consecutive iterations.

    ``record`` returns ``True`` once the same signature has been seen on
    ``max_repeats`` consecutive tool-calling iterations.
    """

    def __init__(self, max_repeats: int = MAX_CONSECUTIVE_REPEATS):
        self.max_repeats = max_repeats
        self.last_signature: str | None = None
        self.count = 0

    def reset(self) -> None:
        self.last_signature = None
        self.count = 0

    def record(self, calls: list[ToolCall]) -> bool:
        signature = batch_signature(calls)
        if signature == self.last_signature:
            self.count += 1
            logger.warning(
                "Detected repeated tool calls (%d/%d)", self.count, self.max_repeats
            )
        else:
            self.last_signature = signature
            self.count = 1
        return self.count >= self.max_repeats
