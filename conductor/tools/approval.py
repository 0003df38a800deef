"""Approval gating for mutating tool calls."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..errors import OperationCancelled
from ..types.types import ToolCall
from ..utils.serializer import canonical_arguments

if TYPE_CHECKING:
    from ..core.cancellation import CancellationToken
    from .tool import ToolDefinition

logger = logging.getLogger(__name__)


@runtime_checkable
class ApprovalGate(Protocol):
    """Asks the user whether an operation may proceed.

    May suspend indefinitely. The gate's answer is authoritative: the loop
    never runs a gated call without an explicit ``True``.
    """

    async def request_approval(self, operation_category: str, description: str) -> bool: ...


class ApprovalPolicy:
    """Decides which calls need approval, honoring per-category auto-approve."""

    def __init__(self, auto_approve: Iterable[str] = ()):
        self.auto_approve = set(auto_approve)

    def category_for(self, definition: ToolDefinition | None) -> str | None:
        return definition.approval_category if definition else None

    def needs_approval(self, definition: ToolDefinition | None) -> bool:
        category = self.category_for(definition)
        return category is not None and category not in self.auto_approve

    def enable_auto_approve(self, category: str) -> None:
        self.auto_approve.add(category)


def describe_call(call: ToolCall, max_length: int = 200) -> str:
    """Short human-readable description of a tool call for the approval prompt."""
    if call.path:
        return f"{call.name}: {call.path}"
    args = canonical_arguments(call.arguments)
    if len(args) > max_length:
        args = args[:max_length] + "..."
    return f"{call.name}: {args}"


async def await_approval(
    gate: ApprovalGate | None,
    category: str,
    description: str,
    cancel_token: CancellationToken | None = None,
) -> bool:
    """Wait for the gate's decision.

    Cancellation resolves the wait to ``False`` immediately, identical to an
    explicit rejection; the caller distinguishes the two by checking the token.
    Without a gate the call is rejected.
    """
    if gate is None:
        logger.warning("No approval gate configured, rejecting %s", description)
        return False
    if cancel_token is None:
        return bool(await gate.request_approval(category, description))
    try:
        return bool(await cancel_token.race(gate.request_approval(category, description)))
    except OperationCancelled:
        return False
