"""Unit tests for conductor.tools.approval module."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from conductor.core.cancellation import CancellationToken
from conductor.tools.approval import ApprovalPolicy, await_approval, describe_call
from conductor.tools.tool import ToolDefinition
from conductor.types.types import ToolCall


class TestApprovalPolicy:
    """Tests for ApprovalPolicy."""

    def test_uncategorized_tools_never_need_approval(self):
        policy = ApprovalPolicy()
        assert not policy.needs_approval(ToolDefinition(name="read_file", read_only=True))
        assert not policy.needs_approval(None)

    def test_categorized_tools_need_approval(self):
        policy = ApprovalPolicy()
        assert policy.needs_approval(ToolDefinition(name="write", approval_category="edits"))

    def test_auto_approve_category(self):
        policy = ApprovalPolicy(auto_approve=["edits"])
        assert not policy.needs_approval(ToolDefinition(name="write", approval_category="edits"))
        assert policy.needs_approval(ToolDefinition(name="rm", approval_category="dangerous"))

    def test_enable_auto_approve(self):
        policy = ApprovalPolicy()
        policy.enable_auto_approve("commands")
        assert not policy.needs_approval(ToolDefinition(name="sh", approval_category="commands"))


class TestDescribeCall:
    def test_path_argument(self):
        call = ToolCall(id="1", name="write_file", arguments={"path": "/a.py", "content": "x"})
        assert describe_call(call) == "write_file: /a.py"

    def test_long_arguments_truncated(self):
        call = ToolCall(id="1", name="run", arguments={"command": "x" * 500})
        description = describe_call(call, max_length=50)
        assert description.startswith("run: ")
        assert description.endswith("...")
        assert len(description) == len("run: ") + 50 + 3


class TestAwaitApproval:
    """Tests for await_approval."""

    @pytest.mark.asyncio
    async def test_no_gate_rejects(self):
        assert await await_approval(None, "edits", "write_file: /a.py") is False

    @pytest.mark.asyncio
    async def test_gate_decision_returned(self):
        gate = AsyncMock()
        gate.request_approval.return_value = True

        assert await await_approval(gate, "edits", "write_file: /a.py", CancellationToken())
        gate.request_approval.assert_awaited_once_with("edits", "write_file: /a.py")

    @pytest.mark.asyncio
    async def test_gate_rejection(self):
        gate = AsyncMock()
        gate.request_approval.return_value = False
        assert await await_approval(gate, "edits", "x") is False

    @pytest.mark.asyncio
    async def test_cancel_resolves_pending_wait_to_false(self):
        token = CancellationToken()
        waiting = asyncio.Event()

        class SlowGate:
            async def request_approval(self, operation_category, description):
                waiting.set()
                await asyncio.sleep(10)
                return True

        async def cancel_when_waiting():
            await waiting.wait()
            token.cancel()

        canceller = asyncio.create_task(cancel_when_waiting())
        approved = await await_approval(SlowGate(), "edits", "x", token)
        await canceller

        assert approved is False
        assert token.cancelled
