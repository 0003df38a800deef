"""Unit tests for conductor.memory.summarizer module."""

import pytest

from conductor.errors import ModelCallError
from conductor.memory.grouping import group_messages
from conductor.memory.summarizer import (
    SUMMARY_SYSTEM_PROMPT,
    SummaryRefiner,
    build_summary_request,
    is_more_complete,
    parse_summary_response,
)
from conductor.memory.types import StructuredSummary
from conductor.types.types import Message, ToolCall


def _history() -> list[Message]:
    return [
        Message(role="user", content="Set up the Python project. " + "x" * 400),
        Message(
            role="assistant",
            content="Creating the package",
            tool_calls=[ToolCall(id="c1", name="create_file", arguments={"path": "/pkg.py"})],
        ),
        Message(role="tool", content="Created", tool_call_id="c1"),
        Message(role="user", content="Add docs"),
        Message(role="assistant", content="Done"),
    ]


class TestBuildSummaryRequest:
    """Tests for build_summary_request function."""

    def test_condensed_transcript(self):
        history = _history()
        groups = group_messages(history)
        quick = StructuredSummary(objective="Set up the project.")

        request = build_summary_request(history, groups, (0, 0), quick)

        assert [m.role for m in request] == ["user", "assistant", "user"]
        assert request[0].text.endswith("...")
        assert len(request[0].text) == 303
        assert "[create_file (/pkg.py)]" in request[1].text
        assert "Objective: Set up the project." in request[-1].text
        assert "Output ONLY valid JSON." in request[-1].text

    def test_tool_results_omitted(self):
        history = _history()
        request = build_summary_request(
            history, group_messages(history), (0, 1), StructuredSummary()
        )
        assert all(m.role != "tool" for m in request)
        assert len(request) == 5


class TestParseSummaryResponse:
    """Tests for parse_summary_response function."""

    def _fallback(self) -> StructuredSummary:
        return StructuredSummary(
            objective="quick objective",
            completed_steps=["create_file: /pkg.py"],
            turn_range=(0, 3),
        )

    def test_json_inside_prose(self):
        content = (
            "Here is the summary:\n"
            '{"objective": "Scaffold the package", "completedSteps": ["Created package"], '
            '"pendingSteps": ["Write docs"], "userInstructions": ["Use tabs"]}\nThanks'
        )

        summary = parse_summary_response(content, self._fallback())

        assert summary.objective == "Scaffold the package"
        assert summary.completed_steps == ["create_file: /pkg.py", "Created package"]
        assert summary.pending_steps == ["Write docs"]
        assert summary.user_instructions == ["Use tabs"]
        assert summary.turn_range == (0, 3)

    def test_no_json_returns_fallback(self):
        fallback = self._fallback()
        assert parse_summary_response("I cannot do that", fallback) is fallback

    def test_invalid_json_returns_fallback(self):
        fallback = self._fallback()
        assert parse_summary_response("{objective: nope}", fallback) is fallback

    def test_missing_fields_keep_fallback_values(self):
        summary = parse_summary_response('{"objective": ""}', self._fallback())
        assert summary.objective == "quick objective"
        assert summary.completed_steps == ["create_file: /pkg.py"]


class TestIsMoreComplete:
    def test_no_current(self):
        assert is_more_complete(StructuredSummary(), None)

    def test_more_completed_steps(self):
        current = StructuredSummary(completed_steps=["a"])
        assert is_more_complete(StructuredSummary(completed_steps=["a", "b"]), current)
        assert not is_more_complete(StructuredSummary(completed_steps=["b"]), current)

    def test_pending_where_none_before(self):
        assert is_more_complete(StructuredSummary(pending_steps=["next"]), StructuredSummary())
        assert not is_more_complete(
            StructuredSummary(pending_steps=["next"]), StructuredSummary(pending_steps=["x"])
        )


class TestSummaryRefiner:
    """Tests for SummaryRefiner."""

    @pytest.mark.asyncio
    async def test_refined_summary(self, scripted_provider, make_text_response, tool_registry):
        provider = scripted_provider(
            [make_text_response('{"objective": "Scaffold", "pendingSteps": ["Write docs"]}')]
        )
        refiner = SummaryRefiner(provider, tool_registry)
        history = _history()

        summary = await refiner.summarize(history, group_messages(history, tool_registry), (0, 1))

        assert summary.objective == "Scaffold"
        assert summary.pending_steps == ["Write docs"]
        assert summary.completed_steps == ["create_file: /pkg.py"]
        assert provider.calls[0]["system_prompt"] == SUMMARY_SYSTEM_PROMPT
        assert provider.calls[0]["tools"] is None

    @pytest.mark.asyncio
    async def test_model_failure_returns_quick_summary(self, scripted_provider, tool_registry):
        provider = scripted_provider([ModelCallError("overloaded", status_code=503)])
        refiner = SummaryRefiner(provider, tool_registry)
        history = _history()

        summary = await refiner.summarize(history, group_messages(history, tool_registry), (0, 1))

        assert summary.objective == "Set up the Python project."
        assert summary.completed_steps == ["create_file: /pkg.py"]

    @pytest.mark.asyncio
    async def test_empty_response_returns_quick_summary(
        self, scripted_provider, make_text_response
    ):
        provider = scripted_provider([make_text_response("")])
        history = _history()

        summary = await SummaryRefiner(provider).summarize(history, group_messages(history), (0, 1))

        assert summary.objective == "Set up the Python project."
