"""Unit tests for conductor.memory.truncation module."""

from conductor.memory.truncation import (
    tool_result_limit,
    truncate_text,
    truncate_tool_message,
    truncate_tool_results,
    truncation_marker,
)
from conductor.memory.types import ContextConfig
from conductor.types.types import Message


class TestTruncateText:
    """Tests for truncate_text function."""

    def test_short_content_unchanged(self):
        assert truncate_text("hello", 10) == "hello"

    def test_keeps_head_and_tail(self):
        content = "h" * 60 + "t" * 40
        result = truncate_text(content, 50)

        assert result.startswith("h" * 35)
        assert result.endswith("t" * 15)
        assert truncation_marker(50) in result
        assert len(result) < len(content)

    def test_never_grows_content(self):
        content = "a" * 60
        assert truncate_text(content, 50) == content

    def test_non_positive_limit_disables(self):
        assert truncate_text("a" * 100, 0) == "a" * 100


class TestToolResultLimit:
    def test_default_limit(self):
        assert tool_result_limit("read_file", ContextConfig()) == 10000

    def test_per_tool_override(self):
        config = ContextConfig(tool_result_limits={"read_file": 500})
        assert tool_result_limit("read_file", config) == 500
        assert tool_result_limit("list_files", config) == 10000

    def test_divisor(self):
        assert tool_result_limit(None, ContextConfig(), divisor=3) == 3333


class TestTruncateToolMessage:
    """Tests for truncate_tool_message and truncate_tool_results."""

    def test_truncates_tool_result(self):
        config = ContextConfig(tool_result_limits={"read_file": 100})
        message = Message(role="tool", content="x" * 1000, name="read_file", tool_call_id="c1")

        result = truncate_tool_message(message, config)

        assert result is not message
        assert len(result.text) < 200
        assert result.tool_call_id == "c1"
        assert len(message.text) == 1000

    def test_non_tool_messages_untouched(self):
        config = ContextConfig(max_tool_result_chars=10)
        message = Message(role="assistant", content="x" * 1000)
        assert truncate_tool_message(message, config) is message

    def test_small_results_returned_as_is(self):
        message = Message(role="tool", content="ok", name="read_file")
        assert truncate_tool_message(message, ContextConfig()) is message

    def test_results_list_preserves_order(self):
        config = ContextConfig(max_tool_result_chars=100)
        messages = [
            Message(role="user", content="read it"),
            Message(role="tool", content="y" * 1000, name="read_file"),
        ]
        result = truncate_tool_results(messages, config, divisor=2)
        assert [m.role for m in result] == ["user", "tool"]
        assert "[truncated 950 chars]" in result[1].text
