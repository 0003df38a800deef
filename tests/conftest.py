"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from conductor.llm.events import StreamDone, TextDelta, ToolCallEvent
from conductor.llm.providers.base import ModelProvider
from conductor.tools.tool import ToolDefinition, ToolRegistry
from conductor.types.types import ToolExecutionResult, Usage


class ScriptedProvider(ModelProvider):
    """Model provider replaying one scripted event list per call.

    A script entry that is an exception instance is raised instead of
    streaming. Every call's arguments are recorded in ``calls``.
    """

    def __init__(self, scripts, model: str = "test-model"):
        self.scripts = list(scripts)
        self.model = model
        self.calls: list[dict] = []

    async def stream(self, messages, tools=None, system_prompt=None, cancel_token=None):
        self.calls.append(
            {"messages": list(messages), "tools": tools, "system_prompt": system_prompt}
        )
        script = self.scripts.pop(0) if self.scripts else [TextDelta(content="done"), StreamDone()]
        if isinstance(script, BaseException):
            raise script
        for event in script:
            yield event


def text_response(text: str, usage: Usage | None = None) -> list:
    return [TextDelta(content=text), StreamDone(usage=usage)]


def tool_response(*calls: tuple[str, str, dict], text: str = "") -> list:
    events: list = [TextDelta(content=text)] if text else []
    for call_id, name, arguments in calls:
        events.append(ToolCallEvent(id=call_id, name=name, arguments=arguments))
    events.append(StreamDone())
    return events


@pytest.fixture
def scripted_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider


@pytest.fixture
def workspace_files() -> dict[str, str]:
    """In-memory workspace backing the tool registry fixture."""
    return {"/src/app.py": "print('hello')\n"}


@pytest.fixture
def tool_registry(workspace_files) -> ToolRegistry:
    """Registry with a small file-editing tool set over ``workspace_files``."""
    registry = ToolRegistry()

    async def read_file(arguments, workspace_root):
        path = arguments["path"]
        if path not in workspace_files:
            return ToolExecutionResult(success=False, error=f"File not found: {path}")
        return workspace_files[path]

    async def list_files(arguments, workspace_root):
        return sorted(workspace_files)

    async def write_file(arguments, workspace_root):
        workspace_files[arguments["path"]] = arguments.get("content", "")
        return f"Wrote {arguments['path']}"

    async def create_file(arguments, workspace_root):
        workspace_files[arguments["path"]] = arguments.get("content", "")
        return f"Created {arguments['path']}"

    async def delete_file(arguments, workspace_root):
        workspace_files.pop(arguments["path"], None)
        return f"Deleted {arguments['path']}"

    registry.register(ToolDefinition(name="read_file", read_only=True), read_file)
    registry.register(ToolDefinition(name="list_files", read_only=True), list_files)
    registry.register(
        ToolDefinition(name="write_file", file_action="modify", approval_category="edits"),
        write_file,
    )
    registry.register(
        ToolDefinition(name="create_file", file_action="create", approval_category="edits"),
        create_file,
    )
    registry.register(
        ToolDefinition(name="delete_file", file_action="delete", approval_category="dangerous"),
        delete_file,
    )
    return registry


@pytest.fixture
def make_text_response():
    """Factory for a text-only scripted response."""
    return text_response


@pytest.fixture
def make_tool_response():
    """Factory for a scripted response requesting ``(id, name, arguments)`` tool calls."""
    return tool_response
