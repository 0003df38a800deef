"""Unit tests for conductor.tools.tool module."""

import pytest

from conductor.tools.tool import ToolCatalog, ToolDefinition, ToolExecutor, ToolRegistry
from conductor.types.types import ToolExecutionResult


class TestToolDefinition:
    """Tests for ToolDefinition."""

    def test_defaults(self):
        definition = ToolDefinition(name="run")
        assert definition.read_only is False
        assert definition.file_action is None
        assert definition.approval_category is None
        assert definition.parameters == {"type": "object", "properties": {}}

    def test_to_schema(self):
        definition = ToolDefinition(
            name="read_file",
            description="Read a file",
            parameters={"type": "object", "properties": {"path": {"type": "string"}}},
        )
        schema = definition.to_schema()
        assert schema["type"] == "function"
        assert schema["name"] == "read_file"
        assert schema["parameters"]["properties"]["path"] == {"type": "string"}


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_satisfies_protocols(self, tool_registry):
        assert isinstance(tool_registry, ToolCatalog)
        assert isinstance(tool_registry, ToolExecutor)

    def test_classification(self, tool_registry):
        assert tool_registry.is_read_only("read_file")
        assert not tool_registry.is_read_only("write_file")
        assert tool_registry.file_action("delete_file") == "delete"
        assert tool_registry.file_action("read_file") is None

    def test_unknown_tool_is_mutating(self, tool_registry):
        assert not tool_registry.is_read_only("mystery")
        assert tool_registry.file_action("mystery") is None
        assert "mystery" not in tool_registry

    def test_decorator_registration(self):
        registry = ToolRegistry()

        @registry.tool(read_only=True)
        async def grep(arguments, workspace_root):
            """Search files."""
            return []

        definition = registry.get("grep")
        assert definition.description == "Search files."
        assert definition.read_only
        assert "grep" in registry
        assert [schema["name"] for schema in registry.schemas()] == ["grep"]

    def test_definitions_without_handlers(self):
        registry = ToolRegistry([ToolDefinition(name="a"), ToolDefinition(name="b")])
        assert [definition.name for definition in registry.definitions()] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_execute_wraps_plain_output(self, tool_registry):
        result = await tool_registry.execute("read_file", {"path": "/src/app.py"}, "/")
        assert result.success
        assert result.output == "print('hello')\n"

    @pytest.mark.asyncio
    async def test_execute_returns_tool_result(self, tool_registry):
        result = await tool_registry.execute("read_file", {"path": "/missing.py"}, "/")
        assert not result.success
        assert result.error == "File not found: /missing.py"

    @pytest.mark.asyncio
    async def test_execute_sync_handler(self):
        registry = ToolRegistry()
        registry.register(ToolDefinition(name="echo"), lambda arguments, root: arguments["text"])

        result = await registry.execute("echo", {"text": "hi"}, None)

        assert result == ToolExecutionResult(success=True, output="hi")

    @pytest.mark.asyncio
    async def test_execute_unknown_tool(self, tool_registry):
        result = await tool_registry.execute("mystery", {}, "/")
        assert not result.success
        assert "Unknown tool: mystery" in result.error

    @pytest.mark.asyncio
    async def test_execute_parse_error_arguments(self, tool_registry):
        result = await tool_registry.execute(
            "write_file", {"_parse_error": True, "_raw_arguments": '{"path": '}, "/"
        )
        assert not result.success
        assert "could not parse JSON" in result.error

    @pytest.mark.asyncio
    async def test_handler_exception_propagates(self):
        registry = ToolRegistry()

        async def broken(arguments, workspace_root):
            raise RuntimeError("disk full")

        registry.register(ToolDefinition(name="broken"), broken)

        with pytest.raises(RuntimeError, match="disk full"):
            await registry.execute("broken", {}, None)
