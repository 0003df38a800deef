"""Tool definitions with capability tags and an in-process tool registry."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from ..types.types import ToolExecutionResult

logger = logging.getLogger(__name__)

FileAction = Literal["create", "modify", "delete"]


class ToolDefinition(BaseModel):
    """Static description of a tool.

    ``read_only`` is the capability tag the loop consults to decide whether a
    call may run concurrently with others; it is declared, never inferred.
    ``file_action`` marks tools that create, modify or delete the file named by
    their ``path`` argument. ``approval_category`` names the category the
    approval gate is asked about; ``None`` means the tool never needs approval.
    """

    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    read_only: bool = False
    file_action: FileAction | None = None
    approval_category: str | None = None

    def to_schema(self) -> dict[str, Any]:
        """Function-calling schema sent to the model."""
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


@runtime_checkable
class ToolExecutor(Protocol):
    """Executes tool calls against a workspace.

    Must be safe to call concurrently for read-only tools.
    """

    async def execute(
        self, name: str, arguments: dict[str, Any], workspace_root: str | None
    ) -> ToolExecutionResult: ...


@runtime_checkable
class ToolCatalog(Protocol):
    """Read access to tool capability tags."""

    def is_read_only(self, name: str) -> bool: ...

    def file_action(self, name: str) -> FileAction | None: ...


ToolHandler = Callable[..., Any]


class ToolRegistry:
    """Registry of tool definitions and their handlers.

    Doubles as a ``ToolCatalog`` for classification and as a ``ToolExecutor``
    that dispatches to the registered handler. Handlers are called as
    ``handler(arguments, workspace_root)`` and may be sync or async; they may
    return a ``ToolExecutionResult`` or any value, which is treated as the
    successful output.
    """

    def __init__(self, definitions: list[ToolDefinition] | None = None):
        self._definitions: dict[str, ToolDefinition] = {}
        self._handlers: dict[str, ToolHandler] = {}
        for definition in definitions or []:
            self._definitions[definition.name] = definition

    def register(self, definition: ToolDefinition, handler: ToolHandler | None = None) -> None:
        self._definitions[definition.name] = definition
        if handler is not None:
            self._handlers[definition.name] = handler

    def tool(
        self,
        name: str | None = None,
        *,
        description: str | None = None,
        parameters: dict[str, Any] | None = None,
        read_only: bool = False,
        file_action: FileAction | None = None,
        approval_category: str | None = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """
        Decorator registering a handler function as a tool.

        Usage:
            registry = ToolRegistry()

            @registry.tool(read_only=True)
            async def read_file(arguments, workspace_root):
                ...
        """

        def decorator(fn: ToolHandler) -> ToolHandler:
            definition = ToolDefinition(
                name=name or fn.__name__,
                description=description or (fn.__doc__ or "").strip(),
                parameters=parameters or {"type": "object", "properties": {}},
                read_only=read_only,
                file_action=file_action,
                approval_category=approval_category,
            )
            self.register(definition, fn)
            return fn

        return decorator

    def get(self, name: str) -> ToolDefinition | None:
        return self._definitions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def definitions(self) -> list[ToolDefinition]:
        return list(self._definitions.values())

    def schemas(self) -> list[dict[str, Any]]:
        return [definition.to_schema() for definition in self._definitions.values()]

    def is_read_only(self, name: str) -> bool:
        # Unknown tools are treated as mutating.
        definition = self._definitions.get(name)
        return bool(definition and definition.read_only)

    def file_action(self, name: str) -> FileAction | None:
        definition = self._definitions.get(name)
        return definition.file_action if definition else None

    async def execute(
        self, name: str, arguments: dict[str, Any], workspace_root: str | None
    ) -> ToolExecutionResult:
        handler = self._handlers.get(name)
        if handler is None:
            return ToolExecutionResult(success=False, error=f"Unknown tool: {name}")
        if arguments.get("_parse_error"):
            raw = arguments.get("_raw_arguments", "")
            return ToolExecutionResult(
                success=False,
                error=f"Invalid arguments for {name}: could not parse JSON: {raw[:200]}",
            )

        logger.debug("Executing tool %s", name)
        result = handler(arguments, workspace_root)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, ToolExecutionResult):
            return result
        return ToolExecutionResult(success=True, output=result)
