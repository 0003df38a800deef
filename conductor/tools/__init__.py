"""Tool definitions, execution, and approval."""

from .approval import ApprovalGate, ApprovalPolicy, await_approval, describe_call
from .tool import FileAction, ToolCatalog, ToolDefinition, ToolExecutor, ToolRegistry

__all__ = [
    "ApprovalGate",
    "ApprovalPolicy",
    "FileAction",
    "ToolCatalog",
    "ToolDefinition",
    "ToolExecutor",
    "ToolRegistry",
    "await_approval",
    "describe_call",
]
