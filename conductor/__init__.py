__version__ = "0.1.0"

# Core imports
from .agents.loop import AgentLoop
from .agents.observe import DiagnosticsObserver
from .agents.plan import PlanTracker
from .agents.stop_conditions import RepeatedCallGuard
from .config import AgentConfig
from .core.cancellation import CancellationToken
from .core.session import AgentSession
from .errors import (
    ConductorError,
    ConfigurationError,
    ModelCallError,
    OperationCancelled,
    is_retryable_error,
)
from .llm.events import (
    ReasoningDelta,
    StreamDone,
    StreamError,
    StreamEvent,
    TextDelta,
    ToolCallDelta,
    ToolCallEnd,
    ToolCallEvent,
    ToolCallStart,
)
from .llm.providers import ModelProvider, get_provider, register_provider
from .memory.compaction import ContextManager
from .memory.handoff import build_handoff_context, build_welcome_message
from .memory.summarizer import SummaryRefiner
from .memory.types import (
    CompressionLevel,
    ContextConfig,
    ContextStats,
    HandoffDocument,
    OptimizedContext,
    StructuredSummary,
)
from .tools.approval import ApprovalGate, ApprovalPolicy
from .tools.tool import ToolCatalog, ToolDefinition, ToolExecutor, ToolRegistry
from .types.types import (
    LoopResult,
    Message,
    ToolCall,
    ToolCallStatus,
    ToolExecutionResult,
    Usage,
)

__all__ = [
    "AgentConfig",
    "AgentLoop",
    "AgentSession",
    "ApprovalGate",
    "ApprovalPolicy",
    "CancellationToken",
    "CompressionLevel",
    "ConductorError",
    "ConfigurationError",
    "ContextConfig",
    "ContextManager",
    "ContextStats",
    "DiagnosticsObserver",
    "HandoffDocument",
    "LoopResult",
    "Message",
    "ModelCallError",
    "ModelProvider",
    "OperationCancelled",
    "OptimizedContext",
    "PlanTracker",
    "ReasoningDelta",
    "RepeatedCallGuard",
    "StreamDone",
    "StreamError",
    "StreamEvent",
    "StructuredSummary",
    "SummaryRefiner",
    "TextDelta",
    "ToolCall",
    "ToolCallDelta",
    "ToolCallEnd",
    "ToolCallEvent",
    "ToolCallStart",
    "ToolCallStatus",
    "ToolCatalog",
    "ToolDefinition",
    "ToolExecutionResult",
    "ToolExecutor",
    "ToolRegistry",
    "Usage",
    "__version__",
    "build_handoff_context",
    "build_welcome_message",
    "get_provider",
    "is_retryable_error",
    "register_provider",
]
