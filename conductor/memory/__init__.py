"""Adaptive context compression: scoring, summaries, handoff."""

from .compaction import ContextManager, determine_level
from .grouping import group_messages
from .handoff import (
    build_handoff_context,
    build_handoff_document,
    build_welcome_message,
    handoff_to_system_prompt,
)
from .scoring import extract_decision_points, extract_file_changes, score_group, score_message
from .summarizer import SummaryRefiner
from .summary import generate_quick_summary, merge_summaries
from .tokens import estimate_message_tokens, estimate_messages_tokens, estimate_tokens
from .types import (
    COMPRESSION_LEVELS,
    CompressionLevel,
    ContextConfig,
    ContextStats,
    DecisionPoint,
    ErrorFix,
    FileChangeRecord,
    HandoffDocument,
    KeyFileReference,
    MessageGroup,
    MessageImportance,
    OptimizedContext,
    StructuredSummary,
)

__all__ = [
    "COMPRESSION_LEVELS",
    "CompressionLevel",
    "ContextConfig",
    "ContextManager",
    "ContextStats",
    "DecisionPoint",
    "ErrorFix",
    "FileChangeRecord",
    "HandoffDocument",
    "KeyFileReference",
    "MessageGroup",
    "MessageImportance",
    "OptimizedContext",
    "StructuredSummary",
    "SummaryRefiner",
    "build_handoff_context",
    "build_handoff_document",
    "build_welcome_message",
    "determine_level",
    "estimate_message_tokens",
    "estimate_messages_tokens",
    "estimate_tokens",
    "extract_decision_points",
    "extract_file_changes",
    "generate_quick_summary",
    "group_messages",
    "handoff_to_system_prompt",
    "merge_summaries",
    "score_group",
    "score_message",
]
