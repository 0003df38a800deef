"""Types for the adaptive context compression system.

Five compression levels trade fidelity for size as the conversation grows:
- Level 0: full context
- Level 1: smart truncation of tool results
- Level 2: sliding window + rolling summary
- Level 3: deep compression with a detailed summary
- Level 4: session handoff
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import IntEnum
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from ..types.types import Message


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompressionLevel(IntEnum):
    FULL = 0
    SMART_TRUNCATION = 1
    SLIDING_WINDOW = 2
    DEEP_COMPRESSION = 3
    SESSION_HANDOFF = 4


class LevelConfig(BaseModel):
    """Trigger threshold (fraction of the token budget) for one level."""

    threshold: float
    description: str


COMPRESSION_LEVELS: dict[CompressionLevel, LevelConfig] = {
    CompressionLevel.FULL: LevelConfig(threshold=0.0, description="Full Context"),
    CompressionLevel.SMART_TRUNCATION: LevelConfig(threshold=0.5, description="Smart Truncation"),
    CompressionLevel.SLIDING_WINDOW: LevelConfig(
        threshold=0.7, description="Sliding Window + Summary"
    ),
    CompressionLevel.DEEP_COMPRESSION: LevelConfig(threshold=0.85, description="Deep Compression"),
    CompressionLevel.SESSION_HANDOFF: LevelConfig(threshold=0.95, description="Session Handoff"),
}


class MessageImportance(BaseModel):
    index: int
    score: float
    reasons: list[str] = Field(default_factory=list)
    compressible: bool = True


DecisionType = Literal[
    "file_create",
    "file_modify",
    "file_delete",
    "error_fix",
    "architecture",
    "user_correction",
]


class DecisionPoint(BaseModel):
    turn_index: int
    type: DecisionType
    description: str
    files: list[str] = Field(default_factory=list)
    message_index: int


class FileChangeRecord(BaseModel):
    path: str
    action: Literal["create", "modify", "delete"]
    summary: str
    turn_index: int


class ErrorFix(BaseModel):
    error: str
    fix: str


class StructuredSummary(BaseModel):
    """Rolling task summary accumulated across compaction passes."""

    objective: str = ""
    completed_steps: list[str] = Field(default_factory=list)
    pending_steps: list[str] = Field(default_factory=list)
    decisions: list[DecisionPoint] = Field(default_factory=list)
    file_changes: list[FileChangeRecord] = Field(default_factory=list)
    errors_and_fixes: list[ErrorFix] = Field(default_factory=list)
    user_instructions: list[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=_utcnow)
    turn_range: tuple[int, int] = (0, 0)


class KeyFileReference(BaseModel):
    path: str
    reason: str


class HandoffDocument(BaseModel):
    """Terminal artifact used to seed a new session."""

    from_session_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    summary: StructuredSummary
    working_directory: str = ""
    key_files: list[KeyFileReference] = Field(default_factory=list)
    last_user_request: str
    suggested_next_steps: list[str] = Field(default_factory=list)


class ContextConfig(BaseModel):
    """Compression configuration."""

    max_tokens: int = Field(default=128000, gt=0)
    keep_recent_turns: int = Field(default=5, ge=1)
    deep_compression_turns: int = Field(default=2, ge=1)
    max_important_old_turns: int = Field(default=3, ge=0)
    important_turn_score: float = 60
    max_tool_result_chars: int = Field(default=10000, gt=0)
    tool_result_limits: dict[str, int] = Field(default_factory=dict)
    enable_llm_summary: bool = True
    auto_handoff: bool = True

    @model_validator(mode="after")
    def _check_turn_windows(self) -> ContextConfig:
        if self.deep_compression_turns >= self.keep_recent_turns:
            raise ValueError(
                "deep_compression_turns must be smaller than keep_recent_turns "
                f"(got {self.deep_compression_turns} >= {self.keep_recent_turns})"
            )
        return self


class ContextStats(BaseModel):
    original_tokens: int
    final_tokens: int
    saved_percent: int = 0
    compression_level: CompressionLevel = CompressionLevel.FULL
    level_name: str = COMPRESSION_LEVELS[CompressionLevel.FULL].description
    kept_turns: int = 0
    compacted_turns: int = 0
    needs_handoff: bool = False
    optimized_at: datetime = Field(default_factory=_utcnow)


class OptimizedContext(BaseModel):
    """Result of one compression pass."""

    messages: list[Message]
    summary: StructuredSummary | None = None
    stats: ContextStats
    handoff: HandoffDocument | None = None


class MessageGroup(BaseModel):
    """One turn: a user message and everything that followed it."""

    turn_index: int
    user_index: int | None = None
    message_indices: list[int] = Field(default_factory=list)
    tokens: int = 0
    importance: float = 0
    has_write_ops: bool = False
    has_errors: bool = False
    files: list[str] = Field(default_factory=list)
