"""Agent configuration, loadable from the environment and a ``.env`` file."""

from __future__ import annotations

import os
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .memory.types import ContextConfig

Language = Literal["en", "zh"]

ENV_PREFIX = "CONDUCTOR_"


class AgentConfig(BaseModel):
    """Configuration for one orchestration loop.

    Attributes:
        model: Model identifier passed through to the provider
        system_prompt: System prompt for every model call
        max_iterations: Hard ceiling on model calls per run
        max_retries: Retries for retryable model and tool failures
        retry_delay: Base delay in seconds between retries
        retry_backoff_multiplier: Growth factor of the model-call backoff
        max_retry_delay: Upper bound for a single backoff delay
        tool_timeout: Per-attempt timeout for one tool call, in seconds
        max_tool_result_chars: Ceiling applied to tool output before it is appended
        auto_approve: Approval categories that never prompt the user
        enable_auto_fix: Run diagnostics after mutating batches
        diagnostics_tool: Tool used by the post-mutation check
        working_directory: Workspace root handed to the tool executor
        language: Language of user-facing loop messages
        context: Context compression settings the loop applies on every pass
    """

    model: str | None = None
    system_prompt: str = ""
    max_iterations: int = Field(default=25, ge=1)
    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)
    retry_backoff_multiplier: float = Field(default=2.0, ge=1)
    max_retry_delay: float = Field(default=30.0, ge=0)
    tool_timeout: float = Field(default=60.0, gt=0)
    max_tool_result_chars: int = Field(default=10000, gt=0)
    auto_approve: set[str] = Field(default_factory=set)
    enable_auto_fix: bool = False
    diagnostics_tool: str = "get_lint_errors"
    working_directory: str | None = None
    language: Language = "en"
    context: ContextConfig = Field(default_factory=ContextConfig)

    @field_validator("auto_approve", mode="before")
    @classmethod
    def _split_categories(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {part.strip() for part in value.split(",") if part.strip()}
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> AgentConfig:
        """
        Build a configuration from ``CONDUCTOR_*`` environment variables.

        A ``.env`` file in the working directory is loaded first. Explicit
        keyword overrides win over environment values.

        Raises:
            pydantic.ValidationError: If a value is malformed
        """
        load_dotenv()

        values: dict[str, Any] = {}
        env_fields = {
            "model": "MODEL",
            "max_iterations": "MAX_ITERATIONS",
            "max_retries": "MAX_RETRIES",
            "tool_timeout": "TOOL_TIMEOUT",
            "auto_approve": "AUTO_APPROVE",
            "enable_auto_fix": "ENABLE_AUTO_FIX",
            "language": "LANGUAGE",
            "working_directory": "WORKING_DIRECTORY",
        }
        for field_name, suffix in env_fields.items():
            value = os.getenv(ENV_PREFIX + suffix)
            if value is not None and value != "":
                values[field_name] = value

        context_values: dict[str, Any] = {}
        context_fields = {
            "max_tokens": "MAX_CONTEXT_TOKENS",
            "keep_recent_turns": "KEEP_RECENT_TURNS",
            "auto_handoff": "AUTO_HANDOFF",
            "enable_llm_summary": "ENABLE_LLM_SUMMARY",
        }
        for field_name, suffix in context_fields.items():
            value = os.getenv(ENV_PREFIX + suffix)
            if value is not None and value != "":
                context_values[field_name] = value

        context_override = overrides.pop("context", None)
        if isinstance(context_override, ContextConfig):
            context_override = context_override.model_dump()
        context_values.update(context_override or {})
        if context_values:
            values["context"] = ContextConfig.model_validate(context_values)

        values.update(overrides)
        return cls.model_validate(values)
