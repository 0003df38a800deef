"""Adaptive context compression.

Every model call goes through ``ContextManager.optimize``, which measures the
full history against the token budget and applies one of five levels:

- Level 0: the history unchanged
- Level 1: tool results truncated to a per-tool ceiling
- Level 2: recent turns plus important older turns, the rest folded into a
  rolling summary appended to the system message
- Level 3: only the last few turns, a detailed summary, harsher truncation
- Level 4: a handoff document and the last turn only

Level computations never mutate manager state; ``optimize`` commits the
chosen result's summary and handoff once the output is settled.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..tools.tool import ToolCatalog
from ..types.types import Message
from .grouping import group_messages, split_system
from .handoff import build_handoff_document, handoff_to_system_prompt
from .scoring import score_groups
from .summary import (
    format_detailed_summary,
    format_summary_for_system,
    generate_quick_summary,
    merge_summaries,
)
from .summarizer import is_more_complete
from .tokens import estimate_messages_tokens
from .truncation import truncate_tool_results
from .types import (
    COMPRESSION_LEVELS,
    CompressionLevel,
    ContextConfig,
    ContextStats,
    HandoffDocument,
    MessageGroup,
    OptimizedContext,
    StructuredSummary,
)

if TYPE_CHECKING:
    from .summarizer import SummaryRefiner

logger = logging.getLogger(__name__)

# -- Constants ----------------------------------------------------------------

DEEP_TRUNCATION_DIVISOR = 3

# -- Helpers ------------------------------------------------------------------


def determine_level(tokens: int, max_tokens: int) -> CompressionLevel:
    """Highest level whose threshold the token ratio reaches."""
    ratio = tokens / max_tokens
    level = CompressionLevel.FULL
    for candidate, cfg in COMPRESSION_LEVELS.items():
        if ratio >= cfg.threshold:
            level = max(level, candidate)
    return level


def saved_percent(original_tokens: int, final_tokens: int) -> int:
    if original_tokens <= 0:
        return 0
    return round((1 - final_tokens / original_tokens) * 100)


def with_system_section(system: Message | None, section: str) -> Message | None:
    """System message with ``section`` appended, created if there is none."""
    if not section:
        return system.model_copy() if system is not None else None
    if system is None:
        return Message(role="system", content=section)
    base = system.text
    content = f"{base}\n\n{section}" if base else section
    return system.model_copy(update={"content": content})


def count_user_turns(messages: list[Message]) -> int:
    return sum(1 for msg in messages if msg.role == "user")


@dataclass
class _Refinement:
    messages: list[Message]
    groups: list[MessageGroup]
    turn_range: tuple[int, int]


@dataclass
class _Candidate:
    context: OptimizedContext
    refinement: _Refinement | None = None


# -- Manager ------------------------------------------------------------------


class ContextManager:
    """
    Owns the rolling summary and the handoff document for one conversation.

    The caller keeps the full history and calls ``optimize`` before every
    model call; the returned messages are what the model sees.
    """

    def __init__(
        self,
        config: ContextConfig | None = None,
        session_id: str = "",
        working_directory: str = "",
        catalog: ToolCatalog | None = None,
        refiner: SummaryRefiner | None = None,
    ):
        self.config = config or ContextConfig()
        self.session_id = session_id
        self.working_directory = working_directory
        self.catalog = catalog
        self.refiner = refiner
        self.summary: StructuredSummary | None = None
        self.handoff: HandoffDocument | None = None
        self.current_level = CompressionLevel.FULL
        self.stats: ContextStats | None = None
        self._refine_task: asyncio.Task | None = None

    def clear(self) -> None:
        """Reset summary, handoff, level and stats."""
        if self._refine_task is not None and not self._refine_task.done():
            self._refine_task.cancel()
        self._refine_task = None
        self.summary = None
        self.handoff = None
        self.current_level = CompressionLevel.FULL
        self.stats = None

    # -- Entry point ----------------------------------------------------------

    def optimize(
        self, messages: list[Message], config: ContextConfig | None = None
    ) -> OptimizedContext:
        """
        Shrink ``messages`` to fit the token budget.

        Args:
            messages: The full conversation history, system message included
            config: Overrides the manager's configuration for this call

        Returns:
            OptimizedContext with the messages to send, the current summary,
            compaction stats and, at level 4, the handoff document
        """
        cfg = config or self.config
        original_tokens = estimate_messages_tokens(messages)

        if not any(msg.role != "system" for msg in messages):
            candidate = self._level0(messages, original_tokens)
        else:
            level = determine_level(original_tokens, cfg.max_tokens)
            logger.info(
                "Context level %d (%s), tokens: %d/%d",
                level,
                COMPRESSION_LEVELS[level].description,
                original_tokens,
                cfg.max_tokens,
            )
            candidate = self._compute(level, messages, original_tokens, cfg)
            candidate = self._enforce_monotonic(candidate, messages, original_tokens, cfg)

        return self._commit(candidate, cfg)

    def _compute(
        self,
        level: CompressionLevel,
        messages: list[Message],
        original_tokens: int,
        cfg: ContextConfig,
    ) -> _Candidate:
        if level == CompressionLevel.FULL:
            return self._level0(messages, original_tokens)
        if level == CompressionLevel.SMART_TRUNCATION:
            return self._level1(messages, original_tokens, cfg)
        if level == CompressionLevel.SLIDING_WINDOW:
            return self._level2(messages, original_tokens, cfg)
        if level == CompressionLevel.DEEP_COMPRESSION:
            return self._level3(messages, original_tokens, cfg)
        return self._level4(messages, original_tokens, cfg)

    def _enforce_monotonic(
        self,
        candidate: _Candidate,
        messages: list[Message],
        original_tokens: int,
        cfg: ContextConfig,
    ) -> _Candidate:
        """Return the smallest lower-level output if it beats the chosen one."""
        applied = candidate.context.stats.compression_level
        best = candidate
        for lower in range(CompressionLevel.SMART_TRUNCATION, applied):
            other = self._compute(CompressionLevel(lower), messages, original_tokens, cfg)
            if other.context.stats.compression_level >= applied:
                continue
            if other.context.stats.final_tokens < best.context.stats.final_tokens:
                best = other
        if best is not candidate:
            logger.warning(
                "Level %d output (%d tokens) larger than level %d (%d tokens), using level %d",
                applied,
                candidate.context.stats.final_tokens,
                best.context.stats.compression_level,
                best.context.stats.final_tokens,
                best.context.stats.compression_level,
            )
        return best

    def _commit(self, candidate: _Candidate, cfg: ContextConfig) -> OptimizedContext:
        context = candidate.context
        level = context.stats.compression_level
        if level >= CompressionLevel.SLIDING_WINDOW and context.summary is not None:
            self.summary = context.summary
        if context.handoff is not None:
            self.handoff = context.handoff
        self.current_level = level
        self.stats = context.stats
        if candidate.refinement is not None and cfg.enable_llm_summary:
            self._schedule_refinement(candidate.refinement)
        return context

    # -- Levels ---------------------------------------------------------------

    def _result(
        self,
        messages: list[Message],
        original_tokens: int,
        level: CompressionLevel,
        summary: StructuredSummary | None,
        kept_turns: int,
        compacted_turns: int = 0,
        handoff: HandoffDocument | None = None,
        needs_handoff: bool = False,
    ) -> OptimizedContext:
        final_tokens = estimate_messages_tokens(messages)
        return OptimizedContext(
            messages=messages,
            summary=summary,
            handoff=handoff,
            stats=ContextStats(
                original_tokens=original_tokens,
                final_tokens=final_tokens,
                saved_percent=saved_percent(original_tokens, final_tokens),
                compression_level=level,
                level_name=COMPRESSION_LEVELS[level].description,
                kept_turns=kept_turns,
                compacted_turns=compacted_turns,
                needs_handoff=needs_handoff,
            ),
        )

    def _level0(self, messages: list[Message], original_tokens: int) -> _Candidate:
        context = self._result(
            list(messages),
            original_tokens,
            CompressionLevel.FULL,
            self.summary,
            kept_turns=count_user_turns(messages),
        )
        context.stats.final_tokens = original_tokens
        context.stats.saved_percent = 0
        return _Candidate(context)

    def _level1(
        self, messages: list[Message], original_tokens: int, cfg: ContextConfig
    ) -> _Candidate:
        truncated = truncate_tool_results(messages, cfg)
        context = self._result(
            truncated,
            original_tokens,
            CompressionLevel.SMART_TRUNCATION,
            self.summary,
            kept_turns=count_user_turns(messages),
        )
        logger.info(
            "Level 1: %d -> %d tokens", original_tokens, context.stats.final_tokens
        )
        return _Candidate(context)

    def _rolled_summary(
        self,
        history: list[Message],
        groups: list[MessageGroup],
        turn_range: tuple[int, int],
    ) -> StructuredSummary:
        fresh = generate_quick_summary(history, groups, turn_range, self.catalog)
        return merge_summaries(self.summary, fresh) if self.summary else fresh

    def _level2(
        self, messages: list[Message], original_tokens: int, cfg: ContextConfig
    ) -> _Candidate:
        system, history = split_system(messages)
        groups = group_messages(history, self.catalog)
        if not groups:
            logger.warning("No turns to compress at level 2, falling back to level 1")
            return self._level1(messages, original_tokens, cfg)
        score_groups(groups, history, self.catalog)

        recent = groups[-cfg.keep_recent_turns :]
        older = groups[: -cfg.keep_recent_turns] if len(groups) > cfg.keep_recent_turns else []
        important = [
            group
            for group in older
            if group.importance > cfg.important_turn_score
            or group.has_write_ops
            or group.has_errors
        ]
        important = important[-cfg.max_important_old_turns :] if cfg.max_important_old_turns else []
        important_ids = {group.turn_index for group in important}
        compacted = [group for group in older if group.turn_index not in important_ids]

        summary = self.summary
        refinement = None
        if compacted:
            turn_range = (compacted[0].turn_index, compacted[-1].turn_index)
            summary = self._rolled_summary(history, compacted, turn_range)
            refinement = _Refinement(history, compacted, turn_range)

        kept = important + recent
        kept_indices = {index for group in kept for index in group.message_indices}
        kept_messages = truncate_tool_results(
            [msg for index, msg in enumerate(history) if index in kept_indices], cfg
        )
        system_msg = with_system_section(
            system, format_summary_for_system(summary) if summary else ""
        )
        final = ([system_msg] if system_msg else []) + kept_messages

        context = self._result(
            final,
            original_tokens,
            CompressionLevel.SLIDING_WINDOW,
            summary,
            kept_turns=len(kept),
            compacted_turns=len(compacted),
        )
        logger.info(
            "Level 2: %d -> %d tokens, kept %d turns, compacted %d turns",
            original_tokens,
            context.stats.final_tokens,
            len(kept),
            len(compacted),
        )
        return _Candidate(context, refinement)

    def _level3(
        self, messages: list[Message], original_tokens: int, cfg: ContextConfig
    ) -> _Candidate:
        system, history = split_system(messages)
        groups = group_messages(history, self.catalog)
        if not groups:
            logger.warning("No turns to compress at level 3, falling back to level 1")
            return self._level1(messages, original_tokens, cfg)

        recent = groups[-cfg.deep_compression_turns :]
        older = (
            groups[: -cfg.deep_compression_turns]
            if len(groups) > cfg.deep_compression_turns
            else []
        )

        summary = self.summary
        refinement = None
        if older:
            turn_range = (0, older[-1].turn_index)
            summary = self._rolled_summary(history, older, turn_range)
            refinement = _Refinement(history, older, turn_range)

        kept_indices = {index for group in recent for index in group.message_indices}
        kept_messages = truncate_tool_results(
            [msg for index, msg in enumerate(history) if index in kept_indices],
            cfg,
            divisor=DEEP_TRUNCATION_DIVISOR,
        )
        system_msg = with_system_section(
            system, format_detailed_summary(summary) if summary else ""
        )
        final = ([system_msg] if system_msg else []) + kept_messages

        context = self._result(
            final,
            original_tokens,
            CompressionLevel.DEEP_COMPRESSION,
            summary,
            kept_turns=len(recent),
            compacted_turns=len(older),
        )
        logger.info(
            "Level 3: %d -> %d tokens (deep compression)",
            original_tokens,
            context.stats.final_tokens,
        )
        return _Candidate(context, refinement)

    def _level4(
        self, messages: list[Message], original_tokens: int, cfg: ContextConfig
    ) -> _Candidate:
        system, history = split_system(messages)
        groups = group_messages(history, self.catalog)
        if not groups:
            logger.warning("No turns to hand off, falling back to level 3")
            return self._level3(messages, original_tokens, cfg)
        if count_user_turns(history) <= 1:
            logger.warning("Only one user turn, skipping handoff, falling back to level 3")
            return self._level3(messages, original_tokens, cfg)

        turn_range = (0, groups[-1].turn_index)
        summary = self._rolled_summary(history, groups, turn_range)
        handoff = build_handoff_document(
            self.session_id, history, summary, self.working_directory
        )
        refinement = _Refinement(history, groups, turn_range)

        if not cfg.auto_handoff:
            fallback = self._level3(messages, original_tokens, cfg)
            fallback.context.handoff = handoff
            return fallback

        last = groups[-1]
        last_messages = truncate_tool_results(
            [history[index] for index in last.message_indices],
            cfg,
            divisor=DEEP_TRUNCATION_DIVISOR,
        )
        system_msg = with_system_section(system, handoff_to_system_prompt(handoff))
        final = [system_msg, *last_messages]

        context = self._result(
            final,
            original_tokens,
            CompressionLevel.SESSION_HANDOFF,
            summary,
            kept_turns=1,
            compacted_turns=len(groups) - 1,
            handoff=handoff,
            needs_handoff=True,
        )
        logger.warning(
            "Level 4: session handoff required. Original: %d, handoff context: %d tokens",
            original_tokens,
            context.stats.final_tokens,
        )
        return _Candidate(context, refinement)

    # -- Enhanced summary -----------------------------------------------------

    def _schedule_refinement(self, refinement: _Refinement) -> None:
        if self.refiner is None:
            return
        if self._refine_task is not None and not self._refine_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, skipping enhanced summary")
            return
        self._refine_task = loop.create_task(self._refine(refinement))

    async def _refine(self, refinement: _Refinement) -> None:
        try:
            refined = await self.refiner.summarize(
                refinement.messages, refinement.groups, refinement.turn_range
            )
        except Exception as e:
            logger.warning("Enhanced summary failed: %s", e)
            return
        if is_more_complete(refined, self.summary):
            self.summary = refined if self.summary is None else merge_summaries(self.summary, refined)
            logger.info("Updated summary with enhanced summary")

    async def wait_for_refinement(self) -> None:
        """Wait for a pending enhanced summary, if any."""
        if self._refine_task is not None:
            await asyncio.gather(self._refine_task, return_exceptions=True)
