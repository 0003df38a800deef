"""The orchestration loop: model call, tool execution, repeat."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from ..config import AgentConfig
from ..core.cancellation import CancellationToken
from ..core.session import AgentSession
from ..errors import ConfigurationError, OperationCancelled, is_retryable_error
from ..llm.providers.base import ModelProvider
from ..llm.stream import StreamAccumulator
from ..memory.grouping import split_system
from ..memory.truncation import truncate_text
from ..tools.approval import ApprovalGate, ApprovalPolicy, await_approval, describe_call
from ..tools.tool import ToolExecutor, ToolRegistry
from ..types.types import (
    LoopResult,
    LoopStatus,
    Message,
    ToolCall,
    ToolCallStatus,
    ToolExecutionResult,
    Usage,
)
from ..utils.retry import retry_with_backoff
from ..utils.serializer import serialize_output
from .observe import DiagnosticsObserver, build_observation
from .plan import PlanTracker
from .stop_conditions import MAX_ITERATIONS_MESSAGE, REPEATED_CALLS_MESSAGE, RepeatedCallGuard

logger = logging.getLogger(__name__)

ABORTED = "Aborted by user"
REJECTED_RESULT = "Tool call was rejected by the user."
SKIPPED_AFTER_REJECTION = "Skipped: a previous tool call in this batch was rejected by the user."
SKIPPED_REPEATED = "Skipped: repeated operations detected."
_ACTIVE_STATUSES = (ToolCallStatus.PENDING, ToolCallStatus.AWAITING, ToolCallStatus.RUNNING)


class _BatchOutcome:
    def __init__(self) -> None:
        self.results: list[Message] = []
        self.rejected = False
        self.mutated: list[ToolCall] = []


class AgentLoop:
    """
    Drives one conversation turn to completion.

    Each iteration compresses the full history, streams a model response
    into a new assistant message and executes the requested tool calls:
    read-only calls concurrently, mutating calls one at a time behind the
    approval gate. The loop ends when the model stops calling tools, on
    cancellation, on the iteration ceiling, on repeated identical batches,
    or on an unrecoverable model failure.

    Usage:
        registry = ToolRegistry()
        loop = AgentLoop(provider, registry, AgentConfig(model="my-model"))
        session = AgentSession.create(system_prompt="You are a coding assistant.")
        result = await loop.run(session, "Add a README")
    """

    def __init__(
        self,
        provider: ModelProvider,
        tools: ToolRegistry,
        config: AgentConfig | None = None,
        executor: ToolExecutor | None = None,
        approval_gate: ApprovalGate | None = None,
        plan: PlanTracker | None = None,
        observer: DiagnosticsObserver | None = None,
    ):
        self.provider = provider
        self.tools = tools
        self.config = config or AgentConfig()
        self.executor = executor or tools
        self.approval_gate = approval_gate
        self.approval_policy = ApprovalPolicy(self.config.auto_approve)
        self.plan = plan or PlanTracker()
        self.observer = observer
        if self.observer is None and self.config.enable_auto_fix:
            self.observer = DiagnosticsObserver(
                self.executor, self.tools, tool_name=self.config.diagnostics_tool
            )

    # -- Entry point ----------------------------------------------------------

    async def _validate(self) -> None:
        if not (self.config.model or self.provider.model):
            raise ConfigurationError("No model configured")
        await self.provider.validate()

    def _bind_session(self, session: AgentSession) -> None:
        """Fill in what the session leaves unset from this loop's configuration."""
        if not session.system_prompt and self.config.system_prompt:
            session.system_prompt = self.config.system_prompt
        if not session.working_directory and self.config.working_directory:
            session.working_directory = self.config.working_directory
            session.context.working_directory = self.config.working_directory
        if session.context.catalog is None:
            session.context.catalog = self.tools

    async def run(
        self,
        session: AgentSession,
        user_message: str | Message | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> LoopResult:
        """
        Run the loop until the model is done or a terminal condition is hit.

        Args:
            session: Conversation state; messages are appended to it
            user_message: New user input, appended before the first iteration
            cancel_token: Token the caller trips to abort the run

        Returns:
            LoopResult describing how the run ended

        Raises:
            ConfigurationError: If the model or provider is misconfigured;
                raised before the first iteration
        """
        await self._validate()
        self._bind_session(session)

        token = cancel_token or CancellationToken()
        run_start = len(session.messages)
        if user_message is not None:
            if isinstance(user_message, str):
                user_message = Message(role="user", content=user_message)
            session.add_message(user_message)

        self.plan.start_run()
        guard = RepeatedCallGuard()
        usage = Usage()
        iteration = 0

        while iteration < self.config.max_iterations:
            if token.cancelled:
                return self._result(session, "cancelled", iteration, usage)
            iteration += 1
            logger.info("Loop iteration %d", iteration)

            assistant = Message(role="assistant", content="")
            accumulator = StreamAccumulator(assistant)
            try:
                await self._call_model(session, accumulator, token)
            except OperationCancelled:
                logger.info("Run cancelled during model call")
                self._abort_calls(assistant)
                return self._result(session, "cancelled", iteration, usage)
            except Exception as e:
                logger.error("Model call failed: %s", e)
                session.add_message(Message(role="assistant", content=f"❌ Error: {e}"))
                return self._result(session, "error", iteration, usage, error=str(e))

            usage.add(accumulator.usage)
            session.add_message(assistant)

            if not assistant.tool_calls:
                if self.plan.should_remind(session.messages[run_start:], self.tools):
                    session.add_message(self.plan.reminder())
                    continue
                logger.info("No tool calls, task complete")
                return self._result(session, "completed", iteration, usage, content=assistant.text)

            if guard.record(assistant.tool_calls):
                logger.error("Too many repeated tool calls, stopping loop")
                for call in assistant.tool_calls:
                    call.status = ToolCallStatus.ERROR
                    call.error = SKIPPED_REPEATED
                    session.add_message(self._tool_message(call, SKIPPED_REPEATED))
                session.add_message(Message(role="assistant", content=REPEATED_CALLS_MESSAGE))
                return self._result(
                    session, "repeated_calls", iteration, usage, error=REPEATED_CALLS_MESSAGE
                )

            try:
                outcome = await self._execute_batch(session, assistant.tool_calls, token)
            except OperationCancelled:
                logger.info("Run cancelled during tool execution")
                self._abort_calls(assistant)
                return self._result(session, "cancelled", iteration, usage)
            for result in outcome.results:
                session.add_message(result)

            if self.observer is not None and not outcome.rejected and outcome.mutated:
                errors = await self.observer.check(outcome.mutated, session.working_directory)
                if errors:
                    logger.info("Auto-check detected %d issue(s)", len(errors))
                    session.add_message(build_observation(errors, self.config.language))

        logger.warning("Reached maximum iterations (%d)", self.config.max_iterations)
        session.add_message(Message(role="assistant", content=MAX_ITERATIONS_MESSAGE))
        return self._result(
            session, "max_iterations", iteration, usage, error=MAX_ITERATIONS_MESSAGE
        )

    def _result(
        self,
        session: AgentSession,
        status: LoopStatus,
        iterations: int,
        usage: Usage,
        content: str | None = None,
        error: str | None = None,
    ) -> LoopResult:
        stats = session.context.stats
        return LoopResult(
            status=status,
            iterations=iterations,
            content=content,
            error=error,
            usage=usage,
            needs_handoff=bool(stats and stats.needs_handoff),
        )

    # -- Model call -----------------------------------------------------------

    def _prepare_messages(self, session: AgentSession) -> tuple[str | None, list[Message]]:
        history = session.history()
        try:
            optimized = session.context.optimize(history, self.config.context).messages
        except Exception as e:
            logger.warning("Context compression failed, sending full history: %s", e)
            optimized = history
        system, messages = split_system(optimized)
        return (system.text if system is not None else None), messages

    async def _call_model(
        self,
        session: AgentSession,
        accumulator: StreamAccumulator,
        token: CancellationToken,
    ) -> None:
        system_prompt, messages = self._prepare_messages(session)
        schemas = self.tools.schemas()

        async def attempt() -> None:
            accumulator.reset()
            stream = self.provider.stream(messages, schemas or None, system_prompt, token)
            try:
                await self._consume(stream, accumulator, token)
            finally:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()
            accumulator.finish()

        await retry_with_backoff(
            attempt,
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_delay,
            max_delay=self.config.max_retry_delay,
            multiplier=self.config.retry_backoff_multiplier,
            cancel_token=token,
        )

    async def _consume(
        self,
        stream: AsyncIterator,
        accumulator: StreamAccumulator,
        token: CancellationToken,
    ) -> None:
        iterator = stream.__aiter__()
        while not accumulator.done:
            try:
                event = await token.race(iterator.__anext__())
            except StopAsyncIteration:
                break
            accumulator.apply(event)

    # -- Tool execution -------------------------------------------------------

    async def _execute_batch(
        self,
        session: AgentSession,
        calls: list[ToolCall],
        token: CancellationToken,
    ) -> _BatchOutcome:
        """
        Execute one batch of tool calls.

        Read-only calls run concurrently and all finish before the first
        mutating call starts. Mutating calls run in emitted order. After a
        rejection the remaining mutating calls get a skipped result.

        Raises:
            OperationCancelled: If the token trips; nothing further is appended
        """
        outcome = _BatchOutcome()
        reads = [call for call in calls if self.tools.is_read_only(call.name)]
        writes = [call for call in calls if not self.tools.is_read_only(call.name)]
        logger.info("Executing %d read-only and %d mutating tool calls", len(reads), len(writes))

        if reads:
            token.raise_if_cancelled()
            messages = await asyncio.gather(
                *(self._run_call(session, call, token) for call in reads)
            )
            token.raise_if_cancelled()
            outcome.results.extend(messages)

        for call in writes:
            token.raise_if_cancelled()
            if outcome.rejected:
                call.status = ToolCallStatus.ERROR
                call.error = SKIPPED_AFTER_REJECTION
                outcome.results.append(self._tool_message(call, SKIPPED_AFTER_REJECTION))
                continue

            definition = self.tools.get(call.name)
            if self.approval_policy.needs_approval(definition):
                call.status = ToolCallStatus.AWAITING
                approved = await await_approval(
                    self.approval_gate,
                    self.approval_policy.category_for(definition),
                    describe_call(call),
                    token,
                )
                token.raise_if_cancelled()
                if not approved:
                    logger.info("Tool call %s (%s) rejected", call.id, call.name)
                    call.status = ToolCallStatus.REJECTED
                    call.error = "Rejected by user"
                    outcome.results.append(self._tool_message(call, REJECTED_RESULT))
                    outcome.rejected = True
                    continue

            message = await self._run_call(session, call, token)
            outcome.results.append(message)
            if call.status == ToolCallStatus.SUCCESS:
                outcome.mutated.append(call)

        return outcome

    async def _execute_with_retries(
        self, call: ToolCall, workspace_root: str | None, token: CancellationToken
    ) -> ToolExecutionResult:
        """Run one call with a per-attempt timeout and linear backoff on retryable errors."""
        attempts = max(1, self.config.max_retries)
        timeout = self.config.tool_timeout
        result = ToolExecutionResult(success=False, error="Tool execution failed")
        for attempt in range(1, attempts + 1):
            logger.debug("Executing tool %s (attempt %d/%d)", call.name, attempt, attempts)
            try:
                result = await asyncio.wait_for(
                    self.executor.execute(call.name, call.arguments, workspace_root), timeout
                )
            except asyncio.TimeoutError:
                result = ToolExecutionResult(
                    success=False, error=f"Tool execution timed out after {timeout:g}s"
                )
            except Exception as e:
                result = ToolExecutionResult(success=False, error=str(e) or type(e).__name__)

            if result.success:
                return result
            error = result.error or "Unknown error"
            if attempt >= attempts or not is_retryable_error(error):
                return result
            delay = self.config.retry_delay * attempt
            logger.warning(
                "Tool %s failed with retryable error (attempt %d/%d), retrying in %.2fs: %s",
                call.name,
                attempt,
                attempts,
                delay,
                error,
            )
            await token.sleep(delay)
        return result

    async def _run_call(
        self, session: AgentSession, call: ToolCall, token: CancellationToken
    ) -> Message:
        call.status = ToolCallStatus.RUNNING
        result = await self._execute_with_retries(call, session.working_directory, token)

        if result.success:
            content = serialize_output(result.output)
            call.status = ToolCallStatus.SUCCESS
            call.result = content
            if call.path and self.tools.is_read_only(call.name):
                session.mark_file_read(call.path)
        else:
            content = f"Error: {result.error or 'Unknown error'}"
            call.status = ToolCallStatus.ERROR
            call.error = result.error or "Unknown error"

        return self._tool_message(call, truncate_text(content, self.config.max_tool_result_chars))

    @staticmethod
    def _tool_message(call: ToolCall, content: str) -> Message:
        return Message(role="tool", content=content, tool_call_id=call.id, name=call.name)

    @staticmethod
    def _abort_calls(message: Message) -> None:
        for call in message.tool_calls:
            if call.status in _ACTIVE_STATUSES:
                call.status = ToolCallStatus.ERROR
                call.error = ABORTED
