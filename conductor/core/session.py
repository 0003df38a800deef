"""Per-conversation state passed explicitly through the loop."""

from __future__ import annotations

import os
import uuid
from typing import TYPE_CHECKING

from ..memory.compaction import ContextManager
from ..memory.handoff import build_handoff_context, build_welcome_message
from ..memory.types import ContextConfig, HandoffDocument
from ..types.types import Message

if TYPE_CHECKING:
    from ..config import Language
    from ..memory.summarizer import SummaryRefiner
    from ..tools.tool import ToolCatalog


class AgentSession:
    """
    One active conversation.

    Holds the live message history (without the system message), the
    context manager that owns the rolling summary, and the set of files the
    agent has read. There is exactly one session per conversation; nothing
    here is process-global.
    """

    def __init__(
        self,
        system_prompt: str = "",
        working_directory: str | None = None,
        session_id: str | None = None,
        context: ContextManager | None = None,
        language: Language = "en",
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.system_prompt = system_prompt
        self.working_directory = working_directory
        self.language = language
        self.messages: list[Message] = []
        self.context = context or ContextManager()
        self.context.session_id = self.session_id
        self.context.working_directory = working_directory or ""
        self.continued_from: HandoffDocument | None = None
        self.welcome_message: str | None = None
        self._read_files: set[str] = set()

    @classmethod
    def create(
        cls,
        system_prompt: str = "",
        working_directory: str | None = None,
        context_config: ContextConfig | None = None,
        catalog: ToolCatalog | None = None,
        refiner: SummaryRefiner | None = None,
        language: Language = "en",
    ) -> AgentSession:
        """Create a session with its own context manager."""
        context = ContextManager(config=context_config, catalog=catalog, refiner=refiner)
        return cls(
            system_prompt=system_prompt,
            working_directory=working_directory,
            context=context,
            language=language,
        )

    @classmethod
    def from_handoff(
        cls,
        handoff: HandoffDocument,
        system_prompt: str = "",
        language: Language = "en",
        context_config: ContextConfig | None = None,
        catalog: ToolCatalog | None = None,
        refiner: SummaryRefiner | None = None,
    ) -> AgentSession:
        """
        Start a new session continuing from a handoff document.

        The continuation context is appended to the system prompt and the
        localized welcome text is available as ``welcome_message``.
        """
        continuation = build_handoff_context(handoff)
        prompt = f"{system_prompt}\n\n{continuation}" if system_prompt else continuation
        session = cls.create(
            system_prompt=prompt,
            working_directory=handoff.working_directory or None,
            context_config=context_config,
            catalog=catalog,
            refiner=refiner,
            language=language,
        )
        session.continued_from = handoff
        session.welcome_message = build_welcome_message(handoff.summary, language)
        return session

    @property
    def handoff(self) -> HandoffDocument | None:
        """Handoff document produced by the last level-4 compression, if any."""
        return self.context.handoff

    def add_message(self, message: Message) -> Message:
        self.messages.append(message)
        return message

    def history(self) -> list[Message]:
        """Full history for compression: system message first, when there is one."""
        if self.system_prompt:
            return [Message(role="system", content=self.system_prompt), *self.messages]
        return list(self.messages)

    def _normalize(self, path: str) -> str:
        if self.working_directory and not os.path.isabs(path):
            path = os.path.join(self.working_directory, path)
        return os.path.normcase(os.path.normpath(path))

    def mark_file_read(self, path: str) -> None:
        self._read_files.add(self._normalize(path))

    def has_read_file(self, path: str) -> bool:
        return self._normalize(path) in self._read_files

    def clear(self) -> None:
        """Drop history, read-file tracking and compression state."""
        self.messages.clear()
        self._read_files.clear()
        self.context.clear()
