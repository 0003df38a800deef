"""Post-mutation diagnostics."""

from __future__ import annotations

import logging

from ..tools.tool import ToolCatalog, ToolExecutor
from ..types.types import Message, ToolCall
from ..utils.serializer import serialize_output

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 3
_CLEAN_RESULTS = {"", "[]", "No diagnostics found"}
_ERROR_MARKERS = ("[error]", "failed to compile", "syntax error")

OBSERVATION_HEADERS = {
    "en": "[Observation] The following problems were detected in the changed files, please fix them:",
    "zh": "[Observation] 检测到以下代码问题，请修复：",
}


def is_real_error(diagnostics: str) -> bool:
    lowered = diagnostics.lower()
    return any(marker in lowered for marker in _ERROR_MARKERS)


class DiagnosticsObserver:
    """Runs a diagnostics tool on files touched by a mutating batch."""

    def __init__(
        self,
        executor: ToolExecutor,
        catalog: ToolCatalog | None = None,
        tool_name: str = "get_lint_errors",
    ):
        self.executor = executor
        self.catalog = catalog
        self.tool_name = tool_name

    def edited_paths(self, calls: list[ToolCall]) -> list[str]:
        paths: list[str] = []
        for call in calls:
            action = self.catalog.file_action(call.name) if self.catalog is not None else None
            if action not in ("create", "modify") or not call.path:
                continue
            if call.path.endswith("/") or call.path in paths:
                continue
            paths.append(call.path)
        return paths

    async def check(self, calls: list[ToolCall], workspace_root: str | None) -> list[str]:
        """
        Diagnose every file created or modified by ``calls``.

        Returns:
            One entry per file with real errors, formatted as
            ``File: <path>\\n<diagnostics>``
        """
        errors: list[str] = []
        for path in self.edited_paths(calls):
            try:
                result = await self.executor.execute(self.tool_name, {"path": path}, workspace_root)
            except Exception as e:
                logger.warning("Diagnostics for %s failed: %s", path, e)
                continue
            if not result.success:
                logger.debug("Diagnostics tool reported failure for %s: %s", path, result.error)
                continue
            output = serialize_output(result.output).strip()
            if output in _CLEAN_RESULTS or not is_real_error(output):
                continue
            errors.append(f"File: {path}\n{output}")
        return errors


def build_observation(errors: list[str], language: str = "en") -> Message:
    header = OBSERVATION_HEADERS.get(language, OBSERVATION_HEADERS["en"])
    body = "\n\n".join(errors[:MAX_REPORTED_ERRORS])
    return Message(role="user", content=f"{header}\n\n{body}")
