"""Incremental parser for streamed tool-call argument JSON.

Argument text arrives in arbitrary chunks. Rather than re-parsing the whole
string on every chunk, the parser tracks nesting and string state as text is
fed and remembers the last position where the prefix can be closed into valid
JSON. That yields a best-effort partial value at any point, plus whether the
document is complete.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

_CLOSERS = {"{": "}", "[": "]"}


@dataclass
class PartialParseResult:
    value: Any | None
    complete: bool


@dataclass
class _Frame:
    opener: str
    expecting_key: bool = False


@dataclass
class IncrementalJSONParser:
    """Feed JSON text chunk by chunk and read a partial value at any time."""

    buffer: str = ""
    _stack: list[_Frame] = field(default_factory=list)
    _in_string: bool = False
    _string_is_key: bool = False
    _escape: bool = False
    _safe_length: int = 0
    _safe_closers: str = ""

    def feed(self, chunk: str) -> PartialParseResult:
        start = len(self.buffer)
        self.buffer += chunk
        for offset, char in enumerate(chunk):
            self._advance(char, start + offset)
        return self.result()

    def _closers(self) -> str:
        return "".join(_CLOSERS[frame.opener] for frame in reversed(self._stack))

    def _mark_safe(self, length: int) -> None:
        self._safe_length = length
        self._safe_closers = self._closers()

    def _advance(self, char: str, position: int) -> None:
        if self._in_string:
            if self._escape:
                self._escape = False
            elif char == "\\":
                self._escape = True
            elif char == '"':
                self._in_string = False
                if not self._string_is_key:
                    self._mark_safe(position + 1)
            return

        top = self._stack[-1] if self._stack else None
        if char == '"':
            self._in_string = True
            self._string_is_key = bool(top and top.opener == "{" and top.expecting_key)
        elif char in "{[":
            self._stack.append(_Frame(opener=char, expecting_key=char == "{"))
            self._mark_safe(position + 1)
        elif char in "}]":
            if self._stack:
                self._stack.pop()
            self._mark_safe(position + 1)
        elif char == ":":
            if top and top.opener == "{":
                top.expecting_key = False
        elif char == ",":
            # A scalar value ends at the comma; keep everything before it.
            if self._safe_length < position and self.buffer[self._safe_length:position].strip():
                self._mark_safe(position)
            if top and top.opener == "{":
                top.expecting_key = True

    @property
    def complete(self) -> bool:
        return (
            bool(self.buffer.strip())
            and not self._stack
            and not self._in_string
            and self._try_load(self.buffer) is not _INVALID
        )

    def result(self) -> PartialParseResult:
        if not self._stack and not self._in_string:
            value = self._try_load(self.buffer)
            if value is not _INVALID:
                return PartialParseResult(value=value, complete=True)

        if self._in_string and not self._string_is_key:
            text = self.buffer[:-1] if self._escape else self.buffer
            value = self._try_load(text + '"' + self._closers())
            if value is not _INVALID:
                return PartialParseResult(value=value, complete=False)

        if self._safe_length:
            value = self._try_load(self.buffer[: self._safe_length] + self._safe_closers)
            if value is not _INVALID:
                return PartialParseResult(value=value, complete=False)

        return PartialParseResult(value=None, complete=False)

    def finish(self) -> Any:
        """Parse the full buffer.

        Raises:
            ValueError: If the accumulated text is not valid JSON
        """
        if not self.buffer.strip():
            return {}
        return json.loads(self.buffer)

    @staticmethod
    def _try_load(text: str) -> Any:
        try:
            return json.loads(text)
        except ValueError:
            return _INVALID


_INVALID = object()


def parse_partial_json(text: str) -> PartialParseResult:
    """Best-effort parse of a possibly truncated JSON document."""
    return IncrementalJSONParser().feed(text)
