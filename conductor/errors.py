"""Exception hierarchy and retryable-error classification."""

from __future__ import annotations

import asyncio
import re
import socket

import httpx

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

_RETRYABLE_PATTERNS = [
    re.compile(r"timeout", re.IGNORECASE),
    re.compile(r"timed out", re.IGNORECASE),
    re.compile(r"ECONNRESET", re.IGNORECASE),
    re.compile(r"ECONNREFUSED", re.IGNORECASE),
    re.compile(r"ETIMEDOUT", re.IGNORECASE),
    re.compile(r"ENOTFOUND", re.IGNORECASE),
    re.compile(r"connection (reset|refused)", re.IGNORECASE),
    re.compile(r"network", re.IGNORECASE),
    re.compile(r"temporarily unavailable", re.IGNORECASE),
    re.compile(r"rate limit", re.IGNORECASE),
    re.compile(r"\b(429|500|502|503|504)\b"),
]


class ConductorError(Exception):
    """Base class for all errors raised by conductor."""


class ConfigurationError(ConductorError):
    """Fatal configuration problem detected before the loop starts."""


class OperationCancelled(ConductorError):
    """The cancellation token tripped at a suspension point."""


class ModelCallError(ConductorError):
    """A model call failed at the transport or provider level."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        if retryable is None:
            if status_code is not None:
                retryable = status_code in RETRYABLE_STATUS_CODES
            else:
                retryable = _matches_retryable_pattern(message)
        self.retryable = retryable


def _matches_retryable_pattern(message: str) -> bool:
    return any(pattern.search(message) for pattern in _RETRYABLE_PATTERNS)


def is_retryable_error(error: BaseException | str | None) -> bool:
    """Classify a failure as retryable (transient) or not.

    Retryable failures are timeouts, connection resets/refusals, DNS failures,
    rate limiting and 5xx responses. Strings and unknown exception types are
    classified by message.
    """
    if error is None:
        return False
    if isinstance(error, str):
        return _matches_retryable_pattern(error)
    if isinstance(error, ModelCallError):
        return error.retryable
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    if isinstance(
        error,
        (
            httpx.TimeoutException,
            httpx.NetworkError,
            httpx.RemoteProtocolError,
            asyncio.TimeoutError,
            TimeoutError,
            ConnectionError,
            socket.gaierror,
        ),
    ):
        return True
    if isinstance(error, (OperationCancelled, ConfigurationError)):
        return False
    return _matches_retryable_pattern(str(error))
