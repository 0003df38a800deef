"""Utility functions for conductor."""

from .retry import RetryState, compute_backoff_delay, retry_with_backoff
from .serializer import (
    canonical_arguments,
    is_json_serializable,
    safe_parse_arguments,
    serialize_output,
)

__all__ = [
    "RetryState",
    "canonical_arguments",
    "compute_backoff_delay",
    "is_json_serializable",
    "retry_with_backoff",
    "safe_parse_arguments",
    "serialize_output",
]
