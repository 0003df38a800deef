"""JSON serialization utilities for tool outputs and tool arguments."""

import json
from typing import Any

from pydantic import BaseModel


def is_json_serializable(obj: Any) -> bool:
    """Check if an object is JSON serializable by attempting json.dumps."""
    try:
        json.dumps(obj)
        return True
    except (TypeError, ValueError):
        return False


def serialize_output(obj: Any) -> str:
    """Render a tool output as the text appended to the conversation.

    Strings pass through unchanged, Pydantic models use ``model_dump_json()``,
    other JSON-serializable values are dumped, and anything else falls back
    to ``str()``.
    """
    if obj is None:
        return ""
    if isinstance(obj, str):
        return obj
    if isinstance(obj, BaseModel):
        return obj.model_dump_json()
    if is_json_serializable(obj):
        return json.dumps(obj)
    return str(obj)


def canonical_arguments(arguments: Any) -> str:
    """Stable text form of tool arguments (sorted keys) for comparisons."""
    try:
        return json.dumps(arguments, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return str(arguments)


def safe_parse_arguments(arguments: Any) -> dict[str, Any]:
    """Parse tool arguments that may be a JSON string; never raises."""
    if isinstance(arguments, dict):
        return arguments
    if not isinstance(arguments, str) or not arguments.strip():
        return {}
    try:
        parsed = json.loads(arguments)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}
