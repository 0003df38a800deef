"""Per-conversation runtime state."""

from .cancellation import CancellationToken
from .session import AgentSession

__all__ = ["AgentSession", "CancellationToken"]
