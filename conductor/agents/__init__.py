"""The orchestration loop and its stop conditions, plan reminders and diagnostics."""

from .loop import AgentLoop
from .observe import DiagnosticsObserver, build_observation
from .plan import PlanTracker
from .stop_conditions import RepeatedCallGuard, batch_signature

__all__ = [
    "AgentLoop",
    "DiagnosticsObserver",
    "PlanTracker",
    "RepeatedCallGuard",
    "batch_signature",
    "build_observation",
]
