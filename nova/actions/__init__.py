"""Plan resolution and action dispatch."""

from nova.actions.dispatcher import ActionDispatcher
from nova.actions.resolver import EmailTarget, PlanResolver, ResolutionFailure, ResolvedEmail
from nova.actions.types import ActionExecutionResult, PlanAction, parse_action

__all__ = [
    "ActionDispatcher",
    "ActionExecutionResult",
    "EmailTarget",
    "PlanAction",
    "PlanResolver",
    "ResolutionFailure",
    "ResolvedEmail",
    "parse_action",
]
