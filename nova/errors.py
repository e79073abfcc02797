"""Shared error types for nova.

Resolution and handler failures are caught at the dispatcher boundary and
turned into result objects. Only infrastructure failures (the reasoning
provider being unreachable) travel up to the pipeline caller.
"""

from typing import Any


class NovaError(Exception):
    """Base error for nova."""


class ResolutionError(NovaError):
    """A plan could not be mapped onto exactly one target."""

    reason = "unresolved"

    def __init__(self, message: str, criteria: dict[str, str] | None = None):
        super().__init__(message)
        self.criteria = dict(criteria or {})


class MissingIdentificationError(ResolutionError):
    """The plan carries no identifier and no usable search criteria."""

    reason = "missing_identification"


class NoMatchError(ResolutionError):
    """Search criteria were derived but the mailbox returned nothing."""

    reason = "no_match"


class AccountResolutionError(ResolutionError):
    """Requested account is missing or does not match a configured account."""

    reason = "ambiguous_account"

    def __init__(self, message: str, available: list[str] | None = None):
        super().__init__(message)
        self.available = list(available or [])


class HandlerError(NovaError):
    """An external collaborator threw while an action handler was running."""

    def __init__(self, action: str, cause: Exception | str):
        super().__init__(f"{action}: {cause}")
        self.action = action
        self.cause = cause


class CorruptStateError(NovaError):
    """A persisted record could not be decoded."""

    def __init__(self, key: str, raw: Any = None):
        super().__init__(f"Corrupt record at {key!r}")
        self.key = key
        self.raw = raw


class ConfigurationError(NovaError):
    """A required collaborator or setting is missing."""


class ReasoningError(NovaError):
    """The reasoning provider call failed (network/auth/model/etc.)."""


class PlanValidationError(NovaError):
    """A plan is missing fields its action requires."""

    def __init__(self, action: str, message: str):
        super().__init__(message)
        self.action = action
