"""Exceptions raised by the usage tracker."""

from __future__ import annotations

from typing import Any, Optional


class UsageTrackerError(Exception):
    """Base class for usage tracker errors."""


class AuthorizationDenied(UsageTrackerError):
    """Raised when usage data is requested before access was granted.

    Callers should route the user to the one-time access flow instead of
    retrying.
    """


class MalformedEvent(UsageTrackerError):
    """Raised for a transition event that cannot be interpreted."""

    def __init__(self, message: str, raw: Optional[Any] = None) -> None:
        super().__init__(message)
        self.raw = raw


class LookupMiss(UsageTrackerError):
    """Raised when no display metadata is known for an app."""

    def __init__(self, app_id: str) -> None:
        super().__init__(f"No metadata for app {app_id!r}")
        self.app_id = app_id
