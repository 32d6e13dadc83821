"""Exception hierarchy for blast-radius analysis."""

from __future__ import annotations


class BlastRadiusError(Exception):
    """Base class for all analyzer errors."""


class SourceUnavailableError(BlastRadiusError):
    """The file source for an application cannot be reached at all."""

    def __init__(self, app_id: str, reason: str = "") -> None:
        self.app_id = app_id
        self.reason = reason
        message = f"Source for application '{app_id}' is unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class FileAccessError(BlastRadiusError):
    """A single file could not be read (missing, unreadable, too large)."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read '{path}': {reason}")


class InvalidRequestError(BlastRadiusError):
    """An analysis request is malformed."""
