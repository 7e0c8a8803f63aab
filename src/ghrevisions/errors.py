from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    CONFIGURATION_INVALID = "CONFIGURATION_INVALID"
    REVISION_NOT_FOUND = "REVISION_NOT_FOUND"
    PATH_NOT_FOUND = "PATH_NOT_FOUND"
    REMOTE_FAILED = "REMOTE_FAILED"
    REMOTE_AUTH_FAILED = "REMOTE_AUTH_FAILED"
    REMOTE_RATE_LIMITED = "REMOTE_RATE_LIMITED"
    REMOTE_CONFLICT = "REMOTE_CONFLICT"


class RevisionsError(Exception):
    """Raised for every expected failure of a revision operation.

    Propagates unchanged to the host application. Business logic never
    catches it to substitute a default; the host decides how to present it.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }


class ConfigurationError(RevisionsError):
    """Required credentials or repository coordinates are missing."""


class NotFoundError(RevisionsError):
    """A path or revision has no corresponding tree entry or commit."""


class RemoteError(RevisionsError):
    """The GitHub API call failed (network, auth, rate limit, conflict)."""
