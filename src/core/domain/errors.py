"""Error taxonomy of the synchronization engine.

Every failure an operation can surface derives from `SyncError`, so the
screen boundary can catch exactly those and let programming errors through.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for failures surfaced to the user as an error message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class Unauthenticated(SyncError):
    """No bearer credential is available; raised before any network I/O."""

    def __init__(self, message: str = "Access token is missing. Please log in.") -> None:
        super().__init__(message)


class ValidationUnmet(SyncError):
    """A local precondition failed before any network call was attempted."""


class MirrorNotReady(SyncError):
    """A mutation was requested while the mirror was loading or torn down."""


class UnsupportedOperation(SyncError):
    """The resource has no endpoint configured for the requested operation."""


class RequestError(SyncError):
    """Server or transport failure.

    `status` is the HTTP status code, or `None` when no response arrived.
    `message` is the response body verbatim when present.
    """

    def __init__(self, status: int | None, message: str) -> None:
        super().__init__(message)
        self.status = status

    def __repr__(self) -> str:
        return f"RequestError(status={self.status!r}, message={self.message!r})"
