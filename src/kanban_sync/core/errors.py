"""Exception taxonomy shared by the client, storage layer and engine.

Engine-level errors (``AuthenticationRequired``, ``RateLimitExceeded``,
``ConfigurationMissing``) stop a sync pass early.  Record-level errors
(``RemoteAPIError``, ``FileSystemError``) are caught per record, logged
into the pass outcome, and processing continues with the next record.
"""

from __future__ import annotations

from datetime import datetime


class KanbanSyncError(Exception):
    """Base class for all kanban-sync errors."""


class AuthenticationRequired(KanbanSyncError):
    """No credential could be obtained from the token provider."""

    def __init__(self, message: str = "GitHub authentication required"):
        super().__init__(message)


class RateLimitExceeded(KanbanSyncError):
    """The remote API rejected a request because the rate limit is spent.

    Attributes:
        reset_time: When the limit resets, or ``None`` if the server did
            not say.
    """

    def __init__(self, reset_time: datetime | None = None):
        self.reset_time = reset_time
        when = (
            reset_time.astimezone().strftime("%H:%M:%S")
            if reset_time is not None
            else "soon"
        )
        super().__init__(
            f"GitHub API rate limit exceeded. Resets at {when}."
        )


class RemoteAPIError(KanbanSyncError):
    """A remote call returned a non-success response.

    ``status`` is ``0`` when the request never produced a response
    (connection refused, timeout, ...).
    """

    def __init__(self, method: str, path: str, status: int, body: str):
        self.method = method
        self.path = path
        self.status = status
        self.body = body
        super().__init__(
            f"GitHub API {method} {path} failed ({status}): {body}"
        )


class ConfigurationMissing(KanbanSyncError):
    """No remote repository is configured or detectable."""

    def __init__(
        self,
        message: str = "No GitHub repository configured or detected",
    ):
        super().__init__(message)


class FileSystemError(KanbanSyncError):
    """A directory creation, rename or write failed.

    Attributes:
        operation: Short name of the failed operation (``mkdir``,
            ``rename``, ``write``, ...).
        path: The path the operation was acting on.
    """

    def __init__(self, operation: str, path: str, reason: str = ""):
        self.operation = operation
        self.path = path
        message = f"File system {operation} failed for {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
