"""GitHub client, credential providers and error types."""

from .auth import (
    Credential,
    EnvTokenProvider,
    StaticTokenProvider,
    TokenProvider,
)
from .client import GitHubClient
from .errors import (
    AuthenticationRequired,
    ConfigurationMissing,
    FileSystemError,
    KanbanSyncError,
    RateLimitExceeded,
    RemoteAPIError,
)

__all__ = [
    "AuthenticationRequired",
    "ConfigurationMissing",
    "Credential",
    "EnvTokenProvider",
    "FileSystemError",
    "GitHubClient",
    "KanbanSyncError",
    "RateLimitExceeded",
    "RemoteAPIError",
    "StaticTokenProvider",
    "TokenProvider",
]
