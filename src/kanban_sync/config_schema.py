"""Unified configuration schema for kanban_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the GitHub connection, the board layout and logging.
Includes an adapter that flattens it into the ``yaml_fallbacks`` dict
``load_config`` expects.

Usage:
    from kanban_sync.config_schema import build_config, to_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .core.client import DEFAULT_API_URL

# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GitHubSection(BaseModel):
    """GitHub connection settings.

    All fields are optional to support zero-config: env vars, CLI args
    and git detection can supply them at runtime instead.
    """

    repo: str | None = Field(
        default=None, description="Repository as owner/repo"
    )
    token: str | None = Field(default=None, description="GitHub token")
    user: str | None = Field(
        default=None, description="Login of the token's account"
    )
    api_url: str = Field(
        default=DEFAULT_API_URL, description="GitHub API base URL"
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="HTTP read timeout in seconds",
    )

    model_config = {"frozen": True}


class BoardSection(BaseModel):
    """Board layout settings."""

    root: str | None = Field(
        default=None, description="Board root directory"
    )
    columns: list[str] | None = Field(
        default=None, description="Ordered status columns"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: str = Field(default="text", description="text or json")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    github: GitHubSection = Field(default_factory=GitHubSection)
    board: BoardSection = Field(default_factory=BoardSection)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Raises:
        pydantic.ValidationError: If a section holds invalid values.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def to_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten the YAML sections into ``load_config`` fallbacks.

    Only values that were actually set are included, so built-in
    defaults in ``load_config`` still apply.
    """
    fallbacks: dict[str, Any] = {}
    fallbacks.update(unified.github.model_dump(exclude_unset=True))
    fallbacks.update(unified.board.model_dump(exclude_unset=True))
    return {key: value for key, value in fallbacks.items() if value is not None}
