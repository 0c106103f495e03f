"""Runtime configuration for kanban-sync.

Reads board and GitHub settings from CLI args, environment variables,
.env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    KANBAN_ROOT: Board root directory (optional, default: .features)
    KANBAN_REPO: GitHub repository as owner/repo (optional, detected from git)
    GITHUB_TOKEN: GitHub token (optional here, required to sync)
    GITHUB_USER: Login of the token's account (optional)
    GITHUB_API_URL: API base URL (optional, default: https://api.github.com)
    KANBAN_COLUMNS: Comma-separated status columns (optional)
    KANBAN_TIMEOUT: HTTP read timeout in seconds (optional, default: 60)
    KANBAN_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from .core.client import DEFAULT_API_URL
from .sync.models import (
    BACKLOG_STATUS,
    DEFAULT_STATUSES,
    DONE_STATUS,
    TODO_STATUS,
)

logger = logging.getLogger(__name__)

DEFAULT_ROOT = ".features"
DEFAULT_TIMEOUT = 60.0

_REPO_PATTERN = re.compile(r"^[\w.-]+/[\w.-]+$")


@dataclass
class Config:
    root: Path
    repo: str | None = None
    token: str | None = None
    user: str | None = None
    api_url: str = DEFAULT_API_URL
    columns: tuple[str, ...] = field(default=DEFAULT_STATUSES)
    timeout: float = DEFAULT_TIMEOUT
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the repository, API URL, columns or timeout are
            invalid.
    """
    if config.repo is not None:
        config.repo = config.repo.strip()
        if not _REPO_PATTERN.match(config.repo):
            raise ValueError(
                f"Invalid repository '{config.repo}': expected owner/repo"
            )

    config.api_url = config.api_url.strip()
    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid GitHub API URL '{config.api_url}': must start with http:// or https://"
        )
    if not urlparse(config.api_url).hostname:
        raise ValueError(
            f"Invalid GitHub API URL '{config.api_url}': URL must include a hostname"
        )
    config.api_url = config.api_url.removesuffix("/")

    if len(set(config.columns)) != len(config.columns):
        raise ValueError(f"Duplicate columns in {list(config.columns)}")
    for required in (BACKLOG_STATUS, TODO_STATUS, DONE_STATUS):
        if required not in config.columns:
            raise ValueError(
                f"Column '{required}' is required; configured columns: "
                f"{list(config.columns)}"
            )

    if config.timeout <= 0:
        raise ValueError(
            f"Invalid timeout '{config.timeout}': must be a positive number"
        )

    if config.token is None:
        logger.debug("No token configured; GITHUB_TOKEN is read per request")


def _parse_columns(raw: str | list | tuple) -> tuple[str, ...]:
    if isinstance(raw, str):
        items = raw.split(",")
    else:
        items = [str(item) for item in raw]
    return tuple(item.strip() for item in items if item.strip())


def load_config(
    root: str | None = None,
    repo: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        root: Override board root (takes precedence over env var and YAML).
        repo: Override repository (takes precedence over env var and YAML).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flattened values from the YAML ``github`` and
            ``board`` sections.  Used as fallback when CLI arg and env
            var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is malformed after checking all sources.
    """
    fb = yaml_fallbacks or {}

    # --- String fields: CLI > env > YAML > default ---

    final_root = (
        root or os.getenv("KANBAN_ROOT") or fb.get("root") or DEFAULT_ROOT
    )
    final_repo = repo or os.getenv("KANBAN_REPO") or fb.get("repo") or None
    final_token = os.getenv("GITHUB_TOKEN") or fb.get("token") or None
    final_user = os.getenv("GITHUB_USER") or fb.get("user") or None
    final_api_url = (
        os.getenv("GITHUB_API_URL") or fb.get("api_url") or DEFAULT_API_URL
    )

    columns_raw = os.getenv("KANBAN_COLUMNS") or fb.get("columns")
    final_columns = (
        _parse_columns(columns_raw) if columns_raw else DEFAULT_STATUSES
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    if debug:
        final_debug = True
    else:
        env_debug = os.getenv("KANBAN_DEBUG")
        if env_debug is not None:
            final_debug = env_debug.lower() in ("true", "1", "yes", "on")
        else:
            final_debug = bool(fb.get("debug", False))

    # --- Numeric fields: env > YAML > default ---

    timeout_raw = os.getenv("KANBAN_TIMEOUT")
    if timeout_raw is not None:
        try:
            final_timeout = float(timeout_raw)
        except ValueError:
            raise ValueError(
                f"Invalid KANBAN_TIMEOUT '{timeout_raw}': must be a number of seconds"
            ) from None
    elif "timeout" in fb:
        final_timeout = float(fb["timeout"])
    else:
        final_timeout = DEFAULT_TIMEOUT

    config = Config(
        root=Path(final_root).expanduser(),
        repo=final_repo,
        token=final_token.strip() if final_token else None,
        user=final_user,
        api_url=final_api_url,
        columns=final_columns,
        timeout=final_timeout,
        debug=final_debug,
    )

    validate_config(config)

    return config
