"""
GitHub repository detection from the local git remote.

Reads ``git remote get-url origin`` in the workspace and extracts an
``owner/repo`` identifier from either remote URL form:

- ``https://github.com/owner/repo.git``
- ``git@github.com:owner/repo.git``
"""

import logging
import re
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

_HTTPS_PATTERN = re.compile(r"github\.com/([^/]+)/([^/]+?)(?:\.git)?/?$")
_SSH_PATTERN = re.compile(r"github\.com:([^/]+)/([^/]+?)(?:\.git)?/?$")


def parse_remote_url(url: str) -> str | None:
    """
    Extract ``owner/repo`` from a GitHub remote URL.

    Args:
        url: Remote URL as printed by git

    Returns:
        ``owner/repo``, or None if the URL is not a GitHub remote
    """
    url = url.strip()
    match = _HTTPS_PATTERN.search(url) or _SSH_PATTERN.search(url)
    if match is None:
        return None
    return f"{match.group(1)}/{match.group(2)}"


def detect_repository(workspace: Path) -> str | None:
    """
    Detect the GitHub repository of a workspace.

    Args:
        workspace: Directory inside the git working tree

    Returns:
        ``owner/repo``, or None if git is missing, the command fails,
        or origin is not a GitHub remote
    """
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            cwd=str(workspace),
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, NotADirectoryError) as e:
        logger.debug("Repository detection failed in %s: %s", workspace, e)
        return None

    if result.returncode != 0 or not result.stdout.strip():
        logger.debug("No origin remote in %s", workspace)
        return None

    repo = parse_remote_url(result.stdout)
    if repo is None:
        logger.debug("Origin of %s is not a GitHub remote", workspace)
    else:
        logger.info("Detected GitHub repository %s", repo)
    return repo
