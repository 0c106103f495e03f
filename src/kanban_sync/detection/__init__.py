"""
Repository detection module.

Works out which GitHub repository a workspace belongs to from its git
``origin`` remote.
"""

from .repository import detect_repository, parse_remote_url

__all__ = ["detect_repository", "parse_remote_url"]
