"""Status and content mapping between local records and GitHub issues.

Pure functions, no I/O:

1. **Status** -- a closed issue is ``done``; an open issue assigned to
   the authenticated user is ``todo``; any other open issue is
   ``backlog``.  Pushing maps ``done`` to ``closed`` and everything else
   to ``open``.
2. **Content** -- the first Markdown heading line of a record is the
   issue title, everything after that line is the issue body.  Titles
   also give new records their ids.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING

from kanban_sync.sync.models import (
    BACKLOG_STATUS,
    DONE_STATUS,
    TODO_STATUS,
)

if TYPE_CHECKING:
    from kanban_sync.sync.models import RemoteRecord

UNTITLED = "Untitled"
MAX_ID_LENGTH = 60

_HEADING_PATTERN = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


# ------------------------------------------------------------------
# Status
# ------------------------------------------------------------------


def to_local_status(
    remote: RemoteRecord, current_user: str | None
) -> str:
    """Map an issue's state and assignment onto a local status."""
    if remote.is_closed:
        return DONE_STATUS
    if current_user and remote.assignee == current_user:
        return TODO_STATUS
    return BACKLOG_STATUS


def to_remote_state(status: str) -> str:
    """Map a local status onto a GitHub issue state."""
    return "closed" if status == DONE_STATUS else "open"


def transition_status(
    current: str,
    resolved: str,
    completed_at: datetime | None,
    now: datetime,
) -> tuple[str, datetime | None]:
    """Apply a remotely resolved status to a local one.

    Only crossings of the terminal boundary change the local status:
    a reopened issue moves a ``done`` record back to *resolved* and
    clears ``completed_at``; a closed issue moves a non-terminal record
    to ``done`` and stamps ``completed_at``.  A record that is already
    on the right side of the boundary keeps its column.

    Returns:
        ``(status, completed_at)`` to store on the record.
    """
    if current == DONE_STATUS and resolved != DONE_STATUS:
        return resolved, None
    if current != DONE_STATUS and resolved == DONE_STATUS:
        return DONE_STATUS, now
    return current, completed_at


# ------------------------------------------------------------------
# Content
# ------------------------------------------------------------------


def split_content(content: str) -> tuple[str, str]:
    """Split record content into ``(title, body)``.

    The title is the first line matching ``# heading``; the body is
    everything after that line, trimmed.  Content with no heading has
    title ``"Untitled"`` and is the body in full.
    """
    match = _HEADING_PATTERN.search(content)
    if match is None:
        return UNTITLED, content
    title = match.group(1).strip()
    body = content[match.end() :].strip()
    return title, body


def compose_content(title: str, body: str) -> str:
    """Inverse of ``split_content``: ``# title`` plus an optional body."""
    if body:
        return f"# {title}\n\n{body}"
    return f"# {title}"


def generate_record_id(title: str) -> str:
    """Derive a file-system friendly id from a record title.

    ``"Fix: Login bug!"`` becomes ``"fix-login-bug"``.  Empty results
    fall back to ``"untitled"``.
    """
    slug = _SLUG_PATTERN.sub("-", title.lower()).strip("-")
    slug = slug[:MAX_ID_LENGTH].rstrip("-")
    return slug or "untitled"
