"""Pydantic models for the GitHub issue sync engine.

Defines the core data contracts used across all sync modules:

- ``Record``: A local task backed by one Markdown file.
- ``RemoteLink``: The GitHub issue a record mirrors.
- ``RemoteRecord``: A GitHub issue as fetched from the API.
- ``RemoteComment`` / ``IssueThread``: An issue's comment thread.
- ``SyncAction``: Enum of per-record decisions.
- ``SyncOutcome``: Aggregate results for one sync pass.

Records and remote data are frozen (immutable).  Changes are made with
``model_copy(update=...)`` and committed by replacing the instance, so
a half-applied change is never visible to the caller.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

DONE_STATUS = "done"
TODO_STATUS = "todo"
BACKLOG_STATUS = "backlog"

DEFAULT_STATUSES: tuple[str, ...] = (
    BACKLOG_STATUS,
    TODO_STATUS,
    "in-progress",
    "review",
    DONE_STATUS,
)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from hand-edited files are taken as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


Instant = Annotated[datetime, AfterValidator(_as_utc)]


class Priority(str, Enum):
    """Record priority levels."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SyncAction(str, Enum):
    """Possible decisions for a local/remote pair."""

    CREATE = "create"
    PULL = "pull"
    PUSH = "push"
    SKIP = "skip"


# ---------------------------------------------------------------------------
# Local side
# ---------------------------------------------------------------------------


class RemoteLink(BaseModel):
    """Link from a local record to the GitHub issue it mirrors.

    Attributes:
        remote_id: Issue number.
        repo: ``owner/repo`` the issue lives in.
        external_url: Browser URL of the issue.
        synced_at: Instant of the last successful reconciliation.
    """

    remote_id: int
    repo: str
    external_url: str = ""
    synced_at: Instant

    model_config = ConfigDict(frozen=True)

    def advanced(self, now: datetime) -> RemoteLink:
        """Return a copy with ``synced_at`` moved to *now*.

        ``synced_at`` only moves forward; an earlier *now* keeps the
        current value.
        """
        return self.model_copy(
            update={"synced_at": max(self.synced_at, now)}
        )


class Record(BaseModel):
    """A local task record.

    ``file_path`` always lies in the directory named after ``status``
    under the board root; the storage layer maintains that invariant.
    """

    id: str
    status: str
    priority: Priority = Priority.MEDIUM
    assignee: str | None = None
    due_date: str | None = None
    created: Instant
    modified: Instant
    completed_at: Instant | None = None
    labels: list[str] = Field(default_factory=list)
    order: int = 0
    content: str = ""
    file_path: Path | None = None
    remote_link: RemoteLink | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def title(self) -> str:
        from .mapper import split_content

        return split_content(self.content)[0]

    @property
    def body(self) -> str:
        from .mapper import split_content

        return split_content(self.content)[1]

    def is_linked_to(self, repo: str) -> bool:
        """True if this record mirrors an issue of *repo*."""
        return (
            self.remote_link is not None
            and self.remote_link.repo == repo
        )


# ---------------------------------------------------------------------------
# Remote side
# ---------------------------------------------------------------------------


class Reactions(BaseModel):
    """GitHub reaction counters."""

    plus_one: int = Field(default=0, alias="+1")
    minus_one: int = Field(default=0, alias="-1")
    laugh: int = 0
    hooray: int = 0
    confused: int = 0
    heart: int = 0
    rocket: int = 0
    eyes: int = 0

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, extra="ignore"
    )

    @classmethod
    def from_api(cls, payload: dict[str, Any] | None) -> Reactions:
        return cls.model_validate(payload or {})


class RemoteComment(BaseModel):
    """One comment in an issue thread."""

    id: int
    author: str
    avatar_url: str = ""
    body: str = ""
    created_at: Instant
    reactions: Reactions = Field(default_factory=Reactions)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> RemoteComment:
        user = payload.get("user") or {}
        return cls(
            id=payload["id"],
            author=user.get("login") or "unknown",
            avatar_url=user.get("avatar_url") or "",
            body=payload.get("body") or "",
            created_at=payload["created_at"],
            reactions=Reactions.from_api(payload.get("reactions")),
        )


class RemoteRecord(BaseModel):
    """A GitHub issue as returned by the REST API.

    Attributes:
        number: Issue number (the remote id).
        title: Issue title.
        body: Issue body; ``""`` when GitHub returns ``null``.
        state: ``"open"`` or ``"closed"``.
        html_url: Browser URL of the issue.
        created_at: Creation instant.
        updated_at: Last update instant, compared against ``synced_at``.
        assignee: Login of the (first) assignee, if any.
        labels: Label names.
        author: Login of the issue author.
        author_avatar: Avatar URL of the issue author.
        reactions: Reaction counters on the issue itself.
        is_pull_request: True when the item is a pull request.
    """

    number: int
    title: str
    body: str = ""
    state: str
    html_url: str = ""
    created_at: Instant
    updated_at: Instant
    assignee: str | None = None
    labels: list[str] = Field(default_factory=list)
    author: str = "unknown"
    author_avatar: str = ""
    reactions: Reactions = Field(default_factory=Reactions)
    is_pull_request: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def is_closed(self) -> bool:
        return self.state == "closed"

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> RemoteRecord:
        """Build a ``RemoteRecord`` from a raw issue JSON object."""
        user = payload.get("user") or {}
        assignee = payload.get("assignee") or {}
        return cls(
            number=payload["number"],
            title=payload.get("title") or "",
            body=payload.get("body") or "",
            state=payload.get("state") or "open",
            html_url=payload.get("html_url") or "",
            created_at=payload["created_at"],
            updated_at=payload["updated_at"],
            assignee=assignee.get("login") or None,
            labels=[
                label["name"]
                for label in payload.get("labels") or []
                if isinstance(label, dict) and label.get("name")
            ],
            author=user.get("login") or "unknown",
            author_avatar=user.get("avatar_url") or "",
            reactions=Reactions.from_api(payload.get("reactions")),
            is_pull_request=payload.get("pull_request") is not None,
        )


class IssueThread(BaseModel):
    """An issue body with its author, reactions and comments."""

    body: str
    author: str
    author_avatar: str = ""
    created_at: Instant
    reactions: Reactions = Field(default_factory=Reactions)
    comments: list[RemoteComment] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Pass outcome
# ---------------------------------------------------------------------------


class SyncOutcome(BaseModel):
    """Result of one sync pass.

    ``created``, ``updated`` (pulled) and ``pushed`` are disjoint: a
    record shows up in at most one of them.  ``errors`` is the single
    channel for partial-failure reporting.

    Attributes:
        repo: Repository the pass ran against (``None`` if it never
            started).
        created: Records created from previously unseen issues.
        updated: Records overwritten from newer remote issues.
        pushed: Records whose local changes were sent to GitHub.
        errors: One message per failed record or aborted pass.
        aborted: True when an engine-level error ended the pass early.
        started_at: When the pass started.
        completed_at: When the pass finished.
    """

    repo: str | None = None
    created: list[Record] = Field(default_factory=list)
    updated: list[Record] = Field(default_factory=list)
    pushed: list[Record] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    aborted: bool = False
    started_at: Instant | None = None
    completed_at: Instant | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def changed(self) -> list[Record]:
        """Every record the pass wrote, in outcome order."""
        return [*self.created, *self.updated, *self.pushed]

    def summary(self) -> str:
        """Return a short multi-line summary of the pass counts."""
        lines = [
            f"Repository: {self.repo or '(none)'}",
            f"Created: {len(self.created)}",
            f"Pulled: {len(self.updated)}",
            f"Pushed: {len(self.pushed)}",
            f"Errors: {len(self.errors)}",
        ]
        if self.aborted:
            lines.append("Aborted: yes")
        return "\n".join(lines)

