"""Timestamp-based conflict resolution for the sync engine.

Each local/remote pair is classified by comparing instants against the
record's ``synced_at`` pivot:

============  ========================  ==========================  ======
local record  remote.updated > synced   local.modified > synced     action
============  ========================  ==========================  ======
absent        --                        --                          CREATE
present       no                        no                          SKIP
present       yes                       no                          PULL
present       no                        yes                         PUSH
present       yes                       yes                         PULL if
                                                                    remote.updated
                                                                    >= local.modified
                                                                    else PUSH
============  ========================  ==========================  ======

Remote wins ties.  Content is never merged: the newer side replaces the
other wholesale.

The ``ConflictResolver`` also builds the new record states for each
action.  It never touches disk or network; the engine persists what it
returns.
"""

from __future__ import annotations

from datetime import datetime

from kanban_sync.sync.mapper import (
    compose_content,
    split_content,
    to_local_status,
    to_remote_state,
    transition_status,
)
from kanban_sync.sync.models import (
    DONE_STATUS,
    Priority,
    Record,
    RemoteLink,
    RemoteRecord,
    SyncAction,
)


def decide(local: Record | None, remote: RemoteRecord) -> SyncAction:
    """Classify one pair according to the decision table above.

    Args:
        local: The linked local record, or ``None`` if the issue has
            never been seen locally.
        remote: The freshly fetched issue.

    Returns:
        The ``SyncAction`` to apply.
    """
    if local is None or local.remote_link is None:
        return SyncAction.CREATE

    synced_at = local.remote_link.synced_at
    remote_changed = remote.updated_at > synced_at
    local_changed = local.modified > synced_at

    if remote_changed and local_changed:
        if remote.updated_at >= local.modified:
            return SyncAction.PULL
        return SyncAction.PUSH
    if remote_changed:
        return SyncAction.PULL
    if local_changed:
        return SyncAction.PUSH
    return SyncAction.SKIP


def _require_link(record: Record) -> RemoteLink:
    if record.remote_link is None:
        raise ValueError(f"Record '{record.id}' is not linked to an issue")
    return record.remote_link


class ConflictResolver:
    """Decide and build record states for one repository.

    Args:
        repo: The ``owner/repo`` records are linked against.
    """

    def __init__(self, repo: str) -> None:
        self.repo = repo

    def decide(
        self, local: Record | None, remote: RemoteRecord
    ) -> SyncAction:
        return decide(local, remote)

    # ------------------------------------------------------------------
    # CREATE
    # ------------------------------------------------------------------

    def build_created(
        self,
        remote: RemoteRecord,
        record_id: str,
        current_user: str | None,
        now: datetime,
    ) -> Record:
        """Instantiate a new local record from an unseen issue.

        ``file_path`` is left unset; the storage layer assigns it.
        """
        status = to_local_status(remote, current_user)
        return Record(
            id=record_id,
            status=status,
            priority=Priority.MEDIUM,
            assignee=remote.assignee,
            due_date=None,
            created=now,
            modified=now,
            completed_at=now if status == DONE_STATUS else None,
            labels=list(remote.labels),
            order=0,
            content=compose_content(remote.title, remote.body),
            remote_link=RemoteLink(
                remote_id=remote.number,
                repo=self.repo,
                external_url=remote.html_url,
                synced_at=now,
            ),
        )

    # ------------------------------------------------------------------
    # PULL
    # ------------------------------------------------------------------

    def apply_pull(
        self,
        record: Record,
        remote: RemoteRecord,
        current_user: str | None,
        now: datetime,
    ) -> Record:
        """Return *record* overwritten from *remote*.

        A blank remote assignee never clears a local one; labels are
        always replaced.

        Raises:
            ValueError: If *record* is not linked to an issue.
        """
        link = _require_link(record)
        resolved = to_local_status(remote, current_user)
        status, completed_at = transition_status(
            record.status, resolved, record.completed_at, now
        )
        return record.model_copy(
            update={
                "content": compose_content(remote.title, remote.body),
                "status": status,
                "completed_at": completed_at,
                "assignee": remote.assignee or record.assignee,
                "labels": list(remote.labels),
                "modified": max(record.modified, now),
                "remote_link": link.advanced(now),
            }
        )

    # ------------------------------------------------------------------
    # PUSH
    # ------------------------------------------------------------------

    @staticmethod
    def push_payload(record: Record) -> dict[str, str]:
        """Build the ``PATCH`` body for *record*."""
        title, body = split_content(record.content)
        return {
            "title": title,
            "body": body,
            "state": to_remote_state(record.status),
        }

    @staticmethod
    def apply_push_success(
        record: Record,
        now: datetime,
        remote_updated: datetime | None = None,
    ) -> Record:
        """Return *record* with ``synced_at`` advanced after a push.

        When the server reports the issue's new ``updated_at`` and it is
        later than *now*, that instant is used so the push is not seen
        as a remote change on the next pass.

        Raises:
            ValueError: If *record* is not linked to an issue.
        """
        link = _require_link(record)
        pivot = now
        if remote_updated is not None and remote_updated > now:
            pivot = remote_updated
        return record.model_copy(
            update={"remote_link": link.advanced(pivot)}
        )
