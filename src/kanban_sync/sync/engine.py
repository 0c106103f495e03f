"""Core sync engine that orchestrates one pass against a GitHub repository.

The ``SyncEngine`` ties together client, resolver and record store into
a complete sync pass.  It:

1. Resolves the repository (configured, or detected once from git).
2. Fetches every remote issue (at most 200) into a snapshot.
3. Indexes the local records linked to this repository by issue number.
4. Decides and applies CREATE / PULL / PUSH / SKIP per issue, in fetch
   order, consuming the index as it goes.
5. Leaves linked records missing from the fetch untouched.
6. Builds and returns a ``SyncOutcome``.

Error handling is per record: a failed push or file operation lands in
``outcome.errors`` and the pass continues.  Authentication and rate-limit
failures stop the pass; records applied before them stand.

A record's disk state and its in-memory state change together: the file
is relocated and rewritten first, and only then is the new ``Record``
placed in the outcome.  A failed rewrite moves the file back.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from kanban_sync.core.errors import (
    AuthenticationRequired,
    ConfigurationMissing,
    FileSystemError,
    RateLimitExceeded,
    RemoteAPIError,
)
from kanban_sync.detection.repository import detect_repository
from kanban_sync.sync.mapper import generate_record_id
from kanban_sync.sync.models import (
    IssueThread,
    Record,
    RemoteRecord,
    SyncAction,
    SyncOutcome,
)
from kanban_sync.sync.resolver import ConflictResolver

if TYPE_CHECKING:
    from kanban_sync.core.client import GitHubClient
    from kanban_sync.storage.records import RecordStore

logger = logging.getLogger(__name__)

ALREADY_SYNCING = "Sync already in progress"


class EngineState(str, Enum):
    """Whether a pass is in flight."""

    IDLE = "idle"
    SYNCING = "syncing"


class SyncStatus(str, Enum):
    """Status notifications sent to ``on_status_change``."""

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


StatusCallback = Callable[[SyncStatus, str | None], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncEngine:
    """Run sync passes between a record store and one GitHub repository.

    Only one pass runs at a time per engine; the guard is the
    ``EngineState`` of this instance, so it protects a single process
    only.

    Args:
        client: GitHub client for issue operations.
        store: Record store for the board root.
        repo: ``owner/repo``; detected from git when ``None``.
        workspace_root: Directory to run repository detection in.
        on_status_change: Optional callback for status notifications.
        clock: Returns the current instant (overridable for tests).
    """

    def __init__(
        self,
        client: GitHubClient,
        store: RecordStore,
        repo: str | None = None,
        workspace_root: Path | None = None,
        on_status_change: StatusCallback | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.store = store
        self.workspace_root = workspace_root
        self._repo = repo
        self._on_status_change = on_status_change
        self._clock = clock
        self._state = EngineState.IDLE

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def repo(self) -> str | None:
        return self._repo

    def is_connected(self) -> bool:
        return self._repo is not None

    def initialize(self) -> str | None:
        """Resolve the repository, detecting it from git if needed.

        Returns:
            The repository, or ``None`` if none is configured or
            detectable.
        """
        if self._repo is None and self.workspace_root is not None:
            self._repo = detect_repository(self.workspace_root)
        if self._repo is not None:
            self._notify(SyncStatus.IDLE)
        return self._repo

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def start_sync(
        self, records: Iterable[Record] | None = None
    ) -> SyncOutcome:
        """Run one sync pass.

        Args:
            records: The local records to reconcile.  Defaults to every
                record in the store.

        Returns:
            A ``SyncOutcome``.  While another pass is running, an
            outcome holding only the ``"Sync already in progress"``
            error is returned and nothing else happens.

        Raises:
            ConfigurationMissing: If no repository is configured or
                detectable.  The engine stays idle.
        """
        if self._state is EngineState.SYNCING:
            logger.warning(ALREADY_SYNCING)
            return SyncOutcome(repo=self._repo, errors=[ALREADY_SYNCING])

        if self._repo is None:
            self.initialize()
            if self._repo is None:
                raise ConfigurationMissing()

        repo = self._repo
        self._state = EngineState.SYNCING
        self._notify(SyncStatus.SYNCING)
        outcome = SyncOutcome(repo=repo, started_at=self._clock())

        try:
            self._run_pass(repo, records, outcome)
        except (AuthenticationRequired, RateLimitExceeded) as exc:
            logger.error("Sync of %s aborted: %s", repo, exc)
            outcome.errors.append(str(exc))
            outcome.aborted = True
        except RemoteAPIError as exc:
            # Only the initial fetch gets here; per-record calls are
            # handled inside the loop.
            logger.error("Failed to fetch issues of %s: %s", repo, exc)
            outcome.errors.append(str(exc))
            outcome.aborted = True
        finally:
            outcome.completed_at = self._clock()
            self._state = EngineState.IDLE

        logger.info(
            "Sync of %s finished: %d created, %d pulled, %d pushed, %d errors",
            repo,
            len(outcome.created),
            len(outcome.updated),
            len(outcome.pushed),
            len(outcome.errors),
        )
        if outcome.aborted:
            self._notify(SyncStatus.ERROR, outcome.errors[-1])
        else:
            self._notify(SyncStatus.SUCCESS)
        return outcome

    def _run_pass(
        self,
        repo: str,
        records: Iterable[Record] | None,
        outcome: SyncOutcome,
    ) -> None:
        local_records = (
            self.store.load_all() if records is None else list(records)
        )
        # Snapshot the whole fetch before deciding anything.
        remote_records = list(self.client.fetch_all(repo, outcome.errors))
        logger.info(
            "Fetched %d issues from %s", len(remote_records), repo
        )

        resolver = ConflictResolver(repo)
        index = self._index_linked(repo, local_records, outcome)

        for remote in remote_records:
            local = index.pop(remote.number, None)
            try:
                self._apply(resolver, local, remote, outcome)
            except (RemoteAPIError, FileSystemError, ValueError) as exc:
                logger.warning(
                    "Error syncing issue #%d: %s", remote.number, exc
                )
                outcome.errors.append(f"Issue #{remote.number}: {exc}")

        if index:
            # No deletion propagation: these stay as they are.
            logger.info(
                "%d linked records not in this fetch were left untouched",
                len(index),
            )

    @staticmethod
    def _index_linked(
        repo: str, records: list[Record], outcome: SyncOutcome
    ) -> dict[int, Record]:
        """Map issue number -> linked record, for this repository only."""
        index: dict[int, Record] = {}
        for record in records:
            link = record.remote_link
            if link is None or link.repo != repo:
                continue
            remote_id = link.remote_id
            if remote_id in index:
                message = (
                    f"Issue #{remote_id}: record '{record.id}' duplicates "
                    f"the link of '{index[remote_id].id}' and was ignored"
                )
                logger.warning(message)
                outcome.errors.append(message)
                continue
            index[remote_id] = record
        return index

    # ------------------------------------------------------------------
    # Per-record application
    # ------------------------------------------------------------------

    def _apply(
        self,
        resolver: ConflictResolver,
        local: Record | None,
        remote: RemoteRecord,
        outcome: SyncOutcome,
    ) -> None:
        action = resolver.decide(local, remote)
        now = self._clock()

        if action is SyncAction.CREATE or local is None:
            record = resolver.build_created(
                remote,
                generate_record_id(remote.title),
                self.client.current_user,
                now,
            )
            created = self.store.add(record)
            logger.info(
                "Created %s from issue #%d", created.file_path, remote.number
            )
            outcome.created.append(created)
            return

        if action is SyncAction.PULL:
            pulled = self._commit(
                local,
                resolver.apply_pull(
                    local, remote, self.client.current_user, now
                ),
            )
            logger.info("Pulled issue #%d into %s", remote.number, pulled.id)
            outcome.updated.append(pulled)
        elif action is SyncAction.PUSH:
            pushed = self._push(resolver, local, now)
            logger.info("Pushed %s to issue #%d", pushed.id, remote.number)
            outcome.pushed.append(pushed)
        else:
            logger.debug("Issue #%d unchanged", remote.number)

    def _push(
        self, resolver: ConflictResolver, record: Record, now: datetime
    ) -> Record:
        link = record.remote_link
        if link is None:
            raise ValueError(f"Record '{record.id}' is not linked to an issue")
        payload = resolver.push_payload(record)
        remote = self.client.push(resolver.repo, link.remote_id, **payload)
        return self._commit(
            record,
            resolver.apply_push_success(record, now, remote.updated_at),
        )

    def _commit(self, old: Record, new: Record) -> Record:
        """Move and rewrite *old*'s file so it holds *new*.

        Returns:
            *new* with its final ``file_path``.

        Raises:
            FileSystemError: If relocation or the rewrite fails.  The
                file is left where and as it was.
        """
        if old.file_path is None:
            raise FileSystemError("write", old.id, "record has no file")
        file_store = self.store.file_store
        old_path = Path(old.file_path).absolute()
        new_path = file_store.relocate(old_path, new.status)
        placed = new.model_copy(update={"file_path": new_path})
        try:
            self.store.write(placed)
        except FileSystemError:
            if new_path != old_path:
                try:
                    file_store.restore(new_path, old_path)
                except FileSystemError as undo_exc:
                    logger.error(
                        "Could not move %s back to %s: %s",
                        new_path,
                        old_path,
                        undo_exc,
                    )
            raise
        return placed

    # ------------------------------------------------------------------
    # Single-record operations
    # ------------------------------------------------------------------

    def push_record(self, record: Record) -> Record:
        """Push one linked record outside a pass.

        Records that are not linked to the engine's repository are
        returned unchanged.

        Raises:
            AuthenticationRequired, RateLimitExceeded, RemoteAPIError,
            FileSystemError: As raised by the push or the rewrite.
        """
        if self._repo is None or not record.is_linked_to(self._repo):
            return record
        return self._push(ConflictResolver(self._repo), record, self._clock())

    def fetch_thread(self, remote_id: int) -> IssueThread:
        """Fetch the comment thread of an issue in the engine's repository.

        Raises:
            ConfigurationMissing: If no repository is configured or
                detectable.
        """
        repo = self._repo or self.initialize()
        if repo is None:
            raise ConfigurationMissing()
        return self.client.fetch_thread(repo, remote_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _notify(
        self, status: SyncStatus, message: str | None = None
    ) -> None:
        if self._on_status_change is not None:
            self._on_status_change(status, message)
