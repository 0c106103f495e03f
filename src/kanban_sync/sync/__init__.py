"""Two-way sync between board records and GitHub issues.

Public API for reconciling the Markdown records of a kanban board with
the issues of one GitHub repository.

Architecture
------------
Each linked record carries a ``synced_at`` pivot: the instant of its last
successful reconciliation.  A pass compares the issue's ``updated_at``
and the record's ``modified`` against that pivot to decide whether to
create, pull, push or skip.  When both sides changed, the newer side
wins wholesale and GitHub wins ties.

Modules:

- ``engine``    -- ``SyncEngine``: runs one pass, guarded by
  ``EngineState``.
- ``resolver``  -- ``decide`` and ``ConflictResolver``: the decision
  table and the record states each action produces.
- ``mapper``    -- status and title/body mapping between the two sides.
- ``models``    -- ``Record``, ``RemoteRecord``, ``SyncOutcome`` and
  friends.
- ``reporter``  -- Human-readable and JSON outcome formatting.

Usage example
-------------
::

    from pathlib import Path
    from kanban_sync.core import EnvTokenProvider, GitHubClient
    from kanban_sync.storage import FileStore, RecordStore
    from kanban_sync.sync import SyncEngine, format_sync_report

    store = RecordStore(FileStore(Path(".features")))
    engine = SyncEngine(
        client=GitHubClient(EnvTokenProvider()),
        store=store,
        repo="owner/repo",
    )

    outcome = engine.start_sync()
    print(format_sync_report(outcome))
"""

from .engine import EngineState, SyncEngine, SyncStatus
from .models import (
    IssueThread,
    Priority,
    Record,
    RemoteComment,
    RemoteLink,
    RemoteRecord,
    SyncAction,
    SyncOutcome,
)
from .reporter import format_sync_report, format_thread, outcome_to_json
from .resolver import ConflictResolver, decide

__all__ = [
    "ConflictResolver",
    "EngineState",
    "IssueThread",
    "Priority",
    "Record",
    "RemoteComment",
    "RemoteLink",
    "RemoteRecord",
    "SyncAction",
    "SyncEngine",
    "SyncOutcome",
    "SyncStatus",
    "decide",
    "format_sync_report",
    "format_thread",
    "outcome_to_json",
]
