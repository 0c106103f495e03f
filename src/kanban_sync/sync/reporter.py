"""Sync outcome and issue thread formatting functions.

Provides human-readable and machine-readable output for sync passes:

- ``format_sync_report`` -- full post-sync summary.
- ``format_thread`` -- an issue thread as plain text.
- ``outcome_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import IssueThread, Record, SyncOutcome

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _describe(record: Record) -> str:
    link = record.remote_link
    issue = f"#{link.remote_id}" if link is not None else "(unlinked)"
    return f"{issue} {record.title} [{record.status}]"


def format_sync_report(outcome: SyncOutcome) -> str:
    """Format a sync outcome as human-readable text.

    Sections are only included when they contain at least one record.

    Args:
        outcome: The finished pass outcome.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = f"Sync report for '{outcome.repo or '(no repository)'}'"
    if outcome.aborted:
        header += " (ABORTED)"
    lines.append(header)
    if outcome.started_at:
        lines.append(f"Started: {outcome.started_at.isoformat()}")
    if outcome.completed_at:
        lines.append(f"Completed: {outcome.completed_at.isoformat()}")
    lines.append("")

    lines.append(
        f"{len(outcome.created)} created, "
        f"{len(outcome.updated)} pulled, "
        f"{len(outcome.pushed)} pushed, "
        f"{len(outcome.errors)} errors"
    )
    lines.append("")

    sections = (
        ("Created from GitHub:", outcome.created),
        ("Pulled from GitHub:", outcome.updated),
        ("Pushed to GitHub:", outcome.pushed),
    )
    for title, records in sections:
        if not records:
            continue
        lines.append(title)
        for record in records:
            lines.append(f"  {_describe(record)}")
        lines.append("")

    if outcome.errors:
        lines.append("Errors:")
        for error in outcome.errors:
            lines.append(f"  {error}")
        lines.append("")

    return "\n".join(lines).rstrip()


def format_thread(thread: IssueThread) -> str:
    """Format an issue thread, oldest comment last."""
    lines = [
        f"{thread.author} opened on {thread.created_at.isoformat()}"
        f" (+1: {thread.reactions.plus_one})",
        "",
        thread.body or "(no description)",
    ]
    for comment in thread.comments:
        lines.append("")
        lines.append(
            f"--- {comment.author} on {comment.created_at.isoformat()}"
            f" (+1: {comment.reactions.plus_one})"
        )
        lines.append(comment.body)
    return "\n".join(lines)


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def _record_to_json(record: Record) -> dict[str, Any]:
    link = record.remote_link
    return {
        "id": record.id,
        "title": record.title,
        "status": record.status,
        "file_path": str(record.file_path) if record.file_path else None,
        "issue": link.remote_id if link is not None else None,
    }


def outcome_to_json(outcome: SyncOutcome) -> dict[str, Any]:
    """Convert a sync outcome to a JSON-serialisable dict.

    Returns:
        Dict with ``repo``, ``aborted``, ``summary`` counts, one list
        per category, and ``errors``.
    """
    return {
        "repo": outcome.repo,
        "aborted": outcome.aborted,
        "started_at": (
            outcome.started_at.isoformat() if outcome.started_at else None
        ),
        "completed_at": (
            outcome.completed_at.isoformat()
            if outcome.completed_at
            else None
        ),
        "summary": {
            "created": len(outcome.created),
            "updated": len(outcome.updated),
            "pushed": len(outcome.pushed),
            "errors": len(outcome.errors),
        },
        "created": [_record_to_json(r) for r in outcome.created],
        "updated": [_record_to_json(r) for r in outcome.updated],
        "pushed": [_record_to_json(r) for r in outcome.pushed],
        "errors": list(outcome.errors),
    }
