"""Record file codec and record store.

Each record is one Markdown file with a YAML header block::

    ---
    id: fix-login-bug
    status: todo
    priority: medium
    assignee: octocat
    dueDate: null
    created: '2026-01-01T00:00:00+00:00'
    modified: '2026-01-02T00:00:00+00:00'
    completedAt: null
    labels:
    - bug
    order: 0
    github:
      issueNumber: 12
      repo: owner/repo
      htmlUrl: https://github.com/owner/repo/issues/12
      syncedAt: '2026-01-02T00:00:00+00:00'
    ---
    # Fix login bug

    Body text.

Key design choices:

* **Encoding detection** -- files are read as bytes and decoded with
  charset-normalizer so hand-edited files in legacy encodings load.
* **Atomic writes** -- ``write()`` writes to a temp file in the target
  directory then calls ``os.replace()`` so readers never see a partial
  record.
* **Path wins** -- on load, the directory a file sits in is its status;
  a disagreeing header is corrected in memory and logged.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from charset_normalizer import from_bytes
from pydantic import ValidationError

from kanban_sync.core.errors import FileSystemError
from kanban_sync.storage.filestore import FileStore
from kanban_sync.sync.mapper import (
    compose_content,
    generate_record_id,
    transition_status,
)
from kanban_sync.sync.models import (
    BACKLOG_STATUS,
    DONE_STATUS,
    Priority,
    Record,
)

logger = logging.getLogger(__name__)

_HEADER_PATTERN = re.compile(
    r"\A\ufeff?---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL
)


class RecordFormatError(ValueError):
    """A record file has no header block or an invalid one."""


# =============================================================================
# Codec
# =============================================================================


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _plain(value: Any) -> Any:
    """Turn YAML-native dates back into strings pydantic can parse."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def serialize_record(record: Record) -> str:
    """Render *record* as header block plus content."""
    header: dict[str, Any] = {
        "id": record.id,
        "status": record.status,
        "priority": record.priority.value,
        "assignee": record.assignee,
        "dueDate": record.due_date,
        "created": _iso(record.created),
        "modified": _iso(record.modified),
        "completedAt": _iso(record.completed_at),
        "labels": list(record.labels),
        "order": record.order,
    }
    link = record.remote_link
    if link is not None:
        header["github"] = {
            "issueNumber": link.remote_id,
            "repo": link.repo,
            "htmlUrl": link.external_url,
            "syncedAt": _iso(link.synced_at),
        }
    dumped = yaml.safe_dump(
        header,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"---\n{dumped}---\n{record.content.rstrip()}\n"


def parse_record(text: str, path: Path | None = None) -> Record:
    """Parse a record file's text.

    Args:
        text: Full file content.
        path: Where the text was read from; stored as ``file_path``.

    Returns:
        The parsed ``Record``.

    Raises:
        RecordFormatError: If the header block is missing, is not a
            mapping, or does not validate.
    """
    match = _HEADER_PATTERN.match(text)
    if match is None:
        raise RecordFormatError(f"No header block in {path or 'record'}")
    try:
        header = yaml.safe_load(match.group(1))
    except yaml.YAMLError as exc:
        raise RecordFormatError(
            f"Invalid header in {path or 'record'}: {exc}"
        ) from exc
    if not isinstance(header, dict):
        raise RecordFormatError(
            f"Header in {path or 'record'} is not a mapping"
        )

    content = text[match.end() :].strip("\r\n")
    github = header.get("github")
    link = None
    if isinstance(github, dict) and github.get("issueNumber") is not None:
        link = {
            "remote_id": github.get("issueNumber"),
            "repo": github.get("repo") or "",
            "external_url": github.get("htmlUrl") or "",
            "synced_at": _plain(github.get("syncedAt")),
        }

    fallback_id = path.stem if path is not None else None
    try:
        return Record(
            id=str(header.get("id") or fallback_id or "untitled"),
            status=str(header.get("status") or BACKLOG_STATUS),
            priority=header.get("priority") or Priority.MEDIUM,
            assignee=header.get("assignee") or None,
            due_date=_plain(header.get("dueDate")) or None,
            created=_plain(header.get("created")),
            modified=_plain(header.get("modified")),
            completed_at=_plain(header.get("completedAt")) or None,
            labels=[str(label) for label in header.get("labels") or []],
            order=header.get("order") or 0,
            content=content,
            file_path=path,
            remote_link=link,
        )
    except ValidationError as exc:
        raise RecordFormatError(
            f"Invalid record header in {path or 'record'}: {exc}"
        ) from exc


# =============================================================================
# File I/O
# =============================================================================


def read_text(path: Path) -> str:
    """Read a file with automatic encoding detection.

    Defaults to UTF-8 for empty files or when detection fails.
    """
    raw = path.read_bytes()
    if not raw:
        return ""
    best = from_bytes(raw).best()
    if best is None:
        return raw.decode("utf-8", errors="replace")
    return str(best)


def atomic_write(path: Path, content: str) -> None:
    """Write *content* to *path* via a temp file and ``os.replace``.

    Raises:
        FileSystemError: If the write or the replace fails.  No partial
            file is left behind.
    """
    tmp_path = ""
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent), prefix=".", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.replace(tmp_path, path)
    except OSError as exc:
        if tmp_path:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise FileSystemError(
            "write", str(path), exc.strerror or str(exc)
        ) from exc


# =============================================================================
# Store
# =============================================================================


class RecordStore:
    """Load, create, write and delete record files under a ``FileStore``.

    Args:
        file_store: The status-directory layout to work in.
    """

    def __init__(self, file_store: FileStore) -> None:
        self.file_store = file_store

    def load_all(self) -> list[Record]:
        """Load every record file that sits directly in a status directory.

        Files that cannot be parsed are skipped with a warning.
        """
        records: list[Record] = []
        for status in self.file_store.statuses:
            directory = self.file_store.root / status
            if not directory.is_dir():
                continue
            for path in sorted(directory.glob("*.md")):
                if not path.is_file():
                    continue
                try:
                    record = self.read(path)
                except (OSError, RecordFormatError) as exc:
                    logger.warning("Skipping %s: %s", path, exc)
                    continue
                records.append(record)
        return records

    def read(self, path: Path) -> Record:
        """Read one record, taking its status from the directory.

        ``completed_at`` is set or cleared when the directory moves the
        record into or out of ``done``.
        """
        path = Path(path).absolute()
        record = parse_record(read_text(path), path)
        path_status = self.file_store.status_from_path(path)
        if path_status is not None and path_status != record.status:
            logger.warning(
                "Header status '%s' of %s disagrees with its directory; using '%s'",
                record.status,
                path,
                path_status,
            )
            # Done-ness follows the directory; the last edit stands in
            # for the unknown move time.
            _, completed_at = transition_status(
                record.status, path_status, record.completed_at, record.modified
            )
            record = record.model_copy(
                update={"status": path_status, "completed_at": completed_at}
            )
        return record

    def write(self, record: Record) -> Record:
        """Rewrite an existing record's file in place.

        Raises:
            ValueError: If the record has no ``file_path``.
            FileSystemError: If the write fails.
        """
        if record.file_path is None:
            raise ValueError(f"Record '{record.id}' has no file path")
        atomic_write(Path(record.file_path), serialize_record(record))
        return record

    def add(self, record: Record) -> Record:
        """Write a new record at a collision-free name in its status directory.

        When ``<id>.md`` is taken the first free ``<id>-N.md`` is used
        and the record's id follows the file name.

        Returns:
            The record with ``id`` and ``file_path`` set.
        """
        target = self.file_store.location_for(record.status, record.id)
        directory = target.parent
        self.file_store.ensure_directory(directory)
        path = self.file_store.free_path(directory, record.id)
        placed = record.model_copy(
            update={"id": path.stem, "file_path": path}
        )
        atomic_write(path, serialize_record(placed))
        return placed

    def create(
        self,
        title: str,
        status: str = BACKLOG_STATUS,
        body: str = "",
        priority: Priority = Priority.MEDIUM,
        assignee: str | None = None,
        labels: list[str] | None = None,
        due_date: str | None = None,
        now: datetime | None = None,
    ) -> Record:
        """Create an unlinked local record from user input."""
        now = now or datetime.now(timezone.utc)
        record = Record(
            id=generate_record_id(title),
            status=status,
            priority=priority,
            assignee=assignee,
            due_date=due_date,
            created=now,
            modified=now,
            completed_at=now if status == DONE_STATUS else None,
            labels=labels or [],
            content=compose_content(title, body),
        )
        return self.add(record)

    def delete(self, record: Record) -> None:
        """Remove a record's file.

        A linked GitHub issue is left alone.
        """
        if record.file_path is None:
            return
        try:
            Path(record.file_path).unlink(missing_ok=True)
        except OSError as exc:
            raise FileSystemError(
                "delete", str(record.file_path), exc.strerror or str(exc)
            ) from exc
