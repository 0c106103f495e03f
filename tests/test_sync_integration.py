"""Integration tests for the two-way sync engine.

A real ``GitHubClient`` talks to ``FakeGitHubSession``, an in-memory
imitation of the issues REST endpoints built from genuine
``requests.Response`` objects.  Each test walks several passes over a
real board directory.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests

from kanban_sync.core.auth import StaticTokenProvider
from kanban_sync.core.client import GitHubClient
from kanban_sync.sync.engine import SyncEngine

from conftest import T0, at

REPO = "owner/repo"

# ---------------------------------------------------------------------------
# In-memory GitHub
# ---------------------------------------------------------------------------


class FakeGitHubSession:
    """Serve ``/repos/owner/repo/issues`` from a dict of issue payloads."""

    def __init__(self) -> None:
        self.issues: Dict[int, Dict[str, Any]] = {}
        self.now = T0
        self.requests: list[tuple[str, str]] = []

    def add_issue(self, number: int, **fields: Any) -> None:
        data = {
            "number": number,
            "title": f"Issue {number}",
            "body": "",
            "state": "open",
            "html_url": f"https://github.com/{REPO}/issues/{number}",
            "created_at": T0.isoformat(),
            "updated_at": self.now.isoformat(),
            "assignee": None,
            "labels": [],
            "user": {"login": "author", "avatar_url": ""},
        }
        data.update(fields)
        self.issues[number] = data

    def edit_issue(self, number: int, **fields: Any) -> None:
        self.issues[number].update(fields)
        self.issues[number]["updated_at"] = self.now.isoformat()

    def request(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        headers: Optional[dict] = None,
        timeout: Any = None,
    ) -> requests.Response:
        path = urlparse(url).path
        self.requests.append((method, path))
        parts = path.strip("/").split("/")
        if method == "GET" and parts[-1] == "issues":
            page = (params or {}).get("page", 1)
            items = list(self.issues.values()) if page == 1 else []
            return _response(200, items)
        number = int(parts[-1])
        if method == "PATCH":
            self.edit_issue(number, **(json or {}))
        return _response(200, self.issues[number])


def _response(status: int, payload: Any) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(payload).encode("utf-8")
    response.headers["Content-Type"] = "application/json"
    return response


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _setup(record_store, user="octocat"):
    session = FakeGitHubSession()
    client = GitHubClient(
        StaticTokenProvider("tok", user),
        api_url="https://api.github.test",
        session=session,
    )
    clock = Clock(T0)
    engine = SyncEngine(client, record_store, repo=REPO, clock=clock)
    return session, engine, clock


# ---------------------------------------------------------------------------
# Full cycles
# ---------------------------------------------------------------------------


class TestFullCycle:
    def test_create_edit_push_then_quiet(self, record_store):
        session, engine, clock = _setup(record_store)
        session.add_issue(1, title="Write docs", body="All of them")

        clock.now = at(1)
        first = engine.start_sync()
        (created,) = first.created
        assert created.file_path.parent.name == "backlog"
        assert created.content == "# Write docs\n\nAll of them"

        # Edit the record locally a minute later.
        local = record_store.read(created.file_path)
        record_store.write(
            local.model_copy(
                update={
                    "content": "# Write docs\n\nOnly the API",
                    "modified": at(2),
                }
            )
        )

        clock.now = at(3)
        session.now = at(3)
        second = engine.start_sync()
        assert [r.id for r in second.pushed] == [created.id]
        assert session.issues[1]["body"] == "Only the API"
        assert ("PATCH", "/repos/owner/repo/issues/1") in session.requests

        clock.now = at(4)
        third = engine.start_sync()
        assert third.ok
        assert not third.changed

    def test_remote_close_moves_record_to_done(self, record_store):
        session, engine, clock = _setup(record_store)
        session.add_issue(1, assignee={"login": "octocat"})

        clock.now = at(1)
        (created,) = engine.start_sync().created
        assert created.file_path.parent.name == "todo"

        session.now = at(2)
        session.edit_issue(1, state="closed")
        clock.now = at(3)
        outcome = engine.start_sync()

        (pulled,) = outcome.updated
        assert pulled.status == "done"
        assert pulled.file_path.parent.name == "done"
        assert not created.file_path.exists()
        assert record_store.read(pulled.file_path).completed_at == at(3)

    def test_pull_requests_never_become_records(self, record_store):
        session, engine, clock = _setup(record_store)
        session.add_issue(1)
        session.add_issue(2, pull_request={"url": "x"})

        outcome = engine.start_sync()

        assert [r.remote_link.remote_id for r in outcome.created] == [1]
        assert len(record_store.load_all()) == 1

    def test_local_only_records_survive_every_pass(self, record_store):
        session, engine, clock = _setup(record_store)
        mine = record_store.create("Private note", status="review", now=T0)
        before = mine.file_path.read_bytes()
        session.add_issue(1)

        for minute in (1, 2, 3):
            clock.now = at(minute)
            engine.start_sync()

        assert mine.file_path.read_bytes() == before

    def test_pushed_edit_comes_back_unchanged(self, record_store):
        session, engine, clock = _setup(record_store)
        session.add_issue(1, title="Draft", body="")

        clock.now = at(1)
        (created,) = engine.start_sync().created

        # Retitle, rewrite and complete the record locally.
        local = record_store.read(created.file_path)
        done_path = record_store.file_store.relocate(local.file_path, "done")
        record_store.write(
            local.model_copy(
                update={
                    "content": "# Ship it\n\nFinal notes",
                    "status": "done",
                    "completed_at": at(2),
                    "modified": at(2),
                    "file_path": done_path,
                }
            )
        )

        clock.now = at(3)
        session.now = at(3)
        (pushed,) = engine.start_sync().pushed
        assert session.issues[1]["title"] == "Ship it"
        assert session.issues[1]["body"] == "Final notes"
        assert session.issues[1]["state"] == "closed"

        # GitHub touches the issue without changing its content.
        session.now = at(5)
        session.edit_issue(1)
        clock.now = at(6)
        outcome = engine.start_sync()

        (pulled,) = outcome.updated
        assert pulled.content == pushed.content
        assert pulled.status == pushed.status == "done"
        assert pulled.file_path == pushed.file_path
        assert record_store.read(pulled.file_path).content == pushed.content
