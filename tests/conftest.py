"""Shared pytest fixtures for kanban-sync tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

from kanban_sync.config import Config
from kanban_sync.storage.filestore import FileStore
from kanban_sync.storage.records import RecordStore
from kanban_sync.sync.models import RemoteLink, RemoteRecord

load_dotenv()

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

_ENV_VARS = (
    "KANBAN_ROOT",
    "KANBAN_REPO",
    "KANBAN_COLUMNS",
    "KANBAN_TIMEOUT",
    "KANBAN_DEBUG",
    "KANBAN_SYNC_CONFIG",
    "GITHUB_TOKEN",
    "GH_TOKEN",
    "GITHUB_USER",
    "GITHUB_API_URL",
    "LOG_LEVEL",
)


def at(minutes: int) -> datetime:
    """Instant *minutes* after ``T0``."""
    return T0 + timedelta(minutes=minutes)


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require the live GitHub API",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring the live GitHub API"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the package reads."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def mock_config(tmp_path):
    """Create a Config instance for testing."""
    return Config(
        root=tmp_path / "board",
        repo="owner/repo",
        token="test-token",
        user="octocat",
    )


@pytest.fixture
def file_store(tmp_path):
    """A FileStore over a fresh board root with every status directory."""
    store = FileStore(tmp_path / "board")
    store.ensure_layout()
    return store


@pytest.fixture
def record_store(file_store):
    return RecordStore(file_store)


@pytest.fixture
def make_remote():
    """Factory fixture for ``RemoteRecord`` instances."""

    def _create(number=1, **overrides):
        data = {
            "number": number,
            "title": f"Issue {number}",
            "body": f"Body of issue {number}",
            "state": "open",
            "html_url": f"https://github.com/owner/repo/issues/{number}",
            "created_at": T0,
            "updated_at": T0,
        }
        data.update(overrides)
        return RemoteRecord(**data)

    return _create


@pytest.fixture
def make_link():
    """Factory fixture for ``RemoteLink`` instances."""

    def _create(number=1, synced_at=T0, repo="owner/repo"):
        return RemoteLink(
            remote_id=number,
            repo=repo,
            external_url=f"https://github.com/{repo}/issues/{number}",
            synced_at=synced_at,
        )

    return _create


@pytest.fixture
def mock_github_client():
    """Create a mock GitHubClient instance for testing."""
    from kanban_sync.core.client import GitHubClient

    client = MagicMock(spec=GitHubClient)
    client.current_user = "octocat"
    return client
