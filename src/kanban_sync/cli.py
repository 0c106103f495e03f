"""Command-line entry point for kanban-sync.

Subcommands:

- ``sync``   -- run one sync pass and print the report.
- ``thread`` -- print the comment thread of an issue.
- ``init``   -- create the status directories and a starter config.

Configuration is resolved once per invocation: CLI args, then the
environment (with ``.env`` loaded through python-dotenv), then the YAML
config files, then built-in defaults.
"""

import argparse
import json
import logging
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .config import Config, load_config
from .config_loader import ensure_config, load_hierarchical_config
from .config_schema import UnifiedConfig, build_config, to_fallbacks
from .core.auth import provider_from_config
from .core.client import GitHubClient
from .core.errors import KanbanSyncError
from .logger import setup_logging
from .storage.filestore import FileStore
from .storage.records import RecordStore
from .sync.engine import SyncEngine
from .sync.reporter import format_sync_report, format_thread, outcome_to_json

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def load_settings(args: argparse.Namespace) -> tuple[Config, UnifiedConfig]:
    """Resolve configuration from every source.

    Raises:
        ValueError: If any source holds an invalid value.
    """
    load_dotenv()
    try:
        unified = build_config(load_hierarchical_config())
    except ValidationError as exc:
        raise ValueError(f"Invalid config file: {exc}") from exc
    config = load_config(
        root=args.root,
        repo=args.repo,
        debug=args.debug,
        yaml_fallbacks=to_fallbacks(unified),
    )
    return config, unified


def build_engine(config: Config) -> SyncEngine:
    """Create the client, store and engine for *config*."""
    client = GitHubClient(
        provider_from_config(config.token, config.user),
        api_url=config.api_url,
        timeout=(10, config.timeout),
    )
    store = RecordStore(FileStore(config.root, config.columns))
    return SyncEngine(
        client=client,
        store=store,
        repo=config.repo,
        workspace_root=config.root.absolute().parent,
        on_status_change=lambda status, message: logger.debug(
            "Sync status: %s%s", status.value, f" ({message})" if message else ""
        ),
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_sync(engine: SyncEngine, args: argparse.Namespace) -> int:
    outcome = engine.start_sync()
    if args.json:
        print(json.dumps(outcome_to_json(outcome), indent=2))
    else:
        print(format_sync_report(outcome))
    return 0 if outcome.ok else 1


def cmd_thread(engine: SyncEngine, args: argparse.Namespace) -> int:
    thread = engine.fetch_thread(args.issue)
    print(format_thread(thread))
    return 0


def cmd_init(engine: SyncEngine, args: argparse.Namespace) -> int:
    file_store = engine.store.file_store
    file_store.ensure_layout()
    print(f"Board ready at {file_store.root}")
    print(f"Config file: {ensure_config()}")
    return 0


COMMANDS = {
    "sync": cmd_sync,
    "thread": cmd_thread,
    "init": cmd_init,
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kanban-sync",
        description="Sync a Markdown kanban board with GitHub issues",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create the status directories
  kanban-sync init

  # Sync with the repository detected from git
  kanban-sync sync

  # Sync a specific repository and board, machine-readable output
  kanban-sync --repo owner/repo --root docs/board sync --json

  # Show the discussion on issue 12
  kanban-sync thread 12

The token is read from GITHUB_TOKEN (or GH_TOKEN) or the config file.
        """,
    )
    parser.add_argument(
        "--root",
        help="Board root directory (takes precedence over KANBAN_ROOT and config files)",
    )
    parser.add_argument(
        "--repo",
        help="GitHub repository as owner/repo (default: detected from git origin)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write log output to this file")
    parser.add_argument(
        "--version",
        action="version",
        version=f"kanban-sync version {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser(
        "sync", help="Run one sync pass against GitHub"
    )
    sync_parser.add_argument(
        "--json", action="store_true", help="Print the outcome as JSON"
    )

    thread_parser = subparsers.add_parser(
        "thread", help="Print the comment thread of an issue"
    )
    thread_parser.add_argument("issue", type=int, help="Issue number")

    subparsers.add_parser(
        "init", help="Create the status directories and a starter config"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the command and return the exit code."""
    args = build_parser().parse_args(argv)

    try:
        config, unified = load_settings(args)
    except ValueError as e:
        _stderr_print(f"ERROR: Configuration error: {e}")
        return 1

    setup_logging(
        debug=config.debug,
        log_file=args.log_file or unified.logging.file,
        debug_format=unified.logging.format,
        level=unified.logging.level,
    )

    engine = build_engine(config)
    try:
        return COMMANDS[args.command](engine, args)
    except KanbanSyncError as e:
        _stderr_print(f"ERROR: {e}")
        return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        _stderr_print("\nInterrupted.")
        sys.exit(130)


if __name__ == "__main__":
    run()
