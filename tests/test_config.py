"""Tests for kanban_sync.config -- env-var config loading and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config)
or test_config_schema.py (Pydantic models).
"""

from pathlib import Path

import pytest

from kanban_sync.config import (
    DEFAULT_ROOT,
    Config,
    load_config,
    validate_config,
)
from kanban_sync.sync.models import DEFAULT_STATUSES

# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    def test_valid_config(self, mock_config):
        validate_config(mock_config)  # should not raise

    def test_repo_must_be_owner_slash_name(self, tmp_path):
        config = Config(root=tmp_path, repo="just-a-name")
        with pytest.raises(ValueError, match="expected owner/repo"):
            validate_config(config)

    def test_repo_is_stripped(self, tmp_path):
        config = Config(root=tmp_path, repo=" owner/repo ")
        validate_config(config)
        assert config.repo == "owner/repo"

    def test_api_url_scheme(self, tmp_path):
        config = Config(root=tmp_path, api_url="ftp://api.github.com")
        with pytest.raises(
            ValueError, match="must start with http:// or https://"
        ):
            validate_config(config)

    def test_api_url_needs_host(self, tmp_path):
        config = Config(root=tmp_path, api_url="https://")
        with pytest.raises(ValueError, match="hostname"):
            validate_config(config)

    def test_api_url_trailing_slash_removed(self, tmp_path):
        config = Config(root=tmp_path, api_url="https://ghe.example.com/api/v3/")
        validate_config(config)
        assert config.api_url == "https://ghe.example.com/api/v3"

    @pytest.mark.parametrize("missing", ["backlog", "todo", "done"])
    def test_required_columns(self, tmp_path, missing):
        columns = tuple(c for c in DEFAULT_STATUSES if c != missing)
        config = Config(root=tmp_path, columns=columns)
        with pytest.raises(ValueError, match=f"Column '{missing}'"):
            validate_config(config)

    def test_duplicate_columns(self, tmp_path):
        config = Config(
            root=tmp_path, columns=("backlog", "todo", "todo", "done")
        )
        with pytest.raises(ValueError, match="Duplicate columns"):
            validate_config(config)

    def test_timeout_positive(self, tmp_path):
        config = Config(root=tmp_path, timeout=0)
        with pytest.raises(ValueError, match="positive"):
            validate_config(config)


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    def test_zero_config_defaults(self, clean_env):
        config = load_config()

        assert config.root == Path(DEFAULT_ROOT)
        assert config.repo is None
        assert config.token is None
        assert config.api_url == "https://api.github.com"
        assert config.columns == DEFAULT_STATUSES
        assert config.timeout == 60.0
        assert config.debug is False

    def test_env_vars(self, clean_env):
        clean_env.setenv("KANBAN_ROOT", "/srv/board")
        clean_env.setenv("KANBAN_REPO", "env/repo")
        clean_env.setenv("GITHUB_TOKEN", " tok ")
        clean_env.setenv("GITHUB_USER", "octocat")
        clean_env.setenv("GITHUB_API_URL", "https://ghe.example.com/api/v3")
        clean_env.setenv("KANBAN_COLUMNS", "backlog, todo ,blocked,done")
        clean_env.setenv("KANBAN_TIMEOUT", "15")
        clean_env.setenv("KANBAN_DEBUG", "yes")

        config = load_config()

        assert config.root == Path("/srv/board")
        assert config.repo == "env/repo"
        assert config.token == "tok"
        assert config.user == "octocat"
        assert config.api_url == "https://ghe.example.com/api/v3"
        assert config.columns == ("backlog", "todo", "blocked", "done")
        assert config.timeout == 15.0
        assert config.debug is True

    def test_cli_beats_env(self, clean_env):
        clean_env.setenv("KANBAN_REPO", "env/repo")
        clean_env.setenv("KANBAN_ROOT", "env-root")

        config = load_config(root="cli-root", repo="cli/repo")

        assert config.repo == "cli/repo"
        assert config.root == Path("cli-root")

    def test_env_beats_yaml(self, clean_env):
        clean_env.setenv("KANBAN_REPO", "env/repo")
        config = load_config(yaml_fallbacks={"repo": "yaml/repo"})
        assert config.repo == "env/repo"

    def test_yaml_fallbacks(self, clean_env):
        config = load_config(
            yaml_fallbacks={
                "repo": "yaml/repo",
                "root": "yaml-root",
                "token": "yaml-token",
                "columns": ["backlog", "todo", "done"],
                "timeout": 5,
                "debug": True,
            }
        )

        assert config.repo == "yaml/repo"
        assert config.root == Path("yaml-root")
        assert config.token == "yaml-token"
        assert config.columns == ("backlog", "todo", "done")
        assert config.timeout == 5.0
        assert config.debug is True

    def test_env_debug_false_beats_yaml(self, clean_env):
        clean_env.setenv("KANBAN_DEBUG", "false")
        config = load_config(yaml_fallbacks={"debug": True})
        assert config.debug is False

    def test_invalid_timeout_env(self, clean_env):
        clean_env.setenv("KANBAN_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="KANBAN_TIMEOUT"):
            load_config()

    def test_invalid_values_are_validated(self, clean_env):
        with pytest.raises(ValueError, match="expected owner/repo"):
            load_config(repo="nope")
