"""
Config and Model Tests - Verify settings and snapshot helpers.

Tests:
- Environment overrides
- Path normalization
- Repository snapshot defaults
- Notification modes
"""

from pathlib import Path

import pytest

from repowatch.config import AutoFetchMode, MonitorConfig
from repowatch.models import Notification, Repository, normalize_path


class TestMonitorConfig:
    """Tests for the MonitorConfig class."""

    def test_defaults(self, temp_dir):
        config = MonitorConfig(roots=[temp_dir], store_path=temp_dir / "s.db")

        assert config.creation_delay_ms == 5000
        assert config.change_delay_ms == 500
        assert config.flush_delay_ms == 5000
        assert config.auto_fetch_mode is AutoFetchMode.OFF
        assert "node_modules" in config.skip_dirs

    def test_resolves_paths(self, temp_dir):
        config = MonitorConfig(roots=[temp_dir / "a" / ".."], store_path=temp_dir / "x" / "s.db")

        assert config.roots == [temp_dir]
        assert config.store_path.parent.exists()

    def test_from_env(self, monkeypatch, temp_dir):
        monkeypatch.setenv("REPOWATCH_ROOTS", f"{temp_dir}/one, {temp_dir}/two")
        monkeypatch.setenv("REPOWATCH_STORE_PATH", str(temp_dir / "env.db"))
        monkeypatch.setenv("REPOWATCH_CREATION_DELAY_MS", "100")
        monkeypatch.setenv("REPOWATCH_CHANGE_DELAY_MS", "50")
        monkeypatch.setenv("REPOWATCH_FLUSH_DELAY_MS", "250")
        monkeypatch.setenv("REPOWATCH_SCANNER_CONCURRENCY", "3")
        monkeypatch.setenv("REPOWATCH_AUTO_FETCH", "Aggressive")

        config = MonitorConfig.from_env()

        assert config.roots == [temp_dir / "one", temp_dir / "two"]
        assert config.store_path == temp_dir / "env.db"
        assert config.creation_delay_ms == 100
        assert config.change_delay_ms == 50
        assert config.flush_delay_ms == 250
        assert config.scanner_concurrency == 3
        assert config.auto_fetch_mode is AutoFetchMode.AGGRESSIVE

    def test_fetch_intervals(self):
        assert AutoFetchMode.ADEQUATE.interval_seconds == 300.0
        assert AutoFetchMode.AGGRESSIVE.interval_seconds == 60.0


class TestModels:
    """Tests for repository snapshots and helpers."""

    def test_normalize_path(self):
        assert normalize_path("/src/app/") == "/src/app"
        assert normalize_path("/src/./lib/../app") == "/src/app"
        assert normalize_path("") == ""
        assert normalize_path("/") == "/"

    def test_normalize_expands_user(self):
        assert normalize_path("~/code") == str(Path.home() / "code")

    def test_repository_defaults(self):
        repo = Repository(path="/src/app/")

        assert repo.path == "/src/app"
        assert repo.name == "app"
        assert repo.was_found
        assert repo.branches == ()

    def test_repository_is_immutable(self):
        repo = Repository(path="/src/app")

        with pytest.raises(AttributeError):
            repo.current_branch = "other"

    def test_not_found(self):
        repo = Repository.not_found("/src/gone/")

        assert not repo.was_found
        assert repo.path == "/src/gone"
        assert "not found" in str(repo)

    def test_local_changes(self):
        repo = Repository(path="/src/app", local_modified=2, local_untracked=1, local_ignored=9)

        assert repo.local_changes == 3

    def test_notification_modes(self):
        assert Notification.FOUND_ONLY.when_found
        assert not Notification.FOUND_ONLY.when_not_found
        assert Notification.NOT_FOUND_ONLY.when_not_found
        assert not Notification.NOT_FOUND_ONLY.when_found
        assert Notification.BOTH.when_found and Notification.BOTH.when_not_found
