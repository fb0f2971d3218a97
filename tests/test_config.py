"""Tests for configuration persistence."""

from __future__ import annotations

import json

from paper_scout.config import load_config, save_config, update_preferences
from paper_scout.models import DEFAULT_USER_AGENT, Preferences, UserConfig


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "config.json")
        assert config == UserConfig()
        assert config.config_defaulted is False

    def test_reads_values(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "preferences": {
                        "default_max_results": 25,
                        "recency_window_days": 30,
                        "default_categories": ["cs.LG", " cs.LG ", "", 3],
                    },
                    "llm_preset": "claude",
                    "arxiv_throttle_seconds": 3,
                    "library_db_path": "/tmp/lib.db",
                }
            ),
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.preferences == Preferences(25, 30, ["cs.LG"])
        assert config.llm_preset == "claude"
        assert config.arxiv_throttle_seconds == 3.0
        assert config.library_db_path == "/tmp/lib.db"

    def test_wrong_types_fall_back(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "preferences": {"default_max_results": True, "recency_window_days": "7"},
                    "llm_command": 42,
                    "user_agent": "",
                    "preview_size": 10_000,
                }
            ),
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.preferences.default_max_results == 5
        assert config.preferences.recency_window_days == 3650
        assert config.llm_command == ""
        assert config.user_agent == DEFAULT_USER_AGENT
        assert config.preview_size == 100

    def test_corrupt_file_is_quarantined(self, tmp_path, caplog):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        config = load_config(path)
        assert config.config_defaulted is True
        assert not path.exists()
        assert (tmp_path / "config.json.corrupt").read_text(encoding="utf-8") == "{not json"
        assert "invalid JSON" in caplog.text

    def test_non_object_root(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_config(path).config_defaulted is True
        assert (tmp_path / "config.json.corrupt").exists()


class TestSaveConfig:
    """Tests for save_config."""

    def test_roundtrip(self, tmp_path):
        path = tmp_path / "nested" / "config.json"
        config = UserConfig(
            preferences=Preferences(7, 90, ["cs.CV"]), llm_command="llm {prompt}"
        )
        assert save_config(config, path) is True
        assert load_config(path) == config

    def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "config.json"
        save_config(UserConfig(), path)
        assert [p.name for p in tmp_path.iterdir()] == ["config.json"]

    def test_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        assert save_config(UserConfig(), blocker / "config.json") is False


class TestUpdatePreferences:
    """Tests for update_preferences."""

    def test_partial_update(self):
        config = UserConfig(preferences=Preferences(5, 100, ["cs.LG"]))
        update_preferences(config, recency_window_days=14)
        assert config.preferences == Preferences(5, 14, ["cs.LG"])

    def test_clamps_max_results(self):
        config = UserConfig()
        update_preferences(config, default_max_results=5000)
        assert config.preferences.default_max_results == 200

    def test_empty_categories_clear(self):
        config = UserConfig(preferences=Preferences(default_categories=["cs.LG"]))
        update_preferences(config, default_categories=[])
        assert config.preferences.default_categories == []

    def test_clamps_recency_window(self):
        config = UserConfig()
        update_preferences(config, recency_window_days=1_000_000)
        assert config.preferences.recency_window_days == 36500
