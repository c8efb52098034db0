"""Tests for config schema and loader."""

import json
from pathlib import Path

import pytest

from kbchatbox.config.loader import (
    env_overrides,
    get_config_dir,
    get_config_path,
    load_config,
    save_config,
)
from kbchatbox.config.schema import (
    BridgeConfig,
    Config,
    KeybaseConfig,
    LoggingConfig,
    NotificationConfig,
    UIConfig,
)


class TestKeybaseConfig:
    def test_defaults(self):
        cfg = KeybaseConfig()
        assert cfg.binary == "keybase"
        assert cfg.listen_command == ["keybase", "chat", "api-listen"]
        assert cfg.api_command == ["keybase", "chat", "api"]
        assert cfg.login_command == ["keybase", "login"]

    def test_custom_binary(self):
        cfg = KeybaseConfig(binary="/opt/keybase/bin/keybase")
        assert cfg.api_command[0] == "/opt/keybase/bin/keybase"


class TestNotificationConfig:
    def test_defaults(self):
        cfg = NotificationConfig()
        assert cfg.enabled is True
        assert cfg.command == "notify-send"
        assert cfg.icon == "mail-read"
        assert cfg.template.format(channel="alice") == "Keybase: New message from alice"


class TestBridgeConfig:
    def test_defaults(self):
        cfg = BridgeConfig()
        assert cfg.api_join_timeout == 5.0
        assert cfg.listener_join_timeout == 0.0

    def test_negative_timeout_rejected(self):
        with pytest.raises(Exception):
            BridgeConfig(api_join_timeout=-1)


class TestUIConfig:
    def test_defaults(self):
        cfg = UIConfig()
        assert cfg.history_size == 15
        assert cfg.timestamp_format == "%Y-%m-%d %H:%M:%S"

    def test_history_size_must_be_positive(self):
        with pytest.raises(Exception):
            UIConfig(history_size=0)


class TestLoggingConfig:
    def test_invalid_level_rejected(self):
        with pytest.raises(Exception):
            LoggingConfig(level="LOUD")


class TestConfig:
    def test_defaults(self):
        cfg = Config()
        assert isinstance(cfg.keybase, KeybaseConfig)
        assert isinstance(cfg.bridge, BridgeConfig)
        assert cfg.logging.level == "WARNING"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("KBCHAT_KEYBASE__BINARY", "/usr/local/bin/keybase")
        monkeypatch.setenv("KBCHAT_UI__HISTORY_SIZE", "30")
        cfg = Config()
        assert cfg.keybase.binary == "/usr/local/bin/keybase"
        assert cfg.ui.history_size == 30


class TestLoader:
    def test_load_missing_file_gives_defaults(self, tmp_path: Path):
        cfg = load_config(tmp_path / "missing.json")
        assert cfg.keybase.binary == "keybase"

    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / "sub" / "config.json"
        cfg = Config()
        cfg.ui.history_size = 40
        cfg.notification.enabled = False
        save_config(cfg, path)

        loaded = load_config(path)
        assert loaded.ui.history_size == 40
        assert loaded.notification.enabled is False

    def test_saved_file_is_json(self, tmp_path: Path):
        path = tmp_path / "config.json"
        save_config(Config(), path)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["keybase"]["listen_args"] == ["chat", "api-listen"]

    def test_partial_file_fills_defaults(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"keybase": {"binary": "kb"}}), encoding="utf-8")
        cfg = load_config(path)
        assert cfg.keybase.binary == "kb"
        assert cfg.keybase.api_args == ["chat", "api"]

    def test_invalid_json_falls_back(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        cfg = load_config(path)
        assert cfg.keybase.binary == "keybase"

    def test_invalid_values_fall_back(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"ui": {"history_size": -3}}), encoding="utf-8")
        cfg = load_config(path)
        assert cfg.ui.history_size == 15

    def test_non_object_file_falls_back(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_config(path).ui.history_size == 15

    def test_env_wins_over_file(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps({"keybase": {"binary": "kb", "api_args": ["chat", "api", "-p"]}}),
            encoding="utf-8",
        )
        monkeypatch.setenv("KBCHAT_KEYBASE__BINARY", "/usr/local/bin/keybase")
        cfg = load_config(path)
        assert cfg.keybase.binary == "/usr/local/bin/keybase"
        assert cfg.keybase.api_args == ["chat", "api", "-p"]

    def test_env_applies_when_file_invalid(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        monkeypatch.setenv("KBCHAT_LOGGING__LEVEL", "DEBUG")
        assert load_config(path).logging.level == "DEBUG"

    def test_save_returns_path(self, tmp_path: Path):
        path = tmp_path / "config.json"
        assert save_config(Config(), path) == path


class TestConfigLocation:
    def test_default_dir(self, monkeypatch):
        monkeypatch.delenv("KBCHATBOX_HOME", raising=False)
        assert get_config_path() == Path.home() / ".kbchatbox" / "config.json"

    def test_home_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("KBCHATBOX_HOME", str(tmp_path / "kb"))
        assert get_config_dir() == tmp_path / "kb"
        save_config(Config())
        assert (tmp_path / "kb" / "config.json").exists()

    def test_env_overrides_lists_prefixed_names(self):
        environ = {"KBCHAT_UI__HISTORY_SIZE": "5", "HOME": "/root", "KBCHAT_KEYBASE__BINARY": "kb"}
        assert env_overrides(environ) == ["KBCHAT_KEYBASE__BINARY", "KBCHAT_UI__HISTORY_SIZE"]
