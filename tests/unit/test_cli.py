"""Tests for the command line entry point."""

from unittest.mock import patch

import pytest

from sigmon_app.analysis.base import CandleSource
from sigmon_app.cli import channel_from_env, load_object, main
from sigmon_app.errors import ValidationError


class TestChannelFromEnv:

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("SIGMON_TELEGRAM_BOT_TOKEN", raising=False)
        monkeypatch.setenv("SIGMON_TELEGRAM_CHAT_ID", "42")
        assert channel_from_env() is None

    def test_telegram_from_env(self, monkeypatch):
        monkeypatch.setenv("SIGMON_TELEGRAM_BOT_TOKEN", "123:abc")
        monkeypatch.setenv("SIGMON_TELEGRAM_CHAT_ID", "42")
        assert channel_from_env() == {"kind": "telegram", "bot_token": "123:abc", "chat_id": "42"}


class TestLoadObject:

    def test_instantiates_class(self):
        assert load_object("helpers:FakeClock")() > 0

    def test_rejects_malformed_path(self):
        with pytest.raises(ValidationError):
            load_object("helpers.FakeClock")

    def test_abstract_class_cannot_be_built(self):
        with pytest.raises(TypeError):
            load_object("sigmon_app.analysis.base:CandleSource")
        assert CandleSource.__abstractmethods__


class TestMain:

    def test_validate_config(self, tmp_path, capsys):
        (tmp_path / "settings.yaml").write_text("monitor:\n  interval_ms: 300000\n")
        assert main(["--config-dir", str(tmp_path), "validate-config"]) == 0
        out = capsys.readouterr().out
        assert "Configuration is valid" in out
        assert "Interval: 300s" in out

    def test_validate_invalid_config(self, tmp_path, capsys):
        (tmp_path / "settings.yaml").write_text("notifications:\n  warning_threshold: 150\n")
        assert main(["--config-dir", str(tmp_path), "validate-config"]) == 1
        assert "Invalid configuration" in capsys.readouterr().out

    def test_test_channel_defaults_to_stdout(self, monkeypatch, capsys):
        monkeypatch.delenv("SIGMON_TELEGRAM_BOT_TOKEN", raising=False)
        with patch("sigmon_app.delivery.stdout_delivery.StdoutNotifier.health_check", return_value=True):
            assert main(["test-channel"]) == 0
        assert "stdout channel reachable" in capsys.readouterr().out

    def test_command_required(self):
        with pytest.raises(SystemExit):
            main([])
