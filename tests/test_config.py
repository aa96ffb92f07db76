from pathlib import Path
from unittest.mock import patch

import pytest

from codex_notify.config import (
    NotifySettings,
    codex_home,
    env_file_path,
    get_settings,
    load_local_env,
    settings_from_env,
)


class TestSettingsFromEnv:
    """環境変数からの設定読み込み"""

    def test_defaults(self):
        settings = settings_from_env({})

        assert settings.approval_actions_enabled is True
        assert settings.notification_ui == "popup"
        assert settings.approval_ui == "popup"
        assert settings.popup_approval_actions is True
        assert settings.approval_timeout_seconds == 45
        assert settings.terminal_bundle_id == "com.mitchellh.ghostty"
        assert settings.approve_keys == ["y", "enter"]
        assert settings.reject_keys == ["n", "enter"]
        assert settings.executable is None
        assert settings.log_level == "INFO"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", 5), ("4", 5), ("5", 5), ("120", 120), ("300", 300), ("1000", 300), ("abc", 45), ("  ", 45)],
    )
    def test_timeout_is_clamped(self, raw, expected):
        env = {"CODEX_NOTIFY_APPROVAL_TIMEOUT_SECONDS": raw}
        assert settings_from_env(env).approval_timeout_seconds == expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("popup", "popup"), ("single", "popup"), ("MULTI", "multi"), ("weird", "popup")],
    )
    def test_approval_ui(self, raw, expected):
        assert settings_from_env({"CODEX_NOTIFY_APPROVAL_UI": raw}).approval_ui == expected

    def test_notification_ui(self):
        assert settings_from_env({"CODEX_NOTIFY_NOTIFICATION_UI": " System "}).notification_ui == "system"
        assert settings_from_env({"CODEX_NOTIFY_NOTIFICATION_UI": "toast"}).notification_ui == "popup"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("1", True), ("yes", True), ("ON", True), ("0", False), ("false", False), ("nah", False)],
    )
    def test_flags(self, raw, expected):
        env = {"CODEX_NOTIFY_ENABLE_APPROVAL_ACTIONS": raw}
        assert settings_from_env(env).approval_actions_enabled is expected

    def test_legacy_popup_flag(self):
        env = {"CODEX_NOTIFY_ENABLE_NATIVE_APPROVAL_ACTIONS": "0"}
        assert settings_from_env(env).popup_approval_actions is False

    def test_new_popup_flag_wins(self):
        env = {
            "CODEX_NOTIFY_ENABLE_POPUP_APPROVAL_ACTIONS": "1",
            "CODEX_NOTIFY_ENABLE_NATIVE_APPROVAL_ACTIONS": "0",
        }
        assert settings_from_env(env).popup_approval_actions is True

    def test_key_sequences(self):
        env = {
            "CODEX_NOTIFY_APPROVE_KEYS": " 1 , ,enter ",
            "CODEX_NOTIFY_REJECT_KEYS": ", ,",
        }
        settings = settings_from_env(env)

        assert settings.approve_keys == ["1", "enter"]
        assert settings.reject_keys == ["n", "enter"]

    def test_paths_and_strings(self, tmp_path):
        env = {
            "CODEX_NOTIFY_TERMINAL_BUNDLE_ID": " com.apple.Terminal ",
            "CODEX_NOTIFY_CACHE_DIR": str(tmp_path),
            "CODEX_NOTIFY_EXECUTABLE": "/usr/local/bin/codex-notify",
            "CODEX_NOTIFY_LOG_LEVEL": "debug",
        }
        settings = settings_from_env(env)

        assert settings.terminal_bundle_id == "com.apple.Terminal"
        assert settings.cache_dir == tmp_path
        assert settings.lock_dir == tmp_path / "locks"
        assert settings.log_file == tmp_path / "codex-notify.log"
        assert settings.executable == "/usr/local/bin/codex-notify"
        assert settings.log_level == "DEBUG"


class TestEnvFile:
    """dotenv ファイル"""

    def test_codex_home(self):
        assert codex_home({"CODEX_HOME": "/x/codex"}) == Path("/x/codex")
        assert codex_home({}) == Path.home() / ".codex"

    def test_env_file_path(self):
        assert env_file_path({"CODEX_HOME": "/x"}) == Path("/x/codex-notify.env")
        assert env_file_path({"CODEX_NOTIFY_ENV_FILE": "/y/a.env"}) == Path("/y/a.env")

    def test_load_local_env(self, tmp_path, monkeypatch):
        env_file = tmp_path / "codex-notify.env"
        env_file.write_text("CODEX_NOTIFY_APPROVAL_UI=multi\n")
        monkeypatch.setenv("CODEX_NOTIFY_ENV_FILE", str(env_file))

        with patch("codex_notify.config.load_dotenv") as mock_load:
            load_local_env()

        mock_load.assert_called_once_with(dotenv_path=env_file, override=False)

    def test_missing_env_file_is_skipped(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CODEX_NOTIFY_ENV_FILE", str(tmp_path / "none.env"))

        with patch("codex_notify.config.load_dotenv") as mock_load:
            load_local_env()

        mock_load.assert_not_called()


class TestGetSettings:
    """設定キャッシュ"""

    def test_cached_until_reset(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CODEX_NOTIFY_ENV_FILE", str(tmp_path / "none.env"))
        monkeypatch.setenv("CODEX_NOTIFY_APPROVAL_TIMEOUT_SECONDS", "60")

        first = get_settings()
        monkeypatch.setenv("CODEX_NOTIFY_APPROVAL_TIMEOUT_SECONDS", "90")

        assert get_settings() is first
        assert first.approval_timeout_seconds == 60

    def test_model_accepts_python_values(self, tmp_path):
        settings = NotifySettings(
            cache_dir=tmp_path, approval_timeout_seconds=2, approve_keys=["y"]
        )
        assert settings.approval_timeout_seconds == 5
        assert settings.approve_keys == ["y"]
