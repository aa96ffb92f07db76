from unittest.mock import patch

import pytest

from codex_notify.config import NotifySettings
from codex_notify.install.codex_config import DEFAULT_NOTIFY_LINE
from codex_notify.install.doctor import DoctorFailedError, run_doctor

TOOLS = {
    "osascript": "/usr/bin/osascript",
    "terminal-notifier": "/opt/homebrew/bin/terminal-notifier",
}


class TestDoctor:
    """doctor コマンド"""

    @pytest.fixture
    def config_path(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(DEFAULT_NOTIFY_LINE + "\n")
        return path

    @pytest.fixture
    def mac(self):
        with patch("codex_notify.install.doctor.platform.system", return_value="Darwin"), \
             patch("codex_notify.install.doctor.lookup_cmd", side_effect=TOOLS.get), \
             patch("codex_notify.install.doctor.popup_supported", return_value=True):
            yield

    def test_all_checks_pass(self, settings, config_path, mac, capsys):
        run_doctor(settings, str(config_path))

        out = capsys.readouterr().out
        assert "[ OK ] OS: darwin" in out
        assert "[ OK ] terminal-notifier: /opt/homebrew/bin/terminal-notifier" in out
        assert "[ OK ] popup: PyObjC AppKit available" in out
        assert "all checks passed" in out

    def test_missing_config_is_an_issue(self, settings, tmp_path, mac, capsys):
        with pytest.raises(DoctorFailedError, match=r"doctor found 1 issue\(s\)"):
            run_doctor(settings, str(tmp_path / "missing.toml"))

        assert "[WARN] config: not found" in capsys.readouterr().out

    def test_missing_terminal_notifier_is_only_a_warning(self, settings, config_path, capsys):
        with patch("codex_notify.install.doctor.platform.system", return_value="Darwin"), \
             patch("codex_notify.install.doctor.lookup_cmd", side_effect={"osascript": "/usr/bin/osascript"}.get), \
             patch("codex_notify.install.doctor.popup_supported", return_value=False):
            run_doctor(settings, str(config_path))

        out = capsys.readouterr().out
        assert "[WARN] terminal-notifier: not found" in out
        assert "[WARN] popup: PyObjC AppKit not available" in out

    def test_linux_without_tools(self, tmp_path, config_path, capsys):
        settings = NotifySettings(cache_dir=tmp_path, notification_ui="system")
        with patch("codex_notify.install.doctor.platform.system", return_value="Linux"), \
             patch("codex_notify.install.doctor.lookup_cmd", return_value=None):
            with pytest.raises(DoctorFailedError, match=r"doctor found 2 issue\(s\)"):
                run_doctor(settings, str(config_path))

        out = capsys.readouterr().out
        assert "[FAIL] OS: expected darwin, got linux" in out
        assert "[FAIL] osascript: not found" in out
        # system UI skips the popup check
        assert "popup:" not in out
