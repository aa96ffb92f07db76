import subprocess
from unittest.mock import Mock

import pytest

from codex_notify.actions.macos import MacOSAutomation, escape_applescript
from codex_notify.errors import (
    ActivationFailedError,
    CodexNotifyError,
    DialogCanceledError,
    KeySendFailedError,
    NoCapabilityAvailableError,
)

TOOLS = {
    "osascript": "/usr/bin/osascript",
    "terminal-notifier": "/opt/homebrew/bin/terminal-notifier",
}


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


class TestMacOSAutomation:
    """osascript / terminal-notifier ラッパー"""

    @pytest.fixture
    def runner(self):
        return Mock(return_value=completed())

    @pytest.fixture
    def automation(self, runner):
        return MacOSAutomation(runner=runner, which=TOOLS.get)

    @pytest.fixture
    def bare(self, runner):
        """どのツールも見つからない環境"""
        return MacOSAutomation(runner=runner, which=lambda name: None)

    def test_activate(self, automation, runner):
        automation.activate("com.mitchellh.ghostty")

        runner.assert_called_once_with(
            ["/usr/bin/osascript", "-e", 'tell application id "com.mitchellh.ghostty" to activate'],
            capture_output=True,
            text=True,
            check=False,
        )

    def test_activate_failure(self, automation, runner):
        runner.return_value = completed(1, stderr="  not found  ")

        with pytest.raises(ActivationFailedError, match=r"activate app failed: exit 1 \(not found\)"):
            automation.activate("com.example.none")

    def test_activate_without_osascript(self, bare):
        with pytest.raises(ActivationFailedError, match="osascript not found"):
            bare.activate("com.mitchellh.ghostty")

    def test_key_code(self, automation, runner):
        automation.key_code(36)

        assert runner.call_args.args[0][2] == 'tell application "System Events" to key code 36'

    def test_keystroke_is_escaped(self, automation, runner):
        automation.keystroke('say "hi"')

        assert runner.call_args.args[0][2] == (
            'tell application "System Events" to keystroke "say \\"hi\\""'
        )

    def test_key_failure(self, automation, runner):
        runner.return_value = completed(1, stderr="not allowed")

        with pytest.raises(KeySendFailedError, match="send key: exit 1"):
            automation.keystroke("y")

    def test_display_notification(self, automation, runner):
        automation.display_notification("Codex", "done")

        assert runner.call_args.args[0] == [
            "/usr/bin/osascript",
            "-e",
            'display notification "done" with title "Codex"',
        ]

    def test_display_notification_without_osascript(self, bare):
        with pytest.raises(NoCapabilityAvailableError, match="no notifier available"):
            bare.display_notification("Codex", "done")

    def test_display_notification_failure(self, automation, runner):
        runner.return_value = completed(1, stdout="oops")

        with pytest.raises(NoCapabilityAvailableError, match="osascript failed"):
            automation.display_notification("Codex", "done")

    def test_terminal_notifier(self, automation, runner):
        assert automation.terminal_notifier(["-title", "T"]) is True

        runner.assert_called_once_with(
            ["/opt/homebrew/bin/terminal-notifier", "-title", "T"],
            capture_output=True,
            text=True,
            check=False,
        )

    def test_terminal_notifier_missing_or_failing(self, automation, bare, runner):
        assert bare.terminal_notifier(["-title", "T"]) is False

        runner.return_value = completed(1)
        assert automation.terminal_notifier(["-title", "T"]) is False

    def test_has(self, automation, bare):
        assert automation.has("osascript") is True
        assert bare.has("osascript") is False


class TestChooser:
    """display dialog による選択"""

    @pytest.fixture
    def runner(self):
        return Mock()

    @pytest.fixture
    def automation(self, runner):
        return MacOSAutomation(runner=runner, which=TOOLS.get)

    def test_returns_lowercased_pick(self, automation, runner):
        runner.return_value = completed(stdout="Approve\n")

        assert automation.choose("prompt", 30) == "approve"

        script = runner.call_args.args[0][2]
        assert 'buttons {"Open", "Approve", "Reject"}' in script
        assert 'default button "Open"' in script
        assert "giving up after 30" in script

    @pytest.mark.parametrize("stdout", ["none\n", ""])
    def test_gave_up_or_canceled(self, automation, runner, stdout):
        runner.return_value = completed(stdout=stdout)

        with pytest.raises(DialogCanceledError):
            automation.choose("prompt", 30)

    def test_script_failure(self, automation, runner):
        runner.return_value = completed(1, stderr="syntax error")

        with pytest.raises(CodexNotifyError, match="choose action failed"):
            automation.choose("prompt", 30)

    def test_unexpected_answer(self, automation, runner):
        runner.return_value = completed(stdout="Maybe")

        with pytest.raises(CodexNotifyError, match="unknown choice"):
            automation.choose("prompt", 30)


def test_escape_applescript():
    assert escape_applescript('a "b" \\ c') == 'a \\"b\\" \\\\ c'
