"""macOS capability provider.

Thin wrappers around ``osascript`` and ``terminal-notifier``: activate an
application, send a key code or keystroke to the frontmost app, show a
notification, and ask the user to pick an action in a modal dialog.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable, Sequence

from codex_notify.errors import (
    ActivationFailedError,
    CodexNotifyError,
    DialogCanceledError,
    KeySendFailedError,
    NoCapabilityAvailableError,
)
from codex_notify.logger import logger

CHOOSER_TITLE = "Codex Notify"
CHOOSER_PROMPT = "承認待ちです。実行する操作を選択してください。"
CHOOSER_BUTTONS = ("Open", "Approve", "Reject")

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


def escape_applescript(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _output(result: subprocess.CompletedProcess[str]) -> str:
    return ((result.stdout or "") + (result.stderr or "")).strip()


class MacOSAutomation:
    """System automation via osascript."""

    def __init__(
        self,
        runner: Runner = subprocess.run,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self._run = runner
        self._which = which

    def has(self, name: str) -> bool:
        return self._which(name) is not None

    def _osascript(self, error_cls: type[CodexNotifyError]) -> str:
        path = self._which("osascript")
        if path is None:
            msg = "osascript not found"
            raise error_cls(msg)
        return path

    def _script(
        self, script: str, error_cls: type[CodexNotifyError]
    ) -> subprocess.CompletedProcess[str]:
        path = self._osascript(error_cls)
        return self._run([path, "-e", script], capture_output=True, text=True, check=False)

    # ------------------------------------------------------------------
    def activate(self, bundle_id: str) -> None:
        script = f'tell application id "{escape_applescript(bundle_id)}" to activate'
        result = self._script(script, ActivationFailedError)
        if result.returncode != 0:
            msg = f"activate app failed: exit {result.returncode} ({_output(result)})"
            raise ActivationFailedError(msg)

    def key_code(self, code: int) -> None:
        self._send(f'tell application "System Events" to key code {code}')

    def keystroke(self, text: str) -> None:
        self._send(f'tell application "System Events" to keystroke "{escape_applescript(text)}"')

    def _send(self, script: str) -> None:
        result = self._script(script, KeySendFailedError)
        if result.returncode != 0:
            msg = f"send key: exit {result.returncode} ({_output(result)})"
            raise KeySendFailedError(msg)

    # ------------------------------------------------------------------
    def display_notification(self, title: str, message: str) -> None:
        path = self._which("osascript")
        if path is None:
            msg = "no notifier available (terminal-notifier and osascript not found)"
            raise NoCapabilityAvailableError(msg)
        script = (
            f'display notification "{escape_applescript(message)}" '
            f'with title "{escape_applescript(title)}"'
        )
        result = self._run([path, "-e", script], capture_output=True, text=True, check=False)
        if result.returncode != 0:
            msg = f"osascript failed: exit {result.returncode} ({_output(result)})"
            raise NoCapabilityAvailableError(msg)

    def terminal_notifier(self, args: Sequence[str]) -> bool:
        """Run terminal-notifier; False when it is missing or fails."""
        path = self._which("terminal-notifier")
        if path is None:
            return False
        result = self._run([path, *args], capture_output=True, text=True, check=False)
        if result.returncode != 0:
            logger.warning("terminal-notifier failed: %s", _output(result))
            return False
        return True

    def choose(self, prompt: str, timeout_seconds: int) -> str:
        """Show the Open/Approve/Reject dialog and return the lowercased pick.

        Raises:
            DialogCanceledError: the dialog gave up or the user cancelled.

        """
        script = f"""try
	set dialogResult to display dialog "{escape_applescript(prompt)}" with title "{CHOOSER_TITLE}" buttons {{"Open", "Approve", "Reject"}} default button "Open" giving up after {timeout_seconds}
	if gave up of dialogResult then
		return "none"
	end if
	return button returned of dialogResult
on error number -128
	return "none"
end try"""  # noqa: E501
        result = self._script(script, CodexNotifyError)
        if result.returncode != 0:
            msg = f"choose action failed: exit {result.returncode} ({_output(result)})"
            raise CodexNotifyError(msg)
        choice = (result.stdout or "").strip().lower()
        if choice in ("", "none"):
            msg = "dialog canceled"
            raise DialogCanceledError(msg)
        if choice not in {b.lower() for b in CHOOSER_BUTTONS}:
            msg = f"unknown choice from dialog: {choice}"
            raise CodexNotifyError(msg)
        return choice
