"""Runtime requirement checks (``codex-notify doctor``)."""

from __future__ import annotations

import platform

from codex_notify.config import NOTIFICATION_UI_POPUP, NotifySettings
from codex_notify.errors import CodexNotifyError
from codex_notify.install.codex_config import (
    config_has_codex_notify,
    read_config,
    resolve_config_path,
)
from codex_notify.popup.helper import popup_supported
from codex_notify.utils import lookup_cmd

OK = "[ OK ]"
WARN = "[WARN]"
FAIL = "[FAIL]"


class DoctorFailedError(CodexNotifyError):
    """One or more doctor checks reported a problem."""


def collect_checks(settings: NotifySettings, config: str | None = None) -> list[tuple[str, str, bool]]:
    """Return ``(status, text, is_problem)`` for every check."""
    checks: list[tuple[str, str, bool]] = []

    system = platform.system()
    if system == "Darwin":
        checks.append((OK, "OS: darwin", False))
    else:
        checks.append((FAIL, f"OS: expected darwin, got {system.lower()}", True))

    notifier = lookup_cmd("terminal-notifier")
    if notifier:
        checks.append((OK, f"terminal-notifier: {notifier}", False))
    else:
        checks.append((WARN, "terminal-notifier: not found (will use osascript fallback)", False))

    osascript = lookup_cmd("osascript")
    if osascript:
        checks.append((OK, f"osascript: {osascript}", False))
    else:
        checks.append((FAIL, "osascript: not found", True))

    if settings.notification_ui == NOTIFICATION_UI_POPUP:
        if popup_supported():
            checks.append((OK, "popup: PyObjC AppKit available", False))
        else:
            checks.append(
                (WARN, "popup: PyObjC AppKit not available (popup UI will fall back to system notifications)", False)
            )

    path = resolve_config_path(config)
    content = read_config(path)
    if not content:
        checks.append((WARN, f"config: not found at {path}", True))
    elif config_has_codex_notify(content):
        checks.append((OK, f"config: notify hook is configured ({path})", False))
    else:
        checks.append((WARN, f"config: notify hook not configured ({path})", True))
    return checks


def run_doctor(settings: NotifySettings, config: str | None = None) -> None:
    print("codex-notify doctor")
    print("-------------------")
    problems = 0
    for status, text, is_problem in collect_checks(settings, config):
        print(f"{status} {text}")
        problems += int(is_problem)

    if problems:
        msg = f"doctor found {problems} issue(s)"
        raise DoctorFailedError(msg)
    print("all checks passed")
