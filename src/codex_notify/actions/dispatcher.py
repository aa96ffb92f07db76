"""Key-injection action dispatcher.

Turns ``open`` / ``approve`` / ``reject`` / ``submit`` / ``choose`` into
application activation plus a sequence of synthetic keys sent to the
terminal that runs Codex.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence

from codex_notify.actions.macos import CHOOSER_PROMPT, MacOSAutomation
from codex_notify.config import NotifySettings
from codex_notify.errors import (
    DialogCanceledError,
    KeySendFailedError,
    MissingTextError,
    UnknownActionError,
)
from codex_notify.logger import logger
from codex_notify.model.models import Action

SETTLE_DELAY_SECONDS = 0.15
KEY_DELAY_SECONDS = 0.08

# named token -> macOS virtual key code
KEY_CODES: dict[str, int] = {
    "enter": 36,
    "return": 36,
    "tab": 48,
    "esc": 53,
    "escape": 53,
    "space": 49,
    "up": 126,
    "down": 125,
    "left": 123,
    "right": 124,
}


def key_code_for_token(token: str) -> int | None:
    return KEY_CODES.get(token.strip().lower())


def parse_action(name: str) -> Action:
    try:
        return Action(name.strip().lower())
    except ValueError as exc:
        msg = f"unknown action: {name}"
        raise UnknownActionError(msg) from exc


class ActionDispatcher:
    """Send an abstract action to the configured terminal application."""

    def __init__(
        self,
        settings: NotifySettings,
        automation: MacOSAutomation | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.automation = automation or MacOSAutomation()
        self._sleep = sleep

    def dispatch(
        self, action: Action, thread_id: str | None = None, text: str | None = None
    ) -> None:
        """Run ``action``.

        Raises:
            MissingTextError: ``submit`` without text; nothing is run.
            ActivationFailedError: the terminal could not be activated.
            KeySendFailedError: a key could not be delivered.

        """
        logger.info("dispatch %s (thread=%s)", action.value, thread_id or "-")
        if action is Action.OPEN:
            self.automation.activate(self.settings.terminal_bundle_id)
        elif action is Action.APPROVE:
            self.send_keys(self.settings.approve_keys, thread_id)
        elif action is Action.REJECT:
            self.send_keys(self.settings.reject_keys, thread_id)
        elif action is Action.SUBMIT:
            if not (text or "").strip():
                msg = "submit action requires --text"
                raise MissingTextError(msg)
            self.send_keys([text or "", "enter"], thread_id)
        elif action is Action.CHOOSE:
            self.choose(thread_id)

    def choose(self, thread_id: str | None = None) -> Action | None:
        """Ask via dialog, then run the pick. Cancel or timeout is a no-op."""
        prompt = CHOOSER_PROMPT
        if thread_id:
            prompt = f"thread: {thread_id}\n{CHOOSER_PROMPT}"
        try:
            picked = Action(
                self.automation.choose(prompt, self.settings.approval_timeout_seconds)
            )
        except DialogCanceledError:
            logger.info("chooser dismissed without a choice")
            return None
        self.dispatch(picked, thread_id)
        return picked

    def send_keys(self, sequence: Sequence[str], thread_id: str | None = None) -> None:
        self.automation.activate(self.settings.terminal_bundle_id)
        self._sleep(SETTLE_DELAY_SECONDS)
        for raw in sequence:
            # literal text keeps its spaces; only blank tokens are skipped
            if not raw.strip():
                continue
            code = key_code_for_token(raw)
            try:
                if code is not None:
                    self.automation.key_code(code)
                else:
                    self.automation.keystroke(raw)
            except KeySendFailedError as exc:
                if not thread_id:
                    raise
                msg = f"thread {thread_id}: {exc}"
                raise KeySendFailedError(msg) from exc
            self._sleep(KEY_DELAY_SECONDS)
        logger.info("sent %d key token(s) for thread %s", len(sequence), thread_id or "-")
