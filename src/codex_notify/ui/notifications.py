"""Notification presenter.

Chooses the surface for each notification, in order: the popup helper (when
popup UI is selected and the helper can be prepared), ``terminal-notifier``,
and finally a plain ``osascript`` notification.  Approval popups are
single-flight per thread: while one is on screen, further approval hooks for
the same group are dropped.
"""

from __future__ import annotations

import platform
from enum import Enum
from typing import Any

from codex_notify.actions.macos import MacOSAutomation
from codex_notify.config import (
    APPROVAL_UI_MULTI,
    NOTIFICATION_UI_POPUP,
    NOTIFICATION_UI_SYSTEM,
    NotifySettings,
    get_settings,
)
from codex_notify.errors import HelperUnavailableError, UnsupportedPlatformError
from codex_notify.hook.choices import build_action_command, infer_label
from codex_notify.hook.payload import GENERIC_PREVIEW, notification_group, render_message
from codex_notify.logger import logger
from codex_notify.model.models import Action, Choice, NormalizedEvent, NotificationRequest
from codex_notify.popup.helper import PopupHelper, popup_supported
from codex_notify.popup.protocol import PopupConfig
from codex_notify.ui.lock import InteractionLock

APPROVAL_POPUP_KIND = "approval-native"


class Surface(Enum):
    """Where a notification ended up."""

    POPUP = "popup"
    TERMINAL_NOTIFIER = "terminal-notifier"
    OSASCRIPT = "osascript"
    SUPPRESSED = "suppressed"


class NotificationService:
    """Presents hook events on the best available surface."""

    def __init__(
        self,
        settings: NotifySettings | None = None,
        automation: MacOSAutomation | None = None,
        helper: PopupHelper | None = None,
    ) -> None:
        self.platform = platform.system()
        self.settings = settings or get_settings()
        self.automation = automation or MacOSAutomation()
        self.helper = helper or PopupHelper(self.settings)
        self._helper_error: HelperUnavailableError | None = None

    # ------------------------------------------------------------------
    # hook events
    def present(self, event: NormalizedEvent, choices: list[Choice]) -> list[Surface]:
        """Show ``event``; ``choices`` come from the choice resolver.

        Returns the surface used for each notification that was sent.
        """
        use_popup = bool(choices) and self.should_use_approval_popup(event)
        group = notification_group(APPROVAL_POPUP_KIND, event.thread_id)
        timeout = self.settings.approval_timeout_seconds
        lock = self.approval_lock(event) if event.is_approval else None
        if lock is not None:
            # the popup path takes the lock before launching; others only look
            held = not lock.claim(timeout, group) if use_popup else lock.is_held()
            if held:
                logger.info("approval popup already open for %s; dropping notification", group)
                return [Surface.SUPPRESSED]

        if use_popup:
            title, message = render_message(event)
            config = PopupConfig(
                title=title,
                message=message,
                identifier=group,
                timeout_seconds=timeout,
                choices=tuple(choices),
            )
            try:
                self.launch_popup(config, lock)
            except HelperUnavailableError as exc:
                if lock is not None:
                    lock.release()
                logger.warning("approval popup unavailable, falling back: %s", exc)
            else:
                return [Surface.POPUP]

        return [self.notify(req) for req in self.build_hook_notifications(event)]

    def should_use_approval_popup(self, event: NormalizedEvent) -> bool:
        return (
            self.settings.notification_ui != NOTIFICATION_UI_SYSTEM
            and event.is_approval
            and self.settings.approval_actions_enabled
            and self.settings.approval_ui != APPROVAL_UI_MULTI
            and self.settings.popup_approval_actions
        )

    def approval_lock(self, event: NormalizedEvent) -> InteractionLock:
        group = notification_group(APPROVAL_POPUP_KIND, event.thread_id)
        return InteractionLock.for_group(self.settings.lock_dir, group)

    def build_hook_notifications(self, event: NormalizedEvent) -> list[NotificationRequest]:
        thread_id = event.thread_id
        title, message = render_message(event)
        click = Action.OPEN
        approval_actions = event.is_approval and self.settings.approval_actions_enabled
        multi = approval_actions and self.settings.approval_ui == APPROVAL_UI_MULTI
        if approval_actions and not multi:
            click = Action.CHOOSE

        requests = [
            NotificationRequest(
                title=title,
                message=message,
                group=notification_group(event.event_name, thread_id),
                execute_on_click=self._command(click, thread_id),
            )
        ]
        if multi:
            requests += [
                NotificationRequest(
                    title="Codex: Approve",
                    message="クリックで承認入力を送信",
                    group=notification_group("approve", thread_id),
                    execute_on_click=self._command(Action.APPROVE, thread_id),
                    primary_label="Approve",
                ),
                NotificationRequest(
                    title="Codex: Reject",
                    message="クリックで拒否入力を送信",
                    group=notification_group("reject", thread_id),
                    execute_on_click=self._command(Action.REJECT, thread_id),
                    primary_label="Reject",
                ),
            ]
        return requests

    def _command(self, action: Action, thread_id: str | None) -> str:
        return build_action_command(action, thread_id, settings=self.settings)

    # ------------------------------------------------------------------
    # single notifications
    def notify(self, request: NotificationRequest) -> Surface:
        """Send one notification, falling through the surfaces in order.

        Raises:
            UnsupportedPlatformError: not running on macOS.
            NoCapabilityAvailableError: no surface could show it.

        """
        if self.platform != "Darwin":
            msg = f"unsupported OS: {self.platform} (macOS only)"
            raise UnsupportedPlatformError(msg)

        title = request.title or "Codex"
        message = request.message or GENERIC_PREVIEW
        group = request.group or "codex-notify"

        if self.settings.notification_ui == NOTIFICATION_UI_POPUP:
            config = PopupConfig(
                title=title,
                message=message,
                identifier=group,
                timeout_seconds=self.settings.approval_timeout_seconds,
                choices=tuple(self.popup_choices_for_request(request)),
            )
            try:
                self.launch_popup(config)
            except HelperUnavailableError as exc:
                logger.warning("popup unavailable for %s, falling back: %s", group, exc)
            else:
                return Surface.POPUP

        args = ["-title", title, "-message", message, "-group", group]
        if request.execute_on_click:
            args += ["-execute", request.execute_on_click]
        if request.activate_bundle_id:
            args += ["-activate", request.activate_bundle_id]
        if self.automation.terminal_notifier(args):
            logger.info("terminal-notifier notification sent for %s", group)
            return Surface.TERMINAL_NOTIFIER

        self.automation.display_notification(title, message)
        logger.info("osascript notification sent for %s", group)
        return Surface.OSASCRIPT

    @staticmethod
    def popup_choices_for_request(request: NotificationRequest) -> list[Choice]:
        command = request.execute_on_click.strip()
        label = request.primary_label.strip() or infer_label(command)
        if not label:
            label = "Open" if command else "Close"
        return [Choice(label, command)]

    def launch_popup(self, config: PopupConfig, lock: InteractionLock | None = None) -> None:
        """Start the helper detached; the lock is taken for the helper's pid.

        Raises:
            HelperUnavailableError: the helper cannot be prepared or started.

        """
        if self._helper_error is not None:
            raise self._helper_error
        if lock is not None:
            config = PopupConfig(
                title=config.title,
                message=config.message,
                identifier=config.identifier,
                timeout_seconds=config.timeout_seconds,
                choices=config.choices,
                lock_file=lock.path,
            )
        try:
            process = self.helper.launch(config)
        except HelperUnavailableError as exc:
            self._helper_error = exc
            raise
        if lock is not None:
            lock.acquire(process.pid, config.timeout_seconds, config.identifier)
        logger.info("popup helper started for %s (pid %s)", config.identifier, process.pid)

    # ------------------------------------------------------------------
    # Query helpers
    def get_capabilities(self) -> dict[str, Any]:
        """Return which notification surfaces this machine offers."""
        return {
            "platform": self.platform,
            "popup": popup_supported(),
            "terminal_notifier": self.automation.has("terminal-notifier"),
            "osascript": self.automation.has("osascript"),
        }


_default_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    """デフォルトの通知サービスを取得."""
    global _default_service  # noqa: PLW0603
    if _default_service is None:
        _default_service = NotificationService()
    return _default_service

