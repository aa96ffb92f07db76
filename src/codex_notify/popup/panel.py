#!/usr/bin/env python3
"""Approval popup helper - floating AppKit panel via PyObjC (macOS).

Launched as a separate, detached process by codex-notify.  It renders a
non-activating panel in the bottom-right corner with one button per choice,
a countdown bar and a close button, and feeds every user or timer event into
:class:`PopupMachine`.
"""

from __future__ import annotations

import signal
import sys

import objc
from AppKit import (
    NSApplication,
    NSApplicationActivationPolicyAccessory,
    NSBackingStoreBuffered,
    NSBezelStyleRounded,
    NSButton,
    NSColor,
    NSFloatingWindowLevel,
    NSFont,
    NSPanel,
    NSProgressIndicator,
    NSScreen,
    NSTextField,
    NSTimer,
    NSVisualEffectBlendingModeWithinWindow,
    NSVisualEffectMaterialHUDWindow,
    NSVisualEffectStateActive,
    NSVisualEffectView,
    NSWindowCollectionBehaviorCanJoinAllSpaces,
    NSWindowCollectionBehaviorFullScreenAuxiliary,
    NSWindowCollectionBehaviorTransient,
    NSWindowStyleMaskFullSizeContentView,
    NSWindowStyleMaskNonactivatingPanel,
)
from Foundation import NSMakeRect, NSObject

from codex_notify.config import get_settings
from codex_notify.logger import configure_logging, logger
from codex_notify.popup.machine import (
    PopupMachine,
    collapsed_message,
    countdown_label,
    layout_rows,
    panel_width,
)
from codex_notify.popup.protocol import parse_args
from codex_notify.ui.lock import InteractionLock

MARGIN = 14
BUTTON_HEIGHT = 30
BUTTON_SPACING = 8
TITLE_HEIGHT = 20
PROGRESS_HEIGHT = 6
SCREEN_INSET_X = 18
SCREEN_INSET_Y = 22
TICK_SECONDS = 0.25

TIMER_SELECTOR = "scheduledTimerWithTimeInterval_target_selector_userInfo_repeats_"


class PopupPanelController(NSObject):
    """Owns the panel, its timers and the button targets."""

    def initWithMachine_(self, machine):
        self = objc.super(PopupPanelController, self).init()
        if self is None:
            return None
        self.machine = machine
        self.panel = None
        self.progress = None
        self.countdown = None
        self.timeout_timer = None
        self.progress_timer = None
        return self

    # ------------------------------------------------------------------
    def show(self):
        self.machine.show()
        self.panel = NSPanel.alloc().initWithContentRect_styleMask_backing_defer_(
            NSMakeRect(0, 0, 1, 1),
            NSWindowStyleMaskNonactivatingPanel | NSWindowStyleMaskFullSizeContentView,
            NSBackingStoreBuffered,
            False,
        )
        self.panel.setLevel_(NSFloatingWindowLevel)
        self.panel.setBackgroundColor_(NSColor.clearColor())
        self.panel.setOpaque_(False)
        self.panel.setHasShadow_(True)
        self.panel.setTitlebarAppearsTransparent_(True)
        self.panel.setHidesOnDeactivate_(False)
        self.panel.setCollectionBehavior_(
            NSWindowCollectionBehaviorCanJoinAllSpaces
            | NSWindowCollectionBehaviorFullScreenAuxiliary
            | NSWindowCollectionBehaviorTransient
        )
        self.layout()
        self.panel.orderFrontRegardless()

        self.timeout_timer = getattr(NSTimer, TIMER_SELECTOR)(
            float(self.machine.config.timeout_seconds), self, "timeoutFired:", None, False
        )
        self.progress_timer = getattr(NSTimer, TIMER_SELECTOR)(
            TICK_SECONDS, self, "progressTick:", None, True
        )

    def layout(self):
        config = self.machine.config
        width = panel_width(config.message)
        text, truncated = collapsed_message(config.message)
        if self.machine.expanded:
            text = config.message

        message_label = NSTextField.wrappingLabelWithString_(text)
        message_label.setFont_(NSFont.systemFontOfSize_(13))
        message_label.setTextColor_(NSColor.secondaryLabelColor())
        message_label.setPreferredMaxLayoutWidth_(width - 2 * MARGIN)
        message_height = max(20, message_label.fittingSize().height)

        rows = layout_rows(len(config.choices))
        buttons_height = len(rows) * BUTTON_HEIGHT + max(0, len(rows) - 1) * BUTTON_SPACING
        progress_y = MARGIN + buttons_height + BUTTON_SPACING
        message_y = progress_y + PROGRESS_HEIGHT + 10
        height = message_y + message_height + 16 + TITLE_HEIGHT + MARGIN

        visible = (NSScreen.mainScreen() or NSScreen.screens()[0]).visibleFrame()
        x = visible.origin.x + visible.size.width - width - SCREEN_INSET_X
        y = visible.origin.y + SCREEN_INSET_Y
        self.panel.setFrame_display_(NSMakeRect(x, y, width, height), True)

        root = NSVisualEffectView.alloc().initWithFrame_(NSMakeRect(0, 0, width, height))
        root.setBlendingMode_(NSVisualEffectBlendingModeWithinWindow)
        root.setState_(NSVisualEffectStateActive)
        root.setMaterial_(NSVisualEffectMaterialHUDWindow)
        root.setWantsLayer_(True)
        root.layer().setCornerRadius_(12)
        root.layer().setMasksToBounds_(True)

        title_label = NSTextField.labelWithString_(config.title)
        title_label.setFrame_(
            NSMakeRect(MARGIN, height - MARGIN - TITLE_HEIGHT, width - 150, TITLE_HEIGHT)
        )
        title_label.setFont_(NSFont.boldSystemFontOfSize_(14))
        root.addSubview_(title_label)

        self.countdown = NSTextField.labelWithString_(
            countdown_label(self.machine.remaining_seconds())
        )
        self.countdown.setFrame_(NSMakeRect(width - 128, height - MARGIN - TITLE_HEIGHT, 40, TITLE_HEIGHT))
        self.countdown.setTextColor_(NSColor.tertiaryLabelColor())
        root.addSubview_(self.countdown)

        if truncated:
            toggle = NSButton.buttonWithTitle_target_action_(
                "閉じる" if self.machine.expanded else "全文", self, "toggleDetails:"
            )
            toggle.setBordered_(False)
            toggle.setFrame_(NSMakeRect(width - 84, height - MARGIN - TITLE_HEIGHT, 44, TITLE_HEIGHT))
            root.addSubview_(toggle)

        close_button = NSButton.buttonWithTitle_target_action_("×", self, "closeClicked:")
        close_button.setBordered_(False)
        close_button.setFont_(NSFont.boldSystemFontOfSize_(16))
        close_button.setFrame_(NSMakeRect(width - 34, height - MARGIN - TITLE_HEIGHT - 2, 20, 20))
        root.addSubview_(close_button)

        message_label.setFrame_(NSMakeRect(MARGIN, message_y, width - 2 * MARGIN, message_height))
        root.addSubview_(message_label)

        self.progress = NSProgressIndicator.alloc().initWithFrame_(
            NSMakeRect(MARGIN, progress_y, width - 2 * MARGIN, PROGRESS_HEIGHT)
        )
        self.progress.setIndeterminate_(False)
        self.progress.setMinValue_(0.0)
        self.progress.setMaxValue_(1.0)
        self.progress.setDoubleValue_(self.machine.remaining_fraction())
        root.addSubview_(self.progress)

        per_row_width = width - 2 * MARGIN
        for row_number, row in enumerate(rows):
            row_y = MARGIN + (len(rows) - 1 - row_number) * (BUTTON_HEIGHT + BUTTON_SPACING)
            button_width = (per_row_width - (len(row) - 1) * BUTTON_SPACING) / len(row)
            for column, index in enumerate(row):
                button = NSButton.buttonWithTitle_target_action_(
                    config.choices[index].label, self, "choiceClicked:"
                )
                button.setTag_(index)
                button.setBezelStyle_(NSBezelStyleRounded)
                button.setFrame_(
                    NSMakeRect(
                        MARGIN + column * (button_width + BUTTON_SPACING),
                        row_y,
                        button_width,
                        BUTTON_HEIGHT,
                    )
                )
                root.addSubview_(button)

        self.panel.setContentView_(root)

    # ------------------------------------------------------------------
    # targets
    def choiceClicked_(self, sender):
        self.machine.choose(int(sender.tag()))

    def closeClicked_(self, sender):
        self.machine.dismiss()

    def toggleDetails_(self, sender):
        self.machine.toggle_expanded()
        self.layout()

    def timeoutFired_(self, timer):
        self.machine.expire()

    def progressTick_(self, timer):
        remaining = self.machine.tick()
        if self.progress is not None and not self.machine.terminated:
            self.progress.setDoubleValue_(self.machine.remaining_fraction())
            self.countdown.setStringValue_(countdown_label(remaining))

    def teardown(self):
        for timer in (self.timeout_timer, self.progress_timer):
            if timer is not None:
                timer.invalidate()
        self.timeout_timer = None
        self.progress_timer = None
        if self.panel is not None:
            self.panel.orderOut_(None)
            self.panel = None
        NSApplication.sharedApplication().terminate_(None)


class AppDelegate(NSObject):
    def initWithController_(self, controller):
        self = objc.super(AppDelegate, self).init()
        if self is None:
            return None
        self.controller = controller
        return self

    def applicationDidFinishLaunching_(self, notification):
        self.controller.show()


def main(argv: list[str] | None = None) -> int:
    configure_logging(get_settings())
    config = parse_args(sys.argv[1:] if argv is None else argv)

    app = NSApplication.sharedApplication()
    app.setActivationPolicy_(NSApplicationActivationPolicyAccessory)

    holder: dict[str, PopupPanelController] = {}
    machine = PopupMachine(config, on_terminate=lambda: holder["controller"].teardown())
    controller = PopupPanelController.alloc().initWithMachine_(machine)
    holder["controller"] = controller
    delegate = AppDelegate.alloc().initWithController_(controller)
    app.setDelegate_(delegate)

    def handle_signal(signum, frame):
        logger.info("popup %s received signal %s", config.identifier, signum)
        if not machine.dismiss():
            app.terminate_(None)

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    try:
        app.run()
    finally:
        if not machine.terminated and config.lock_file is not None:
            InteractionLock(config.lock_file).release()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
