"""Display-independent popup state machine.

    IDLE -> DISPLAYING -> (USER_CHOSE | TIMED_OUT | DISMISSED) -> CLOSING -> TERMINATED

The AppKit panel only forwards events (button click, timer fire, close
button) into :class:`PopupMachine`.  Whatever arrives after the first outcome
is ignored, so a continuation command runs at most once per popup and only
when the user picked a choice.
"""

from __future__ import annotations

import math
import os
import subprocess
import time
from collections.abc import Callable
from enum import Enum

from codex_notify.logger import logger
from codex_notify.model.models import Choice
from codex_notify.popup.protocol import PopupConfig
from codex_notify.ui.lock import InteractionLock

SHELL = "/bin/zsh"
CHOICES_PER_ROW = 3
COLLAPSED_MESSAGE_CHARS = 240
MIN_PANEL_WIDTH = 360
MAX_PANEL_WIDTH = 720


class PopupState(Enum):
    IDLE = "idle"
    DISPLAYING = "displaying"
    USER_CHOSE = "user_chose"
    TIMED_OUT = "timed_out"
    DISMISSED = "dismissed"
    CLOSING = "closing"
    TERMINATED = "terminated"


OUTCOME_STATES = frozenset(
    {PopupState.USER_CHOSE, PopupState.TIMED_OUT, PopupState.DISMISSED}
)


def run_shell(command: str) -> int | None:
    """Run a continuation command through a login shell, discarding output."""
    if not command:
        return None
    try:
        result = subprocess.run(  # noqa: S603
            [SHELL, "-lc", command],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError:
        logger.exception("failed to run action command")
        return None
    if result.returncode != 0:
        logger.warning("action command exited with %s", result.returncode)
    return result.returncode


class PopupMachine:
    """State holder for one popup run."""

    def __init__(
        self,
        config: PopupConfig,
        *,
        run_command: Callable[[str], object] = run_shell,
        on_terminate: Callable[[], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        pid: int | None = None,
    ) -> None:
        self.config = config
        self.state = PopupState.IDLE
        self.outcome: PopupState | None = None
        self.chosen: Choice | None = None
        self.expanded = False
        self._run_command = run_command
        self._on_terminate = on_terminate
        self._clock = clock
        self._pid = os.getpid() if pid is None else pid
        self._started_at = 0.0
        self._lock = (
            InteractionLock(config.lock_file) if config.lock_file is not None else None
        )

    # ------------------------------------------------------------------
    # transitions
    def show(self) -> None:
        if self.state is not PopupState.IDLE:
            return
        self._started_at = self._clock()
        if self._lock is not None:
            self._lock.acquire(self._pid, self.config.timeout_seconds, self.config.identifier)
        self.state = PopupState.DISPLAYING
        logger.info(
            "popup %s displaying %d choice(s) for %ss",
            self.config.identifier,
            len(self.config.choices),
            self.config.timeout_seconds,
        )

    def choose(self, index: int) -> bool:
        """Handle a click on choice ``index``; returns False if ignored.

        An index outside the choice list closes the popup like a dismiss.
        """
        if self.state is not PopupState.DISPLAYING:
            return False
        if not 0 <= index < len(self.config.choices):
            return self.dismiss()
        self.chosen = self.config.choices[index]
        self._enter_outcome(PopupState.USER_CHOSE)
        try:
            if self.chosen.command:
                logger.info("popup %s chose %r", self.config.identifier, self.chosen.label)
                self._run_command(self.chosen.command)
        finally:
            self._close()
        return True

    def expire(self) -> bool:
        if self.state is not PopupState.DISPLAYING:
            return False
        self._enter_outcome(PopupState.TIMED_OUT)
        self._close()
        return True

    def dismiss(self) -> bool:
        if self.state is not PopupState.DISPLAYING:
            return False
        self._enter_outcome(PopupState.DISMISSED)
        self._close()
        return True

    def toggle_expanded(self) -> bool:
        if self.state is PopupState.DISPLAYING:
            self.expanded = not self.expanded
        return self.expanded

    def _enter_outcome(self, outcome: PopupState) -> None:
        self.state = outcome
        self.outcome = outcome

    def _close(self) -> None:
        self.state = PopupState.CLOSING
        if self._lock is not None:
            self._lock.release()
        self.state = PopupState.TERMINATED
        logger.info(
            "popup %s closed (%s)",
            self.config.identifier,
            self.outcome.value if self.outcome else "none",
        )
        if self._on_terminate is not None:
            self._on_terminate()

    # ------------------------------------------------------------------
    # countdown
    def remaining_seconds(self) -> float:
        if self.state is PopupState.IDLE:
            return float(self.config.timeout_seconds)
        if self.state is not PopupState.DISPLAYING:
            return 0.0
        elapsed = self._clock() - self._started_at
        return max(0.0, self.config.timeout_seconds - elapsed)

    def remaining_fraction(self) -> float:
        return self.remaining_seconds() / self.config.timeout_seconds

    def tick(self) -> float:
        """Progress-timer callback; expires the popup once time is up."""
        remaining = self.remaining_seconds()
        if self.state is PopupState.DISPLAYING and remaining <= 0:
            self.expire()
        return remaining

    @property
    def terminated(self) -> bool:
        return self.state is PopupState.TERMINATED


# ----------------------------------------------------------------------
# layout helpers shared with the AppKit panel


def layout_rows(count: int, per_row: int = CHOICES_PER_ROW) -> list[list[int]]:
    """Split choice indexes into button rows."""
    return [list(range(start, min(start + per_row, count))) for start in range(0, count, per_row)]


def panel_width(message: str) -> int:
    return max(MIN_PANEL_WIDTH, min(MAX_PANEL_WIDTH, 220 + len(message) * 2))


def collapsed_message(message: str, limit: int = COLLAPSED_MESSAGE_CHARS) -> tuple[str, bool]:
    """Return the text to show before "show full text" and whether it was cut."""
    if len(message) <= limit:
        return message, False
    return message[: limit - 1].rstrip() + "…", True


def countdown_label(remaining: float) -> str:
    return f"{math.ceil(remaining)}s"
