"""Map approval options to continuation commands.

A continuation is a complete shell command line that re-invokes
``codex-notify action ...``.  Notification click handlers and popup buttons
run it later, in a different process, so everything interpolated into it is
shell-quoted.
"""

from __future__ import annotations

import os
import shlex
import sys
from pathlib import Path

from codex_notify import APP_NAME
from codex_notify.config import NotifySettings
from codex_notify.model.models import Action, Choice, NormalizedEvent

OPEN_WORDS = frozenset({"open", "show", "focus"})
APPROVE_WORDS = frozenset({"approve", "approved", "allow", "yes", "y", "ok"})
REJECT_WORDS = frozenset({"reject", "denied", "deny", "no", "n", "cancel"})

DEFAULT_LABELS: tuple[tuple[str, Action], ...] = (
    ("Open", Action.OPEN),
    ("Approve", Action.APPROVE),
    ("Reject", Action.REJECT),
)

_ACTION_LABELS = {action.value: action.value.capitalize() for action in Action}


def executable_command(settings: NotifySettings | None = None) -> list[str]:
    """The argv prefix that re-invokes this program."""
    if settings is not None and settings.executable:
        return shlex.split(settings.executable)
    argv0 = Path(sys.argv[0]) if sys.argv and sys.argv[0] else None
    if argv0 is not None and argv0.name == APP_NAME and argv0.is_file():
        return [os.path.abspath(argv0)]
    return [sys.executable, "-m", "codex_notify"]


def _quote(value: str) -> str:
    # shlex.quote leaves safe words bare; always quote so commands stay uniform
    value = value.replace("\x00", "")
    return "'" + value.replace("'", "'\"'\"'") + "'"


def build_action_command(
    action: Action,
    thread_id: str | None = None,
    text: str | None = None,
    *,
    settings: NotifySettings | None = None,
) -> str:
    """Return ``<exe> action <name> [--text=v] [--thread-id=id]`` as one string.

    Values are joined with ``=`` so one starting with ``-`` is never read as a flag.
    """
    parts = [_quote(part) for part in executable_command(settings)]
    parts += ["action", _quote(action.value)]
    if action is Action.SUBMIT:
        parts.append("--text=" + _quote(text or ""))
    if thread_id:
        parts.append("--thread-id=" + _quote(thread_id))
    return " ".join(parts)


def normalize_label(label: str) -> str:
    norm = label.strip().lower()
    for ch in (" ", "-", "_"):
        norm = norm.replace(ch, "")
    return norm


def action_for_label(label: str, index: int, total: int) -> Action | None:
    """Known vocabulary first, then positional yes/no for two options.

    ``None`` means the label is sent as literal text (``submit``).
    """
    norm = normalize_label(label)
    if norm in OPEN_WORDS:
        return Action.OPEN
    if norm in APPROVE_WORDS:
        return Action.APPROVE
    if norm in REJECT_WORDS:
        return Action.REJECT
    if total == 2:  # noqa: PLR2004
        return Action.APPROVE if index == 0 else Action.REJECT
    return None


def default_choices(
    thread_id: str | None = None, settings: NotifySettings | None = None
) -> list[Choice]:
    return [
        Choice(label, build_action_command(action, thread_id, settings=settings))
        for label, action in DEFAULT_LABELS
    ]


def choices_from_labels(
    labels: tuple[str, ...] | list[str],
    thread_id: str | None = None,
    settings: NotifySettings | None = None,
) -> list[Choice]:
    choices: list[Choice] = []
    total = len(labels)
    for index, raw in enumerate(labels):
        label = raw.strip()
        if not label:
            continue
        action = action_for_label(label, index, total)
        if action is None:
            command = build_action_command(
                Action.SUBMIT, thread_id, label, settings=settings
            )
        else:
            command = build_action_command(action, thread_id, settings=settings)
        choices.append(Choice(label, command))
    return choices


def resolve(event: NormalizedEvent, settings: NotifySettings) -> list[Choice]:
    """Choices to offer for ``event``; empty unless it is an approval request."""
    if not event.is_approval or not settings.approval_actions_enabled:
        return []
    choices = choices_from_labels(event.option_labels, event.thread_id, settings)
    if not choices:
        choices = default_choices(event.thread_id, settings)
    return choices


def infer_label(command: str) -> str:
    """ポップアップのボタン名をクリックコマンドから推定する."""
    if not command.strip():
        return ""
    try:
        tokens = shlex.split(command)
    except ValueError:
        return "Open"
    if "action" in tokens:
        index = tokens.index("action")
        name = tokens[index + 1].lower() if index + 1 < len(tokens) else ""
        return _ACTION_LABELS.get(name, "Open")
    return "Open"
