"""Command-line contract between codex-notify and the popup helper.

    --title <s> --message <s> --identifier <s> --timeout-seconds <n>
    [--interaction-lock-file <path>] (--choice-label <s> --choice-cmd <s>)*

Flags are consumed strictly in ``flag value`` pairs, so a value that happens
to look like a flag is still a value.  Single-valued flags keep their first
occurrence; choice labels and commands are paired by position.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from codex_notify.config import DEFAULT_APPROVAL_TIMEOUT_SECONDS, clamp_timeout
from codex_notify.model.models import Choice

FLAG_TITLE = "--title"
FLAG_MESSAGE = "--message"
FLAG_IDENTIFIER = "--identifier"
FLAG_TIMEOUT = "--timeout-seconds"
FLAG_LOCK_FILE = "--interaction-lock-file"
FLAG_CHOICE_LABEL = "--choice-label"
FLAG_CHOICE_CMD = "--choice-cmd"

_SINGLE_FLAGS = (FLAG_TITLE, FLAG_MESSAGE, FLAG_IDENTIFIER, FLAG_TIMEOUT, FLAG_LOCK_FILE)
_REPEATED_FLAGS = (FLAG_CHOICE_LABEL, FLAG_CHOICE_CMD)

DEFAULT_TITLE = "Codex: Approval Requested"
DEFAULT_MESSAGE = "承認待ちです。"
DEFAULT_IDENTIFIER = "codex-notify"
DEFAULT_CHOICE_LABELS = ("Open", "Approve", "Reject")


@dataclass(frozen=True)
class PopupConfig:
    """Everything the helper needs for one popup."""

    title: str = DEFAULT_TITLE
    message: str = DEFAULT_MESSAGE
    identifier: str = DEFAULT_IDENTIFIER
    timeout_seconds: int = DEFAULT_APPROVAL_TIMEOUT_SECONDS
    choices: tuple[Choice, ...] = field(default_factory=tuple)
    lock_file: Path | None = None


def encode_args(config: PopupConfig) -> list[str]:
    """Build the helper argv (without the program name)."""
    args = [
        FLAG_TITLE, config.title,
        FLAG_MESSAGE, config.message,
        FLAG_IDENTIFIER, config.identifier,
        FLAG_TIMEOUT, str(config.timeout_seconds),
    ]  # fmt: skip
    if config.lock_file is not None:
        args += [FLAG_LOCK_FILE, str(config.lock_file)]
    for choice in config.choices:
        args += [FLAG_CHOICE_LABEL, choice.label, FLAG_CHOICE_CMD, choice.command]
    return args


def _scan(argv: list[str]) -> tuple[dict[str, str], dict[str, list[str]]]:
    single: dict[str, str] = {}
    repeated: dict[str, list[str]] = {flag: [] for flag in _REPEATED_FLAGS}
    index = 0
    while index < len(argv):
        flag = argv[index]
        has_value = index + 1 < len(argv)
        if has_value and flag in _SINGLE_FLAGS:
            single.setdefault(flag, argv[index + 1])
            index += 2
        elif has_value and flag in _REPEATED_FLAGS:
            repeated[flag].append(argv[index + 1])
            index += 2
        else:
            index += 1
    return single, repeated


def parse_timeout(raw: str | None) -> int:
    if raw is None or not raw.strip():
        return DEFAULT_APPROVAL_TIMEOUT_SECONDS
    return clamp_timeout(raw)


def parse_args(argv: list[str]) -> PopupConfig:
    """Parse helper arguments, applying defaults and filtering choices.

    A pair survives when its label is non-empty after trimming.  When none
    survive, the default Open/Approve/Reject trio with empty commands is used.
    """
    single, repeated = _scan(argv)
    labels = repeated[FLAG_CHOICE_LABEL]
    commands = repeated[FLAG_CHOICE_CMD]

    choices = [
        Choice(label.strip(), command.strip())
        for label, command in zip(labels, commands)
        if label.strip()
    ]
    if not choices:
        choices = [Choice(label) for label in DEFAULT_CHOICE_LABELS]

    lock_raw = single.get(FLAG_LOCK_FILE, "").strip()
    return PopupConfig(
        title=single.get(FLAG_TITLE) or DEFAULT_TITLE,
        message=single.get(FLAG_MESSAGE) or DEFAULT_MESSAGE,
        identifier=single.get(FLAG_IDENTIFIER) or DEFAULT_IDENTIFIER,
        timeout_seconds=parse_timeout(single.get(FLAG_TIMEOUT)),
        choices=tuple(choices),
        lock_file=Path(lock_raw) if lock_raw else None,
    )
