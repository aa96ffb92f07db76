__all__ = [
    "Action",
    "Choice",
    "EventKind",
    "NormalizedEvent",
    "NotificationRequest",
]


from dataclasses import dataclass, field
from enum import Enum


class EventKind(Enum):
    """Known hook event names; anything else is ``OTHER``."""

    TURN_COMPLETE = "agent-turn-complete"
    APPROVAL_REQUESTED = "approval-requested"
    AGENT_ERROR = "agent-error"
    OTHER = "other"

    @classmethod
    def from_name(cls, name: str) -> "EventKind":
        for kind in cls:
            if kind is not cls.OTHER and kind.value == name:
                return kind
        return cls.OTHER


class Action(Enum):
    """`codex-notify action` のサブコマンド."""

    OPEN = "open"
    APPROVE = "approve"
    REJECT = "reject"
    CHOOSE = "choose"
    SUBMIT = "submit"


@dataclass(frozen=True)
class NormalizedEvent:
    """フックペイロードを正規化したイベント."""

    event_name: str
    thread_id: str | None = None
    preview_text: str = ""
    option_labels: tuple[str, ...] = field(default_factory=tuple)

    @property
    def kind(self) -> EventKind:
        return EventKind.from_name(self.event_name)

    @property
    def is_approval(self) -> bool:
        return self.kind is EventKind.APPROVAL_REQUESTED


@dataclass(frozen=True)
class Choice:
    """A label shown to the user and the continuation command it runs.

    ``command`` is a complete shell command line.  It is empty only for
    closeable choices that dispatch nothing.
    """

    label: str
    command: str = ""

    def __post_init__(self) -> None:
        if not self.label.strip():
            msg = "choice label must not be empty"
            raise ValueError(msg)


@dataclass(frozen=True)
class NotificationRequest:
    """One notification to hand to a presentation surface."""

    title: str
    message: str
    group: str
    execute_on_click: str = ""
    activate_bundle_id: str = ""
    primary_label: str = ""
