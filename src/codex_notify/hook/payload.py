"""Hook payload interpretation.

Codex (and compatible forks) send one JSON object per notify hook.  Field
spellings drift between kebab-case, snake_case and camelCase, so every
logical field is looked up through an ordered list of alternatives where the
first present, non-empty value wins.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import IO, Any

from codex_notify.errors import MalformedPayloadError
from codex_notify.model.models import EventKind, NormalizedEvent

PREVIEW_LIMIT = 180
ELLIPSIS = "..."

EVENT_KEYS = ("event", "type")
THREAD_ID_KEYS = ("thread-id", "thread_id", "threadId")
PREVIEW_KEYS = (
    "last-assistant-message",
    "last_assistant_message",
    "message",
    "text",
)
INPUT_MESSAGES_KEYS = ("input-messages", "input_messages")
OPTION_KEYS = (
    "approval-options",
    "approval_options",
    "options",
    "choices",
    "actions",
)
PAYLOAD_PATH_KEY = "payload-path"

GENERIC_PREVIEW = "通知イベントを受信しました。"

# event kind -> (title, message used when the payload carries no preview)
EVENT_TITLES: dict[EventKind, tuple[str, str]] = {
    EventKind.TURN_COMPLETE: ("Codex: Turn Complete", "入力待ちです。"),
    EventKind.APPROVAL_REQUESTED: ("Codex: Approval Requested", "承認待ちです。"),
    EventKind.AGENT_ERROR: ("Codex: Error", "エラーイベントを受信しました。"),
}


def get_string(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        return ""
    return value.strip()


def first_string(payload: dict[str, Any], *keys: str) -> str:
    """Return the first non-empty string found under ``keys``."""
    for key in keys:
        value = get_string(payload, key)
        if value:
            return value
    return ""


def first_string_list(payload: dict[str, Any], *keys: str) -> list[str]:
    """Return the first non-empty list found under ``keys``.

    Items are coerced to ``str`` and trimmed; blank items are dropped.
    """
    for key in keys:
        value = payload.get(key)
        if not isinstance(value, list):
            continue
        out = [_coerce(item) for item in value]
        out = [item for item in out if item]
        if out:
            return out
    return []


def _coerce(item: Any) -> str:
    if item is None:
        return ""
    if isinstance(item, bool):
        return "true" if item else "false"
    if isinstance(item, (dict, list)):
        return json.dumps(item, ensure_ascii=False)
    return str(item).strip()


def truncate_preview(text: str, limit: int = PREVIEW_LIMIT) -> str:
    """空白を正規化し、limit 文字を超える場合は末尾を ``...`` にする."""
    collapsed = " ".join(text.split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[: limit - len(ELLIPSIS)] + ELLIPSIS


def preview_text(payload: dict[str, Any]) -> str:
    message = first_string(payload, *PREVIEW_KEYS)
    if not message:
        message = " ".join(first_string_list(payload, *INPUT_MESSAGES_KEYS))
    return truncate_preview(message)


def decode_payload(raw: str | bytes | None) -> dict[str, Any]:
    """Decode raw hook input into a mapping.

    Empty input is a valid, empty payload.  A small envelope carrying
    ``payload-path`` is replaced by the JSON document at that path.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if raw is None or not raw.strip():
        return {}
    payload = _loads(raw)
    payload_path = payload.get(PAYLOAD_PATH_KEY)
    if isinstance(payload_path, str) and payload_path.strip():
        try:
            text = Path(payload_path).read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"read payload file {payload_path}: {exc}"
            raise MalformedPayloadError(msg) from exc
        payload = _loads(text)
    return payload


def _loads(text: str) -> dict[str, Any]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"parse payload json: {exc}"
        raise MalformedPayloadError(msg) from exc
    if not isinstance(payload, dict):
        msg = f"parse payload json: expected an object, got {type(payload).__name__}"
        raise MalformedPayloadError(msg)
    return payload


def normalize(payload: dict[str, Any]) -> NormalizedEvent:
    """Build the event; an unnamed event without text gets the generic preview."""
    event_name = first_string(payload, *EVENT_KEYS)
    thread_id = first_string(payload, *THREAD_ID_KEYS)
    preview = preview_text(payload)
    if not event_name and not preview:
        preview = GENERIC_PREVIEW
    return NormalizedEvent(
        event_name=event_name,
        thread_id=thread_id or None,
        preview_text=preview,
        option_labels=tuple(first_string_list(payload, *OPTION_KEYS)),
    )


def interpret(raw: str | bytes | None) -> NormalizedEvent:
    """Parse raw hook input into a :class:`NormalizedEvent`.

    Raises:
        MalformedPayloadError: ``raw`` is non-empty and not a JSON object.

    """
    return normalize(decode_payload(raw))


def render_message(event: NormalizedEvent) -> tuple[str, str]:
    """Return ``(title, message)`` for a notification about ``event``."""
    preview = event.preview_text
    known = EVENT_TITLES.get(event.kind)
    if known is not None:
        title, fallback = known
        return title, preview or fallback
    if not event.event_name:
        return "Codex", preview or GENERIC_PREVIEW
    if preview:
        return "Codex", f"{event.event_name}: {preview}"
    return "Codex", f"イベント: {event.event_name}"


def sanitize_id(value: str) -> str:
    out = "".join(
        ch if (ch.isascii() and ch.isalnum()) or ch in "._-" else "-" for ch in value
    )
    return out.strip("-")


def notification_group(kind: str, thread_id: str | None = None) -> str:
    """Deduplication key, e.g. ``codex-notify-approval-native-t1``."""
    kind = sanitize_id(kind) or "event"
    thread = sanitize_id(thread_id or "")
    if not thread:
        return f"codex-notify-{kind}"
    return f"codex-notify-{kind}-{thread}"


def read_hook_input(args: list[str], stdin: IO[str] | None = None) -> str:
    """Payload from the first argument, else from piped stdin, else empty."""
    if args:
        return args[0]
    stream = sys.stdin if stdin is None else stdin
    if stream is None or stream.isatty():
        return ""
    return stream.read().strip()
