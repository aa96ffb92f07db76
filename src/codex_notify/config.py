"""Settings for codex-notify.

Values come from ``CODEX_NOTIFY_*`` environment variables.  An optional
dotenv file (``$CODEX_HOME/codex-notify.env``) is loaded first without
overriding the real environment.  Parsing is tolerant: a malformed value
falls back to its default instead of failing the hook.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from codex_notify import APP_NAME

DEFAULT_TERMINAL_BUNDLE_ID = "com.mitchellh.ghostty"
DEFAULT_APPROVE_KEYS = "y,enter"
DEFAULT_REJECT_KEYS = "n,enter"
DEFAULT_APPROVAL_TIMEOUT_SECONDS = 45
MIN_APPROVAL_TIMEOUT_SECONDS = 5
MAX_APPROVAL_TIMEOUT_SECONDS = 300

NOTIFICATION_UI_POPUP = "popup"
NOTIFICATION_UI_SYSTEM = "system"
APPROVAL_UI_POPUP = "popup"
APPROVAL_UI_SINGLE = "single"
APPROVAL_UI_MULTI = "multi"

_TRUE_WORDS = {"1", "true", "yes", "on"}

# field name -> environment variable(s), first non-empty wins
ENV_KEYS: dict[str, tuple[str, ...]] = {
    "approval_actions_enabled": ("CODEX_NOTIFY_ENABLE_APPROVAL_ACTIONS",),
    "notification_ui": ("CODEX_NOTIFY_NOTIFICATION_UI",),
    "approval_ui": ("CODEX_NOTIFY_APPROVAL_UI",),
    "popup_approval_actions": (
        "CODEX_NOTIFY_ENABLE_POPUP_APPROVAL_ACTIONS",
        "CODEX_NOTIFY_ENABLE_NATIVE_APPROVAL_ACTIONS",
    ),
    "approval_timeout_seconds": ("CODEX_NOTIFY_APPROVAL_TIMEOUT_SECONDS",),
    "terminal_bundle_id": ("CODEX_NOTIFY_TERMINAL_BUNDLE_ID",),
    "approve_keys": ("CODEX_NOTIFY_APPROVE_KEYS",),
    "reject_keys": ("CODEX_NOTIFY_REJECT_KEYS",),
    "executable": ("CODEX_NOTIFY_EXECUTABLE",),
    "cache_dir": ("CODEX_NOTIFY_CACHE_DIR",),
    "log_level": ("CODEX_NOTIFY_LOG_LEVEL",),
}


def codex_home(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    raw = (env.get("CODEX_HOME") or "").strip()
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".codex"


def default_cache_dir(environ: Mapping[str, str] | None = None) -> Path:
    """ユーザーキャッシュディレクトリ配下の codex-notify ディレクトリ."""
    env = os.environ if environ is None else environ
    if sys.platform == "darwin":
        base = Path.home() / "Library" / "Caches"
    else:
        xdg = (env.get("XDG_CACHE_HOME") or "").strip()
        base = Path(xdg) if xdg else Path.home() / ".cache"
    return base / APP_NAME


def parse_flag(raw: Any, *, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    value = str(raw or "").strip().lower()
    if not value:
        return default
    return value in _TRUE_WORDS


def clamp_timeout(raw: Any) -> int:
    """Clamp to [5, 300]; anything that is not an integer gives 45."""
    if isinstance(raw, bool):
        return DEFAULT_APPROVAL_TIMEOUT_SECONDS
    if isinstance(raw, int):
        parsed = raw
    else:
        try:
            parsed = int(str(raw).strip())
        except ValueError:
            return DEFAULT_APPROVAL_TIMEOUT_SECONDS
    return max(MIN_APPROVAL_TIMEOUT_SECONDS, min(MAX_APPROVAL_TIMEOUT_SECONDS, parsed))


def parse_key_sequence(raw: Any, fallback: str) -> list[str]:
    """Split ``"y,enter"`` style token lists, dropping empty tokens."""
    if isinstance(raw, list | tuple):
        tokens = [str(t).strip() for t in raw]
    else:
        tokens = [t.strip() for t in str(raw or "").split(",")]
    out = [t for t in tokens if t]
    if not out:
        out = [t.strip() for t in fallback.split(",") if t.strip()]
    return out


class NotifySettings(BaseModel):
    """Validated runtime settings."""

    approval_actions_enabled: bool = True
    notification_ui: Literal["popup", "system"] = NOTIFICATION_UI_POPUP
    approval_ui: Literal["popup", "multi"] = APPROVAL_UI_POPUP
    popup_approval_actions: bool = True
    approval_timeout_seconds: int = DEFAULT_APPROVAL_TIMEOUT_SECONDS
    terminal_bundle_id: str = DEFAULT_TERMINAL_BUNDLE_ID
    approve_keys: list[str] = DEFAULT_APPROVE_KEYS.split(",")
    reject_keys: list[str] = DEFAULT_REJECT_KEYS.split(",")
    executable: str | None = None
    cache_dir: Path = default_cache_dir()
    log_level: str = "INFO"

    @field_validator("approval_actions_enabled", "popup_approval_actions", mode="before")
    @classmethod
    def _flag(cls, v: Any) -> bool:
        return parse_flag(v, default=True)

    @field_validator("notification_ui", mode="before")
    @classmethod
    def _notification_ui(cls, v: Any) -> str:
        value = str(v or "").strip().lower()
        if value == NOTIFICATION_UI_SYSTEM:
            return NOTIFICATION_UI_SYSTEM
        return NOTIFICATION_UI_POPUP

    @field_validator("approval_ui", mode="before")
    @classmethod
    def _approval_ui(cls, v: Any) -> str:
        # "single" is the historical name of the popup style
        value = str(v or "").strip().lower()
        if value == APPROVAL_UI_MULTI:
            return APPROVAL_UI_MULTI
        return APPROVAL_UI_POPUP

    @field_validator("approval_timeout_seconds", mode="before")
    @classmethod
    def _timeout(cls, v: Any) -> int:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_APPROVAL_TIMEOUT_SECONDS
        return clamp_timeout(v)

    @field_validator("terminal_bundle_id", mode="before")
    @classmethod
    def _bundle_id(cls, v: Any) -> str:
        return str(v or "").strip() or DEFAULT_TERMINAL_BUNDLE_ID

    @field_validator("approve_keys", mode="before")
    @classmethod
    def _approve_keys(cls, v: Any) -> list[str]:
        return parse_key_sequence(v, DEFAULT_APPROVE_KEYS)

    @field_validator("reject_keys", mode="before")
    @classmethod
    def _reject_keys(cls, v: Any) -> list[str]:
        return parse_key_sequence(v, DEFAULT_REJECT_KEYS)

    @field_validator("executable", mode="before")
    @classmethod
    def _executable(cls, v: Any) -> str | None:
        value = str(v or "").strip()
        return value or None

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _cache_dir(cls, v: Any) -> Path:
        value = str(v or "").strip()
        return Path(value).expanduser() if value else default_cache_dir()

    @field_validator("log_level", mode="before")
    @classmethod
    def _log_level(cls, v: Any) -> str:
        return str(v or "").strip().upper() or "INFO"

    @property
    def lock_dir(self) -> Path:
        return self.cache_dir / "locks"

    @property
    def log_file(self) -> Path:
        return self.cache_dir / f"{APP_NAME}.log"


def env_file_path(environ: Mapping[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ
    explicit = (env.get("CODEX_NOTIFY_ENV_FILE") or "").strip()
    if explicit:
        return Path(explicit).expanduser()
    return codex_home(env) / f"{APP_NAME}.env"


def load_local_env() -> None:
    """dotenv ファイルがあれば読み込む（既存の環境変数は上書きしない）."""
    path = env_file_path()
    if path.is_file():
        load_dotenv(dotenv_path=path, override=False)


def settings_from_env(environ: Mapping[str, str]) -> NotifySettings:
    raw: dict[str, Any] = {}
    for field_name, keys in ENV_KEYS.items():
        for key in keys:
            value = (environ.get(key) or "").strip()
            if value:
                raw[field_name] = value
                break
    return NotifySettings.model_validate(raw)


_settings: NotifySettings | None = None


def get_settings() -> NotifySettings:
    """プロセス全体で共有する設定を取得."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        load_local_env()
        _settings = settings_from_env(os.environ)
    return _settings


def reset_settings() -> None:
    global _settings  # noqa: PLW0603
    _settings = None
