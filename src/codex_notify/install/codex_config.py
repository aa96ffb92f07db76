"""Wire codex-notify into Codex's ``config.toml``.

Only the root ``notify = [...]`` line is touched.  Every rewrite is atomic
and preceded by a timestamped backup (``<config>.bak.<ns>``) that
``uninstall`` can restore.
"""

from __future__ import annotations

import re
import time
from pathlib import Path

from codex_notify.config import codex_home
from codex_notify.errors import ConfigFileError
from codex_notify.logger import logger
from codex_notify.utils import read_file_maybe, write_file_atomic

DEFAULT_NOTIFY_LINE = 'notify = ["codex-notify", "hook"]'

ROOT_NOTIFY_LINE_RE = re.compile(r"^notify\s*=")
CODEX_HOOK_ARRAY_RE = re.compile(r'\[\s*"(?:[^"]*/)?codex-notify"\s*,\s*"hook"\s*\]')


def resolve_config_path(config: str | None = None) -> Path:
    if config:
        return Path(config).expanduser()
    return codex_home() / "config.toml"


def split_lines(content: str) -> list[str]:
    return content.replace("\r\n", "\n").splitlines()


def _is_comment_or_blank(trimmed: str) -> bool:
    return not trimmed or trimmed.startswith("#")


def is_root_notify_line(trimmed: str) -> bool:
    return ROOT_NOTIFY_LINE_RE.match(trimmed) is not None


def is_codex_notify_hook_line(trimmed: str) -> bool:
    if not is_root_notify_line(trimmed):
        return False
    _, _, rhs = trimmed.partition("=")
    return CODEX_HOOK_ARRAY_RE.search(rhs.strip()) is not None


def config_has_codex_notify(content: str) -> bool:
    return any(
        is_codex_notify_hook_line(line.strip())
        for line in split_lines(content)
        if not _is_comment_or_blank(line.strip())
    )


def find_notify_line_index(content: str) -> int:
    """Index of the first root ``notify =`` line, or -1."""
    for index, line in enumerate(split_lines(content)):
        trimmed = line.strip()
        if _is_comment_or_blank(trimmed):
            continue
        if is_root_notify_line(trimmed):
            return index
    return -1


def set_notify_line(content: str, index: int, notify_line: str = DEFAULT_NOTIFY_LINE) -> str:
    lines = split_lines(content)
    if index >= 0:
        lines[index] = notify_line
    else:
        if lines and lines[-1].strip():
            lines.append("")
        lines.append(notify_line)
    return "\n".join(lines) + "\n"


def remove_codex_notify_line(content: str) -> tuple[str, bool]:
    kept = [line for line in split_lines(content) if not is_codex_notify_hook_line(line.strip())]
    removed = len(kept) != len(split_lines(content))
    joined = "\n".join(kept)
    if not joined.strip():
        return "", removed
    return joined + "\n", removed


def read_config(path: Path) -> str:
    try:
        raw = read_file_maybe(path)
    except OSError as exc:
        msg = f"read {path}: {exc}"
        raise ConfigFileError(msg) from exc
    return "" if raw is None else raw.decode("utf-8")


def _write_config(path: Path, content: str, what: str) -> None:
    try:
        write_file_atomic(path, content)
    except OSError as exc:
        msg = f"{what}: {exc}"
        raise ConfigFileError(msg) from exc


def create_backup(config_path: Path, content: str) -> Path:
    backup = config_path.with_name(f"{config_path.name}.bak.{time.time_ns()}")
    _write_config(backup, content, "write backup")
    logger.info("config backup written to %s", backup)
    return backup


def find_latest_backup(config_path: Path) -> Path:
    pattern = re.compile(re.escape(config_path.name) + r"\.bak\.(\d+)$")
    try:
        entries = list(config_path.parent.iterdir())
    except OSError as exc:
        msg = f"read config dir: {exc}"
        raise ConfigFileError(msg) from exc

    backups: list[tuple[int, Path]] = []
    for entry in entries:
        match = pattern.match(entry.name)
        if match and entry.is_file():
            backups.append((int(match.group(1)), entry))
    if not backups:
        msg = "no backup found; cannot restore"
        raise ConfigFileError(msg)
    return max(backups)[1]


def run_init(config: str | None = None, *, replace: bool = False) -> None:
    path = resolve_config_path(config)
    existing = read_config(path)

    if not existing:
        _write_config(path, DEFAULT_NOTIFY_LINE + "\n", "write config")
        print(f"created {path} and configured notify hook")
        return

    if config_has_codex_notify(existing):
        print(f"notify hook already configured in {path}")
        return

    index = find_notify_line_index(existing)
    if index >= 0 and not replace:
        msg = "existing notify config found; rerun with --replace to update it"
        raise ConfigFileError(msg)

    backup = create_backup(path, existing)
    _write_config(path, set_notify_line(existing, index), "update config")
    logger.info("notify hook written to %s", path)
    print(f"updated {path}")
    print(f"backup created: {backup}")


def run_uninstall(config: str | None = None, *, restore: bool = True) -> None:
    path = resolve_config_path(config)
    current = read_config(path)
    if not current:
        print(f"config not found: {path}")
        return

    if restore:
        latest = find_latest_backup(path)
        try:
            content = latest.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"read backup: {exc}"
            raise ConfigFileError(msg) from exc
        _write_config(path, content, "restore config")
        print(f"restored {path} from {latest}")
        return

    updated, removed = remove_codex_notify_line(current)
    if not removed:
        print("no codex-notify line found; nothing changed")
        return

    backup = create_backup(path, current)
    _write_config(path, updated, "write config")
    print(f"removed codex-notify line from {path}")
    print(f"backup created: {backup}")
