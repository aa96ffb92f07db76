"""Prepare and launch the popup helper process.

The helper is a tiny launcher script in the cache directory that runs
:mod:`codex_notify.popup.panel` with the current interpreter.  It is rebuilt
only when the popup sources (or the interpreter) change: the SHA-256 of
those inputs is stored beside the launcher, and a matching hash with an
existing launcher is a cache hit.  A rebuild also checks that the
interpreter can import AppKit; without PyObjC the helper is unavailable and
callers fall back to system notifications.
"""

from __future__ import annotations

import hashlib
import importlib.util
import subprocess
import sys
from pathlib import Path

from codex_notify.config import NotifySettings
from codex_notify.errors import HelperUnavailableError
from codex_notify.logger import logger
from codex_notify.popup.protocol import PopupConfig, encode_args
from codex_notify.utils import write_file_atomic

HELPER_NAME = "approval_action_notifier"
HASH_NAME = "approval_action_notifier.sha256"
POPUP_SOURCES = ("panel.py", "machine.py", "protocol.py")

POPUP_DIR = Path(__file__).resolve().parent
PACKAGE_ROOT = POPUP_DIR.parent.parent


def popup_supported() -> bool:
    """PyObjC の AppKit が使える macOS かどうか."""
    if sys.platform != "darwin":
        return False
    return importlib.util.find_spec("AppKit") is not None


class PopupHelper:
    """Content-hashed helper cache plus a fire-and-forget launcher."""

    def __init__(self, settings: NotifySettings, python: str | None = None) -> None:
        self.settings = settings
        self.python = python or sys.executable
        self.helper_path = settings.cache_dir / HELPER_NAME
        self.hash_path = settings.cache_dir / HASH_NAME

    def launcher_source(self) -> str:
        return (
            f"#!{self.python}\n"
            "import sys\n"
            f"sys.path.insert(0, {str(PACKAGE_ROOT)!r})\n"
            "from codex_notify.popup.panel import main\n"
            "raise SystemExit(main())\n"
        )

    def source_hash(self) -> str:
        digest = hashlib.sha256()
        digest.update(self.launcher_source().encode("utf-8"))
        for name in POPUP_SOURCES:
            digest.update(name.encode("utf-8"))
            digest.update((POPUP_DIR / name).read_bytes())
        return digest.hexdigest()

    def is_current(self, expected: str) -> bool:
        try:
            current = self.hash_path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return False
        return current == expected and self.helper_path.is_file()

    def prepare(self) -> Path:
        """Return the launcher path, rebuilding it when the sources changed.

        Raises:
            HelperUnavailableError: the platform cannot render the popup or
                the rebuild failed.

        """
        if not popup_supported():
            msg = "popup helper requires macOS with PyObjC (AppKit)"
            raise HelperUnavailableError(msg)
        try:
            expected = self.source_hash()
            if self.is_current(expected):
                return self.helper_path
            self._build(expected)
        except OSError as exc:
            msg = f"prepare popup helper: {exc}"
            raise HelperUnavailableError(msg) from exc
        return self.helper_path

    def _build(self, expected: str) -> None:
        logger.info("building popup helper at %s", self.helper_path)
        check = subprocess.run(  # noqa: S603
            [
                self.python,
                "-c",
                f"import sys; sys.path.insert(0, {str(PACKAGE_ROOT)!r}); "
                "import codex_notify.popup.panel",
            ],
            capture_output=True,
            text=True,
            check=False,
        )
        if check.returncode != 0:
            output = (check.stderr or check.stdout or "").strip()
            msg = f"compile helper failed: exit {check.returncode} ({output})"
            raise HelperUnavailableError(msg)

        write_file_atomic(self.helper_path, self.launcher_source(), mode=0o755)
        write_file_atomic(self.hash_path, expected + "\n")

    def launch(self, config: PopupConfig) -> subprocess.Popen[bytes]:
        """Start the helper detached and return immediately."""
        helper_path = self.prepare()
        try:
            return subprocess.Popen(  # noqa: S603
                [str(helper_path), *encode_args(config)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
                close_fds=True,
            )
        except OSError as exc:
            msg = f"start popup helper: {exc}"
            raise HelperUnavailableError(msg) from exc
