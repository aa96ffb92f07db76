"""Pytest configuration.

Puts ``src/`` on ``sys.path`` so ``codex_notify`` imports without an
editable install, and points the cache directory at a throwaway location so
tests never touch the user's real lock or log files.
"""

import os
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

os.environ["CODEX_NOTIFY_CACHE_DIR"] = tempfile.mkdtemp(prefix="codex-notify-tests-")
