from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

# Minimal, truly shared file helpers only.


def write_file_atomic(path: Path, content: bytes | str, mode: int = 0o644) -> None:
    """Write via a temp file in the same directory and rename over ``path``."""
    data = content.encode("utf-8") if isinstance(content, str) else content
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        tmp_path.chmod(mode)
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def read_file_maybe(path: Path) -> bytes | None:
    """ファイルがなければ None を返す."""
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def lookup_cmd(name: str) -> str | None:
    return shutil.which(name)
