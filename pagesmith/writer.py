"""Atomic persistence helpers for generated documents and the page registry."""

from __future__ import annotations

import json
import os
import stat
import tempfile
import threading
from pathlib import Path
from typing import Any

_UMASK_LOCK = threading.Lock()


def write_text_atomic(path: Path, content: str) -> Path:
    """Write ``content`` to ``path`` so readers only ever see a complete file.

    The text lands in a temporary sibling first and is renamed over the target.
    The result keeps the mode of the file it replaces; a new file gets the
    permissions a plain ``open()`` would give it (``0o666`` minus the umask).
    On failure the temporary file is removed and the original error propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = _target_mode(path)
    handle = tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        newline="",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(handle.name)
    try:
        with handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        # mkstemp creates 0600 files; the rename would keep that mode.
        os.chmod(temp_path, mode)
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
    return path


def write_json_atomic(path: Path, payload: Any) -> Path:
    """Serialize ``payload`` as indented JSON and write it atomically."""
    serialized = json.dumps(payload, ensure_ascii=False, indent=2)
    return write_text_atomic(path, serialized + "\n")


def _target_mode(path: Path) -> int:
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return 0o666 & ~_current_umask()


def _current_umask() -> int:
    with _UMASK_LOCK:
        umask = os.umask(0)
        os.umask(umask)
    return umask
