"""Run the pagesmith test suite with the project's .venv interpreter when present."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
DEFAULT_TARGETS = ("tests",)


def _interpreter(root: Path) -> str:
    if os.name == "nt":
        candidate = root / ".venv" / "Scripts" / "python.exe"
    else:
        candidate = root / ".venv" / "bin" / "python"
    return str(candidate) if candidate.exists() else sys.executable


def main(argv: list[str] | None = None) -> int:
    args = list(argv or DEFAULT_TARGETS)
    return subprocess.call([_interpreter(ROOT), "-m", "pytest", "-q", *args], cwd=ROOT)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
