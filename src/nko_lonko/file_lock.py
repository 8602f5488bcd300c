"""Process-local path locks and atomic writes for small state files."""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Iterator

_LOCKS: dict[str, Lock] = {}
_LOCKS_GUARD = Lock()


def _lock_for(path: Path) -> Lock:
    key = str(path.resolve())
    with _LOCKS_GUARD:
        return _LOCKS.setdefault(key, Lock())


@contextmanager
def locked_path(path: Path) -> Iterator[None]:
    """Hold the in-process lock for ``path`` while reading or replacing it."""
    with _lock_for(path):
        yield


def atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` so readers never observe a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    with locked_path(path):
        try:
            tmp.write_text(text, encoding="utf-8")
            os.replace(tmp, path)
        finally:
            tmp.unlink(missing_ok=True)
