"""Client-local persistence of the preferred language."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from .config import Settings, state_dir
from .errors import PreferenceWriteError
from .file_lock import atomic_write_text, locked_path

logger = logging.getLogger(__name__)

PREFERENCE_KEY = "preferred-lang"
PREFERENCE_FILE = "preferences.json"


class PreferenceStore:
    """One key-value entry in a JSON file: the last language the reader chose."""

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PreferenceStore":
        return cls(state_dir(settings) / PREFERENCE_FILE)

    def _read_all(self) -> dict:
        try:
            with locked_path(self.path):
                raw = self.path.read_text(encoding="utf-8")
            data = json.loads(raw)
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning(f"Ignoring corrupt preference file {self.path}: {exc}")
            return {}
        return data if isinstance(data, dict) else {}

    def read(self) -> Optional[str]:
        value = self._read_all().get(PREFERENCE_KEY)
        return value if isinstance(value, str) else None

    def write(self, value: str) -> None:
        data = self._read_all()
        data[PREFERENCE_KEY] = value
        try:
            atomic_write_text(self.path, json.dumps(data, ensure_ascii=False))
        except OSError as exc:
            raise PreferenceWriteError(f"cannot save language preference to {self.path}: {exc}") from exc


class MemoryPreferenceStore:
    """In-process store for callers without a writable state directory."""

    def __init__(self, value: Optional[str] = None):
        self.value = value

    def read(self) -> Optional[str]:
        return self.value

    def write(self, value: str) -> None:
        self.value = value
