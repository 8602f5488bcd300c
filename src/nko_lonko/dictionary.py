"""Load and validate the bundled UI message dictionaries (French / N'Ko)."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from .errors import DictionaryValidationError, UnknownLocaleError

LOCALE_KEYS = ("fr", "nko")


def messages_dir() -> Path:
    return Path(__file__).resolve().parent / "messages"


def default_schema_path() -> Path:
    """Return the path to the dictionary JSON schema shipped with the package."""
    return messages_dir() / "dictionary.schema.json"


@lru_cache(maxsize=1)
def load_schema(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Load and cache the dictionary schema as a dictionary."""
    schema_path = Path(path) if path else default_schema_path()
    return json.loads(schema_path.read_text(encoding="utf-8"))


def format_errors(errors: Iterable[ValidationError]) -> str:
    """Turn jsonschema errors into a concise human-readable string."""
    parts = []
    for err in errors:
        location = ".".join(str(piece) for piece in err.absolute_path) or "<root>"
        parts.append(f"{location}: {err.message}")
    return "; ".join(parts)


def validate_dictionary(
    payload: Dict[str, Any], schema: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Validate a message dictionary against the schema.

    Raises DictionaryValidationError with a readable message if validation fails.
    """
    validator = Draft202012Validator(schema or load_schema())
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.absolute_path))
    if errors:
        raise DictionaryValidationError(f"Dictionary validation failed: {format_errors(errors)}")
    return payload


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    return value


class Dictionary:
    """Read-only view over one locale's messages."""

    def __init__(self, locale: str, data: Mapping[str, Any]):
        self.locale = locale
        self._data = _freeze(dict(data))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def get(self, dotted_key: str, default: Optional[str] = None) -> Any:
        """Look up ``"home.hero.title"`` style keys."""
        node: Any = self._data
        for part in dotted_key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    @property
    def categories(self) -> Mapping[str, str]:
        return self._data["home"]["categories"]

    def __repr__(self) -> str:
        return f"Dictionary(locale={self.locale!r})"


def _check_locale(locale: str) -> str:
    if locale not in LOCALE_KEYS:
        raise UnknownLocaleError(f"Unknown locale {locale!r}; expected one of {LOCALE_KEYS}.")
    return locale


def load_dictionary(locale: str, path: Optional[Path | str] = None) -> Dictionary:
    """Load, validate and freeze the messages of ``locale``."""
    _check_locale(locale)
    source = Path(path) if path else messages_dir() / f"{locale}.json"
    try:
        data = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DictionaryValidationError(f"invalid JSON in {source.name}: {exc}") from exc
    validate_dictionary(data)
    return Dictionary(locale, data)


@lru_cache(maxsize=1)
def load_dictionaries() -> Mapping[str, Dictionary]:
    """All bundled dictionaries, loaded once per process."""
    return MappingProxyType({locale: load_dictionary(locale) for locale in LOCALE_KEYS})
