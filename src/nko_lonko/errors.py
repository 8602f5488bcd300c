"""Exception taxonomy for the content pipeline."""

from __future__ import annotations


class LonkoError(Exception):
    """Base class for every error raised by this package."""


class MissingRequiredFieldError(LonkoError, ValueError):
    """A raw record lacks a field that identifies it (only ``slug`` today)."""

    def __init__(self, field: str, record_hint: str | None = None):
        self.field = field
        self.record_hint = record_hint
        hint = f" (record: {record_hint})" if record_hint else ""
        super().__init__(f"Missing required field '{field}'{hint}.")


class ProviderFetchError(LonkoError):
    """The content provider could not be reached or returned garbage."""


class AssetResolutionFailure(LonkoError):
    """An image asset reference could not be turned into a URL.

    Expected for drafts and half-filled records; the image builder catches it
    and reports ``None``.
    """


class UnknownLocaleError(LonkoError, KeyError):
    """A locale key other than ``fr`` or ``nko`` was requested."""


class DictionaryValidationError(LonkoError, ValueError):
    """A message dictionary does not match the dictionary schema."""


class PreferenceWriteError(LonkoError):
    """The language preference could not be saved; the active language is unchanged."""
