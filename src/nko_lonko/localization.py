"""Bilingual localization: language state, digits, dates, category labels.

``LanguageContext`` owns the active language. ``toggle_language`` is the only
way to change it; it also updates the document direction and persists the
choice. Everything else here is a pure helper.
"""

from __future__ import annotations

import enum
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Protocol

from .dictionary import Dictionary, load_dictionaries
from .models import ContentBlock, TEXT_BLOCK_KINDS


class Language(str, enum.Enum):
    FR = "fr"
    NKO = "nko"

    @property
    def direction(self) -> str:
        return "rtl" if self is Language.NKO else "ltr"

    @property
    def other(self) -> "Language":
        return Language.FR if self is Language.NKO else Language.NKO


class Script(str, enum.Enum):
    LATIN = "latin"
    NKO = "nko"


NKO_DIGITS = "߀߁߂߃߄߅߆߇߈߉"
_TO_NKO = str.maketrans("0123456789", NKO_DIGITS)
_FROM_NKO = str.maketrans(NKO_DIGITS, "0123456789")
NKO_BLOCK = re.compile("[\u07c0-\u07ff]")

NKO_MONTHS = (
    "ߓߌ߲ߠߊߥߎߟߋ߲",
    "ߞߏ߲ߞߏߜߍ",
    "ߕߙߊߓߊ",
    "ߞߏ߲ߞߏߘߌ߬ߓߌ",
    "ߘߓߊ߬ߕߊ",
    "ߘߓߊ߬ߓߌߟߊ",
    "ߞߐ߬ߓߊ߬ߟߏ߲",
    "ߘߓߊ߬ߗߍ",
    "ߕߎߟߊߝߌ߲",
    "ߓߊ߲߬ߘߊ߬ߓߌߟߊ",
    "ߣߍߣߍߓߊ",
    "ߞߏߟߌ߲ߞߏߟߌ߲",
)
NKO_DAY_MARKER = "ߕߟߋ߬"
NKO_YEAR_MARKER = "ߛߊ߲߭"

FRENCH_MONTHS = (
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
)

# Used when the loaded dictionary has no entry for a category.
NKO_BUILTIN_CATEGORIES: dict[str, str] = {
    "Science": "ߟߐ߲ߞߏ",
    "Astronomie": "ߛߊ߲ߡߊߛߓߍ",
    "astronomy": "ߛߊ߲ߡߊߛߓߍ",
    "Physique": "ߘߐ߬ߞߏ",
    "physics": "ߘߐ߬ߞߏ",
    "Physique Quantique": "ߘߐ߬ߞߏ ߢߊ߰ߙߊ",
    "Biologie": "ߢߣߊߡߦߊ",
    "biology": "ߢߣߊߡߦߊ",
    "Chimie": "ߖߎ߲߯ߛߊ",
    "chemistry": "ߖߎ߲߯ߛߊ",
    "Mathématiques": "ߘߊ߲߬ߠߊ߬ߕߍ߰ߟߌ",
    "mathematics": "ߘߊ߲߬ߠߊ߬ߕߍ߰ߟߌ",
    "Technologie": "ߛߋߒߞߏߟߦߊ",
    "technology": "ߛߋߒߞߏߟߦߊ",
    "Histoire": "ߘߐ߬ߝߐ",
    "history": "ߘߐ߬ߝߐ",
    "Géologie": "ߘߎ߰ߘߐ߬ߛߓߍ",
    "geology": "ߘߎ߰ߘߐ߬ߛߓߍ",
    "Santé": "ߞߍ߲ߘߍߦߊ",
    "health": "ߞߍ߲ߘߍߦߊ",
}

CATEGORY_ICONS: dict[str, str] = {
    "astronomie": "ph-star",
    "astronomy": "ph-star",
    "physique": "ph-atom",
    "physics": "ph-atom",
    "biologie": "ph-dna",
    "biology": "ph-dna",
    "mathématiques": "ph-function",
    "mathematics": "ph-function",
    "chimie": "ph-flask",
    "chemistry": "ph-flask",
    "géologie": "ph-mountains",
    "geology": "ph-mountains",
    "technologie": "ph-robot",
    "technology": "ph-robot",
    "tech": "ph-robot",
    "histoire": "ph-scroll",
    "history": "ph-scroll",
    "santé": "ph-heartbeat",
    "health": "ph-heartbeat",
    "science": "ph-flask",
}
DEFAULT_ICON = "ph-star"
WORDS_PER_MINUTE = 200


# --- Pure helpers ---------------------------------------------------------


def to_nko_digits(value: int | str) -> str:
    """Replace every ASCII digit with its N'Ko digit; other characters are kept."""
    return str(value).translate(_TO_NKO)


def from_nko_digits(value: str) -> str:
    """Inverse of ``to_nko_digits``."""
    return value.translate(_FROM_NKO)


def detect_script(text: Optional[str]) -> Script:
    """N'Ko if any code point falls in the N'Ko Unicode block, else Latin."""
    if text and NKO_BLOCK.search(text):
        return Script.NKO
    return Script.LATIN


def block_text(blocks: Iterable[ContentBlock]) -> str:
    return " ".join(block.text for block in blocks if block.kind in TEXT_BLOCK_KINDS)


def estimate_reading_time(
    body: Iterable[ContentBlock], words_per_minute: int = WORDS_PER_MINUTE
) -> int:
    """Whole minutes needed to read ``body``; never less than one."""
    words = len(block_text(body).split())
    return max(1, math.ceil(words / words_per_minute))


def format_french_date(value: date | datetime) -> str:
    day = "1er" if value.day == 1 else str(value.day)
    return f"{day} {FRENCH_MONTHS[value.month - 1]} {value.year}"


def format_nko_date(value: date | datetime) -> str:
    """Same Gregorian date, N'Ko month names and digits."""
    month = NKO_MONTHS[value.month - 1]
    return (
        f"{month} {NKO_DAY_MARKER} {to_nko_digits(value.day)} "
        f"{NKO_YEAR_MARKER} {to_nko_digits(value.year)}"
    )


def _casefold_lookup(table: Mapping[str, str], key: str) -> Optional[str]:
    wanted = key.strip().lower()
    for candidate, label in table.items():
        if candidate.lower() == wanted:
            return label
    return None


def resolve_category_label(
    raw_key: str,
    categories: Optional[Mapping[str, str]],
    builtin: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Three-tier label lookup: dictionary, then built-in table, then the key itself.

    Both lookups ignore case. An already-resolved label resolves to itself.
    """
    if not raw_key:
        return raw_key
    found = _casefold_lookup(categories or {}, raw_key)
    if found is not None:
        return found
    if builtin:
        found = _casefold_lookup(builtin, raw_key)
        if found is not None:
            return found
    return raw_key


def category_icon(category: Optional[str]) -> str:
    if not category:
        return DEFAULT_ICON
    normalized = category.lower().strip()
    for key, icon in CATEGORY_ICONS.items():
        if key in normalized:
            return icon
    return DEFAULT_ICON


def negotiate_language(accept_language: Optional[str]) -> Optional[Language]:
    """
    Return N'Ko when the most preferred browser locale is N'Ko (``nqo``/``nko``).

    Accepts a bare tag ("nqo-GN") or an Accept-Language header
    ("nqo;q=0.9, fr;q=0.8").
    """
    if not accept_language:
        return None
    best_tag, best_q = None, -1.0
    for entry in accept_language.split(","):
        parts = [p.strip() for p in entry.split(";")]
        tag = parts[0].lower()
        if not tag:
            continue
        q = 1.0
        for param in parts[1:]:
            if param.startswith("q="):
                try:
                    q = float(param[2:])
                except ValueError:
                    q = 0.0
        if q > best_q:
            best_tag, best_q = tag, q
    if best_tag and best_q > 0 and re.split(r"[-_]", best_tag)[0] in {"nqo", "nko"}:
        return Language.NKO
    return None


def resolve_initial_language(
    stored: Optional[str], locale_hint: Optional[str] = None
) -> Language:
    """Stored preference, else browser-locale negotiation, else French."""
    if stored in {lang.value for lang in Language}:
        return Language(stored)
    return negotiate_language(locale_hint) or Language.FR


# --- Language state -------------------------------------------------------


class PreferenceBackend(Protocol):
    def read(self) -> Optional[str]: ...

    def write(self, value: str) -> None: ...


@dataclass
class DocumentState:
    """Attributes of the rendered document that follow the active language."""

    dir: str = "ltr"
    lang: str = Language.FR.value


class LanguageContext:
    """Process-wide language state, injected into consumers."""

    def __init__(
        self,
        store: PreferenceBackend,
        locale_hint: Optional[str] = None,
        dictionaries: Optional[Mapping[str, Dictionary]] = None,
        words_per_minute: int = WORDS_PER_MINUTE,
    ):
        self._store = store
        self._dictionaries = dictionaries or load_dictionaries()
        self.words_per_minute = words_per_minute
        self.document = DocumentState()
        self._language = resolve_initial_language(store.read(), locale_hint)
        self._sync_document()

    @property
    def language(self) -> Language:
        return self._language

    @property
    def is_nko(self) -> bool:
        return self._language is Language.NKO

    @property
    def direction(self) -> str:
        return self._language.direction

    @property
    def t(self) -> Dictionary:
        return self._dictionaries[self._language.value]

    def dictionary(self, language: Language) -> Dictionary:
        return self._dictionaries[Language(language).value]

    def _sync_document(self) -> None:
        self.document.dir = self._language.direction
        self.document.lang = self._language.value

    def toggle_language(self) -> Language:
        """
        Switch to the other language and update the document.

        The choice is persisted first; when the store raises, nothing changes.
        """
        target = self._language.other
        self._store.write(target.value)
        self._language = target
        self._sync_document()
        return target

    # Conversions that depend on the active language.

    def digits_to_local_script(self, value: int | str) -> str:
        return to_nko_digits(value) if self.is_nko else str(value)

    def format_date(self, value: date | datetime) -> str:
        return format_nko_date(value) if self.is_nko else format_french_date(value)

    def resolve_category_label(self, raw_key: str) -> str:
        builtin = NKO_BUILTIN_CATEGORIES if self.is_nko else None
        return resolve_category_label(raw_key, self.t.categories, builtin)

    def estimate_reading_time(self, body: Iterable[ContentBlock]) -> int:
        return estimate_reading_time(body, self.words_per_minute)

    def reading_time_label(self, minutes: int) -> str:
        if self.is_nko:
            return f"{to_nko_digits(minutes)} {self.t.get('article.minutes')}"
        return f"{minutes} {self.t.get('article.readingTime')}"

    def copyright(self, year: int) -> str:
        return self.t.get("footer.copyright", "").replace(
            "{year}", self.digits_to_local_script(year)
        )
