"""Client-side content discovery: search, category filter, pagination, reveal.

All articles are held in memory after one initial fetch. Filtering is a pure
function (``compute_visible``); ``DiscoveryEngine`` owns the mutable view state
and the two deferred behaviors (debounced search, reveal-on-visible), both of
which are canceled by ``close()``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar

from .config import Settings, get_settings
from .image_url import ImageUrlBuilder
from .localization import Language, LanguageContext, resolve_category_label
from .models import Article
from .provider import ContentProvider, load_articles
from .transform import EXCERPT_LENGTH

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"
DEFAULT_PAGE_SIZE = 6
DEFAULT_DEBOUNCE_MS = 300
REVEAL_THRESHOLD = 0.1

T = TypeVar("T")


@dataclass
class VisibleResult:
    articles: List[Article]
    has_more: bool
    total: int


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().casefold()


def category_matches(
    article_category: str,
    active_key: str,
    display_label: Optional[str] = None,
    exact: bool = False,
) -> bool:
    """
    Match an article's stored category against the active filter.

    Articles may store either a display label ("Biologie") or a machine key
    ("biology"), so this accepts the resolved label, the key itself, or (unless
    ``exact``) any category containing the key.
    """
    category = _norm(article_category)
    key = _norm(active_key)
    label = _norm(display_label) if display_label else key
    if category == label or category == key:
        return True
    return not exact and bool(key) and key in category


def matches_query(article: Article, query: str) -> bool:
    needle = _norm(query)
    if not needle:
        return True
    return needle in article.title.casefold() or needle in article.excerpt.casefold()


def compute_visible(
    articles: Sequence[Article],
    query: str,
    active_category: str,
    visible_count: int,
    label_resolver: Optional[Callable[[str], str]] = None,
    exact_category: bool = False,
) -> VisibleResult:
    """Apply the category and search filters, then keep the first ``visible_count``."""
    filter_category = _norm(active_category) not in {"", ALL_CATEGORIES}
    label = None
    if filter_category and label_resolver is not None:
        label = label_resolver(active_category)

    filtered = [
        article
        for article in articles
        if (
            not filter_category
            or category_matches(article.category, active_category, label, exact=exact_category)
        )
        and matches_query(article, query)
    ]
    count = max(0, visible_count)
    return VisibleResult(
        articles=filtered[:count],
        has_more=len(filtered) > count,
        total=len(filtered),
    )


class Debouncer(Generic[T]):
    """
    Deliver only the last value pushed within ``delay`` seconds.

    Timers run on the asyncio event loop; a pending timer is canceled before a
    new one is armed. Without a running loop the value is delivered at once.
    """

    def __init__(self, delay: float, callback: Callable[[T], None]):
        self.delay = delay
        self.callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending: Optional[Tuple[T]] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: T) -> None:
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is None or self.delay <= 0:
            self.callback(value)
            return
        self._pending = (value,)
        self._handle = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        pending = self._pending
        self._handle = None
        self._pending = None
        if pending is not None:
            self.callback(pending[0])

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending = None


class RevealTracker:
    """One-shot "reveal once visible" bookkeeping for feed elements."""

    def __init__(
        self,
        threshold: float = REVEAL_THRESHOLD,
        on_reveal: Optional[Callable[[str], None]] = None,
    ):
        self.threshold = threshold
        self.on_reveal = on_reveal
        self.connected = True
        self._observed: set[str] = set()
        self.revealed: set[str] = set()

    def observe(self, key: str) -> None:
        if self.connected and key not in self.revealed:
            self._observed.add(key)

    def is_observed(self, key: str) -> bool:
        return key in self._observed

    def is_revealed(self, key: str) -> bool:
        return key in self.revealed

    def notify(self, key: str, visible_ratio: float) -> bool:
        """Report how much of ``key`` is on screen; True only on the revealing call."""
        if not self.connected or key not in self._observed:
            return False
        if visible_ratio < self.threshold:
            return False
        self._observed.discard(key)
        self.revealed.add(key)
        if self.on_reveal is not None:
            self.on_reveal(key)
        return True

    def disconnect(self) -> None:
        self.connected = False
        self._observed.clear()


@dataclass
class DiscoveryEngine:
    """Owner of the feed's view state over an in-memory article snapshot."""

    language: Optional[LanguageContext] = None
    page_size: int = DEFAULT_PAGE_SIZE
    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    excerpt_length: int = EXCERPT_LENGTH
    articles: List[Article] = field(default_factory=list)
    query: str = ""
    debounced_query: str = ""
    active_category: str = ALL_CATEGORIES
    loaded: bool = False

    def __post_init__(self) -> None:
        self.visible_count = self.page_size
        self.debouncer: Debouncer[str] = Debouncer(self.debounce_ms / 1000, self._apply_query)
        self.reveal = RevealTracker()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs: Any) -> "DiscoveryEngine":
        settings = settings or get_settings()
        return cls(
            page_size=settings.page_size,
            debounce_ms=settings.debounce_ms,
            excerpt_length=settings.excerpt_length,
            **kwargs,
        )

    async def load(self, provider: ContentProvider, image_builder: ImageUrlBuilder) -> None:
        """Single initial fetch; a failed fetch leaves the feed empty."""
        self.articles = await asyncio.to_thread(
            load_articles, provider, image_builder, self.excerpt_length
        )
        self.loaded = True
        logger.info(f"Loaded {len(self.articles)} articles")

    def _reset_page(self) -> None:
        self.visible_count = self.page_size

    def _apply_query(self, value: str) -> None:
        self.debounced_query = value
        self._reset_page()

    def set_query(self, text: str) -> None:
        """Record the raw input now; filtering picks it up after the debounce delay."""
        self.query = text
        self._reset_page()
        self.debouncer.push(text)

    def set_category(self, category: str) -> None:
        self.active_category = category or ALL_CATEGORIES
        self._reset_page()

    def load_more(self) -> int:
        self.visible_count += self.page_size
        return self.visible_count

    def _label_for(self, key: str) -> str:
        # Stored categories are primary-language labels, whatever the UI language.
        if self.language is None:
            return key
        primary = self.language.dictionary(Language.FR)
        return resolve_category_label(key, primary.categories)

    def visible(self) -> VisibleResult:
        return compute_visible(
            self.articles,
            self.debounced_query,
            self.active_category,
            self.visible_count,
            label_resolver=self._label_for,
        )

    def categories(self) -> List[Tuple[str, str]]:
        """(key, label) pairs for the filter pills, "all" first."""
        if self.language is None:
            keys = sorted({a.category for a in self.articles})
            return [(ALL_CATEGORIES, ALL_CATEGORIES)] + [(k, k) for k in keys]
        categories = self.language.t.categories
        pairs = [(ALL_CATEGORIES, categories.get(ALL_CATEGORIES, ALL_CATEGORIES))]
        pairs.extend((key, label) for key, label in categories.items() if key != ALL_CATEGORIES)
        return pairs

    def close(self) -> None:
        """Teardown: drop pending search recomputation and stop reveal tracking."""
        self.debouncer.cancel()
        self.reveal.disconnect()
