"""Content providers and the fetch-then-transform entry points.

Providers return raw records (plain dicts). ``load_articles`` and
``load_article`` wrap them: provider failures are logged and degrade to an
empty feed / missing article instead of propagating to the views.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol

import requests
from pydantic import ValidationError

from .config import Settings, get_settings
from .errors import MissingRequiredFieldError, ProviderFetchError
from .image_url import ImageUrlBuilder
from .models import Article
from .transform import EXCERPT_LENGTH, normalize_slug, transform_article, transform_articles

logger = logging.getLogger(__name__)

_AUTHOR_PROJECTION = """author->{
    name,
    nameNko,
    image,
    bio,
    role,
    socials
  }"""

ARTICLES_QUERY = f"""*[_type == "article"] | order(publishedAt desc) {{
  title,
  slug,
  mainImage,
  publishedAt,
  excerpt,
  body,
  category,
  categories[]->{{title}},
  {_AUTHOR_PROJECTION}
}}"""

ARTICLE_BY_SLUG_QUERY = f"""*[_type == "article" && slug.current == $slug][0] {{
  title,
  "slug": slug.current,
  mainImage,
  publishedAt,
  excerpt,
  body,
  category,
  categories[]->{{title}},
  {_AUTHOR_PROJECTION}
}}"""


class ContentProvider(Protocol):
    def fetch_articles(self) -> List[dict]: ...

    def fetch_article_by_slug(self, slug: str) -> Optional[dict]: ...


class SanityContentProvider:
    """Query a Sanity dataset over its HTTP GROQ endpoint."""

    def __init__(
        self,
        project_id: str,
        dataset: str,
        api_version: str = "2024-01-01",
        use_cdn: bool = False,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        host = "apicdn.sanity.io" if use_cdn else "api.sanity.io"
        version = api_version if api_version.startswith("v") else f"v{api_version}"
        self.endpoint = f"https://{project_id}.{host}/{version}/data/query/{dataset}"
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SanityContentProvider":
        settings = settings or get_settings()
        return cls(
            settings.sanity_project_id,
            settings.sanity_dataset,
            api_version=settings.sanity_api_version,
            use_cdn=settings.sanity_use_cdn,
            timeout=settings.request_timeout,
        )

    def query(self, groq: str, params: Optional[dict] = None) -> Any:
        request_params = {"query": groq}
        for key, value in (params or {}).items():
            request_params[f"${key}"] = json.dumps(value, ensure_ascii=False)
        try:
            response = self.session.get(self.endpoint, params=request_params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise ProviderFetchError(f"content store query failed: {exc}") from exc
        if not isinstance(payload, dict) or "result" not in payload:
            raise ProviderFetchError("content store response has no 'result'.")
        return payload["result"]

    def fetch_articles(self) -> List[dict]:
        result = self.query(ARTICLES_QUERY)
        if not isinstance(result, list):
            raise ProviderFetchError("article list query did not return a list.")
        return result

    def fetch_article_by_slug(self, slug: str) -> Optional[dict]:
        result = self.query(ARTICLE_BY_SLUG_QUERY, {"slug": slug})
        return result if isinstance(result, dict) else None


class JsonFileProvider:
    """Serve raw records from a JSON file (object or list) or a directory of them."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read(self, path: Path) -> List[dict]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ProviderFetchError(f"cannot read {path}: {exc}") from exc
        if isinstance(data, dict):
            data = data["result"] if "result" in data else [data]
        if not isinstance(data, list):
            raise ProviderFetchError(f"{path} does not contain article records.")
        return data

    def fetch_articles(self) -> List[dict]:
        if self.path.is_dir():
            try:
                children = sorted(p for p in self.path.iterdir() if p.suffix.lower() == ".json")
            except OSError as exc:
                raise ProviderFetchError(f"cannot list {self.path}: {exc}") from exc
            records: List[dict] = []
            for child in children:
                records.extend(self._read(child))
            return records
        return self._read(self.path)

    def fetch_article_by_slug(self, slug: str) -> Optional[dict]:
        for record in self.fetch_articles():
            if isinstance(record, dict) and normalize_slug(record.get("slug")) == slug:
                return record
        return None


def provider_from_settings(settings: Optional[Settings] = None) -> ContentProvider:
    """Offline JSON source when LONKO_ARTICLES_PATH is set, else the content store."""
    settings = settings or get_settings()
    if settings.articles_path:
        return JsonFileProvider(Path(settings.articles_path).expanduser())
    return SanityContentProvider.from_settings(settings)


def _guarded_fetch(fetch: Callable[..., Any], *args: Any) -> Any:
    """Run a provider call; any failure surfaces as ProviderFetchError."""
    try:
        return fetch(*args)
    except ProviderFetchError:
        raise
    except Exception as exc:
        raise ProviderFetchError(f"{type(exc).__name__}: {exc}") from exc


def load_articles(
    provider: ContentProvider,
    image_builder: ImageUrlBuilder,
    excerpt_length: int = EXCERPT_LENGTH,
) -> List[Article]:
    """Fetch and transform the whole feed, newest first; failures yield []."""
    try:
        raws = _guarded_fetch(provider.fetch_articles)
        if not isinstance(raws, list):
            raise ProviderFetchError(f"expected a list of records, got {type(raws).__name__}")
    except ProviderFetchError as exc:
        logger.warning(f"Article fetch failed, showing empty feed: {exc}")
        return []
    articles = transform_articles(raws, image_builder, excerpt_length=excerpt_length)
    return sorted(articles, key=lambda a: a.published_at, reverse=True)


def load_article(
    provider: ContentProvider,
    slug: str,
    image_builder: ImageUrlBuilder,
    excerpt_length: int = EXCERPT_LENGTH,
) -> Optional[Article]:
    """Fetch one article by slug; None when missing, unusable, or the fetch fails."""
    try:
        raw = _guarded_fetch(provider.fetch_article_by_slug, slug)
    except ProviderFetchError as exc:
        logger.warning(f"Article fetch failed for {slug!r}: {exc}")
        return None
    if raw is None:
        return None
    try:
        return transform_article(raw, image_builder, excerpt_length=excerpt_length)
    except MissingRequiredFieldError as exc:
        logger.warning(f"Dropping article {slug!r}: {exc}")
    except (TypeError, ValueError, ValidationError) as exc:
        logger.warning(f"Dropping malformed article {slug!r}: {exc}")
    return None
