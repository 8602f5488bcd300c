"""FastAPI shell serving the article feed and reading views."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from .config import get_settings
from .discovery import ALL_CATEGORIES, compute_visible
from .errors import PreferenceWriteError
from .image_url import ImageUrlBuilder
from .localization import Language, LanguageContext, category_icon, resolve_category_label
from .models import Article
from .preferences import MemoryPreferenceStore, PreferenceStore
from .provider import ContentProvider, load_article, load_articles, provider_from_settings
from .renderer import build_article_card, build_article_view, render_article_page
from .serialization import to_plain

logger = logging.getLogger(__name__)

app = FastAPI(title="N'Ko ni Lonko")


def _add_cors(app: FastAPI) -> None:
    """Let a separately hosted front end read the feed."""
    origins_env = os.getenv("CORS_ALLOW_ORIGINS", "")
    origins = [o.strip() for o in origins_env.split(",") if o.strip()] or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )


_add_cors(app)

# One language state and one article snapshot per process.
_LANGUAGE: Optional[LanguageContext] = None
_ARTICLES: Optional[List[Article]] = None


def _provider() -> ContentProvider:
    return provider_from_settings()


def _image_builder() -> ImageUrlBuilder:
    return ImageUrlBuilder.from_settings()


def reset_state() -> None:
    """Forget the cached language and article snapshot (tests, reloads)."""
    global _LANGUAGE, _ARTICLES
    _LANGUAGE = None
    _ARTICLES = None


def _language(request: Request) -> LanguageContext:
    global _LANGUAGE
    if _LANGUAGE is None:
        settings = get_settings()
        _LANGUAGE = LanguageContext(
            PreferenceStore.from_settings(settings),
            locale_hint=request.headers.get("accept-language"),
            words_per_minute=settings.words_per_minute,
        )
    return _LANGUAGE


def _articles() -> List[Article]:
    global _ARTICLES
    if _ARTICLES is None:
        settings = get_settings()
        _ARTICLES = load_articles(
            _provider(), _image_builder(), excerpt_length=settings.excerpt_length
        )
    return _ARTICLES


def _view_language(request: Request, lang: Optional[str]) -> LanguageContext:
    """Active language, or a one-off context when ``lang`` overrides it."""
    if lang is None:
        return _language(request)
    try:
        language = Language(lang.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"lang must be one of {[item.value for item in Language]}",
        )
    return LanguageContext(
        MemoryPreferenceStore(language.value),
        words_per_minute=get_settings().words_per_minute,
    )


def _language_body(language: LanguageContext) -> Dict[str, str]:
    return {"lang": language.language.value, "dir": language.direction}


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/language")
def get_language(request: Request) -> Dict[str, str]:
    return _language_body(_language(request))


@app.post("/api/language/toggle")
def toggle_language(request: Request) -> Dict[str, str]:
    language = _language(request)
    try:
        language.toggle_language()
    except PreferenceWriteError as exc:
        logger.warning(f"Language toggle not saved: {exc}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return _language_body(language)


@app.get("/api/categories")
def list_categories(request: Request) -> List[Dict[str, str]]:
    language = _language(request)
    return [
        {"key": key, "label": label, "icon": category_icon(key)}
        for key, label in language.t.categories.items()
    ]


@app.get("/api/articles")
def list_articles(
    request: Request,
    q: str = "",
    category: str = ALL_CATEGORIES,
    limit: Optional[int] = Query(None, ge=0),
    lang: Optional[str] = None,
) -> Dict[str, Any]:
    language = _view_language(request, lang)
    primary = language.dictionary(Language.FR)
    visible = compute_visible(
        _articles(),
        q,
        category,
        limit if limit is not None else get_settings().page_size,
        label_resolver=lambda key: resolve_category_label(key, primary.categories),
    )
    return {
        **_language_body(language),
        "articles": [to_plain(build_article_card(a, language)) for a in visible.articles],
        "has_more": visible.has_more,
        "total": visible.total,
        "empty_message": None if visible.total else language.t.get("home.featured.empty"),
    }


def _find_article(slug: str) -> Article:
    article = load_article(
        _provider(), slug, _image_builder(), excerpt_length=get_settings().excerpt_length
    )
    if article is None:
        logger.info(f"Article not found: {slug!r}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="article not found")
    return article


@app.get("/api/articles/{slug}")
def get_article(slug: str, request: Request, lang: Optional[str] = None) -> Dict[str, Any]:
    article = _find_article(slug)
    view = build_article_view(article, _view_language(request, lang), _image_builder())
    return to_plain(view)


@app.get("/articles/{slug}", response_class=HTMLResponse)
def read_article(slug: str, request: Request, lang: Optional[str] = None) -> HTMLResponse:
    article = _find_article(slug)
    view = build_article_view(article, _view_language(request, lang), _image_builder())
    return HTMLResponse(render_article_page(view))


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    uvicorn.run(
        "nko_lonko.server:app",
        host=os.getenv("LONKO_HOST", "0.0.0.0"),
        port=int(os.getenv("LONKO_PORT", "8000")),
        reload=os.getenv("LONKO_RELOAD", "false").lower() == "true",
    )
