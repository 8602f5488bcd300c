"""Command-line entry points for the N'Ko ni Lonko reader."""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint

from .config import get_settings
from .discovery import ALL_CATEGORIES, compute_visible
from .errors import PreferenceWriteError
from .image_url import ImageUrlBuilder
from .localization import Language, LanguageContext, resolve_category_label
from .preferences import MemoryPreferenceStore, PreferenceStore
from .provider import (
    ContentProvider,
    JsonFileProvider,
    load_article,
    load_articles,
    provider_from_settings,
)
from .renderer import build_article_card, build_article_view, render_article_page, render_html
from .serialization import to_plain

app = typer.Typer(help="Browse and read the N'Ko ni Lonko science articles.")


def _provider(source: Optional[Path]) -> ContentProvider:
    if source is None:
        return provider_from_settings()
    if not source.exists():
        raise typer.BadParameter(f"{source} does not exist.")
    return JsonFileProvider(source)


def _language(lang: Optional[str]) -> LanguageContext:
    """Stored preference, unless ``--lang`` forces one for this run only."""
    settings = get_settings()
    if lang is None:
        return LanguageContext(
            PreferenceStore.from_settings(settings), words_per_minute=settings.words_per_minute
        )
    try:
        language = Language(lang.lower())
    except ValueError:
        raise typer.BadParameter("lang must be 'fr' or 'nko'.")
    return LanguageContext(
        MemoryPreferenceStore(language.value), words_per_minute=settings.words_per_minute
    )


@app.callback()
def run(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log fetch and transform details."),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


@app.command("feed")
def feed_command(
    query: str = typer.Option("", "--query", "-q", help="Search in titles and excerpts."),
    category: str = typer.Option(
        ALL_CATEGORIES, "--category", "-c", help="Category key (e.g. biology) or label."
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-n", help="Number of articles to show (defaults to the page size)."
    ),
    source: Optional[Path] = typer.Option(
        None, "--source", "-s", help="JSON file or directory to read instead of the content store."
    ),
    lang: Optional[str] = typer.Option(None, "--lang", help="Display language: fr or nko."),
    as_json: bool = typer.Option(False, "--json", help="Print the feed as JSON."),
):
    """List the newest articles matching the search and category filters."""
    settings = get_settings()
    count = settings.page_size if limit is None else limit
    if count < 0:
        raise typer.BadParameter("limit must be >= 0.")
    language = _language(lang)
    articles = load_articles(
        _provider(source), ImageUrlBuilder.from_settings(settings), settings.excerpt_length
    )
    primary = language.dictionary(Language.FR)
    visible = compute_visible(
        articles,
        query,
        category,
        count,
        label_resolver=lambda key: resolve_category_label(key, primary.categories),
    )
    cards = [build_article_card(article, language) for article in visible.articles]

    if as_json:
        payload = {"articles": to_plain(cards), "has_more": visible.has_more, "total": visible.total}
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    if not cards:
        rprint(f"[yellow]{language.t.get('home.featured.empty')}[/yellow]")
        return
    for card in cards:
        rprint(
            f"[bold]{card.title}[/bold] [dim]({card.slug})[/dim]\n"
            f"  [cyan]{card.category_label}[/cyan] · {card.date_display} · {card.reading_time_label}\n"
            f"  {card.excerpt}"
        )
    if visible.has_more:
        rprint(f"[dim]{len(cards)}/{visible.total} · {language.t.get('home.featured.loadMore')}[/dim]")


@app.command("read")
def read_command(
    slug: str = typer.Argument(..., help="Slug of the article to read."),
    source: Optional[Path] = typer.Option(
        None, "--source", "-s", help="JSON file or directory to read instead of the content store."
    ),
    lang: Optional[str] = typer.Option(None, "--lang", help="Display language: fr or nko."),
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Write the reading view to a file (.html or .json)."
    ),
):
    """Show one article's reading view."""
    settings = get_settings()
    language = _language(lang)
    builder = ImageUrlBuilder.from_settings(settings)
    article = load_article(_provider(source), slug, builder, settings.excerpt_length)
    if article is None:
        rprint(f"[red]Article not found: {slug}[/red]")
        raise typer.Exit(code=1)
    view = build_article_view(article, language, builder)

    if out:
        if out.suffix.lower() == ".json":
            out.write_text(json.dumps(to_plain(view), ensure_ascii=False, indent=2), encoding="utf-8")
        else:
            out.write_text(render_article_page(view), encoding="utf-8")
        rprint(f"[cyan]Wrote output to {out}[/cyan]")
        return

    title = f"{view.title_primary} {view.title_secondary}".strip()
    rprint(f"[bold]{title}[/bold]")
    rprint(f"[cyan]{view.category_label}[/cyan] · {view.date_display} · {view.reading_time_label}")
    typer.echo(render_html(view.blocks))


@app.command("language")
def language_command(
    toggle: bool = typer.Option(False, "--toggle", "-t", help="Switch to the other language."),
):
    """Show, or toggle, the persisted display language."""
    language = _language(None)
    if toggle:
        try:
            language.toggle_language()
        except PreferenceWriteError as exc:
            rprint(f"[red]{exc}[/red]")
            raise typer.Exit(code=1)
    rprint(f"[green]{language.language.value}[/green] ({language.direction})")


@app.command("serve")
def serve_command(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
):
    """Run the HTTP reader with uvicorn."""
    import uvicorn

    rprint(f"[cyan]Serving on http://{host}:{port}[/cyan]")
    uvicorn.run("nko_lonko.server:app", host=host, port=port, reload=reload)


def main():
    app()


if __name__ == "__main__":
    main()
