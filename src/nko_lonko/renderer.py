"""Script-aware rendering of article bodies and reading views."""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from .image_url import ImageUrlBuilder
from .localization import LanguageContext, Script, category_icon, detect_script
from .models import Article, Author, ContentBlock, Span

NKO_FONT_CLASS = "font-kigelia"
HEADING_CLASSES = {1: "prose-h1", 2: "prose-h2", 3: "prose-h3"}
DEFAULT_ALT = "Illustration"

# Inline decorators the HTML renderer knows how to emit.
MARK_TAGS = {
    "strong": "strong",
    "em": "em",
    "code": "code",
    "underline": "u",
    "strike-through": "s",
}


@dataclass
class RenderedBlock:
    """One body block after script detection, ready for a view layer."""

    kind: str
    tag: str
    script: Script = Script.LATIN
    dir: str = "ltr"
    css_class: str = ""
    style: Dict[str, str] = field(default_factory=dict)
    spans: List[Span] = field(default_factory=list)
    items: List[List[Span]] = field(default_factory=list)
    src: Optional[str] = None
    alt: Optional[str] = None
    caption: Optional[str] = None
    caption_class: str = ""
    credit: Optional[str] = None

    @property
    def text(self) -> str:
        if self.items:
            return " ".join("".join(s.text for s in item) for item in self.items)
        return "".join(s.text for s in self.spans)


def _classes(*names: str) -> str:
    return " ".join(n for n in names if n)


def _typography(kind: str, script: Script) -> Dict[str, str]:
    nko = script is Script.NKO
    if kind == "paragraph":
        return (
            {"font-size": "1.3em", "line-height": "2.1"}
            if nko
            else {"font-size": "1.1em", "line-height": "1.7"}
        )
    if kind == "quote" and nko:
        return {"font-size": "1.2em", "line-height": "2.0"}
    return {}


def render_block(
    block: ContentBlock,
    image_builder: ImageUrlBuilder,
    language: Optional[LanguageContext] = None,
) -> Optional[RenderedBlock]:
    """
    Render one block, or return None when it should produce no output.

    Direction and font come from the block's own text, not the UI language.
    """
    if block.kind == "image":
        src = image_builder.build_url(block.asset_ref) if block.asset_ref else None
        if not src:
            return None
        caption_class = NKO_FONT_CLASS if language is not None and language.is_nko else ""
        return RenderedBlock(
            kind="image",
            tag="figure",
            src=src,
            alt=block.alt_text or DEFAULT_ALT,
            caption=block.caption,
            caption_class=caption_class,
            credit=block.credit,
        )

    text = block.text
    if block.kind == "paragraph" and not text.strip():
        return None

    script = detect_script(text)
    font = NKO_FONT_CLASS if script is Script.NKO else ""
    direction = "rtl" if script is Script.NKO else "ltr"

    if block.kind == "heading":
        tag = f"h{block.level}"
        css_class = _classes(HEADING_CLASSES[block.level], font)
    elif block.kind == "quote":
        tag, css_class = "blockquote", _classes("prose-quote", font)
    elif block.kind == "bullet_list":
        tag, css_class = "ul", _classes("prose-list", font)
    elif block.kind == "numbered_list":
        tag, css_class = "ol", _classes("prose-list", font)
    else:
        tag, css_class = "p", _classes("prose-paragraph", font)

    return RenderedBlock(
        kind=block.kind,
        tag=tag,
        script=script,
        dir=direction,
        css_class=css_class,
        style=_typography(block.kind, script),
        spans=list(getattr(block, "spans", [])),
        items=[list(item) for item in getattr(block, "items", [])],
    )


def render_blocks(
    blocks: Iterable[ContentBlock],
    image_builder: ImageUrlBuilder,
    language: Optional[LanguageContext] = None,
) -> List[RenderedBlock]:
    rendered = []
    for block in blocks:
        out = render_block(block, image_builder, language)
        if out is not None:
            rendered.append(out)
    return rendered


# --- HTML -----------------------------------------------------------------


def _span_html(span: Span) -> str:
    out = html.escape(span.text)
    for mark in span.marks:
        tag = MARK_TAGS.get(mark)
        if tag:
            out = f"<{tag}>{out}</{tag}>"
    return out


def _spans_html(spans: Sequence[Span]) -> str:
    return "".join(_span_html(span) for span in spans)


def _attrs(block: RenderedBlock) -> str:
    parts = [f'dir="{block.dir}"']
    if block.css_class:
        parts.append(f'class="{html.escape(block.css_class)}"')
    if block.style:
        style = "; ".join(f"{k}: {v}" for k, v in block.style.items())
        parts.append(f'style="{html.escape(style)}"')
    return " ".join(parts)


def block_html(block: RenderedBlock) -> str:
    if block.kind == "image":
        out = [
            '<figure class="prose-figure">',
            f'<img src="{html.escape(block.src or "")}" alt="{html.escape(block.alt or DEFAULT_ALT)}" />',
        ]
        if block.caption:
            cls = f' class="{block.caption_class}"' if block.caption_class else ""
            out.append(f"<figcaption{cls}>{html.escape(block.caption)}</figcaption>")
        if block.credit:
            out.append(f'<small class="prose-credit">{html.escape(block.credit)}</small>')
        out.append("</figure>")
        return "".join(out)
    if block.tag in {"ul", "ol"}:
        items = "".join(f"<li>{_spans_html(item)}</li>" for item in block.items)
        return f"<{block.tag} {_attrs(block)}>{items}</{block.tag}>"
    return f"<{block.tag} {_attrs(block)}>{_spans_html(block.spans)}</{block.tag}>"


def render_html(blocks: Iterable[RenderedBlock]) -> str:
    return "\n".join(block_html(block) for block in blocks)


# --- Reading view ---------------------------------------------------------


def split_bilingual_title(title: str) -> tuple[str, str]:
    """``"ߞߎߡߘߊ (Titre)"`` -> (``"ߞߎߡߘߊ"``, ``"(Titre)"``)."""
    head, sep, tail = title.partition("(")
    if not sep:
        return title.strip(), ""
    return head.strip(), f"({tail}"


def bio_text(author: Optional[Author], language: LanguageContext) -> str:
    """Plain-text bio when one exists, else the localized default blurb."""
    if author is not None and isinstance(author.bio, str) and author.bio.strip():
        return author.bio
    return language.t.get("article.defaultBio", "")


@dataclass
class ArticleView:
    """Everything a reading view needs, localized for the active language."""

    slug: str
    lang: str
    dir: str
    title_primary: str
    title_secondary: str
    date_display: str
    reading_time: int
    reading_time_label: str
    category_label: str
    cover_image_url: Optional[str]
    cover_caption: str
    excerpt: str
    blocks: List[RenderedBlock]
    author: Optional[Author] = None
    author_bio: str = ""
    author_bio_blocks: List[RenderedBlock] = field(default_factory=list)
    footer: str = ""


def build_article_view(
    article: Article, language: LanguageContext, image_builder: ImageUrlBuilder
) -> ArticleView:
    primary, secondary = split_bilingual_title(article.title)
    minutes = language.estimate_reading_time(article.body)
    author = article.author
    bio_blocks: List[RenderedBlock] = []
    if author is not None and isinstance(author.bio, list):
        bio_blocks = render_blocks(author.bio, image_builder, language)
    return ArticleView(
        slug=article.slug,
        lang=language.language.value,
        dir=language.direction,
        title_primary=primary,
        title_secondary=secondary,
        date_display=language.format_date(article.published_at),
        reading_time=minutes,
        reading_time_label=language.reading_time_label(minutes),
        category_label=language.resolve_category_label(article.category),
        cover_image_url=article.cover_image_url,
        cover_caption=language.t.get("article.coverCaption", ""),
        excerpt=article.excerpt,
        blocks=render_blocks(article.body, image_builder, language),
        author=author,
        author_bio=bio_text(author, language),
        author_bio_blocks=bio_blocks,
        footer=language.copyright(date.today().year),
    )


def render_article_page(view: ArticleView) -> str:
    """Standalone HTML document for one article."""
    esc = html.escape
    secondary = (
        f'<span class="title-secondary" dir="ltr">{esc(view.title_secondary)}</span>'
        if view.title_secondary
        else ""
    )
    primary_dir = "rtl" if detect_script(view.title_primary) is Script.NKO else "ltr"
    cover = ""
    if view.cover_image_url:
        cover = (
            f'<figure class="cover"><img src="{esc(view.cover_image_url)}" '
            f'alt="{esc(view.title_primary)}" /><figcaption>{esc(view.cover_caption)}'
            "</figcaption></figure>"
        )
    author = ""
    if view.author is not None:
        author = (
            f'<section class="author"><h4>{esc(view.author.name)}</h4>'
            f"<p>{esc(view.author.role)}</p><p>{esc(view.author_bio)}</p></section>"
        )
    return f"""<!doctype html>
<html lang="{view.lang}" dir="{view.dir}">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{esc(view.title_primary)}</title>
</head>
<body dir="{view.dir}">
  <header>
    <span class="category">{esc(view.category_label)}</span>
    <h1><span class="title-primary" dir="{primary_dir}">{esc(view.title_primary)}</span>{secondary}</h1>
    <p class="meta"><time>{esc(view.date_display)}</time> · <span>{esc(view.reading_time_label)}</span></p>
    {cover}
  </header>
  <article class="article-content">
{render_html(view.blocks)}
  </article>
  {author}
  <footer><p>{esc(view.footer)}</p></footer>
</body>
</html>
"""


@dataclass
class ArticleCard:
    """Feed entry for one article."""

    slug: str
    title: str
    excerpt: str
    category: str
    category_label: str
    icon: str
    date_display: str
    reading_time_label: str
    cover_image_url: Optional[str]
    author_name: str
    author_image_url: Optional[str]


def build_article_card(article: Article, language: LanguageContext) -> ArticleCard:
    minutes = language.estimate_reading_time(article.body)
    author = article.author
    return ArticleCard(
        slug=article.slug,
        title=article.title,
        excerpt=article.excerpt,
        category=article.category,
        category_label=language.resolve_category_label(article.category),
        icon=category_icon(article.category),
        date_display=language.format_date(article.published_at),
        reading_time_label=language.reading_time_label(minutes),
        cover_image_url=article.cover_image_url,
        author_name=author.name if author else language.t.get("metadata.siteName", ""),
        author_image_url=author.image_url if author else None,
    )
