"""Safe-transform boundary: raw content-store records -> fully-defaulted models.

Raw records are untrusted dicts. Every field except ``slug`` degrades to a
default when absent or malformed:

- category: ``category`` string -> first of ``categories`` -> "Science"
- excerpt: ``excerpt`` -> first 150 chars of the first text block + "…" -> ""
- images: image builder result -> ``None``
- author: ``None`` unless the raw author has a name

A missing slug raises ``MissingRequiredFieldError``; ``transform_articles``
drops such records instead of letting the error reach the views.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from .errors import MissingRequiredFieldError
from .image_url import ImageUrlBuilder
from .models import (
    Article,
    Author,
    BulletList,
    ContentBlock,
    Heading,
    ImageBlock,
    NumberedList,
    Paragraph,
    Quote,
    SocialLink,
    Span,
    TEXT_BLOCK_KINDS,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Sans titre"
DEFAULT_CATEGORY = "Science"
DEFAULT_ROLE = "Contributeur"
EXCERPT_LENGTH = 150
ELLIPSIS = "…"

_HEADING_STYLES = {"h1": 1, "h2": 2, "h3": 3, "h4": 3, "h5": 3, "h6": 3}


def _text(value: Any) -> str:
    """Return a stripped string for scalar values, '' for anything else."""
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return ""
    return str(value).strip()


def normalize_slug(value: Any) -> Optional[str]:
    """Accept ``"my-slug"`` or ``{"current": "my-slug"}``; return None when absent."""
    if isinstance(value, dict):
        value = value.get("current")
    slug = _text(value)
    return slug or None


def parse_published_at(raw: Any, now: Optional[datetime] = None) -> datetime:
    """Parse an ISO-8601 timestamp, falling back to ``now`` (UTC) when absent or invalid."""
    fallback = now or datetime.now(timezone.utc)
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    txt = _text(raw)
    if not txt:
        return fallback

    # fromisoformat rejects a trailing "Z" and offsets like "+0000" on older interpreters.
    if txt.endswith(("Z", "z")):
        txt = f"{txt[:-1]}+00:00"
    else:
        txt = re.sub(r"([+-]\d{2})(\d{2})$", r"\1:\2", txt)

    try:
        parsed = datetime.fromisoformat(txt)
    except ValueError:
        logger.debug(f"Unparseable publishedAt {raw!r}; using transformation time.")
        return fallback
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


# --- Rich text ------------------------------------------------------------


def _parse_spans(children: Any) -> List[Span]:
    spans: List[Span] = []
    if not isinstance(children, list):
        return spans
    for child in children:
        if not isinstance(child, dict):
            continue
        text = child.get("text")
        if not isinstance(text, str):
            continue
        marks = child.get("marks")
        marks = [m for m in marks if isinstance(m, str)] if isinstance(marks, list) else []
        spans.append(Span(text=text, marks=marks))
    return spans


def _parse_image(raw: dict) -> ImageBlock:
    asset = raw.get("asset")
    ref = None
    if isinstance(asset, dict):
        ref = _text(asset.get("_ref")) or _text(asset.get("url")) or None
    elif isinstance(asset, str):
        ref = _text(asset) or None
    return ImageBlock(
        asset_ref=ref,
        caption=_text(raw.get("caption")) or None,
        alt_text=_text(raw.get("alt")) or None,
        credit=_text(raw.get("source")) or None,
    )


def _text_block(raw: dict) -> ContentBlock:
    spans = _parse_spans(raw.get("children"))
    style = _text(raw.get("style")) or "normal"
    if style in _HEADING_STYLES:
        return Heading(level=_HEADING_STYLES[style], spans=spans)
    if style == "blockquote":
        return Quote(spans=spans)
    return Paragraph(spans=spans)


def parse_blocks(raw_body: Any) -> List[ContentBlock]:
    """
    Convert a Portable Text array into typed content blocks.

    Consecutive list items of the same kind collapse into one list block.
    Unknown block types are dropped.
    """
    if not isinstance(raw_body, list):
        return []

    blocks: List[ContentBlock] = []
    pending_kind: Optional[str] = None
    pending_items: List[List[Span]] = []

    def flush() -> None:
        nonlocal pending_kind, pending_items
        if pending_kind == "bullet":
            blocks.append(BulletList(items=pending_items))
        elif pending_kind == "number":
            blocks.append(NumberedList(items=pending_items))
        pending_kind, pending_items = None, []

    for raw in raw_body:
        if not isinstance(raw, dict):
            continue
        block_type = raw.get("_type")
        list_item = _text(raw.get("listItem"))
        if block_type == "block" and list_item in {"bullet", "number"}:
            if pending_kind != list_item:
                flush()
                pending_kind = list_item
            pending_items.append(_parse_spans(raw.get("children")))
            continue

        flush()
        if block_type == "block":
            blocks.append(_text_block(raw))
        elif block_type == "image":
            blocks.append(_parse_image(raw))
        else:
            logger.debug(f"Dropping unsupported block type {block_type!r}.")
    flush()
    return blocks


# --- Fallback chains ------------------------------------------------------


def resolve_category(raw: dict) -> str:
    """Direct ``category`` string, else first ``categories`` label, else the default."""
    direct = _text(raw.get("category"))
    if direct:
        return direct
    categories = raw.get("categories")
    if isinstance(categories, list) and categories:
        first = categories[0]
        label = _text(first.get("title")) if isinstance(first, dict) else _text(first)
        if label:
            return label
    return DEFAULT_CATEGORY


def first_text_block(body: Iterable[ContentBlock]) -> Optional[ContentBlock]:
    for block in body:
        if block.kind in TEXT_BLOCK_KINDS and block.text.strip():
            return block
    return None


def resolve_excerpt(
    raw_excerpt: Any, body: Iterable[ContentBlock], length: int = EXCERPT_LENGTH
) -> str:
    """Explicit excerpt, else the truncated first text block plus an ellipsis, else ''."""
    explicit = _text(raw_excerpt)
    if explicit:
        return explicit
    block = first_text_block(body)
    if block is None:
        return ""
    return block.text.strip()[:length] + ELLIPSIS


def resolve_image_url(source: Any, image_builder: ImageUrlBuilder) -> Optional[str]:
    if not source:
        return None
    return image_builder.build_url(source) or None


def _parse_socials(raw: Any) -> List[SocialLink]:
    if not isinstance(raw, list):
        return []
    links: List[SocialLink] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        links.append(SocialLink(platform=_text(item.get("platform")), url=_text(item.get("url"))))
    return links


def _parse_bio(raw: Any):
    if isinstance(raw, str):
        return raw.strip() or None
    if isinstance(raw, list):
        return parse_blocks(raw)
    return None


# --- Entry points -------------------------------------------------------


def transform_author(raw: Any, image_builder: ImageUrlBuilder) -> Optional[Author]:
    """Return a sanitized author, or None when the record has no name."""
    if not isinstance(raw, dict):
        return None
    name = _text(raw.get("name"))
    if not name:
        return None
    socials = raw.get("socials")
    if socials is None:
        socials = raw.get("socialLinks")
    return Author(
        name=name,
        alternate_script_name=_text(raw.get("nameNko")) or None,
        image_url=resolve_image_url(raw.get("image"), image_builder),
        role=_text(raw.get("role")) or DEFAULT_ROLE,
        bio=_parse_bio(raw.get("bio")),
        social_links=_parse_socials(socials),
    )


def transform_article(
    raw: Any,
    image_builder: ImageUrlBuilder,
    now: Optional[datetime] = None,
    excerpt_length: int = EXCERPT_LENGTH,
) -> Article:
    """Build an Article from a raw record; only a missing slug is fatal."""
    if not isinstance(raw, dict):
        raise MissingRequiredFieldError("slug", record_hint=type(raw).__name__)
    slug = normalize_slug(raw.get("slug"))
    if slug is None:
        raise MissingRequiredFieldError("slug", record_hint=_text(raw.get("title")) or None)

    body = parse_blocks(raw.get("body"))
    return Article(
        title=_text(raw.get("title")) or DEFAULT_TITLE,
        slug=slug,
        cover_image_url=resolve_image_url(raw.get("mainImage"), image_builder),
        published_at=parse_published_at(raw.get("publishedAt"), now=now),
        body=body,
        excerpt=resolve_excerpt(raw.get("excerpt"), body, length=excerpt_length),
        category=resolve_category(raw),
        author=transform_author(raw.get("author"), image_builder),
    )


def transform_articles(
    raws: Iterable[Any],
    image_builder: ImageUrlBuilder,
    now: Optional[datetime] = None,
    excerpt_length: int = EXCERPT_LENGTH,
) -> List[Article]:
    """Transform a batch, dropping (and logging) records that lack a slug or are malformed."""
    articles: List[Article] = []
    for idx, raw in enumerate(raws):
        try:
            articles.append(
                transform_article(raw, image_builder, now=now, excerpt_length=excerpt_length)
            )
        except MissingRequiredFieldError as exc:
            logger.warning(f"Dropping article #{idx}: {exc}")
        except (TypeError, ValueError, ValidationError) as exc:
            logger.warning(f"Dropping malformed article #{idx}: {exc}")
    return articles
