import logging
from datetime import datetime, timezone

import pytest

from nko_lonko import transform as transform_module
from nko_lonko.errors import MissingRequiredFieldError
from nko_lonko.image_url import ImageUrlBuilder
from nko_lonko.models import BulletList, Heading, ImageBlock, NumberedList, Paragraph, Quote
from nko_lonko.transform import (
    DEFAULT_CATEGORY,
    DEFAULT_ROLE,
    DEFAULT_TITLE,
    normalize_slug,
    parse_blocks,
    parse_published_at,
    resolve_category,
    resolve_excerpt,
    transform_article,
    transform_articles,
    transform_author,
)

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def builder() -> ImageUrlBuilder:
    return ImageUrlBuilder("proj", "ds")


def block(text: str, style: str = "normal", **extra) -> dict:
    return {"_type": "block", "style": style, "children": [{"_type": "span", "text": text}], **extra}


def test_missing_slug_raises():
    with pytest.raises(MissingRequiredFieldError) as exc:
        transform_article({"title": "Sans slug"}, builder(), now=NOW)
    assert exc.value.field == "slug"


@pytest.mark.parametrize("slug", [None, "", "   ", {"current": ""}, {}])
def test_empty_slug_shapes_raise(slug):
    with pytest.raises(MissingRequiredFieldError):
        transform_article({"slug": slug}, builder(), now=NOW)


def test_non_dict_record_raises():
    with pytest.raises(MissingRequiredFieldError):
        transform_article(["not", "a", "record"], builder(), now=NOW)


def test_slug_shapes_normalize_to_string():
    assert normalize_slug("adn") == "adn"
    assert normalize_slug({"current": "adn", "_type": "slug"}) == "adn"
    assert normalize_slug(None) is None


def test_minimal_record_gets_defaults():
    article = transform_article({"slug": "vide"}, builder(), now=NOW)

    assert article.slug == "vide"
    assert article.title == DEFAULT_TITLE
    assert article.category == DEFAULT_CATEGORY
    assert article.excerpt == ""
    assert article.body == []
    assert article.cover_image_url is None
    assert article.author is None
    assert article.published_at == NOW


def test_category_fallback_chain():
    assert resolve_category({"category": "Chimie", "categories": [{"title": "Biologie"}]}) == "Chimie"
    assert resolve_category({"categories": [{"title": "Biologie"}, {"title": "Chimie"}]}) == "Biologie"
    assert resolve_category({"categories": ["Géologie"]}) == "Géologie"
    assert resolve_category({"categories": []}) == DEFAULT_CATEGORY
    assert resolve_category({"category": "  "}) == DEFAULT_CATEGORY


def test_explicit_excerpt_wins():
    body = parse_blocks([block("Corps de l'article")])
    assert resolve_excerpt("Résumé", body) == "Résumé"


def test_derived_excerpt_is_truncated_with_ellipsis():
    body = parse_blocks([block("a" * 200)])
    assert resolve_excerpt(None, body) == "a" * 150 + "…"


def test_derived_excerpt_of_short_text_still_gets_ellipsis():
    body = parse_blocks([block("Court.")])
    assert resolve_excerpt("", body) == "Court.…"


def test_derived_excerpt_skips_images_and_empty_blocks():
    body = parse_blocks(
        [
            {"_type": "image", "asset": {"_ref": "image-abc-10x10-png"}},
            block("   "),
            block("Bonjour"),
        ]
    )
    assert resolve_excerpt(None, body) == "Bonjour…"


def test_excerpt_length_is_configurable():
    article = transform_article(
        {"slug": "x", "body": [block("abcdefghij")]}, builder(), now=NOW, excerpt_length=4
    )
    assert article.excerpt == "abcd…"


def test_published_at_variants():
    assert parse_published_at("2024-05-10T08:00:00Z") == datetime(2024, 5, 10, 8, tzinfo=timezone.utc)
    assert parse_published_at("2024-05-10T08:00:00+0000") == datetime(
        2024, 5, 10, 8, tzinfo=timezone.utc
    )
    assert parse_published_at("2024-05-10").tzinfo is not None
    assert parse_published_at("pas une date", now=NOW) == NOW
    assert parse_published_at(None, now=NOW) == NOW


def test_list_items_collapse_into_lists():
    blocks = parse_blocks(
        [
            block("un", listItem="bullet"),
            block("deux", listItem="bullet"),
            block("premier", listItem="number"),
            block("après"),
        ]
    )

    assert [b.kind for b in blocks] == ["bullet_list", "numbered_list", "paragraph"]
    assert isinstance(blocks[0], BulletList)
    assert [item[0].text for item in blocks[0].items] == ["un", "deux"]
    assert isinstance(blocks[1], NumberedList)
    assert blocks[0].text == "un deux"


def test_block_styles_map_to_kinds():
    blocks = parse_blocks(
        [
            block("Titre", "h1"),
            block("Sous-titre", "h4"),
            block("Citation", "blockquote"),
            block("Texte"),
            {"_type": "code", "code": "print()"},
        ]
    )

    assert isinstance(blocks[0], Heading) and blocks[0].level == 1
    assert isinstance(blocks[1], Heading) and blocks[1].level == 3
    assert isinstance(blocks[2], Quote)
    assert isinstance(blocks[3], Paragraph)
    assert len(blocks) == 4


def test_marks_are_kept_on_spans():
    blocks = parse_blocks(
        [{"_type": "block", "children": [{"text": "fort", "marks": ["strong", {"bad": 1}]}]}]
    )
    assert blocks[0].spans[0].marks == ["strong"]


def test_image_block_fields():
    (image,) = parse_blocks(
        [
            {
                "_type": "image",
                "asset": {"_ref": "image-def456-1200x800-png"},
                "caption": "Vue d'artiste",
                "alt": "Trou noir",
                "source": "NASA",
            }
        ]
    )
    assert isinstance(image, ImageBlock)
    assert image.asset_ref == "image-def456-1200x800-png"
    assert image.caption == "Vue d'artiste"
    assert image.alt_text == "Trou noir"
    assert image.credit == "NASA"


def test_author_defaults_and_socials():
    author = transform_author(
        {
            "name": "Awa",
            "socialLinks": [
                {"platform": "x", "url": "https://x.com/a"},
                {"platform": "site", "url": "https://a.example"},
                {"platform": "x", "url": "https://x.com/a"},
            ],
        },
        builder(),
    )

    assert author.role == DEFAULT_ROLE
    assert author.image_url is None
    assert author.bio is None
    assert [link.platform for link in author.social_links] == ["x", "site", "x"]


def test_author_without_name_is_dropped():
    assert transform_author({"role": "Rédacteur"}, builder()) is None
    assert transform_author(None, builder()) is None


def test_author_bio_may_be_blocks():
    author = transform_author({"name": "Awa", "bio": [block("Biographie riche")]}, builder())
    assert isinstance(author.bio, list)
    assert author.bio[0].text == "Biographie riche"


def test_images_resolve_or_become_none():
    article = transform_article(
        {
            "slug": "x",
            "mainImage": {"asset": {"_ref": "image-abc123-800x600-jpg"}},
            "author": {"name": "Awa", "image": {"asset": {"_ref": "not-a-ref"}}},
        },
        builder(),
        now=NOW,
    )

    assert article.cover_image_url == "https://cdn.sanity.io/images/proj/ds/abc123-800x600.jpg"
    assert article.author.image_url is None


def test_transform_articles_drops_records_without_slug(caplog):
    raws = [{"slug": "a"}, {"title": "b"}, {"slug": {"current": "c"}}]

    with caplog.at_level(logging.WARNING):
        articles = transform_articles(raws, builder(), now=NOW)

    assert [a.slug for a in articles] == ["a", "c"]
    assert "Dropping article #1" in caplog.text


def test_non_list_marks_are_ignored_and_the_batch_survives():
    raws = [
        {"slug": "ok"},
        {"slug": "bad", "body": [{"_type": "block", "children": [{"text": "x", "marks": 5}]}]},
    ]

    articles = transform_articles(raws, builder(), now=NOW)

    assert [a.slug for a in articles] == ["ok", "bad"]
    assert articles[1].body[0].spans[0].marks == []


@pytest.mark.parametrize(
    "field,value",
    [
        ("body", {"not": "a list"}),
        ("body", [5, "text", None, {"_type": "block", "children": "flat"}]),
        ("body", [{"_type": "block", "children": [5, {"text": 3}, {"text": "x", "marks": "strong"}]}]),
        ("body", [{"_type": "image", "asset": 5, "caption": ["x"]}]),
        ("categories", "Biologie"),
        ("categories", [5, None]),
        ("category", {"title": "Biologie"}),
        ("author", "Awa"),
        ("author", {"name": ["Awa"]}),
        ("author", {"name": "Awa", "socials": "x", "bio": 7, "image": [1, 2]}),
        ("author", {"name": "Awa", "socialLinks": [5, {"platform": 3}]}),
        ("publishedAt", 12345),
        ("publishedAt", {"at": "2024"}),
        ("publishedAt", "2024-13-45T99:00:00Z"),
        ("mainImage", [1, 2]),
        ("mainImage", {"asset": {"_ref": 5}}),
        ("title", {"fr": "Titre"}),
        ("excerpt", ["Résumé"]),
    ],
)
def test_wrong_typed_fields_never_raise(field, value):
    article = transform_article({"slug": "x", field: value}, builder(), now=NOW)

    assert article.slug == "x"
    assert article.title
    assert article.category


def test_wrong_typed_categories_fall_back_to_default():
    article = transform_article({"slug": "x", "categories": "Biologie"}, builder(), now=NOW)
    assert article.category == DEFAULT_CATEGORY


def test_unexpected_errors_drop_only_the_offending_record(monkeypatch, caplog):
    real_parse_blocks = transform_module.parse_blocks

    def parse_blocks(raw_body):
        if raw_body == "explode":
            raise TypeError("unexpected shape")
        return real_parse_blocks(raw_body)

    monkeypatch.setattr(transform_module, "parse_blocks", parse_blocks)

    with caplog.at_level(logging.WARNING):
        articles = transform_articles(
            [{"slug": "a"}, {"slug": "b", "body": "explode"}, {"slug": "c"}], builder(), now=NOW
        )

    assert [a.slug for a in articles] == ["a", "c"]
    assert "Dropping malformed article #1" in caplog.text
