"""Data models for the article reader."""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Span(_Frozen):
    """One inline run of text with its decorator marks (strong, em, ...)."""

    text: str = ""
    marks: List[str] = Field(default_factory=list)


def _spans_text(spans: List[Span]) -> str:
    return "".join(span.text for span in spans)


class Paragraph(_Frozen):
    kind: Literal["paragraph"] = "paragraph"
    spans: List[Span] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return _spans_text(self.spans)


class Heading(_Frozen):
    kind: Literal["heading"] = "heading"
    level: int = Field(1, ge=1, le=3)
    spans: List[Span] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return _spans_text(self.spans)


class Quote(_Frozen):
    kind: Literal["quote"] = "quote"
    spans: List[Span] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return _spans_text(self.spans)


class BulletList(_Frozen):
    kind: Literal["bullet_list"] = "bullet_list"
    items: List[List[Span]] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(_spans_text(item) for item in self.items)


class NumberedList(_Frozen):
    kind: Literal["numbered_list"] = "numbered_list"
    items: List[List[Span]] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(_spans_text(item) for item in self.items)


class ImageBlock(_Frozen):
    """Embedded illustration; ``asset_ref`` is resolved by the image builder."""

    kind: Literal["image"] = "image"
    asset_ref: Optional[str] = None
    caption: Optional[str] = None
    alt_text: Optional[str] = None
    credit: Optional[str] = None

    @property
    def text(self) -> str:
        return ""


ContentBlock = Annotated[
    Union[Paragraph, Heading, Quote, BulletList, NumberedList, ImageBlock],
    Field(discriminator="kind"),
]

TEXT_BLOCK_KINDS = frozenset({"paragraph", "heading", "quote", "bullet_list", "numbered_list"})


class SocialLink(_Frozen):
    platform: str = ""
    url: str = ""


class Author(_Frozen):
    """Sanitized author profile attached to an article."""

    name: str
    alternate_script_name: Optional[str] = None
    image_url: Optional[str] = None
    role: str = "Contributeur"
    bio: Union[str, List[ContentBlock], None] = None
    social_links: List[SocialLink] = Field(default_factory=list)


class Article(_Frozen):
    """Fully-defaulted representation of a scientific article."""

    title: str
    slug: str = Field(..., min_length=1)
    cover_image_url: Optional[str] = None
    published_at: datetime
    body: List[ContentBlock] = Field(default_factory=list)
    excerpt: str = ""
    category: str = Field(..., min_length=1)
    author: Optional[Author] = None
