"""Typed page content blocks.

A block is ``{"type": <tag>, "content": {...}}``. Known tags decode to their
typed model through ``BLOCK_TYPES``; anything else decodes to ``GenericBlock``
and keeps its tag and raw content so it round-trips unchanged.
"""

from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import ConfigDict, Discriminator, Field, Tag, TypeAdapter

from .base import DocumentModel, UtcDatetime, utcnow


class BlockContent(DocumentModel):
    # Editors add presentational keys freely; keep them.
    model_config = ConfigDict(extra="allow")


# Hero

class HeroContent(BlockContent):
    type: str = "Main"
    headline: str = ""
    subheadline: str = ""
    background_image: str = ""
    background_image_alt_text: str = ""
    main_image: str = ""
    main_image_alt_text: str = ""
    button_text: str = ""
    button_link: str = ""


# Calls to action

class PrimaryCtaContent(BlockContent):
    title: str = ""
    description: str = ""
    button_text: str = ""
    button_link: str = ""
    secondary_text: str = ""
    secondary_link_text: str = ""
    secondary_link: str = ""
    background_image: str = ""
    main_image: str = ""
    alt: str = ""


class SecondaryCtaContent(BlockContent):
    title: str = ""
    description: str = ""
    button_text: str = ""
    button_link: str = ""


# Cards

class Card(BlockContent):
    title: str = ""
    description: str = ""
    image: str = ""
    image_alt: str = Field(default="", alias="image-alt")
    icon: str = ""
    link: str = ""
    alt: str = ""


class CardGridContent(BlockContent):
    title: str = ""
    subtitle: str = ""
    layout: str = "grid"
    cards: List[Card] = Field(default_factory=list)


class FaqItem(BlockContent):
    question: str = ""
    answer: str = ""


class FaqContent(BlockContent):
    title: str = ""
    subtitle: str = ""
    layout: str = "accordion"
    items: List[FaqItem] = Field(default_factory=list)


class BreadcrumbItem(BlockContent):
    label: str = ""
    url: str = ""
    current: bool = False


class BreadcrumbsContent(BlockContent):
    items: List[BreadcrumbItem] = Field(default_factory=list)


class TrustBarItem(BlockContent):
    icon: str = ""
    title: str = ""
    text: str = ""
    alt: str = ""


class TrustBarContent(BlockContent):
    items: List[TrustBarItem] = Field(default_factory=list)


class Step(BlockContent):
    title: str = ""
    text: str = ""
    image: str = ""
    alt: str = ""


class HowItWorksContent(BlockContent):
    title: str = ""
    steps: List[Step] = Field(default_factory=list)


class ServiceAreaMapContent(BlockContent):
    title: str = ""
    subtitle: str = ""
    map_embed_url: str = ""
    neighborhoods: List[str] = Field(default_factory=list)
    zip_codes: List[str] = Field(default_factory=list)
    nearby_cities: List[str] = Field(default_factory=list)


class ProTipItem(BlockContent):
    icon: str = ""
    image: str = ""
    title: str = ""
    text: str = ""


class LocalProTipsContent(BlockContent):
    title: str = ""
    items: List[ProTipItem] = Field(default_factory=list)


class GalleryImage(BlockContent):
    src: str = ""
    alt: str = ""
    caption: str = ""


class GalleryContent(BlockContent):
    title: str = ""
    subtitle: str = ""
    images: List[GalleryImage] = Field(default_factory=list)


class TestimonialItem(BlockContent):
    quote: str = ""
    author: str = ""
    event_type: str = ""
    rating: float = 5.0


class TestimonialsContent(BlockContent):
    title: str = ""
    subtitle: str = ""
    layout: str = "carousel"
    items: List[TestimonialItem] = Field(default_factory=list)


class FormField(BlockContent):
    label: str = ""
    type: str = ""
    required: bool = False
    placeholder: str = ""


class SocialLink(BlockContent):
    platform: str = ""
    url: str = ""
    icon: str = ""


class ContactContent(BlockContent):
    id: str = ""
    title: str = ""
    subtitle: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    hours: str = ""
    form_fields: List[FormField] = Field(default_factory=list)
    submit_button_text: str = ""
    social_links: List[SocialLink] = Field(default_factory=list)


class RelatedPost(BlockContent):
    title: str = ""
    slug: str = ""
    excerpt: str = ""
    image: str = ""
    image_alt: str = ""
    published_date: UtcDatetime = Field(default_factory=utcnow)


class BlogContent(BlockContent):
    title: str = ""
    subtitle: str = ""
    author: str = ""
    author_image: str = ""
    author_bio: str = ""
    published_date: UtcDatetime = Field(default_factory=utcnow)
    featured_image: str = ""
    featured_image_alt: str = ""
    excerpt: str = ""
    body: str = ""
    tags: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    reading_time: int = 0
    related_posts: List[RelatedPost] = Field(default_factory=list)


# Blocks

class HeroBlock(DocumentModel):
    type: Literal["Hero"] = "Hero"
    content: HeroContent = Field(default_factory=HeroContent)


class PrimaryCtaBlock(DocumentModel):
    type: Literal["PrimaryCTA"] = "PrimaryCTA"
    content: PrimaryCtaContent = Field(default_factory=PrimaryCtaContent)


class SecondaryCtaBlock(DocumentModel):
    type: Literal["SecondaryCTA"] = "SecondaryCTA"
    content: SecondaryCtaContent = Field(default_factory=SecondaryCtaContent)


class CardGridBlock(DocumentModel):
    type: Literal["CardGrid"] = "CardGrid"
    content: CardGridContent = Field(default_factory=CardGridContent)


class FaqBlock(DocumentModel):
    type: Literal["FAQ"] = "FAQ"
    content: FaqContent = Field(default_factory=FaqContent)


class BreadcrumbsBlock(DocumentModel):
    type: Literal["Breadcrumbs"] = "Breadcrumbs"
    content: BreadcrumbsContent = Field(default_factory=BreadcrumbsContent)


class TrustBarBlock(DocumentModel):
    type: Literal["TrustBar"] = "TrustBar"
    content: TrustBarContent = Field(default_factory=TrustBarContent)


class HowItWorksBlock(DocumentModel):
    type: Literal["HowItWorks"] = "HowItWorks"
    content: HowItWorksContent = Field(default_factory=HowItWorksContent)


class ServiceAreaMapBlock(DocumentModel):
    type: Literal["ServiceAreaMap"] = "ServiceAreaMap"
    content: ServiceAreaMapContent = Field(default_factory=ServiceAreaMapContent)


class LocalProTipsBlock(DocumentModel):
    type: Literal["LocalProTips"] = "LocalProTips"
    content: LocalProTipsContent = Field(default_factory=LocalProTipsContent)


class GalleryBlock(DocumentModel):
    type: Literal["Gallery"] = "Gallery"
    content: GalleryContent = Field(default_factory=GalleryContent)


class TestimonialsBlock(DocumentModel):
    type: Literal["Testimonials"] = "Testimonials"
    content: TestimonialsContent = Field(default_factory=TestimonialsContent)


class ContactBlock(DocumentModel):
    type: Literal["Contact"] = "Contact"
    content: ContactContent = Field(default_factory=ContactContent)


class BlogBlock(DocumentModel):
    type: Literal["Blog"] = "Blog"
    content: BlogContent = Field(default_factory=BlogContent)


class GenericBlock(DocumentModel):
    """Block with an unrecognised tag; content is kept as an opaque mapping."""

    type: str = "Unknown"
    content: Dict[str, Any] = Field(default_factory=dict)


BLOCK_TYPES = {
    "Hero": HeroBlock,
    "PrimaryCTA": PrimaryCtaBlock,
    "SecondaryCTA": SecondaryCtaBlock,
    "CardGrid": CardGridBlock,
    "FAQ": FaqBlock,
    "Breadcrumbs": BreadcrumbsBlock,
    "TrustBar": TrustBarBlock,
    "HowItWorks": HowItWorksBlock,
    "ServiceAreaMap": ServiceAreaMapBlock,
    "LocalProTips": LocalProTipsBlock,
    "Gallery": GalleryBlock,
    "Testimonials": TestimonialsBlock,
    "Contact": ContactBlock,
    "Blog": BlogBlock,
}

GENERIC_TAG = "__generic__"


def block_tag(value: Any) -> str:
    if isinstance(value, GenericBlock):
        return GENERIC_TAG
    if isinstance(value, dict):
        tag = value.get("type")
    else:
        tag = getattr(value, "type", None)
    return tag if tag in BLOCK_TYPES else GENERIC_TAG


ContentBlock = Annotated[
    Union[
        tuple(Annotated[model, Tag(tag)] for tag, model in BLOCK_TYPES.items())
        + (Annotated[GenericBlock, Tag(GENERIC_TAG)],)
    ],
    Discriminator(block_tag),
]

_block_adapter = TypeAdapter(ContentBlock)


def parse_block(data: Any) -> DocumentModel:
    """Decode one raw block into its typed model (or ``GenericBlock``)."""
    return _block_adapter.validate_python(data)
