from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import DocumentModel, UtcDatetime, pascal_field, utcnow
from .blocks import ContentBlock


class PageMetaData(DocumentModel):
    category: str = ""
    product: str = ""
    keyword: str = ""
    page_type: str = "Keyword"
    title: str = ""
    description: str = ""
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)
    author: str = ""
    language: str = "en-us"
    market: str = ""


class SearchData(DocumentModel):
    state: str = ""
    city: str = ""
    metro: str = ""
    county: str = ""
    keyword: str = ""
    tags: List[str] = Field(default_factory=list)
    content_summary: str = ""
    block_types: List[str] = Field(default_factory=list)


class ContentData(DocumentModel):
    content_blocks: List[ContentBlock] = pascal_field("ContentBlocks", default_factory=list)


class AlternateUrl(DocumentModel):
    href_lang: str = ""
    href: str = ""


class OpenGraphData(DocumentModel):
    title: str = Field(default="", alias="og:title")
    description: str = Field(default="", alias="og:description")
    type: str = Field(default="website", alias="og:type")
    url: str = Field(default="", alias="og:url")
    image: str = Field(default="", alias="og:image")
    image_alt: str = Field(default="", alias="og:image:alt")
    site_name: str = Field(default="", alias="og:site_name")
    locale: str = Field(default="en_US", alias="og:locale")


class TwitterCardData(DocumentModel):
    card: str = Field(default="summary_large_image", alias="twitter:card")
    title: str = Field(default="", alias="twitter:title")
    description: str = Field(default="", alias="twitter:description")
    image: str = Field(default="", alias="twitter:image")
    site: str = Field(default="", alias="twitter:site")
    creator: str = Field(default="", alias="twitter:creator")


class SeoData(DocumentModel):
    meta_title: str = ""
    meta_description: str = ""
    keywords: List[str] = Field(default_factory=list)
    robots: str = "index, follow"
    canonical_url: str = ""
    alternate_urls: List[AlternateUrl] = Field(default_factory=list)
    structured_data: str = ""
    open_graph: OpenGraphData = Field(default_factory=OpenGraphData)
    twitter_card: TwitterCardData = Field(default_factory=TwitterCardData)


class ContentRelationships(DocumentModel):
    is_hub: bool = False
    hub_page_slug: str = ""
    topic_cluster: str = ""
    related_hubs: List[str] = Field(default_factory=list)
    spoke_priority: int = 0


class Page(DocumentModel):
    """One content document, partitioned by ``tenant_id``.

    ``page_slug`` is stored lowercase. Updates replace the whole document and
    bump ``page_version``. PageId, PageVersion, Layout, MetaData and
    ContentData (with its ContentBlocks) keep PascalCase wire names.
    """

    id: str = ""
    page_id: str = pascal_field("PageId", default="")
    tenant_id: str = ""
    page_slug: str = ""
    page_version: int = pascal_field("PageVersion", default=1)
    layout: str = pascal_field("Layout", default="")
    meta_data: PageMetaData = pascal_field("MetaData", default_factory=PageMetaData)
    search_data: SearchData = Field(default_factory=SearchData)
    content_data: ContentData = pascal_field("ContentData", default_factory=ContentData)
    seo: SeoData = Field(default_factory=SeoData)
    is_published: bool = False
    published_at: Optional[UtcDatetime] = None
    include_in_sitemap: bool = True
    content_relationships: ContentRelationships = Field(default_factory=ContentRelationships)

    @property
    def title(self) -> str:
        return self.meta_data.title

    @property
    def updated_at(self) -> datetime:
        return self.meta_data.updated_at

    @property
    def last_modified(self) -> datetime:
        return self.published_at or self.meta_data.updated_at


class SitemapEntry(DocumentModel):
    page_slug: str
    last_modified: UtcDatetime


# Content hierarchy read model

class SpokeSummary(DocumentModel):
    page_slug: str
    title: str = ""
    page_type: str = ""
    spoke_priority: int = 0
    is_published: bool = False
    published_at: Optional[UtcDatetime] = None
    city: str = ""
    metro: str = ""


class HubSummary(DocumentModel):
    page_slug: str
    title: str = ""
    page_type: str = ""
    topic_cluster: str = ""
    is_published: bool = False
    published_at: Optional[UtcDatetime] = None
    spokes: List[SpokeSummary] = Field(default_factory=list)


class OrphanSummary(DocumentModel):
    page_slug: str
    title: str = ""
    page_type: str = ""
    is_published: bool = False


class ClusterSummary(DocumentModel):
    cluster_name: str
    page_count: int = 0
    hub_count: int = 0
    spoke_count: int = 0


class ContentHierarchy(DocumentModel):
    """Hub/spoke view of a tenant's pages, recomputed on every read."""

    tenant_id: str
    total_pages: int = 0
    hubs: List[HubSummary] = Field(default_factory=list)
    orphan_pages: List[OrphanSummary] = Field(default_factory=list)
    clusters: List[ClusterSummary] = Field(default_factory=list)
