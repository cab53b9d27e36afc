"""Orderings and read models shared by every document store.

Adapters fetch with native filters and hand the results here, so ordering
and derived views are computed the same way whatever the backend.
"""
from collections import OrderedDict
from typing import Iterable, List

from pumpkin.models.page import (
    ClusterSummary,
    ContentHierarchy,
    HubSummary,
    OrphanSummary,
    Page,
    SitemapEntry,
    SpokeSummary,
)
from pumpkin.models.theme import Theme


def by_updated_desc(pages: Iterable[Page]) -> List[Page]:
    # page_slug breaks ties so both backends agree on order
    pages = sorted(pages, key=lambda p: p.page_slug)
    return sorted(pages, key=lambda p: p.updated_at, reverse=True)


def by_spoke_priority(pages: Iterable[Page]) -> List[Page]:
    """Spoke ordering under a hub: priority desc, then most recently updated."""
    pages = sorted(pages, key=lambda p: p.page_slug)
    return sorted(
        pages,
        key=lambda p: (p.content_relationships.spoke_priority, p.updated_at),
        reverse=True,
    )


def themes_by_updated_desc(themes: Iterable[Theme]) -> List[Theme]:
    themes = sorted(themes, key=lambda t: t.id)
    return sorted(themes, key=lambda t: t.updated_at, reverse=True)


def sitemap_entries(pages: Iterable[Page]) -> List[SitemapEntry]:
    entries = [
        SitemapEntry(page_slug=page.page_slug, last_modified=page.last_modified)
        for page in pages
        if page.is_published and page.include_in_sitemap
    ]
    return sorted(entries, key=lambda e: e.page_slug)


def build_content_hierarchy(tenant_id: str, pages: Iterable[Page]) -> ContentHierarchy:
    """Hub/spoke/orphan/cluster view of one tenant's pages."""
    pages = by_updated_desc(pages)

    hubs = []
    for hub in (p for p in pages if p.content_relationships.is_hub):
        spokes = by_spoke_priority(
            p for p in pages if p.content_relationships.hub_page_slug == hub.page_slug
        )
        hubs.append(HubSummary(
            page_slug=hub.page_slug,
            title=hub.title,
            page_type=hub.meta_data.page_type,
            topic_cluster=hub.content_relationships.topic_cluster,
            is_published=hub.is_published,
            published_at=hub.published_at,
            spokes=[
                SpokeSummary(
                    page_slug=spoke.page_slug,
                    title=spoke.title,
                    page_type=spoke.meta_data.page_type,
                    spoke_priority=spoke.content_relationships.spoke_priority,
                    is_published=spoke.is_published,
                    published_at=spoke.published_at,
                    city=spoke.search_data.city,
                    metro=spoke.search_data.metro,
                )
                for spoke in spokes
            ],
        ))

    orphans = [
        OrphanSummary(
            page_slug=page.page_slug,
            title=page.title,
            page_type=page.meta_data.page_type,
            is_published=page.is_published,
        )
        for page in pages
        if not page.content_relationships.is_hub
        and not page.content_relationships.hub_page_slug
    ]

    grouped = OrderedDict()
    for page in sorted(pages, key=lambda p: p.content_relationships.topic_cluster):
        cluster = page.content_relationships.topic_cluster
        if cluster:
            grouped.setdefault(cluster, []).append(page)

    clusters = [
        ClusterSummary(
            cluster_name=name,
            page_count=len(members),
            hub_count=sum(1 for p in members if p.content_relationships.is_hub),
            spoke_count=sum(1 for p in members if not p.content_relationships.is_hub),
        )
        for name, members in grouped.items()
    ]

    return ContentHierarchy(
        tenant_id=tenant_id,
        total_pages=len(pages),
        hubs=hubs,
        orphan_pages=orphans,
        clusters=clusters,
    )
