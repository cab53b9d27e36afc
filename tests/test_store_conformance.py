# tests/test_store_conformance.py
"""Behaviour every DocumentStore must share. Runs once per adapter."""
from __future__ import annotations

import pytest

from pumpkin.db.base import normalize_slug
from pumpkin.db.errors import DocumentConflict, DocumentNotFound, InvalidDocument, StoreError, StoreUnavailable
from pumpkin.models.blocks import GenericBlock, HeroBlock
from pumpkin.models.form_entry import FormEntry
from pumpkin.models.page import ContentData, ContentRelationships, Page, PageMetaData
from pumpkin.models.tenant import Tenant
from pumpkin.models.theme import Theme
from pumpkin.models.user import User

from tests.conftest import seed_tenant


def make_page(page_id: str, slug: str, published: bool = True, **fields) -> Page:
    return Page(
        id=page_id,
        page_slug=slug,
        is_published=published,
        meta_data=PageMetaData(title=fields.pop("title", slug.title())),
        **fields,
    )


# ---------------------------------------------------------
# Pages
# ---------------------------------------------------------
@pytest.mark.parametrize("slug", ["Pricing", "  pricing  ", "PRICING", "", None, "Fall-Harvest/2026"])
def test_normalize_slug_is_idempotent(slug):
    once = normalize_slug(slug)

    assert normalize_slug(once) == once


async def test_save_page_normalizes_slug_and_stamps_tenant(store):
    saved = await store.save_page("acme", make_page("acme-pricing", "  Pricing "))

    assert saved.page_slug == "pricing"
    assert saved.tenant_id == "acme"
    assert saved.page_version == 1

    found = await store.get_page("acme", "PRICING")
    assert found is not None
    assert found.id == "acme-pricing"
    assert found.page_slug == "pricing"


async def test_get_page_hides_unpublished_but_find_page_does_not(store):
    await store.save_page("acme", make_page("acme-draft", "draft", published=False))

    assert await store.get_page("acme", "draft") is None
    draft = await store.find_page("acme", "draft")
    assert draft is not None
    assert draft.is_published is False


async def test_missing_page_reads_as_none(store):
    assert await store.get_page("acme", "nowhere") is None
    assert await store.find_page("acme", "nowhere") is None


async def test_pages_are_partitioned_by_tenant(store):
    await store.save_page("acme", make_page("p-1", "home"))

    assert await store.get_page("globex", "home") is None
    assert await store.list_pages("globex") == []
    assert [p.id for p in await store.list_pages("acme")] == ["p-1"]


async def test_duplicate_slug_in_tenant_conflicts(store):
    await store.save_page("acme", make_page("p-1", "home"))

    with pytest.raises(DocumentConflict):
        await store.save_page("acme", make_page("p-2", "Home"))


async def test_same_slug_in_other_tenant_is_allowed(store):
    await store.save_page("acme", make_page("p-1", "home"))
    saved = await store.save_page("globex", make_page("p-1", "home"))

    assert saved.tenant_id == "globex"


async def test_save_page_requires_id_and_slug(store):
    with pytest.raises(InvalidDocument):
        await store.save_page("acme", make_page("", "home"))
    with pytest.raises(InvalidDocument):
        await store.save_page("acme", make_page("p-1", "   "))


async def test_update_page_bumps_version_and_keeps_identity(store):
    saved = await store.save_page("acme", make_page("p-1", "pricing", title="Pricing"))

    incoming = make_page("ignored", "Pricing", title="New pricing", published=False)
    updated = await store.update_page("acme", "pricing", incoming)

    assert updated.id == "p-1"
    assert updated.page_version == 2
    assert updated.title == "New pricing"
    assert updated.meta_data.created_at == saved.meta_data.created_at
    assert updated.meta_data.updated_at >= saved.meta_data.updated_at

    again = await store.update_page("acme", "pricing", incoming)
    assert again.page_version == 3

    stored = await store.find_page("acme", "pricing")
    assert stored.page_version == 3
    assert stored.title == "New pricing"


async def test_update_page_rejects_slug_mismatch(store):
    await store.save_page("acme", make_page("p-1", "pricing"))

    with pytest.raises(InvalidDocument):
        await store.update_page("acme", "pricing", make_page("p-1", "other"))


async def test_update_missing_page_is_not_found(store):
    with pytest.raises(DocumentNotFound):
        await store.update_page("acme", "ghost", make_page("p-1", "ghost"))


async def test_delete_page(store):
    await store.save_page("acme", make_page("p-1", "pricing"))

    assert await store.delete_page("acme", "Pricing") is True
    assert await store.find_page("acme", "pricing") is None

    with pytest.raises(DocumentNotFound):
        await store.delete_page("acme", "pricing")


async def test_list_pages_puts_latest_update_first(store):
    await store.save_page("acme", make_page("p-1", "alpha"))
    await store.save_page("acme", make_page("p-2", "beta"))
    await store.update_page("acme", "alpha", make_page("p-1", "alpha", title="Touched"))

    pages = await store.list_pages("acme")
    assert [p.page_slug for p in pages][0] == "alpha"
    assert {p.page_slug for p in pages} == {"alpha", "beta"}


async def test_content_blocks_round_trip_with_unknown_tags(store):
    page = make_page("p-1", "home", content_data=ContentData(content_blocks=[
        {"type": "Hero", "content": {"headline": "Fresh pumpkins"}},
        {"type": "Countdown", "content": {"endsAt": "2026-10-31", "style": "bold"}},
    ]))
    await store.save_page("acme", page)

    blocks = (await store.get_page("acme", "home")).content_data.content_blocks
    assert isinstance(blocks[0], HeroBlock)
    assert blocks[0].content.headline == "Fresh pumpkins"
    assert isinstance(blocks[1], GenericBlock)
    assert blocks[1].type == "Countdown"
    assert blocks[1].content == {"endsAt": "2026-10-31", "style": "bold"}


# ---------------------------------------------------------
# Hubs, spokes, sitemap, hierarchy
# ---------------------------------------------------------
async def seed_cluster(store):
    await store.save_page("acme", make_page("hub", "pumpkins", content_relationships=ContentRelationships(
        is_hub=True, topic_cluster="produce",
    )))
    await store.save_page("acme", make_page("s-1", "pumpkins-austin", content_relationships=ContentRelationships(
        hub_page_slug="Pumpkins", topic_cluster="produce", spoke_priority=1,
    )))
    await store.save_page("acme", make_page("s-2", "pumpkins-dallas", published=False, content_relationships=ContentRelationships(
        hub_page_slug="pumpkins", topic_cluster="produce", spoke_priority=5,
    )))
    await store.save_page("acme", make_page("o-1", "about", include_in_sitemap=False))


async def test_hub_and_spoke_listings(store):
    await seed_cluster(store)

    assert [p.page_slug for p in await store.list_hub_pages("acme")] == ["pumpkins"]

    spokes = await store.list_spoke_pages("acme", "PUMPKINS")
    assert [p.page_slug for p in spokes] == ["pumpkins-dallas", "pumpkins-austin"]


async def test_sitemap_lists_published_sitemap_pages_by_slug(store):
    await seed_cluster(store)

    entries = await store.list_sitemap_entries("acme")
    assert [e.page_slug for e in entries] == ["pumpkins", "pumpkins-austin"]
    assert all(e.last_modified.tzinfo is not None for e in entries)


async def test_content_hierarchy(store):
    await seed_cluster(store)

    hierarchy = await store.get_content_hierarchy("acme")

    assert hierarchy.tenant_id == "acme"
    assert hierarchy.total_pages == 4
    assert [h.page_slug for h in hierarchy.hubs] == ["pumpkins"]
    assert [s.page_slug for s in hierarchy.hubs[0].spokes] == ["pumpkins-dallas", "pumpkins-austin"]
    assert [o.page_slug for o in hierarchy.orphan_pages] == ["about"]
    assert len(hierarchy.clusters) == 1
    cluster = hierarchy.clusters[0]
    assert (cluster.cluster_name, cluster.page_count, cluster.hub_count, cluster.spoke_count) == ("produce", 3, 1, 2)


# ---------------------------------------------------------
# Tenants
# ---------------------------------------------------------
async def test_create_and_get_tenant(store):
    tenant, _ = await seed_tenant(store, "acme")

    assert tenant.id == "acme"
    fetched = await store.get_tenant("acme")
    assert fetched.tenant_id == "acme"
    assert fetched.api_key_hash == tenant.api_key_hash
    assert await store.get_tenant("globex") is None


async def test_duplicate_tenant_conflicts(store):
    await seed_tenant(store, "acme")

    with pytest.raises(DocumentConflict):
        await store.create_tenant(Tenant(tenant_id="acme"))


async def test_create_tenant_requires_identifier(store):
    with pytest.raises(InvalidDocument):
        await store.create_tenant(Tenant(tenant_id=""))


async def test_update_tenant_keeps_key_material(store):
    tenant, _ = await seed_tenant(store, "acme")

    updated = await store.update_tenant("acme", Tenant(tenant_id="acme", name="Acme Farms", api_key_hash="forged"))

    assert updated.name == "Acme Farms"
    assert updated.api_key_hash == tenant.api_key_hash
    assert updated.created_at == tenant.created_at
    assert (await store.get_tenant("acme")).name == "Acme Farms"


async def test_update_missing_tenant_is_not_found(store):
    with pytest.raises(DocumentNotFound):
        await store.update_tenant("ghost", Tenant(tenant_id="ghost"))


async def test_rotate_tenant_key(store):
    tenant, _ = await seed_tenant(store, "acme")

    rotated = await store.rotate_tenant_key("acme", "new-hash")

    assert rotated.api_key_hash == "new-hash"
    assert rotated.api_key_meta.is_active is True
    assert (await store.get_tenant("acme")).api_key_hash == "new-hash"

    with pytest.raises(DocumentNotFound):
        await store.rotate_tenant_key("ghost", "new-hash")


async def test_delete_tenant(store):
    await seed_tenant(store, "acme")

    assert await store.delete_tenant("acme") is True
    assert await store.get_tenant("acme") is None
    with pytest.raises(DocumentNotFound):
        await store.delete_tenant("acme")


async def test_list_tenants(store):
    await seed_tenant(store, "acme")
    await seed_tenant(store, "globex")

    assert {t.tenant_id for t in await store.list_tenants()} == {"acme", "globex"}


# ---------------------------------------------------------
# Themes
# ---------------------------------------------------------
async def test_theme_lifecycle(store):
    created = await store.create_theme("acme", Theme(name="Harvest", is_active=True))
    assert created.id
    assert created.tenant_id == "acme"

    assert (await store.get_theme("acme", created.id)).name == "Harvest"
    assert await store.get_theme("globex", created.id) is None
    assert (await store.get_active_theme("acme")).id == created.id

    updated = await store.update_theme("acme", created.id, Theme(name="Winter", is_active=False))
    assert updated.id == created.id
    assert updated.created_at == created.created_at
    assert await store.get_active_theme("acme") is None

    assert await store.delete_theme("acme", created.id) is True
    assert await store.list_themes("acme") == []
    with pytest.raises(DocumentNotFound):
        await store.delete_theme("acme", created.id)


async def test_update_missing_theme_is_not_found(store):
    with pytest.raises(DocumentNotFound):
        await store.update_theme("acme", "ghost", Theme(name="Ghost"))


async def test_theme_with_duplicate_id_conflicts(store):
    await store.create_theme("acme", Theme(id="harvest", name="Harvest"))

    with pytest.raises(DocumentConflict):
        await store.create_theme("acme", Theme(id="harvest", name="Harvest again"))


# ---------------------------------------------------------
# Users and forms
# ---------------------------------------------------------
async def test_users_are_found_by_lowercased_email(store):
    user = await store.create_user(User(
        tenant_id="acme", email="Ada@Acme.io", username="ada", password_hash="x",
    ))

    assert user.email == "ada@acme.io"
    assert (await store.get_user_by_email("ADA@acme.io")).id == user.id
    assert await store.get_user_by_email("nobody@acme.io") is None

    with pytest.raises(DocumentConflict):
        await store.create_user(User(tenant_id="acme", email="ada@acme.io", username="ada2", password_hash="x"))


async def test_touch_last_login(store):
    user = await store.create_user(User(tenant_id="acme", email="ada@acme.io", username="ada", password_hash="x"))
    assert user.last_login is None

    await store.touch_last_login("acme", user.id)

    assert (await store.get_user_by_email("ada@acme.io")).last_login is not None
    with pytest.raises(DocumentNotFound):
        await store.touch_last_login("acme", "ghost")


async def test_save_form_entry(store):
    saved = await store.save_form_entry("acme", FormEntry(form_id="contact", page_slug="Home", form_data={"name": "Ada"}))

    assert saved.id
    assert saved.tenant_id == "acme"
    assert saved.page_slug == "home"

    with pytest.raises(DocumentConflict):
        await store.save_form_entry("acme", FormEntry(id=saved.id, form_id="contact"))


# ---------------------------------------------------------
# Failures
# ---------------------------------------------------------
async def test_driver_failures_surface_as_store_unavailable(store):
    store.database.fail()

    with pytest.raises(StoreUnavailable):
        await store.get_page("acme", "home")
    with pytest.raises(StoreUnavailable):
        await store.get_tenant("acme")
    with pytest.raises(StoreUnavailable):
        await store.list_pages("acme")


async def test_malformed_stored_document_is_a_store_error(store):
    if store.provider == "cosmosdb":
        await store.database.get_container_client("Tenant").create_item(body={"id": "bad", "tenantId": "bad", "status": "unknown"})
    else:
        await store.database["Tenant"].insert_one({"id": "bad", "tenantId": "bad", "status": "unknown"})

    with pytest.raises(StoreError):
        await store.get_tenant("bad")


async def test_unconnected_store_is_unavailable():
    from pumpkin.core.config import settings
    from pumpkin.db.cosmos import CosmosDocumentStore

    with pytest.raises(StoreUnavailable):
        await CosmosDocumentStore(settings).get_page("acme", "home")
