# tests/test_content_service.py
from __future__ import annotations

import pytest

from pumpkin.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from pumpkin.core.security import security
from pumpkin.models.form_entry import FormEntry
from pumpkin.models.page import Page, PageMetaData
from pumpkin.models.tenant import Tenant, TenantSettings
from pumpkin.models.theme import Theme
from pumpkin.models.user import UserRole
from pumpkin.services.auth_service import AuthService

from tests.conftest import seed_tenant, seed_user, session_token

SUPER = session_token(UserRole.SUPER_ADMIN, "platform", subject="root")


def page(page_id: str, slug: str, published: bool = True) -> Page:
    return Page(id=page_id, page_slug=slug, is_published=published, meta_data=PageMetaData(title=slug))


# ---------------------------------------------------------
# Content-serving surface
# ---------------------------------------------------------
async def test_create_tenant_then_serve_pages(service):
    issued = await service.create_tenant(SUPER, Tenant(tenant_id="acme", plan="standard"))
    api_key = issued.api_key

    assert len(api_key) == 44
    assert issued.tenant.api_key_hash and api_key not in issued.tenant.api_key_hash

    with pytest.raises(NotFoundError):
        await service.get_page(api_key, "acme", "Pricing")

    saved = await service.create_page(api_key, "acme", page("acme-pricing", "Pricing"))
    assert saved.page_slug == "pricing"

    fetched = await service.get_page(api_key, "acme", "pricing")
    assert fetched.id == "acme-pricing"

    with pytest.raises(ValidationError):
        await service.update_page(api_key, "acme", "pricing", page("acme-pricing", "other"))


async def test_read_paths_never_return_plaintext_key(service):
    issued = await service.create_tenant(SUPER, Tenant(tenant_id="acme"))

    stored = await service.get_tenant(SUPER, "acme")
    assert issued.api_key not in stored.model_dump_json()
    assert not hasattr(stored, "api_key")


async def test_rotation_invalidates_old_key(service):
    issued = await service.create_tenant(SUPER, Tenant(tenant_id="acme"))
    await service.create_page(issued.api_key, "acme", page("p-1", "home"))

    rotated = await service.regenerate_api_key(SUPER, "acme")

    with pytest.raises(AuthenticationError):
        await service.get_page(issued.api_key, "acme", "home")
    assert (await service.get_page(rotated.api_key, "acme", "home")).id == "p-1"


async def test_api_key_is_bound_to_its_tenant(service, store):
    _, acme_key = await seed_tenant(store, "acme")
    await seed_tenant(store, "globex")

    with pytest.raises(AuthenticationError):
        await service.get_page(acme_key, "globex", "home")


async def test_duplicate_page_is_conflict(service, store):
    _, api_key = await seed_tenant(store, "acme")
    await service.create_page(api_key, "acme", page("p-1", "home"))

    with pytest.raises(ConflictError):
        await service.create_page(api_key, "acme", page("p-2", "home"))


async def test_delete_missing_page_is_not_found(service, store):
    _, api_key = await seed_tenant(store, "acme")

    with pytest.raises(NotFoundError):
        await service.delete_page(api_key, "acme", "ghost")


async def test_theme_reads_by_api_key(service, store):
    _, api_key = await seed_tenant(store, "acme")

    with pytest.raises(NotFoundError):
        await service.get_active_theme(api_key, "acme")

    admin = session_token(UserRole.TENANT_ADMIN, "acme")
    theme = await service.create_theme(admin, "acme", Theme(name="Harvest", is_active=True))

    assert (await service.get_active_theme(api_key, "acme")).id == theme.id
    assert (await service.get_theme(api_key, "acme", theme.id)).name == "Harvest"
    with pytest.raises(NotFoundError):
        await service.get_theme(api_key, "acme", "ghost")


async def test_submit_form_records_request_details(service, store):
    _, api_key = await seed_tenant(store, "acme")

    entry = await service.submit_form(
        api_key, "acme", FormEntry(form_id="contact", form_data={"email": "ada@acme.io"}),
        ip_address="203.0.113.7", user_agent="pytest",
    )

    assert entry.id
    assert entry.tenant_id == "acme"
    assert entry.ip_address == "203.0.113.7"
    assert entry.metadata.status == "new"


async def test_storage_failure_is_generic_unexpected_error(service, store):
    await seed_tenant(store, "acme")
    store.database.fail()

    with pytest.raises(UnexpectedError) as exc_info:
        await service.list_pages(SUPER, "acme")
    assert exc_info.value.message == "An unexpected error occurred"


# ---------------------------------------------------------
# Admin surface
# ---------------------------------------------------------
async def test_tenant_admin_cannot_create_or_update_tenants(service, store):
    await seed_tenant(store, "acme")
    admin = session_token(UserRole.TENANT_ADMIN, "acme")

    with pytest.raises(AuthorizationError):
        await service.create_tenant(admin, Tenant(tenant_id="globex"))
    with pytest.raises(AuthorizationError):
        await service.update_tenant(admin, "acme", Tenant(tenant_id="acme", name="Mine now"))
    with pytest.raises(AuthorizationError):
        await service.regenerate_api_key(admin, "acme")


async def test_self_delete_is_forbidden(service, store):
    await seed_tenant(store, "platform")

    with pytest.raises(AuthorizationError, match="cannot delete itself"):
        await service.delete_tenant(SUPER, "platform")
    assert await store.get_tenant("platform") is not None


async def test_super_admin_deletes_other_tenant(service, store):
    await seed_tenant(store, "acme")

    assert await service.delete_tenant(SUPER, "acme") is True
    with pytest.raises(NotFoundError):
        await service.get_tenant(SUPER, "acme")


async def test_list_tenants_is_scoped_to_caller(service, store):
    await seed_tenant(store, "acme")
    await seed_tenant(store, "globex")

    assert {t.tenant_id for t in await service.list_tenants(SUPER)} == {"acme", "globex"}
    viewer = session_token(UserRole.VIEWER, "acme")
    assert [t.tenant_id for t in await service.list_tenants(viewer)] == ["acme"]


async def test_admin_page_reads_include_drafts(service, store):
    editor = session_token(UserRole.EDITOR, "acme")
    await service.create_page_admin(editor, "acme", page("p-1", "draft", published=False))

    assert (await service.get_page_admin(editor, "acme", "draft")).is_published is False
    assert [p.page_slug for p in await service.list_pages(editor)] == ["draft"]
    with pytest.raises(AuthorizationError):
        await service.list_pages(editor, "globex")


async def test_viewer_cannot_write_pages(service):
    viewer = session_token(UserRole.VIEWER, "acme")

    with pytest.raises(AuthorizationError):
        await service.create_page_admin(viewer, "acme", page("p-1", "home"))


async def test_activating_a_theme_deactivates_the_others(service):
    admin = session_token(UserRole.TENANT_ADMIN, "acme")
    first = await service.create_theme(admin, "acme", Theme(name="Harvest", is_active=True))
    second = await service.create_theme(admin, "acme", Theme(name="Winter", is_active=True))

    themes = {t.id: t for t in await service.list_themes(admin, "acme")}
    assert themes[first.id].is_active is False
    assert themes[second.id].is_active is True

    await service.update_theme(admin, "acme", first.id, Theme(name="Harvest", is_active=True))
    assert (await service.get_active_theme_admin(admin, "acme")).id == first.id
    assert (await service.get_theme_admin(admin, "acme", second.id)).is_active is False


async def test_editor_cannot_write_themes(service):
    editor = session_token(UserRole.EDITOR, "acme")

    with pytest.raises(AuthorizationError):
        await service.create_theme(editor, "acme", Theme(name="Harvest"))


async def test_tenant_update_forgets_cached_cors_policy(service, store, cache):
    await seed_tenant(store, "acme", allowed_origins=["https://acme.io"])
    assert await service.cors_policy.get_allowed_origins("acme") == ["https://acme.io"]

    await service.update_tenant(SUPER, "acme", Tenant(
        tenant_id="acme", settings=TenantSettings(allowed_origins=["https://shop.acme.io"]),
    ))

    assert await service.cors_policy.get_allowed_origins("acme") == ["https://shop.acme.io"]


# ---------------------------------------------------------
# Login
# ---------------------------------------------------------
async def test_login_issues_session_token(store):
    await seed_user(store, "ada@acme.io", "s3cret-pass", "acme", role=UserRole.EDITOR, first_name="Ada", last_name="Lovelace")
    auth = AuthService(store, security)

    response = await auth.login("  ADA@acme.io ", "s3cret-pass", ip_address="203.0.113.7")

    assert response.user.email == "ada@acme.io"
    assert response.user.role == "Editor"
    claims = security.verify_token(response.token)
    assert claims["tenant_id"] == "acme"
    assert claims["name"] == "Ada Lovelace"
    assert (await store.get_user_by_email("ada@acme.io")).last_login is not None


@pytest.mark.parametrize(
    "email, password, active",
    [
        ("ada@acme.io", "wrong-pass", True),
        ("nobody@acme.io", "s3cret-pass", True),
        ("ada@acme.io", "s3cret-pass", False),
    ],
)
async def test_login_fails_closed(store, email, password, active):
    await seed_user(store, "ada@acme.io", "s3cret-pass", "acme", is_active=active)

    with pytest.raises(AuthenticationError, match="Invalid credentials"):
        await AuthService(store, security).login(email, password)


# ---------------------------------------------------------
# Every mutating use case refuses a foreign tenant
# ---------------------------------------------------------
PAGE_BODIES = ({"id": "globex-home", "pageSlug": "home", "MetaData": {"title": "Replaced"}}, {"PageVersion": "x"})
THEME_BODIES = ({"name": "Replaced", "isActive": True}, {"isActive": "maybe"})
TENANT_BODIES = ({"tenantId": "globex", "name": "Replaced"}, {"tenantId": ["globex"]})
FORM_BODIES = ({"formId": "contact", "formData": {"email": "eve@evil.io"}}, {"formData": "not an object"})
NO_BODY = (None,)

FOREIGN_MUTATIONS = [
    # API key of acme
    ("create_page", lambda s, key, admin, body: s.create_page(key, "globex", body), PAGE_BODIES),
    ("update_page", lambda s, key, admin, body: s.update_page(key, "globex", "home", body), PAGE_BODIES),
    ("delete_page", lambda s, key, admin, body: s.delete_page(key, "globex", "home"), NO_BODY),
    ("submit_form", lambda s, key, admin, body: s.submit_form(key, "globex", body), FORM_BODIES),
    # Tenant admin session of acme
    ("create_page_admin", lambda s, key, admin, body: s.create_page_admin(admin, "globex", body), PAGE_BODIES),
    ("update_page_admin", lambda s, key, admin, body: s.update_page_admin(admin, "globex", "home", body), PAGE_BODIES),
    ("delete_page_admin", lambda s, key, admin, body: s.delete_page_admin(admin, "globex", "home"), NO_BODY),
    ("create_theme", lambda s, key, admin, body: s.create_theme(admin, "globex", body), THEME_BODIES),
    ("update_theme", lambda s, key, admin, body: s.update_theme(admin, "globex", "globex-theme", body), THEME_BODIES),
    ("delete_theme", lambda s, key, admin, body: s.delete_theme(admin, "globex", "globex-theme"), NO_BODY),
    ("create_tenant", lambda s, key, admin, body: s.create_tenant(admin, body), TENANT_BODIES),
    ("update_tenant", lambda s, key, admin, body: s.update_tenant(admin, "globex", body), TENANT_BODIES),
    ("delete_tenant", lambda s, key, admin, body: s.delete_tenant(admin, "globex"), NO_BODY),
    ("regenerate_api_key", lambda s, key, admin, body: s.regenerate_api_key(admin, "globex"), NO_BODY),
]


def foreign_mutation_cases():
    for name, call, bodies in FOREIGN_MUTATIONS:
        yield pytest.param(call, bodies[0], id=name)
        for broken in bodies[1:]:
            yield pytest.param(call, broken, id=f"{name}-broken-body")


async def globex_snapshot(store):
    return (
        [p.to_document() for p in await store.list_pages("globex")],
        [t.to_document() for t in await store.list_themes("globex")],
        [t.to_document() for t in await store.list_tenants()],
    )


@pytest.mark.parametrize("call, body", foreign_mutation_cases())
async def test_mutation_on_foreign_tenant_is_refused(service, store, call, body):
    _, acme_key = await seed_tenant(store, "acme")
    await seed_tenant(store, "globex")
    await store.save_page("globex", page("globex-home", "home"))
    await store.create_theme("globex", Theme(id="globex-theme", name="Harvest", is_active=True))
    admin = session_token(UserRole.TENANT_ADMIN, "acme")
    before = await globex_snapshot(store)

    with pytest.raises((AuthenticationError, AuthorizationError)):
        await call(service, acme_key, admin, body)

    assert await globex_snapshot(store) == before
