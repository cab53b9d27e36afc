# tests/test_cors.py
from __future__ import annotations

from pumpkin.db.errors import StoreUnavailable
from pumpkin.services.cors import TenantCorsPolicyProvider

from tests.conftest import bearer, seed_tenant

PREFLIGHT = {"Access-Control-Request-Method": "GET", "Access-Control-Request-Headers": "authorization"}


# ---------------------------------------------------------
# Policy provider
# ---------------------------------------------------------
async def test_allowed_origins_are_normalized_and_cached(store, cache):
    await seed_tenant(store, "acme", allowed_origins=["https://Acme.io/", "  ", "https://shop.acme.io"])
    policy = TenantCorsPolicyProvider(store, cache, ttl=60)

    assert await policy.get_allowed_origins("acme") == ["https://acme.io", "https://shop.acme.io"]
    assert cache.sets == [("tenant_cors:acme", 60)]

    # second lookup is served from the cache
    await store.delete_tenant("acme")
    assert await policy.is_origin_allowed("acme", "https://ACME.io")


async def test_unknown_tenant_has_no_origins(store, cache):
    policy = TenantCorsPolicyProvider(store, cache)

    assert await policy.get_allowed_origins("ghost") == []
    assert not await policy.is_origin_allowed("ghost", "https://acme.io")
    assert not await policy.is_origin_allowed("", "https://acme.io")


async def test_lookup_failure_denies_without_caching(cache):
    class BrokenStore:
        async def get_tenant(self, tenant_id):
            raise StoreUnavailable("get_tenant failed")

    policy = TenantCorsPolicyProvider(BrokenStore(), cache)

    assert await policy.get_allowed_origins("acme") == []
    assert cache.data == {}


async def test_invalidate_drops_cached_entry(store, cache):
    await seed_tenant(store, "acme", allowed_origins=["https://acme.io"])
    policy = TenantCorsPolicyProvider(store, cache)
    await policy.get_allowed_origins("acme")

    await policy.invalidate("acme")

    assert "tenant_cors:acme" not in cache.data


# ---------------------------------------------------------
# Middleware
# ---------------------------------------------------------
async def test_preflight_for_allowed_origin(client, store):
    await seed_tenant(store, "acme", allowed_origins=["https://acme.io"])

    resp = await client.options("/api/pages/acme/home", headers={"Origin": "https://acme.io", **PREFLIGHT})

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "https://acme.io"
    assert "GET" in resp.headers["access-control-allow-methods"]
    assert resp.headers["access-control-allow-headers"] == "authorization"
    assert "Origin" in resp.headers["vary"]


async def test_preflight_for_other_origin_is_rejected(client, store):
    await seed_tenant(store, "acme", allowed_origins=["https://acme.io"])

    resp = await client.options("/api/pages/acme/home", headers={"Origin": "https://evil.io", **PREFLIGHT})

    assert resp.status_code == 400
    assert "access-control-allow-origin" not in resp.headers


async def test_origins_do_not_leak_across_tenants(client, store):
    await seed_tenant(store, "acme", allowed_origins=["https://acme.io"])
    await seed_tenant(store, "globex", allowed_origins=["https://globex.io"])

    resp = await client.options("/api/sitemap/globex", headers={"Origin": "https://acme.io", **PREFLIGHT})

    assert resp.status_code == 400


async def test_simple_request_gets_cors_headers_even_on_error(client, store):
    await seed_tenant(store, "acme", allowed_origins=["https://acme.io"])

    resp = await client.get("/api/pages/acme/home", headers={"Origin": "https://acme.io"})

    assert resp.status_code == 401
    assert resp.headers["access-control-allow-origin"] == "https://acme.io"


async def test_simple_request_from_unlisted_origin_has_no_cors_headers(client, store):
    _, api_key = await seed_tenant(store, "acme", allowed_origins=["https://acme.io"])

    resp = await client.get("/api/sitemap/acme", headers={"Origin": "https://evil.io", **bearer(api_key)})

    assert resp.status_code == 200
    assert "access-control-allow-origin" not in resp.headers


async def test_admin_routes_use_static_origins(client):
    allowed = await client.get("/health", headers={"Origin": "http://localhost:3000"})
    assert allowed.headers["access-control-allow-origin"] == "http://localhost:3000"

    other = await client.get("/health", headers={"Origin": "https://acme.io"})
    assert "access-control-allow-origin" not in other.headers
