import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "pumpkin-test-signing-key-0123456789abcdef")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from pumpkin.core.config import settings
from pumpkin.core.security import security
from pumpkin.db.cosmos import CosmosDocumentStore
from pumpkin.db.mongo import MongoDocumentStore
from pumpkin.models.tenant import Tenant, TenantSettings
from pumpkin.models.user import User, UserRole
from pumpkin.services.content_service import ContentAccessService
from pumpkin.services.cors import TenantCorsPolicyProvider

from tests.fakes import FakeCache, FakeCosmosDatabase, FakeMongoDatabase


# ---------------------------------------------------------
# Stores
# ---------------------------------------------------------
async def build_store(provider: str):
    if provider == "cosmosdb":
        store = CosmosDocumentStore(settings, database=FakeCosmosDatabase())
    else:
        store = MongoDocumentStore(settings, database=FakeMongoDatabase())
    await store.connect()
    return store


@pytest_asyncio.fixture(params=["cosmosdb", "mongodb"])
async def store(request):
    """The same test runs once against each adapter."""
    return await build_store(request.param)


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def service(store, cache):
    return ContentAccessService(store, security, TenantCorsPolicyProvider(store, cache))


# ---------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------
async def seed_tenant(store, tenant_id: str, allowed_origins=(), **fields):
    """Create a tenant directly in the store; returns (tenant, plaintext key)."""
    api_key = security.generate_api_key()
    tenant = await store.create_tenant(Tenant(
        tenant_id=tenant_id,
        name=fields.pop("name", tenant_id.title()),
        plan=fields.pop("plan", "standard"),
        api_key_hash=security.hash_api_key(api_key),
        settings=TenantSettings(allowed_origins=list(allowed_origins)),
        **fields,
    ))
    return tenant, api_key


async def seed_user(store, email: str, password: str, tenant_id: str, role=UserRole.TENANT_ADMIN, **fields):
    return await store.create_user(User(
        tenant_id=tenant_id,
        email=email,
        username=email.split("@")[0],
        password_hash=security.hash_password(password),
        role=role,
        **fields,
    ))


def session_token(role: UserRole, tenant_id: str, permissions=(), subject: str = "user-1") -> str:
    return security.create_access_token({
        "sub": subject,
        "email": f"{subject}@acme.io",
        "name": subject,
        "role": role.value,
        "tenant_id": tenant_id,
        "permissions": list(permissions),
    })


def bearer(credential: str) -> dict:
    return {"Authorization": f"Bearer {credential}"}


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture
async def app(store, cache):
    from pumpkin.main import create_app
    return create_app(store=store, cache=cache)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
