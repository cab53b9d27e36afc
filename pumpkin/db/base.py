from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
import uuid

from pumpkin.db.errors import InvalidDocument
from pumpkin.db.hierarchy import build_content_hierarchy
from pumpkin.models.base import utcnow
from pumpkin.models.form_entry import FormEntry
from pumpkin.models.page import ContentHierarchy, Page, SitemapEntry
from pumpkin.models.tenant import ApiKeyMeta, Tenant
from pumpkin.models.theme import Theme
from pumpkin.models.user import User

if TYPE_CHECKING:
    from pumpkin.services.credentials import Identity

# Container (Cosmos) and collection (Mongo) names, all partitioned on tenantId
PAGE_CONTAINER = "Page"
TENANT_CONTAINER = "Tenant"
THEME_CONTAINER = "Theme"
USER_CONTAINER = "User"
FORM_ENTRY_CONTAINER = "FormEntry"


def normalize_slug(slug: Optional[str]) -> str:
    """Slugs are stored and looked up lowercase."""
    return (slug or "").strip().lower()


# Document preparation. Both adapters build what they write through these so
# the persisted shape never depends on the backend.

def prepare_new_page(tenant_id: str, page: Page) -> Page:
    if not page.id:
        raise InvalidDocument("Page id is required")
    slug = normalize_slug(page.page_slug)
    if not slug:
        raise InvalidDocument("Page slug is required")

    now = utcnow()
    relationships = page.content_relationships.model_copy(
        update={"hub_page_slug": normalize_slug(page.content_relationships.hub_page_slug)}
    )
    return page.model_copy(update={
        "tenant_id": tenant_id,
        "page_slug": slug,
        "meta_data": page.meta_data.model_copy(update={"created_at": now, "updated_at": now}),
        "content_relationships": relationships,
    })


def prepare_page_replacement(stored: Page, path_slug: str, incoming: Page) -> Page:
    """Full replace of ``stored`` by ``incoming``.

    Identifier, tenant and creation time carry forward from the stored
    document; the version goes up by exactly one.
    """
    if normalize_slug(incoming.page_slug) != normalize_slug(path_slug):
        raise InvalidDocument("Page slug in the path must match the page slug in the body")

    relationships = incoming.content_relationships.model_copy(
        update={"hub_page_slug": normalize_slug(incoming.content_relationships.hub_page_slug)}
    )
    return incoming.model_copy(update={
        "id": stored.id,
        "tenant_id": stored.tenant_id,
        "page_slug": stored.page_slug,
        "page_version": stored.page_version + 1,
        "meta_data": incoming.meta_data.model_copy(update={
            "created_at": stored.meta_data.created_at,
            "updated_at": utcnow(),
        }),
        "content_relationships": relationships,
    })


def prepare_new_tenant(tenant: Tenant) -> Tenant:
    if not tenant.tenant_id:
        raise InvalidDocument("Tenant id is required")
    now = utcnow()
    return tenant.model_copy(update={
        "id": tenant.tenant_id,
        "created_at": now,
        "updated_at": now,
    })


def prepare_tenant_replacement(stored: Tenant, incoming: Tenant) -> Tenant:
    return incoming.model_copy(update={
        "id": stored.id,
        "tenant_id": stored.tenant_id,
        "created_at": stored.created_at,
        "api_key_hash": stored.api_key_hash,
        "api_key_meta": stored.api_key_meta,
        "updated_at": utcnow(),
    })


def prepare_rotated_tenant(stored: Tenant, api_key_hash: str) -> Tenant:
    now = utcnow()
    return stored.model_copy(update={
        "api_key_hash": api_key_hash,
        "api_key_meta": ApiKeyMeta(created_at=now, is_active=True),
        "updated_at": now,
    })


def prepare_new_theme(tenant_id: str, theme: Theme) -> Theme:
    now = utcnow()
    return theme.model_copy(update={
        "id": theme.id or str(uuid.uuid4()),
        "tenant_id": tenant_id,
        "created_at": now,
        "updated_at": now,
    })


def prepare_theme_replacement(stored: Theme, incoming: Theme) -> Theme:
    return incoming.model_copy(update={
        "id": stored.id,
        "tenant_id": stored.tenant_id,
        "created_at": stored.created_at,
        "updated_at": utcnow(),
    })


def prepare_new_user(user: User) -> User:
    email = (user.email or "").strip().lower()
    if not email:
        raise InvalidDocument("User email is required")
    if not user.tenant_id:
        raise InvalidDocument("User tenant id is required")
    return user.model_copy(update={"email": email})


def prepare_form_entry(tenant_id: str, entry: FormEntry) -> FormEntry:
    return entry.model_copy(update={
        "id": entry.id or str(uuid.uuid4()),
        "tenant_id": tenant_id,
        "page_slug": normalize_slug(entry.page_slug),
    })


class DocumentStore(ABC):
    """Persistence port for tenants, pages, themes, users and form entries.

    Every implementation must be observably identical: same ``None`` for
    missing reads, same ``DocumentNotFound``/``DocumentConflict``/
    ``InvalidDocument`` on writes, same orderings. Driver exceptions never
    escape; anything unexpected surfaces as ``StoreUnavailable``.
    """

    provider: str = ""

    async def connect(self) -> None:
        """Open clients and ensure server-side structures exist."""

    async def close(self) -> None:
        """Release clients."""

    # Pages

    @abstractmethod
    async def get_page(self, tenant_id: str, slug: str) -> Optional[Page]:
        """Published page by slug, or None."""

    @abstractmethod
    async def find_page(self, tenant_id: str, slug: str) -> Optional[Page]:
        """Page by slug regardless of publish state, or None."""

    @abstractmethod
    async def list_pages(self, tenant_id: str) -> List[Page]:
        """All pages, most recently updated first."""

    @abstractmethod
    async def save_page(self, tenant_id: str, page: Page) -> Page:
        ...

    @abstractmethod
    async def update_page(self, tenant_id: str, slug: str, page: Page) -> Page:
        ...

    @abstractmethod
    async def delete_page(self, tenant_id: str, slug: str) -> bool:
        ...

    @abstractmethod
    async def list_hub_pages(self, tenant_id: str) -> List[Page]:
        ...

    @abstractmethod
    async def list_spoke_pages(self, tenant_id: str, hub_slug: str) -> List[Page]:
        ...

    @abstractmethod
    async def list_sitemap_entries(self, tenant_id: str) -> List[SitemapEntry]:
        ...

    async def get_content_hierarchy(self, tenant_id: str) -> ContentHierarchy:
        pages = await self.list_pages(tenant_id)
        return build_content_hierarchy(tenant_id, pages)

    # Tenants

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        ...

    @abstractmethod
    async def list_tenants(self) -> List[Tenant]:
        """All tenants, newest first."""

    async def list_tenants_visible_to(self, identity: "Identity") -> List[Tenant]:
        """Every tenant for a super admin, otherwise only the caller's own."""
        if identity.is_super_admin:
            return await self.list_tenants()
        tenant = await self.get_tenant(identity.tenant_id)
        return [tenant] if tenant else []

    @abstractmethod
    async def create_tenant(self, tenant: Tenant) -> Tenant:
        ...

    @abstractmethod
    async def update_tenant(self, tenant_id: str, tenant: Tenant) -> Tenant:
        ...

    @abstractmethod
    async def rotate_tenant_key(self, tenant_id: str, api_key_hash: str) -> Tenant:
        ...

    @abstractmethod
    async def delete_tenant(self, tenant_id: str) -> bool:
        ...

    # Themes

    @abstractmethod
    async def get_theme(self, tenant_id: str, theme_id: str) -> Optional[Theme]:
        ...

    @abstractmethod
    async def list_themes(self, tenant_id: str) -> List[Theme]:
        ...

    @abstractmethod
    async def get_active_theme(self, tenant_id: str) -> Optional[Theme]:
        ...

    @abstractmethod
    async def create_theme(self, tenant_id: str, theme: Theme) -> Theme:
        ...

    @abstractmethod
    async def update_theme(self, tenant_id: str, theme_id: str, theme: Theme) -> Theme:
        ...

    @abstractmethod
    async def delete_theme(self, tenant_id: str, theme_id: str) -> bool:
        ...

    # Users

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def create_user(self, user: User) -> User:
        ...

    @abstractmethod
    async def touch_last_login(self, tenant_id: str, user_id: str, when: Optional[datetime] = None) -> None:
        ...

    # Forms

    @abstractmethod
    async def save_form_entry(self, tenant_id: str, entry: FormEntry) -> FormEntry:
        ...
