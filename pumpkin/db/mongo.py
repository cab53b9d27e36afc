from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, AsyncMongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError
import structlog

from pumpkin.db import base
from pumpkin.db.base import (
    FORM_ENTRY_CONTAINER,
    PAGE_CONTAINER,
    TENANT_CONTAINER,
    THEME_CONTAINER,
    USER_CONTAINER,
    DocumentStore,
    normalize_slug,
)
from pumpkin.db.errors import (
    DocumentConflict,
    DocumentNotFound,
    StoreError,
    StoreUnavailable,
)
from pumpkin.db.hierarchy import by_spoke_priority, by_updated_desc, sitemap_entries, themes_by_updated_desc
from pumpkin.models.base import DocumentModel, utcnow
from pumpkin.models.form_entry import FormEntry
from pumpkin.models.page import Page, SitemapEntry
from pumpkin.models.tenant import Tenant
from pumpkin.models.theme import Theme
from pumpkin.models.user import User

logger = structlog.get_logger()

M = TypeVar("M", bound=DocumentModel)

# Documents are read back without Mongo's own key
PROJECTION = {"_id": 0}

INDEXES = {
    PAGE_CONTAINER: [
        ([("tenantId", ASCENDING), ("id", ASCENDING)], True),
        ([("tenantId", ASCENDING), ("pageSlug", ASCENDING)], False),
    ],
    TENANT_CONTAINER: [([("tenantId", ASCENDING)], True)],
    THEME_CONTAINER: [([("tenantId", ASCENDING), ("id", ASCENDING)], True)],
    USER_CONTAINER: [([("email", ASCENDING)], True)],
    FORM_ENTRY_CONTAINER: [([("tenantId", ASCENDING), ("id", ASCENDING)], True)],
}


@contextmanager
def mongo_errors(operation: str, **context):
    """Re-signal pymongo failures as storage errors."""
    try:
        yield
    except StoreError:
        raise
    except DuplicateKeyError:
        raise DocumentConflict(f"{operation}: document already exists")
    except PyMongoError as e:
        logger.error("MongoDB request failed", operation=operation, error=type(e).__name__, **context)
        raise StoreUnavailable(f"{operation} failed")
    except PydanticValidationError as e:
        logger.error("Stored document could not be decoded", operation=operation, errors=e.error_count(), **context)
        raise StoreError(f"{operation}: stored document is malformed")


class MongoDocumentStore(DocumentStore):
    """MongoDB store. Collections mirror the Cosmos containers and carry
    ``tenantId`` on every document; uniqueness comes from the indexes
    created in :meth:`connect`.
    """

    provider = "mongodb"

    def __init__(self, settings, database=None):
        self.settings = settings
        self.client: Optional[AsyncMongoClient] = None
        self.database = database

    async def connect(self) -> None:
        if self.database is None:
            self.client = AsyncMongoClient(
                self.settings.MONGO_CONNECTION_STRING,
                maxPoolSize=self.settings.MONGO_MAX_POOL_SIZE,
                connectTimeoutMS=self.settings.MONGO_CONNECT_TIMEOUT_MS,
                serverSelectionTimeoutMS=self.settings.MONGO_SERVER_SELECTION_TIMEOUT_MS,
            )
            self.database = self.client[self.settings.MONGO_DATABASE_NAME]

        with mongo_errors("connect"):
            for name, indexes in INDEXES.items():
                for keys, unique in indexes:
                    await self.database[name].create_index(keys, unique=unique)
        logger.info("MongoDB store ready", database=self.settings.MONGO_DATABASE_NAME)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None
            self.database = None

    def _collection(self, name: str):
        if self.database is None:
            raise StoreUnavailable("MongoDB store is not connected")
        return self.database[name]

    async def _find(self, collection: str, model: Type[M], query: Dict[str, Any]) -> List[M]:
        cursor = self._collection(collection).find(query, PROJECTION)
        return [model.model_validate(doc) for doc in await cursor.to_list(None)]

    async def _find_one(self, collection: str, model: Type[M], query: Dict[str, Any]) -> Optional[M]:
        doc = await self._collection(collection).find_one(query, PROJECTION)
        return model.model_validate(doc) if doc is not None else None

    async def _replace(self, collection: str, query: Dict[str, Any], document: DocumentModel, missing: str):
        result = await self._collection(collection).replace_one(query, document.to_document())
        if result.matched_count == 0:
            raise DocumentNotFound(missing)

    async def _delete(self, collection: str, query: Dict[str, Any], missing: str) -> bool:
        result = await self._collection(collection).delete_one(query)
        if result.deleted_count == 0:
            raise DocumentNotFound(missing)
        return True

    async def _find_page(self, tenant_id: str, slug: str, published_only: bool) -> Optional[Page]:
        query = {"tenantId": tenant_id, "pageSlug": normalize_slug(slug)}
        if published_only:
            query["isPublished"] = True
        return await self._find_one(PAGE_CONTAINER, Page, query)

    # Pages

    async def get_page(self, tenant_id: str, slug: str) -> Optional[Page]:
        with mongo_errors("get_page", tenant_id=tenant_id):
            page = await self._find_page(tenant_id, slug, published_only=True)
        if page is None:
            logger.info("Page not found", tenant_id=tenant_id, slug=normalize_slug(slug))
        return page

    async def find_page(self, tenant_id: str, slug: str) -> Optional[Page]:
        with mongo_errors("find_page", tenant_id=tenant_id):
            return await self._find_page(tenant_id, slug, published_only=False)

    async def list_pages(self, tenant_id: str) -> List[Page]:
        with mongo_errors("list_pages", tenant_id=tenant_id):
            pages = await self._find(PAGE_CONTAINER, Page, {"tenantId": tenant_id})
        return by_updated_desc(pages)

    async def save_page(self, tenant_id: str, page: Page) -> Page:
        page = base.prepare_new_page(tenant_id, page)
        with mongo_errors("save_page", tenant_id=tenant_id):
            if await self._find_page(tenant_id, page.page_slug, published_only=False):
                raise DocumentConflict(f"Page with slug '{page.page_slug}' already exists")
            await self._collection(PAGE_CONTAINER).insert_one(page.to_document())
        logger.info("Page created", tenant_id=tenant_id, page_id=page.id, slug=page.page_slug)
        return page

    async def update_page(self, tenant_id: str, slug: str, page: Page) -> Page:
        missing = f"Page with slug '{normalize_slug(slug)}' not found"
        with mongo_errors("update_page", tenant_id=tenant_id):
            stored = await self._find_page(tenant_id, slug, published_only=False)
            if stored is None:
                raise DocumentNotFound(missing)
            replacement = base.prepare_page_replacement(stored, slug, page)
            await self._replace(
                PAGE_CONTAINER,
                {"tenantId": tenant_id, "id": stored.id},
                replacement,
                missing,
            )
        logger.info(
            "Page updated",
            tenant_id=tenant_id,
            slug=replacement.page_slug,
            version=replacement.page_version,
        )
        return replacement

    async def delete_page(self, tenant_id: str, slug: str) -> bool:
        missing = f"Page with slug '{normalize_slug(slug)}' not found"
        with mongo_errors("delete_page", tenant_id=tenant_id):
            stored = await self._find_page(tenant_id, slug, published_only=False)
            if stored is None:
                raise DocumentNotFound(missing)
            await self._delete(PAGE_CONTAINER, {"tenantId": tenant_id, "id": stored.id}, missing)
        logger.info("Page deleted", tenant_id=tenant_id, slug=stored.page_slug)
        return True

    async def list_hub_pages(self, tenant_id: str) -> List[Page]:
        with mongo_errors("list_hub_pages", tenant_id=tenant_id):
            pages = await self._find(
                PAGE_CONTAINER,
                Page,
                {"tenantId": tenant_id, "contentRelationships.isHub": True},
            )
        return by_updated_desc(pages)

    async def list_spoke_pages(self, tenant_id: str, hub_slug: str) -> List[Page]:
        with mongo_errors("list_spoke_pages", tenant_id=tenant_id):
            pages = await self._find(
                PAGE_CONTAINER,
                Page,
                {"tenantId": tenant_id, "contentRelationships.hubPageSlug": normalize_slug(hub_slug)},
            )
        return by_spoke_priority(pages)

    async def list_sitemap_entries(self, tenant_id: str) -> List[SitemapEntry]:
        with mongo_errors("list_sitemap_entries", tenant_id=tenant_id):
            pages = await self._find(
                PAGE_CONTAINER,
                Page,
                {"tenantId": tenant_id, "isPublished": True, "includeInSitemap": True},
            )
        return sitemap_entries(pages)

    # Tenants

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        with mongo_errors("get_tenant", tenant_id=tenant_id):
            return await self._find_one(TENANT_CONTAINER, Tenant, {"tenantId": tenant_id})

    async def list_tenants(self) -> List[Tenant]:
        with mongo_errors("list_tenants"):
            tenants = await self._find(TENANT_CONTAINER, Tenant, {})
        tenants.sort(key=lambda t: t.tenant_id)
        return sorted(tenants, key=lambda t: t.created_at, reverse=True)

    async def create_tenant(self, tenant: Tenant) -> Tenant:
        tenant = base.prepare_new_tenant(tenant)
        with mongo_errors("create_tenant", tenant_id=tenant.tenant_id):
            if await self._find_one(TENANT_CONTAINER, Tenant, {"tenantId": tenant.tenant_id}):
                raise DocumentConflict(f"Tenant with ID '{tenant.tenant_id}' already exists")
            await self._collection(TENANT_CONTAINER).insert_one(tenant.to_document())
        logger.info("Tenant created", tenant_id=tenant.tenant_id, plan=tenant.plan)
        return tenant

    async def update_tenant(self, tenant_id: str, tenant: Tenant) -> Tenant:
        missing = f"Tenant '{tenant_id}' not found"
        with mongo_errors("update_tenant", tenant_id=tenant_id):
            stored = await self._find_one(TENANT_CONTAINER, Tenant, {"tenantId": tenant_id})
            if stored is None:
                raise DocumentNotFound(missing)
            replacement = base.prepare_tenant_replacement(stored, tenant)
            await self._replace(TENANT_CONTAINER, {"tenantId": tenant_id}, replacement, missing)
        logger.info("Tenant updated", tenant_id=tenant_id)
        return replacement

    async def rotate_tenant_key(self, tenant_id: str, api_key_hash: str) -> Tenant:
        missing = f"Tenant '{tenant_id}' not found"
        with mongo_errors("rotate_tenant_key", tenant_id=tenant_id):
            stored = await self._find_one(TENANT_CONTAINER, Tenant, {"tenantId": tenant_id})
            if stored is None:
                raise DocumentNotFound(missing)
            rotated = base.prepare_rotated_tenant(stored, api_key_hash)
            await self._replace(TENANT_CONTAINER, {"tenantId": tenant_id}, rotated, missing)
        return rotated

    async def delete_tenant(self, tenant_id: str) -> bool:
        with mongo_errors("delete_tenant", tenant_id=tenant_id):
            await self._delete(TENANT_CONTAINER, {"tenantId": tenant_id}, f"Tenant '{tenant_id}' not found")
        logger.info("Tenant deleted", tenant_id=tenant_id)
        return True

    # Themes

    async def get_theme(self, tenant_id: str, theme_id: str) -> Optional[Theme]:
        with mongo_errors("get_theme", tenant_id=tenant_id):
            return await self._find_one(THEME_CONTAINER, Theme, {"tenantId": tenant_id, "id": theme_id})

    async def list_themes(self, tenant_id: str) -> List[Theme]:
        with mongo_errors("list_themes", tenant_id=tenant_id):
            themes = await self._find(THEME_CONTAINER, Theme, {"tenantId": tenant_id})
        return themes_by_updated_desc(themes)

    async def get_active_theme(self, tenant_id: str) -> Optional[Theme]:
        with mongo_errors("get_active_theme", tenant_id=tenant_id):
            themes = await self._find(THEME_CONTAINER, Theme, {"tenantId": tenant_id, "isActive": True})
        themes = themes_by_updated_desc(themes)
        return themes[0] if themes else None

    async def create_theme(self, tenant_id: str, theme: Theme) -> Theme:
        theme = base.prepare_new_theme(tenant_id, theme)
        with mongo_errors("create_theme", tenant_id=tenant_id):
            await self._collection(THEME_CONTAINER).insert_one(theme.to_document())
        logger.info("Theme created", tenant_id=tenant_id, theme_id=theme.id)
        return theme

    async def update_theme(self, tenant_id: str, theme_id: str, theme: Theme) -> Theme:
        missing = f"Theme '{theme_id}' not found"
        query = {"tenantId": tenant_id, "id": theme_id}
        with mongo_errors("update_theme", tenant_id=tenant_id):
            stored = await self._find_one(THEME_CONTAINER, Theme, query)
            if stored is None:
                raise DocumentNotFound(missing)
            replacement = base.prepare_theme_replacement(stored, theme)
            await self._replace(THEME_CONTAINER, query, replacement, missing)
        return replacement

    async def delete_theme(self, tenant_id: str, theme_id: str) -> bool:
        with mongo_errors("delete_theme", tenant_id=tenant_id):
            await self._delete(
                THEME_CONTAINER,
                {"tenantId": tenant_id, "id": theme_id},
                f"Theme '{theme_id}' not found",
            )
        logger.info("Theme deleted", tenant_id=tenant_id, theme_id=theme_id)
        return True

    # Users

    async def get_user_by_email(self, email: str) -> Optional[User]:
        with mongo_errors("get_user_by_email"):
            return await self._find_one(USER_CONTAINER, User, {"email": (email or "").strip().lower()})

    async def create_user(self, user: User) -> User:
        user = base.prepare_new_user(user)
        with mongo_errors("create_user", tenant_id=user.tenant_id):
            if await self._find_one(USER_CONTAINER, User, {"email": user.email}):
                raise DocumentConflict("A user with this email already exists")
            await self._collection(USER_CONTAINER).insert_one(user.to_document())
        return user

    async def touch_last_login(self, tenant_id: str, user_id: str, when: Optional[datetime] = None) -> None:
        missing = f"User '{user_id}' not found"
        query = {"tenantId": tenant_id, "id": user_id}
        with mongo_errors("touch_last_login", tenant_id=tenant_id):
            stored = await self._find_one(USER_CONTAINER, User, query)
            if stored is None:
                raise DocumentNotFound(missing)
            stored.last_login = when or utcnow()
            await self._replace(USER_CONTAINER, query, stored, missing)

    # Forms

    async def save_form_entry(self, tenant_id: str, entry: FormEntry) -> FormEntry:
        entry = base.prepare_form_entry(tenant_id, entry)
        with mongo_errors("save_form_entry", tenant_id=tenant_id):
            await self._collection(FORM_ENTRY_CONTAINER).insert_one(entry.to_document())
        logger.info("Form entry saved", tenant_id=tenant_id, form_id=entry.form_id, entry_id=entry.id)
        return entry
