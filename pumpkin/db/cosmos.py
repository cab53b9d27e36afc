from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from azure.core.exceptions import AzureError
from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import (
    CosmosHttpResponseError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)
from pydantic import ValidationError as PydanticValidationError
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


@contextmanager
def cosmos_errors(operation: str, **context):
    """Re-signal azure-cosmos failures as storage errors."""
    try:
        yield
    except StoreError:
        raise
    except CosmosResourceNotFoundError:
        raise DocumentNotFound(f"{operation}: document not found")
    except CosmosResourceExistsError:
        raise DocumentConflict(f"{operation}: document already exists")
    except CosmosHttpResponseError as e:
        logger.error("Cosmos request failed", operation=operation, status_code=e.status_code, **context)
        raise StoreUnavailable(f"{operation} failed")
    except AzureError as e:
        logger.error("Cosmos unreachable", operation=operation, error=type(e).__name__, **context)
        raise StoreUnavailable(f"{operation} failed")
    except PydanticValidationError as e:
        logger.error("Stored document could not be decoded", operation=operation, errors=e.error_count(), **context)
        raise StoreError(f"{operation}: stored document is malformed")


class CosmosDocumentStore(DocumentStore):
    """Azure Cosmos DB store. Every container is partitioned on ``/tenantId``."""

    provider = "cosmosdb"

    def __init__(self, settings, database=None):
        self.settings = settings
        self.client: Optional[CosmosClient] = None
        self.database = database

    async def connect(self) -> None:
        if self.database is not None:
            return
        self.client = CosmosClient.from_connection_string(
            self.settings.COSMOS_CONNECTION_STRING,
            retry_total=self.settings.COSMOS_MAX_RETRY_ATTEMPTS,
            retry_backoff_max=self.settings.COSMOS_MAX_RETRY_WAIT_SECONDS,
            preferred_locations=self.settings.COSMOS_PREFERRED_REGIONS or None,
        )
        self.database = self.client.get_database_client(self.settings.COSMOS_DATABASE_NAME)
        logger.info("Cosmos DB client created", database=self.settings.COSMOS_DATABASE_NAME)

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
            self.client = None
            self.database = None

    def _container(self, name: str):
        if self.database is None:
            raise StoreUnavailable("Cosmos DB store is not connected")
        return self.database.get_container_client(name)

    async def _query(
        self,
        container: str,
        model: Type[M],
        query: str,
        parameters: Optional[Dict[str, Any]] = None,
        partition_key: Optional[str] = None,
    ) -> List[M]:
        kwargs = {}
        if partition_key is not None:
            kwargs["partition_key"] = partition_key
        items = self._container(container).query_items(
            query=query,
            parameters=[{"name": name, "value": value} for name, value in (parameters or {}).items()],
            **kwargs,
        )
        return [model.model_validate(item) async for item in items]

    async def _read(self, container: str, model: Type[M], item_id: str, partition_key: str) -> Optional[M]:
        try:
            item = await self._container(container).read_item(item=item_id, partition_key=partition_key)
        except CosmosResourceNotFoundError:
            return None
        return model.model_validate(item)

    async def _find_page(self, tenant_id: str, slug: str, published_only: bool) -> Optional[Page]:
        query = "SELECT * FROM c WHERE c.tenantId = @tenantId AND c.pageSlug = @slug"
        if published_only:
            query += " AND c.isPublished = true"
        pages = await self._query(
            PAGE_CONTAINER,
            Page,
            query,
            {"@tenantId": tenant_id, "@slug": normalize_slug(slug)},
            partition_key=tenant_id,
        )
        return pages[0] if pages else None

    # Pages

    async def get_page(self, tenant_id: str, slug: str) -> Optional[Page]:
        with cosmos_errors("get_page", tenant_id=tenant_id):
            page = await self._find_page(tenant_id, slug, published_only=True)
        if page is None:
            logger.info("Page not found", tenant_id=tenant_id, slug=normalize_slug(slug))
        return page

    async def find_page(self, tenant_id: str, slug: str) -> Optional[Page]:
        with cosmos_errors("find_page", tenant_id=tenant_id):
            return await self._find_page(tenant_id, slug, published_only=False)

    async def list_pages(self, tenant_id: str) -> List[Page]:
        with cosmos_errors("list_pages", tenant_id=tenant_id):
            pages = await self._query(
                PAGE_CONTAINER,
                Page,
                "SELECT * FROM c WHERE c.tenantId = @tenantId",
                {"@tenantId": tenant_id},
                partition_key=tenant_id,
            )
        return by_updated_desc(pages)

    async def save_page(self, tenant_id: str, page: Page) -> Page:
        page = base.prepare_new_page(tenant_id, page)
        with cosmos_errors("save_page", tenant_id=tenant_id):
            if await self._find_page(tenant_id, page.page_slug, published_only=False):
                raise DocumentConflict(f"Page with slug '{page.page_slug}' already exists")
            await self._container(PAGE_CONTAINER).create_item(body=page.to_document())
        logger.info("Page created", tenant_id=tenant_id, page_id=page.id, slug=page.page_slug)
        return page

    async def update_page(self, tenant_id: str, slug: str, page: Page) -> Page:
        with cosmos_errors("update_page", tenant_id=tenant_id):
            stored = await self._find_page(tenant_id, slug, published_only=False)
            if stored is None:
                raise DocumentNotFound(f"Page with slug '{normalize_slug(slug)}' not found")
            replacement = base.prepare_page_replacement(stored, slug, page)
            await self._container(PAGE_CONTAINER).replace_item(
                item=replacement.id, body=replacement.to_document()
            )
        logger.info(
            "Page updated",
            tenant_id=tenant_id,
            slug=replacement.page_slug,
            version=replacement.page_version,
        )
        return replacement

    async def delete_page(self, tenant_id: str, slug: str) -> bool:
        with cosmos_errors("delete_page", tenant_id=tenant_id):
            stored = await self._find_page(tenant_id, slug, published_only=False)
            if stored is None:
                raise DocumentNotFound(f"Page with slug '{normalize_slug(slug)}' not found")
            await self._container(PAGE_CONTAINER).delete_item(item=stored.id, partition_key=tenant_id)
        logger.info("Page deleted", tenant_id=tenant_id, slug=stored.page_slug)
        return True

    async def list_hub_pages(self, tenant_id: str) -> List[Page]:
        with cosmos_errors("list_hub_pages", tenant_id=tenant_id):
            pages = await self._query(
                PAGE_CONTAINER,
                Page,
                "SELECT * FROM c WHERE c.tenantId = @tenantId AND c.contentRelationships.isHub = true",
                {"@tenantId": tenant_id},
                partition_key=tenant_id,
            )
        return by_updated_desc(pages)

    async def list_spoke_pages(self, tenant_id: str, hub_slug: str) -> List[Page]:
        with cosmos_errors("list_spoke_pages", tenant_id=tenant_id):
            pages = await self._query(
                PAGE_CONTAINER,
                Page,
                "SELECT * FROM c WHERE c.tenantId = @tenantId "
                "AND c.contentRelationships.hubPageSlug = @hubPageSlug",
                {"@tenantId": tenant_id, "@hubPageSlug": normalize_slug(hub_slug)},
                partition_key=tenant_id,
            )
        return by_spoke_priority(pages)

    async def list_sitemap_entries(self, tenant_id: str) -> List[SitemapEntry]:
        with cosmos_errors("list_sitemap_entries", tenant_id=tenant_id):
            pages = await self._query(
                PAGE_CONTAINER,
                Page,
                "SELECT * FROM c WHERE c.tenantId = @tenantId "
                "AND c.isPublished = true AND c.includeInSitemap = true",
                {"@tenantId": tenant_id},
                partition_key=tenant_id,
            )
        return sitemap_entries(pages)

    # Tenants

    async def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        with cosmos_errors("get_tenant", tenant_id=tenant_id):
            return await self._read(TENANT_CONTAINER, Tenant, tenant_id, tenant_id)

    async def list_tenants(self) -> List[Tenant]:
        with cosmos_errors("list_tenants"):
            tenants = await self._query(TENANT_CONTAINER, Tenant, "SELECT * FROM c")
        tenants.sort(key=lambda t: t.tenant_id)
        return sorted(tenants, key=lambda t: t.created_at, reverse=True)

    async def create_tenant(self, tenant: Tenant) -> Tenant:
        tenant = base.prepare_new_tenant(tenant)
        with cosmos_errors("create_tenant", tenant_id=tenant.tenant_id):
            if await self._read(TENANT_CONTAINER, Tenant, tenant.id, tenant.tenant_id):
                raise DocumentConflict(f"Tenant with ID '{tenant.tenant_id}' already exists")
            await self._container(TENANT_CONTAINER).create_item(body=tenant.to_document())
        logger.info("Tenant created", tenant_id=tenant.tenant_id, plan=tenant.plan)
        return tenant

    async def update_tenant(self, tenant_id: str, tenant: Tenant) -> Tenant:
        with cosmos_errors("update_tenant", tenant_id=tenant_id):
            stored = await self._read(TENANT_CONTAINER, Tenant, tenant_id, tenant_id)
            if stored is None:
                raise DocumentNotFound(f"Tenant '{tenant_id}' not found")
            replacement = base.prepare_tenant_replacement(stored, tenant)
            await self._container(TENANT_CONTAINER).replace_item(
                item=replacement.id, body=replacement.to_document()
            )
        logger.info("Tenant updated", tenant_id=tenant_id)
        return replacement

    async def rotate_tenant_key(self, tenant_id: str, api_key_hash: str) -> Tenant:
        with cosmos_errors("rotate_tenant_key", tenant_id=tenant_id):
            stored = await self._read(TENANT_CONTAINER, Tenant, tenant_id, tenant_id)
            if stored is None:
                raise DocumentNotFound(f"Tenant '{tenant_id}' not found")
            rotated = base.prepare_rotated_tenant(stored, api_key_hash)
            await self._container(TENANT_CONTAINER).replace_item(
                item=rotated.id, body=rotated.to_document()
            )
        return rotated

    async def delete_tenant(self, tenant_id: str) -> bool:
        with cosmos_errors("delete_tenant", tenant_id=tenant_id):
            await self._container(TENANT_CONTAINER).delete_item(item=tenant_id, partition_key=tenant_id)
        logger.info("Tenant deleted", tenant_id=tenant_id)
        return True

    # Themes

    async def get_theme(self, tenant_id: str, theme_id: str) -> Optional[Theme]:
        with cosmos_errors("get_theme", tenant_id=tenant_id):
            return await self._read(THEME_CONTAINER, Theme, theme_id, tenant_id)

    async def list_themes(self, tenant_id: str) -> List[Theme]:
        with cosmos_errors("list_themes", tenant_id=tenant_id):
            themes = await self._query(
                THEME_CONTAINER,
                Theme,
                "SELECT * FROM c WHERE c.tenantId = @tenantId",
                {"@tenantId": tenant_id},
                partition_key=tenant_id,
            )
        return themes_by_updated_desc(themes)

    async def get_active_theme(self, tenant_id: str) -> Optional[Theme]:
        with cosmos_errors("get_active_theme", tenant_id=tenant_id):
            themes = await self._query(
                THEME_CONTAINER,
                Theme,
                "SELECT * FROM c WHERE c.tenantId = @tenantId AND c.isActive = true",
                {"@tenantId": tenant_id},
                partition_key=tenant_id,
            )
        themes = themes_by_updated_desc(themes)
        return themes[0] if themes else None

    async def create_theme(self, tenant_id: str, theme: Theme) -> Theme:
        theme = base.prepare_new_theme(tenant_id, theme)
        with cosmos_errors("create_theme", tenant_id=tenant_id):
            await self._container(THEME_CONTAINER).create_item(body=theme.to_document())
        logger.info("Theme created", tenant_id=tenant_id, theme_id=theme.id)
        return theme

    async def update_theme(self, tenant_id: str, theme_id: str, theme: Theme) -> Theme:
        with cosmos_errors("update_theme", tenant_id=tenant_id):
            stored = await self._read(THEME_CONTAINER, Theme, theme_id, tenant_id)
            if stored is None:
                raise DocumentNotFound(f"Theme '{theme_id}' not found")
            replacement = base.prepare_theme_replacement(stored, theme)
            await self._container(THEME_CONTAINER).replace_item(
                item=replacement.id, body=replacement.to_document()
            )
        return replacement

    async def delete_theme(self, tenant_id: str, theme_id: str) -> bool:
        with cosmos_errors("delete_theme", tenant_id=tenant_id):
            await self._container(THEME_CONTAINER).delete_item(item=theme_id, partition_key=tenant_id)
        logger.info("Theme deleted", tenant_id=tenant_id, theme_id=theme_id)
        return True

    # Users

    async def get_user_by_email(self, email: str) -> Optional[User]:
        with cosmos_errors("get_user_by_email"):
            users = await self._query(
                USER_CONTAINER,
                User,
                "SELECT * FROM c WHERE c.email = @email",
                {"@email": (email or "").strip().lower()},
            )
        return users[0] if users else None

    async def create_user(self, user: User) -> User:
        user = base.prepare_new_user(user)
        with cosmos_errors("create_user", tenant_id=user.tenant_id):
            if await self.get_user_by_email(user.email):
                raise DocumentConflict("A user with this email already exists")
            await self._container(USER_CONTAINER).create_item(body=user.to_document())
        return user

    async def touch_last_login(self, tenant_id: str, user_id: str, when: Optional[datetime] = None) -> None:
        with cosmos_errors("touch_last_login", tenant_id=tenant_id):
            stored = await self._read(USER_CONTAINER, User, user_id, tenant_id)
            if stored is None:
                raise DocumentNotFound(f"User '{user_id}' not found")
            stored.last_login = when or utcnow()
            await self._container(USER_CONTAINER).replace_item(item=stored.id, body=stored.to_document())

    # Forms

    async def save_form_entry(self, tenant_id: str, entry: FormEntry) -> FormEntry:
        entry = base.prepare_form_entry(tenant_id, entry)
        with cosmos_errors("save_form_entry", tenant_id=tenant_id):
            await self._container(FORM_ENTRY_CONTAINER).create_item(body=entry.to_document())
        logger.info("Form entry saved", tenant_id=tenant_id, form_id=entry.form_id, entry_id=entry.id)
        return entry
