from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from starlette.concurrency import run_in_threadpool
import structlog

from pumpkin.core.exceptions import NotFoundError
from pumpkin.core.security import SecurityManager, audit_logger
from pumpkin.db.base import DocumentStore
from pumpkin.models.base import utcnow
from pumpkin.models.form_entry import FormEntry
from pumpkin.models.page import ContentHierarchy, Page, SitemapEntry
from pumpkin.models.tenant import ApiKeyMeta, Tenant
from pumpkin.models.theme import Theme
from pumpkin.services.authorization import Capability, require
from pumpkin.services.cors import TenantCorsPolicyProvider
from pumpkin.services.credentials import ApiKeyValidator, Identity, SessionTokenValidator
from pumpkin.services.errors import parse_payload, translate_store_errors

logger = structlog.get_logger()

PagePayload = Union[Page, Dict[str, Any]]
ThemePayload = Union[Theme, Dict[str, Any]]
TenantPayload = Union[Tenant, Dict[str, Any]]
FormEntryPayload = Union[FormEntry, Dict[str, Any]]


def _claimed_tenant_id(payload: Any) -> str:
    if isinstance(payload, Tenant):
        return payload.tenant_id
    if isinstance(payload, dict):
        return str(payload.get("tenantId") or payload.get("tenant_id") or "")
    return ""


@dataclass(frozen=True)
class IssuedApiKey:
    """A tenant together with the only copy of its plaintext API key."""

    tenant: Tenant
    api_key: str


class ContentAccessService:
    """One method per use case.

    Every method validates the credential, asks the guard, validates the
    request body, calls the store and translates storage errors, in that
    order. API-key methods take the
    tenant's key; admin methods take a session token.
    """

    def __init__(
        self,
        store: DocumentStore,
        security: SecurityManager,
        cors_policy: Optional[TenantCorsPolicyProvider] = None,
    ):
        self.store = store
        self.security = security
        self.api_keys = ApiKeyValidator(store, security)
        self.sessions = SessionTokenValidator(security)
        self.cors_policy = cors_policy

    async def _api_key_caller(self, api_key: Optional[str], tenant_id: str, capability: Capability) -> Identity:
        identity = await self.api_keys.validate(tenant_id, api_key)
        require(identity, tenant_id, capability)
        return identity

    async def _session_caller(self, token: Optional[str], tenant_id: str, capability: Capability) -> Identity:
        identity = await self.sessions.validate(token)
        require(identity, tenant_id, capability)
        return identity

    async def _issue_api_key(self):
        api_key = self.security.generate_api_key()
        api_key_hash = await run_in_threadpool(self.security.hash_api_key, api_key)
        return api_key, api_key_hash

    async def _deactivate_other_themes(self, tenant_id: str, active_theme_id: str) -> None:
        # Not atomic: two concurrent activations can both stay active
        for theme in await self.store.list_themes(tenant_id):
            if theme.is_active and theme.id != active_theme_id:
                await self.store.update_theme(
                    tenant_id, theme.id, theme.model_copy(update={"is_active": False})
                )
                logger.info("Theme deactivated", tenant_id=tenant_id, theme_id=theme.id)

    async def _forget_cors_policy(self, tenant_id: str) -> None:
        if self.cors_policy is not None:
            await self.cors_policy.invalidate(tenant_id)

    # Content-serving surface (API key)

    async def get_page(self, api_key: Optional[str], tenant_id: str, slug: str) -> Page:
        with translate_store_errors():
            await self._api_key_caller(api_key, tenant_id, Capability.PAGES_READ)
            page = await self.store.get_page(tenant_id, slug)
        if page is None:
            raise NotFoundError("Page not found")
        return page

    async def create_page(self, api_key: Optional[str], tenant_id: str, page: PagePayload) -> Page:
        with translate_store_errors():
            await self._api_key_caller(api_key, tenant_id, Capability.PAGES_WRITE)
            page = parse_payload(Page, page)
            return await self.store.save_page(tenant_id, page)

    async def update_page(self, api_key: Optional[str], tenant_id: str, slug: str, page: PagePayload) -> Page:
        with translate_store_errors():
            await self._api_key_caller(api_key, tenant_id, Capability.PAGES_WRITE)
            page = parse_payload(Page, page)
            return await self.store.update_page(tenant_id, slug, page)

    async def delete_page(self, api_key: Optional[str], tenant_id: str, slug: str) -> bool:
        with translate_store_errors():
            await self._api_key_caller(api_key, tenant_id, Capability.PAGES_DELETE)
            return await self.store.delete_page(tenant_id, slug)

    async def get_active_theme(self, api_key: Optional[str], tenant_id: str) -> Theme:
        with translate_store_errors():
            await self._api_key_caller(api_key, tenant_id, Capability.THEMES_READ)
            theme = await self.store.get_active_theme(tenant_id)
        if theme is None:
            raise NotFoundError("No active theme")
        return theme

    async def get_theme(self, api_key: Optional[str], tenant_id: str, theme_id: str) -> Theme:
        with translate_store_errors():
            await self._api_key_caller(api_key, tenant_id, Capability.THEMES_READ)
            theme = await self.store.get_theme(tenant_id, theme_id)
        if theme is None:
            raise NotFoundError("Theme not found")
        return theme

    async def list_sitemap(self, api_key: Optional[str], tenant_id: str) -> List[SitemapEntry]:
        with translate_store_errors():
            await self._api_key_caller(api_key, tenant_id, Capability.PAGES_READ)
            return await self.store.list_sitemap_entries(tenant_id)

    async def submit_form(
        self,
        api_key: Optional[str],
        tenant_id: str,
        entry: FormEntryPayload,
        ip_address: str = "",
        user_agent: str = "",
    ) -> FormEntry:
        with translate_store_errors():
            await self._api_key_caller(api_key, tenant_id, Capability.FORMS_SUBMIT)
            entry = parse_payload(FormEntry, entry)
            entry = entry.model_copy(update={
                "submitted_at": utcnow(),
                "ip_address": ip_address,
                "user_agent": user_agent,
            })
            return await self.store.save_form_entry(tenant_id, entry)

    # Admin surface (session token)

    async def whoami(self, token: Optional[str]) -> Identity:
        identity = await self.sessions.validate(token)
        # Every caller may read its own claims
        require(identity, identity.tenant_id, Capability.TENANTS_READ)
        return identity

    async def list_tenants(self, token: Optional[str]) -> List[Tenant]:
        with translate_store_errors():
            identity = await self.sessions.validate(token)
            require(identity, identity.tenant_id, Capability.TENANTS_READ)
            return await self.store.list_tenants_visible_to(identity)

    async def get_tenant(self, token: Optional[str], tenant_id: str) -> Tenant:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.TENANTS_READ)
            tenant = await self.store.get_tenant(tenant_id)
        if tenant is None:
            raise NotFoundError(f"Tenant '{tenant_id}' not found")
        return tenant

    async def create_tenant(self, token: Optional[str], tenant: TenantPayload) -> IssuedApiKey:
        with translate_store_errors():
            identity = await self._session_caller(token, _claimed_tenant_id(tenant), Capability.TENANTS_CREATE)
            tenant = parse_payload(Tenant, tenant)
            api_key, api_key_hash = await self._issue_api_key()
            created = await self.store.create_tenant(tenant.model_copy(update={
                "api_key_hash": api_key_hash,
                "api_key_meta": ApiKeyMeta(created_at=utcnow(), is_active=True),
            }))
        audit_logger.log_auth_event(
            "tenant_created",
            user_id=identity.subject,
            tenant_id=created.tenant_id,
            details={"plan": created.plan},
        )
        return IssuedApiKey(tenant=created, api_key=api_key)

    async def update_tenant(self, token: Optional[str], tenant_id: str, tenant: TenantPayload) -> Tenant:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.TENANTS_UPDATE)
            tenant = parse_payload(Tenant, tenant)
            updated = await self.store.update_tenant(tenant_id, tenant)
        await self._forget_cors_policy(tenant_id)
        return updated

    async def delete_tenant(self, token: Optional[str], tenant_id: str) -> bool:
        with translate_store_errors():
            identity = await self._session_caller(token, tenant_id, Capability.TENANTS_DELETE)
            deleted = await self.store.delete_tenant(tenant_id)
        await self._forget_cors_policy(tenant_id)
        audit_logger.log_auth_event("tenant_deleted", user_id=identity.subject, tenant_id=tenant_id)
        return deleted

    async def regenerate_api_key(self, token: Optional[str], tenant_id: str) -> IssuedApiKey:
        with translate_store_errors():
            identity = await self._session_caller(token, tenant_id, Capability.TENANTS_ROTATE_KEY)
            api_key, api_key_hash = await self._issue_api_key()
            tenant = await self.store.rotate_tenant_key(tenant_id, api_key_hash)
        audit_logger.log_auth_event("api_key_rotated", user_id=identity.subject, tenant_id=tenant_id)
        return IssuedApiKey(tenant=tenant, api_key=api_key)

    async def list_pages(self, token: Optional[str], tenant_id: Optional[str] = None) -> List[Page]:
        with translate_store_errors():
            identity = await self.sessions.validate(token)
            tenant_id = tenant_id or identity.tenant_id
            require(identity, tenant_id, Capability.PAGES_READ)
            return await self.store.list_pages(tenant_id)

    async def get_page_admin(self, token: Optional[str], tenant_id: str, slug: str) -> Page:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.PAGES_READ)
            page = await self.store.find_page(tenant_id, slug)
        if page is None:
            raise NotFoundError("Page not found")
        return page

    async def create_page_admin(self, token: Optional[str], tenant_id: str, page: PagePayload) -> Page:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.PAGES_WRITE)
            page = parse_payload(Page, page)
            return await self.store.save_page(tenant_id, page)

    async def update_page_admin(self, token: Optional[str], tenant_id: str, slug: str, page: PagePayload) -> Page:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.PAGES_WRITE)
            page = parse_payload(Page, page)
            return await self.store.update_page(tenant_id, slug, page)

    async def delete_page_admin(self, token: Optional[str], tenant_id: str, slug: str) -> bool:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.PAGES_DELETE)
            return await self.store.delete_page(tenant_id, slug)

    async def list_hub_pages(self, token: Optional[str], tenant_id: str) -> List[Page]:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.PAGES_READ)
            return await self.store.list_hub_pages(tenant_id)

    async def list_spoke_pages(self, token: Optional[str], tenant_id: str, hub_slug: str) -> List[Page]:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.PAGES_READ)
            return await self.store.list_spoke_pages(tenant_id, hub_slug)

    async def get_content_hierarchy(self, token: Optional[str], tenant_id: str) -> ContentHierarchy:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.PAGES_READ)
            return await self.store.get_content_hierarchy(tenant_id)

    async def list_themes(self, token: Optional[str], tenant_id: str) -> List[Theme]:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.THEMES_READ)
            return await self.store.list_themes(tenant_id)

    async def get_theme_admin(self, token: Optional[str], tenant_id: str, theme_id: str) -> Theme:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.THEMES_READ)
            theme = await self.store.get_theme(tenant_id, theme_id)
        if theme is None:
            raise NotFoundError("Theme not found")
        return theme

    async def get_active_theme_admin(self, token: Optional[str], tenant_id: str) -> Theme:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.THEMES_READ)
            theme = await self.store.get_active_theme(tenant_id)
        if theme is None:
            raise NotFoundError("No active theme")
        return theme

    async def create_theme(self, token: Optional[str], tenant_id: str, theme: ThemePayload) -> Theme:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.THEMES_WRITE)
            theme = parse_payload(Theme, theme)
            created = await self.store.create_theme(tenant_id, theme)
            if created.is_active:
                await self._deactivate_other_themes(tenant_id, created.id)
        return created

    async def update_theme(self, token: Optional[str], tenant_id: str, theme_id: str, theme: ThemePayload) -> Theme:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.THEMES_WRITE)
            theme = parse_payload(Theme, theme)
            updated = await self.store.update_theme(tenant_id, theme_id, theme)
            if updated.is_active:
                await self._deactivate_other_themes(tenant_id, updated.id)
        return updated

    async def delete_theme(self, token: Optional[str], tenant_id: str, theme_id: str) -> bool:
        with translate_store_errors():
            await self._session_caller(token, tenant_id, Capability.THEMES_WRITE)
            return await self.store.delete_theme(tenant_id, theme_id)
