from typing import List, Optional

import structlog

from pumpkin.db.base import DocumentStore
from pumpkin.db.errors import StoreError

logger = structlog.get_logger()

CACHE_PREFIX = "tenant_cors"


def normalize_origin(origin: str) -> str:
    return origin.strip().rstrip("/").lower()


class TenantCorsPolicyProvider:
    """Resolves a tenant's allowed cross-origin hosts.

    The list comes from the tenant document and is cached for ``ttl``
    seconds. An unknown tenant or an empty list means no cross-origin access.
    """

    def __init__(self, store: DocumentStore, cache, ttl: int = 1800):
        self.store = store
        self.cache = cache
        self.ttl = ttl

    @staticmethod
    def cache_key(tenant_id: str) -> str:
        return f"{CACHE_PREFIX}:{tenant_id}"

    async def get_allowed_origins(self, tenant_id: Optional[str]) -> List[str]:
        if not tenant_id:
            return []

        key = self.cache_key(tenant_id)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        try:
            tenant = await self.store.get_tenant(tenant_id)
        except StoreError as e:
            logger.warning("CORS policy lookup failed", tenant_id=tenant_id, error=e.message)
            return []

        if tenant is None:
            logger.info("No CORS policy for unknown tenant", tenant_id=tenant_id)
            origins = []
        else:
            origins = [normalize_origin(o) for o in tenant.settings.allowed_origins if o.strip()]

        await self.cache.set(key, origins, expire=self.ttl)
        return origins

    async def is_origin_allowed(self, tenant_id: Optional[str], origin: Optional[str]) -> bool:
        if not origin:
            return False
        return normalize_origin(origin) in await self.get_allowed_origins(tenant_id)

    async def invalidate(self, tenant_id: str) -> None:
        await self.cache.delete(self.cache_key(tenant_id))
