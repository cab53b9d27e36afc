from typing import List

from pumpkin.models.tenant import Tenant
from pumpkin.schemas.base import ApiSchema


class TenantListResponse(ApiSchema):
    tenants: List[Tenant]
    count: int


class IssuedApiKeyResponse(ApiSchema):
    """Creation and rotation response. ``api_key`` is never shown again."""

    tenant: Tenant
    api_key: str


class TenantDeletedResponse(ApiSchema):
    message: str
    tenant_id: str
