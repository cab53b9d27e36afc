from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, status

from pumpkin.api.deps import get_bearer_token, get_content_service
from pumpkin.models.tenant import Tenant
from pumpkin.schemas.tenants import IssuedApiKeyResponse, TenantDeletedResponse, TenantListResponse
from pumpkin.services.content_service import ContentAccessService

router = APIRouter()


@router.get("", response_model=TenantListResponse)
async def list_tenants(
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """All tenants for a super admin, otherwise the caller's own"""
    tenants = await service.list_tenants(token)
    return TenantListResponse(tenants=tenants, count=len(tenants))


@router.post("", response_model=IssuedApiKeyResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant: Any = Body(default=None),
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Create a tenant. The response carries the only copy of its API key."""
    issued = await service.create_tenant(token, tenant)
    return IssuedApiKeyResponse(tenant=issued.tenant, api_key=issued.api_key)


@router.get("/{tenant_id}", response_model=Tenant)
async def get_tenant(
    tenant_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    return await service.get_tenant(token, tenant_id)


@router.put("/{tenant_id}", response_model=Tenant)
async def update_tenant(
    tenant_id: str,
    tenant: Any = Body(default=None),
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    return await service.update_tenant(token, tenant_id, tenant)


@router.delete("/{tenant_id}", response_model=TenantDeletedResponse)
async def delete_tenant(
    tenant_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    await service.delete_tenant(token, tenant_id)
    return TenantDeletedResponse(message="Tenant deleted", tenant_id=tenant_id)


@router.post("/{tenant_id}/regenerate-api-key", response_model=IssuedApiKeyResponse)
async def regenerate_api_key(
    tenant_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Replace the tenant's API key; the old key stops working immediately"""
    issued = await service.regenerate_api_key(token, tenant_id)
    return IssuedApiKeyResponse(tenant=issued.tenant, api_key=issued.api_key)
