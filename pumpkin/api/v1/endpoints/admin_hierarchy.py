from typing import Optional

from fastapi import APIRouter, Depends

from pumpkin.api.deps import get_bearer_token, get_content_service
from pumpkin.models.page import ContentHierarchy
from pumpkin.schemas.content import PageListResponse
from pumpkin.services.content_service import ContentAccessService

router = APIRouter()


@router.get("/{tenant_id}", response_model=ContentHierarchy)
async def get_content_hierarchy(
    tenant_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Hubs with their spokes, orphan pages and topic clusters"""
    return await service.get_content_hierarchy(token, tenant_id)


@router.get("/{tenant_id}/hubs", response_model=PageListResponse)
async def list_hub_pages(
    tenant_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    pages = await service.list_hub_pages(token, tenant_id)
    return PageListResponse(pages=pages, count=len(pages), tenant_id=tenant_id)


@router.get("/{tenant_id}/hubs/{hub_slug}/spokes", response_model=PageListResponse)
async def list_spoke_pages(
    tenant_id: str,
    hub_slug: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Spokes under one hub, highest priority first"""
    pages = await service.list_spoke_pages(token, tenant_id, hub_slug)
    return PageListResponse(pages=pages, count=len(pages), tenant_id=tenant_id)
