from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status

from pumpkin.api.deps import get_bearer_token, get_content_service
from pumpkin.models.page import Page
from pumpkin.schemas.content import PageListResponse
from pumpkin.services.content_service import ContentAccessService

router = APIRouter()


@router.get("", response_model=PageListResponse)
async def list_pages(
    tenant_id: Optional[str] = Query(default=None, alias="tenantId"),
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Pages of ``tenantId`` (default: the caller's tenant), newest first"""
    if not tenant_id:
        tenant_id = (await service.whoami(token)).tenant_id
    pages = await service.list_pages(token, tenant_id)
    return PageListResponse(pages=pages, count=len(pages), tenant_id=tenant_id)


@router.post("/{tenant_id}", response_model=Page, status_code=status.HTTP_201_CREATED)
async def create_page(
    tenant_id: str,
    page: Any = Body(default=None),
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    return await service.create_page_admin(token, tenant_id, page)


@router.get("/{tenant_id}/{slug}", response_model=Page)
async def get_page(
    tenant_id: str,
    slug: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Page by slug, published or not"""
    return await service.get_page_admin(token, tenant_id, slug)


@router.put("/{tenant_id}/{slug}", response_model=Page)
async def update_page(
    tenant_id: str,
    slug: str,
    page: Any = Body(default=None),
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    return await service.update_page_admin(token, tenant_id, slug, page)


@router.delete("/{tenant_id}/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(
    tenant_id: str,
    slug: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    await service.delete_page_admin(token, tenant_id, slug)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
