from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Response, status

from pumpkin.api.deps import get_bearer_token, get_content_service
from pumpkin.models.page import Page
from pumpkin.services.content_service import ContentAccessService

router = APIRouter()


@router.get("/{tenant_id}/{slug}", response_model=Page)
async def get_page(
    tenant_id: str,
    slug: str,
    api_key: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Published page by slug"""
    return await service.get_page(api_key, tenant_id, slug)


@router.post("/{tenant_id}", response_model=Page, status_code=status.HTTP_201_CREATED)
async def create_page(
    tenant_id: str,
    # Raw JSON; the service validates it after the caller is authorized
    page: Any = Body(default=None),
    api_key: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    return await service.create_page(api_key, tenant_id, page)


@router.put("/{tenant_id}/{slug}", response_model=Page)
async def update_page(
    tenant_id: str,
    slug: str,
    page: Any = Body(default=None),
    api_key: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Full replace; the slug in the body must match the path"""
    return await service.update_page(api_key, tenant_id, slug, page)


@router.delete("/{tenant_id}/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(
    tenant_id: str,
    slug: str,
    api_key: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    await service.delete_page(api_key, tenant_id, slug)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
