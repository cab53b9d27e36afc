from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Response, status

from pumpkin.api.deps import get_bearer_token, get_content_service
from pumpkin.models.theme import Theme
from pumpkin.schemas.content import ThemeListResponse
from pumpkin.services.content_service import ContentAccessService

router = APIRouter()


@router.get("/{tenant_id}", response_model=ThemeListResponse)
async def list_themes(
    tenant_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    themes = await service.list_themes(token, tenant_id)
    return ThemeListResponse(themes=themes, count=len(themes), tenant_id=tenant_id)


@router.post("/{tenant_id}", response_model=Theme, status_code=status.HTTP_201_CREATED)
async def create_theme(
    tenant_id: str,
    theme: Any = Body(default=None),
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Create a theme; an active one deactivates the tenant's others"""
    return await service.create_theme(token, tenant_id, theme)


# Declared before /{theme_id} so "active" is not taken for an id
@router.get("/{tenant_id}/active", response_model=Theme)
async def get_active_theme(
    tenant_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    return await service.get_active_theme_admin(token, tenant_id)


@router.get("/{tenant_id}/{theme_id}", response_model=Theme)
async def get_theme(
    tenant_id: str,
    theme_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    return await service.get_theme_admin(token, tenant_id, theme_id)


@router.put("/{tenant_id}/{theme_id}", response_model=Theme)
async def update_theme(
    tenant_id: str,
    theme_id: str,
    theme: Any = Body(default=None),
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    return await service.update_theme(token, tenant_id, theme_id, theme)


@router.delete("/{tenant_id}/{theme_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_theme(
    tenant_id: str,
    theme_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    await service.delete_theme(token, tenant_id, theme_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
