from typing import Optional

from fastapi import APIRouter, Depends

from pumpkin.api.deps import get_bearer_token, get_content_service
from pumpkin.models.theme import Theme
from pumpkin.services.content_service import ContentAccessService

router = APIRouter()


@router.get("/{tenant_id}", response_model=Theme)
async def get_active_theme(
    tenant_id: str,
    api_key: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """The tenant's active theme"""
    return await service.get_active_theme(api_key, tenant_id)


@router.get("/{tenant_id}/{theme_id}", response_model=Theme)
async def get_theme(
    tenant_id: str,
    theme_id: str,
    api_key: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    return await service.get_theme(api_key, tenant_id, theme_id)
