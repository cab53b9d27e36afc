from typing import List, Optional

from fastapi import APIRouter, Depends

from pumpkin.api.deps import get_bearer_token, get_content_service
from pumpkin.models.page import SitemapEntry
from pumpkin.services.content_service import ContentAccessService

router = APIRouter()


@router.get("/{tenant_id}", response_model=List[SitemapEntry])
async def get_sitemap(
    tenant_id: str,
    api_key: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Published, sitemap-enabled pages with their last modification time"""
    return await service.list_sitemap(api_key, tenant_id)
