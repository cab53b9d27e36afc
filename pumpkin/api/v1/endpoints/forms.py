from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Request, status

from pumpkin.api.deps import get_bearer_token, get_client_ip, get_content_service
from pumpkin.schemas.content import FormSubmittedResponse
from pumpkin.services.content_service import ContentAccessService

router = APIRouter()


@router.post("/{tenant_id}", response_model=FormSubmittedResponse, status_code=status.HTTP_201_CREATED)
async def submit_form(
    request: Request,
    tenant_id: str,
    entry: Any = Body(default=None),
    api_key: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    saved = await service.submit_form(
        api_key,
        tenant_id,
        entry,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent", ""),
    )
    return FormSubmittedResponse(id=saved.id)
