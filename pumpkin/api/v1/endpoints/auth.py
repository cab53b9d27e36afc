from typing import Optional

from fastapi import APIRouter, Depends, Request

from pumpkin.api.deps import get_auth_service, get_bearer_token, get_client_ip, get_content_service
from pumpkin.core.security import audit_logger
from pumpkin.schemas.auth import LoginRequest, LoginResponse, MessageResponse, VerifyResponse
from pumpkin.services.auth_service import AuthService
from pumpkin.services.content_service import ContentAccessService

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Authenticate user and return a session token"""
    return await auth_service.login(
        login_data.email,
        login_data.password,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent", ""),
    )


@router.get("/verify", response_model=VerifyResponse)
async def verify(
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Validate the session token and echo its claims"""
    identity = await service.whoami(token)
    return VerifyResponse(
        user_id=identity.subject,
        email=identity.email,
        name=identity.name,
        role=identity.role.value,
        tenant_id=identity.tenant_id,
        permissions=list(identity.permissions),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    token: Optional[str] = Depends(get_bearer_token),
    service: ContentAccessService = Depends(get_content_service),
):
    """Session tokens are stateless; the client discards its copy"""
    identity = await service.whoami(token)
    audit_logger.log_auth_event(
        "logout",
        user_id=identity.subject,
        tenant_id=identity.tenant_id,
        ip_address=get_client_ip(request),
    )
    return MessageResponse(message="Logged out")
