from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pumpkin.services.auth_service import AuthService
from pumpkin.services.content_service import ContentAccessService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Raw bearer credential, API key or session token. Validation happens in the services."""
    return credentials.credentials if credentials else None


def get_content_service(request: Request) -> ContentAccessService:
    return request.app.state.content_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else ""
