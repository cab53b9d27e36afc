from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from pumpkin.schemas.base import ApiSchema


class LoginRequest(ApiSchema):
    email: EmailStr
    password: str = Field(min_length=1)


class UserInfo(ApiSchema):
    id: str
    tenant_id: str
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str
    permissions: List[str] = Field(default_factory=list)


class LoginResponse(ApiSchema):
    token: str
    user: UserInfo
    expires_at: datetime


class VerifyResponse(ApiSchema):
    valid: bool = True
    user_id: str
    email: str
    name: str
    role: str
    tenant_id: str
    permissions: List[str] = Field(default_factory=list)


class MessageResponse(ApiSchema):
    message: str
