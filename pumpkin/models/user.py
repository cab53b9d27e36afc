from enum import Enum
from typing import List, Optional
import uuid

from pydantic import Field

from .base import DocumentModel, UtcDatetime, utcnow


class UserRole(str, Enum):
    SUPER_ADMIN = "SuperAdmin"
    TENANT_ADMIN = "TenantAdmin"
    EDITOR = "Editor"
    VIEWER = "Viewer"


class User(DocumentModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str
    email: str
    username: str
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: UserRole = UserRole.VIEWER
    is_active: bool = True
    created_date: UtcDatetime = Field(default_factory=utcnow)
    last_login: Optional[UtcDatetime] = None
    permissions: List[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        full = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full or self.username

    def __repr__(self):
        return f"<User(email='{self.email}', tenant_id='{self.tenant_id}', role='{self.role.value}')>"
