from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import DocumentModel, UtcDatetime, utcnow


class TenantStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ApiKeyMeta(DocumentModel):
    created_at: UtcDatetime = Field(default_factory=utcnow)
    is_active: bool = True


class Features(DocumentModel):
    forms: bool = False
    pages: bool = False
    analytics: bool = False
    can_create_tenants: bool = False
    can_delete_tenants: bool = False
    can_manage_all_content: bool = False
    can_view_all_tenants: bool = False


class TenantSettings(DocumentModel):
    theme: str = ""
    language: str = ""
    max_users: int = 0
    features: Features = Field(default_factory=Features)
    allowed_origins: List[str] = Field(default_factory=list)


class Contact(DocumentModel):
    email: str = ""
    phone: str = ""


class Billing(DocumentModel):
    cycle: str = ""
    next_invoice: Optional[UtcDatetime] = None


class Tenant(DocumentModel):
    """Isolation boundary for pages, themes and users.

    ``id`` always equals ``tenant_id``. Only a hash of the API key is ever
    stored; the plaintext leaves the service exactly once, at issue time.
    """

    id: str = ""
    tenant_id: str
    name: str = ""
    plan: str = ""
    status: TenantStatus = TenantStatus.ACTIVE
    api_key_hash: str = ""
    api_key_meta: ApiKeyMeta = Field(default_factory=ApiKeyMeta)
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)
    settings: TenantSettings = Field(default_factory=TenantSettings)
    contact: Contact = Field(default_factory=Contact)
    billing: Billing = Field(default_factory=Billing)

    @property
    def accepts_api_keys(self) -> bool:
        return self.status == TenantStatus.ACTIVE and self.api_key_meta.is_active

    def __repr__(self):
        return f"<Tenant(tenant_id='{self.tenant_id}', status='{self.status.value}')>"
