"""
Tenant-scoped authorization guard
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from pumpkin.core.exceptions import AuthenticationError, AuthorizationError
from pumpkin.models.user import UserRole
from pumpkin.services.credentials import Identity

logger = structlog.get_logger()


class Capability(str, Enum):
    """Capability definitions"""
    # Page capabilities
    PAGES_READ = "pages:read"
    PAGES_WRITE = "pages:write"
    PAGES_DELETE = "pages:delete"

    # Theme capabilities
    THEMES_READ = "themes:read"
    THEMES_WRITE = "themes:write"

    # Tenant capabilities
    TENANTS_READ = "tenants:read"
    TENANTS_CREATE = "tenants:create"
    TENANTS_UPDATE = "tenants:update"
    TENANTS_DELETE = "tenants:delete"
    TENANTS_ROTATE_KEY = "tenants:rotate-key"

    # Form capabilities
    FORMS_SUBMIT = "forms:submit"


ROLE_RANK = {
    UserRole.VIEWER: 1,
    UserRole.EDITOR: 2,
    UserRole.TENANT_ADMIN: 3,
    UserRole.SUPER_ADMIN: 4,
}

# Only a super admin may use these, even against its own tenant
PRIVILEGED_CAPABILITIES = {
    Capability.TENANTS_CREATE,
    Capability.TENANTS_UPDATE,
    Capability.TENANTS_DELETE,
    Capability.TENANTS_ROTATE_KEY,
}

# Minimum role for the self-tenant capabilities
CAPABILITY_MIN_ROLE = {
    Capability.PAGES_READ: UserRole.VIEWER,
    Capability.THEMES_READ: UserRole.VIEWER,
    Capability.TENANTS_READ: UserRole.VIEWER,
    Capability.PAGES_WRITE: UserRole.EDITOR,
    Capability.PAGES_DELETE: UserRole.EDITOR,
    Capability.FORMS_SUBMIT: UserRole.EDITOR,
    Capability.THEMES_WRITE: UserRole.TENANT_ADMIN,
}


class DenyReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    MALFORMED_IDENTITY = "malformed_identity"
    SELF_DELETE = "self_delete"
    PRIVILEGED = "privileged"
    INSUFFICIENT_ROLE = "insufficient_role"
    CROSS_TENANT = "cross_tenant"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None

    def __bool__(self):
        return self.allowed


ALLOW = Decision(True)


def has_role_at_least(role: UserRole, minimum: UserRole) -> bool:
    return ROLE_RANK.get(role, 0) >= ROLE_RANK[minimum]


def decide(identity: Optional[Identity], requested_tenant: str, capability: Capability) -> Decision:
    """ALLOW or DENY ``capability`` on ``requested_tenant``.

    Rules, first match wins:
    no identity; empty tenant claim; deleting one's own tenant (even a super
    admin); super admin; own tenant (privileged capabilities denied, the rest
    need the minimum role or an explicit permission); anything else.
    """
    if identity is None:
        return Decision(False, DenyReason.UNAUTHENTICATED)

    if not identity.tenant_id:
        return Decision(False, DenyReason.MALFORMED_IDENTITY)

    if capability == Capability.TENANTS_DELETE and requested_tenant == identity.tenant_id:
        return Decision(False, DenyReason.SELF_DELETE)

    if identity.is_super_admin:
        return ALLOW

    if requested_tenant == identity.tenant_id:
        if capability in PRIVILEGED_CAPABILITIES:
            return Decision(False, DenyReason.PRIVILEGED)
        if has_role_at_least(identity.role, CAPABILITY_MIN_ROLE[capability]):
            return ALLOW
        if capability.value in identity.permissions:
            return ALLOW
        return Decision(False, DenyReason.INSUFFICIENT_ROLE)

    return Decision(False, DenyReason.CROSS_TENANT)


def require(identity: Optional[Identity], requested_tenant: str, capability: Capability) -> None:
    """Raise unless ``decide`` allows the call."""
    decision = decide(identity, requested_tenant, capability)
    if decision:
        return

    logger.warning(
        "Authorization denied",
        subject=identity.subject if identity else None,
        caller_tenant=identity.tenant_id if identity else None,
        requested_tenant=requested_tenant,
        capability=capability.value,
        reason=decision.reason.value,
    )

    if decision.reason in (DenyReason.UNAUTHENTICATED, DenyReason.MALFORMED_IDENTITY):
        raise AuthenticationError("Authentication required")
    if decision.reason == DenyReason.SELF_DELETE:
        raise AuthorizationError("A tenant cannot delete itself")
    raise AuthorizationError("Insufficient permissions")
