from dataclasses import dataclass, field
from typing import Optional, Tuple

from starlette.concurrency import run_in_threadpool
import structlog

from pumpkin.core.exceptions import AuthenticationError
from pumpkin.core.security import SecurityManager, audit_logger
from pumpkin.db.base import DocumentStore
from pumpkin.models.user import UserRole

logger = structlog.get_logger()

API_KEY_SCHEME = "api_key"
SESSION_SCHEME = "session"


@dataclass(frozen=True)
class Identity:
    """Claims for one authenticated caller."""

    subject: str
    role: UserRole
    tenant_id: str
    scheme: str
    email: str = ""
    name: str = ""
    permissions: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN


class ApiKeyValidator:
    """Content-serving scheme: a tenant API key checked against its stored hash.

    The tenant must be active and its key active; anything else fails closed.
    """

    def __init__(self, store: DocumentStore, security: SecurityManager):
        self.store = store
        self.security = security

    async def validate(self, tenant_id: Optional[str], api_key: Optional[str]) -> Identity:
        if not api_key:
            raise AuthenticationError("API key required")
        if not tenant_id:
            raise AuthenticationError("Invalid API key or tenant ID")

        tenant = await self.store.get_tenant(tenant_id)
        if tenant is None or not tenant.accepts_api_keys:
            audit_logger.log_auth_event(
                "api_key_rejected",
                tenant_id=tenant_id,
                success=False,
                details={"reason": "tenant_unavailable"},
            )
            raise AuthenticationError("Invalid API key or tenant ID")

        # bcrypt runs in a worker thread
        valid = await run_in_threadpool(self.security.verify_api_key, api_key, tenant.api_key_hash)
        if not valid:
            audit_logger.log_auth_event(
                "api_key_rejected",
                tenant_id=tenant_id,
                success=False,
                details={"reason": "hash_mismatch"},
            )
            raise AuthenticationError("Invalid API key or tenant ID")

        logger.debug("API key accepted", tenant_id=tenant_id, plan=tenant.plan)
        return Identity(
            subject=f"tenant:{tenant.tenant_id}",
            role=UserRole.EDITOR,
            tenant_id=tenant.tenant_id,
            scheme=API_KEY_SCHEME,
            name=tenant.name,
        )


class SessionTokenValidator:
    """Admin scheme: a signed session token, validated without a database read."""

    def __init__(self, security: SecurityManager):
        self.security = security

    async def validate(self, token: Optional[str]) -> Identity:
        if not token:
            raise AuthenticationError("Authentication required")

        payload = self.security.verify_token(token, "access")

        try:
            role = UserRole(payload.get("role"))
        except ValueError:
            raise AuthenticationError("Invalid token claims")

        permissions = payload.get("permissions") or []
        if not isinstance(permissions, list):
            raise AuthenticationError("Invalid token claims")

        return Identity(
            subject=str(payload["sub"]),
            role=role,
            tenant_id=str(payload.get("tenant_id") or ""),
            scheme=SESSION_SCHEME,
            email=payload.get("email") or "",
            name=payload.get("name") or "",
            permissions=tuple(str(p) for p in permissions),
        )
