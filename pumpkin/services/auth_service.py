from datetime import timedelta
from typing import Optional

from starlette.concurrency import run_in_threadpool
import structlog

from pumpkin.core.exceptions import AuthenticationError
from pumpkin.core.security import SecurityManager, audit_logger
from pumpkin.db.base import DocumentStore
from pumpkin.models.base import utcnow
from pumpkin.models.user import User
from pumpkin.schemas.auth import LoginResponse, UserInfo
from pumpkin.services.errors import translate_store_errors

logger = structlog.get_logger()


class AuthService:
    """Admin login: email and password in, signed session token out."""

    def __init__(self, store: DocumentStore, security: SecurityManager):
        self.store = store
        self.security = security

    async def authenticate_user(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> User:
        """Authenticate user, failing closed on any mismatch"""
        email = (email or "").strip().lower()

        with translate_store_errors():
            user = await self.store.get_user_by_email(email)

        if not user:
            audit_logger.log_auth_event(
                "login_failed",
                ip_address=ip_address,
                user_agent=user_agent,
                success=False,
                details={"reason": "user_not_found"}
            )
            raise AuthenticationError("Invalid credentials")

        if not user.is_active:
            audit_logger.log_auth_event(
                "login_blocked",
                user_id=user.id,
                tenant_id=user.tenant_id,
                ip_address=ip_address,
                user_agent=user_agent,
                success=False,
                details={"reason": "account_inactive"}
            )
            raise AuthenticationError("Invalid credentials")

        if not await run_in_threadpool(self.security.verify_password, password, user.password_hash):
            audit_logger.log_auth_event(
                "login_failed",
                user_id=user.id,
                tenant_id=user.tenant_id,
                ip_address=ip_address,
                user_agent=user_agent,
                success=False,
                details={"reason": "invalid_password"}
            )
            raise AuthenticationError("Invalid credentials")

        audit_logger.log_auth_event(
            "login_success",
            user_id=user.id,
            tenant_id=user.tenant_id,
            ip_address=ip_address,
            user_agent=user_agent,
            success=True
        )
        return user

    def create_token(self, user: User):
        """Session token plus its expiry"""
        token_data = {
            "sub": user.id,
            "email": user.email,
            "name": user.display_name,
            "role": user.role.value,
            "tenant_id": user.tenant_id,
            "permissions": list(user.permissions),
        }
        expires_delta = timedelta(minutes=self.security.access_token_expire)
        expires_at = utcnow() + expires_delta
        return self.security.create_access_token(token_data, expires_delta), expires_at

    async def login(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> LoginResponse:
        user = await self.authenticate_user(email, password, ip_address, user_agent)

        now = utcnow()
        with translate_store_errors():
            await self.store.touch_last_login(user.tenant_id, user.id, now)

        token, expires_at = self.create_token(user)
        return LoginResponse(
            token=token,
            user=UserInfo(
                id=user.id,
                tenant_id=user.tenant_id,
                email=user.email,
                username=user.username,
                first_name=user.first_name,
                last_name=user.last_name,
                role=user.role.value,
                permissions=list(user.permissions),
            ),
            expires_at=expires_at,
        )
