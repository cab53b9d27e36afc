from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import base64
import secrets
import jwt
from passlib.context import CryptContext
import structlog

from pumpkin.core.config import settings
from pumpkin.core.exceptions import AuthenticationError

logger = structlog.get_logger()

# JWT settings
ALGORITHM = "HS256"


class SecurityManager:
    """Centralized security operations"""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        bcrypt_rounds: Optional[int] = None,
        access_token_expire: Optional[int] = None,
        api_key_bytes: Optional[int] = None,
    ):
        self.secret_key = secret_key or settings.SECRET_KEY
        self.algorithm = ALGORITHM
        self.access_token_expire = access_token_expire or settings.ACCESS_TOKEN_EXPIRE_MINUTES
        self.api_key_bytes = api_key_bytes or settings.API_KEY_BYTES
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=bcrypt_rounds or settings.BCRYPT_ROUNDS,
        )

    def hash_password(self, password: str) -> str:
        """Hash password using bcrypt"""
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: Optional[str]) -> bool:
        """Verify password against hash. Malformed or empty hashes never match."""
        if not plain_password or not hashed_password:
            return False
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            logger.warning("Unverifiable credential hash")
            return False

    def generate_api_key(self) -> str:
        """Random tenant API key, base64 of API_KEY_BYTES bytes (44 chars for 32)."""
        return base64.b64encode(secrets.token_bytes(self.api_key_bytes)).decode("ascii")

    def hash_api_key(self, api_key: str) -> str:
        return self.hash_password(api_key)

    def verify_api_key(self, api_key: str, api_key_hash: Optional[str]) -> bool:
        return self.verify_password(api_key, api_key_hash)

    def create_access_token(self, data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT session token"""
        to_encode = data.copy()
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire))

        to_encode.update({"exp": expire, "iat": now, "type": "access"})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """Verify and decode JWT token"""
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")

        if payload.get("type") != token_type:
            raise AuthenticationError("Invalid token type")

        return payload


class AuditLogger:
    """Security audit logging"""

    @staticmethod
    def log_auth_event(
        event_type: str,
        user_id: Optional[str] = None,
        tenant_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        success: bool = True,
        details: Optional[Dict[str, Any]] = None
    ):
        """Log authentication event"""
        logger.info(
            "Auth event",
            event_type=event_type,
            user_id=user_id,
            tenant_id=tenant_id,
            ip_address=ip_address,
            user_agent=user_agent,
            success=success,
            details=details or {}
        )


# Global instances
security = SecurityManager()
audit_logger = AuditLogger()
