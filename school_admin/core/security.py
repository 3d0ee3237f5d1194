# school_admin/core/security.py

from datetime import datetime, timedelta, timezone
import secrets
from typing import Dict, Optional, Any, Union
from jose import JWTError, jwt
from passlib.context import CryptContext

from school_admin.core.config import settings, get_token_expires_delta
from school_admin.core.errors import TokenError
from school_admin.core.logging import logger
from school_admin.schemas.enums import UserRole


class TokenType:
    ACCESS = "access"


pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__default_rounds=12
)


def verify_token(token: str, token_type: Optional[str] = TokenType.ACCESS) -> Dict[str, Any]:
    """
    Verify JWT token and optionally check token type
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            issuer=settings.TOKEN_ISSUER
        )
    except JWTError as e:
        logger.warning(f"Token verification failed: {str(e)}")
        raise TokenError("Could not validate credentials")

    if token_type and payload.get("type") != token_type:
        raise TokenError(f"Invalid token type. Expected {token_type}")
    if not payload.get("sub"):
        raise TokenError("Token has no subject")

    return payload


def create_token(
    data: Dict[str, Any],
    token_type: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT token with specified type and expiration"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or get_token_expires_delta())

    to_encode.update({
        "exp": expire,
        "iss": settings.TOKEN_ISSUER,
        "type": token_type,
        "jti": secrets.token_urlsafe(32)
    })

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def create_access_token(
    user_id: Union[int, str],
    role: Union[UserRole, str],
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create access token with user ID and role"""
    data = {
        "sub": str(user_id),
        "role": role.value if isinstance(role, UserRole) else role
    }
    return create_token(data, TokenType.ACCESS, expires_delta)


def get_password_hash(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    return pwd_context.verify(plain_password, hashed_password)
