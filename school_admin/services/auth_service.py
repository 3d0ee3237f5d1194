from typing import Any, Dict, Optional
from fastapi import Request, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.config import settings
from school_admin.core.errors import AuthenticationError
from school_admin.core.logging import logger
from school_admin.core.security import create_access_token, verify_password
from school_admin.models.user import User


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def get_cookie_settings(self, request: Request) -> Dict[str, Any]:
        """Cookie settings for the access token"""
        host = request.headers.get("host", "").split(":")[0]
        is_localhost = host in ["localhost", "127.0.0.1", "test", ""]
        return {
            "httponly": True,
            "secure": not is_localhost,
            "samesite": "lax",
            "path": "/",
        }

    def set_auth_cookie(self, response: Response, request: Request, access_token: str) -> None:
        response.set_cookie(
            key="access_token",
            value=f"Bearer {access_token}",
            max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            **self.get_cookie_settings(request)
        )

    def clear_auth_cookie(self, response: Response, request: Request) -> None:
        response.delete_cookie("access_token", **self.get_cookie_settings(request))

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def authenticate_user(
        self,
        email: str,
        password: str,
        response: Response,
        request: Request
    ) -> Dict[str, Any]:
        """Check the credentials, issue an access token and set it as a cookie"""
        user = await self.get_user_by_email(email)
        if not user:
            logger.warning(f"Login attempt failed: User not found for email {email}")
            raise AuthenticationError("Invalid email or password", error_code="INVALID_CREDENTIALS")

        if not verify_password(password, user.password_hash):
            logger.warning(f"Login attempt failed: Invalid password for user {email}")
            raise AuthenticationError("Invalid email or password", error_code="INVALID_CREDENTIALS")

        if not user.is_active:
            logger.warning(f"Login attempt failed: Inactive account for user {email}")
            raise AuthenticationError("Account is inactive")

        access_token = create_access_token(user.id, user.role)
        self.set_auth_cookie(response, request, access_token)
        logger.info(f"User {user.id} logged in")

        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "user": user,
        }
