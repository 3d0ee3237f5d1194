from dataclasses import dataclass
from fastapi import Depends, Header, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Callable, Awaitable, Optional

from school_admin.core.database import get_db
from school_admin.core.errors import AuthenticationError, PermissionDenied, NotFoundError
from school_admin.core.security import verify_token
from school_admin.models.user import User
from school_admin.models.school import School
from school_admin.schemas.enums import UserRole

# Only used to document the bearer scheme in OpenAPI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

ADMIN_ROLES = {UserRole.SUPER_ADMIN.value, UserRole.SCHOOL_ADMIN.value}


@dataclass
class TenantContext:
    """The acting user and the school every query is scoped to"""
    user: User
    school: School

    @property
    def school_id(self) -> int:
        return self.school.id

    @property
    def is_admin(self) -> bool:
        return self.user.role in ADMIN_ROLES


def _extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        auth_header = request.cookies.get("access_token")
    if not auth_header:
        return None

    # Handle both "Bearer <token>" and a bare (possibly quoted) token
    if auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):].strip().strip('"')
    return auth_header.strip().strip('"')


async def get_current_user(
    request: Request,
    _token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    token = _extract_token(request)
    if not token:
        raise AuthenticationError("Not authenticated - No token found")

    payload = verify_token(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token subject")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise AuthenticationError("Invalid token - User not found")
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """Verify user is active"""
    if not current_user.is_active:
        raise AuthenticationError("Inactive user")
    return current_user


async def get_tenant_context(
    current_user: User = Depends(get_current_active_user),
    x_school_id: Optional[int] = Header(default=None, alias="X-School-ID"),
    db: AsyncSession = Depends(get_db)
) -> TenantContext:
    """
    Resolve the school the request acts on.

    Super admins may pick any school with the X-School-ID header; everyone
    else is bound to their own school.
    """
    if current_user.role == UserRole.SUPER_ADMIN.value and x_school_id is not None:
        school_id = x_school_id
    else:
        school_id = current_user.school_id

    if school_id is None:
        raise PermissionDenied("User is not associated with a school")

    result = await db.execute(select(School).where(School.id == school_id))
    school = result.scalar_one_or_none()
    if not school:
        raise NotFoundError(f"School with ID {school_id} not found")
    if not school.is_active:
        raise PermissionDenied("School account is inactive")

    return TenantContext(user=current_user, school=school)


def get_role_context(*roles: str) -> Callable[..., Awaitable[TenantContext]]:
    """Factory function for role-based tenant dependencies"""
    allowed = set(roles)

    async def role_dependency(
        context: TenantContext = Depends(get_tenant_context)
    ) -> TenantContext:
        if context.user.role not in allowed:
            raise PermissionDenied(
                f"User role '{context.user.role}' does not have required privileges"
            )
        return context
    return role_dependency


# Role-specific dependencies
get_admin_context = get_role_context(*ADMIN_ROLES)
