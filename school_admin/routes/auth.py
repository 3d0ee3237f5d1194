from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.database import get_db
from school_admin.core.dependencies import get_current_active_user
from school_admin.models import User
from school_admin.schemas.auth import LoginRequest, LoginResponse, UserResponse
from school_admin.schemas.common import MessageResponse
from school_admin.services.auth_service import AuthService

router = APIRouter(tags=["Authentication"])


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db=db)


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
):
    """Exchange email and password for an access token"""
    return await auth_service.authenticate_user(
        credentials.email, credentials.password, response, request
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_active_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    auth_service.clear_auth_cookie(response, request)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_active_user)):
    """Get details of currently authenticated user."""
    return current_user
