from fastapi import APIRouter, Depends
from fastapi import status as http_status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.auth import services
from school_admin.auth.dependencies import get_current_user
from school_admin.auth.rbac import Action, check_permission
from school_admin.auth.schemas import (
    ChangePasswordRequest,
    CurrentUser,
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RegisterUserRequest,
    UserInfo,
)
from school_admin.db.session import get_db

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    return await services.login_user(db, payload)


@router.post("/login-oauth")
async def login_oauth(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    payload = LoginRequest(
        email=form_data.username.strip(),
        password=form_data.password,
    )
    result = await services.login_user(db, payload)
    return {
        "access_token": result.access_token,
        "token_type": "bearer",
    }


@router.post("/logout")
async def logout():
    """Tokens are stateless; the client discards its copy."""
    return {"success": True, "message": "Logged out successfully"}


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProfileResponse:
    return await services.get_profile(db, current_user.id)


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    await services.change_password(db, current_user.id, payload)
    return {"success": True, "message": "Password changed successfully"}


@router.post(
    "/register",
    response_model=UserInfo,
    status_code=http_status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission(Action.USERS_MANAGE))],
)
async def register(
    payload: RegisterUserRequest,
    db: AsyncSession = Depends(get_db),
) -> UserInfo:
    return await services.create_user(db, payload)
