from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.auth import service as auth_service
from worktime.core.auth.schemas import LoginRequest, TokenResponse, RefreshRequest, LogoutRequest, ChangePasswordRequest, PermissionsRead
from worktime.core.rbac.permissions import permissions_for
from worktime.core.rbac.schemas import UserRead
from worktime.dependencies import get_db, get_current_user, CurrentUser

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    provider = auth_service.get_auth_provider()
    result = await provider.login(db, body.phone, body.password)
    return TokenResponse(access_token=result.access_token, refresh_token=result.refresh_token)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    result = await auth_service.refresh_tokens(db, body.refresh_token)
    return TokenResponse(access_token=result.access_token, refresh_token=result.refresh_token)


@router.post("/logout", status_code=204)
async def logout(body: LogoutRequest, db: AsyncSession = Depends(get_db)):
    await auth_service.logout(db, body.refresh_token)


@router.post("/change-password", status_code=204)
async def change_password(body: ChangePasswordRequest, db: AsyncSession = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    await auth_service.change_password(db, current.user, body.current_password, body.new_password)


@router.get("/me", response_model=UserRead)
async def me(current: CurrentUser = Depends(get_current_user)):
    return current.user


@router.get("/me/permissions", response_model=PermissionsRead)
async def my_permissions(current: CurrentUser = Depends(get_current_user)):
    return PermissionsRead(
        role_code=current.user.role_code,
        is_superadmin=current.user.is_superadmin,
        permissions=sorted(permissions_for(current.user)),
    )
