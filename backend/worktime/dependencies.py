import uuid
from dataclasses import dataclass
from typing import Annotated, AsyncGenerator, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.auth.security import decode_access_token
from worktime.core.rbac.models import User
from worktime.core.rbac.permissions import has_any_permission, has_permission
from worktime.core.rbac.service import get_user
from worktime.db.session import AsyncSessionLocal

bearer = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    user: User
    user_id: uuid.UUID
    company_id: uuid.UUID


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        async with session.begin():
            yield session


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)],
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user_id = uuid.UUID(payload["sub"])

    user = await get_user(db, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    # company comes from the row, not the token: users can be moved
    return CurrentUser(user=user, user_id=user_id, company_id=user.company_id)


async def require_superadmin(
    current: CurrentUser = Depends(get_current_user),
) -> None:
    if not current.user.is_superadmin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Superadmin required")


def require_permission(permission: str) -> Callable:
    async def checker(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not has_permission(current.user, permission):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Missing permission: {permission}")
        return current
    return checker


def require_any_permission(*permissions: str) -> Callable:
    async def checker(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not has_any_permission(current.user, list(permissions)):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Requires one of: {', '.join(permissions)}")
        return current
    return checker
