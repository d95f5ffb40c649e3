import logging
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.auth.models import RefreshToken
from worktime.core.auth.security import create_access_token, generate_refresh_token, hash_password, hash_refresh_token, verify_password
from worktime.core.rbac.models import User
from worktime.settings import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class AuthResult:
    def __init__(self, access_token: str, refresh_token: str):
        self.access_token = access_token
        self.refresh_token = refresh_token


async def _issue_tokens(db: AsyncSession, user: User) -> AuthResult:
    access_token = create_access_token(user.id, user.company_id, user.role_code)
    raw_refresh, refresh_hash = generate_refresh_token()
    db.add(RefreshToken(
        company_id=user.company_id,
        user_id=user.id,
        token_hash=refresh_hash,
        expires_at=datetime.now(timezone.utc) + timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS),
    ))
    await db.flush()
    return AuthResult(access_token=access_token, refresh_token=raw_refresh)


class LocalAuthProvider:
    async def login(self, db: AsyncSession, phone: str, password: str) -> AuthResult:
        result = await db.execute(select(User).where(User.phone == phone))
        user: User | None = result.scalar_one_or_none()

        if not user or not user.hashed_password or not verify_password(password, user.hashed_password):
            logger.info("Failed login for phone %s", phone)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
        if not user.is_active:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")

        return await _issue_tokens(db, user)


_provider = LocalAuthProvider()


def get_auth_provider() -> LocalAuthProvider:
    return _provider


async def refresh_tokens(db: AsyncSession, raw_token: str) -> AuthResult:
    token_hash = hash_refresh_token(raw_token)
    result = await db.execute(select(RefreshToken).where(RefreshToken.token_hash == token_hash))
    db_token: RefreshToken | None = result.scalar_one_or_none()

    now = datetime.now(timezone.utc)
    if not db_token or db_token.revoked_at is not None or db_token.expires_at.replace(tzinfo=timezone.utc) < now:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    user = await db.get(User, db_token.user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")

    db_token.revoked_at = now
    return await _issue_tokens(db, user)


async def logout(db: AsyncSession, raw_token: str) -> None:
    token_hash = hash_refresh_token(raw_token)
    result = await db.execute(select(RefreshToken).where(RefreshToken.token_hash == token_hash))
    db_token: RefreshToken | None = result.scalar_one_or_none()
    if db_token and db_token.revoked_at is None:
        db_token.revoked_at = datetime.now(timezone.utc)
        await db.flush()


async def change_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> None:
    """Revokes every outstanding refresh token of the user."""
    if not user.hashed_password or not verify_password(current_password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")
    user.hashed_password = hash_password(new_password)
    now = datetime.now(timezone.utc)
    result = await db.execute(
        select(RefreshToken).where(RefreshToken.user_id == user.id, RefreshToken.revoked_at.is_(None))
    )
    for token in result.scalars().all():
        token.revoked_at = now
    await db.flush()

    from worktime.core.audit.service import audit
    await audit(db, company_id=user.company_id, user_id=user.id,
        action="user.change_password", resource_type="user", resource_id=str(user.id),
    )
