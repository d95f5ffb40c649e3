from pydantic import BaseModel, Field

from worktime.core.rbac.schemas import PHONE_PATTERN


class LoginRequest(BaseModel):
    phone: str = Field(..., pattern=PHONE_PATTERN)
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    refresh_token: str


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)


class PermissionsRead(BaseModel):
    role_code: str | None
    is_superadmin: bool
    permissions: list[str]
