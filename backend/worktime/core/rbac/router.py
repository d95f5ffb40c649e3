import uuid
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.audit.service import client_ip
from worktime.core.rbac import permissions as perms
from worktime.core.rbac import service
from worktime.core.rbac.models import User
from worktime.core.rbac.schemas import (
    RoleCreate, RoleRead, RoleUpdate,
    UserCreate, UserUpdate, UserRead, HandoverPreview,
)
from worktime.core.reassignment.service import handover_preview
from worktime.dependencies import get_db, get_current_user, require_permission, require_superadmin, CurrentUser

router = APIRouter(tags=["users & roles"])


def _check_company(current: CurrentUser, user: User) -> None:
    if not current.user.is_superadmin and user.company_id != current.company_id:
        raise HTTPException(403, "You can only manage users of your own company")


async def _load_user(db: AsyncSession, user_id: uuid.UUID, current: CurrentUser) -> User:
    user = await service.get_user(db, user_id)
    if not user:
        raise HTTPException(404, "User not found")
    _check_company(current, user)
    return user


# ── Users ─────────────────────────────────────────────────────────────────────

@router.post("/users", response_model=UserRead, status_code=201)
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.USER_CREATE)),
):
    company_id = data.company_id or current.company_id
    if company_id != current.company_id and not current.user.is_superadmin:
        raise HTTPException(403, "You can only create users in your own company")
    if await service.get_user_by_phone(db, data.phone):
        raise HTTPException(409, "Phone number already registered")
    return await service.create_user(db, company_id, data, created_by=current.user_id)


@router.get("/users", response_model=list[UserRead])
async def list_users(
    role: str | None = Query(None),
    production_line: str | None = Query(None),
    is_active: bool | None = Query(None),
    company_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.USER_READ)),
):
    scope = company_id if current.user.is_superadmin else current.company_id
    return await service.list_users(
        db, scope, role_code=role, production_line=production_line, is_active=is_active,
    )


@router.get("/users/{user_id}", response_model=UserRead)
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    if user_id == current.user_id:
        return current.user
    if not perms.has_permission(current.user, perms.USER_READ):
        raise HTTPException(403, f"Missing permission: {perms.USER_READ}")
    return await _load_user(db, user_id, current)


@router.get("/users/{user_id}/handover", response_model=HandoverPreview)
async def preview_handover(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.USER_MANAGE)),
):
    user = await _load_user(db, user_id, current)
    return await handover_preview(db, user)


@router.patch("/users/{user_id}", response_model=UserRead)
async def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.USER_MANAGE)),
):
    user = await _load_user(db, user_id, current)
    if data.company_id is not None and not current.user.is_superadmin:
        raise HTTPException(403, "Only a superadmin can move users between companies")
    if data.phone is not None and data.phone != user.phone:
        if await service.get_user_by_phone(db, data.phone):
            raise HTTPException(409, "Phone number already registered")
    return await service.update_user(db, user, data, performed_by=current.user, ip_address=client_ip(request))


@router.delete("/users/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    request: Request,
    handover_to: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.USER_DELETE)),
):
    user = await _load_user(db, user_id, current)
    await service.delete_user(
        db, user, performed_by=current.user, handover_to=handover_to, ip_address=client_ip(request),
    )


# ── Roles ─────────────────────────────────────────────────────────────────────

@router.post("/roles", response_model=RoleRead, status_code=201)
async def create_role(data: RoleCreate, db: AsyncSession = Depends(get_db), _: None = Depends(require_superadmin)):
    if await service.get_role_by_code(db, data.code):
        raise HTTPException(409, f"Role '{data.code}' already exists")
    unknown = set(data.permissions) - perms.ALL_PERMISSIONS
    if unknown:
        raise HTTPException(400, f"Unknown permissions: {sorted(unknown)}")
    return await service.create_role(db, data)


@router.get("/roles", response_model=list[RoleRead])
async def list_roles(db: AsyncSession = Depends(get_db), _: CurrentUser = Depends(get_current_user)):
    return await service.list_roles(db)


@router.get("/permissions")
async def list_permissions(_: CurrentUser = Depends(get_current_user)):
    return {"groups": perms.PERMISSION_GROUPS, "all": sorted(perms.ALL_PERMISSIONS)}


@router.patch("/roles/{role_id}", response_model=RoleRead)
async def update_role(
    role_id: uuid.UUID,
    data: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_permission(perms.ROLE_MANAGE)),
):
    role = await service.get_role(db, role_id)
    if not role:
        raise HTTPException(404, "Role not found")
    if data.permissions is not None:
        unknown = set(data.permissions) - perms.ALL_PERMISSIONS
        if unknown:
            raise HTTPException(400, f"Unknown permissions: {sorted(unknown)}")
    return await service.update_role(db, role, data)
