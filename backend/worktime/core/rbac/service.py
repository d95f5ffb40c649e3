import logging
import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.rbac.models import User, Role
from worktime.core.rbac.permissions import APPROVER_ROLES
from worktime.core.rbac.schemas import UserCreate, UserUpdate, RoleCreate, RoleUpdate
from worktime.core.auth.security import hash_password

logger = logging.getLogger(__name__)


# ── Roles ─────────────────────────────────────────────────────────────────────

async def create_role(db: AsyncSession, data: RoleCreate) -> Role:
    role = Role(**data.model_dump())
    db.add(role)
    await db.flush()
    await db.refresh(role)
    return role


async def get_role(db: AsyncSession, role_id: uuid.UUID) -> Role | None:
    return await db.get(Role, role_id)


async def get_role_by_code(db: AsyncSession, code: str) -> Role | None:
    result = await db.execute(select(Role).where(Role.code == code))
    return result.scalar_one_or_none()


async def list_roles(db: AsyncSession) -> list[Role]:
    result = await db.execute(select(Role).order_by(Role.code))
    return list(result.scalars().all())


async def update_role(db: AsyncSession, role: Role, data: RoleUpdate) -> Role:
    for field, value in data.model_dump(exclude_none=True).items():
        setattr(role, field, value)
    await db.flush()
    await db.refresh(role)
    return role


async def _require_role(db: AsyncSession, code: str) -> Role:
    from fastapi import HTTPException
    role = await get_role_by_code(db, code)
    if not role:
        raise HTTPException(400, f"Role '{code}' is not configured")
    return role


# ── Users ─────────────────────────────────────────────────────────────────────

async def create_user(
    db: AsyncSession,
    company_id: uuid.UUID,
    data: UserCreate,
    created_by: uuid.UUID | None = None,
) -> User:
    role = await _require_role(db, data.role_code)
    user = User(
        company_id=company_id,
        phone=data.phone,
        name=data.name,
        id_card=data.id_card,
        hashed_password=hash_password(data.password),
        role_id=role.id,
        production_line=data.production_line,
        is_active=data.is_active,
    )
    user.role = role
    db.add(user)
    await db.flush()

    from worktime.core.audit.service import audit
    await audit(db, company_id=company_id, user_id=created_by,
        action="user.create", resource_type="user", resource_id=str(user.id),
        detail={"role": data.role_code, "production_line": data.production_line},
    )
    return user


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_phone(db: AsyncSession, phone: str) -> User | None:
    result = await db.execute(select(User).where(User.phone == phone))
    return result.scalar_one_or_none()


async def list_users(
    db: AsyncSession,
    company_id: uuid.UUID | None = None,
    role_code: str | None = None,
    production_line: str | None = None,
    is_active: bool | None = None,
) -> list[User]:
    q = select(User)
    if company_id:
        q = q.where(User.company_id == company_id)
    if role_code:
        q = q.join(Role, User.role_id == Role.id).where(Role.code == role_code)
    if production_line:
        q = q.where(User.production_line == production_line)
    if is_active is not None:
        q = q.where(User.is_active == is_active)
    result = await db.execute(q.order_by(User.created_at, User.id))
    return list(result.scalars().all())


def _leaves_approver_seat(user: User, changes: dict, new_role: Role | None) -> str | None:
    """Name of the change that takes an approver off their current seat, if any."""
    if user.role_code not in APPROVER_ROLES:
        return None
    if new_role is not None and new_role.code != user.role_code:
        return "role change"
    if "production_line" in changes and changes["production_line"] != user.production_line:
        return "production line change"
    if changes.get("company_id") is not None and changes["company_id"] != user.company_id:
        return "company change"
    if changes.get("is_active") is False and user.is_active:
        return "deactivation"
    return None


async def update_user(
    db: AsyncSession,
    user: User,
    data: UserUpdate,
    performed_by: User | None = None,
    ip_address: str | None = None,
) -> User:
    """
    Apply a partial update. When the change takes a supervisor or section
    chief off their seat, outstanding approvals are handed over first,
    judged against the pre-change line and role.
    """
    from fastapi import HTTPException
    from worktime.core.reassignment.service import hand_over
    from worktime.core.reassignment.snapshots import refresh_pending_snapshots

    changes = data.model_dump(exclude_unset=True)
    handover_to = changes.pop("handover_to", None)
    role_code = changes.pop("role_code", None)

    if "phone" in changes and changes["phone"] != user.phone:
        existing = await get_user_by_phone(db, changes["phone"])
        if existing and existing.id != user.id:
            raise HTTPException(409, "Phone number already registered")
    if user.is_superadmin and changes.get("is_active") is False:
        raise HTTPException(400, "Superadmin accounts cannot be deactivated")

    new_role = await _require_role(db, role_code) if role_code else None
    reason = _leaves_approver_seat(user, changes, new_role)
    substitute, moved = None, 0
    if reason:
        substitute, moved = await hand_over(
            db, user, reason=reason, performed_by=performed_by, substitute_id=handover_to,
        )

    renamed = changes.get("name") not in (None, user.name)
    for field, value in changes.items():
        if field in ("phone", "name", "is_active", "company_id") and value is None:
            continue
        setattr(user, field, value)
    if new_role is not None:
        user.role_id = new_role.id
        user.role = new_role
    await db.flush()

    if renamed:
        await refresh_pending_snapshots(db, user)

    from worktime.core.audit.service import audit
    detail = {k: str(v) if isinstance(v, uuid.UUID) else v for k, v in changes.items() if k != "id_card"}
    if role_code:
        detail["role"] = role_code
    if moved:
        detail["reassigned"] = moved
        detail["substitute_id"] = str(substitute.id)
    await audit(db, company_id=user.company_id,
        user_id=performed_by.id if performed_by else None,
        action="user.update", resource_type="user", resource_id=str(user.id),
        detail=detail, ip_address=ip_address,
    )
    return user


async def delete_user(
    db: AsyncSession,
    user: User,
    performed_by: User | None = None,
    handover_to: uuid.UUID | None = None,
    ip_address: str | None = None,
) -> int:
    """
    Hard delete: hand over → snapshot names → null references → delete row.
    Runs inside the caller's transaction; any failure leaves the user intact.
    Returns how many records were reassigned.
    """
    from fastapi import HTTPException
    from worktime.core.reassignment.service import hand_over
    from worktime.core.reassignment import snapshots

    if user.is_superadmin:
        raise HTTPException(400, "Superadmin accounts cannot be deleted")
    if performed_by is not None and performed_by.id == user.id:
        raise HTTPException(400, "You cannot delete your own account")

    substitute, moved = await hand_over(
        db, user, reason="deletion", performed_by=performed_by, substitute_id=handover_to,
    )
    await snapshots.update_user_names_before_delete(db, user.id)
    await snapshots.assert_snapshots_complete(db, user.id)
    await snapshots.detach_user_references(db, user.id)

    user_id, company_id, name = user.id, user.company_id, user.name
    await db.delete(user)
    await db.flush()

    from worktime.core.audit.service import audit
    await audit(db, company_id=company_id,
        user_id=performed_by.id if performed_by else None,
        action="user.delete", resource_type="user", resource_id=str(user_id),
        detail={"name": name, "reassigned": moved,
                "substitute_id": str(substitute.id) if substitute else None},
        ip_address=ip_address,
    )
    logger.info("Deleted user %s (%s), %d records reassigned", user_id, name, moved)
    return moved
