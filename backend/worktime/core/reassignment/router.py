from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.rbac import permissions as perms
from worktime.core.rbac.models import User
from worktime.core.reassignment import snapshots
from worktime.core.reassignment.schemas import SnapshotRequest, SnapshotResult
from worktime.dependencies import CurrentUser, get_db, require_permission

router = APIRouter(prefix="/rpc", tags=["rpc"])


@router.post("/update_user_names_before_delete", response_model=SnapshotResult)
async def update_user_names_before_delete(
    body: SnapshotRequest,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.USER_DELETE)),
):
    user = await db.get(User, body.user_id_to_delete)
    if not user:
        raise HTTPException(404, "User not found")
    if not current.user.is_superadmin and user.company_id != current.company_id:
        raise HTTPException(403, "You can only manage users of your own company")
    updated = await snapshots.update_user_names_before_delete(db, user.id)
    return SnapshotResult(user_id=user.id, updated=updated)
