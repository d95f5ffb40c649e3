"""
Redundant-name snapshots.

Records and history rows carry the display names of the people they point
at, so they still read correctly once a user row is gone. Deleting a user
always goes: hand over → snapshot names → null the references → delete.
"""
import logging
import uuid

from fastapi import HTTPException
from sqlalchemy import func, inspect, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from worktime.core.rbac.models import User
from worktime.core.timesheets.models import ApprovalHistory, TimesheetRecord
from worktime.errors import NameSnapshotMissing

logger = logging.getLogger(__name__)

# (model, fk column, name column)
SNAPSHOT_COLUMNS = (
    (TimesheetRecord, "user_id", "user_name"),
    (TimesheetRecord, "supervisor_id", "supervisor_name"),
    (TimesheetRecord, "section_chief_id", "section_chief_name"),
    (ApprovalHistory, "approver_id", "approver_name"),
    (ApprovalHistory, "previous_approver_id", "previous_approver_name"),
    (ApprovalHistory, "new_approver_id", "new_approver_name"),
)

# Rename propagates only while the person has not acted on the record yet.
RENAMEABLE_STATUSES = {
    "user_name": ("draft",),
    "supervisor_name": ("draft", "pending"),
    "section_chief_name": ("draft", "pending", "approved"),
}


def _sync_loaded(db: AsyncSession, model, fk_attr: str, user_id: uuid.UUID, attr: str, value, when=None) -> None:
    """
    Mirror a bulk UPDATE onto instances already in the identity map.
    Only loaded attributes are read, so nothing lazy-loads.
    """
    for obj in list(db.identity_map.values()):
        if not isinstance(obj, model):
            continue
        loaded = inspect(obj).dict
        if loaded.get(fk_attr) != user_id or (when is not None and not when(loaded)):
            continue
        set_committed_value(obj, attr, value)


async def update_user_names_before_delete(db: AsyncSession, user_id_to_delete: uuid.UUID) -> dict[str, int]:
    """
    Fill every empty name snapshot that still references the user.
    Existing snapshots are left alone. Returns rows touched per column.
    """
    user = await db.get(User, user_id_to_delete)
    if user is None:
        raise HTTPException(404, "User not found")

    touched: dict[str, int] = {}
    for model, fk_attr, name_attr in SNAPSHOT_COLUMNS:
        result = await db.execute(
            update(model)
            .where(getattr(model, fk_attr) == user.id, getattr(model, name_attr).is_(None))
            .values({name_attr: user.name})
            .execution_options(synchronize_session=False)
        )
        _sync_loaded(db, model, fk_attr, user.id, name_attr, user.name,
                     when=lambda loaded, attr=name_attr: attr in loaded and loaded[attr] is None)
        touched[f"{model.__tablename__}.{name_attr}"] = result.rowcount or 0
    await db.flush()
    return touched


async def assert_snapshots_complete(db: AsyncSession, user_id: uuid.UUID) -> None:
    missing: list[str] = []
    for model, fk_attr, name_attr in SNAPSHOT_COLUMNS:
        count = await db.scalar(
            select(func.count())
            .select_from(model)
            .where(getattr(model, fk_attr) == user_id, getattr(model, name_attr).is_(None))
        )
        if count:
            missing.append(f"{model.__tablename__}.{name_attr}")
    if missing:
        logger.error("Snapshot incomplete for user %s: %s", user_id, missing)
        raise NameSnapshotMissing(user_id, missing)


async def detach_user_references(db: AsyncSession, user_id: uuid.UUID) -> None:
    for model, fk_attr, _ in SNAPSHOT_COLUMNS:
        await db.execute(
            update(model)
            .where(getattr(model, fk_attr) == user_id)
            .values({fk_attr: None})
            .execution_options(synchronize_session=False)
        )
        _sync_loaded(db, model, fk_attr, user_id, fk_attr, None)
    await db.flush()


async def refresh_pending_snapshots(db: AsyncSession, user: User) -> int:
    """After a rename, update snapshots on records the user has not acted on."""
    total = 0
    for model, fk_attr, name_attr in SNAPSHOT_COLUMNS[:3]:
        result = await db.execute(
            update(model)
            .where(
                getattr(model, fk_attr) == user.id,
                model.status.in_(RENAMEABLE_STATUSES[name_attr]),
            )
            .values({name_attr: user.name})
            .execution_options(synchronize_session=False)
        )
        statuses = RENAMEABLE_STATUSES[name_attr]
        _sync_loaded(db, model, fk_attr, user.id, name_attr, user.name,
                     when=lambda loaded, statuses=statuses: loaded.get("status") in statuses)
        total += result.rowcount or 0
    await db.flush()
    return total
