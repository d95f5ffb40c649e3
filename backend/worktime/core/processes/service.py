import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.processes.models import Process
from worktime.core.processes.schemas import ProcessCreate, ProcessUpdate


async def create_process(
    db: AsyncSession,
    company_id: uuid.UUID,
    data: ProcessCreate,
    created_by: uuid.UUID | None = None,
) -> Process:
    process = Process(company_id=company_id, **data.model_dump(exclude={"company_id"}))
    db.add(process)
    await db.flush()

    from worktime.core.audit.service import audit
    await audit(db, company_id=company_id, user_id=created_by,
        action="process.create", resource_type="process", resource_id=str(process.id),
        detail={"production_line": data.production_line, "unit_price": str(data.unit_price)},
    )
    return process


async def get_process(db: AsyncSession, process_id: uuid.UUID) -> Process | None:
    return await db.get(Process, process_id)


async def list_processes(
    db: AsyncSession,
    company_id: uuid.UUID | None = None,
    production_line: str | None = None,
    active_only: bool = True,
) -> list[Process]:
    q = select(Process)
    if company_id:
        q = q.where(Process.company_id == company_id)
    if production_line:
        q = q.where(Process.production_line == production_line)
    if active_only:
        q = q.where(Process.is_active == True)
    q = q.order_by(Process.production_line, Process.product_name, Process.product_process)
    result = await db.execute(q)
    return list(result.scalars().all())


async def list_production_lines(db: AsyncSession, company_id: uuid.UUID) -> list[str]:
    result = await db.execute(
        select(Process.production_line)
        .where(Process.company_id == company_id, Process.is_active == True)
        .distinct()
        .order_by(Process.production_line)
    )
    return list(result.scalars().all())


async def update_process(
    db: AsyncSession,
    process: Process,
    data: ProcessUpdate,
    updated_by: uuid.UUID | None = None,
) -> Process:
    # Prices already copied onto record items are not touched.
    changes = data.model_dump(exclude_none=True)
    for field, value in changes.items():
        setattr(process, field, value)
    await db.flush()

    from worktime.core.audit.service import audit
    await audit(db, company_id=process.company_id, user_id=updated_by,
        action="process.update", resource_type="process", resource_id=str(process.id),
        detail={k: str(v) for k, v in changes.items()},
    )
    return process


async def deactivate_process(db: AsyncSession, process: Process, updated_by: uuid.UUID | None = None) -> Process:
    return await update_process(db, process, ProcessUpdate(is_active=False), updated_by)
