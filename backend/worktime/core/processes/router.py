import uuid
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.processes import service
from worktime.core.processes.models import Process
from worktime.core.processes.schemas import ProcessCreate, ProcessRead, ProcessUpdate
from worktime.core.rbac import permissions as perms
from worktime.dependencies import CurrentUser, get_current_user, get_db, require_permission

router = APIRouter(prefix="/processes", tags=["processes"])


async def _load_process(db: AsyncSession, process_id: uuid.UUID, current: CurrentUser) -> Process:
    process = await service.get_process(db, process_id)
    if not process:
        raise HTTPException(404, "Process not found")
    if not current.user.is_superadmin and process.company_id != current.company_id:
        raise HTTPException(403, "Process belongs to another company")
    return process


@router.post("/", response_model=ProcessRead, status_code=status.HTTP_201_CREATED)
async def create_process(
    data: ProcessCreate,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.PROCESS_CREATE)),
):
    company_id = data.company_id or current.company_id
    if company_id != current.company_id and not current.user.is_superadmin:
        raise HTTPException(403, "You can only create processes in your own company")
    return await service.create_process(db, company_id, data, created_by=current.user_id)


@router.get("/", response_model=list[ProcessRead])
async def list_processes(
    production_line: str | None = Query(None),
    include_inactive: bool = Query(False),
    company_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    scope = company_id if current.user.is_superadmin else current.company_id
    return await service.list_processes(db, scope, production_line, active_only=not include_inactive)


@router.get("/production-lines", response_model=list[str])
async def list_production_lines(
    company_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(get_current_user),
):
    scope = company_id if (company_id and current.user.is_superadmin) else current.company_id
    return await service.list_production_lines(db, scope)


@router.patch("/{process_id}", response_model=ProcessRead)
async def update_process(
    process_id: uuid.UUID,
    data: ProcessUpdate,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.PROCESS_MANAGE)),
):
    process = await _load_process(db, process_id, current)
    return await service.update_process(db, process, data, updated_by=current.user_id)


@router.delete("/{process_id}", response_model=ProcessRead)
async def deactivate_process(
    process_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.PROCESS_DELETE)),
):
    process = await _load_process(db, process_id, current)
    return await service.deactivate_process(db, process, updated_by=current.user_id)
