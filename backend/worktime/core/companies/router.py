import uuid
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.companies import service
from worktime.core.companies.schemas import CompanyCreate, CompanyRead, CompanyUpdate
from worktime.core.rbac import permissions as perms
from worktime.dependencies import CurrentUser, get_current_user, get_db, require_permission, require_superadmin

router = APIRouter(prefix="/companies", tags=["companies"])


@router.post("/", response_model=CompanyRead, status_code=status.HTTP_201_CREATED)
async def create_company(data: CompanyCreate, db: AsyncSession = Depends(get_db), _: None = Depends(require_superadmin)):
    if await service.get_company_by_name(db, data.name):
        raise HTTPException(status_code=409, detail="Company name already in use")
    return await service.create_company(db, data)


@router.get("/", response_model=list[CompanyRead])
async def list_companies(db: AsyncSession = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    # Only superadmins see other companies
    scope = None if current.user.is_superadmin else current.company_id
    return await service.list_companies(db, scope)


@router.get("/{company_id}", response_model=CompanyRead)
async def get_company(company_id: uuid.UUID, db: AsyncSession = Depends(get_db), current: CurrentUser = Depends(get_current_user)):
    if not current.user.is_superadmin and company_id != current.company_id:
        raise HTTPException(status_code=403, detail="You can only view your own company")
    company = await service.get_company(db, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.patch("/{company_id}", response_model=CompanyRead)
async def update_company(
    company_id: uuid.UUID,
    data: CompanyUpdate,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(require_permission(perms.COMPANY_MANAGE)),
):
    if not current.user.is_superadmin and company_id != current.company_id:
        raise HTTPException(status_code=403, detail="You can only manage your own company")
    company = await service.get_company(db, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return await service.update_company(db, company, data)


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(company_id: uuid.UUID, db: AsyncSession = Depends(get_db), _: None = Depends(require_superadmin)):
    company = await service.get_company(db, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    await service.delete_company(db, company)
