import uuid
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from worktime.core.companies.models import Company
from worktime.core.companies.schemas import CompanyCreate, CompanyUpdate


async def create_company(db: AsyncSession, data: CompanyCreate) -> Company:
    company = Company(**data.model_dump())
    db.add(company)
    await db.flush()
    await db.refresh(company)
    return company


async def get_company(db: AsyncSession, company_id: uuid.UUID) -> Company | None:
    result = await db.execute(select(Company).where(Company.id == company_id, Company.is_deleted == False))
    return result.scalar_one_or_none()


async def get_company_by_name(db: AsyncSession, name: str) -> Company | None:
    result = await db.execute(select(Company).where(Company.name == name, Company.is_deleted == False))
    return result.scalar_one_or_none()


async def list_companies(db: AsyncSession, company_id: uuid.UUID | None = None) -> list[Company]:
    q = select(Company).where(Company.is_deleted == False)
    if company_id:
        q = q.where(Company.id == company_id)
    result = await db.execute(q.order_by(Company.order_index, Company.name))
    return list(result.scalars().all())


async def update_company(db: AsyncSession, company: Company, data: CompanyUpdate) -> Company:
    for field, value in data.model_dump(exclude_none=True).items():
        setattr(company, field, value)
    await db.flush()
    await db.refresh(company)
    return company


async def delete_company(db: AsyncSession, company: Company) -> None:
    company.is_deleted = True
    await db.flush()
