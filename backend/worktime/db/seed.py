import asyncio
import logging
import os
import uuid

from sqlalchemy import select

from worktime.core.auth.security import hash_password
from worktime.core.companies.models import Company
from worktime.core.rbac.models import Role, User
from worktime.core.rbac.permissions import DEFAULT_ROLE_PERMISSIONS, ROLE_ADMIN
from worktime.db.session import get_session
from worktime.logging_config import setup_logging

logger = logging.getLogger(__name__)

ROLE_NAMES = {
    "employee": "Employee",
    "supervisor": "Supervisor",
    "section_chief": "Section chief",
    "admin": "Administrator",
}


async def seed() -> None:
    company_name = os.getenv("SEED_COMPANY_NAME", "Worktime")
    admin_phone = os.getenv("SEED_ADMIN_PHONE", "10000000000")
    admin_password = os.getenv("SEED_ADMIN_PASSWORD", "changeme123!")

    async with get_session() as db:
        existing = await db.execute(select(Company).where(Company.name == company_name))
        company = existing.scalar_one_or_none()

        if not company:
            company = Company(id=uuid.uuid4(), name=company_name)
            db.add(company)
            await db.flush()
            logger.info("Company created: %s (%s)", company.name, company.id)
        else:
            logger.info("Company exists: %s", company.name)

        roles: dict[str, Role] = {}
        for code, permissions in DEFAULT_ROLE_PERMISSIONS.items():
            result = await db.execute(select(Role).where(Role.code == code))
            role = result.scalar_one_or_none()
            if not role:
                role = Role(id=uuid.uuid4(), code=code, name=ROLE_NAMES[code], permissions=list(permissions))
                db.add(role)
                await db.flush()
                logger.info("Role created: %s", code)
            roles[code] = role

        existing_user = await db.execute(select(User).where(User.phone == admin_phone))
        user = existing_user.scalar_one_or_none()

        if not user:
            user = User(
                id=uuid.uuid4(),
                company_id=company.id,
                phone=admin_phone,
                name="Superadmin",
                hashed_password=hash_password(admin_password),
                role_id=roles[ROLE_ADMIN].id,
                is_superadmin=True,
            )
            db.add(user)
            await db.flush()
            logger.info("Superadmin created: %s", user.phone)
        else:
            logger.info("Superadmin exists: %s", user.phone)

    logger.info("Seed done")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())
