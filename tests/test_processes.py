from decimal import Decimal

from worktime.core.companies import service as companies
from worktime.core.companies.schemas import CompanyCreate
from worktime.core.processes import service
from worktime.core.processes.schemas import ProcessCreate, ProcessUpdate


def _process(line, name="Bracket", price="1.00"):
    return ProcessCreate(production_line=line, product_name=name, product_process="Weld", unit_price=Decimal(price))


async def test_production_lines_are_distinct_and_active_only(db, company):
    await service.create_process(db, company.id, _process("L2"))
    await service.create_process(db, company.id, _process("L1"))
    await service.create_process(db, company.id, _process("L1", "Frame"))
    old = await service.create_process(db, company.id, _process("L9"))
    await service.deactivate_process(db, old)

    assert await service.list_production_lines(db, company.id) == ["L1", "L2"]


async def test_list_processes_scoped_by_company(db, company):
    other = await companies.create_company(db, CompanyCreate(name="Other Works"))
    await service.create_process(db, company.id, _process("L1"))
    await service.create_process(db, other.id, _process("L1"))

    mine = await service.list_processes(db, company.id)
    assert len(mine) == 1
    assert mine[0].company_id == company.id
    assert len(await service.list_processes(db)) == 2


async def test_update_process_price(db, company):
    p = await service.create_process(db, company.id, _process("L1"))
    await service.update_process(db, p, ProcessUpdate(unit_price=Decimal("3.40")))
    assert p.unit_price == Decimal("3.40")
    assert p.is_active


async def test_inactive_processes_hidden_by_default(db, company):
    p = await service.create_process(db, company.id, _process("L1"))
    await service.deactivate_process(db, p)
    assert await service.list_processes(db, company.id) == []
    assert len(await service.list_processes(db, company.id, active_only=False)) == 1
