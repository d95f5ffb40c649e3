from decimal import Decimal

import pytest
from fastapi import HTTPException

from worktime.core.timesheets import service
from worktime.core.timesheets.models import TimesheetRecord
from worktime.errors import InvalidTransition


async def test_unit_price_is_copied_from_process(db, process, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    c = await make_user("C", "section_chief")
    record = await make_record(e, s, c, quantity="3")

    process.unit_price = Decimal("9.99")
    await db.flush()

    items = await service.list_items(db, record.id)
    assert items[0].unit_price == Decimal("2.50")
    assert items[0].amount == Decimal("7.50")


async def test_supervisor_corrects_quantity_on_pending(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    c = await make_user("C", "section_chief")
    record = await make_record(e, s, c, quantity="10")
    item = (await service.list_items(db, record.id))[0]

    await service.update_item_quantity(db, item.id, s, Decimal("6"))
    assert item.amount == Decimal("15.00")
    assert record.total_amount == Decimal("15.00")


async def test_employee_cannot_correct_pending(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    c = await make_user("C", "section_chief")
    record = await make_record(e, s, c)
    item = (await service.list_items(db, record.id))[0]

    with pytest.raises(HTTPException) as exc:
        await service.update_item_quantity(db, item.id, e, Decimal("1"))
    assert exc.value.status_code == 403


async def test_items_frozen_after_supervisor_approval(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    c = await make_user("C", "section_chief")
    record = await make_record(e, s, c)
    item = (await service.list_items(db, record.id))[0]
    await service.approve_record(db, record.id, s)

    with pytest.raises(InvalidTransition):
        await service.delete_item(db, item.id, s)


async def test_deleting_last_item_deletes_record(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    c = await make_user("C", "section_chief")
    record = await make_record(e, s, c)
    record_id = record.id
    item = (await service.list_items(db, record_id))[0]

    assert await service.delete_item(db, item.id, s) is None
    assert await db.get(TimesheetRecord, record_id) is None
