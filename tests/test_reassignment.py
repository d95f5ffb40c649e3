from datetime import datetime, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy import select

from worktime.core.rbac import service as users
from worktime.core.rbac.models import User
from worktime.core.rbac.schemas import UserUpdate
from worktime.core.reassignment import service as resolver
from worktime.core.timesheets import service as timesheets
from worktime.core.timesheets.models import ApprovalHistory
from worktime.errors import NoSubstituteAvailable


async def _reassigned(db, record_ids):
    result = await db.execute(
        select(ApprovalHistory).where(
            ApprovalHistory.timesheet_record_id.in_(record_ids),
            ApprovalHistory.action == "reassigned",
        )
    )
    return list(result.scalars().all())


async def test_sole_supervisor_delete_refused_then_succeeds_with_peer(db, make_user, make_record):
    e = await make_user("E")
    s2 = await make_user("S2", "supervisor")
    c = await make_user("C", "section_chief")
    records = [await make_record(e, s2, c) for _ in range(3)]

    with pytest.raises(NoSubstituteAvailable) as exc:
        await users.delete_user(db, s2)
    assert exc.value.pending_count == 3
    assert exc.value.status_code == 409
    assert len(exc.value.detail["record_ids"]) == 3
    assert exc.value.detail["employees"] == ["E"]
    assert await db.get(User, s2.id) is not None
    assert all(r.supervisor_id == s2.id for r in records)

    s3 = await make_user("S3", "supervisor")
    moved = await users.delete_user(db, s2)

    assert moved == 3
    assert await db.get(User, s2.id) is None
    assert all(r.supervisor_id == s3.id and r.supervisor_name == "S3" for r in records)
    entries = await _reassigned(db, [r.id for r in records])
    assert len(entries) == 3
    assert {(h.previous_approver_name, h.new_approver_name) for h in entries} == {("S2", "S3")}
    # the deleted user's id is gone from history, the name stays
    assert all(h.previous_approver_id is None for h in entries)


async def test_substitute_must_share_line(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor", line="L1")
    await make_user("Other line", "supervisor", line="L2")
    c = await make_user("C", "section_chief")
    await make_record(e, s, c)

    with pytest.raises(NoSubstituteAvailable):
        await users.delete_user(db, s)


async def test_inactive_peer_is_not_a_substitute(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    await make_user("Sleeping", "supervisor", is_active=False)
    c = await make_user("C", "section_chief")
    await make_record(e, s, c)

    with pytest.raises(NoSubstituteAvailable):
        await users.update_user(db, s, UserUpdate(is_active=False))
    assert s.is_active


async def test_role_change_hands_over_on_old_line(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    peer = await make_user("Peer", "supervisor")
    c = await make_user("C", "section_chief")
    record = await make_record(e, s, c)

    await users.update_user(db, s, UserUpdate(role_code="employee"))

    assert s.role_code == "employee"
    assert record.supervisor_id == peer.id
    assert len(await _reassigned(db, [record.id])) == 1


async def test_role_change_refused_without_peer_leaves_user_untouched(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    c = await make_user("C", "section_chief")
    await make_record(e, s, c)

    with pytest.raises(NoSubstituteAvailable):
        await users.update_user(db, s, UserUpdate(role_code="employee", name="Renamed"))
    assert s.role_code == "supervisor"
    assert s.name == "S"


async def test_line_change_uses_original_line(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor", line="L1")
    await make_user("New line peer", "supervisor", line="L2")
    c = await make_user("C", "section_chief")
    await make_record(e, s, c)

    # a supervisor on the destination line is not eligible
    with pytest.raises(NoSubstituteAvailable):
        await users.update_user(db, s, UserUpdate(production_line="L2"))

    old_line_peer = await make_user("Old line peer", "supervisor", line="L1")
    await users.update_user(db, s, UserUpdate(production_line="L2"))
    assert s.production_line == "L2"
    queue = await timesheets.list_approval_queue(db, old_line_peer)
    assert len(queue) == 1


async def test_section_chief_hands_over_approved_records(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    c = await make_user("C", "section_chief")
    c2 = await make_user("C2", "section_chief")
    waiting = await make_record(e, s, c)
    await timesheets.approve_record(db, waiting.id, s)
    done = await make_record(e, s, c)
    await timesheets.approve_record(db, done.id, s)
    await timesheets.approve_record(db, done.id, c)

    moved = await users.delete_user(db, c)

    assert moved == 1
    assert waiting.section_chief_id == c2.id
    assert waiting.section_chief_name == "C2"
    # finished records keep the name of who signed them
    assert done.section_chief_id is None
    assert done.section_chief_name == "C"


async def test_explicit_substitute_is_used(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    first = await make_user("First", "supervisor")
    chosen = await make_user("Chosen", "supervisor")
    c = await make_user("C", "section_chief")
    record = await make_record(e, s, c)

    await users.delete_user(db, s, handover_to=chosen.id)
    assert record.supervisor_id == chosen.id
    assert first.id != chosen.id


async def test_ineligible_explicit_substitute_is_rejected(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    c = await make_user("C", "section_chief")
    await make_record(e, s, c)

    with pytest.raises(HTTPException) as exc:
        await users.delete_user(db, s, handover_to=e.id)
    assert exc.value.status_code == 400


async def test_earliest_created_peer_is_default(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    late = await make_user("Late", "supervisor")
    early = await make_user("Early", "supervisor")
    late.created_at = datetime(2026, 2, 1, tzinfo=timezone.utc)
    early.created_at = datetime(2025, 1, 1, tzinfo=timezone.utc)
    await db.flush()
    c = await make_user("C", "section_chief")
    record = await make_record(e, s, c)

    substitute, count = await resolver.hand_over(db, s, reason="test")
    assert substitute.id == early.id
    assert count == 1
    assert record.supervisor_id == early.id


async def test_reassignment_count_matches_outstanding(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    peer = await make_user("Peer", "supervisor")
    c = await make_user("C", "section_chief")
    for _ in range(2):
        await make_record(e, s, c)
    draft = await make_record(e, s, c, submit=False)
    approved = await make_record(e, s, c)
    await timesheets.approve_record(db, approved.id, s)

    outstanding = await resolver.outstanding_records(db, s)
    assert len(outstanding) == 3
    assert draft.id in {r.id for r in outstanding}

    count = await resolver.reassign_pending(db, s, peer, performed_by=peer)
    assert count == 3
    entries = await _reassigned(db, [r.id for r in outstanding])
    assert len(entries) == 3
    assert all(h.approver_name == "Peer" and h.approver_type == "supervisor" for h in entries)
    assert approved.supervisor_id == s.id


async def test_employee_delete_needs_no_substitute(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    c = await make_user("C", "section_chief")
    record = await make_record(e, s, c)

    assert await users.delete_user(db, e) == 0
    assert record.user_id is None
    assert record.user_name == "E"


async def test_superadmin_cannot_be_deleted(db, make_user):
    admin = await make_user("Root", "admin", is_superadmin=True)
    with pytest.raises(HTTPException) as exc:
        await users.delete_user(db, admin)
    assert exc.value.status_code == 400


async def test_handover_preview_lists_candidates(db, make_user, make_record):
    e = await make_user("E")
    s = await make_user("S", "supervisor")
    peer = await make_user("Peer", "supervisor")
    c = await make_user("C", "section_chief")
    await make_record(e, s, c)

    preview = await resolver.handover_preview(db, s)
    assert preview["outstanding_count"] == 1
    assert [u.id for u in preview["candidates"]] == [peer.id]
