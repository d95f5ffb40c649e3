from decimal import Decimal

from worktime.core.auth.security import hash_password
from worktime.core.companies.models import Company
from worktime.core.processes.models import Process
from worktime.core.rbac.models import Role, User
from worktime.core.rbac.permissions import DEFAULT_ROLE_PERMISSIONS

PASSWORD = "line-one-pass"


async def _seed(session_factory) -> dict:
    async with session_factory() as db:
        async with db.begin():
            company = Company(name="Acme")
            db.add(company)
            await db.flush()
            roles = {code: Role(name=code, code=code, permissions=list(p)) for code, p in DEFAULT_ROLE_PERMISSIONS.items()}
            db.add_all(roles.values())
            await db.flush()
            people = {}
            for i, (key, role, superadmin) in enumerate([
                ("employee", "employee", False),
                ("supervisor", "supervisor", False),
                ("chief", "section_chief", False),
                ("admin", "admin", True),
            ]):
                user = User(company_id=company.id, phone=f"1390000000{i}", name=key.title(),
                            hashed_password=hash_password(PASSWORD), role_id=roles[role].id,
                            production_line="L1", is_superadmin=superadmin)
                db.add(user)
                people[key] = user
            process = Process(company_id=company.id, production_line="L1", product_name="Valve",
                              product_process="Assemble", unit_price=Decimal("1.20"))
            db.add(process)
            await db.flush()
            return {"company": company.id, "process": process.id,
                    **{k: (u.id, u.phone) for k, u in people.items()}}


async def _login(client, phone) -> dict:
    resp = await client.post("/auth/login", json={"phone": phone, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_requires_auth(client):
    resp = await client.get("/auth/me")
    assert resp.status_code == 401


async def test_approval_flow_and_refused_delete(client, session_factory):
    ids = await _seed(session_factory)
    employee = await _login(client, ids["employee"][1])
    supervisor = await _login(client, ids["supervisor"][1])
    admin = await _login(client, ids["admin"][1])

    me = await client.get("/auth/me", headers=employee)
    assert me.json()["role_code"] == "employee"

    resp = await client.post("/timesheets", headers=employee, json={
        "work_date": "2026-03-02",
        "supervisor_id": str(ids["supervisor"][0]),
        "section_chief_id": str(ids["chief"][0]),
        "items": [{"process_id": str(ids["process"]), "quantity": "5"}],
        "submit": True,
    })
    assert resp.status_code == 201, resp.text
    record = resp.json()
    assert record["status"] == "pending"
    assert Decimal(record["total_amount"]) == Decimal("6.00")

    # chief cannot jump the queue
    chief = await _login(client, ids["chief"][1])
    resp = await client.post(f"/approvals/{record['id']}/approve", headers=chief)
    assert resp.status_code == 409
    assert resp.json()["detail"]["error"] == "invalid_transition"

    # the only section chief has an approved record waiting
    resp = await client.post(f"/approvals/{record['id']}/approve", headers=supervisor, json={"comment": "ok"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"

    resp = await client.delete(f"/users/{ids['chief'][0]}", headers=admin)
    assert resp.status_code == 409
    detail = resp.json()["detail"]
    assert detail["error"] == "no_substitute_available"
    assert detail["pending_count"] == 1
    assert detail["employees"] == ["Employee"]

    resp = await client.get(f"/users/{ids['chief'][0]}", headers=admin)
    assert resp.status_code == 200

    resp = await client.get(f"/timesheets/{record['id']}/history", headers=employee)
    assert [h["action"] for h in resp.json()] == ["approved"]


async def test_employee_cannot_manage_users(client, session_factory):
    ids = await _seed(session_factory)
    employee = await _login(client, ids["employee"][1])
    resp = await client.delete(f"/users/{ids['supervisor'][0]}", headers=employee)
    assert resp.status_code == 403


async def test_snapshot_rpc(client, session_factory):
    ids = await _seed(session_factory)
    admin = await _login(client, ids["admin"][1])
    resp = await client.post("/rpc/update_user_names_before_delete", headers=admin,
                             json={"user_id_to_delete": str(ids["employee"][0])})
    assert resp.status_code == 200
    assert resp.json()["user_id"] == str(ids["employee"][0])


async def test_draft_patch_and_reviewer_routes(client, session_factory):
    ids = await _seed(session_factory)
    employee = await _login(client, ids["employee"][1])
    supervisor = await _login(client, ids["supervisor"][1])

    resp = await client.post("/timesheets", headers=employee, json={
        "work_date": "2026-03-02",
        "supervisor_id": str(ids["supervisor"][0]),
        "section_chief_id": str(ids["chief"][0]),
        "items": [{"process_id": str(ids["process"]), "quantity": "5"}],
    })
    assert resp.status_code == 201, resp.text
    record = resp.json()
    assert record["status"] == "draft"

    resp = await client.patch(f"/timesheets/{record['id']}", headers=employee, json={
        "shift_type": "night",
        "items": [{"process_id": str(ids["process"]), "quantity": "10"}],
    })
    assert resp.status_code == 200, resp.text
    assert resp.json()["shift_type"] == "night"
    assert Decimal(resp.json()["total_amount"]) == Decimal("12.00")

    resp = await client.patch(f"/timesheets/{record['id']}", headers=supervisor, json={"shift_type": "day"})
    assert resp.status_code == 403

    # approval routes need a review permission
    resp = await client.post(f"/timesheets/{record['id']}/submit", headers=employee)
    assert resp.status_code == 200
    resp = await client.post(f"/approvals/{record['id']}/approve", headers=employee)
    assert resp.status_code == 403
    resp = await client.get("/approvals/queue", headers=employee)
    assert resp.status_code == 403

    resp = await client.post(f"/approvals/{record['id']}/approve", headers=supervisor)
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"
