import os
from datetime import date
from decimal import Decimal

import pytest

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.security import grant_role
from payroll_api.models.user import User

PASSWORD = "secret123"


def _mk_app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app("payroll_api.config.TestingConfig")
    return app


def _user(username, role):
    u = User(username=username, email=f"{username}@test.local", full_name=username.title(), status="active")
    u.set_password(PASSWORD)
    db.session.add(u)
    db.session.flush()
    grant_role(u, role)
    return u


def _emp(doc, salary, user=None, status="active", first="Ana"):
    e = Employee(doc_type="CC", doc_number=doc, first_name=first, last_name="Perez",
                 hire_date=date(2024, 1, 15), base_salary=Decimal(str(salary)), status=status,
                 user_id=user.id if user else None)
    db.session.add(e)
    return e


@pytest.fixture
def env():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        _user("boss", "admin")
        ana = _user("ana", "employee")
        beto = _user("beto", "employee")
        _user("orphan", "employee")
        e_ana = _emp("11111", 1_000_000, ana, first="Ana")
        e_beto = _emp("22222", 3_000_000, beto, first="Beto")
        db.session.commit()
        ids = {"ana": e_ana.id, "beto": e_beto.id}

    client = app.test_client()
    yield app, client, ids
    with app.app_context():
        db.session.remove()
        db.drop_all()


def _login(client, username):
    r = client.post("/api/v1/auth/login", json={"email": f"{username}@test.local", "password": PASSWORD})
    assert r.status_code == 200, r.get_json()
    return {"Authorization": f"Bearer {r.get_json()['data']['access']}"}


def _generate(client, headers, employee_id, period="2025-01-31", **extra):
    return client.post("/api/v1/payroll", json={"employee_id": employee_id, "period_date": period, **extra},
                       headers=headers)


def test_admin_generates_payslip(env):
    app, client, ids = env
    admin = _login(client, "boss")

    r = _generate(client, admin, ids["ana"], observations="first run")
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["employee_id"] == ids["ana"]
    assert data["period_date"] == "2025-01-31"
    assert Decimal(data["net_pay"]) == Decimal("1082000")
    assert [d["concept"] for d in data["details"]] == [
        "Base Salary", "Transport Subsidy", "Health Contribution", "Pension Contribution"]
    assert data["generated_at"]


def test_generation_errors_map_to_statuses(env):
    app, client, ids = env
    admin = _login(client, "boss")

    assert _generate(client, admin, ids["ana"]).status_code == 201

    dup = _generate(client, admin, ids["ana"])
    assert dup.status_code == 409
    assert dup.get_json()["error"]["code"] == "conflict"

    assert _generate(client, admin, 9999).status_code == 404

    bad_date = _generate(client, admin, ids["ana"], period="not-a-date")
    assert bad_date.status_code == 400
    assert bad_date.get_json()["error"]["errors"][0]["field"] == "period_date"

    bad_flag = _generate(client, admin, ids["ana"], period="2025-02-28", transport_subsidy="maybe")
    assert bad_flag.status_code == 400

    client.delete(f"/api/v1/employees/{ids['beto']}", headers=admin)
    inactive = _generate(client, admin, ids["beto"])
    assert inactive.status_code == 422
    assert inactive.get_json()["error"]["code"] == "invalid_state"


def test_transport_subsidy_override_over_http(env):
    app, client, ids = env
    admin = _login(client, "boss")
    r = _generate(client, admin, ids["beto"], transport_subsidy=True)
    assert r.status_code == 201
    assert "Transport Subsidy" in [d["concept"] for d in r.get_json()["data"]["details"]]


def test_employee_cannot_generate_or_delete(env):
    app, client, ids = env
    admin = _login(client, "boss")
    ana = _login(client, "ana")

    r = _generate(client, ana, ids["ana"])
    assert r.status_code == 403
    assert r.get_json()["error"]["code"] == "forbidden"

    rid = _generate(client, admin, ids["ana"]).get_json()["data"]["id"]
    assert client.delete(f"/api/v1/payroll/{rid}", headers=ana).status_code == 403
    assert client.post("/api/v1/payroll/generate-all", json={"period_date": "2025-01-31"},
                       headers=ana).status_code == 403


def test_employee_sees_only_own_records(env):
    app, client, ids = env
    admin = _login(client, "boss")
    _generate(client, admin, ids["ana"])
    beto_rid = _generate(client, admin, ids["beto"]).get_json()["data"]["id"]

    ana = _login(client, "ana")
    r = client.get("/api/v1/payroll?employee_id=%d" % ids["beto"], headers=ana)
    assert r.status_code == 200
    rows = r.get_json()["data"]
    assert len(rows) == 1 and rows[0]["employee_id"] == ids["ana"]

    assert client.get(f"/api/v1/payroll/{beto_rid}", headers=ana).status_code == 403
    assert client.get(f"/api/v1/payroll/{beto_rid}", headers=admin).status_code == 200

    everything = client.get("/api/v1/payroll", headers=admin).get_json()
    assert everything["meta"]["total"] == 2
    only_beto = client.get("/api/v1/payroll?employee_id=%d" % ids["beto"], headers=admin).get_json()
    assert [x["id"] for x in only_beto["data"]] == [beto_rid]


def test_employee_without_profile_gets_404_on_own_payroll(env):
    app, client, ids = env
    orphan = _login(client, "orphan")
    assert client.get("/api/v1/payroll", headers=orphan).status_code == 404


def test_generate_all_reports_partial_success(env):
    app, client, ids = env
    admin = _login(client, "boss")
    with app.app_context():
        _emp("33333", 0, first="Cero")
        db.session.commit()

    r = client.post("/api/v1/payroll/generate-all", json={"period_date": "2025-03-31"}, headers=admin)
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["total"] == 3
    assert data["succeeded"] == 2
    assert data["failed"] == 1
    assert data["failures"][0]["employee_name"] == "Cero Perez"
    assert data["failures"][0]["code"] == "invalid_state"


def test_delete_record(env):
    app, client, ids = env
    admin = _login(client, "boss")
    rid = _generate(client, admin, ids["ana"]).get_json()["data"]["id"]

    r = client.delete(f"/api/v1/payroll/{rid}", headers=admin)
    assert r.status_code == 200
    assert client.get(f"/api/v1/payroll/{rid}", headers=admin).status_code == 404
    assert client.delete(f"/api/v1/payroll/{rid}", headers=admin).status_code == 404


def test_payroll_requires_token(env):
    app, client, ids = env
    assert client.get("/api/v1/payroll").status_code == 401


def test_register_login_and_me(env):
    app, client, ids = env
    r = client.post("/api/v1/auth/register",
                    json={"username": "new_user", "email": "New@Test.local", "password": "pass1234"})
    assert r.status_code == 201
    assert r.get_json()["data"]["roles"] == ["employee"]

    dup = client.post("/api/v1/auth/register",
                      json={"username": "new_user", "email": "other@test.local", "password": "pass1234"})
    assert dup.status_code == 409

    short = client.post("/api/v1/auth/register",
                        json={"username": "x", "email": "x@test.local", "password": "1"})
    assert short.status_code == 400

    bad = client.post("/api/v1/auth/login", json={"email": "new@test.local", "password": "wrong"})
    assert bad.status_code == 401

    login = client.post("/api/v1/auth/login", json={"email": "new@test.local", "password": "pass1234"})
    tokens = login.get_json()["data"]
    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['access']}"})
    assert me.get_json()["data"]["username"] == "new_user"
    assert me.get_json()["data"]["employee_id"] is None

    refreshed = client.post("/api/v1/auth/refresh", headers={"Authorization": f"Bearer {tokens['refresh']}"})
    assert refreshed.status_code == 200
    assert refreshed.get_json()["data"]["access"]


def test_health(env):
    app, client, ids = env
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.get_json()["data"]["db"] == "ok"
