import os

import pytest

from payroll_api import create_app
from payroll_api.extensions import db
from payroll_api.models.security import grant_role
from payroll_api.models.user import User


def _mk_app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app("payroll_api.config.TestingConfig")
    return app


def _payload(**over):
    body = {
        "doc_type": "CC",
        "doc_number": "123456789",
        "first_name": "María José",
        "last_name": "Gómez",
        "phone": "3001234567",
        "position": "Accountant",
        "hire_date": "2024-02-01",
        "base_salary": 1800000,
        "bank": "Banco Uno",
        "account_number": "001-22-333",
    }
    body.update(over)
    return body


@pytest.fixture
def env():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        u = User(username="boss", email="boss@test.local", status="active")
        u.set_password("secret123")
        db.session.add(u)
        db.session.flush()
        grant_role(u, "admin")
        db.session.commit()

    client = app.test_client()
    r = client.post("/api/v1/auth/login", json={"email": "boss@test.local", "password": "secret123"})
    admin = {"Authorization": f"Bearer {r.get_json()['data']['access']}"}
    yield app, client, admin
    with app.app_context():
        db.session.remove()
        db.drop_all()


def test_create_employee(env):
    app, client, admin = env
    r = client.post("/api/v1/employees", json=_payload(), headers=admin)
    assert r.status_code == 201
    data = r.get_json()["data"]
    assert data["status"] == "active"
    assert data["full_name"] == "María José Gómez"
    assert data["hire_date"] == "2024-02-01"
    assert float(data["base_salary"]) == 1800000
    assert data["user_id"] is None


def test_create_employee_validation(env):
    app, client, admin = env
    r = client.post("/api/v1/employees", json={"doc_type": "XX", "first_name": "J0hn"}, headers=admin)
    assert r.status_code == 400
    fields = {e["field"] for e in r.get_json()["error"]["errors"]}
    assert {"doc_type", "doc_number", "first_name", "last_name", "hire_date", "base_salary"} <= fields

    for bad in ({"base_salary": 0}, {"base_salary": "-10"}, {"doc_number": "12"},
                {"hire_date": "01/02/2024"}, {"account_number": "12 34"}):
        assert client.post("/api/v1/employees", json=_payload(**bad), headers=admin).status_code == 400


def test_free_text_is_sanitized(env):
    app, client, admin = env
    r = client.post("/api/v1/employees", json=_payload(position="<script>Lead</script>"), headers=admin)
    assert r.status_code == 201
    assert "<" not in r.get_json()["data"]["position"]


def test_duplicate_document_number_conflicts(env):
    app, client, admin = env
    assert client.post("/api/v1/employees", json=_payload(), headers=admin).status_code == 201
    r = client.post("/api/v1/employees", json=_payload(first_name="Otra"), headers=admin)
    assert r.status_code == 409


def test_create_with_linked_user_allows_self_service(env):
    app, client, admin = env
    body = _payload(create_user={"username": "mjose", "email": "mjose@test.local", "password": "clave123"})
    r = client.post("/api/v1/employees", json=body, headers=admin)
    assert r.status_code == 201
    emp = r.get_json()["data"]
    assert emp["user_id"] is not None

    login = client.post("/api/v1/auth/login", json={"email": "mjose@test.local", "password": "clave123"})
    assert login.status_code == 200
    own = {"Authorization": f"Bearer {login.get_json()['data']['access']}"}
    assert login.get_json()["data"]["user"]["roles"] == ["employee"]

    me = client.get("/api/v1/employees/me", headers=own)
    assert me.status_code == 200
    assert me.get_json()["data"]["id"] == emp["id"]
    assert client.get(f"/api/v1/employees/{emp['id']}", headers=own).status_code == 200

    other = client.post("/api/v1/employees", json=_payload(doc_number="987654321"), headers=admin)
    assert client.get(f"/api/v1/employees/{other.get_json()['data']['id']}", headers=own).status_code == 403
    assert client.post("/api/v1/employees", json=_payload(doc_number="55555"), headers=own).status_code == 403


def test_linked_user_conflict_rolls_back_employee(env):
    app, client, admin = env
    body = _payload(create_user={"username": "boss", "email": "new@test.local", "password": "clave123"})
    r = client.post("/api/v1/employees", json=body, headers=admin)
    assert r.status_code == 409
    listing = client.get("/api/v1/employees", headers=admin).get_json()
    assert listing["meta"]["total"] == 0


def test_update_employee(env):
    app, client, admin = env
    emp_id = client.post("/api/v1/employees", json=_payload(), headers=admin).get_json()["data"]["id"]

    r = client.put(f"/api/v1/employees/{emp_id}", json={"base_salary": "2500000.50", "phone": None},
                   headers=admin)
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert float(data["base_salary"]) == 2500000.50
    assert data["phone"] is None
    assert data["first_name"] == "María José"

    assert client.put(f"/api/v1/employees/{emp_id}", json={"base_salary": -1}, headers=admin).status_code == 400
    assert client.put(f"/api/v1/employees/{emp_id}", json={}, headers=admin).status_code == 400
    assert client.put("/api/v1/employees/999", json={"phone": "1"}, headers=admin).status_code == 404


def test_soft_delete_marks_inactive(env):
    app, client, admin = env
    emp_id = client.post("/api/v1/employees", json=_payload(), headers=admin).get_json()["data"]["id"]

    r = client.delete(f"/api/v1/employees/{emp_id}", headers=admin)
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "inactive"
    assert client.get(f"/api/v1/employees/{emp_id}", headers=admin).get_json()["data"]["status"] == "inactive"


def test_list_filters_and_pagination(env):
    app, client, admin = env
    for i in range(12):
        client.post("/api/v1/employees",
                    json=_payload(doc_number=f"90000{i:02d}", first_name="Luis" if i % 2 else "Sofia"),
                    headers=admin)

    page = client.get("/api/v1/employees", headers=admin).get_json()
    assert page["meta"] == {"page": 1, "limit": 10, "total": 12, "total_pages": 2}
    assert len(page["data"]) == 10

    assert len(client.get("/api/v1/employees?page=2", headers=admin).get_json()["data"]) == 2
    # out-of-range limit falls back to the default
    assert client.get("/api/v1/employees?limit=500", headers=admin).get_json()["meta"]["limit"] == 10

    sofias = client.get("/api/v1/employees?name=sofia%20g", headers=admin).get_json()
    assert sofias["meta"]["total"] == 6
    assert client.get("/api/v1/employees?doc_number=9000011", headers=admin).get_json()["meta"]["total"] == 1

    client.delete(f"/api/v1/employees/{page['data'][0]['id']}", headers=admin)
    assert client.get("/api/v1/employees?status=inactive", headers=admin).get_json()["meta"]["total"] == 1
    assert client.get("/api/v1/employees?status=gone", headers=admin).status_code == 400
