from __future__ import annotations

from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required
from sqlalchemy import func, or_

from payroll_api.common import validation
from payroll_api.common.auth import ROLE_ADMIN, ROLE_EMPLOYEE, requires_roles, current_user_id, is_admin
from payroll_api.common.errors import Conflict, NotFound
from payroll_api.common.http import ok, fail
from payroll_api.common.paging import page_limit, paginate_query
from payroll_api.extensions import db
from payroll_api.models.employee import Employee, DOC_TYPES, EMPLOYEE_STATUSES, STATUS_INACTIVE
from payroll_api.models.security import grant_role
from payroll_api.models.user import User

bp = Blueprint("employees", __name__, url_prefix="/api/v1/employees")

# ---------- helpers ----------
def _row(x: Employee):
    return {
        "id": x.id,
        "user_id": x.user_id,
        "doc_type": x.doc_type,
        "doc_number": x.doc_number,
        "first_name": x.first_name,
        "last_name": x.last_name,
        "full_name": x.full_name,
        "phone": x.phone,
        "position": x.position,
        "hire_date": x.hire_date.isoformat() if x.hire_date else None,
        "base_salary": str(x.base_salary) if x.base_salary is not None else None,
        "bank": x.bank,
        "account_number": x.account_number,
        "status": x.status,
        "created_at": x.created_at.isoformat() if x.created_at else None,
    }

def _json_body():
    data = request.get_json(silent=True, force=True)
    return data if isinstance(data, dict) else {}

# field -> coercer(value, required); create runs every rule, update only the keys sent
_RULES = {
    "doc_type": lambda v, req: validation.one_of(v, "doc_type", DOC_TYPES, required=req),
    "doc_number": lambda v, req: validation.bounded_text(
        v, "doc_number", min_len=5, max_len=20, required=req, pattern=validation.ALNUM_RE,
        pattern_msg="doc_number may only contain letters and numbers"),
    "first_name": lambda v, req: validation.bounded_text(
        v, "first_name", min_len=2, max_len=100, required=req, pattern=validation.NAME_RE,
        pattern_msg="first_name may only contain letters and spaces"),
    "last_name": lambda v, req: validation.bounded_text(
        v, "last_name", min_len=2, max_len=100, required=req, pattern=validation.NAME_RE,
        pattern_msg="last_name may only contain letters and spaces"),
    "phone": lambda v, req: validation.bounded_text(v, "phone", max_len=20),
    "position": lambda v, req: validation.bounded_text(v, "position", max_len=100),
    "hire_date": lambda v, req: validation.iso_date(v, "hire_date", required=req),
    "base_salary": lambda v, req: validation.positive_decimal(v, "base_salary", required=req),
    "bank": lambda v, req: validation.bounded_text(v, "bank", max_len=100),
    "account_number": lambda v, req: validation.bounded_text(
        v, "account_number", max_len=50, pattern=validation.ACCOUNT_RE,
        pattern_msg="account_number may only contain letters, numbers and hyphens"),
    "status": lambda v, req: validation.one_of(v, "status", EMPLOYEE_STATUSES, required=False, lower=True),
}
_REQUIRED_ON_CREATE = {"doc_type", "doc_number", "first_name", "last_name", "hire_date", "base_salary"}
# cannot be cleared by an update
_NOT_NULL = _REQUIRED_ON_CREATE | {"status"}


def _clean(data: dict, partial: bool) -> dict:
    out, errors = {}, []
    for field, rule in _RULES.items():
        if partial and field not in data:
            continue
        required = field in _NOT_NULL if partial else field in _REQUIRED_ON_CREATE
        try:
            value = rule(data.get(field), required)
        except validation.ValidationError as e:
            errors.extend(e.errors)
            continue
        if value is None and field in _NOT_NULL:
            continue
        out[field] = value
    if errors:
        raise validation.ValidationError("Validation error", errors=errors)
    return out


def _check_doc_number_free(doc_number: str, exclude_id: int | None = None):
    q = Employee.query.filter(Employee.doc_number == doc_number)
    if exclude_id is not None:
        q = q.filter(Employee.id != exclude_id)
    if q.first():
        raise Conflict("An employee with this document number already exists")


def _linked_user(body) -> User:
    """Build the optional login for a new employee from the ``create_user`` block."""
    if not isinstance(body, dict):
        raise validation.ValidationError(
            "Validation error", errors=[{"field": "create_user", "message": "create_user must be an object"}])
    username = validation.bounded_text(body.get("username"), "create_user.username", min_len=3, max_len=50,
                                       required=True, pattern=validation.USERNAME_RE)
    email = validation.email(body.get("email"), "create_user.email")
    password = body.get("password") or ""
    if not isinstance(password, str) or not (6 <= len(password) <= 100):
        raise validation.ValidationError("Validation error", errors=[
            {"field": "create_user.password", "message": "password must be between 6 and 100 characters"}])
    if User.query.filter((User.username == username) | (User.email == email)).first():
        raise Conflict("Username or email is already registered")
    u = User(username=username, email=email, status="active")
    u.set_password(password)
    return u


def _get_or_404(emp_id: int) -> Employee:
    x = db.session.get(Employee, emp_id)
    if not x:
        raise NotFound("Employee not found")
    return x

# ---------- routes ----------
@bp.get("")
@jwt_required()
def list_employees():
    q = Employee.query

    name = (request.args.get("name") or "").strip()
    if name:
        like = f"%{name.lower()}%"
        full = func.lower(Employee.first_name + " " + Employee.last_name)
        q = q.filter(or_(full.like(like),
                         func.lower(Employee.first_name).like(like),
                         func.lower(Employee.last_name).like(like)))
    doc = (request.args.get("doc_number") or "").strip()
    if doc:
        q = q.filter(Employee.doc_number.like(f"%{doc}%"))
    status = (request.args.get("status") or "").strip().lower()
    if status:
        if status not in EMPLOYEE_STATUSES:
            return fail(f"status must be one of: {', '.join(EMPLOYEE_STATUSES)}", status=400,
                        code="validation_error")
        q = q.filter(Employee.status == status)

    page, limit = page_limit()
    rows, meta = paginate_query(q.order_by(Employee.id.asc()), page, limit)
    return ok([_row(x) for x in rows], **meta)

@bp.get("/me")
@jwt_required()
def my_employee():
    x = Employee.query.filter_by(user_id=current_user_id()).first()
    if not x:
        return fail("No employee record is linked to this user", status=404, code="not_found")
    return ok(_row(x))

@bp.get("/<int:emp_id>")
@requires_roles(ROLE_EMPLOYEE)
def get_employee(emp_id: int):
    x = _get_or_404(emp_id)
    if not is_admin() and x.user_id != current_user_id():
        return fail("Access denied: not your employee record", status=403, code="forbidden")
    return ok(_row(x))

@bp.post("")
@requires_roles(ROLE_ADMIN)
def create_employee():
    data = _json_body()
    fields = _clean(data, partial=False)
    _check_doc_number_free(fields["doc_number"])

    x = Employee(**fields)
    # create the login and the employee as one unit
    if data.get("create_user"):
        u = _linked_user(data["create_user"])
        u.full_name = f"{fields['first_name']} {fields['last_name']}"
        db.session.add(u)
        db.session.flush()
        grant_role(u, ROLE_EMPLOYEE)
        x.user_id = u.id
    elif data.get("user_id") not in (None, ""):
        uid = validation.positive_int(data.get("user_id"), "user_id")
        if not db.session.get(User, uid):
            raise NotFound("User not found")
        if Employee.query.filter_by(user_id=uid).first():
            raise Conflict("This user is already linked to an employee")
        x.user_id = uid

    db.session.add(x)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info("employee created id=%s doc=%s user=%s", x.id, x.doc_number, x.user_id)
    return ok(_row(x), status=201)

@bp.put("/<int:emp_id>")
@requires_roles(ROLE_ADMIN)
def update_employee(emp_id: int):
    x = _get_or_404(emp_id)
    fields = _clean(_json_body(), partial=True)
    if not fields:
        return fail("No fields to update", status=400, code="validation_error")
    if "doc_number" in fields and fields["doc_number"] != x.doc_number:
        _check_doc_number_free(fields["doc_number"], exclude_id=x.id)

    for k, v in fields.items():
        setattr(x, k, v)
    db.session.commit()
    current_app.logger.info("employee updated id=%s fields=%s", x.id, sorted(fields))
    return ok(_row(x))

@bp.delete("/<int:emp_id>")
@requires_roles(ROLE_ADMIN)
def deactivate_employee(emp_id: int):
    """Soft delete: payroll history keeps pointing at the row."""
    x = _get_or_404(emp_id)
    x.status = STATUS_INACTIVE
    db.session.commit()
    current_app.logger.info("employee deactivated id=%s", x.id)
    return ok({"id": x.id, "status": x.status})
