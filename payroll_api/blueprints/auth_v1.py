from flask import Blueprint, request, current_app
from flask_jwt_extended import (
    create_access_token, create_refresh_token,
    jwt_required, get_jwt_identity
)
from payroll_api.common import validation
from payroll_api.common.auth import ROLE_EMPLOYEE
from payroll_api.common.errors import Conflict
from payroll_api.common.http import ok, fail
from payroll_api.models.employee import Employee
from payroll_api.models.security import grant_role
from payroll_api.models.user import User
from payroll_api.extensions import db

bp = Blueprint("auth_v1", __name__, url_prefix="/api/v1/auth")

def _user_payload(u: User):
    return {
        "id": u.id,
        "username": u.username,
        "email": u.email,
        "full_name": u.full_name,
        "roles": u.role_codes(),
        "employee_id": u.employee_id,
    }

def _tokens(u: User):
    roles = u.role_codes()
    add_claims = {"roles": roles, "email": u.email, "name": u.full_name}
    access  = create_access_token(identity=str(u.id), additional_claims=add_claims)
    refresh = create_refresh_token(identity=str(u.id), additional_claims={"roles": roles})
    return access, refresh

def _json_body():
    data = request.get_json(silent=True, force=True)
    return data if isinstance(data, dict) else {}

@bp.post("/register")
def register():
    """Self sign-up. Always creates an employee-role user; admins come from the CLI."""
    data = _json_body()
    username = validation.bounded_text(data.get("username"), "username", min_len=3, max_len=50,
                                       required=True, pattern=validation.USERNAME_RE,
                                       pattern_msg="username may only contain letters, numbers and underscores")
    email = validation.email(data.get("email"))
    password = data.get("password") or ""
    if not isinstance(password, str) or not (6 <= len(password) <= 100):
        return fail("Validation error", status=400, code="validation_error",
                    errors=[{"field": "password", "message": "password must be between 6 and 100 characters"}])
    full_name = validation.bounded_text(data.get("full_name"), "full_name", max_len=255)

    if User.query.filter((User.username == username) | (User.email == email)).first():
        raise Conflict("Username or email is already registered")

    u = User(username=username, email=email, full_name=full_name, status="active")
    u.set_password(password)
    db.session.add(u)
    db.session.flush()
    grant_role(u, ROLE_EMPLOYEE)
    db.session.commit()
    current_app.logger.info("user registered id=%s username=%s", u.id, u.username)
    return ok(_user_payload(u), status=201)

@bp.post("/login")
def login():
    data = _json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        return fail("Email and password are required", status=400, code="validation_error")

    u = User.query.filter_by(email=email).first()
    if not u or not u.check_password(password):
        return fail("Invalid credentials", status=401, code="invalid_credentials")

    roles = u.role_codes()
    if ROLE_EMPLOYEE in roles and Employee.query.filter_by(user_id=u.id).first() is None:
        # login still succeeds; self-service routes will answer 404
        current_app.logger.warning("user %s has the employee role but no linked employee record", u.id)

    access, refresh = _tokens(u)
    return ok({"access": access, "refresh": refresh, "user": _user_payload(u)})

@bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid else None
    if not u:
        return fail("User not found", status=404, code="not_found")
    access, _ = _tokens(u)
    return ok({"access": access})

@bp.get("/me")
@jwt_required()
def me():
    uid = get_jwt_identity()
    u = db.session.get(User, int(uid)) if uid else None
    if not u:
        return fail("User not found", status=404, code="not_found")
    return ok(_user_payload(u))
