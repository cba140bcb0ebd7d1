# payroll_api/common/auth.py
from __future__ import annotations

from functools import wraps
from typing import Optional, Set

from flask import g
from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from payroll_api.common.http import fail
from payroll_api.extensions import db
from payroll_api.models.user import User
from payroll_api.models.security import Role, UserRole

ROLE_ADMIN = "admin"
ROLE_EMPLOYEE = "employee"
ROLES = (ROLE_ADMIN, ROLE_EMPLOYEE)


# ---------- helpers ----------

def _collect_roles_from_db(user_id: int) -> Set[str]:
    q = (
        db.session.query(Role.code)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .distinct()
    )
    return {row[0] for row in q.all()}


def current_user_id() -> Optional[int]:
    uid = get_jwt_identity()
    try:
        return int(uid) if uid is not None else None
    except (TypeError, ValueError):
        return None


def current_user() -> Optional[User]:
    """Resolve the JWT identity to a User, cached on ``g`` for the request."""
    if getattr(g, "_current_user", None) is None:
        uid = current_user_id()
        g._current_user = db.session.get(User, uid) if uid else None
    return g._current_user


def current_roles() -> Set[str]:
    """Roles from the JWT claims; falls back to the DB for tokens issued without them."""
    claims = get_jwt() or {}
    roles = set(claims.get("roles") or [])
    if roles:
        return roles
    uid = current_user_id()
    return _collect_roles_from_db(uid) if uid else set()


def is_admin() -> bool:
    return ROLE_ADMIN in current_roles()


# ---------- decorators ----------

def requires_roles(*codes: str):
    """
    Require that the current user has AT LEAST ONE of the given role codes.
    - Uses roles in JWT if present; falls back to DB.
    - 'admin' role always passes.
    """
    def outer(fn):
        @wraps(fn)
        @jwt_required()
        def inner(*args, **kwargs):
            uid = current_user_id()
            if uid is None:
                return fail("Unauthorized", status=401)

            roles = current_roles()
            if ROLE_ADMIN in roles:
                return fn(*args, **kwargs)

            if not any(r in roles for r in codes):
                return fail("Access denied: role not authorized", status=403, code="forbidden")

            return fn(*args, **kwargs)
        return inner
    return outer
