# payroll_api/models/security.py
from payroll_api.extensions import db


class Role(db.Model):
    __tablename__ = "roles"
    id   = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)  # "admin" | "employee"

    users = db.relationship(
        "UserRole",
        back_populates="role",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Role id={self.id} code={self.code!r}>"


class UserRole(db.Model):
    __tablename__ = "user_roles"
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role_id = db.Column(
        db.Integer,
        db.ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    )

    role = db.relationship("Role", back_populates="users")
    user = db.relationship(
        "User",
        backref=db.backref(
            "user_roles",
            cascade="all, delete-orphan",
            passive_deletes=True,
        ),
    )

    def __repr__(self) -> str:
        return f"<UserRole user_id={self.user_id} role_id={self.role_id}>"


def ensure_role(code: str) -> Role:
    """Return the Role with ``code``, creating it (flushed, not committed) if missing."""
    role = Role.query.filter_by(code=code).first()
    if not role:
        role = Role(code=code)
        db.session.add(role)
        db.session.flush()
    return role


def grant_role(user, code: str) -> bool:
    """Idempotently link ``user`` to role ``code``. True if a new link was added."""
    role = ensure_role(code)
    if any(ur.role_id == role.id for ur in user.user_roles):
        return False
    db.session.add(UserRole(user_id=user.id, role_id=role.id))
    return True
