from datetime import datetime
from payroll_api.extensions import db

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
EMPLOYEE_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)
DOC_TYPES = ("CC", "CE", "TI", "PA", "NIT")

class Employee(db.Model):
    __tablename__ = "employees"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True)

    doc_type   = db.Column(db.String(4), nullable=False)              # CC/CE/TI/PA/NIT
    doc_number = db.Column(db.String(20), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name  = db.Column(db.String(100), nullable=False)
    phone      = db.Column(db.String(20), nullable=True)
    position   = db.Column(db.String(100), nullable=True)

    hire_date   = db.Column(db.Date, nullable=False)
    base_salary = db.Column(db.Numeric(14, 2), nullable=False)        # monthly, currency-agnostic

    bank           = db.Column(db.String(100), nullable=True)
    account_number = db.Column(db.String(50), nullable=True)

    status = db.Column(db.String(16), default=STATUS_ACTIVE, nullable=False)  # active/inactive

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_emp_status", "status"),
    )

    user = db.relationship("User", lazy="joined")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE
