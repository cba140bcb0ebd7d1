from datetime import datetime
from payroll_api.extensions import db
from payroll_api.services.payroll_calculator import PayslipComputation


class PayrollRecord(db.Model):
    """
    One generated payslip for (employee, period). Created only by the
    generation service, never updated; deletion is the only mutation.
    """
    __tablename__ = "payroll_records"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"),
                            nullable=False, index=True)
    period_date = db.Column(db.Date, nullable=False)

    details = db.Column(db.JSON, nullable=False, default=list)   # ordered payslip lines
    total_accrued  = db.Column(db.Numeric(16, 4), nullable=False, default=0)
    total_deducted = db.Column(db.Numeric(16, 4), nullable=False, default=0)
    net_pay        = db.Column(db.Numeric(16, 4), nullable=False, default=0)

    observations = db.Column(db.Text, nullable=True)
    generated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "period_date", name="uq_payroll_employee_period"),
        db.Index("ix_payroll_generated_at", "generated_at"),
    )

    employee = db.relationship("Employee", lazy="joined")

    @classmethod
    def from_computation(cls, employee_id: int, period_date, computation: PayslipComputation,
                         observations=None) -> "PayrollRecord":
        return cls(
            employee_id=employee_id,
            period_date=period_date,
            details=computation.to_json(),
            total_accrued=computation.total_accrued,
            total_deducted=computation.total_deducted,
            net_pay=computation.net_pay,
            observations=observations,
        )

    @property
    def computation(self) -> PayslipComputation:
        return PayslipComputation.from_json(self.details)
